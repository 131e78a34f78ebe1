"""
Relay Key Management

Handles:
- Relay key pair generation
- Public/private key serialization to base64 text
- Wrapping a per-layer symmetric key for exactly one relay

Key Types:
- Relay Key Pair: RSA-2048 (one per relay process, never persisted)
- Wrapped Key: RSA-OAEP ciphertext of a 32-byte symmetric key

SECURITY NOTES:
- Private keys are never logged
- Unwrap failures do not reveal whether the key or the data was wrong
"""

from dataclasses import dataclass
from typing import Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.asymmetric.rsa import (
    RSAPrivateKey,
    RSAPublicKey,
)

from ..errors import InvalidKey, DecryptionFailure
from .primitives import (
    b64encode,
    b64decode,
    RSA_KEY_SIZE,
    RSA_PUBLIC_EXPONENT,
)


# OAEP with SHA-256 for both the digest and MGF1
_OAEP = padding.OAEP(
    mgf=padding.MGF1(algorithm=hashes.SHA256()),
    algorithm=hashes.SHA256(),
    label=None,
)

PublicKeyLike = Union[RSAPublicKey, str]


@dataclass(frozen=True)
class KeyPair:
    """
    Relay key pair.

    Generated once per relay process. The public half is published to the
    directory; the private half stays with the relay and is only read after
    generation, so any number of peels may use it concurrently.
    """

    public_key: RSAPublicKey
    private_key: RSAPrivateKey

    @property
    def public_key_text(self) -> str:
        """Get public key as base64 SPKI text."""
        return export_public_key(self.public_key)

    def __repr__(self) -> str:
        return f"KeyPair(public_key={self.public_key_text[:16]}...)"


def generate_key_pair() -> KeyPair:
    """
    Generate a new relay key pair.

    Returns:
        KeyPair: Fresh RSA-2048 key pair

    Security:
        Uses the OpenSSL CSPRNG. Failure here means randomness is
        unavailable and is not recoverable.
    """
    private_key = rsa.generate_private_key(
        public_exponent=RSA_PUBLIC_EXPONENT,
        key_size=RSA_KEY_SIZE,
    )
    return KeyPair(public_key=private_key.public_key(), private_key=private_key)


def export_public_key(public_key: RSAPublicKey) -> str:
    """Serialize a public key as base64 DER SubjectPublicKeyInfo."""
    return b64encode(public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ))


def import_public_key(text: str) -> RSAPublicKey:
    """
    Load a public key from base64 SPKI text.

    Args:
        text: Output of export_public_key()

    Returns:
        RSAPublicKey: Public key object

    Raises:
        InvalidKey: If the text is not a valid RSA public key
    """
    try:
        key = serialization.load_der_public_key(b64decode(text))
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise InvalidKey(f"Invalid public key: {e}")

    if not isinstance(key, RSAPublicKey):
        raise InvalidKey(f"Unsupported public key type: {type(key).__name__}")
    return key


def export_private_key(private_key: RSAPrivateKey) -> str:
    """
    Serialize a private key as base64 DER PKCS#8.

    Security:
        Output contains secret key material. Only the debug inspection
        endpoint uses this.
    """
    return b64encode(private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ))


def import_private_key(text: str) -> RSAPrivateKey:
    """
    Load a private key from base64 PKCS#8 text.

    Raises:
        InvalidKey: If the text is not a valid RSA private key
    """
    try:
        key = serialization.load_der_private_key(b64decode(text), password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise InvalidKey(f"Invalid private key: {e}")

    if not isinstance(key, RSAPrivateKey):
        raise InvalidKey(f"Unsupported private key type: {type(key).__name__}")
    return key


def _as_public_key(public_key: PublicKeyLike) -> RSAPublicKey:
    if isinstance(public_key, str):
        return import_public_key(public_key)
    if not isinstance(public_key, RSAPublicKey):
        raise InvalidKey(f"Unsupported public key type: {type(public_key).__name__}")
    return public_key


def wrap_key(serialized_key: str, public_key: PublicKeyLike) -> str:
    """
    Encrypt a serialized symmetric key for one relay.

    The raw key bytes (not their base64 text) are encrypted with RSA-OAEP.

    Args:
        serialized_key: Symmetric key as produced by symmetric.export_key()
        public_key: Relay public key, as object or base64 SPKI text

    Returns:
        str: Base64 wrapped key

    Raises:
        InvalidKey: If the public key or the symmetric key is malformed
    """
    recipient = _as_public_key(public_key)

    try:
        key_bytes = b64decode(serialized_key)
    except ValueError as e:
        raise InvalidKey(f"Invalid symmetric key: {e}")

    try:
        wrapped = recipient.encrypt(key_bytes, _OAEP)
    except ValueError as e:
        raise InvalidKey(f"Key cannot be wrapped: {e}")

    return b64encode(wrapped)


def unwrap_key(wrapped_key: str, private_key: RSAPrivateKey) -> str:
    """
    Decrypt a wrapped symmetric key with the relay's private key.

    Args:
        wrapped_key: Output of wrap_key()
        private_key: Relay private key

    Returns:
        str: Serialized symmetric key (base64)

    Raises:
        DecryptionFailure: If the key was wrapped for another relay or the
            data is corrupted; the two cases raise the same error
    """
    try:
        key_bytes = private_key.decrypt(b64decode(wrapped_key), _OAEP)
    except ValueError:
        raise DecryptionFailure("Key unwrap failed")

    return b64encode(key_bytes)
