"""
Layer Encryption

Encrypts one onion layer under a fresh per-layer key using AES-256-GCM.

Token format:
    base64(iv) ":" base64(ciphertext || tag)

SECURITY NOTES:
- A fresh random 96-bit IV is drawn for every encrypt() call
- GCM authenticates the ciphertext, so tampering is always detected
- Keys are single-use and never persisted
"""

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..errors import InvalidKey, DecryptionFailure, MalformedToken
from .primitives import (
    random_bytes,
    b64encode,
    b64decode,
    FIELD_SEPARATOR,
    AES_KEY_SIZE,
    GCM_IV_SIZE,
)


def generate_key() -> bytes:
    """
    Generate a fresh 256-bit layer key.

    Returns:
        bytes: 32 random bytes
    """
    return random_bytes(AES_KEY_SIZE)


def export_key(key: bytes) -> str:
    """Serialize a layer key as base64 text."""
    return b64encode(key)


def import_key(text: str) -> bytes:
    """
    Load a layer key from base64 text.

    Raises:
        InvalidKey: If the text is not base64 or has the wrong length
    """
    try:
        key = b64decode(text)
    except ValueError as e:
        raise InvalidKey(f"Invalid symmetric key: {e}")

    if len(key) != AES_KEY_SIZE:
        raise InvalidKey(f"Invalid symmetric key length: {len(key)} (expected {AES_KEY_SIZE})")
    return key


def _cipher(key: bytes) -> AESGCM:
    if len(key) != AES_KEY_SIZE:
        raise InvalidKey(f"Invalid symmetric key length: {len(key)} (expected {AES_KEY_SIZE})")
    return AESGCM(key)


def encrypt(key: bytes, plaintext: bytes) -> str:
    """
    Encrypt one layer.

    Args:
        key: 32-byte layer key
        plaintext: Layer contents

    Returns:
        str: Token binding the IV and the ciphertext

    Raises:
        InvalidKey: If the key has the wrong length
    """
    cipher = _cipher(key)
    iv = random_bytes(GCM_IV_SIZE)
    ciphertext = cipher.encrypt(iv, plaintext, None)
    return b64encode(iv) + FIELD_SEPARATOR + b64encode(ciphertext)


def decrypt(key: bytes, token: str) -> bytes:
    """
    Decrypt a token produced by encrypt().

    Args:
        key: 32-byte layer key
        token: IV and ciphertext

    Returns:
        bytes: Layer contents

    Raises:
        MalformedToken: If the token has no separator
        DecryptionFailure: If decoding or authentication fails
    """
    iv_text, sep, ciphertext_text = token.partition(FIELD_SEPARATOR)
    if not sep:
        raise MalformedToken("Token has no IV separator")

    cipher = _cipher(key)

    try:
        iv = b64decode(iv_text)
        ciphertext = b64decode(ciphertext_text)
        return cipher.decrypt(iv, ciphertext, None)
    except (InvalidTag, ValueError):
        raise DecryptionFailure("Layer decryption failed")
