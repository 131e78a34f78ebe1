"""
Cryptographic Primitives

Low-level helpers shared by the key and cipher modules.

SECURITY NOTES:
- All randomness from os.urandom (kernel CSPRNG)
- Base64 decoding is strict: stray characters and non-canonical
  trailing bits are rejected

Dependencies:
- cryptography (OpenSSL backend)
"""

import os
import base64
import binascii


def random_bytes(length: int) -> bytes:
    """
    Generate cryptographically secure random bytes.

    Args:
        length: Number of random bytes to generate

    Returns:
        bytes: Cryptographically secure random bytes

    Raises:
        ValueError: If length is negative
    """
    if length < 0:
        raise ValueError("Length must be non-negative")
    return os.urandom(length)


def b64encode(data: bytes) -> str:
    """Encode bytes as transport-safe base64 text."""
    return base64.b64encode(data).decode("ascii")


def b64decode(text: str) -> bytes:
    """
    Decode base64 text produced by b64encode().

    Args:
        text: Base64 text

    Returns:
        bytes: Decoded data

    Raises:
        ValueError: If text is not valid, canonical base64
    """
    try:
        data = base64.b64decode(text, validate=True)
    except (binascii.Error, TypeError) as e:
        raise ValueError(f"Invalid base64: {e}")

    # Unused trailing bits must be zero, so every text maps to one byte string
    if b64encode(data) != text:
        raise ValueError("Invalid base64: non-canonical encoding")
    return data


# Separator between the parts of a token or an onion blob
FIELD_SEPARATOR = ":"

# Encryption constants
AES_KEY_SIZE = 32  # bytes
GCM_IV_SIZE = 12  # bytes
GCM_TAG_SIZE = 16  # bytes
RSA_KEY_SIZE = 2048  # bits
RSA_PUBLIC_EXPONENT = 65537
