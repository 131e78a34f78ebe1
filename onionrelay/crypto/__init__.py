"""
Cryptographic Module

Provides all cryptographic operations:
- Relay key pairs and key wrapping (RSA-OAEP)
- Layer encryption (AES-256-GCM)
- Onion construction and peeling

All implementations use python cryptography (OpenSSL backend).
"""

from .primitives import (
    random_bytes,
    b64encode,
    b64decode,
)

from .keys import (
    KeyPair,
    generate_key_pair,
    export_public_key,
    import_public_key,
    export_private_key,
    import_private_key,
    wrap_key,
    unwrap_key,
)

from .onion import (
    CircuitHop,
    PeeledLayer,
    PeelState,
    build_layer,
    split_layer,
    build_onion_message,
    peel_layer,
)

__all__ = [
    # Primitives
    'random_bytes',
    'b64encode',
    'b64decode',
    # Keys
    'KeyPair',
    'generate_key_pair',
    'export_public_key',
    'import_public_key',
    'export_private_key',
    'import_private_key',
    'wrap_key',
    'unwrap_key',
    # Onion
    'CircuitHop',
    'PeeledLayer',
    'PeelState',
    'build_layer',
    'split_layer',
    'build_onion_message',
    'peel_layer',
]
