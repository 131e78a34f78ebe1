"""
Directory Module

Registry of relays and their public keys, plus the client used by
relays (to register) and senders (to pick circuits).
"""

from .registry import (
    DirectoryEntry,
    NodeRegistry,
)

from .client import (
    DirectoryClient,
    DirectoryError,
)

__all__ = [
    'DirectoryEntry',
    'NodeRegistry',
    'DirectoryClient',
    'DirectoryError',
]
