"""
Relay Directory

Tracks which relays exist, their public keys and network addresses.

Design:
- Relays register themselves once at startup
- Re-registering a known node ID is ignored
- Entries live in memory only; a restarted registry starts empty
"""

import threading
import logging
from typing import Dict, List, Optional
from dataclasses import dataclass


logger = logging.getLogger("onionrelay.directory")


@dataclass(frozen=True)
class DirectoryEntry:
    """
    Represents a registered relay.
    """
    node_id: int
    public_key: str     # base64 SPKI text
    address: int        # Network address (port)

    def to_dict(self) -> dict:
        """Convert to the wire representation."""
        return {
            "nodeId": self.node_id,
            "pubKey": self.public_key,
            "address": self.address,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'DirectoryEntry':
        """
        Parse the wire representation.

        Raises:
            ValueError: If a field is missing or has the wrong type
        """
        try:
            return cls(
                node_id=int(data["nodeId"]),
                public_key=str(data["pubKey"]),
                address=int(data["address"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Invalid directory entry: {e}")


class NodeRegistry:
    """
    Thread-safe in-memory relay table.

    Usage:
        registry = NodeRegistry()
        registry.register(DirectoryEntry(1, pub_key_text, 4001))
        entries = registry.get_nodes()
    """

    def __init__(self):
        self._nodes: Dict[int, DirectoryEntry] = {}
        self._lock = threading.RLock()

    def register(self, entry: DirectoryEntry) -> bool:
        """
        Register a relay.

        Args:
            entry: Relay to add

        Returns:
            bool: True if added, False if the node ID was already known
        """
        with self._lock:
            if entry.node_id in self._nodes:
                logger.debug(f"Node {entry.node_id} already registered")
                return False
            self._nodes[entry.node_id] = entry

        logger.info(f"Registered node {entry.node_id} at address {entry.address}")
        return True

    def get_node(self, node_id: int) -> Optional[DirectoryEntry]:
        """Get a relay by node ID."""
        with self._lock:
            return self._nodes.get(node_id)

    def get_nodes(self) -> List[DirectoryEntry]:
        """Get a snapshot of all relays in registration order."""
        with self._lock:
            return list(self._nodes.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._nodes)
