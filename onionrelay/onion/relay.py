"""
Relay Processing

Handles onion layer peeling at relays.

Relays:
1. Receive an onion blob
2. Unwrap their layer key and decrypt their layer
3. Hand the inner payload and next hop back for forwarding

Each blob is processed on its own; nothing carries over between messages.
"""

import logging
from typing import Iterable, List, Optional, Union
from dataclasses import dataclass, field
from enum import IntEnum

from ..crypto.keys import KeyPair
from ..crypto.onion import PeelState, peel_layer
from ..errors import (
    OnionRoutingError,
    DecryptionFailure,
)


logger = logging.getLogger("onionrelay.relay")


class ProcessingResult(IntEnum):
    """Result of relay processing."""
    FORWARD = 1          # Forward payload to next hop
    DROP_DECRYPT = 2     # Drop: key unwrap or layer decryption failed
    DROP_INVALID = 3     # Drop: framing invalid


@dataclass
class ProcessedPacket:
    """
    Result of processing one onion layer.
    """
    result: ProcessingResult

    # For FORWARD
    next_hop: Optional[int] = None
    payload: Optional[bytes] = None

    # State trail, RECEIVED first
    states: List[PeelState] = field(default_factory=list)

    # For DROP_*
    error: Optional[OnionRoutingError] = None

    @property
    def state(self) -> Optional[PeelState]:
        """Current state of the message."""
        return self.states[-1] if self.states else None

    @property
    def accepted(self) -> bool:
        return self.result == ProcessingResult.FORWARD

    def mark_forwarded(self) -> None:
        """Record that the transport accepted the payload."""
        self.states.append(PeelState.FORWARDED)

    def mark_rejected(self, error: OnionRoutingError) -> None:
        """Record a failure after peeling (e.g. forwarding)."""
        self.error = error
        self.states.append(PeelState.REJECTED)


class RelayProcessor:
    """
    Peels onion layers with the relay's key pair.

    Observers are called with (blob, packet) after every peel attempt,
    accepted or not. They are meant for inspection and must not alter the
    packet.

    Usage:
        processor = RelayProcessor(key_pair)
        packet = processor.process(blob)

        if packet.accepted:
            await transport.deliver(packet.next_hop, packet.payload)
    """

    def __init__(self, key_pair: KeyPair, observers: Iterable = ()):
        """
        Initialize relay processor.

        Args:
            key_pair: This relay's key pair (read-only)
            observers: Objects with an on_peel(blob, packet) method
        """
        self._key_pair = key_pair
        self._observers = list(observers)

    def add_observer(self, observer) -> None:
        """Attach an inspection observer."""
        self._observers.append(observer)

    def process(self, blob: Union[str, bytes]) -> ProcessedPacket:
        """
        Peel one layer.

        Args:
            blob: Incoming onion blob

        Returns:
            ProcessedPacket with result and relevant data
        """
        states: List[PeelState] = []

        try:
            peeled = peel_layer(blob, self._key_pair.private_key, on_state=states.append)
        except DecryptionFailure as e:
            # Same log line for wrong-relay and corrupted blobs
            logger.info("Rejected message: decryption failed")
            packet = ProcessedPacket(result=ProcessingResult.DROP_DECRYPT, error=e)
        except OnionRoutingError as e:
            logger.info(f"Rejected message: {e}")
            packet = ProcessedPacket(result=ProcessingResult.DROP_INVALID, error=e)
        else:
            packet = ProcessedPacket(
                result=ProcessingResult.FORWARD,
                next_hop=peeled.next_hop,
                payload=peeled.payload,
            )

        if not packet.accepted:
            states.append(PeelState.REJECTED)
        packet.states = states

        for observer in self._observers:
            observer.on_peel(blob, packet)

        return packet
