"""
Inspection Observers

Debug-only records of the last message a node handled. They hang off the
processing path as observers and are only created when inspection is
enabled in the configuration; the protocol never reads them.
"""

import threading
from typing import List, Optional, Union

from .relay import ProcessedPacket


class MessageLog:
    """
    Remembers the last blob a relay received and what it peeled to.

    Attach with RelayProcessor.add_observer().
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._last_encrypted: Optional[str] = None
        self._last_decrypted: Optional[str] = None
        self._last_destination: Optional[int] = None

    def on_peel(self, blob: Union[str, bytes], packet: ProcessedPacket) -> None:
        if isinstance(blob, bytes):
            blob = blob.decode("ascii", errors="replace")

        with self._lock:
            self._last_encrypted = blob
            if packet.accepted:
                self._last_decrypted = packet.payload.decode("utf-8", errors="replace")
                self._last_destination = packet.next_hop

    @property
    def last_received_encrypted(self) -> Optional[str]:
        with self._lock:
            return self._last_encrypted

    @property
    def last_received_decrypted(self) -> Optional[str]:
        with self._lock:
            return self._last_decrypted

    @property
    def last_destination(self) -> Optional[int]:
        with self._lock:
            return self._last_destination


class UserLog:
    """Remembers the last message a user sent and received, and the circuit used."""

    def __init__(self):
        self._lock = threading.Lock()
        self._last_received: Optional[str] = None
        self._last_sent: Optional[str] = None
        self._last_circuit: List[int] = []

    def on_received(self, message: str) -> None:
        with self._lock:
            self._last_received = message

    def on_sent(self, message: str, circuit: List[int]) -> None:
        with self._lock:
            self._last_sent = message
            self._last_circuit = list(circuit)

    @property
    def last_received(self) -> Optional[str]:
        with self._lock:
            return self._last_received

    @property
    def last_sent(self) -> Optional[str]:
        with self._lock:
            return self._last_sent

    @property
    def last_circuit(self) -> List[int]:
        with self._lock:
            return list(self._last_circuit)
