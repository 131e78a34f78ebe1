"""
Onion Message Construction

Builds onion messages at the sender.

The sender:
1. Fetches the relay list from the directory
2. Picks circuit_length distinct relays uniformly at random
3. Constructs nested encrypted layers (inside-out)
4. Hands the blob to the first relay
"""

import random
import logging
from typing import List, Optional, Sequence, Union
from dataclasses import dataclass

from .. import DEFAULT_CIRCUIT_LENGTH, MIN_CIRCUIT_LENGTH
from ..crypto.onion import CircuitHop, build_onion_message
from ..directory.registry import DirectoryEntry
from ..errors import InsufficientRelays


logger = logging.getLogger("onionrelay.onion")


@dataclass
class OutboundMessage:
    """
    An onion message ready to send.
    """
    blob: str                   # Onion blob for the first hop
    circuit: List[CircuitHop]   # Hops, first to last
    destination: int            # Final recipient address

    @property
    def entry_address(self) -> int:
        """Address of the first relay."""
        return self.circuit[0].address

    @property
    def node_ids(self) -> List[int]:
        """Node IDs of the circuit, first to last."""
        return [hop.node_id for hop in self.circuit]


class OnionBuilder:
    """
    Builds onion messages for sending.

    Relay selection is uniform random without replacement. There is no
    weighting and no memory of earlier circuits.

    Usage:
        builder = OnionBuilder()
        message = builder.build_message(b"Hello!", 3002, entries)
        await transport.deliver(message.entry_address, message.blob.encode())
    """

    def __init__(
        self,
        circuit_length: int = DEFAULT_CIRCUIT_LENGTH,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize onion builder.

        Args:
            circuit_length: Number of relays per circuit (at least 3)
            rng: Random source for relay selection

        Raises:
            ValueError: If circuit_length is below the minimum
        """
        if circuit_length < MIN_CIRCUIT_LENGTH:
            raise ValueError(
                f"Circuit length must be at least {MIN_CIRCUIT_LENGTH}, got {circuit_length}"
            )
        self._circuit_length = circuit_length
        self._rng = rng or random.SystemRandom()

    @property
    def circuit_length(self) -> int:
        return self._circuit_length

    def select_circuit(self, entries: Sequence[DirectoryEntry]) -> List[CircuitHop]:
        """
        Pick the relays for one message.

        Args:
            entries: Relays currently known to the directory

        Returns:
            List of hops, first to last

        Raises:
            InsufficientRelays: If fewer relays than circuit_length are known
        """
        if len(entries) < self._circuit_length:
            raise InsufficientRelays(
                f"Need {self._circuit_length} relays, directory has {len(entries)}"
            )

        chosen = self._rng.sample(list(entries), self._circuit_length)
        return [
            CircuitHop(
                node_id=entry.node_id,
                public_key=entry.public_key,
                address=entry.address,
            )
            for entry in chosen
        ]

    def build_message(
        self,
        plaintext: Union[bytes, str],
        destination: int,
        entries: Sequence[DirectoryEntry],
    ) -> OutboundMessage:
        """
        Select a circuit and build the onion message.

        Args:
            plaintext: Message for the recipient
            destination: Recipient address
            entries: Relays currently known to the directory

        Returns:
            OutboundMessage with the blob and the chosen circuit

        Raises:
            InsufficientRelays: If too few relays are known
            AddressOverflow: If an address does not fit the address field
            InvalidKey: If a relay's published key is malformed
        """
        circuit = self.select_circuit(entries)
        blob = build_onion_message(plaintext, destination, circuit)

        logger.debug(
            f"Built {len(circuit)}-hop onion via {[hop.node_id for hop in circuit]} "
            f"({len(blob)} bytes)"
        )
        return OutboundMessage(blob=blob, circuit=circuit, destination=destination)
