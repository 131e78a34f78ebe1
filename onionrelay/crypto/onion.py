"""
Onion Routing Cryptography

Implements layered encryption for an N-hop circuit (N >= 3).

Onion Structure (one layer):
    base64(wrapped_key) ":" base64(iv) ":" base64(ciphertext)

    wrapped_key: layer key encrypted under the hop's RSA public key
    ciphertext:  AES-GCM encryption of the plaintext layer

Plaintext layer:
    next_hop (10 ASCII digits, zero-padded) || inner payload

The inner payload is the next hop's onion blob, or the original message
for the last hop. A relay splits a blob on the FIRST colon only; the token
after it carries its own separator.

SECURITY NOTES:
- Each layer uses an independent single-use key
- A relay learns only the address of the next hop
- Losing any layer key makes the message unrecoverable
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence, Tuple, Union

from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from .. import ADDRESS_WIDTH, MIN_CIRCUIT_LENGTH
from ..errors import (
    InvalidKey,
    DecryptionFailure,
    MalformedLayer,
    MalformedMessage,
    AddressOverflow,
    InsufficientRelays,
)
from .keys import PublicKeyLike, wrap_key, unwrap_key
from .primitives import FIELD_SEPARATOR
from . import symmetric


# Largest address that fits the address field
MAX_ADDRESS = 10 ** ADDRESS_WIDTH - 1


class PeelState(Enum):
    """Per-message state at a relay."""
    RECEIVED = "received"
    UNWRAPPING_KEY = "unwrapping_key"
    DECRYPTING_LAYER = "decrypting_layer"
    ADDRESS_EXTRACTED = "address_extracted"
    FORWARDED = "forwarded"
    REJECTED = "rejected"


@dataclass(frozen=True)
class CircuitHop:
    """
    One relay on a circuit.

    Built by the sender from a directory entry; lives only while one
    message is constructed.
    """
    node_id: int
    public_key: PublicKeyLike   # RSA public key object or base64 SPKI text
    address: int                # Where the previous hop forwards to


@dataclass(frozen=True)
class PeeledLayer:
    """Result of removing one layer."""
    next_hop: int       # Address to forward to
    payload: bytes      # Inner blob, or the plaintext after the last hop


# ===== Layer codec =====

def check_address(address: int) -> int:
    """
    Check that an address fits the fixed-width field.

    Raises:
        AddressOverflow: If the address is negative or too wide
    """
    if not isinstance(address, int) or isinstance(address, bool):
        raise AddressOverflow(f"Address must be an integer, got {type(address).__name__}")
    if address < 0 or address > MAX_ADDRESS:
        raise AddressOverflow(
            f"Address {address} does not fit in {ADDRESS_WIDTH} digits"
        )
    return address


def build_layer(next_hop: int, inner: bytes) -> bytes:
    """
    Prefix a payload with its next-hop address.

    Args:
        next_hop: Address of the next hop or the final recipient
        inner: Payload to carry

    Returns:
        bytes: 10-digit address followed by the payload

    Raises:
        AddressOverflow: If next_hop does not fit the address field
    """
    check_address(next_hop)
    return f"{next_hop:0{ADDRESS_WIDTH}d}".encode("ascii") + inner


def split_layer(layer: bytes) -> Tuple[int, bytes]:
    """
    Split a plaintext layer into next-hop address and payload.

    Raises:
        MalformedLayer: If the address field is short or not all digits
    """
    prefix = layer[:ADDRESS_WIDTH]
    if len(prefix) < ADDRESS_WIDTH or not prefix.isdigit():
        raise MalformedLayer("Layer does not start with a valid address")

    return int(prefix), layer[ADDRESS_WIDTH:]


# ===== Sender =====

def build_onion_message(
    plaintext: Union[bytes, str],
    destination: int,
    circuit: Sequence[CircuitHop],
) -> str:
    """
    Construct an onion message for a circuit.

    Construction order (inside-out), for hop i from last to first:
    1. Prefix the payload with the next address (destination for the last
       hop, address of hop i+1 otherwise)
    2. Encrypt the layer under a fresh key
    3. Wrap the key for hop i
    4. The payload becomes wrapped_key ":" token

    Args:
        plaintext: Message for the final recipient (str is UTF-8 encoded)
        destination: Address of the final recipient
        circuit: Ordered hops; circuit[0] receives the result

    Returns:
        str: Onion blob for circuit[0]

    Raises:
        InsufficientRelays: If the circuit has fewer than 3 hops
        AddressOverflow: If any address does not fit the address field
        InvalidKey: If a hop's public key is malformed
    """
    if len(circuit) < MIN_CIRCUIT_LENGTH:
        raise InsufficientRelays(
            f"Circuit needs at least {MIN_CIRCUIT_LENGTH} relays, got {len(circuit)}"
        )

    # Validate every address before any layer is built
    check_address(destination)
    for hop in circuit:
        check_address(hop.address)

    if isinstance(plaintext, str):
        plaintext = plaintext.encode("utf-8")

    payload = plaintext
    last = len(circuit) - 1

    for i in range(last, -1, -1):
        next_hop = destination if i == last else circuit[i + 1].address

        layer = build_layer(next_hop, payload)
        key = symmetric.generate_key()
        token = symmetric.encrypt(key, layer)
        wrapped = wrap_key(symmetric.export_key(key), circuit[i].public_key)

        payload = (wrapped + FIELD_SEPARATOR + token).encode("ascii")

    return payload.decode("ascii")


# ===== Relay =====

def peel_layer(
    blob: Union[str, bytes],
    private_key: RSAPrivateKey,
    on_state: Optional[Callable[[PeelState], None]] = None,
) -> PeeledLayer:
    """
    Remove exactly one layer from an onion blob.

    Args:
        blob: Incoming onion blob
        private_key: This relay's private key
        on_state: Optional callback invoked as each peel state is entered

    Returns:
        PeeledLayer with the next-hop address and the outgoing payload

    Raises:
        MalformedMessage: If the blob has no wrapped-key separator
        DecryptionFailure: If this relay is not the intended hop or the
            blob is corrupted
        MalformedToken: If the token has no IV separator
        MalformedLayer: If the decrypted layer has no valid address
    """
    def enter(state: PeelState) -> None:
        if on_state is not None:
            on_state(state)

    enter(PeelState.RECEIVED)

    if isinstance(blob, bytes):
        try:
            blob = blob.decode("ascii")
        except UnicodeDecodeError:
            raise MalformedMessage("Onion blob is not ASCII")

    wrapped, sep, token = blob.partition(FIELD_SEPARATOR)
    if not sep:
        raise MalformedMessage("Onion blob has no key separator")

    enter(PeelState.UNWRAPPING_KEY)
    key_text = unwrap_key(wrapped, private_key)
    try:
        key = symmetric.import_key(key_text)
    except InvalidKey:
        raise DecryptionFailure("Key unwrap failed")

    enter(PeelState.DECRYPTING_LAYER)
    layer = symmetric.decrypt(key, token)

    next_hop, payload = split_layer(layer)
    enter(PeelState.ADDRESS_EXTRACTED)

    return PeeledLayer(next_hop=next_hop, payload=payload)
