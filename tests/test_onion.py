"""
Tests for the onion wire format: layer codec, construction and peeling.

Verifies:
  - Build N layers, peel N layers, recover the original payload
  - Each relay learns only its next hop
  - Tampering, wrong keys and bad framing are always rejected
"""

import pytest

from onionrelay.crypto import symmetric
from onionrelay.crypto.keys import wrap_key
from onionrelay.crypto.onion import (
    CircuitHop,
    PeelState,
    build_layer,
    split_layer,
    build_onion_message,
    peel_layer,
)
from onionrelay.crypto.primitives import b64encode, b64decode
from onionrelay.errors import (
    AddressOverflow,
    DecryptionFailure,
    InsufficientRelays,
    MalformedLayer,
    MalformedMessage,
    MalformedToken,
)


B64_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"


def is_wrapped_layer(blob: str) -> bool:
    """True if blob looks like wrapped_key:iv:ciphertext."""
    parts = blob.split(":")
    if len(parts) != 3:
        return False
    try:
        return all(b64decode(part) for part in parts)
    except ValueError:
        return False


def flip(blob: str, group: int, index: int = 0) -> str:
    """Flip one bit inside one of the three base64 groups of a blob."""
    parts = blob.split(":")
    data = bytearray(b64decode(parts[group]))
    data[index] ^= 0x01
    parts[group] = b64encode(bytes(data))
    return ":".join(parts)


def make_blob(key_pair, layer: bytes) -> str:
    """Hand-build one layer around arbitrary plaintext."""
    key = symmetric.generate_key()
    token = symmetric.encrypt(key, layer)
    return wrap_key(symmetric.export_key(key), key_pair.public_key) + ":" + token


class TestLayerCodec:

    def test_build_layer(self):
        assert build_layer(6002, b"abc") == b"0000006002abc"

    def test_build_layer_bounds(self):
        assert build_layer(0, b"") == b"0000000000"
        assert build_layer(9999999999, b"x") == b"9999999999x"

    @pytest.mark.parametrize("address", [10 ** 10, 12345678901, -1])
    def test_build_layer_overflow(self, address):
        with pytest.raises(AddressOverflow):
            build_layer(address, b"payload")

    def test_build_layer_rejects_non_integer(self):
        with pytest.raises(AddressOverflow):
            build_layer("6002", b"payload")

    def test_split_layer(self):
        assert split_layer(b"0000005000hello") == (5000, b"hello")

    def test_split_layer_payload_is_opaque(self):
        payload = b"1234:5678:\x00\xff"
        assert split_layer(build_layer(42, payload)) == (42, payload)

    def test_split_layer_empty_payload(self):
        assert split_layer(b"0000000007") == (7, b"")

    @pytest.mark.parametrize("layer", [
        b"",
        b"000000500",
        b"00000a5000hello",
        b"-000005000hello",
        b"+000005000hello",
        b" 000005000hello",
    ])
    def test_split_layer_malformed(self, layer):
        with pytest.raises(MalformedLayer):
            split_layer(layer)


class TestBuildOnion:

    def test_blob_is_wrapped_layer(self, circuit):
        blob = build_onion_message(b"hello", 5000, circuit)
        assert is_wrapped_layer(blob)

    def test_insufficient_relays(self, circuit, monkeypatch):
        calls = []
        monkeypatch.setattr(symmetric, "encrypt", lambda *a: calls.append(a))

        for hops in (circuit[:2], circuit[:1], []):
            with pytest.raises(InsufficientRelays):
                build_onion_message(b"hello", 5000, hops)

        assert calls == []

    def test_destination_overflow_aborts_before_encryption(self, circuit, monkeypatch):
        calls = []
        monkeypatch.setattr(symmetric, "encrypt", lambda *a: calls.append(a))

        with pytest.raises(AddressOverflow):
            build_onion_message(b"hello", 10 ** 10, circuit)
        assert calls == []

    def test_hop_address_overflow(self, relay_keys, circuit):
        bad = list(circuit)
        bad[2] = CircuitHop(node_id=3, public_key=relay_keys[2].public_key, address=10 ** 11)
        with pytest.raises(AddressOverflow):
            build_onion_message(b"hello", 5000, bad)

    def test_fresh_keys_per_message(self, circuit):
        assert build_onion_message(b"hello", 5000, circuit) != build_onion_message(b"hello", 5000, circuit)

    def test_public_key_text_hops(self, relay_keys):
        hops = [
            CircuitHop(node_id=i, public_key=relay_keys[i].public_key_text, address=7000 + i)
            for i in range(3)
        ]
        blob = build_onion_message("hi", 5000, hops)
        assert peel_layer(blob, relay_keys[0].private_key).next_hop == 7001


class TestPeeling:

    def test_concrete_scenario(self, relay_keys, circuit):
        """hello -> 5000 via R1(6001), R2(6002), R3(6003)."""
        blob = build_onion_message("hello", 5000, circuit)

        first = peel_layer(blob, relay_keys[0].private_key)
        assert f"{first.next_hop:010d}" == "0000006002"
        assert is_wrapped_layer(first.payload.decode("ascii"))

        second = peel_layer(first.payload, relay_keys[1].private_key)
        assert f"{second.next_hop:010d}" == "0000006003"
        assert is_wrapped_layer(second.payload.decode("ascii"))

        third = peel_layer(second.payload, relay_keys[2].private_key)
        assert f"{third.next_hop:010d}" == "0000005000"
        assert third.payload == b"hello"

    def test_layer_count(self, relay_keys):
        hops = [
            CircuitHop(node_id=i, public_key=pair.public_key, address=6000 + i)
            for i, pair in enumerate(relay_keys)
        ]
        plaintext = b"five hops"
        payload = build_onion_message(plaintext, 5000, hops).encode("ascii")

        for k, pair in enumerate(relay_keys):
            assert is_wrapped_layer(payload.decode("ascii"))
            peeled = peel_layer(payload, pair.private_key)
            payload = peeled.payload
            expected_next = 5000 if k == len(hops) - 1 else hops[k + 1].address
            assert peeled.next_hop == expected_next

        assert payload == plaintext

    def test_binary_plaintext(self, relay_keys, circuit):
        plaintext = b"0000001234:\x00\xff:colons and digits"
        payload = build_onion_message(plaintext, 5000, circuit)
        for pair in relay_keys[:3]:
            payload = peel_layer(payload, pair.private_key).payload
        assert payload == plaintext

    def test_text_plaintext_is_utf8(self, relay_keys, circuit):
        payload = build_onion_message("héllo", 5000, circuit)
        for pair in relay_keys[:3]:
            payload = peel_layer(payload, pair.private_key).payload
        assert payload == "héllo".encode("utf-8")

    def test_wrong_relay(self, relay_keys, circuit):
        blob = build_onion_message(b"hello", 5000, circuit)
        for pair in relay_keys[1:]:
            with pytest.raises(DecryptionFailure):
                peel_layer(blob, pair.private_key)

    def test_out_of_order_peel(self, relay_keys, circuit):
        blob = build_onion_message(b"hello", 5000, circuit)
        inner = peel_layer(blob, relay_keys[0].private_key).payload
        with pytest.raises(DecryptionFailure):
            peel_layer(inner, relay_keys[2].private_key)

    @pytest.mark.parametrize("group,index", [
        (0, 0), (0, 128), (0, 255),     # wrapped key
        (1, 0), (1, 11),                # IV
        (2, 0), (2, 5), (2, -1),        # ciphertext and tag
    ])
    def test_tampering_detected(self, relay_keys, circuit, group, index):
        blob = build_onion_message(b"hello", 5000, circuit)
        with pytest.raises(DecryptionFailure):
            peel_layer(flip(blob, group, index), relay_keys[0].private_key)

    def test_every_character_edit_detected(self, relay_keys, circuit):
        """Changing any base64 character of the blob text is rejected."""
        blob = build_onion_message("hello", 5000, circuit)
        accepted = []

        for position, char in enumerate(blob):
            if char not in B64_ALPHABET:
                continue
            neighbour = B64_ALPHABET[B64_ALPHABET.index(char) ^ 1]
            edited = blob[:position] + neighbour + blob[position + 1:]
            try:
                peel_layer(edited, relay_keys[0].private_key)
            except DecryptionFailure:
                continue
            accepted.append(position)

        assert accepted == []

    def test_tampering_inner_layer(self, relay_keys, circuit):
        blob = build_onion_message(b"hello", 5000, circuit)
        inner = peel_layer(blob, relay_keys[0].private_key).payload.decode("ascii")
        with pytest.raises(DecryptionFailure):
            peel_layer(flip(inner, 2, 3), relay_keys[1].private_key)

    @pytest.mark.parametrize("blob", ["", "no separator at all", b"bytes without separator"])
    def test_missing_separator(self, relay_keys, blob):
        with pytest.raises(MalformedMessage):
            peel_layer(blob, relay_keys[0].private_key)

    def test_non_ascii_blob(self, relay_keys):
        with pytest.raises(MalformedMessage):
            peel_layer(b"\xff\xfe:abc", relay_keys[0].private_key)

    def test_token_without_separator(self, relay_keys):
        blob = make_blob(relay_keys[0], b"0000006002x")
        wrapped = blob.split(":")[0]
        with pytest.raises(MalformedToken):
            peel_layer(wrapped + ":bm8tc2VwYXJhdG9y", relay_keys[0].private_key)

    def test_layer_without_address(self, relay_keys):
        blob = make_blob(relay_keys[0], b"not an address")
        with pytest.raises(MalformedLayer):
            peel_layer(blob, relay_keys[0].private_key)

    def test_wrapped_key_of_wrong_length(self, relay_keys):
        key = symmetric.generate_key()
        token = symmetric.encrypt(key, b"0000006002x")
        short_key = b64encode(key[:16])
        blob = wrap_key(short_key, relay_keys[0].public_key) + ":" + token
        with pytest.raises(DecryptionFailure):
            peel_layer(blob, relay_keys[0].private_key)

    def test_state_trail(self, relay_keys, circuit):
        blob = build_onion_message(b"hello", 5000, circuit)
        states = []
        peel_layer(blob, relay_keys[0].private_key, on_state=states.append)
        assert states == [
            PeelState.RECEIVED,
            PeelState.UNWRAPPING_KEY,
            PeelState.DECRYPTING_LAYER,
            PeelState.ADDRESS_EXTRACTED,
        ]

    def test_state_trail_stops_at_failure(self, relay_keys, circuit):
        blob = build_onion_message(b"hello", 5000, circuit)
        states = []
        with pytest.raises(DecryptionFailure):
            peel_layer(blob, relay_keys[1].private_key, on_state=states.append)
        assert states == [PeelState.RECEIVED, PeelState.UNWRAPPING_KEY]
