"""
Shared fixtures: relay key pairs and in-memory collaborators.
"""

import pytest

from onionrelay.config import Config
from onionrelay.crypto.keys import generate_key_pair
from onionrelay.crypto.onion import CircuitHop
from onionrelay.directory.registry import DirectoryEntry
from onionrelay.errors import ForwardingFailure


class RecordingTransport:
    """Transport that records deliveries instead of sending them."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.deliveries = []

    async def deliver(self, address, payload):
        if self.fail:
            raise ForwardingFailure(f"Delivery to {address} failed: unreachable")
        self.deliveries.append((address, payload))

    async def aclose(self):
        pass


class StaticDirectory:
    """Directory backed by a list."""

    def __init__(self, entries=()):
        self.entries = list(entries)
        self.registered = []

    async def register(self, entry):
        self.registered.append(entry)
        self.entries.append(entry)

    async def get_nodes(self):
        return list(self.entries)

    async def aclose(self):
        pass


@pytest.fixture(scope="session")
def relay_keys():
    """Five relay key pairs (RSA generation is slow, so share them)."""
    return [generate_key_pair() for _ in range(5)]


@pytest.fixture
def config():
    """Config with relay N on port 6000 + N and user N on 5000 + N."""
    config = Config()
    config.network.base_relay_port = 6000
    config.network.base_user_port = 5000
    return config


@pytest.fixture
def circuit(relay_keys):
    """Relays R1, R2, R3 on ports 6001, 6002, 6003."""
    return [
        CircuitHop(node_id=i + 1, public_key=relay_keys[i].public_key, address=6001 + i)
        for i in range(3)
    ]


@pytest.fixture
def directory_entries(relay_keys):
    """Directory entries for relays 1..5 on ports 6001..6005."""
    return [
        DirectoryEntry(node_id=i + 1, public_key=pair.public_key_text, address=6001 + i)
        for i, pair in enumerate(relay_keys)
    ]


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def failing_transport():
    return RecordingTransport(fail=True)


@pytest.fixture
def make_directory():
    """Factory for StaticDirectory instances."""
    return StaticDirectory
