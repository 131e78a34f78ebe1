"""
onion-relay - Minimal Onion Routing Overlay

A set of relay nodes that forward messages wrapped in nested layers of
encryption. Each relay removes exactly one layer and learns only the
address of the next hop.

This package contains:
- crypto/     : Key handling, layer ciphers and the onion wire format
- onion/      : Circuit construction (sender) and peeling (relay)
- directory/  : Relay directory and its client
- transport/  : HTTP delivery between nodes
- services/   : HTTP apps for registry, relay and user nodes
"""

__version__ = "0.1.0"
__author__ = "onion-relay contributors"

# Core constants
ADDRESS_WIDTH = 10  # decimal digits
MIN_CIRCUIT_LENGTH = 3
DEFAULT_CIRCUIT_LENGTH = 3
