"""
Onion Routing Module

Components:
- layers.py: Circuit selection and onion construction at the sender
- relay.py: Layer peeling at relays
- observers.py: Optional last-message observers for debugging
"""

from .layers import (
    OnionBuilder,
    OutboundMessage,
)

from .relay import (
    RelayProcessor,
    ProcessingResult,
    ProcessedPacket,
)

from .observers import (
    MessageLog,
    UserLog,
)

__all__ = [
    # Layers
    'OnionBuilder',
    'OutboundMessage',
    # Relay
    'RelayProcessor',
    'ProcessingResult',
    'ProcessedPacket',
    # Inspection
    'MessageLog',
    'UserLog',
]
