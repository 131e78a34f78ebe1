"""
Services Module

HTTP apps for the three node kinds: registry, relay and user.
"""

from .registry import create_registry_app
from .relay import RelayNode, create_relay_app
from .user import UserNode, create_user_app

__all__ = [
    'create_registry_app',
    'RelayNode',
    'create_relay_app',
    'UserNode',
    'create_user_app',
]
