"""
Transport Module

Delivery of onion payloads between node processes.
"""

from .http import HttpTransport

__all__ = [
    'HttpTransport',
]
