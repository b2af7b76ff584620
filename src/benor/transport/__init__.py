# src/benor/transport/__init__.py
"""
Transport Module - best-effort delivery between nodes
"""

from .base import Transport, TransportStats
from .http import HttpTransport, PeerSendError
from .local import InMemoryNetwork, LocalTransport, MessageDropped, UnknownPeerError

__all__ = [
    "Transport",
    "TransportStats",
    "HttpTransport",
    "PeerSendError",
    "InMemoryNetwork",
    "LocalTransport",
    "MessageDropped",
    "UnknownPeerError",
]
