"""
Transports Package - Duplex text channels for the hypermedia client
"""

from .base import Transport, TransportFactory
from .inmemory import InMemoryTransport, InMemoryTransportFactory
from .websocket import WebSocketTransport

__all__ = [
    "Transport",
    "TransportFactory",
    "InMemoryTransport",
    "InMemoryTransportFactory",
    "WebSocketTransport",
]
