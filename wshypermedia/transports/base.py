"""
Transport Base - Protocol for the duplex text channel under a connection

A transport is one open WebSocket session. ``ConnectionManager`` opens a
new transport per connection attempt through a factory and never reuses
a closed one.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, AsyncIterator, Awaitable, Callable, Optional, Protocol

if TYPE_CHECKING:
    from ..config import HypermediaConfig


class Transport(Protocol):
    """
    Transport protocol.

    Provides:
    - text frame delivery (async iteration)
    - text frame sending
    - close (idempotent)

    Iteration ends when the peer closes cleanly and raises when the
    session fails.

    Implementations:
    - WebSocketTransport: ``websockets`` client session
    - InMemoryTransport: Queue-backed (dev/testing)
    """

    @property
    def subprotocol(self) -> Optional[str]:
        """Subprotocol negotiated during the handshake, if any."""
        ...

    async def send(self, data: str) -> None:
        """
        Send one text frame.

        Args:
            data: Frame text
        """
        ...

    async def close(self) -> None:
        """Close the session. Safe to call more than once."""
        ...

    def __aiter__(self) -> AsyncIterator[str]:
        ...


# Opens a transport for (url, config); raises on handshake failure.
TransportFactory = Callable[[str, "HypermediaConfig"], Awaitable[Transport]]
