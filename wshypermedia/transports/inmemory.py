"""
In-Memory Transport - Queue-backed transport for development and testing

No network. The "server" side feeds frames with ``feed()`` and reads
what the client sent from ``sent``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, AsyncIterator, List, Optional
import asyncio
import logging

from .base import Transport
from ..faults import WS_TRANSPORT_ERROR
from ..security import subprotocol_for

if TYPE_CHECKING:
    from ..config import HypermediaConfig

logger = logging.getLogger("wshypermedia.transports.inmemory")

_CLOSED = object()


class InMemoryTransport(Transport):
    """
    One in-memory session.

    Example:
        transport = InMemoryTransport()
        transport.feed("update|content|<p>Hi</p>")
        transport.drop()  # server closes
    """

    def __init__(self, subprotocol: Optional[str] = None):
        self._subprotocol = subprotocol
        self._queue: asyncio.Queue = asyncio.Queue()
        self.sent: List[str] = []
        self.closed = False

    @property
    def subprotocol(self) -> Optional[str]:
        return self._subprotocol

    # Server side

    def feed(self, frame: str) -> None:
        """Deliver a frame to the client."""
        self._queue.put_nowait(frame)

    def fail(self, exc: BaseException) -> None:
        """Make the session fail with ``exc`` after pending frames."""
        self._queue.put_nowait(exc)

    def drop(self) -> None:
        """Close the session from the server side."""
        self._queue.put_nowait(_CLOSED)

    # Client side

    async def send(self, data: str) -> None:
        if self.closed:
            raise WS_TRANSPORT_ERROR("send on closed transport")
        self.sent.append(data)

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> AsyncIterator[str]:
        return self._frames()

    async def _frames(self) -> AsyncIterator[str]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            if isinstance(item, BaseException):
                raise item
            yield item


class InMemoryTransportFactory:
    """
    Transport factory handing out ``InMemoryTransport`` sessions.

    Args:
        fail_connects: Number of initial handshakes to refuse
        subprotocol: Subprotocol the fake server negotiates. When None,
            the server echoes the one the client offers.
    """

    def __init__(self, fail_connects: int = 0, subprotocol: Optional[str] = None):
        self.fail_connects = fail_connects
        self.subprotocol = subprotocol
        self.refuse = False
        self.attempts = 0
        self.urls: List[str] = []
        self.transports: List[InMemoryTransport] = []

    @property
    def current(self) -> Optional[InMemoryTransport]:
        """Most recently opened session."""
        return self.transports[-1] if self.transports else None

    async def __call__(self, url: str, config: HypermediaConfig) -> InMemoryTransport:
        self.attempts += 1
        self.urls.append(url)

        if self.refuse or self.attempts <= self.fail_connects:
            raise ConnectionRefusedError(f"Connection refused: {url}")

        subprotocol = self.subprotocol
        if subprotocol is None and config.require_version:
            subprotocol = subprotocol_for(config.protocol_version)

        transport = InMemoryTransport(subprotocol=subprotocol)
        self.transports.append(transport)
        logger.debug(f"Opened in-memory session #{len(self.transports)} to {url}")
        return transport
