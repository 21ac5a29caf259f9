"""
WebSocket Transport - ``websockets`` client session behind the Transport protocol
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, AsyncIterator, Optional
import logging

import websockets
from websockets.exceptions import ConnectionClosedOK

from .base import Transport
from ..security import subprotocol_for

if TYPE_CHECKING:
    from ..config import HypermediaConfig

logger = logging.getLogger("wshypermedia.transports.websocket")


class WebSocketTransport(Transport):
    """
    Client session over a real WebSocket.

    Binary frames are decoded as UTF-8; the wire protocol is text only.
    Message size limits are enforced by the parser, so the library limit
    is disabled.
    """

    def __init__(self, websocket: Any):
        self._ws = websocket
        self._closed = False

    @classmethod
    async def open(cls, url: str, config: HypermediaConfig) -> WebSocketTransport:
        """
        Perform the opening handshake.

        When ``require_version`` is set the client offers exactly one
        subprotocol, ``wshm.v<protocol_version>``.
        """
        subprotocols = None
        if config.require_version:
            subprotocols = [subprotocol_for(config.protocol_version)]

        websocket = await websockets.connect(url, subprotocols=subprotocols, max_size=None)
        logger.debug(f"Handshake complete: {url} (subprotocol={websocket.subprotocol})")
        return cls(websocket)

    @property
    def subprotocol(self) -> Optional[str]:
        return self._ws.subprotocol

    async def send(self, data: str) -> None:
        await self._ws.send(data)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._ws.close()

    def __aiter__(self) -> AsyncIterator[str]:
        return self._frames()

    async def _frames(self) -> AsyncIterator[str]:
        try:
            async for message in self._ws:
                if isinstance(message, bytes):
                    message = message.decode("utf-8", errors="replace")
                yield message
        except ConnectionClosedOK:
            return
