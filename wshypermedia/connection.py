"""
Connection Manager - WebSocket lifecycle for the hypermedia runtime

Owns one transport at a time, the connection state machine and the
reconnection timer:

    CONNECTING -> OPEN -> CLOSING -> CLOSED
                                       |
    CONNECTING <---- (reconnect) ------+

Inbound frames go through MessageParser then ActionRegistry inside a
failure boundary; one bad frame never stops the receive loop.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Optional, Set, Union
import asyncio
import inspect
import logging

from .actions import ActionHandler, ActionRegistry, DispatchResult, Verb
from .config import HypermediaConfig
from .faults import (
    Fault,
    SecurityFault,
    Severity,
    WS_CONNECT_FAILED,
    WS_INVALID_URL,
    WS_NOT_CONNECTED,
    WS_PROTOCOL_VERSION_MISMATCH,
    WS_RECONNECT_EXHAUSTED,
    WS_TRANSPORT_ERROR,
)
from .parser import MessageParser, create_message
from .renderers.base import Renderer
from .security import SecurityValidator, validate_protocol_version, validate_url
from .transports.base import Transport, TransportFactory
from .transports.websocket import WebSocketTransport

logger = logging.getLogger("wshypermedia.connection")

# Upper bound for a single reconnect delay (ms)
MAX_RECONNECT_DELAY = 30000

_SEVERITY_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.WARN: logging.WARNING,
    Severity.ERROR: logging.ERROR,
    Severity.FATAL: logging.CRITICAL,
}


class ConnectionState(str, Enum):
    """Connection lifecycle state."""
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"

    @property
    def ready_state(self) -> int:
        """Numeric WebSocket ``readyState`` (0-3)."""
        return _READY_STATES[self]


_READY_STATES = {
    ConnectionState.CONNECTING: 0,
    ConnectionState.OPEN: 1,
    ConnectionState.CLOSING: 2,
    ConnectionState.CLOSED: 3,
}

_TRANSITIONS = {
    ConnectionState.CONNECTING: {ConnectionState.OPEN, ConnectionState.CLOSING, ConnectionState.CLOSED},
    ConnectionState.OPEN: {ConnectionState.CLOSING, ConnectionState.CLOSED},
    ConnectionState.CLOSING: {ConnectionState.CLOSED},
    ConnectionState.CLOSED: {ConnectionState.CONNECTING},
}


def backoff_delay(attempt: int, base_delay: int, max_delay: int = MAX_RECONNECT_DELAY) -> int:
    """
    Delay before reconnect attempt ``attempt`` (1-indexed), in milliseconds.

    ``base_delay * 2 ** (attempt - 1)``, capped at ``max_delay``.
    """
    if attempt < 1:
        raise ValueError("attempt is 1-indexed")
    return min(base_delay * 2 ** (attempt - 1), max_delay)


class ConnectionManager:
    """
    Hypermedia client bound to one URL and one renderer.

    Connecting starts as soon as the manager is constructed inside a
    running event loop. Constructed outside one (or with
    ``connect=False``), it stays in CONNECTING until ``connect()`` or
    ``async with``.

    Example:
        async with ConnectionManager("wss://example.com/ws", renderer) as client:
            await client.wait_open()
            await client.send("subscribe|room|123")

    Raises:
        ConnectionFault: WS_INVALID_URL when ``url`` is not ws:// or wss://
    """

    def __init__(
        self,
        url: str,
        renderer: Renderer,
        config: Optional[HypermediaConfig] = None,
        *,
        transport_factory: Optional[TransportFactory] = None,
        connect: bool = True,
        **options: Any,
    ):
        config = config or HypermediaConfig()
        if options:
            config = config.with_options(**options)
        self.config = config

        self.validator = SecurityValidator.from_config(config)
        if not validate_url(url):
            fault = WS_INVALID_URL(url)
            self.validator.report(fault)
            raise fault

        self.url = url
        self.renderer = renderer
        self.parser = MessageParser.from_config(config)
        self.registry = ActionRegistry(renderer, self.validator, config.input_sanitizers)
        self._transport_factory = transport_factory or WebSocketTransport.open

        self._state = ConnectionState.CONNECTING
        self._attempts = 0
        self._user_closed = False
        self._transport: Optional[Transport] = None
        self._task: Optional[asyncio.Task] = None
        self._reconnect_handle: Optional[asyncio.TimerHandle] = None
        self._callback_tasks: Set[asyncio.Future] = set()
        self._opened = asyncio.Event()
        self._terminal = asyncio.Event()

        if connect:
            try:
                asyncio.get_running_loop()
            except RuntimeError:
                logger.debug(f"No running loop, connection to {url} deferred")
            else:
                self.connect()

    # ========================================================================
    # State
    # ========================================================================

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def ready_state(self) -> int:
        return self._state.ready_state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.OPEN

    @property
    def reconnect_attempts(self) -> int:
        return self._attempts

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_handle is not None

    def _set_state(self, state: ConnectionState) -> None:
        if state is self._state:
            return
        if state not in _TRANSITIONS[self._state]:
            raise RuntimeError(f"Invalid state transition {self._state.value} -> {state.value}")
        logger.debug(f"{self.url}: {self._state.value} -> {state.value}")
        self._state = state

    # ========================================================================
    # Lifecycle
    # ========================================================================

    def connect(self) -> Optional[asyncio.Task]:
        """
        Start connecting. Must be called from a running event loop.

        Cancels any pending reconnect and resets the attempt counter.
        Returns the connection task (the existing one if a connection
        is already in progress).
        """
        if self._task is not None and not self._task.done():
            return self._task
        if self._state is ConnectionState.CLOSING:
            logger.warning(f"connect() ignored while closing {self.url}")
            return None

        self._cancel_reconnect()
        self._user_closed = False
        self._attempts = 0
        self._terminal.clear()
        self._set_state(ConnectionState.CONNECTING)
        self._task = asyncio.get_running_loop().create_task(self._run())
        return self._task

    async def disconnect(self) -> None:
        """
        Close the connection and stop reconnecting. Idempotent.

        Handlers already dispatched keep running.
        """
        if self._user_closed and self._state is ConnectionState.CLOSED:
            return

        self._user_closed = True
        self._cancel_reconnect()

        if self._state in (ConnectionState.CONNECTING, ConnectionState.OPEN):
            self._set_state(ConnectionState.CLOSING)

        task, self._task = self._task, None
        transport = self._transport
        if transport is not None:
            await self._close_transport(transport)
        elif task is not None and not task.done():
            task.cancel()

        if task is not None and task is not asyncio.current_task():
            try:
                await task
            except asyncio.CancelledError:
                pass

        if self._state is not ConnectionState.CLOSED:
            self._set_state(ConnectionState.CLOSED)
            logger.info(f"Disconnected from {self.url}")
            self._fire(self.config.on_disconnect)

        self._opened.clear()
        self._terminal.set()

    async def _run(self) -> None:
        try:
            transport = await self._transport_factory(self.url, self.config)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._report(WS_CONNECT_FAILED(self.url, str(e) or type(e).__name__))
            self._on_closed()
            return

        if self._user_closed:
            await self._close_transport(transport)
            return

        if self.config.require_version and not validate_protocol_version(
            transport.subprotocol, self.config.protocol_version
        ):
            self._report(WS_PROTOCOL_VERSION_MISMATCH(self.config.protocol_version, transport.subprotocol))
            await self._close_transport(transport)
            self._on_closed()
            return

        self._transport = transport
        self._set_state(ConnectionState.OPEN)
        self._attempts = 0
        logger.info(f"Connected to {self.url}")
        self._opened.set()
        self._fire(self.config.on_connect)

        try:
            async for frame in transport:
                self.handle_frame(frame)
        except Exception as e:
            if not self._user_closed:
                self._report(WS_TRANSPORT_ERROR(str(e) or type(e).__name__))
        finally:
            self._transport = None
            self._opened.clear()
            await self._close_transport(transport)

        if not self._user_closed:
            self._on_closed()

    def _on_closed(self) -> None:
        """Unexpected close or failed attempt: reconnect or give up."""
        self._set_state(ConnectionState.CLOSED)
        logger.info(f"Connection to {self.url} closed")
        self._fire(self.config.on_disconnect)

        if self.config.auto_reconnect and self._attempts < self.config.max_reconnect_attempts:
            self._schedule_reconnect()
            return

        if self.config.auto_reconnect:
            self._report(WS_RECONNECT_EXHAUSTED(self._attempts))
        self._terminal.set()

    def _schedule_reconnect(self) -> None:
        self._attempts += 1
        delay = backoff_delay(self._attempts, self.config.reconnect_delay)
        logger.info(
            f"Reconnecting to {self.url} in {delay}ms "
            f"(attempt {self._attempts}/{self.config.max_reconnect_attempts})"
        )
        loop = asyncio.get_running_loop()
        self._reconnect_handle = loop.call_later(delay / 1000, self._reconnect_due)

    def _reconnect_due(self) -> None:
        self._reconnect_handle = None
        if self._user_closed:
            return
        self._set_state(ConnectionState.CONNECTING)
        self._task = asyncio.get_running_loop().create_task(self._run())

    def _cancel_reconnect(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None
            logger.debug(f"Pending reconnect to {self.url} cancelled")

    async def _close_transport(self, transport: Transport) -> None:
        try:
            await transport.close()
        except Exception as e:
            logger.debug(f"Error closing transport: {e}")

    async def wait_open(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until the connection is OPEN.

        Returns:
            True if open; False on timeout or when the connection
            reached its terminal CLOSED state first
        """
        if self._state is ConnectionState.OPEN:
            return True

        waiters = {
            asyncio.ensure_future(self._opened.wait()),
            asyncio.ensure_future(self._terminal.wait()),
        }
        try:
            await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in waiters:
                waiter.cancel()
        return self._state is ConnectionState.OPEN

    async def wait_closed(self) -> None:
        """Wait for the terminal CLOSED state (no reconnect pending)."""
        await self._terminal.wait()

    async def __aenter__(self) -> ConnectionManager:
        if self._task is None and self._state is ConnectionState.CONNECTING:
            self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()

    # ========================================================================
    # Frames
    # ========================================================================

    def handle_frame(self, frame: str) -> Optional[DispatchResult]:
        """
        Parse and dispatch one inbound frame, then pass it to ``on_message``.

        Frames over the size or part limits are dropped before dispatch.

        Returns:
            DispatchResult, or None when the frame was dropped
        """
        try:
            message = self.parser.parse(frame)
        except SecurityFault as fault:
            self.validator.report(fault)
            return None

        result = None
        try:
            result = self.registry.dispatch(message)
        except Exception as e:
            logger.error(f"Dispatch of {message.verb!r} failed: {e}", exc_info=True)

        self._fire(self.config.on_message, frame)
        return result

    async def send(self, action: str) -> bool:
        """
        Send one raw frame.

        Returns:
            False (with a warning) when the connection is not open
        """
        transport = self._transport
        if self._state is not ConnectionState.OPEN or transport is None:
            self._log_fault(WS_NOT_CONNECTED(self._state.value))
            return False

        try:
            await transport.send(action)
        except Exception as e:
            self._report(WS_TRANSPORT_ERROR(str(e) or type(e).__name__))
            return False
        return True

    async def send_escaped(self, verb: str, noun: str, subject: str = "", *options: str) -> bool:
        """Send a message whose subject is bracketed by the escape character."""
        return await self.send(self.parser.create_escaped_message(verb, noun, subject, *options))

    @staticmethod
    def create_message(verb: str, noun: str, subject: str = "", *options: str) -> str:
        return create_message(verb, noun, subject, *options)

    def add_message_handler(self, verb: Union[str, Verb], handler: ActionHandler) -> None:
        self.registry.register(verb, handler)

    def remove_message_handler(self, verb: Union[str, Verb]) -> bool:
        return self.registry.unregister(verb)

    # ========================================================================
    # Reporting
    # ========================================================================

    def _log_fault(self, fault: Fault) -> None:
        level = _SEVERITY_LEVELS.get(fault.severity, logging.ERROR)
        logger.log(level, f"[{fault.domain}] {fault.code}: {fault.message}")

    def _report(self, fault: Fault) -> None:
        """Log a fault and pass it to ``on_error``."""
        self._log_fault(fault)
        self._fire(self.config.on_error, fault)

    def _fire(self, callback: Optional[Callable[..., Any]], *args: Any) -> None:
        if callback is None:
            return

        name = getattr(callback, "__name__", repr(callback))
        try:
            result = callback(*args)
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._callback_tasks.add(task)
                task.add_done_callback(lambda t: self._callback_done(t, name))
        except Exception as e:
            logger.error(f"Callback {name} failed: {e}", exc_info=True)

    def _callback_done(self, task: asyncio.Future, name: str) -> None:
        self._callback_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                f"Callback {name} failed: {exc}",
                exc_info=(type(exc), exc, exc.__traceback__),
            )

    def __repr__(self) -> str:
        return f"<ConnectionManager url={self.url} state={self._state.value}>"
