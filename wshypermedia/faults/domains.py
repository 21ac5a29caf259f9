"""
Faults - Domain-specific fault types for the hypermedia protocol.

Provides:
- ProtocolFault: frame parsing and dispatch
- SecurityFault: validation rejections (size, identifiers, JSON)
- ConnectionFault: URL, transport and reconnection errors
- WS_* factories, one per reportable condition
"""

from typing import Any, Optional

from .core import Fault, FaultDomain, Severity


class ProtocolFault(Fault):
    """Base fault for frame parsing and dispatch."""

    def __init__(
        self,
        code: str,
        message: str,
        severity: Severity = Severity.WARN,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.PROTOCOL,
            severity=severity,
            retryable=False,
            metadata=metadata,
        )


class SecurityFault(Fault):
    """
    Base fault for validation rejections.

    Security faults are never fatal: the offending frame or operation
    is skipped and the connection stays up.
    """

    def __init__(
        self,
        code: str,
        message: str,
        severity: Severity = Severity.WARN,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.SECURITY,
            severity=severity,
            retryable=False,
            metadata=metadata,
        )


class ConnectionFault(Fault):
    """Base fault for transport and reconnection errors."""

    def __init__(
        self,
        code: str,
        message: str,
        severity: Severity = Severity.ERROR,
        retryable: bool = True,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.NETWORK,
            severity=severity,
            retryable=retryable,
            metadata=metadata,
        )


# Connection faults

WS_INVALID_URL = lambda url="": ConnectionFault(
    code="WS_INVALID_URL",
    message=f"Invalid WebSocket URL: {url!r}",
    severity=Severity.FATAL,
    retryable=False, metadata={"url": url},
)

WS_CONNECT_FAILED = lambda url="", reason="": ConnectionFault(
    code="WS_CONNECT_FAILED",
    message=f"Could not connect to {url}: {reason}",
    metadata={"url": url},
)

WS_TRANSPORT_ERROR = lambda reason="": ConnectionFault(
    code="WS_TRANSPORT_ERROR",
    message=f"Transport error: {reason}",
)

WS_RECONNECT_EXHAUSTED = lambda attempts=0: ConnectionFault(
    code="WS_RECONNECT_EXHAUSTED",
    message=f"Giving up after {attempts} reconnection attempts",
    severity=Severity.FATAL,
    retryable=False, metadata={"attempts": attempts},
)

WS_NOT_CONNECTED = lambda state="": ConnectionFault(
    code="WS_NOT_CONNECTED",
    message=f"WebSocket not ready, state: {state}",
    severity=Severity.WARN,
    metadata={"state": state},
)

WS_PROTOCOL_VERSION_MISMATCH = lambda expected="", negotiated=None: ConnectionFault(
    code="WS_PROTOCOL_VERSION_MISMATCH",
    message=f"Server negotiated {negotiated!r}, expected protocol version {expected}",
    retryable=False, metadata={"expected": expected, "negotiated": negotiated},
)

# Message limits

WS_MESSAGE_TOO_LARGE = lambda size=0, limit=0: SecurityFault(
    code="WS_MESSAGE_TOO_LARGE",
    message=f"Message too large: {size} characters (limit: {limit})",
    metadata={"size": size, "limit": limit},
)

WS_TOO_MANY_PARTS = lambda limit=0: SecurityFault(
    code="WS_TOO_MANY_PARTS",
    message=f"Message has more than {limit} parts",
    metadata={"limit": limit},
)

# Identifier and payload validation

WS_INVALID_ELEMENT_ID = lambda element_id="": SecurityFault(
    code="WS_INVALID_ELEMENT_ID",
    message=f"Invalid element ID: {element_id!r}",
    metadata={"element_id": element_id},
)

WS_JSON_TOO_LARGE = lambda size=0, limit=0: SecurityFault(
    code="WS_JSON_TOO_LARGE",
    message=f"JSON payload too large: {size} characters (limit: {limit})",
    metadata={"size": size, "limit": limit},
)

WS_JSON_UNSAFE_KEY = lambda key="": SecurityFault(
    code="WS_JSON_UNSAFE_KEY",
    message=f"JSON payload contains forbidden key: {key}",
    metadata={"key": key},
)

WS_JSON_INVALID = lambda reason="": SecurityFault(
    code="WS_JSON_INVALID",
    message=f"Invalid JSON payload: {reason}",
)

# Dispatch faults

WS_ELEMENT_NOT_FOUND = lambda element_id="": ProtocolFault(
    code="WS_ELEMENT_NOT_FOUND",
    message=f"Element not found: {element_id}",
    metadata={"element_id": element_id},
)

WS_HANDLER_FAILED = lambda verb="", reason="": ProtocolFault(
    code="WS_HANDLER_FAILED",
    message=f"Handler for {verb!r} failed: {reason}",
    severity=Severity.ERROR,
    metadata={"verb": verb},
)
