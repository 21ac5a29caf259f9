"""
Faults - Structured error handling for the hypermedia runtime.

Every rejected frame, failed validation and connection problem is a
typed fault with a stable code, a domain and a severity. Faults are
raised at construction time (invalid URL, invalid configuration) and
reported everywhere else: the receive loop never lets one escape.
"""

from .core import (
    Fault,
    FaultDomain,
    Severity,
    DOMAIN_DEFAULTS,
)

from .domains import (
    ProtocolFault,
    SecurityFault,
    ConnectionFault,
    WS_INVALID_URL,
    WS_CONNECT_FAILED,
    WS_TRANSPORT_ERROR,
    WS_RECONNECT_EXHAUSTED,
    WS_NOT_CONNECTED,
    WS_PROTOCOL_VERSION_MISMATCH,
    WS_MESSAGE_TOO_LARGE,
    WS_TOO_MANY_PARTS,
    WS_INVALID_ELEMENT_ID,
    WS_JSON_TOO_LARGE,
    WS_JSON_UNSAFE_KEY,
    WS_JSON_INVALID,
    WS_ELEMENT_NOT_FOUND,
    WS_HANDLER_FAILED,
)

__all__ = [
    # Core types
    "Fault",
    "FaultDomain",
    "Severity",
    "DOMAIN_DEFAULTS",

    # Domain faults
    "ProtocolFault",
    "SecurityFault",
    "ConnectionFault",

    # Factories
    "WS_INVALID_URL",
    "WS_CONNECT_FAILED",
    "WS_TRANSPORT_ERROR",
    "WS_RECONNECT_EXHAUSTED",
    "WS_NOT_CONNECTED",
    "WS_PROTOCOL_VERSION_MISMATCH",
    "WS_MESSAGE_TOO_LARGE",
    "WS_TOO_MANY_PARTS",
    "WS_INVALID_ELEMENT_ID",
    "WS_JSON_TOO_LARGE",
    "WS_JSON_UNSAFE_KEY",
    "WS_JSON_INVALID",
    "WS_ELEMENT_NOT_FOUND",
    "WS_HANDLER_FAILED",
]
