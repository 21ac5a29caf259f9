"""
wshypermedia - WebSocket hypermedia client runtime

Turns a pipe-delimited text protocol into DOM operations:

    verb|noun|subject[|option1|option2|...]

Components:
- MessageParser: escape-aware frame tokenizer
- SecurityValidator: URL, element id, JSON and size checks
- ActionRegistry: verb dispatch with ~30 built-in DOM verbs
- ConnectionManager: connection state machine with exponential backoff

The DOM itself is a Renderer supplied by the host; InMemoryRenderer is
a headless one for development and tests.
"""

__version__ = "1.1.0"

from .config import HypermediaConfig, ConfigLoader, ConfigError

from .parser import (
    ParsedMessage,
    MessageParser,
    parse_message,
    create_message,
    escape_field,
)

from .security import (
    Ok,
    Err,
    Result,
    SecurityValidator,
    validate_url,
    validate_element_id,
    validate_json,
    validate_message_size,
    validate_protocol_version,
    safe_merge,
)

from .actions import (
    Verb,
    ActionRegistry,
    DispatchStatus,
    DispatchResult,
    UnknownVerb,
)

from .connection import (
    ConnectionManager,
    ConnectionState,
    backoff_delay,
)

from .renderers import (
    Renderer,
    InMemoryRenderer,
    AnimationSpec,
    TransitionSpec,
    KeyframeSet,
)

from .transports import (
    Transport,
    WebSocketTransport,
    InMemoryTransport,
    InMemoryTransportFactory,
)

from .client import create_client, bootstrap

from .faults import (
    Fault,
    FaultDomain,
    Severity,
    ProtocolFault,
    SecurityFault,
    ConnectionFault,
)

__all__ = [
    # Config
    "HypermediaConfig",
    "ConfigLoader",
    "ConfigError",

    # Parser
    "ParsedMessage",
    "MessageParser",
    "parse_message",
    "create_message",
    "escape_field",

    # Security
    "Ok",
    "Err",
    "Result",
    "SecurityValidator",
    "validate_url",
    "validate_element_id",
    "validate_json",
    "validate_message_size",
    "validate_protocol_version",
    "safe_merge",

    # Actions
    "Verb",
    "ActionRegistry",
    "DispatchStatus",
    "DispatchResult",
    "UnknownVerb",

    # Connection
    "ConnectionManager",
    "ConnectionState",
    "backoff_delay",

    # Renderers
    "Renderer",
    "InMemoryRenderer",
    "AnimationSpec",
    "TransitionSpec",
    "KeyframeSet",

    # Transports
    "Transport",
    "WebSocketTransport",
    "InMemoryTransport",
    "InMemoryTransportFactory",

    # Client
    "create_client",
    "bootstrap",

    # Faults
    "Fault",
    "FaultDomain",
    "Severity",
    "ProtocolFault",
    "SecurityFault",
    "ConnectionFault",
]
