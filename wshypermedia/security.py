"""
Security Validator - Defense-in-depth checks for protocol input.

Independent, composable checks:
- validate_url: only ws:// and wss:// endpoints
- validate_element_id: identifiers driving element lookup
- validate_json: size limit and forbidden keys before parsing
- validate_message_size: frame size and part limits
- validate_protocol_version: negotiated subprotocol version

Checks are pure functions. ``SecurityValidator`` binds them to a
connection's configuration and owns security logging.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, MutableMapping, Optional, Union
from urllib.parse import urlsplit
import json
import logging
import re

from .faults import (
    Fault,
    SecurityFault,
    WS_INVALID_ELEMENT_ID,
    WS_JSON_INVALID,
    WS_JSON_TOO_LARGE,
    WS_JSON_UNSAFE_KEY,
)
from .parser import parse_message

logger = logging.getLogger("wshypermedia.security")

ALLOWED_SCHEMES = ("ws", "wss")
ELEMENT_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]{1,100}")
FORBIDDEN_KEYS = frozenset({"__proto__", "constructor"})
_FORBIDDEN_KEY_PATTERN = re.compile(r'"(__proto__|constructor)"\s*:')
SUBPROTOCOL_PREFIX = "wshm.v"

_LOG_LEVELS = {
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


# ============================================================================
# Result
# ============================================================================

@dataclass(frozen=True)
class Ok:
    """Validation passed; carries the parsed value."""
    value: Any

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    """Validation failed; carries the fault describing why."""
    fault: Fault

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok, Err]


# ============================================================================
# Checks
# ============================================================================

def validate_url(url: Any) -> bool:
    """Accept only well-formed ws:// or wss:// URLs with a host."""
    if not isinstance(url, str) or not url:
        return False
    try:
        parts = urlsplit(url)
        # Port parsing raises on malformed values.
        parts.port
    except ValueError:
        return False
    return parts.scheme.lower() in ALLOWED_SCHEMES and bool(parts.hostname)


def validate_element_id(element_id: Any) -> bool:
    """Require 1-100 characters of ``[A-Za-z0-9_-]``."""
    return isinstance(element_id, str) and ELEMENT_ID_PATTERN.fullmatch(element_id) is not None


def validate_json(text: str, max_size: int = 1024 * 1024) -> Result:
    """
    Validate and parse a JSON payload.

    Payloads longer than ``max_size`` are rejected before parsing.
    A ``__proto__`` or ``constructor`` key is rejected at any depth,
    whether written literally or with JSON escapes.

    Returns:
        Ok(parsed value) or Err(SecurityFault)
    """
    if len(text) > max_size:
        return Err(WS_JSON_TOO_LARGE(len(text), max_size))

    match = _FORBIDDEN_KEY_PATTERN.search(text)
    if match:
        return Err(WS_JSON_UNSAFE_KEY(match.group(1)))

    result = parse_json(text)
    if isinstance(result, Ok):
        key = _find_forbidden_key(result.value)
        if key is not None:
            return Err(WS_JSON_UNSAFE_KEY(key))
    return result


def _find_forbidden_key(value: Any) -> Optional[str]:
    """First forbidden key at any depth of a parsed JSON value."""
    stack = [value]
    while stack:
        item = stack.pop()
        if isinstance(item, dict):
            for key, child in item.items():
                if key in FORBIDDEN_KEYS:
                    return key
                stack.append(child)
        elif isinstance(item, list):
            stack.extend(item)
    return None


def parse_json(text: str) -> Result:
    """Parse JSON without the security checks."""
    try:
        return Ok(json.loads(text))
    except (json.JSONDecodeError, RecursionError) as e:
        return Err(WS_JSON_INVALID(str(e)))


def validate_message_size(frame: str, max_size: int, max_parts: int, escape_char: str = "~") -> bool:
    """Check a frame against the size and part limits without dispatching it."""
    try:
        parse_message(frame, escape_char=escape_char, max_size=max_size, max_parts=max_parts)
    except SecurityFault:
        return False
    return True


def subprotocol_for(version: str) -> str:
    """WebSocket subprotocol token offered for a protocol version."""
    return f"{SUBPROTOCOL_PREFIX}{version}"


def validate_protocol_version(negotiated: Optional[str], expected: str) -> bool:
    """
    Check the server's negotiated subprotocol against the expected version.

    Versions are compatible when their major components match.
    """
    if not negotiated or not negotiated.startswith(SUBPROTOCOL_PREFIX):
        return False
    version = negotiated[len(SUBPROTOCOL_PREFIX):]
    if not version:
        return False
    return version.split(".")[0] == expected.split(".")[0]


def safe_merge(target: Any, data: Any) -> Any:
    """
    Copy the top-level keys of ``data`` onto ``target``.

    ``__proto__`` and ``constructor`` are never copied. When ``target``
    is an object rather than a mapping, dunder names are skipped too so
    class-level attributes cannot be replaced. Non-mapping ``data`` is
    ignored.

    Returns:
        target
    """
    if not isinstance(data, Mapping):
        return target

    for key, value in data.items():
        if not isinstance(key, str) or key in FORBIDDEN_KEYS:
            continue
        if isinstance(target, MutableMapping):
            target[key] = value
        elif not key.startswith("__"):
            setattr(target, key, value)

    return target


# ============================================================================
# SecurityValidator
# ============================================================================

class SecurityValidator:
    """
    Validation checks bound to one connection's configuration.

    Rejections are reported through the ``wshypermedia.security`` logger
    when ``enable_security_logging`` is set, at ``security_log_level``.
    Otherwise they are silent and the operation is simply skipped.
    """

    def __init__(
        self,
        *,
        max_json_size: int = 1024 * 1024,
        enable_json_validation: bool = False,
        enable_security_logging: bool = False,
        security_log_level: str = "warn",
    ):
        self.max_json_size = max_json_size
        self.enable_json_validation = enable_json_validation
        self.enable_security_logging = enable_security_logging
        self.log_level = _LOG_LEVELS[security_log_level]

    @classmethod
    def from_config(cls, config) -> SecurityValidator:
        return cls(
            max_json_size=config.max_json_size,
            enable_json_validation=config.enable_json_validation,
            enable_security_logging=config.enable_security_logging,
            security_log_level=config.security_log_level,
        )

    def report(self, fault: Fault) -> None:
        """Emit a structured security log entry for a rejection."""
        if not self.enable_security_logging:
            return
        logger.log(
            self.log_level,
            f"[security] {fault.code}: {fault.message}",
            extra={"security_event": fault.to_dict()},
        )

    def check_element_id(self, element_id: str) -> bool:
        if validate_element_id(element_id):
            return True
        self.report(WS_INVALID_ELEMENT_ID(element_id))
        return False

    def load_json(self, text: str) -> Result:
        """
        Parse a JSON payload from the wire.

        With ``enable_json_validation`` the size and key checks run first;
        without it the payload only has to be well-formed JSON.
        """
        if self.enable_json_validation:
            result = validate_json(text, self.max_json_size)
        else:
            result = parse_json(text)

        if isinstance(result, Err):
            self.report(result.fault)
        return result
