"""
Message Parser - Escape-aware tokenizer for the hypermedia wire protocol.

Wire format (one text frame per message):

    verb|noun|subject[|option1|option2|...]

Fields are separated by ``|``. A subject or option can carry a literal
``|`` when its content is bracketed by the escape character (``~`` by
default):

    update|content|~<p>A | B</p>~

The verb and noun are never escape-processed. Content is not sanitized
here; that is the server's responsibility.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple

from .faults import WS_MESSAGE_TOO_LARGE, WS_TOO_MANY_PARTS

SEPARATOR = "|"

# Fields before this index (verb, noun) are taken literally.
FIRST_ESCAPABLE_FIELD = 2


@dataclass(frozen=True)
class ParsedMessage:
    """One tokenized frame."""
    verb: str
    noun: str = ""
    subject: str = ""
    options: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def parts(self) -> List[str]:
        """All fields in wire order."""
        return [self.verb, self.noun, self.subject, *self.options]


def parse_message(
    frame: str,
    escape_char: str = "~",
    max_size: int = 1024 * 1024,
    max_parts: int = 100,
) -> ParsedMessage:
    """
    Split a raw frame into verb, noun, subject and options.

    An unmatched escape character leaves the rest of the frame in
    escaped mode; the partial field is still emitted. Missing fields
    come back as empty strings, so ``"ping"`` parses as a verb-only
    message.

    Args:
        frame: Raw text frame
        escape_char: Character toggling escaped mode
        max_size: Maximum frame length in characters
        max_parts: Maximum number of fields

    Returns:
        ParsedMessage

    Raises:
        SecurityFault: WS_MESSAGE_TOO_LARGE or WS_TOO_MANY_PARTS
    """
    if len(frame) > max_size:
        raise WS_MESSAGE_TOO_LARGE(len(frame), max_size)

    parts: List[str] = []
    current: List[str] = []
    in_escaped = False

    for char in frame:
        if char == escape_char and len(parts) >= FIRST_ESCAPABLE_FIELD:
            in_escaped = not in_escaped
            continue

        if char == SEPARATOR and not in_escaped:
            parts.append("".join(current))
            current = []
            # The separator always opens one more field.
            if len(parts) >= max_parts:
                raise WS_TOO_MANY_PARTS(max_parts)
            continue

        current.append(char)

    parts.append("".join(current))

    verb, noun, subject, *options = parts + [""] * (3 - len(parts))
    return ParsedMessage(verb=verb, noun=noun, subject=subject, options=tuple(options))


def escape_field(value: str, escape_char: str = "~") -> str:
    """Bracket a field so a literal ``|`` inside it survives parsing."""
    return f"{escape_char}{value}{escape_char}"


def create_message(verb: str, noun: str, subject: str = "", *options: str) -> str:
    """Join fields into a wire frame. No escaping is applied."""
    return SEPARATOR.join([verb, noun, subject, *options])


class MessageParser:
    """
    Parser bound to one connection's limits.

    Example:
        parser = MessageParser(escape_char="~", max_size=4096, max_parts=10)
        message = parser.parse("update|content|~<p>A | B</p>~")
        assert message.subject == "<p>A | B</p>"
    """

    def __init__(
        self,
        escape_char: str = "~",
        max_size: int = 1024 * 1024,
        max_parts: int = 100,
    ):
        self.escape_char = escape_char
        self.max_size = max_size
        self.max_parts = max_parts

    @classmethod
    def from_config(cls, config) -> MessageParser:
        return cls(
            escape_char=config.escape_char,
            max_size=config.max_message_size,
            max_parts=config.max_parts,
        )

    def parse(self, frame: str) -> ParsedMessage:
        return parse_message(frame, self.escape_char, self.max_size, self.max_parts)

    def create_message(self, verb: str, noun: str, subject: str = "", *options: str) -> str:
        return create_message(verb, noun, subject, *options)

    def create_escaped_message(self, verb: str, noun: str, subject: str = "", *options: str) -> str:
        """Create a frame with the subject bracketed by the escape character."""
        return create_message(verb, noun, escape_field(subject, self.escape_char), *options)
