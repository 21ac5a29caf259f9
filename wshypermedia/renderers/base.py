"""
Renderer Base - Protocol for the DOM capability the runtime drives

The protocol engine never touches a document directly. Every built-in
verb maps to exactly one Renderer call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, Sequence, Tuple


# insertAdjacentHTML positions
BEFORE_BEGIN = "beforebegin"
AFTER_BEGIN = "afterbegin"
BEFORE_END = "beforeend"
AFTER_END = "afterend"


@dataclass(frozen=True)
class AnimationSpec:
    """CSS animation shorthand components."""
    name: str
    duration: str = "1s"
    easing: str = "ease"
    delay: str = "0s"
    iterations: str = "1"
    direction: str = "normal"
    fill_mode: str = "none"

    def to_css(self) -> str:
        return " ".join([
            self.name, self.duration, self.easing, self.delay,
            self.iterations, self.direction, self.fill_mode,
        ])


@dataclass(frozen=True)
class TransitionSpec:
    """CSS transition applied to one or more properties."""
    properties: Tuple[str, ...]
    duration: str = "0.3s"
    easing: str = "ease"
    delay: str = "0s"

    def to_css(self) -> str:
        return ", ".join(
            f"{prop} {self.duration} {self.easing} {self.delay}" for prop in self.properties
        )


@dataclass
class KeyframeSet:
    """Named keyframe definition (``{"0%": {...}, "100%": {...}}``)."""
    name: str
    frames: Dict[str, Any] = field(default_factory=dict)


class Renderer(Protocol):
    """
    Renderer protocol.

    Implemented by the host environment (a browser bridge, a headless
    document, a test double). Methods receive the element object
    returned by ``resolve_element``.

    Implementations:
    - InMemoryRenderer: Headless document (dev/testing/CLI)
    """

    def resolve_element(self, element_id: str) -> Optional[Any]:
        """
        Look up an element by id.

        Returns:
            Element, or None when absent
        """
        ...

    # Content and structure

    def set_inner_html(self, element: Any, html: str) -> None:
        ...

    def set_outer_html(self, element: Any, html: str) -> None:
        ...

    def insert_adjacent(self, element: Any, position: str, html: str) -> None:
        """
        Insert HTML relative to an element.

        Args:
            element: Target element
            position: beforebegin | afterbegin | beforeend | afterend
            html: Markup to insert
        """
        ...

    def remove_element(self, element: Any) -> None:
        ...

    # Classes

    def add_classes(self, element: Any, names: Sequence[str]) -> None:
        ...

    def remove_classes(self, element: Any, names: Sequence[str]) -> None:
        ...

    def toggle_classes(self, element: Any, names: Sequence[str]) -> None:
        ...

    # Attributes and inline style

    def set_attribute(self, element: Any, name: str, value: str) -> None:
        ...

    def remove_attribute(self, element: Any, name: str) -> None:
        ...

    def set_style_property(self, element: Any, name: str, value: str) -> None:
        """Set one inline style property, custom ``--`` properties included."""
        ...

    def remove_style_property(self, element: Any, name: str) -> None:
        ...

    # Events and forms

    def dispatch_event(self, element: Any, event_type: str, data: Optional[Dict[str, Any]] = None) -> None:
        """
        Fire an event on an element.

        Args:
            element: Target element
            event_type: Event type (click, keydown, custom names)
            data: Properties to copy onto the event; already filtered
                of forbidden keys
        """
        ...

    def set_form_value(self, element: Any, value: str) -> None:
        ...

    def set_checked(self, element: Any, checked: bool) -> None:
        ...

    def set_selected(self, element: Any, values: Sequence[str]) -> None:
        ...

    # Animation

    def start_animation(self, element: Any, spec: AnimationSpec) -> None:
        ...

    def set_transition(self, element: Any, spec: TransitionSpec) -> None:
        ...

    def remove_animation(self, element: Any) -> None:
        ...

    def pause_animation(self, element: Any) -> None:
        ...

    def resume_animation(self, element: Any) -> None:
        ...

    def get_animation_state(self, element: Any) -> str:
        """
        Returns:
            "running", "paused" or "idle"
        """
        ...

    def define_keyframes(self, keyframes: KeyframeSet) -> None:
        ...
