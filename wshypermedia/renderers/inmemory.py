"""
In-Memory Renderer - Headless document for the hypermedia runtime

For development, testing and the CLI. No browser required.
Elements are flat records keyed by id; markup is stored as text and
never parsed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging

from .base import (
    AFTER_BEGIN,
    AFTER_END,
    BEFORE_BEGIN,
    BEFORE_END,
    AnimationSpec,
    KeyframeSet,
    Renderer,
    TransitionSpec,
)
from ..security import safe_merge

logger = logging.getLogger("wshypermedia.renderers.inmemory")


class DomEvent:
    """Event object; payload keys are copied on as attributes."""

    def __init__(self, type: str, bubbles: bool = True):
        self.type = type
        self.bubbles = bubbles

    def __repr__(self) -> str:
        extra = {k: v for k, v in vars(self).items() if k not in ("type", "bubbles")}
        return f"DomEvent(type={self.type!r}, {extra})"


@dataclass
class Element:
    """A node in the headless document."""
    id: str
    tag: str = "div"
    inner_html: str = ""
    outer_html: Optional[str] = None
    classes: List[str] = field(default_factory=list)
    attributes: Dict[str, str] = field(default_factory=dict)
    style: Dict[str, str] = field(default_factory=dict)
    value: str = ""
    checked: bool = False
    selected: List[str] = field(default_factory=list)
    before: List[str] = field(default_factory=list)
    after: List[str] = field(default_factory=list)
    events: List[DomEvent] = field(default_factory=list)
    animation: Optional[AnimationSpec] = None
    animation_state: str = "idle"
    transition: Optional[TransitionSpec] = None
    removed: bool = False


class InMemoryRenderer(Renderer):
    """
    In-memory renderer.

    Every primitive call is appended to ``calls`` as
    ``(method, element_id, args)`` so callers can assert on exactly what
    the protocol engine asked for.

    Example:
        renderer = InMemoryRenderer()
        renderer.add_element("content")
        renderer.set_inner_html(renderer.resolve_element("content"), "<p>Hi</p>")
    """

    def __init__(self, element_ids: Sequence[str] = ()):
        self.elements: Dict[str, Element] = {}
        self.keyframes: Dict[str, KeyframeSet] = {}
        self.calls: List[Tuple[str, Optional[str], Tuple[Any, ...]]] = []

        self.add_element("document", tag="#document")
        for element_id in element_ids:
            self.add_element(element_id)

    def add_element(self, element_id: str, **attrs: Any) -> Element:
        """Create (or replace) an element in the document."""
        element = Element(id=element_id, **attrs)
        self.elements[element_id] = element
        return element

    def _record(self, method: str, element: Optional[Element], *args: Any) -> None:
        self.calls.append((method, element.id if element else None, args))

    def resolve_element(self, element_id: str) -> Optional[Element]:
        return self.elements.get(element_id)

    # Content and structure

    def set_inner_html(self, element: Element, html: str) -> None:
        self._record("set_inner_html", element, html)
        element.inner_html = html

    def set_outer_html(self, element: Element, html: str) -> None:
        self._record("set_outer_html", element, html)
        element.outer_html = html
        # The replacement markup is opaque; the old node leaves the document.
        self.elements.pop(element.id, None)

    def insert_adjacent(self, element: Element, position: str, html: str) -> None:
        self._record("insert_adjacent", element, position, html)
        if position == AFTER_BEGIN:
            element.inner_html = html + element.inner_html
        elif position == BEFORE_END:
            element.inner_html = element.inner_html + html
        elif position == BEFORE_BEGIN:
            element.before.append(html)
        elif position == AFTER_END:
            element.after.insert(0, html)
        else:
            raise ValueError(f"Unknown insert position: {position}")

    def remove_element(self, element: Element) -> None:
        self._record("remove_element", element)
        element.removed = True
        self.elements.pop(element.id, None)

    # Classes

    def add_classes(self, element: Element, names: Sequence[str]) -> None:
        self._record("add_classes", element, list(names))
        for name in names:
            if name not in element.classes:
                element.classes.append(name)

    def remove_classes(self, element: Element, names: Sequence[str]) -> None:
        self._record("remove_classes", element, list(names))
        element.classes = [c for c in element.classes if c not in names]

    def toggle_classes(self, element: Element, names: Sequence[str]) -> None:
        self._record("toggle_classes", element, list(names))
        for name in names:
            if name in element.classes:
                element.classes.remove(name)
            else:
                element.classes.append(name)

    # Attributes and inline style

    def set_attribute(self, element: Element, name: str, value: str) -> None:
        self._record("set_attribute", element, name, value)
        element.attributes[name] = value

    def remove_attribute(self, element: Element, name: str) -> None:
        self._record("remove_attribute", element, name)
        element.attributes.pop(name, None)

    def set_style_property(self, element: Element, name: str, value: str) -> None:
        self._record("set_style_property", element, name, value)
        element.style[name] = value

    def remove_style_property(self, element: Element, name: str) -> None:
        self._record("remove_style_property", element, name)
        element.style.pop(name, None)

    # Events and forms

    def dispatch_event(self, element: Element, event_type: str, data: Optional[Dict[str, Any]] = None) -> None:
        self._record("dispatch_event", element, event_type, data)
        event = safe_merge(DomEvent(event_type), data or {})
        element.events.append(event)

    def set_form_value(self, element: Element, value: str) -> None:
        self._record("set_form_value", element, value)
        element.value = value

    def set_checked(self, element: Element, checked: bool) -> None:
        self._record("set_checked", element, checked)
        element.checked = checked

    def set_selected(self, element: Element, values: Sequence[str]) -> None:
        self._record("set_selected", element, list(values))
        element.selected = list(values)

    # Animation

    def start_animation(self, element: Element, spec: AnimationSpec) -> None:
        self._record("start_animation", element, spec)
        element.animation = spec
        element.animation_state = "running"
        element.style["animation"] = spec.to_css()

    def set_transition(self, element: Element, spec: TransitionSpec) -> None:
        self._record("set_transition", element, spec)
        element.transition = spec
        element.style["transition"] = spec.to_css()

    def remove_animation(self, element: Element) -> None:
        self._record("remove_animation", element)
        element.animation = None
        element.animation_state = "idle"
        element.style.pop("animation", None)
        element.style.pop("animation-play-state", None)

    def pause_animation(self, element: Element) -> None:
        self._record("pause_animation", element)
        if element.animation is not None:
            element.animation_state = "paused"
            element.style["animation-play-state"] = "paused"

    def resume_animation(self, element: Element) -> None:
        self._record("resume_animation", element)
        if element.animation is not None:
            element.animation_state = "running"
            element.style["animation-play-state"] = "running"

    def get_animation_state(self, element: Element) -> str:
        self._record("get_animation_state", element)
        return element.animation_state

    def define_keyframes(self, keyframes: KeyframeSet) -> None:
        self._record("define_keyframes", None, keyframes)
        self.keyframes[keyframes.name] = keyframes
        logger.debug(f"Defined keyframes {keyframes.name} ({len(keyframes.frames)} stops)")
