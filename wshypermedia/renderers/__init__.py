"""
Renderers Package - DOM capabilities driven by the protocol engine
"""

from .base import (
    Renderer,
    AnimationSpec,
    TransitionSpec,
    KeyframeSet,
    BEFORE_BEGIN,
    AFTER_BEGIN,
    BEFORE_END,
    AFTER_END,
)
from .inmemory import InMemoryRenderer, Element, DomEvent

__all__ = [
    "Renderer",
    "AnimationSpec",
    "TransitionSpec",
    "KeyframeSet",
    "BEFORE_BEGIN",
    "AFTER_BEGIN",
    "BEFORE_END",
    "AFTER_END",
    "InMemoryRenderer",
    "Element",
    "DomEvent",
]
