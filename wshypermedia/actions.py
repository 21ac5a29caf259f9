"""
Action Registry - Verb dispatch for the hypermedia runtime

Maps verbs to handlers and runs them against resolved elements:

    registry = ActionRegistry(renderer)
    registry.dispatch(parse_message("update|content|<p>Hi</p>"))

Every built-in verb maps to one Renderer call. Applications register
their own verbs with ``register()``; a registration may shadow or
remove a built-in.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Set, Union
import asyncio
import inspect
import logging

from .faults import Fault, WS_ELEMENT_NOT_FOUND, WS_HANDLER_FAILED, WS_INVALID_ELEMENT_ID
from .parser import ParsedMessage
from .renderers.base import (
    AFTER_BEGIN,
    AFTER_END,
    BEFORE_BEGIN,
    BEFORE_END,
    AnimationSpec,
    KeyframeSet,
    Renderer,
    TransitionSpec,
)
from .security import Err, SecurityValidator, safe_merge

logger = logging.getLogger("wshypermedia.actions")

# handler(target, subject, *options) -> None | awaitable
ActionHandler = Callable[..., Any]

# Sanitizer key applied to every verb
ALL_VERBS = "*"


class Verb(str, Enum):
    """Built-in verbs."""

    # Content and structure
    UPDATE = "update"
    APPEND = "append"
    PREPEND = "prepend"
    REPLACE = "replace"
    SWAP = "swap"
    REMOVE = "remove"
    BEFORE = "before"
    AFTER = "after"

    # Classes
    ADD_CLASS = "addClass"
    REMOVE_CLASS = "removeClass"
    TOGGLE_CLASS = "toggleClass"

    # Attributes and style
    SET_ATTR = "setAttr"
    REMOVE_ATTR = "removeAttr"
    SET_STYLE = "setStyle"
    REMOVE_STYLE = "removeStyle"

    # Events and forms
    TRIGGER = "trigger"
    SET_VALUE = "setValue"
    SET_CHECKED = "setChecked"
    SET_SELECTED = "setSelected"

    # Animation
    ANIMATE = "animate"
    TRANSITION = "transition"
    REMOVE_ANIMATION = "removeAnimation"
    PAUSE_ANIMATION = "pauseAnimation"
    RESUME_ANIMATION = "resumeAnimation"
    GET_ANIMATION_STATE = "getAnimationState"
    KEYFRAME = "keyframe"


@dataclass(frozen=True)
class UnknownVerb:
    """Lookup result for a verb with no registered handler."""
    verb: str


class DispatchStatus(str, Enum):
    """Outcome of dispatching one message."""
    DISPATCHED = "dispatched"           # Handler ran to completion
    SCHEDULED = "scheduled"             # Handler returned an awaitable, now a task
    UNKNOWN_VERB = "unknown_verb"       # No handler; caller forwards the frame
    INVALID_TARGET = "invalid_target"   # Noun failed element id validation
    ELEMENT_NOT_FOUND = "element_not_found"
    FAILED = "failed"                   # Handler or sanitizer raised


@dataclass
class DispatchResult:
    """What happened to one dispatched message."""
    status: DispatchStatus
    verb: str
    task: Optional[asyncio.Future] = None
    fault: Optional[Fault] = None

    @property
    def handled(self) -> bool:
        return self.status in (DispatchStatus.DISPATCHED, DispatchStatus.SCHEDULED)


def _option(options: Sequence[str], index: int, default: str) -> str:
    """Positional option, falling back to ``default`` when absent or empty."""
    if index < len(options) and options[index]:
        return options[index]
    return default


class ActionRegistry:
    """
    Verb to handler mapping bound to one renderer.

    ``dispatch`` never raises: lookup, validation, element resolution
    and the handler itself run inside a failure boundary, and the
    outcome is returned as a ``DispatchResult``. Awaitable handler
    results become tasks; the registry keeps them referenced until
    done and logs their failures.
    """

    def __init__(
        self,
        renderer: Renderer,
        validator: Optional[SecurityValidator] = None,
        input_sanitizers: Optional[Mapping[str, Callable[[str], str]]] = None,
    ):
        self.renderer = renderer
        self.validator = validator or SecurityValidator()
        self.input_sanitizers: Dict[str, Callable[[str], str]] = dict(input_sanitizers or {})

        self._handlers: Dict[str, ActionHandler] = {}
        self._tasks: Set[asyncio.Future] = set()
        self._register_builtins()

    # ========================================================================
    # Registration
    # ========================================================================

    def _register_builtins(self) -> None:
        self._handlers.update({
            Verb.UPDATE.value: self._update,
            Verb.APPEND.value: self._append,
            Verb.PREPEND.value: self._prepend,
            Verb.REPLACE.value: self._replace,
            Verb.SWAP.value: self._replace,
            Verb.REMOVE.value: self._remove,
            Verb.BEFORE.value: self._before,
            Verb.AFTER.value: self._after,
            Verb.ADD_CLASS.value: self._add_class,
            Verb.REMOVE_CLASS.value: self._remove_class,
            Verb.TOGGLE_CLASS.value: self._toggle_class,
            Verb.SET_ATTR.value: self._set_attr,
            Verb.REMOVE_ATTR.value: self._remove_attr,
            Verb.SET_STYLE.value: self._set_style,
            Verb.REMOVE_STYLE.value: self._remove_style,
            Verb.TRIGGER.value: self._trigger,
            Verb.SET_VALUE.value: self._set_value,
            Verb.SET_CHECKED.value: self._set_checked,
            Verb.SET_SELECTED.value: self._set_selected,
            Verb.ANIMATE.value: self._animate,
            Verb.TRANSITION.value: self._transition,
            Verb.REMOVE_ANIMATION.value: self._remove_animation,
            Verb.PAUSE_ANIMATION.value: self._pause_animation,
            Verb.RESUME_ANIMATION.value: self._resume_animation,
            Verb.GET_ANIMATION_STATE.value: self._get_animation_state,
            Verb.KEYFRAME.value: self._keyframe,
        })

    def register(self, verb: Union[str, Verb], handler: ActionHandler) -> None:
        """
        Register a handler, replacing any existing one for ``verb``.

        Args:
            verb: Verb to handle (built-in names may be shadowed)
            handler: Callable(target, subject, *options); may return an awaitable
        """
        if not callable(handler):
            raise TypeError(f"Handler for {verb!r} must be callable")
        verb = verb.value if isinstance(verb, Verb) else verb
        if verb in self._handlers:
            logger.debug(f"Handler for {verb!r} replaced")
        self._handlers[verb] = handler

    def unregister(self, verb: Union[str, Verb]) -> bool:
        """Remove the handler for ``verb``. Returns False if there was none."""
        verb = verb.value if isinstance(verb, Verb) else verb
        return self._handlers.pop(verb, None) is not None

    def resolve(self, verb: str) -> Union[ActionHandler, UnknownVerb]:
        """Handler registered for ``verb``, or ``UnknownVerb``."""
        handler = self._handlers.get(verb)
        if handler is None:
            return UnknownVerb(verb)
        return handler

    def __contains__(self, verb: str) -> bool:
        return verb in self._handlers

    @property
    def verbs(self) -> Set[str]:
        return set(self._handlers)

    @property
    def pending(self) -> int:
        """Number of asynchronous handlers still running."""
        return len(self._tasks)

    # ========================================================================
    # Dispatch
    # ========================================================================

    def dispatch(self, message: ParsedMessage) -> DispatchResult:
        """
        Run the handler for one parsed message.

        Args:
            message: Parsed frame

        Returns:
            DispatchResult describing the outcome
        """
        verb = message.verb
        handler = self.resolve(verb)

        if isinstance(handler, UnknownVerb):
            logger.debug(f"No handler for verb {verb!r}")
            return DispatchResult(DispatchStatus.UNKNOWN_VERB, verb)

        if not self.validator.check_element_id(message.noun):
            return DispatchResult(
                DispatchStatus.INVALID_TARGET, verb,
                fault=WS_INVALID_ELEMENT_ID(message.noun),
            )

        target = self.renderer.resolve_element(message.noun)
        if target is None:
            logger.warning(f"Element not found: {message.noun} (verb={verb})")
            return DispatchResult(
                DispatchStatus.ELEMENT_NOT_FOUND, verb,
                fault=WS_ELEMENT_NOT_FOUND(message.noun),
            )

        try:
            subject = self._sanitize(verb, message.subject)
            result = handler(target, subject, *message.options)
            if inspect.isawaitable(result):
                task = self._schedule(verb, result)
                return DispatchResult(DispatchStatus.SCHEDULED, verb, task=task)
        except Exception as e:
            logger.error(f"Handler for {verb!r} failed: {e}", exc_info=True)
            return DispatchResult(
                DispatchStatus.FAILED, verb,
                fault=WS_HANDLER_FAILED(verb, str(e)),
            )

        return DispatchResult(DispatchStatus.DISPATCHED, verb)

    def _sanitize(self, verb: str, subject: str) -> str:
        sanitizer = self.input_sanitizers.get(verb) or self.input_sanitizers.get(ALL_VERBS)
        if sanitizer is None:
            return subject
        return sanitizer(subject)

    def _schedule(self, verb: str, awaitable: Any) -> asyncio.Future:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            raise

        task = asyncio.ensure_future(awaitable, loop=loop)
        self._tasks.add(task)

        def _done(t: asyncio.Future):
            self._tasks.discard(t)
            if t.cancelled():
                return
            exc = t.exception()
            if exc is not None:
                logger.error(
                    f"Async handler for {verb!r} failed: {exc}",
                    exc_info=(type(exc), exc, exc.__traceback__),
                )

        task.add_done_callback(_done)
        return task

    async def drain(self) -> None:
        """Wait for every pending asynchronous handler to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ========================================================================
    # Built-in handlers
    # ========================================================================

    # Content and structure

    def _update(self, target: Any, subject: str, *options: str) -> None:
        self.renderer.set_inner_html(target, subject)

    def _append(self, target: Any, subject: str, *options: str) -> None:
        self.renderer.insert_adjacent(target, BEFORE_END, subject)

    def _prepend(self, target: Any, subject: str, *options: str) -> None:
        self.renderer.insert_adjacent(target, AFTER_BEGIN, subject)

    def _replace(self, target: Any, subject: str, *options: str) -> None:
        self.renderer.set_outer_html(target, subject)

    def _remove(self, target: Any, subject: str, *options: str) -> None:
        self.renderer.remove_element(target)

    def _before(self, target: Any, subject: str, *options: str) -> None:
        self.renderer.insert_adjacent(target, BEFORE_BEGIN, subject)

    def _after(self, target: Any, subject: str, *options: str) -> None:
        self.renderer.insert_adjacent(target, AFTER_END, subject)

    # Classes

    def _add_class(self, target: Any, subject: str, *options: str) -> None:
        self.renderer.add_classes(target, subject.split())

    def _remove_class(self, target: Any, subject: str, *options: str) -> None:
        self.renderer.remove_classes(target, subject.split())

    def _toggle_class(self, target: Any, subject: str, *options: str) -> None:
        self.renderer.toggle_classes(target, subject.split())

    # Attributes and style

    def _set_attr(self, target: Any, subject: str, *options: str) -> None:
        if not subject:
            logger.debug("setAttr without attribute name ignored")
            return
        self.renderer.set_attribute(target, subject, _option(options, 0, ""))

    def _remove_attr(self, target: Any, subject: str, *options: str) -> None:
        if not subject:
            logger.debug("removeAttr without attribute name ignored")
            return
        self.renderer.remove_attribute(target, subject)

    def _set_style(self, target: Any, subject: str, *options: str) -> None:
        if not subject:
            logger.debug("setStyle without property name ignored")
            return
        self.renderer.set_style_property(target, subject, _option(options, 0, ""))

    def _remove_style(self, target: Any, subject: str, *options: str) -> None:
        if not subject:
            logger.debug("removeStyle without property name ignored")
            return
        self.renderer.remove_style_property(target, subject)

    # Events and forms

    def _trigger(self, target: Any, subject: str, *options: str) -> None:
        if not subject:
            logger.debug("trigger without event type ignored")
            return

        data = None
        payload = _option(options, 0, "")
        if payload:
            result = self.validator.load_json(payload)
            if isinstance(result, Err):
                return
            data = safe_merge({}, result.value)

        self.renderer.dispatch_event(target, subject, data)

    def _set_value(self, target: Any, subject: str, *options: str) -> None:
        self.renderer.set_form_value(target, subject)

    def _set_checked(self, target: Any, subject: str, *options: str) -> None:
        self.renderer.set_checked(target, subject.strip().lower() == "true")

    def _set_selected(self, target: Any, subject: str, *options: str) -> None:
        values = [value.strip() for value in subject.split(",") if value.strip()]
        self.renderer.set_selected(target, values)

    # Animation

    def _animate(self, target: Any, subject: str, *options: str) -> None:
        if not subject:
            logger.debug("animate without animation name ignored")
            return
        spec = AnimationSpec(
            name=subject,
            duration=_option(options, 0, "1s"),
            easing=_option(options, 1, "ease"),
            delay=_option(options, 2, "0s"),
            iterations=_option(options, 3, "1"),
            direction=_option(options, 4, "normal"),
            fill_mode=_option(options, 5, "none"),
        )
        self.renderer.start_animation(target, spec)

    def _transition(self, target: Any, subject: str, *options: str) -> None:
        properties = tuple(prop.strip() for prop in subject.split(",") if prop.strip())
        if not properties:
            logger.debug("transition without properties ignored")
            return
        spec = TransitionSpec(
            properties=properties,
            duration=_option(options, 0, "0.3s"),
            easing=_option(options, 1, "ease"),
            delay=_option(options, 2, "0s"),
        )
        self.renderer.set_transition(target, spec)

    def _remove_animation(self, target: Any, subject: str, *options: str) -> None:
        self.renderer.remove_animation(target)

    def _pause_animation(self, target: Any, subject: str, *options: str) -> None:
        self.renderer.pause_animation(target)

    def _resume_animation(self, target: Any, subject: str, *options: str) -> None:
        self.renderer.resume_animation(target)

    def _get_animation_state(self, target: Any, subject: str, *options: str) -> str:
        state = self.renderer.get_animation_state(target)
        logger.debug(f"Animation state: {state}")
        return state

    def _keyframe(self, target: Any, subject: str, *options: str) -> None:
        payload = _option(options, 0, "")
        if not subject or not payload:
            logger.debug("keyframe without name or definition ignored")
            return

        result = self.validator.load_json(payload)
        if isinstance(result, Err):
            return
        if not isinstance(result.value, dict):
            logger.warning(f"Keyframe definition for {subject!r} is not an object")
            return

        self.renderer.define_keyframes(KeyframeSet(subject, safe_merge({}, result.value)))
        self.renderer.start_animation(
            target, AnimationSpec(name=subject, duration=_option(options, 1, "1s"))
        )
