"""Suggestion lifecycle events and the bus that carries them.

The orchestrator publishes these so the window (status bar, logging) can react
without the core knowing anything about the UI.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Literal
from weakref import WeakMethod

__all__ = [
    "Event",
    "EventBus",
    "Handler",
    "SuggestionShown",
    "SuggestionExtended",
    "SuggestionAccepted",
    "SuggestionHidden",
    "SuggestionRequestFailed",
    "StaleResponseDiscarded",
]

LOGGER = logging.getLogger(__name__)

Handler = Callable[[Any], None]


@dataclass(slots=True)
class Event:
    """Base class for bus events."""


@dataclass(slots=True)
class SuggestionShown(Event):
    """A suggestion became visible.

    Attributes:
        line_count: Number of overlay lines.
        from_cache: True when no provider call was needed.
    """

    line_count: int
    from_cache: bool = False


@dataclass(slots=True)
class SuggestionExtended(Event):
    """A further step was appended to the visible suggestion."""

    added_lines: int
    total_lines: int


@dataclass(slots=True)
class SuggestionAccepted(Event):
    """Remaining code was inserted into the buffer."""

    inserted_chars: int


@dataclass(slots=True)
class SuggestionHidden(Event):
    """The overlay was dismissed without inserting anything."""

    reason: Literal["toggle", "cancel"]


@dataclass(slots=True)
class SuggestionRequestFailed(Event):
    """A provider call produced no usable suggestion.

    Attributes:
        mode: Requested granularity (``chunk``, ``full`` or ``step``).
        reason: ``empty``, ``timeout`` or ``error``.
    """

    mode: str
    reason: str


@dataclass(slots=True)
class StaleResponseDiscarded(Event):
    """A provider response arrived after a newer request or a cancel."""

    generation: int
    current_generation: int


class EventBus:
    """Synchronous publish/subscribe keyed on the exact event class.

    Bound methods are held weakly so a closed window does not keep receiving
    events; plain functions are held strongly. Not thread-safe: publish from
    the event-loop thread only.
    """

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: defaultdict[type[Event], list[_HandlerRef]] = defaultdict(list)

    def subscribe(self, event_type: type[Event], handler: Handler) -> None:
        self._handlers[event_type].append(_HandlerRef.create(handler))

    def unsubscribe(self, event_type: type[Event], handler: Handler) -> None:
        refs = self._handlers.get(event_type)
        if not refs:
            return
        for index, handler_ref in enumerate(refs):
            if handler_ref.resolve() == handler:
                refs.pop(index)
                return

    def publish(self, event: Event) -> None:
        """Deliver ``event`` to its subscribers; a failing handler never stops the rest."""

        event_type = type(event)
        refs = self._handlers.get(event_type)
        if not refs:
            return
        dead: list[_HandlerRef] = []
        for handler_ref in list(refs):
            handler = handler_ref.resolve()
            if handler is None:
                dead.append(handler_ref)
                continue
            try:
                handler(event)
            except Exception:
                LOGGER.exception(
                    "Handler %r raised while handling %s", handler, event_type.__name__
                )
        for handler_ref in dead:
            refs.remove(handler_ref)

    def handler_count(self, event_type: type[Event] | None = None) -> int:
        if event_type is not None:
            return len(self._handlers.get(event_type, []))
        return sum(len(refs) for refs in self._handlers.values())

    def clear(self) -> None:
        self._handlers.clear()


class _HandlerRef:
    __slots__ = ("_target", "_weak")

    def __init__(self, target: Any, weak: bool) -> None:
        self._target = target
        self._weak = weak

    @classmethod
    def create(cls, handler: Handler) -> "_HandlerRef":
        if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
            try:
                return cls(WeakMethod(handler), weak=True)
            except TypeError:
                pass
        return cls(handler, weak=False)

    def resolve(self) -> Handler | None:
        if self._weak:
            return self._target()
        return self._target
