"""
Subscribe call resolution shared by every subscribeable object.

``subscribe`` accepts two call shapes::

    bus.subscribe(["created", "deleted"], handler)
    bus.subscribe("created", "deleted", handler)

where ``handler`` is an :class:`EventHandler`, a mapping with a callable
``"handle_event"`` key, or any object with a callable ``handle_event``
attribute. ``subscribe_many`` and ``subscribe_one`` skip the shape
detection entirely.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from scopebus.errors import InvalidArgument
from scopebus.events.models import EventHandler, Subscription


@dataclass(frozen=True)
class ResolvedSubscription:
    types: tuple[str, ...]
    handler: EventHandler


def as_event_handler(value: Any) -> EventHandler | None:
    """Return ``value`` as an :class:`EventHandler`, or None if it is not one."""
    if isinstance(value, EventHandler):
        return value if callable(value.handle_event) else None
    if isinstance(value, Mapping):
        callback = value.get("handle_event")
        run_once = value.get("run_once", False)
    elif isinstance(value, (str, bytes, list, tuple)):
        return None
    else:
        callback = getattr(value, "handle_event", None)
        run_once = getattr(value, "run_once", False)
    if not callable(callback):
        return None
    return EventHandler(handle_event=callback, run_once=bool(run_once))


def _known_types(values: Sequence[Any], has: Callable[[str], bool]) -> bool:
    return all(isinstance(value, str) and has(value) for value in values)


def resolve_subscribe_args(
    args: Sequence[Any], has: Callable[[str], bool]
) -> ResolvedSubscription:
    """
    Resolve a variadic ``subscribe`` call into types and a handler.

    Args:
        args: Positional arguments passed to ``subscribe``
        has: Predicate telling whether a type is known to the scope

    Returns:
        The resolved types and normalized handler

    Raises:
        InvalidArgument: If neither call shape matches
    """
    if len(args) == 2 and isinstance(args[0], (list, tuple)):
        handler = as_event_handler(args[1])
        if handler is not None and _known_types(args[0], has):
            return ResolvedSubscription(tuple(args[0]), handler)

    if len(args) > 1:
        handler = as_event_handler(args[-1])
        if handler is not None and _known_types(args[:-1], has):
            return ResolvedSubscription(tuple(args[:-1]), handler)

    raise InvalidArgument(
        "subscribe expects (types, handler) or (type, ..., handler) with known "
        f"event types and a handler exposing a callable `handle_event`, got {args!r}"
    )


class Subscribeable(ABC):
    """Mixin providing the three subscribe entry points over one primitive."""

    @abstractmethod
    def has(self, type: str) -> bool:
        """Whether ``type`` is known to this scope."""

    @abstractmethod
    def _subscribe_resolved(
        self, types: tuple[str, ...], handler: EventHandler
    ) -> Subscription:
        """Register an already validated handler."""

    def subscribe(self, *args: Any) -> Subscription:
        resolved = resolve_subscribe_args(args, self.has)
        return self._subscribe_resolved(resolved.types, resolved.handler)

    def subscribe_many(self, types: Sequence[str], handler: Any) -> Subscription:
        if isinstance(types, str):
            raise InvalidArgument("subscribe_many expects a sequence of event types")
        normalized = as_event_handler(handler)
        if normalized is None:
            raise InvalidArgument("handler must expose a callable `handle_event`")
        for type in types:
            if not isinstance(type, str) or not self.has(type):
                raise InvalidArgument(f"unknown event type {type!r}")
        return self._subscribe_resolved(tuple(types), normalized)

    def subscribe_one(self, type: str, handler: Any) -> Subscription:
        return self.subscribe_many([type], handler)
