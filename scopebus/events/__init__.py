"""
Typed event dispatch.

Provides the handler registry, subscribe argument resolution and the
local/broadcast event dispatcher.
"""

from scopebus.events.arguments import (
    ResolvedSubscription,
    Subscribeable,
    as_event_handler,
    resolve_subscribe_args,
)
from scopebus.events.dispatcher import EventDispatcher
from scopebus.events.models import (
    Event,
    EventCallback,
    EventConstraint,
    EventHandler,
    HandlerEntry,
    Subscription,
    normalize_constraints,
)
from scopebus.events.registry import HandlerRegistry

__all__ = [
    "Event",
    "EventCallback",
    "EventConstraint",
    "EventDispatcher",
    "EventHandler",
    "HandlerEntry",
    "HandlerRegistry",
    "ResolvedSubscription",
    "Subscribeable",
    "Subscription",
    "as_event_handler",
    "normalize_constraints",
    "resolve_subscribe_args",
]
