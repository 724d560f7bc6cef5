"""
scopebus: typed publish/subscribe event bus.

This package contains:
- Events (handler registry, subscribe resolution, local/broadcast dispatch)
- Subjects (scoped Bus/Node hierarchy over one root dispatcher)
- Signals (change-gated single-value notifications)
- Channels (in-process and Redis transports for broadcast mirroring)
"""

from scopebus.channels import ChannelRegistry, LocalChannel, RedisChannel
from scopebus.config import BusConfig
from scopebus.errors import (
    BroadcastDisabled,
    ChannelClosed,
    Disposed,
    InvalidArgument,
    NoEventLoop,
    NotBroadcastEvent,
    NotLocalEvent,
    ScopeBusError,
    UnknownEventType,
    UnknownType,
)
from scopebus.events import (
    Event,
    EventConstraint,
    EventDispatcher,
    EventHandler,
    HandlerRegistry,
    Subscription,
)
from scopebus.signals import BroadcastedSignal, Signal
from scopebus.subject import BroadcastedSubject, Bus, Node, Subject

__version__ = "0.1.0"

__all__ = [
    "BroadcastDisabled",
    "BroadcastedSignal",
    "BroadcastedSubject",
    "Bus",
    "BusConfig",
    "ChannelClosed",
    "ChannelRegistry",
    "Disposed",
    "Event",
    "EventConstraint",
    "EventDispatcher",
    "EventHandler",
    "HandlerRegistry",
    "InvalidArgument",
    "LocalChannel",
    "NoEventLoop",
    "Node",
    "NotBroadcastEvent",
    "NotLocalEvent",
    "RedisChannel",
    "ScopeBusError",
    "Signal",
    "Subject",
    "Subscription",
    "UnknownEventType",
    "UnknownType",
]
