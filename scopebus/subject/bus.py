"""
Hierarchical event bus.

A :class:`Bus` owns one root :class:`EventDispatcher` whose constraint
table uses fully dotted type names (``"database.collection.recordsCreated"``).
:meth:`Bus.use` returns a :class:`Node` bound to a dotted scope; a node
speaks scope-relative type names and translates them to and from root
names by plain string joining and splitting.

Example:
    bus = Bus({
        "database.opened": {"broadcasted": True},
        "database.collection.recordsCreated": {},
    })
    collection = bus.use("database.collection")
    collection.subscribe("recordsCreated", EventHandler(handle_event=on_created))
    collection.dispatch("recordsCreated", payload={"records": []})
    # on_created receives an event with type == "recordsCreated"
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from scopebus.channels.base import ChannelFactory
from scopebus.core.ids import Clock, IdGenerator, generate_unique_id, utc_now
from scopebus.errors import UnknownEventType
from scopebus.events.arguments import Subscribeable
from scopebus.events.dispatcher import EventDispatcher
from scopebus.events.models import (
    Event,
    EventConstraint,
    EventHandler,
    Subscription,
)

ROOT_SCOPE = ""


def join_scope(scope: str, name: str) -> str:
    """Join a scope and a relative name; the root scope is the identity."""
    if scope == ROOT_SCOPE:
        return name
    return f"{scope}.{name}"


def split_scope(scope: str, name: str) -> str | None:
    """Strip ``scope`` plus the separating dot from ``name``, or None."""
    if scope == ROOT_SCOPE:
        return name
    prefix = f"{scope}."
    if not name.startswith(prefix):
        return None
    return name[len(prefix):]


class Bus(Subscribeable):
    """
    Root of a scoped event hierarchy.

    Args:
        constraints: Root constraint table keyed by fully dotted types
        broadcast_enabled: Open a channel for broadcast types
        channel_name: Channel name when broadcasting is enabled
        channel_factory: Opens the channel
        id_generator: Source of event and handler ids
        clock: Source of event timestamps
        loop: Event loop for timed dispatch
    """

    scope = ROOT_SCOPE

    def __init__(
        self,
        constraints: Mapping[str, EventConstraint | Mapping[str, Any]],
        *,
        broadcast_enabled: bool = False,
        channel_name: str | None = None,
        channel_factory: ChannelFactory | None = None,
        id_generator: IdGenerator = generate_unique_id,
        clock: Clock = utc_now,
        loop: asyncio.AbstractEventLoop | None = None,
    ):
        self.dispatcher = EventDispatcher(
            constraints,
            broadcast_enabled=broadcast_enabled,
            channel_name=channel_name,
            channel_factory=channel_factory,
            id_generator=id_generator,
            clock=clock,
            loop=loop,
        )

    @property
    def constraints(self) -> Mapping[str, EventConstraint]:
        return self.dispatcher.constraints

    def has(self, type: str) -> bool:
        return self.dispatcher.has(type)

    def dispatch(self, type: str, payload: Any = None, timeout: float | None = None) -> Bus:
        self.dispatcher.dispatch(type, payload, timeout)
        return self

    def broadcast(self, type: str, payload: Any = None, timeout: float | None = None) -> Bus:
        self.dispatcher.broadcast(type, payload, timeout)
        return self

    def _subscribe_resolved(
        self, types: tuple[str, ...], handler: EventHandler
    ) -> Subscription:
        return self.dispatcher.subscribe_many(types, handler)

    def use(self, scope: str) -> Node:
        return Node(self, scope)

    def clear(self) -> None:
        self.dispatcher.clear()

    def dispose(self) -> None:
        self.dispatcher.dispose()


class Node(Subscribeable):
    """
    Scoped facade over a :class:`Bus`.

    Nodes hold no handlers of their own: every call is translated to root
    type names and forwarded to the bus.
    """

    def __init__(self, bus: Bus, scope: str) -> None:
        self.bus = bus
        self.scope = scope

    def __repr__(self) -> str:
        return f"Node(scope={self.scope!r})"

    def as_root_type(self, type: str) -> str:
        return join_scope(self.scope, type)

    def as_node_type(self, type: str) -> str:
        local = split_scope(self.scope, type)
        if local is None:
            raise UnknownEventType(
                type, f"an event of type={type!r} is outside of scope {self.scope!r}"
            )
        return local

    def as_node_event(self, event: Event) -> Event:
        return replace(event, type=self.as_node_type(event.type))

    def has(self, type: str) -> bool:
        return isinstance(type, str) and self.bus.has(self.as_root_type(type))

    def dispatch(self, type: str, payload: Any = None, timeout: float | None = None) -> Node:
        self.bus.dispatch(self.as_root_type(type), payload, timeout)
        return self

    def broadcast(self, type: str, payload: Any = None, timeout: float | None = None) -> Node:
        self.bus.broadcast(self.as_root_type(type), payload, timeout)
        return self

    def _subscribe_resolved(
        self, types: tuple[str, ...], handler: EventHandler
    ) -> Subscription:
        root_types = [self.as_root_type(type) for type in types]
        callback = handler.handle_event

        def handle_event(event: Event) -> Any:
            return callback(self.as_node_event(event))

        return self.bus.subscribe_many(
            root_types, EventHandler(handle_event=handle_event, run_once=handler.run_once)
        )

    def use(self, scope: str) -> Node:
        """Node for a scope nested under this one."""
        return Node(self.bus, join_scope(self.scope, scope))
