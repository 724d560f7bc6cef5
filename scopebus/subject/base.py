"""
Base classes for domain objects that publish their own events.

A subject owns a lazily created :class:`EventDispatcher`; outside code can
only subscribe, while the subject itself dispatches (and, for
:class:`BroadcastedSubject`, broadcasts) through protected helpers.
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Mapping
from typing import Any

from scopebus.channels.base import ChannelFactory
from scopebus.events.arguments import Subscribeable
from scopebus.events.dispatcher import EventDispatcher
from scopebus.events.models import EventConstraint, EventHandler, Subscription


class Subject(Subscribeable):
    def __init__(
        self,
        constraints: Mapping[str, EventConstraint | Mapping[str, Any]],
    ) -> None:
        self.constraints = constraints
        self._dispatcher: EventDispatcher | None = None

    @property
    @abstractmethod
    def meta_name(self) -> str:
        """Name of the kind of subject, e.g. ``"collection"``."""

    @property
    def events(self) -> EventDispatcher:
        if self._dispatcher is None:
            self._dispatcher = self._create_dispatcher()
        return self._dispatcher

    def _create_dispatcher(self) -> EventDispatcher:
        return EventDispatcher(self.constraints)

    def has(self, type: str) -> bool:
        return self.events.has(type)

    def _subscribe_resolved(
        self, types: tuple[str, ...], handler: EventHandler
    ) -> Subscription:
        return self.events.subscribe_many(types, handler)

    def _dispatch(self, type: str, payload: Any = None, timeout: float | None = None) -> None:
        self.events.dispatch(type, payload, timeout)

    def dispose(self) -> None:
        if self._dispatcher is not None:
            self._dispatcher.dispose()


class BroadcastedSubject(Subject):
    """
    Subject mirrored across contexts.

    ``unique_name`` must be unique per instance within a class: instances
    with the same ``meta_name`` and ``unique_name`` share one channel,
    whichever context they live in.
    """

    def __init__(
        self,
        constraints: Mapping[str, EventConstraint | Mapping[str, Any]],
        *,
        channel_factory: ChannelFactory | None = None,
    ) -> None:
        super().__init__(constraints)
        self._channel_factory = channel_factory

    @property
    @abstractmethod
    def unique_name(self) -> str:
        """Instance name shared by every context observing this subject."""

    @property
    def channel_name(self) -> str:
        return f"{self.meta_name}.{self.unique_name}"

    def _create_dispatcher(self) -> EventDispatcher:
        return EventDispatcher(
            self.constraints,
            broadcast_enabled=True,
            channel_name=self.channel_name,
            channel_factory=self._channel_factory,
        )

    def _broadcast(self, type: str, payload: Any = None, timeout: float | None = None) -> None:
        self.events.broadcast(type, payload, timeout)
