"""
Typed event dispatcher with optional cross-context broadcast.

Provides:
- Constraint table validation of every event type
- Local fan-out in registration order
- One-shot (``run_once``) handlers pruned after the delivery pass
- Broadcast mirroring over a channel, tagged so peers never re-post
- Delayed dispatch on the asyncio event loop
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterator, Mapping
from dataclasses import replace
from typing import Any

from scopebus.channels.base import Channel, ChannelFactory, resolve_loop
from scopebus.channels.local import get_channel_registry
from scopebus.core.ids import Clock, IdGenerator, generate_unique_id, utc_now
from scopebus.errors import (
    BroadcastDisabled,
    Disposed,
    NotBroadcastEvent,
    NotLocalEvent,
    UnknownEventType,
)
from scopebus.events.arguments import Subscribeable
from scopebus.events.models import (
    Event,
    EventConstraint,
    EventHandler,
    HandlerEntry,
    Subscription,
    normalize_constraints,
)
from scopebus.events.registry import HandlerRegistry
from scopebus.logging_config import get_logger

logger = get_logger(__name__)


class EventDispatcher(Subscribeable):
    """
    Dispatcher over a fixed set of event types.

    Example:
        dispatcher = EventDispatcher(
            {"created": {}, "updated": {"broadcasted": True}},
            broadcast_enabled=True,
            channel_name="records",
        )
        dispatcher.subscribe("created", EventHandler(handle_event=print))
        dispatcher.dispatch("created", payload={"message": "hi"})
        dispatcher.broadcast("updated", payload={"message": "ouch"})
    """

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
        """
        Initialize the dispatcher.

        Args:
            constraints: Mapping of event type to ``{"broadcasted": bool}``
            broadcast_enabled: Open a channel for broadcast types
            channel_name: Name of the channel; required with broadcasting
            channel_factory: Opens the channel; defaults to the default
                :class:`ChannelRegistry`
            id_generator: Source of event and handler ids
            clock: Source of event creation timestamps
            loop: Event loop for timed dispatch; defaults to the running loop
        """
        self.constraints: Mapping[str, EventConstraint] = normalize_constraints(
            constraints
        )
        self._handlers = HandlerRegistry()
        self._id_generator = id_generator
        self._clock = clock
        self._loop = loop
        self._timers: set[asyncio.TimerHandle] = set()
        self._disposed = False
        self._channel: Channel | None = None

        if broadcast_enabled:
            if not channel_name:
                raise ValueError("channel_name is required when broadcasting is enabled")
            factory = channel_factory or get_channel_registry()
            self._channel = factory(channel_name)
            self._channel.on_message(self._on_channel_message)
            logger.info("dispatcher_channel_opened", channel=channel_name)

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @property
    def channel_name(self) -> str | None:
        return self._channel.name if self._channel is not None else None

    @property
    def broadcast_enabled(self) -> bool:
        return self._channel is not None

    @property
    def disposed(self) -> bool:
        return self._disposed

    def _ensure_open(self) -> None:
        if self._disposed:
            raise Disposed(type(self).__name__)

    def has(self, type: str) -> bool:
        """Whether ``type`` is a key of the constraint table."""
        self._ensure_open()
        return isinstance(type, str) and type in self.constraints

    def is_broadcast_type(self, type: str) -> bool:
        self._ensure_open()
        if type not in self.constraints:
            raise UnknownEventType(type)
        return self.constraints[type].broadcasted

    def event_types(self) -> Iterator[str]:
        """Types that have had handlers registered."""
        self._ensure_open()
        return iter(tuple(self._handlers.types()))

    def handler_count(self, type: str | None = None) -> int:
        self._ensure_open()
        if type is not None and not self._handlers.has(type):
            return 0
        return self._handlers.count(type)

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def create_event(
        self,
        type: str,
        payload: Any = None,
        *,
        is_remote_subject: bool = False,
    ) -> Event:
        """
        Build a new event record.

        Args:
            type: Event type from the constraint table
            payload: Event payload
            is_remote_subject: Whether the event came from another context

        Returns:
            The event; ``broadcast`` reflects the constraint table
        """
        return Event(
            id=self._id_generator(),
            type=type,
            payload=payload,
            broadcast=self.is_broadcast_type(type),
            is_remote_subject=is_remote_subject,
            created_time=self._clock(),
        )

    # -------------------------------------------------------------------------
    # Subscription
    # -------------------------------------------------------------------------

    def _subscribe_resolved(
        self, types: tuple[str, ...], handler: EventHandler
    ) -> Subscription:
        self._ensure_open()
        entry = HandlerEntry(
            id=self._id_generator(),
            types=types,
            callback=handler.handle_event,
            run_once=handler.run_once,
        )
        self._handlers.ensure_types(types)
        self._handlers.subscribe(entry)
        logger.debug(
            "event_subscribed",
            handler_id=entry.id,
            event_types=list(types),
            run_once=entry.run_once,
        )

        def remove() -> None:
            self._handlers.unsubscribe(entry)
            logger.debug("event_unsubscribed", handler_id=entry.id)

        return Subscription(id=entry.id, _remove=remove)

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def _run_timeout(self, timeout: float | None, run: Callable[[], Any]) -> None:
        if timeout is None:
            run()
            return

        loop = resolve_loop(self._loop)
        handle: asyncio.TimerHandle | None = None

        def fire() -> None:
            self._timers.discard(handle)
            if not self._disposed:
                run()

        handle = loop.call_later(timeout, fire)
        self._timers.add(handle)

    def dispatch(self, type: str, payload: Any = None, timeout: float | None = None) -> None:
        """
        Dispatch a local event.

        Args:
            type: Local event type
            payload: Event payload
            timeout: Seconds to wait before delivering; deliver inline if None

        Raises:
            UnknownEventType: If the type is not in the constraint table
            NotLocalEvent: If the type is configured as a broadcast type
        """
        if not self.has(type):
            raise UnknownEventType(type)
        if self.constraints[type].broadcasted:
            raise NotLocalEvent(type)

        def run() -> None:
            self._deliver(self.create_event(type, payload, is_remote_subject=False))

        self._run_timeout(timeout, run)

    def broadcast(self, type: str, payload: Any = None, timeout: float | None = None) -> None:
        """
        Deliver a broadcast event locally, then mirror it on the channel.

        Args:
            type: Broadcast event type
            payload: Event payload; must be structurally serializable
            timeout: Seconds to wait before delivering; deliver inline if None

        Raises:
            UnknownEventType: If the type is not in the constraint table
            BroadcastDisabled: If the dispatcher has no channel
            NotBroadcastEvent: If the type is a local type
        """
        if not self.has(type):
            raise UnknownEventType(type)
        if self._channel is None:
            raise BroadcastDisabled(type)
        if not self.constraints[type].broadcasted:
            raise NotBroadcastEvent(type)

        def run() -> None:
            self._channel.check_post()
            event = self.create_event(type, payload, is_remote_subject=False)
            try:
                self._deliver(event)
            finally:
                self._post(replace(event, is_remote_subject=True))

        self._run_timeout(timeout, run)

    def _post(self, event: Event) -> None:
        if self._channel is None:
            return
        self._channel.post(event.to_dict())
        logger.debug(
            "event_broadcasted",
            event_type=event.type,
            event_id=event.id,
            channel=self._channel.name,
        )

    def _on_channel_message(self, message: Any) -> None:
        if self._disposed:
            return
        try:
            event = Event.from_dict(message)
        except (KeyError, TypeError, ValueError):
            logger.warning("channel_message_invalid", channel=self.channel_name)
            return
        if event.type not in self.constraints:
            logger.warning(
                "channel_message_unknown_type",
                channel=self.channel_name,
                event_type=event.type,
            )
            return
        event = replace(event, broadcast=self.constraints[event.type].broadcasted)
        self._deliver(event)

    def _deliver(self, event: Event) -> int:
        """Invoke every handler of ``event.type`` once, then prune run-once handlers."""
        if not self._handlers.has(event.type):
            return 0

        count = 0
        run_once: list[str] = []
        error: Exception | None = None
        for handler_id, entry in self._handlers.entries_for(event.type):
            count += 1
            try:
                entry.callback(event)
            except Exception as exc:
                logger.warning(
                    "event_handler_error",
                    event_type=event.type,
                    handler_id=handler_id,
                    error=repr(exc),
                )
                if error is None:
                    error = exc
                continue
            if entry.run_once:
                run_once.append(handler_id)

        for handler_id in run_once:
            self._handlers.unsubscribe_from(event.type, handler_id)

        logger.debug(
            "event_delivered",
            event_type=event.type,
            event_id=event.id,
            handlers=count,
            pruned=len(run_once),
            remote=event.is_remote_subject,
        )
        if error is not None:
            raise error
        return count

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def clear(self) -> None:
        self._ensure_open()
        self._handlers.clear()

    def dispose(self) -> None:
        """Cancel timed dispatches, close the channel and drop every handler."""
        if self._disposed:
            return
        for handle in list(self._timers):
            handle.cancel()
        self._timers.clear()
        if self._channel is not None:
            self._channel.close()
        self._handlers.clear()
        self._disposed = True
        logger.info("dispatcher_disposed", channel=self.channel_name)
