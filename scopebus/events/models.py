"""
Data types for the event dispatcher.

Events are immutable records built once per ``dispatch``/``broadcast`` call.
Handlers are stored as :class:`HandlerEntry` objects keyed by a fresh id,
and callers hold on to a :class:`Subscription` to remove them again.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any

# Handler callback: receives the dispatched event
EventCallback = Callable[["Event"], Any]


# =============================================================================
# Events
# =============================================================================


@dataclass(frozen=True)
class Event:
    """
    Event record passed to handlers.

    Attributes:
        id: Unique event ID
        type: Event type, root-qualified in the registry and scope-relative
            when observed through a Node
        payload: Caller supplied payload
        broadcast: Whether the type is configured as a broadcast type
        is_remote_subject: Whether the event arrived over a channel
        created_time: When the event was created
    """

    id: str
    type: str
    payload: Any
    broadcast: bool
    is_remote_subject: bool
    created_time: datetime

    def to_dict(self) -> dict[str, Any]:
        """Convert to the structurally serializable channel message form."""
        return {
            "id": self.id,
            "type": self.type,
            "payload": self.payload,
            "broadcast": self.broadcast,
            "is_remote_subject": self.is_remote_subject,
            "created_time": self.created_time.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Event:
        """Create from a channel message."""
        created = data["created_time"]
        if isinstance(created, str):
            created = datetime.fromisoformat(created)
        return cls(
            id=data["id"],
            type=data["type"],
            payload=data.get("payload"),
            broadcast=bool(data.get("broadcast", False)),
            is_remote_subject=bool(data.get("is_remote_subject", False)),
            created_time=created,
        )


@dataclass(frozen=True)
class EventConstraint:
    """Per-type configuration from the dispatcher's constraint table."""

    broadcasted: bool = False


def normalize_constraints(
    constraints: Mapping[str, EventConstraint | Mapping[str, Any]],
) -> Mapping[str, EventConstraint]:
    """Turn a ``{type: {"broadcasted": bool}}`` table into constraint records."""
    result: dict[str, EventConstraint] = {}
    for type, value in constraints.items():
        if not isinstance(type, str):
            raise TypeError(f"event types must be strings, got {type!r}")
        if isinstance(value, EventConstraint):
            result[type] = value
        else:
            result[type] = EventConstraint(
                broadcasted=bool((value or {}).get("broadcasted", False))
            )
    return MappingProxyType(result)


# =============================================================================
# Handlers
# =============================================================================


@dataclass(frozen=True)
class EventHandler:
    """
    Handler object accepted by ``subscribe``.

    Attributes:
        handle_event: Callback invoked with each delivered event
        run_once: Remove the handler after its first successful invocation
    """

    handle_event: EventCallback
    run_once: bool = False


@dataclass(frozen=True)
class HandlerEntry:
    """A registered handler: one id, one callback, one set of types."""

    id: str
    types: tuple[str, ...]
    callback: EventCallback
    run_once: bool = False


@dataclass
class Subscription:
    """Handle returned by ``subscribe``; ``unsubscribe()`` is idempotent."""

    id: str
    _remove: Callable[[], Any] = field(repr=False)
    active: bool = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._remove()
