"""
Per-type handler registry.

A handler registered for several types appears once in each type's map
under the same id, so removing it by id clears every registration.
Insertion order of each map is the delivery order for that type.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from scopebus.errors import UnknownType
from scopebus.events.models import HandlerEntry


class _EntriesView:
    """Restartable view over one type's handlers; each pass iterates a snapshot."""

    def __init__(self, handlers: dict[str, HandlerEntry]) -> None:
        self._handlers = handlers

    def __iter__(self) -> Iterator[tuple[str, HandlerEntry]]:
        return iter(list(self._handlers.items()))

    def __len__(self) -> int:
        return len(self._handlers)


class HandlerRegistry:
    def __init__(self) -> None:
        self._handler_map: dict[str, dict[str, HandlerEntry]] = {}

    def _get(self, type: str) -> dict[str, HandlerEntry]:
        try:
            return self._handler_map[type]
        except KeyError:
            raise UnknownType(type) from None

    def has(self, type: str) -> bool:
        return type in self._handler_map

    def ensure_types(self, types: str | Iterable[str]) -> HandlerRegistry:
        if isinstance(types, str):
            types = [types]
        for type in types:
            self._handler_map.setdefault(type, {})
        return self

    def subscribe(self, entry: HandlerEntry) -> None:
        maps = [self._get(type) for type in entry.types]
        for handlers in maps:
            handlers[entry.id] = entry

    def unsubscribe(self, id_or_entry: str | HandlerEntry) -> None:
        if isinstance(id_or_entry, str):
            handler_id, types = id_or_entry, list(self._handler_map)
        else:
            handler_id, types = id_or_entry.id, id_or_entry.types
        for type in types:
            handlers = self._handler_map.get(type)
            if handlers is not None:
                handlers.pop(handler_id, None)

    def unsubscribe_from(self, type: str, id_or_entry: str | HandlerEntry) -> None:
        handler_id = id_or_entry if isinstance(id_or_entry, str) else id_or_entry.id
        self._get(type).pop(handler_id, None)

    def entries_for(self, type: str) -> _EntriesView:
        return _EntriesView(self._get(type))

    def types(self) -> Iterator[str]:
        yield from list(self._handler_map)

    def count(self, type: str | None = None) -> int:
        """Number of handlers for ``type``, or distinct handlers overall."""
        if type is not None:
            return len(self._get(type))
        ids: set[str] = set()
        for handlers in self._handler_map.values():
            ids.update(handlers)
        return len(ids)

    def clear(self) -> None:
        for handlers in self._handler_map.values():
            handlers.clear()
