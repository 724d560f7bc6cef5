"""
Exception hierarchy for scopebus.

Every failure raised by the dispatcher, the scoped bus layer, signals and
channels derives from :class:`ScopeBusError`, so callers can catch the
whole family at once or pick out a single condition.
"""

from __future__ import annotations


class ScopeBusError(Exception):
    """Base class for all scopebus errors."""


class UnknownEventType(ScopeBusError):
    """Raised when an event type is not part of a dispatcher's constraints."""

    def __init__(self, type: str, message: str | None = None):
        self.type = type
        self.message = message or (
            f"an event of type={type!r} is not specified in the constraints"
        )
        super().__init__(self.message)


class NotLocalEvent(ScopeBusError):
    """Raised when ``dispatch`` is used for a broadcast-only type."""

    def __init__(self, type: str):
        self.type = type
        self.message = (
            f"an event of type={type!r} has to be broadcasted, "
            "`dispatch` is only used for local events"
        )
        super().__init__(self.message)


class NotBroadcastEvent(ScopeBusError):
    """Raised when ``broadcast`` is used for a local type."""

    def __init__(self, type: str):
        self.type = type
        self.message = (
            f"an event of type={type!r} is a local event, "
            "`broadcast` is only used for broadcasted events"
        )
        super().__init__(self.message)


class BroadcastDisabled(ScopeBusError):
    """Raised when broadcasting on a dispatcher that has no channel."""

    def __init__(self, type: str):
        self.type = type
        self.message = (
            f"failed to broadcast an event of type={type!r}, "
            "broadcasting is not enabled for this dispatcher"
        )
        super().__init__(self.message)


class InvalidArgument(ScopeBusError, TypeError):
    """Raised when a subscribe call cannot be resolved to a known shape."""


class Disposed(ScopeBusError):
    """Raised when an object is used after ``dispose()``."""

    def __init__(self, name: str, message: str | None = None):
        self.name = name
        self.message = message or f"{name} has been disposed"
        super().__init__(self.message)


class UnknownType(ScopeBusError, KeyError):
    """Raised by the handler registry for a type that was never ensured."""

    def __init__(self, type: str):
        self.type = type
        self.message = f"no event of type={type!r} is registered for this registry"
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


class ChannelClosed(ScopeBusError):
    """Raised when posting on a channel that has been closed."""

    def __init__(self, name: str):
        self.name = name
        self.message = f"channel {name!r} is closed"
        super().__init__(self.message)


class NoEventLoop(ScopeBusError, RuntimeError):
    """Raised when a channel post has a peer with no event loop to deliver on."""

    def __init__(self, name: str):
        self.name = name
        self.message = (
            f"channel {name!r} has a peer without an event loop; open channels "
            "inside a running loop or pass loop= to the ChannelRegistry"
        )
        super().__init__(self.message)
