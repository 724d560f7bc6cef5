"""
In-process channels.

:class:`ChannelRegistry` is the process-scoped owner of every open
:class:`LocalChannel`. Channels opened under the same name in one registry
are peers: a message posted on one is copied and delivered to every other
open peer on that peer's event loop.

Example:
    registry = ChannelRegistry()
    a = registry.open("tabs")
    b = registry.open("tabs")
    b.on_message(print)
    a.post({"hello": "world"})   # printed by b on the next loop iteration
    registry.close_all()
"""

from __future__ import annotations

import asyncio
import copy
from typing import Any

from scopebus.channels.base import MessageHandler, running_loop_or_none
from scopebus.errors import ChannelClosed, NoEventLoop
from scopebus.logging_config import get_logger

logger = get_logger(__name__)


class LocalChannel:
    """One endpoint of a named in-process channel."""

    def __init__(
        self,
        name: str,
        registry: ChannelRegistry,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._name = name
        self._registry = registry
        self._loop = loop
        self._handler: MessageHandler | None = None
        self._closed = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def closed(self) -> bool:
        return self._closed

    def on_message(self, handler: MessageHandler) -> None:
        self._handler = handler

    def check_post(self) -> None:
        """Raise the error ``post`` would raise now, without sending anything."""
        self._targets()

    def post(self, message: Any) -> None:
        targets = self._targets()
        for peer, loop in targets:
            loop.call_soon_threadsafe(peer._receive, copy.deepcopy(message))
        logger.debug("channel_posted", channel=self._name, peers=len(targets))

    def _targets(self) -> list[tuple[LocalChannel, asyncio.AbstractEventLoop]]:
        # Every peer's loop is resolved before anything is scheduled
        if self._closed:
            raise ChannelClosed(self._name)
        running = running_loop_or_none()
        targets = []
        for peer in self._registry.peers(self):
            loop = peer._loop or running
            if loop is None:
                raise NoEventLoop(self._name)
            targets.append((peer, loop))
        return targets

    def _receive(self, message: Any) -> None:
        if self._closed or self._handler is None:
            return
        self._handler(message)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._handler = None
        self._registry._release(self)
        logger.debug("channel_closed", channel=self._name)


class ChannelRegistry:
    """
    Process-scoped registry of open local channels.

    The registry is itself a channel factory: ``registry("name")`` is the
    same as ``registry.open("name")``.

    Args:
        loop: Event loop used for deliveries; defaults to the loop running
            when each channel is opened, or the sender's running loop
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        self._channels: list[LocalChannel] = []

    def open(self, name: str) -> LocalChannel:
        if not name:
            raise ValueError("channel name is required")
        channel = LocalChannel(
            name, self, loop=self._loop or running_loop_or_none()
        )
        self._channels.append(channel)
        logger.debug("channel_opened", channel=name, open_channels=len(self._channels))
        return channel

    __call__ = open

    def peers(self, channel: LocalChannel) -> list[LocalChannel]:
        return [
            other
            for other in self._channels
            if other is not channel and other.name == channel.name and not other.closed
        ]

    def channels(self, name: str | None = None) -> tuple[LocalChannel, ...]:
        return tuple(c for c in self._channels if name is None or c.name == name)

    def _release(self, channel: LocalChannel) -> None:
        if channel in self._channels:
            self._channels.remove(channel)

    def close_all(self) -> int:
        """Close every open channel, most recently opened first."""
        channels = list(reversed(self._channels))
        for channel in channels:
            channel.close()
        if channels:
            logger.info("channels_closed", count=len(channels))
        return len(channels)


# =============================================================================
# Default Instance
# =============================================================================

_channel_registry: ChannelRegistry | None = None


def get_channel_registry() -> ChannelRegistry:
    """Get or create the default channel registry."""
    global _channel_registry
    if _channel_registry is None:
        _channel_registry = ChannelRegistry()
    return _channel_registry


def reset_channel_registry() -> None:
    """Close all channels of the default registry and drop it."""
    global _channel_registry
    if _channel_registry is not None:
        _channel_registry.close_all()
    _channel_registry = None
