"""
Channel contract for cross-context delivery.

A channel is append-only on the sending side (``post``) and callback
driven on the receiving side (``on_message``). Peers never receive their
own posts, and inbound messages are always delivered as a scheduled task
rather than inline with the sender's call.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

MessageHandler = Callable[[Any], Any]


@runtime_checkable
class Channel(Protocol):
    @property
    def name(self) -> str: ...

    @property
    def closed(self) -> bool: ...

    def check_post(self) -> None: ...

    def post(self, message: Any) -> None: ...

    def on_message(self, handler: MessageHandler) -> None: ...

    def close(self) -> None: ...


ChannelFactory = Callable[[str], Channel]


def resolve_loop(
    loop: asyncio.AbstractEventLoop | None,
) -> asyncio.AbstractEventLoop:
    """Return ``loop`` or the running loop; raises RuntimeError outside one."""
    if loop is not None:
        return loop
    return asyncio.get_running_loop()


def running_loop_or_none() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None
