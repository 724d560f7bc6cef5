"""
Redis pub/sub channel for cross-process delivery.

Messages are JSON encoded inside an envelope carrying the sending
instance's origin id, so an endpoint never receives its own posts. The
redis-py worker thread only decodes messages; handlers always run on the
owning asyncio event loop.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from typing import Any

from redis import Redis

from scopebus.channels.base import MessageHandler, resolve_loop
from scopebus.config import BusConfig
from scopebus.core.ids import generate_unique_id
from scopebus.errors import ChannelClosed
from scopebus.logging_config import get_logger

logger = get_logger(__name__)


class RedisChannel:
    """
    Named channel backed by a Redis pub/sub topic.

    Args:
        name: Channel name; the topic is ``f"{prefix}:{name}"``
        client: Redis client; created from ``url`` when omitted
        url: Redis URL, defaults to the configured ``SCOPEBUS_REDIS_URL``
        prefix: Topic prefix, defaults to ``SCOPEBUS_CHANNEL_PREFIX``
        loop: Event loop handlers run on; defaults to the running loop
        poll_interval: Sleep time of the pub/sub worker thread
    """

    def __init__(
        self,
        name: str,
        *,
        client: Redis | None = None,
        url: str | None = None,
        prefix: str | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
        poll_interval: float = 0.01,
    ) -> None:
        if not name:
            raise ValueError("channel name is required")
        config = BusConfig.from_env()
        self._name = name
        self._topic = f"{prefix or config.channel_prefix}:{name}"
        self._client = client or Redis.from_url(url or config.redis_url)
        self._loop = resolve_loop(loop)
        self._origin = generate_unique_id()
        self._handler: MessageHandler | None = None
        self._closed = False

        self._pubsub = self._client.pubsub(ignore_subscribe_messages=True)
        self._pubsub.subscribe(**{self._topic: self._on_raw_message})
        self._worker = self._pubsub.run_in_thread(
            sleep_time=poll_interval,
            daemon=True,
            exception_handler=self._on_worker_error,
        )
        logger.info("redis_channel_opened", channel=name, topic=self._topic)

    @property
    def name(self) -> str:
        return self._name

    @property
    def topic(self) -> str:
        return self._topic

    @property
    def closed(self) -> bool:
        return self._closed

    def on_message(self, handler: MessageHandler) -> None:
        self._handler = handler

    def check_post(self) -> None:
        if self._closed:
            raise ChannelClosed(self._name)

    def post(self, message: Any) -> None:
        self.check_post()
        data = json.dumps({"origin": self._origin, "message": message})
        receivers = self._client.publish(self._topic, data)
        logger.debug("redis_channel_posted", channel=self._name, receivers=receivers)

    def _on_raw_message(self, raw: dict[str, Any]) -> None:
        try:
            envelope = json.loads(raw["data"])
        except (TypeError, ValueError):
            logger.warning("redis_channel_bad_message", channel=self._name)
            return
        if envelope.get("origin") == self._origin:
            return
        try:
            self._loop.call_soon_threadsafe(self._receive, envelope.get("message"))
        except RuntimeError:
            logger.warning("redis_channel_loop_closed", channel=self._name)

    def _on_worker_error(self, exc: BaseException, pubsub: Any, worker: Any) -> None:
        logger.warning("redis_channel_worker_error", channel=self._name, error=repr(exc))

    def _receive(self, message: Any) -> None:
        if self._closed or self._handler is None:
            return
        self._handler(message)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._handler = None
        # the worker closes the pubsub connection when its loop exits
        self._worker.stop()
        self._worker.join(timeout=1.0)
        logger.info("redis_channel_closed", channel=self._name)


def redis_channel_factory(
    *,
    client: Redis | None = None,
    url: str | None = None,
    prefix: str | None = None,
    loop: asyncio.AbstractEventLoop | None = None,
) -> Callable[[str], RedisChannel]:
    """Build a channel factory opening :class:`RedisChannel` endpoints."""

    def factory(name: str) -> RedisChannel:
        return RedisChannel(name, client=client, url=url, prefix=prefix, loop=loop)

    return factory
