"""
Cross-context transports for broadcast events and signals.
"""

from .base import Channel, ChannelFactory, MessageHandler
from .local import (
    ChannelRegistry,
    LocalChannel,
    get_channel_registry,
    reset_channel_registry,
)
from .redis_channel import RedisChannel, redis_channel_factory

__all__ = [
    "Channel",
    "ChannelFactory",
    "ChannelRegistry",
    "LocalChannel",
    "MessageHandler",
    "RedisChannel",
    "get_channel_registry",
    "redis_channel_factory",
    "reset_channel_registry",
]
