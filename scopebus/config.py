"""
Runtime configuration for scopebus.

Settings are read from environment variables so an application can tune
logging and the Redis transport without code changes:

- ``SCOPEBUS_LOG_LEVEL``: DEBUG, INFO, WARNING, ERROR or CRITICAL
- ``SCOPEBUS_LOG_JSON``: render log lines as JSON when truthy
- ``SCOPEBUS_REDIS_URL``: Redis URL used by :class:`RedisChannel`
- ``SCOPEBUS_CHANNEL_PREFIX``: prefix for Redis pub/sub topics
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_REDIS_URL = "redis://127.0.0.1:6379/0"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_TRUTHY = ("1", "true", "yes", "on")


def get_redis_url() -> str:
    return os.environ.get("SCOPEBUS_REDIS_URL", DEFAULT_REDIS_URL)


@dataclass(frozen=True)
class BusConfig:
    """
    Process-wide scopebus settings.

    Args:
        log_level: Minimum level passed to the stdlib logger
        log_json: Whether structlog renders JSON instead of console output
        redis_url: Connection URL for the Redis channel transport
        channel_prefix: Prefix prepended to Redis pub/sub topics
    """

    log_level: str = "INFO"
    log_json: bool = False
    redis_url: str = DEFAULT_REDIS_URL
    channel_prefix: str = "scopebus"

    def __post_init__(self):
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
        if not self.channel_prefix:
            raise ValueError("channel_prefix is required")

    @classmethod
    def from_env(cls) -> BusConfig:
        """Build a config from ``SCOPEBUS_*`` environment variables."""
        return cls(
            log_level=os.environ.get("SCOPEBUS_LOG_LEVEL", "INFO").upper(),
            log_json=os.environ.get("SCOPEBUS_LOG_JSON", "").lower() in _TRUTHY,
            redis_url=get_redis_url(),
            channel_prefix=os.environ.get("SCOPEBUS_CHANNEL_PREFIX", "scopebus"),
        )
