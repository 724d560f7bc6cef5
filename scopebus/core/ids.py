"""
Identity and clock helpers shared by events, handlers and channels.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from datetime import datetime, timezone

IdGenerator = Callable[[], str]
Clock = Callable[[], datetime]


def generate_unique_id() -> str:
    return uuid.uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
