"""
Core primitives for scopebus.
"""

from .ids import Clock, IdGenerator, generate_unique_id, utc_now

__all__ = [
    "Clock",
    "IdGenerator",
    "generate_unique_id",
    "utc_now",
]
