"""
Single-value change notifications.
"""

from .signal import BroadcastedSignal, Signal, Slot

__all__ = [
    "BroadcastedSignal",
    "Signal",
    "Slot",
]
