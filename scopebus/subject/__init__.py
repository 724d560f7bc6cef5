"""
Scoped buses and event-publishing subjects.
"""

from .base import BroadcastedSubject, Subject
from .bus import ROOT_SCOPE, Bus, Node, join_scope, split_scope

__all__ = [
    "ROOT_SCOPE",
    "BroadcastedSubject",
    "Bus",
    "Node",
    "Subject",
    "join_scope",
    "split_scope",
]
