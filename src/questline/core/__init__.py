"""Core helpers shared by every layer."""

from .clock import Clock, ManualClock
from .locks import PlayerLocks
from .types import ACHIEVEMENT_KINDS, EVENT_TYPES, WILDCARD_TARGET

__all__ = [
    "ACHIEVEMENT_KINDS",
    "Clock",
    "EVENT_TYPES",
    "ManualClock",
    "PlayerLocks",
    "WILDCARD_TARGET",
]
