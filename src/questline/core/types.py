"""Shared type aliases for the core and domain layers."""
from typing import Literal, Tuple

EventType = Literal["gather", "combat", "craft", "market", "guild", "explore", "level", "skillup"]
# Kinds the engine raises itself when a quest or a chain finishes.
InternalEventType = Literal["quest", "chain"]
QuestType = Literal["daily", "weekly", "story", "event"]
ChainStatus = Literal["active", "completed", "failed", "on_hold"]
ChainCategory = Literal["main", "side", "special", "event", "guild"]
AchievementCategory = Literal[
    "combat", "crafting", "gathering", "exploration", "social", "economy", "misc"
]
RewardKind = Literal["currency", "experience", "item", "title", "unlock"]
UnlockKind = Literal["zone", "quest", "feature", "title"]
NotificationCategory = Literal["quest", "achievement", "chain"]

EVENT_TYPES: Tuple[str, ...] = (
    "gather",
    "combat",
    "craft",
    "market",
    "guild",
    "explore",
    "level",
    "skillup",
)
ACHIEVEMENT_KINDS: Tuple[str, ...] = EVENT_TYPES + ("quest", "chain")
QUEST_TYPES: Tuple[str, ...] = ("daily", "weekly", "story", "event")
CHAIN_CATEGORIES: Tuple[str, ...] = ("main", "side", "special", "event", "guild")
CHAIN_STATUSES: Tuple[str, ...] = ("active", "completed", "failed", "on_hold")
ACHIEVEMENT_CATEGORIES: Tuple[str, ...] = (
    "combat",
    "crafting",
    "gathering",
    "exploration",
    "social",
    "economy",
    "misc",
)
REWARD_KINDS: Tuple[str, ...] = ("currency", "experience", "item", "title", "unlock")
UNLOCK_KINDS: Tuple[str, ...] = ("zone", "quest", "feature", "title")

WILDCARD_TARGET = "any"

__all__ = [
    "ACHIEVEMENT_CATEGORIES",
    "ACHIEVEMENT_KINDS",
    "AchievementCategory",
    "CHAIN_CATEGORIES",
    "CHAIN_STATUSES",
    "ChainCategory",
    "ChainStatus",
    "EVENT_TYPES",
    "EventType",
    "InternalEventType",
    "NotificationCategory",
    "QUEST_TYPES",
    "QuestType",
    "REWARD_KINDS",
    "RewardKind",
    "UNLOCK_KINDS",
    "UnlockKind",
    "WILDCARD_TARGET",
]
