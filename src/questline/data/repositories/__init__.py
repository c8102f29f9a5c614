"""Repository exports."""

from .achievements_repo import AchievementsRepository
from .quest_chains_repo import QuestChainsRepository
from .quests_repo import QuestsRepository

__all__ = [
    "AchievementsRepository",
    "QuestChainsRepository",
    "QuestsRepository",
]
