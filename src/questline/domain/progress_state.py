"""Per-player progress records for quests, achievements and chains."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List

from questline.core.types import ChainStatus


class QuestStatus(Enum):
    """Lifecycle of one player's relationship to one quest."""

    NONE = "none"
    ACTIVE = "active"
    COMPLETED = "completed"
    REWARDED = "rewarded"


@dataclass(slots=True)
class RequirementProgress:
    """Tracks progress for a single requirement of a goal."""

    requirement_index: int
    current: int = 0
    completed: bool = False


@dataclass(slots=True)
class QuestProgressRecord:
    """Tracks progress for one quest assigned to one player."""

    player_id: str
    quest_id: str
    started_at: datetime
    requirements: List[RequirementProgress] = field(default_factory=list)
    is_completed: bool = False
    is_rewarded: bool = False
    completed_at: datetime | None = None
    rewarded_at: datetime | None = None

    @property
    def record_id(self) -> str:
        return self.quest_id

    @property
    def status(self) -> QuestStatus:
        if self.is_rewarded:
            return QuestStatus.REWARDED
        if self.is_completed:
            return QuestStatus.COMPLETED
        return QuestStatus.ACTIVE


@dataclass(slots=True)
class AchievementProgressRecord:
    """Cumulative achievement progress.

    ``requirements`` holds a single entry whose threshold is the last tier's
    threshold; ``current_tier`` counts the tiers reached so far and
    ``claimed_tiers`` the tiers whose reward was granted. Single achievements
    use tier 1 as their only claimable tier.
    """

    player_id: str
    achievement_id: str
    requirements: List[RequirementProgress] = field(default_factory=list)
    current_tier: int = 0
    is_completed: bool = False
    completed_at: datetime | None = None
    claimed_tiers: List[int] = field(default_factory=list)
    claimed_at: datetime | None = None

    @property
    def record_id(self) -> str:
        return self.achievement_id

    @property
    def progress(self) -> int:
        return self.requirements[0].current if self.requirements else 0


@dataclass(slots=True)
class ChainStepRecord:
    step: int
    completed_at: datetime
    choice_made: str | None = None


@dataclass(slots=True)
class PlayerChainProgress:
    """One player's walk through one quest chain.

    ``pending_branch_step`` is set while the chain waits for a branch choice
    after the quest of that step was completed.
    """

    player_id: str
    chain_id: str
    started_at: datetime
    current_step: int = 1
    current_quest_id: str | None = None
    completed_steps: List[ChainStepRecord] = field(default_factory=list)
    status: ChainStatus = "active"
    is_rewarded: bool = False
    pending_branch_step: int | None = None
    completed_at: datetime | None = None

    @property
    def record_id(self) -> str:
        return self.chain_id

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    @property
    def awaiting_choice(self) -> bool:
        return self.pending_branch_step is not None

    def choice_for_step(self, step: int) -> str | None:
        for entry in self.completed_steps:
            if entry.step == step:
                return entry.choice_made
        return None
