"""Quest definition data structures."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Tuple

from questline.core.types import QuestType

from .requirement_def import RequirementDef, RewardDef


@dataclass(frozen=True, slots=True)
class QuestDef:
    quest_id: str
    title: str
    description: str
    quest_type: QuestType
    level: int
    requirements: Tuple[RequirementDef, ...]
    rewards: Tuple[RewardDef, ...]
    time_limit_hours: int = 24
    is_active: bool = True
    created_at: datetime | None = None

    @property
    def has_time_limit(self) -> bool:
        return self.time_limit_hours > 0

    @property
    def is_repeating(self) -> bool:
        return self.quest_type in ("daily", "weekly")
