"""Achievement definition data structures."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from .requirement_def import RequirementDef, RewardDef


@dataclass(frozen=True, slots=True)
class AchievementTierDef:
    tier: int
    threshold: int
    reward: RewardDef | None = None


@dataclass(frozen=True, slots=True)
class AchievementDef:
    """Single or tiered achievement.

    Tier thresholds are cumulative: a tier is reached once total progress for
    the requirement is at or above its threshold.
    """

    achievement_id: str
    name: str
    description: str
    category: str
    requirement: RequirementDef
    reward: RewardDef | None = None
    tiers: Tuple[AchievementTierDef, ...] = ()
    is_active: bool = True

    @property
    def is_tiered(self) -> bool:
        return bool(self.tiers)

    @property
    def final_threshold(self) -> int:
        if self.tiers:
            return self.tiers[-1].threshold
        return self.requirement.threshold

    @property
    def tracked_requirements(self) -> Tuple[RequirementDef, ...]:
        """The requirement as the progress tracker sees it, saturating at the last tier."""
        return (
            RequirementDef(
                kind=self.requirement.kind,
                target=self.requirement.target,
                threshold=self.final_threshold,
                description=self.requirement.description,
            ),
        )

    def tier(self, tier_number: int) -> AchievementTierDef | None:
        for tier in self.tiers:
            if tier.tier == tier_number:
                return tier
        return None

    def tiers_reached(self, progress: int) -> int:
        """Return how many tiers a cumulative progress value has reached."""
        reached = 0
        for tier in self.tiers:
            if progress < tier.threshold:
                break
            reached = tier.tier
        return reached

    def reward_for_tier(self, tier_number: int) -> RewardDef | None:
        if not self.tiers:
            return self.reward
        tier = self.tier(tier_number)
        return tier.reward if tier else None
