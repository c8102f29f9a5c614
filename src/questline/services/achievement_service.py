"""Cumulative achievements with optional tiers."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from questline.core.clock import Clock
from questline.data.repositories import AchievementsRepository
from questline.data.stores import AchievementRecordStore, PlayerDirectory
from questline.domain.defs import AchievementDef, RewardDef
from questline.domain.progress import zeroed_progress
from questline.domain.progress_state import AchievementProgressRecord
from questline.services.errors import AlreadyRewardedError, NotCompletedError, NotFoundError
from questline.services.notifications import Notifier
from questline.services.progress_tracker import ProgressTracker, TrackedGoal, validate_event
from questline.services.rewards import RewardApplier, grant_rewards
from questline.services.storage import storage_guard

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AchievementUpdate:
    achievement_id: str
    name: str
    progress: int
    target: int
    tiers_unlocked: List[int] = field(default_factory=list)
    completed: bool = False


@dataclass(slots=True)
class AchievementClaim:
    achievement_id: str
    name: str
    tier: int
    reward: RewardDef | None


@dataclass(slots=True)
class AchievementView:
    achievement_id: str
    name: str
    description: str
    category: str
    progress: int
    target: int
    current_tier: int
    total_tiers: int
    completed: bool
    claimed_tiers: List[int]

    @property
    def claimable_tiers(self) -> List[int]:
        return [tier for tier in range(1, self.current_tier + 1) if tier not in self.claimed_tiers]


@dataclass(slots=True)
class AchievementCategoryView:
    category: str
    achievements: List[AchievementView]

    @property
    def completed_count(self) -> int:
        return sum(1 for view in self.achievements if view.completed)

    @property
    def total_count(self) -> int:
        return len(self.achievements)


class AchievementService:
    """Accumulates achievement progress, advances tiers and grants tier rewards."""

    def __init__(
        self,
        *,
        achievements_repo: AchievementsRepository,
        store: AchievementRecordStore,
        players: PlayerDirectory,
        tracker: ProgressTracker,
        notifier: Notifier,
        reward_applier: RewardApplier,
        clock: Clock | None = None,
    ) -> None:
        self._achievements_repo = achievements_repo
        self._store = store
        self._players = players
        self._tracker = tracker
        self._notifier = notifier
        self._reward_applier = reward_applier
        self._clock = clock or Clock()

    def update_progress(
        self, player_id: str, kind: str, target_id: str | None, quantity: int
    ) -> List[AchievementUpdate]:
        """Add an event to every matching achievement.

        Every tier whose threshold the new total meets is unlocked in this call,
        one notification per tier.
        """
        validate_event(kind, quantity)
        self._require_player(player_id)
        updates: List[AchievementUpdate] = []
        for achievement in self._achievements_repo.find_by_requirement(kind, target_id):
            record = self._store.get(player_id, achievement.achievement_id)
            if record is None:
                record = AchievementProgressRecord(
                    player_id=player_id,
                    achievement_id=achievement.achievement_id,
                    requirements=zeroed_progress(achievement.tracked_requirements),
                )
            if record.is_completed:
                continue
            before = record.progress
            goal = TrackedGoal("achievement", achievement.achievement_id, record, achievement.tracked_requirements)
            self._tracker.apply_event(player_id, kind, target_id, quantity, [goal])
            if record.progress == before:
                continue
            unlocked = self._advance_tiers(player_id, achievement, record)
            with storage_guard("achievement progress update"):
                self._store.replace(record)
            updates.append(
                AchievementUpdate(
                    achievement_id=achievement.achievement_id,
                    name=achievement.name,
                    progress=record.progress,
                    target=achievement.final_threshold,
                    tiers_unlocked=unlocked,
                    completed=record.is_completed,
                )
            )
        return updates

    def list_progress(self, player_id: str) -> List[AchievementCategoryView]:
        """Every active achievement with the player's progress, grouped by category."""
        self._require_player(player_id)
        grouped: Dict[str, List[AchievementView]] = {}
        for achievement in self._achievements_repo.all():
            if not achievement.is_active:
                continue
            record = self._store.get(player_id, achievement.achievement_id)
            grouped.setdefault(achievement.category, []).append(self._build_view(achievement, record))
        return [
            AchievementCategoryView(category=category, achievements=views)
            for category, views in sorted(grouped.items())
        ]

    def list_claimable(self, player_id: str) -> List[AchievementView]:
        self._require_player(player_id)
        views: List[AchievementView] = []
        for record in self._store.claimable_for_player(player_id):
            achievement = self._achievements_repo.find(record.achievement_id)
            if achievement is None:
                logger.warning("Player %s holds unknown achievement %s", player_id, record.achievement_id)
                continue
            views.append(self._build_view(achievement, record))
        return views

    def claim(self, player_id: str, achievement_id: str) -> AchievementClaim:
        """Grant the reward of the lowest reached tier that was not claimed yet."""
        self._require_player(player_id)
        achievement = self._achievements_repo.find(achievement_id)
        if achievement is None:
            raise NotFoundError("achievement", achievement_id)
        record = self._store.get(player_id, achievement_id)
        if record is None or record.current_tier == 0:
            raise NotCompletedError("achievement", achievement_id)
        pending = [tier for tier in range(1, record.current_tier + 1) if tier not in record.claimed_tiers]
        if not pending:
            raise AlreadyRewardedError("achievement", achievement_id)
        tier = pending[0]
        reward = achievement.reward_for_tier(tier)
        if reward is not None:
            grant_rewards(
                self._reward_applier, player_id, [reward], entity="achievement", entity_id=achievement_id
            )
        record.claimed_tiers.append(tier)
        record.claimed_at = self._clock.now()
        with storage_guard("achievement claim"):
            self._store.save(record)
        logger.info("Player %s claimed tier %d of achievement %s", player_id, tier, achievement_id)
        return AchievementClaim(achievement_id=achievement_id, name=achievement.name, tier=tier, reward=reward)

    def _advance_tiers(
        self, player_id: str, achievement: AchievementDef, record: AchievementProgressRecord
    ) -> List[int]:
        if achievement.is_tiered:
            reached = achievement.tiers_reached(record.progress)
            total = len(achievement.tiers)
        else:
            reached = 1 if record.is_completed else 0
            total = 1
        unlocked = list(range(record.current_tier + 1, reached + 1))
        for tier in unlocked:
            record.current_tier = tier
            logger.info("Player %s reached tier %d of achievement %s", player_id, tier, achievement.achievement_id)
            self._notifier.tier_reached(
                player_id, achievement.achievement_id, achievement.name, tier, tier == total
            )
        if record.current_tier >= total and not record.is_completed:
            record.is_completed = True
            record.completed_at = self._clock.now()
        return unlocked

    def _build_view(
        self, achievement: AchievementDef, record: AchievementProgressRecord | None
    ) -> AchievementView:
        return AchievementView(
            achievement_id=achievement.achievement_id,
            name=achievement.name,
            description=achievement.description,
            category=achievement.category,
            progress=record.progress if record else 0,
            target=achievement.final_threshold,
            current_tier=record.current_tier if record else 0,
            total_tiers=len(achievement.tiers) or 1,
            completed=record.is_completed if record else False,
            claimed_tiers=list(record.claimed_tiers) if record else [],
        )

    def _require_player(self, player_id: str) -> None:
        if self._players.get(player_id) is None:
            raise NotFoundError("player", player_id)
