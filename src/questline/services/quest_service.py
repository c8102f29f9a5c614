"""Quest lifecycle: assignment, progress, cadence refresh and claims."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Tuple

from questline.config import EngineConfig
from questline.core.clock import Clock
from questline.data.repositories import QuestsRepository
from questline.data.stores import ChainRecordStore, PlayerDirectory, QuestRecordStore
from questline.domain.defs import QuestDef, RewardDef
from questline.domain.player import PlayerProfile
from questline.domain.progress import zeroed_progress
from questline.domain.progress_state import QuestProgressRecord, QuestStatus
from questline.services.cadence import is_stale
from questline.services.errors import (
    AlreadyRewardedError,
    DuplicateActiveError,
    NotCompletedError,
    NotFoundError,
    QuestExpiredError,
)
from questline.services.notifications import Notifier
from questline.services.progress_tracker import ProgressTracker, TrackedGoal
from questline.services.rewards import RewardApplier, grant_rewards
from questline.services.storage import storage_guard

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class QuestUpdate:
    quest_id: str
    quest_title: str
    assigned: bool = False
    completed: bool = False
    rewarded: bool = False
    rewards: Tuple[RewardDef, ...] = ()


@dataclass(slots=True)
class RequirementView:
    label: str
    current: int
    target: int
    completed: bool


@dataclass(slots=True)
class QuestStatusView:
    quest_id: str
    title: str
    description: str
    quest_type: str
    status: QuestStatus
    requirements: List[RequirementView]
    rewards: Tuple[RewardDef, ...]
    started_at: datetime
    expires_at: datetime | None = None

    @property
    def is_claimable(self) -> bool:
        return self.status is QuestStatus.COMPLETED


@dataclass(slots=True)
class QuestRefreshResult:
    assigned: List[QuestUpdate] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)

    @property
    def refreshed(self) -> bool:
        return bool(self.assigned or self.removed)


class QuestService:
    """Owns the NONE -> ACTIVE -> COMPLETED -> REWARDED state machine per player and quest."""

    def __init__(
        self,
        *,
        quests_repo: QuestsRepository,
        store: QuestRecordStore,
        players: PlayerDirectory,
        tracker: ProgressTracker,
        notifier: Notifier,
        reward_applier: RewardApplier,
        clock: Clock | None = None,
        config: EngineConfig | None = None,
        chain_store: ChainRecordStore | None = None,
    ) -> None:
        self._quests_repo = quests_repo
        self._store = store
        self._players = players
        self._tracker = tracker
        self._notifier = notifier
        self._reward_applier = reward_applier
        self._clock = clock or Clock()
        self._config = config or EngineConfig()
        self._chain_store = chain_store

    def assign(self, player_id: str, quest_id: str) -> QuestUpdate:
        """Give the player a fresh, zeroed record for the quest."""
        self._require_player(player_id)
        quest = self._require_quest(quest_id)
        self._create_record(player_id, quest)
        return QuestUpdate(quest_id=quest.quest_id, quest_title=quest.title, assigned=True)

    def ensure_assigned(self, player_id: str, quest_id: str) -> QuestProgressRecord:
        """Return the player's live record for the quest, assigning one if needed.

        Live means active and unexpired, or completed and not yet rewarded.
        """
        self._require_player(player_id)
        quest = self._require_quest(quest_id)
        record = self._store.get(player_id, quest_id)
        if record is not None and not record.is_rewarded and not self._is_expired(record, quest):
            return record
        return self._create_record(player_id, quest)

    def get_record(self, player_id: str, quest_id: str) -> QuestProgressRecord:
        self._require_player(player_id)
        self._require_quest(quest_id)
        record = self._store.get(player_id, quest_id)
        if record is None:
            raise NotFoundError("quest progress", quest_id, player_id=player_id)
        return record

    def has_completed(self, player_id: str, quest_id: str) -> bool:
        """True once the player has ever completed the quest, even if it was reissued since."""
        return self._store.has_completed(player_id, quest_id)

    def is_completed(self, player_id: str, quest_id: str) -> bool:
        record = self._store.get(player_id, quest_id)
        return record is not None and record.is_completed

    def is_expired(self, player_id: str, quest_id: str) -> bool:
        record = self._store.get(player_id, quest_id)
        quest = self._quests_repo.find(quest_id)
        return record is not None and quest is not None and self._is_expired(record, quest)

    def discard_unclaimed(self, player_id: str, quest_id: str) -> bool:
        """Drop a completed record whose reward was never claimed."""
        record = self._store.get(player_id, quest_id)
        if record is None or not record.is_completed or record.is_rewarded:
            return False
        with storage_guard("quest discard"):
            self._store.delete(player_id, quest_id)
        logger.info("Discarded unclaimed quest %s for player %s", quest_id, player_id)
        return True

    def list_active(self, player_id: str, quest_type: str | None = None) -> List[QuestStatusView]:
        """Unrewarded, unexpired quests, optionally filtered by quest type."""
        self._require_player(player_id)
        views: List[QuestStatusView] = []
        for record in self._store.for_player(player_id):
            if record.is_rewarded:
                continue
            quest = self._quests_repo.find(record.quest_id)
            if quest is None:
                logger.warning("Player %s holds unknown quest %s", player_id, record.quest_id)
                continue
            if quest_type is not None and quest.quest_type != quest_type:
                continue
            if self._is_expired(record, quest):
                continue
            views.append(self._build_status_view(record, quest))
        views.sort(key=lambda view: view.started_at, reverse=True)
        return views

    def refresh_daily(self, player_id: str) -> QuestRefreshResult:
        """Reissue daily and weekly quests according to the calendar reset policy.

        Dailies are replaced only once per daily period: incomplete dailies from
        earlier periods are dropped, except ones an active chain is waiting on,
        and up to ``daily_quest_count`` new ones are
        assigned. Weeklies follow the same rule on the weekly period.
        """
        player = self._require_player(player_id)
        result = QuestRefreshResult()
        self._refresh_cadence(player, "daily", self._config.daily_quest_count, result)
        self._refresh_cadence(player, "weekly", self._config.weekly_quest_count, result)
        if result.assigned:
            self._notifier.quests_assigned(player_id, len(result.assigned))
            logger.info(
                "Assigned %d quest(s) to player %s: %s",
                len(result.assigned),
                player_id,
                ", ".join(update.quest_id for update in result.assigned),
            )
        return result

    def record_event(
        self, player_id: str, event_type: str, target_id: str | None, quantity: int
    ) -> List[QuestUpdate]:
        """Feed one event to every active quest; returns the quests it completed."""
        self._require_player(player_id)
        goals: List[TrackedGoal] = []
        quests_by_id: dict[str, QuestDef] = {}
        for record in self._store.active_for_player(player_id):
            quest = self._quests_repo.find(record.quest_id)
            if quest is None or self._is_expired(record, quest):
                continue
            quests_by_id[quest.quest_id] = quest
            goals.append(TrackedGoal("quest", quest.quest_id, record, quest.requirements))
        if not goals:
            return []
        with storage_guard("quest progress update"):
            completed = self._tracker.apply_event(player_id, event_type, target_id, quantity, goals)
            for goal in goals:
                self._store.save(goal.record)  # type: ignore[arg-type]
            for done in completed:
                self._store.mark_completed(player_id, done.goal_id)
        updates: List[QuestUpdate] = []
        for done in completed:
            quest = quests_by_id[done.goal_id]
            self._notifier.quest_completed(player_id, quest.quest_id, quest.title)
            updates.append(QuestUpdate(quest_id=quest.quest_id, quest_title=quest.title, completed=True))
        return updates

    def claim(self, player_id: str, quest_id: str) -> QuestUpdate:
        """Grant the quest's rewards once; only valid in the COMPLETED state."""
        self._require_player(player_id)
        quest = self._require_quest(quest_id)
        record = self._store.get(player_id, quest_id)
        if record is None:
            raise NotFoundError("quest progress", quest_id, player_id=player_id)
        if record.is_rewarded:
            raise AlreadyRewardedError("quest", quest_id)
        if not record.is_completed:
            expires_at = self._expires_at(record, quest)
            if expires_at is not None and self._clock.now() >= expires_at:
                raise QuestExpiredError(quest_id, expires_at)
            raise NotCompletedError("quest", quest_id)
        grant_rewards(self._reward_applier, player_id, quest.rewards, entity="quest", entity_id=quest_id)
        record.is_rewarded = True
        record.rewarded_at = self._clock.now()
        with storage_guard("quest claim"):
            self._store.save(record)
        logger.info("Player %s claimed quest %s", player_id, quest_id)
        return QuestUpdate(quest_id=quest.quest_id, quest_title=quest.title, rewarded=True, rewards=quest.rewards)

    def _refresh_cadence(
        self, player: PlayerProfile, quest_type: str, count: int, result: QuestRefreshResult
    ) -> None:
        now = self._clock.now()
        held: List[QuestProgressRecord] = []
        for record in self._store.for_player(player.player_id):
            quest = self._quests_repo.find(record.quest_id)
            if quest is not None and quest.quest_type == quest_type:
                held.append(record)
        if any(not is_stale(record.started_at, now, quest_type, self._config) for record in held):
            return
        with storage_guard(f"{quest_type} refresh"):
            for record in held:
                if not record.is_completed and not self._is_chain_step(player.player_id, record.quest_id):
                    self._store.delete(player.player_id, record.quest_id)
                    result.removed.append(record.quest_id)
        for quest in self._quests_repo.find_for_level(player.level, quest_type, -1):
            if count <= 0:
                break
            existing = self._store.get(player.player_id, quest.quest_id)
            if existing is not None and not existing.is_rewarded:
                if existing.is_completed or not self._is_expired(existing, quest):
                    continue
            self._create_record(player.player_id, quest)
            result.assigned.append(QuestUpdate(quest_id=quest.quest_id, quest_title=quest.title, assigned=True))
            count -= 1

    def _create_record(self, player_id: str, quest: QuestDef) -> QuestProgressRecord:
        existing = self._store.get(player_id, quest.quest_id)
        if existing is not None and not existing.is_rewarded:
            if existing.is_completed:
                raise DuplicateActiveError("quest", quest.quest_id, "completed")
            if not self._is_expired(existing, quest):
                raise DuplicateActiveError("quest", quest.quest_id, "active")
        record = QuestProgressRecord(
            player_id=player_id,
            quest_id=quest.quest_id,
            started_at=self._clock.now(),
            requirements=zeroed_progress(quest.requirements),
        )
        with storage_guard("quest assignment"):
            self._store.replace(record)
        logger.debug("Assigned quest %s to player %s", quest.quest_id, player_id)
        return record

    def _build_status_view(self, record: QuestProgressRecord, quest: QuestDef) -> QuestStatusView:
        requirements: List[RequirementView] = []
        for index, requirement in enumerate(quest.requirements):
            entry = record.requirements[index] if index < len(record.requirements) else None
            requirements.append(
                RequirementView(
                    label=requirement.description or f"{requirement.kind} {requirement.target or 'any'}",
                    current=entry.current if entry else 0,
                    target=requirement.threshold,
                    completed=entry.completed if entry else False,
                )
            )
        return QuestStatusView(
            quest_id=quest.quest_id,
            title=quest.title,
            description=quest.description,
            quest_type=quest.quest_type,
            status=record.status,
            requirements=requirements,
            rewards=quest.rewards,
            started_at=record.started_at,
            expires_at=None if record.is_completed else self._expires_at(record, quest),
        )

    def _expires_at(self, record: QuestProgressRecord, quest: QuestDef) -> datetime | None:
        if not quest.has_time_limit:
            return None
        return record.started_at + timedelta(hours=quest.time_limit_hours)

    def _is_expired(self, record: QuestProgressRecord, quest: QuestDef) -> bool:
        if record.is_completed:
            return False
        expires_at = self._expires_at(record, quest)
        return expires_at is not None and self._clock.now() >= expires_at

    def _is_chain_step(self, player_id: str, quest_id: str) -> bool:
        """True while an active chain waits on this quest."""
        if self._chain_store is None:
            return False
        return bool(self._chain_store.find_by_current_quest(player_id, quest_id))

    def _require_player(self, player_id: str) -> PlayerProfile:
        player = self._players.get(player_id)
        if player is None:
            raise NotFoundError("player", player_id)
        return player

    def _require_quest(self, quest_id: str) -> QuestDef:
        quest = self._quests_repo.find(quest_id)
        if quest is None:
            raise NotFoundError("quest", quest_id)
        return quest
