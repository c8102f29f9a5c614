"""Single entry point the gameplay layer talks to."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List

from questline.core.locks import PlayerLocks
from questline.core.types import EVENT_TYPES
from questline.data.stores import PlayerDirectory
from questline.services.achievement_service import (
    AchievementCategoryView,
    AchievementClaim,
    AchievementService,
    AchievementUpdate,
    AchievementView,
)
from questline.services.errors import NotFoundError, PrerequisiteFailure
from questline.services.progress_tracker import validate_event
from questline.services.quest_chain_service import ChainSummary, ChainUpdate, QuestChainService
from questline.services.quest_service import (
    QuestRefreshResult,
    QuestService,
    QuestStatusView,
    QuestUpdate,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ProgressionResult:
    """Everything one call changed, in the order it happened."""

    quests: List[QuestUpdate] = field(default_factory=list)
    achievements: List[AchievementUpdate] = field(default_factory=list)
    chains: List[ChainUpdate] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.quests or self.achievements or self.chains)


class ProgressionService:
    """Routes gameplay events and player commands to the lifecycle services.

    Calls for the same player are serialized; calls for different players run
    independently.
    """

    def __init__(
        self,
        *,
        quests: QuestService,
        achievements: AchievementService,
        chains: QuestChainService,
        players: PlayerDirectory,
        locks: PlayerLocks | None = None,
    ) -> None:
        self._quests = quests
        self._achievements = achievements
        self._chains = chains
        self._players = players
        self._locks = locks or PlayerLocks()

    def emit(self, player_id: str, event_type: str, target_id: str | None = None, quantity: int = 1) -> ProgressionResult:
        """Apply one gameplay event to quests, achievements and chains."""
        if event_type not in EVENT_TYPES:
            raise ValueError(f"Unknown event type '{event_type}'.")
        validate_event(event_type, quantity)
        with self._locks.hold(player_id):
            self._require_player(player_id)
            result = ProgressionResult(chains=self._chains.fail_expired(player_id))
            completed = self._quests.record_event(player_id, event_type, target_id, quantity)
            result.quests.extend(completed)
            result.achievements.extend(
                self._achievements.update_progress(player_id, event_type, target_id, quantity)
            )
            for update in completed:
                self._on_quest_completed(player_id, update.quest_id, result)
            return result

    # Quests
    def list_active_quests(self, player_id: str, quest_type: str | None = None) -> List[QuestStatusView]:
        with self._locks.hold(player_id):
            return self._quests.list_active(player_id, quest_type)

    def refresh_daily(self, player_id: str) -> QuestRefreshResult:
        with self._locks.hold(player_id):
            self._chains.fail_expired(player_id)
            return self._quests.refresh_daily(player_id)

    def assign_quest(self, player_id: str, quest_id: str) -> QuestUpdate:
        with self._locks.hold(player_id):
            return self._quests.assign(player_id, quest_id)

    def claim_quest(self, player_id: str, quest_id: str) -> QuestUpdate:
        with self._locks.hold(player_id):
            update = self._quests.claim(player_id, quest_id)
            # Chains normally advanced when the quest completed; this catches any left behind.
            for chain_update in self._chains.handle_quest_completed(player_id, quest_id):
                self._on_chain_update(player_id, chain_update, ProgressionResult())
            return update

    # Achievements
    def list_achievements(self, player_id: str) -> List[AchievementCategoryView]:
        with self._locks.hold(player_id):
            return self._achievements.list_progress(player_id)

    def list_claimable_achievements(self, player_id: str) -> List[AchievementView]:
        with self._locks.hold(player_id):
            return self._achievements.list_claimable(player_id)

    def claim_achievement(self, player_id: str, achievement_id: str) -> AchievementClaim:
        with self._locks.hold(player_id):
            return self._achievements.claim(player_id, achievement_id)

    # Chains
    def list_available_chains(self, player_id: str) -> List[ChainSummary]:
        with self._locks.hold(player_id):
            return self._chains.list_available(player_id)

    def chain_prerequisites(self, player_id: str, chain_id: str) -> List[PrerequisiteFailure]:
        with self._locks.hold(player_id):
            return self._chains.evaluate_prerequisites(player_id, chain_id)

    def start_chain(self, player_id: str, chain_id: str) -> ProgressionResult:
        with self._locks.hold(player_id):
            result = ProgressionResult()
            self._on_chain_update(player_id, self._chains.start(player_id, chain_id), result)
            return result

    def choose_branch(self, player_id: str, chain_id: str, label: str) -> ProgressionResult:
        with self._locks.hold(player_id):
            result = ProgressionResult()
            self._on_chain_update(player_id, self._chains.choose_branch(player_id, chain_id, label), result)
            return result

    def claim_chain(self, player_id: str, chain_id: str) -> ChainUpdate:
        with self._locks.hold(player_id):
            return self._chains.claim(player_id, chain_id)

    def _on_quest_completed(self, player_id: str, quest_id: str, result: ProgressionResult) -> None:
        result.achievements.extend(self._achievements.update_progress(player_id, "quest", quest_id, 1))
        for chain_update in self._chains.handle_quest_completed(player_id, quest_id):
            self._on_chain_update(player_id, chain_update, result)

    def _on_chain_update(self, player_id: str, update: ChainUpdate, result: ProgressionResult) -> None:
        result.chains.append(update)
        if update.completed:
            result.achievements.extend(
                self._achievements.update_progress(player_id, "chain", update.chain_id, 1)
            )

    def _require_player(self, player_id: str) -> None:
        if self._players.get(player_id) is None:
            raise NotFoundError("player", player_id)
