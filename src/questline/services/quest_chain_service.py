"""Quest chains: gated start, step advancement, branch choices and claims."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Tuple

from questline.core.clock import Clock
from questline.data.repositories import QuestChainsRepository
from questline.data.stores import ChainRecordStore, PlayerDirectory
from questline.domain.defs import QuestChainDef, RewardDef
from questline.domain.player import PlayerProfile
from questline.domain.progress_state import ChainStepRecord, PlayerChainProgress
from questline.services.errors import (
    AlreadyRewardedError,
    DuplicateActiveError,
    InvalidChoiceError,
    InvalidStateError,
    NoPendingBranchError,
    NotCompletedError,
    NotFoundError,
    PrerequisiteFailure,
    PrerequisiteNotMetError,
)
from questline.services.notifications import Notifier
from questline.services.quest_service import QuestService
from questline.services.rewards import RewardApplier, grant_rewards
from questline.services.storage import storage_guard

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ChainUpdate:
    chain_id: str
    title: str
    started: bool = False
    advanced: bool = False
    requires_choice: bool = False
    choices: Tuple[str, ...] = ()
    completed: bool = False
    failed: bool = False
    rewarded: bool = False
    current_step: int | None = None
    current_quest_id: str | None = None
    rewards: Tuple[RewardDef, ...] = ()


@dataclass(slots=True)
class ChainSummary:
    chain_id: str
    title: str
    description: str
    category: str
    recommended_level: int
    total_steps: int
    status: str
    current_step: int | None = None
    current_quest_id: str | None = None
    choices: Tuple[str, ...] = ()

    @property
    def awaiting_choice(self) -> bool:
        return bool(self.choices)


class QuestChainService:
    """Walks players through chain steps, reusing the quest lifecycle for each step."""

    def __init__(
        self,
        *,
        chains_repo: QuestChainsRepository,
        quests: QuestService,
        store: ChainRecordStore,
        players: PlayerDirectory,
        notifier: Notifier,
        reward_applier: RewardApplier,
        clock: Clock | None = None,
    ) -> None:
        self._chains_repo = chains_repo
        self._quests = quests
        self._store = store
        self._players = players
        self._notifier = notifier
        self._reward_applier = reward_applier
        self._clock = clock or Clock()

    def evaluate_prerequisites(self, player_id: str, chain_id: str) -> List[PrerequisiteFailure]:
        """Every unmet condition, in the order level, skills, prior chains, prior quests."""
        player = self._require_player(player_id)
        chain = self._require_chain(chain_id)
        return self._prerequisite_failures(player, chain)

    def list_available(self, player_id: str) -> List[ChainSummary]:
        """Active chains first, then chains the player could start right now."""
        player = self._require_player(player_id)
        self.fail_expired(player_id)
        active: List[ChainSummary] = []
        for record in self._store.active_for_player(player_id):
            chain = self._chains_repo.find(record.chain_id)
            if chain is None:
                logger.warning("Player %s holds unknown chain %s", player_id, record.chain_id)
                continue
            active.append(self._build_summary(chain, record))
        startable: List[ChainSummary] = []
        for chain in self._chains_repo.all():
            if not chain.is_active or not self._can_restart(self._store.get(player_id, chain.chain_id), chain):
                continue
            if self._prerequisite_failures(player, chain):
                continue
            startable.append(self._build_summary(chain, None))
        startable.sort(key=lambda summary: (summary.recommended_level, summary.chain_id))
        return active + startable

    def start(self, player_id: str, chain_id: str) -> ChainUpdate:
        player = self._require_player(player_id)
        chain = self._require_chain(chain_id)
        existing = self._store.get(player_id, chain_id)
        if existing is not None:
            self._fail_if_expired(chain, existing)
            if not self._can_restart(existing, chain):
                raise DuplicateActiveError("chain", chain_id, existing.status)
        failures = self._prerequisite_failures(player, chain)
        if failures:
            logger.debug("Player %s cannot start chain %s: %s", player_id, chain_id, failures[0])
            raise PrerequisiteNotMetError(chain_id, failures)
        if existing is not None:
            # A new run replays every step, so completions left unclaimed by the last run do not count.
            for step in chain.steps:
                self._quests.discard_unclaimed(player_id, step.quest_id)

        record = PlayerChainProgress(
            player_id=player_id,
            chain_id=chain_id,
            started_at=self._clock.now(),
            current_step=chain.steps[0].step,
        )
        update = ChainUpdate(chain_id=chain_id, title=chain.title, started=True)
        self._enter_step(chain, record, chain.steps[0].step, update)
        with storage_guard("chain start"):
            self._store.replace(record)
        self._notifier.chain_started(player_id, chain_id, chain.title)
        logger.info("Player %s started chain %s", player_id, chain_id)
        return self._finish_update(record, update)

    def advance(self, player_id: str, chain_id: str, completed_quest_id: str) -> ChainUpdate:
        """Move past the current step once its quest is completed."""
        self._require_player(player_id)
        chain = self._require_chain(chain_id)
        record = self._require_record(player_id, chain_id)
        update = ChainUpdate(chain_id=chain_id, title=chain.title)
        if not record.is_active:
            raise InvalidStateError("chain", chain_id, record.status)
        if record.awaiting_choice:
            branch = chain.branch_after(record.pending_branch_step or record.current_step)
            update.requires_choice = True
            update.choices = branch.labels if branch else ()
            return self._finish_update(record, update)
        if record.current_quest_id != completed_quest_id:
            raise InvalidStateError(
                "chain", chain_id, record.status, f"current quest is '{record.current_quest_id}'"
            )
        if not self._quests.is_completed(player_id, completed_quest_id):
            raise NotCompletedError("quest", completed_quest_id)

        next_step = self._complete_current_step(chain, record, update)
        if next_step is not None:
            self._enter_step(chain, record, next_step, update)
        with storage_guard("chain advance"):
            self._store.save(record)
        return self._finish_update(record, update)

    def handle_quest_completed(self, player_id: str, quest_id: str) -> List[ChainUpdate]:
        """Advance every active chain whose current quest is ``quest_id``."""
        updates: List[ChainUpdate] = []
        for record in self._store.find_by_current_quest(player_id, quest_id):
            if not record.is_active or record.awaiting_choice:
                continue
            updates.append(self.advance(player_id, record.chain_id, quest_id))
        return updates

    def fail_expired(self, player_id: str) -> List[ChainUpdate]:
        """Fail every active chain whose current quest ran out of time."""
        updates: List[ChainUpdate] = []
        for record in self._store.active_for_player(player_id):
            chain = self._chains_repo.find(record.chain_id)
            if chain is None:
                continue
            update = self._fail_if_expired(chain, record)
            if update is not None:
                updates.append(update)
        return updates

    def choose_branch(self, player_id: str, chain_id: str, label: str) -> ChainUpdate:
        self._require_player(player_id)
        chain = self._require_chain(chain_id)
        record = self._require_record(player_id, chain_id)
        if not record.is_active or record.pending_branch_step is None:
            raise NoPendingBranchError(chain_id, record.current_step)
        branch = chain.branch_after(record.pending_branch_step)
        if branch is None:
            raise NoPendingBranchError(chain_id, record.current_step)
        choice = branch.match(label)
        if choice is None:
            logger.debug("Player %s picked unknown branch %r in chain %s", player_id, label, chain_id)
            raise InvalidChoiceError(chain_id, label, branch.labels)

        for entry in record.completed_steps:
            if entry.step == record.pending_branch_step:
                entry.choice_made = choice.label
        logger.info(
            "Player %s chose '%s' after step %d of chain %s",
            player_id,
            choice.label,
            record.pending_branch_step,
            chain_id,
        )
        record.pending_branch_step = None
        update = ChainUpdate(chain_id=chain_id, title=chain.title, advanced=True)
        self._enter_step(chain, record, choice.next_step, update)
        with storage_guard("chain branch choice"):
            self._store.save(record)
        return self._finish_update(record, update)

    def claim(self, player_id: str, chain_id: str) -> ChainUpdate:
        self._require_player(player_id)
        chain = self._require_chain(chain_id)
        record = self._require_record(player_id, chain_id)
        if record.is_rewarded:
            raise AlreadyRewardedError("chain", chain_id)
        if record.status != "completed":
            raise NotCompletedError("chain", chain_id)
        rewards = chain.rewards.as_reward_list()
        grant_rewards(self._reward_applier, player_id, rewards, entity="chain", entity_id=chain_id)
        record.is_rewarded = True
        with storage_guard("chain claim"):
            self._store.save(record)
        logger.info("Player %s claimed chain %s", player_id, chain_id)
        return ChainUpdate(chain_id=chain_id, title=chain.title, rewarded=True, rewards=rewards)

    def _enter_step(
        self, chain: QuestChainDef, record: PlayerChainProgress, step_number: int, update: ChainUpdate
    ) -> None:
        """Assign the step's quest, skipping forward past quests the player already finished."""
        while True:
            step = chain.step(step_number)
            if step is None:
                self._complete_chain(chain, record, update)
                return
            record.current_step = step.step
            record.current_quest_id = step.quest_id
            quest_record = self._quests.ensure_assigned(record.player_id, step.quest_id)
            if not quest_record.is_completed:
                return
            next_step = self._complete_current_step(chain, record, update)
            if next_step is None:
                return
            step_number = next_step

    def _complete_current_step(
        self, chain: QuestChainDef, record: PlayerChainProgress, update: ChainUpdate
    ) -> int | None:
        """Record the current step as done; returns the next step or None at a branch."""
        record.completed_steps.append(ChainStepRecord(step=record.current_step, completed_at=self._clock.now()))
        update.advanced = True
        branch = chain.branch_after(record.current_step)
        if branch is not None:
            record.pending_branch_step = record.current_step
            update.requires_choice = True
            update.choices = branch.labels
            self._notifier.chain_awaiting_choice(record.player_id, chain.chain_id, chain.title)
            logger.info("Chain %s for player %s waits for a choice", chain.chain_id, record.player_id)
            return None
        return record.current_step + 1

    def _fail_if_expired(self, chain: QuestChainDef, record: PlayerChainProgress) -> ChainUpdate | None:
        quest_id = record.current_quest_id
        if not record.is_active or record.awaiting_choice or quest_id is None:
            return None
        if not self._quests.is_expired(record.player_id, quest_id):
            return None
        record.status = "failed"
        record.current_quest_id = None
        with storage_guard("chain failure"):
            self._store.save(record)
        self._notifier.chain_failed(record.player_id, chain.chain_id, chain.title)
        logger.info("Chain %s for player %s failed: quest %s expired", chain.chain_id, record.player_id, quest_id)
        return self._finish_update(record, ChainUpdate(chain_id=chain.chain_id, title=chain.title, failed=True))

    def _complete_chain(self, chain: QuestChainDef, record: PlayerChainProgress, update: ChainUpdate) -> None:
        record.status = "completed"
        record.current_quest_id = None
        record.pending_branch_step = None
        record.completed_at = self._clock.now()
        update.completed = True
        self._notifier.chain_completed(record.player_id, chain.chain_id, chain.title)
        logger.info("Player %s completed chain %s", record.player_id, chain.chain_id)

    def _finish_update(self, record: PlayerChainProgress, update: ChainUpdate) -> ChainUpdate:
        update.current_step = record.current_step
        update.current_quest_id = record.current_quest_id
        if update.advanced and record.is_active and not record.awaiting_choice and not update.started:
            chain = self._chains_repo.get(record.chain_id)
            self._notifier.chain_advanced(record.player_id, record.chain_id, chain.title, record.current_step)
        return update

    def _prerequisite_failures(self, player: PlayerProfile, chain: QuestChainDef) -> List[PrerequisiteFailure]:
        prereqs = chain.prerequisites
        failures: List[PrerequisiteFailure] = []
        if player.level < prereqs.min_level:
            failures.append(PrerequisiteFailure("level", None, prereqs.min_level, player.level))
        for skill in prereqs.skills:
            actual = player.skill_level(skill.skill)
            if actual < skill.level:
                failures.append(PrerequisiteFailure("skill", skill.skill, skill.level, actual))
        for required_chain in prereqs.chains:
            record = self._store.get(player.player_id, required_chain)
            if record is None or record.status != "completed":
                failures.append(
                    PrerequisiteFailure("chain", required_chain, "completed", record.status if record else None)
                )
        for quest_id in prereqs.quests:
            if not self._quests.has_completed(player.player_id, quest_id):
                failures.append(PrerequisiteFailure("quest", quest_id, "completed", None))
        return failures

    @staticmethod
    def _can_restart(record: PlayerChainProgress | None, chain: QuestChainDef) -> bool:
        if record is None or record.status == "failed":
            return True
        if record.status == "completed":
            return chain.is_repeatable and record.is_rewarded
        return False

    @staticmethod
    def _build_summary(chain: QuestChainDef, record: PlayerChainProgress | None) -> ChainSummary:
        summary = ChainSummary(
            chain_id=chain.chain_id,
            title=chain.title,
            description=chain.description,
            category=chain.category,
            recommended_level=chain.recommended_level,
            total_steps=chain.total_steps,
            status=record.status if record else "available",
        )
        if record is not None:
            summary.current_step = record.current_step
            summary.current_quest_id = record.current_quest_id
            if record.pending_branch_step is not None:
                branch = chain.branch_after(record.pending_branch_step)
                summary.choices = branch.labels if branch else ()
        return summary

    def _require_player(self, player_id: str) -> PlayerProfile:
        player = self._players.get(player_id)
        if player is None:
            raise NotFoundError("player", player_id)
        return player

    def _require_chain(self, chain_id: str) -> QuestChainDef:
        chain = self._chains_repo.find(chain_id)
        if chain is None or not chain.is_active:
            raise NotFoundError("chain", chain_id)
        return chain

    def _require_record(self, player_id: str, chain_id: str) -> PlayerChainProgress:
        record = self._store.get(player_id, chain_id)
        if record is None:
            raise NotFoundError("chain progress", chain_id, player_id=player_id)
        return record
