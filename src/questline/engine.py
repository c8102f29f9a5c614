"""Wiring of repositories, stores and services into a ready engine."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from questline.config import EngineConfig
from questline.core.clock import Clock
from questline.core.locks import PlayerLocks
from questline.data.repositories import AchievementsRepository, QuestChainsRepository, QuestsRepository
from questline.data.stores import (
    AchievementRecordStore,
    ChainRecordStore,
    PlayerDirectory,
    QuestRecordStore,
)
from questline.services.achievement_service import AchievementService
from questline.services.notifications import InMemoryNotificationSink, NotificationSink, Notifier
from questline.services.progress_tracker import ProgressTracker
from questline.services.progression_service import ProgressionService
from questline.services.quest_chain_service import QuestChainService
from questline.services.quest_service import QuestService
from questline.services.rewards import InMemoryRewardApplier, RewardApplier
from questline.services.save_service import SaveService

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Engine:
    progression: ProgressionService
    saves: SaveService
    players: PlayerDirectory
    quests_repo: QuestsRepository
    achievements_repo: AchievementsRepository
    chains_repo: QuestChainsRepository
    quest_store: QuestRecordStore
    achievement_store: AchievementRecordStore
    chain_store: ChainRecordStore
    notification_sink: NotificationSink
    reward_applier: RewardApplier
    clock: Clock
    config: EngineConfig


def build_engine(
    config: EngineConfig | None = None,
    *,
    base_path: Path | str | None = None,
    players: PlayerDirectory | None = None,
    notification_sink: NotificationSink | None = None,
    reward_applier: RewardApplier | None = None,
    clock: Clock | None = None,
) -> Engine:
    """Construct the progression engine with concrete repositories and in-memory stores."""
    config = config or EngineConfig()
    clock = clock or Clock()
    players = players or PlayerDirectory()
    definitions_path = base_path if base_path is not None else config.definitions_path
    notification_sink = notification_sink or InMemoryNotificationSink(clock)
    reward_applier = reward_applier or InMemoryRewardApplier(players)

    quests_repo = QuestsRepository(definitions_path)
    achievements_repo = AchievementsRepository(definitions_path)
    chains_repo = QuestChainsRepository(quests_repo=quests_repo, base_path=definitions_path)
    quest_store = QuestRecordStore()
    achievement_store = AchievementRecordStore()
    chain_store = ChainRecordStore()
    notifier = Notifier(notification_sink)
    tracker = ProgressTracker(clock)

    quests = QuestService(
        quests_repo=quests_repo,
        store=quest_store,
        players=players,
        tracker=tracker,
        notifier=notifier,
        reward_applier=reward_applier,
        clock=clock,
        config=config,
        chain_store=chain_store,
    )
    achievements = AchievementService(
        achievements_repo=achievements_repo,
        store=achievement_store,
        players=players,
        tracker=tracker,
        notifier=notifier,
        reward_applier=reward_applier,
        clock=clock,
    )
    chains = QuestChainService(
        chains_repo=chains_repo,
        quests=quests,
        store=chain_store,
        players=players,
        notifier=notifier,
        reward_applier=reward_applier,
        clock=clock,
    )
    progression = ProgressionService(
        quests=quests,
        achievements=achievements,
        chains=chains,
        players=players,
        locks=PlayerLocks(),
    )
    saves = SaveService(
        players=players,
        quest_store=quest_store,
        achievement_store=achievement_store,
        chain_store=chain_store,
        clock=clock,
    )
    logger.debug("Progression engine built (definitions: %s)", definitions_path or "default")
    return Engine(
        progression=progression,
        saves=saves,
        players=players,
        quests_repo=quests_repo,
        achievements_repo=achievements_repo,
        chains_repo=chains_repo,
        quest_store=quest_store,
        achievement_store=achievement_store,
        chain_store=chain_store,
        notification_sink=notification_sink,
        reward_applier=reward_applier,
        clock=clock,
        config=config,
    )
