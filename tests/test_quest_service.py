from __future__ import annotations

import pytest

from questline.config import EngineConfig
from questline.domain.progress_state import QuestStatus
from questline.services.errors import (
    AlreadyRewardedError,
    DuplicateActiveError,
    NotCompletedError,
    NotFoundError,
    QuestExpiredError,
    RewardApplicationError,
    StorageError,
)
from questline.services.notifications import InMemoryNotificationSink
from tests.helpers.engine_builders import build_test_engine


class _FailingRewardApplier:
    def apply_rewards(self, player_id, rewards) -> None:
        raise RuntimeError("economy offline")


class _FailingSink:
    def notify(self, player_id, category, title, body) -> None:
        raise ConnectionError("chat gateway down")


def _active_ids(engine, quest_type=None) -> list[str]:
    return sorted(view.quest_id for view in engine.progression.list_active_quests("hero", quest_type))


def test_assign_progress_and_claim_quest() -> None:
    engine = build_test_engine()
    progression = engine.progression

    update = progression.assign_quest("hero", "daily_goblin_hunt")
    assert update.assigned is True

    result = progression.emit("hero", "combat", "goblin", 3)
    assert result.quests == []
    view = progression.list_active_quests("hero")[0]
    assert view.status is QuestStatus.ACTIVE
    assert (view.requirements[0].current, view.requirements[0].target) == (3, 5)

    result = progression.emit("hero", "combat", "goblin", 4)
    assert [quest.quest_id for quest in result.quests] == ["daily_goblin_hunt"]
    view = progression.list_active_quests("hero")[0]
    assert view.status is QuestStatus.COMPLETED
    assert view.is_claimable is True
    assert view.requirements[0].current == 5

    assert progression.emit("hero", "combat", "goblin", 1).quests == []

    claimed = progression.claim_quest("hero", "daily_goblin_hunt")
    assert claimed.rewarded is True
    ledger = engine.reward_applier.ledger("hero")
    assert ledger.currency == 40
    assert ledger.exp_granted == 15
    assert _active_ids(engine) == []


def test_claim_is_exactly_once() -> None:
    engine = build_test_engine()
    engine.progression.assign_quest("hero", "daily_goblin_hunt")
    engine.progression.emit("hero", "combat", "goblin", 5)

    engine.progression.claim_quest("hero", "daily_goblin_hunt")
    with pytest.raises(AlreadyRewardedError):
        engine.progression.claim_quest("hero", "daily_goblin_hunt")

    assert engine.reward_applier.ledger("hero").currency == 40


def test_claim_rejections_are_typed() -> None:
    engine = build_test_engine()

    with pytest.raises(NotFoundError) as missing_def:
        engine.progression.claim_quest("hero", "no_such_quest")
    assert missing_def.value.entity == "quest"

    with pytest.raises(NotFoundError) as missing_record:
        engine.progression.claim_quest("hero", "daily_goblin_hunt")
    assert missing_record.value.entity == "quest progress"
    assert missing_record.value.player_id == "hero"

    engine.progression.assign_quest("hero", "daily_goblin_hunt")
    with pytest.raises(NotCompletedError):
        engine.progression.claim_quest("hero", "daily_goblin_hunt")

    with pytest.raises(NotFoundError):
        engine.progression.claim_quest("ghost", "daily_goblin_hunt")


def test_assign_rejects_duplicates_until_rewarded() -> None:
    engine = build_test_engine()
    progression = engine.progression
    progression.assign_quest("hero", "daily_goblin_hunt")

    with pytest.raises(DuplicateActiveError) as active:
        progression.assign_quest("hero", "daily_goblin_hunt")
    assert active.value.state == "active"

    progression.emit("hero", "combat", "goblin", 5)
    with pytest.raises(DuplicateActiveError) as completed:
        progression.assign_quest("hero", "daily_goblin_hunt")
    assert completed.value.state == "completed"

    progression.claim_quest("hero", "daily_goblin_hunt")
    progression.assign_quest("hero", "daily_goblin_hunt")
    view = progression.list_active_quests("hero")[0]
    assert view.status is QuestStatus.ACTIVE
    assert view.requirements[0].current == 0


def test_time_limited_quest_expires_lazily() -> None:
    engine = build_test_engine()
    progression = engine.progression
    progression.assign_quest("hero", "daily_goblin_hunt")
    progression.emit("hero", "combat", "goblin", 2)

    engine.clock.advance(hours=25)

    assert _active_ids(engine) == []
    assert progression.emit("hero", "combat", "goblin", 10).quests == []
    record = engine.quest_store.get("hero", "daily_goblin_hunt")
    assert record is not None and record.requirements[0].current == 2
    with pytest.raises(QuestExpiredError) as expired:
        progression.claim_quest("hero", "daily_goblin_hunt")
    assert expired.value.expired_at < engine.clock.now()

    progression.assign_quest("hero", "daily_goblin_hunt")
    assert _active_ids(engine) == ["daily_goblin_hunt"]


def test_completed_quest_stays_claimable_after_time_limit() -> None:
    engine = build_test_engine()
    engine.progression.assign_quest("hero", "daily_goblin_hunt")
    engine.progression.emit("hero", "combat", "goblin", 5)

    engine.clock.advance(hours=30)

    assert engine.progression.claim_quest("hero", "daily_goblin_hunt").rewarded is True


def test_list_active_filters_by_type() -> None:
    engine = build_test_engine()
    engine.progression.assign_quest("hero", "daily_goblin_hunt")
    engine.progression.assign_quest("hero", "weekly_guild_contribution")

    assert _active_ids(engine, "daily") == ["daily_goblin_hunt"]
    assert _active_ids(engine, "weekly") == ["weekly_guild_contribution"]
    assert _active_ids(engine, "story") == []


def test_refresh_picks_highest_level_then_newest_quests() -> None:
    engine = build_test_engine(level=5)

    result = engine.progression.refresh_daily("hero")

    assert [update.quest_id for update in result.assigned] == [
        "daily_potion_brewing",
        "daily_ore_run",
        "daily_market_trader",
        "weekly_guild_contribution",
    ]
    assert result.removed == []
    assert result.refreshed is True


def test_refresh_is_a_no_op_within_the_same_day() -> None:
    engine = build_test_engine(level=5)
    engine.progression.refresh_daily("hero")

    engine.clock.advance(hours=6)
    again = engine.progression.refresh_daily("hero")

    assert again.refreshed is False
    assert len(_active_ids(engine)) == 4


def test_refresh_next_day_replaces_incomplete_dailies_only() -> None:
    engine = build_test_engine(level=5)
    progression = engine.progression
    progression.refresh_daily("hero")
    progression.emit("hero", "market", "silk", 2)

    engine.clock.advance(days=1)
    result = progression.refresh_daily("hero")

    assert sorted(result.removed) == ["daily_ore_run", "daily_potion_brewing"]
    assert [update.quest_id for update in result.assigned] == [
        "daily_potion_brewing",
        "daily_ore_run",
        "daily_goblin_hunt",
    ]
    assert _active_ids(engine, "daily") == [
        "daily_goblin_hunt",
        "daily_market_trader",
        "daily_ore_run",
        "daily_potion_brewing",
    ]
    assert _active_ids(engine, "weekly") == ["weekly_guild_contribution"]


def test_weekly_quests_reset_on_the_configured_weekday() -> None:
    engine = build_test_engine(level=1)
    engine.progression.refresh_daily("hero")
    first = engine.quest_store.get("hero", "weekly_guild_contribution")

    engine.clock.advance(days=3)
    engine.progression.refresh_daily("hero")
    assert engine.quest_store.get("hero", "weekly_guild_contribution") is first

    engine.clock.advance(days=4)
    result = engine.progression.refresh_daily("hero")
    assert "weekly_guild_contribution" in result.removed
    assert engine.quest_store.get("hero", "weekly_guild_contribution") is not first


def test_refresh_respects_configured_counts() -> None:
    engine = build_test_engine(level=5, config=EngineConfig(daily_quest_count=1, weekly_quest_count=0))

    result = engine.progression.refresh_daily("hero")

    assert [update.quest_id for update in result.assigned] == ["daily_potion_brewing"]


def test_refresh_notifies_the_player() -> None:
    sink = InMemoryNotificationSink()
    engine = build_test_engine(notification_sink=sink)

    engine.progression.refresh_daily("hero")

    assert [note.title for note in sink.for_player("hero")] == ["New quests available"]


def test_reward_failure_leaves_quest_claimable() -> None:
    engine = build_test_engine(reward_applier=_FailingRewardApplier())
    engine.progression.assign_quest("hero", "daily_goblin_hunt")
    engine.progression.emit("hero", "combat", "goblin", 5)

    with pytest.raises(RewardApplicationError) as failure:
        engine.progression.claim_quest("hero", "daily_goblin_hunt")

    assert failure.value.entity_id == "daily_goblin_hunt"
    record = engine.quest_store.get("hero", "daily_goblin_hunt")
    assert record is not None
    assert record.status is QuestStatus.COMPLETED
    assert record.rewarded_at is None


def test_notification_failure_does_not_block_progress() -> None:
    engine = build_test_engine(notification_sink=_FailingSink())
    engine.progression.assign_quest("hero", "daily_goblin_hunt")

    result = engine.progression.emit("hero", "combat", "goblin", 5)

    assert [quest.quest_id for quest in result.quests] == ["daily_goblin_hunt"]


def test_store_failure_surfaces_as_retryable_storage_error(monkeypatch) -> None:
    engine = build_test_engine()

    def broken_replace(record) -> None:
        raise OSError("disk unavailable")

    monkeypatch.setattr(engine.quest_store, "replace", broken_replace)

    with pytest.raises(StorageError) as failure:
        engine.progression.assign_quest("hero", "daily_goblin_hunt")

    assert failure.value.retryable is True
    assert engine.quest_store.get("hero", "daily_goblin_hunt") is None
