from __future__ import annotations

import pytest

from questline.services.errors import (
    AlreadyRewardedError,
    NotCompletedError,
    NotFoundError,
    RewardApplicationError,
)
from questline.services.notifications import InMemoryNotificationSink
from tests.helpers.engine_builders import build_test_engine


def _update_for(result, achievement_id: str):
    matches = [update for update in result.achievements if update.achievement_id == achievement_id]
    assert len(matches) <= 1
    return matches[0] if matches else None


def test_tiers_advance_monotonically() -> None:
    engine = build_test_engine()
    progression = engine.progression
    seen_tiers = []

    for quantity, expected_tier in [(9, 0), (1, 1), (25, 2), (20, 2), (100, 3)]:
        progression.emit("hero", "combat", "goblin", quantity)
        record = engine.achievement_store.get("hero", "goblin_slayer")
        assert record is not None
        assert record.current_tier == expected_tier
        seen_tiers.append(record.current_tier)

    assert seen_tiers == sorted(seen_tiers)
    record = engine.achievement_store.get("hero", "goblin_slayer")
    assert record.progress == 60
    assert record.is_completed is True


def test_one_event_can_cross_several_tiers() -> None:
    sink = InMemoryNotificationSink()
    engine = build_test_engine(notification_sink=sink)

    result = engine.progression.emit("hero", "combat", "goblin", 60)

    update = _update_for(result, "goblin_slayer")
    assert update is not None
    assert update.tiers_unlocked == [1, 2, 3]
    assert update.completed is True
    titles = [note.body for note in sink.for_player("hero") if "Goblin Slayer" in note.body]
    assert titles == [
        "Goblin Slayer tier 1 (goblin_slayer).",
        "Goblin Slayer tier 2 (goblin_slayer).",
        "Goblin Slayer tier 3 (goblin_slayer).",
    ]


def test_completed_achievement_ignores_further_events() -> None:
    engine = build_test_engine()
    engine.progression.emit("hero", "combat", "goblin", 60)

    result = engine.progression.emit("hero", "combat", "goblin", 5)

    assert _update_for(result, "goblin_slayer") is None
    assert engine.achievement_store.get("hero", "goblin_slayer").progress == 60


def test_claim_grants_lowest_unclaimed_tier_first() -> None:
    engine = build_test_engine()
    progression = engine.progression
    progression.emit("hero", "combat", "goblin", 35)

    first = progression.claim_achievement("hero", "goblin_slayer")
    second = progression.claim_achievement("hero", "goblin_slayer")

    assert (first.tier, second.tier) == (1, 2)
    assert engine.reward_applier.ledger("hero").currency == 200
    with pytest.raises(AlreadyRewardedError):
        progression.claim_achievement("hero", "goblin_slayer")

    progression.emit("hero", "combat", "goblin", 25)
    third = progression.claim_achievement("hero", "goblin_slayer")
    assert third.tier == 3
    assert engine.reward_applier.ledger("hero").titles == ["Goblin Bane"]


def test_claim_before_any_tier_is_rejected() -> None:
    engine = build_test_engine()

    with pytest.raises(NotCompletedError):
        engine.progression.claim_achievement("hero", "goblin_slayer")

    engine.progression.emit("hero", "combat", "goblin", 3)
    with pytest.raises(NotCompletedError):
        engine.progression.claim_achievement("hero", "goblin_slayer")

    with pytest.raises(NotFoundError):
        engine.progression.claim_achievement("hero", "no_such_achievement")


def test_single_goal_achievement_completes_and_claims_once() -> None:
    engine = build_test_engine()

    result = engine.progression.emit("hero", "combat", "wolf", 1)

    update = _update_for(result, "first_victory")
    assert update is not None and update.completed is True
    assert update.tiers_unlocked == [1]
    claim = engine.progression.claim_achievement("hero", "first_victory")
    assert claim.tier == 1
    assert engine.reward_applier.ledger("hero").exp_granted == 10
    with pytest.raises(AlreadyRewardedError):
        engine.progression.claim_achievement("hero", "first_victory")


def test_list_progress_groups_by_category() -> None:
    engine = build_test_engine()
    engine.progression.emit("hero", "combat", "goblin", 12)

    categories = engine.progression.list_achievements("hero")

    names = [category.category for category in categories]
    assert names == sorted(names)
    combat = next(category for category in categories if category.category == "combat")
    assert {view.achievement_id for view in combat.achievements} == {"first_victory", "goblin_slayer"}
    assert (combat.completed_count, combat.total_count) == (1, 2)
    slayer = next(view for view in combat.achievements if view.achievement_id == "goblin_slayer")
    assert (slayer.progress, slayer.target, slayer.current_tier, slayer.total_tiers) == (12, 60, 1, 3)
    assert slayer.claimable_tiers == [1]


def test_list_claimable_only_shows_unclaimed_rewards() -> None:
    engine = build_test_engine()
    engine.progression.emit("hero", "combat", "goblin", 10)

    claimable = {view.achievement_id for view in engine.progression.list_claimable_achievements("hero")}
    assert claimable == {"first_victory", "goblin_slayer"}

    engine.progression.claim_achievement("hero", "first_victory")
    claimable = {view.achievement_id for view in engine.progression.list_claimable_achievements("hero")}
    assert claimable == {"goblin_slayer"}


def test_wildcard_achievement_counts_every_target() -> None:
    engine = build_test_engine()

    engine.progression.emit("hero", "explore", "old_road", 3)
    engine.progression.emit("hero", "explore", "dragon_peak", 2)

    record = engine.achievement_store.get("hero", "wanderer")
    assert record.progress == 5
    assert record.current_tier == 1


class _FailingRewardApplier:
    def apply_rewards(self, player_id, rewards) -> None:
        raise RuntimeError("economy offline")


def test_failed_tier_reward_leaves_tier_unclaimed() -> None:
    engine = build_test_engine(reward_applier=_FailingRewardApplier())
    engine.progression.emit("hero", "combat", "goblin", 10)

    with pytest.raises(RewardApplicationError) as failure:
        engine.progression.claim_achievement("hero", "goblin_slayer")

    assert failure.value.entity_id == "goblin_slayer"
    record = engine.achievement_store.get("hero", "goblin_slayer")
    assert record.claimed_tiers == []
    assert record.claimed_at is None
    claimable = engine.progression.list_claimable_achievements("hero")
    assert "goblin_slayer" in [view.achievement_id for view in claimable]
