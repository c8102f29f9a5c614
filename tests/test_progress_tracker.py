from __future__ import annotations

from datetime import datetime, timezone

import pytest

from questline.core.clock import ManualClock
from questline.domain.defs import RequirementDef
from questline.domain.progress import zeroed_progress
from questline.domain.progress_state import QuestProgressRecord
from questline.services.progress_tracker import ProgressTracker, TrackedGoal, validate_event

_NOW = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)


def _build_goal(*requirements: RequirementDef) -> TrackedGoal:
    record = QuestProgressRecord(
        player_id="hero",
        quest_id="test_quest",
        started_at=_NOW,
        requirements=zeroed_progress(requirements),
    )
    return TrackedGoal("quest", "test_quest", record, requirements)


def _tracker() -> ProgressTracker:
    return ProgressTracker(ManualClock(_NOW))


def test_counter_saturates_at_threshold() -> None:
    goal = _build_goal(RequirementDef(kind="combat", target="goblin", threshold=5))
    tracker = _tracker()

    tracker.apply_event("hero", "combat", "goblin", 100, [goal])

    entry = goal.record.requirements[0]
    assert entry.current == 5
    assert entry.completed is True


def test_completion_is_reported_exactly_once() -> None:
    goal = _build_goal(RequirementDef(kind="combat", target="goblin", threshold=2))
    tracker = _tracker()

    assert tracker.apply_event("hero", "combat", "goblin", 1, [goal]) == []
    completed = tracker.apply_event("hero", "combat", "goblin", 1, [goal])
    assert [done.goal_id for done in completed] == ["test_quest"]
    assert completed[0].completed_at == _NOW
    assert goal.record.completed_at == _NOW

    assert tracker.apply_event("hero", "combat", "goblin", 1, [goal]) == []
    assert goal.record.requirements[0].current == 2


def test_wildcard_and_unset_targets_match_any_target() -> None:
    any_goal = _build_goal(RequirementDef(kind="explore", target="any", threshold=3))
    unset_goal = _build_goal(RequirementDef(kind="explore", target=None, threshold=3))
    tracker = _tracker()

    tracker.apply_event("hero", "explore", "old_road", 1, [any_goal, unset_goal])
    tracker.apply_event("hero", "explore", None, 1, [any_goal, unset_goal])

    assert any_goal.record.requirements[0].current == 2
    assert unset_goal.record.requirements[0].current == 2


def test_specific_target_ignores_other_targets_and_kinds() -> None:
    goal = _build_goal(RequirementDef(kind="gather", target="herb", threshold=3))
    tracker = _tracker()

    tracker.apply_event("hero", "gather", "iron_ore", 2, [goal])
    tracker.apply_event("hero", "craft", "herb", 2, [goal])

    assert goal.record.requirements[0].current == 0


def test_record_completes_only_when_every_requirement_is_met() -> None:
    goal = _build_goal(
        RequirementDef(kind="gather", target="herb", threshold=2),
        RequirementDef(kind="craft", target="minor_potion", threshold=1),
    )
    tracker = _tracker()

    assert tracker.apply_event("hero", "gather", "herb", 5, [goal]) == []
    assert goal.record.is_completed is False
    completed = tracker.apply_event("hero", "craft", "minor_potion", 1, [goal])

    assert len(completed) == 1
    assert goal.record.is_completed is True
    assert [entry.current for entry in goal.record.requirements] == [2, 1]


def test_missing_counters_are_backfilled() -> None:
    goal = _build_goal(RequirementDef(kind="combat", target=None, threshold=1))
    goal.record.requirements.clear()

    completed = _tracker().apply_event("hero", "combat", "wolf", 1, [goal])

    assert len(completed) == 1
    assert goal.record.requirements[0].requirement_index == 0


@pytest.mark.parametrize(
    ("event_type", "quantity"),
    [("dance", 1), ("combat", 0), ("combat", -3), ("combat", True), ("combat", 1.5)],
)
def test_validate_event_rejects_bad_input(event_type: str, quantity: object) -> None:
    with pytest.raises(ValueError):
        validate_event(event_type, quantity)  # type: ignore[arg-type]
