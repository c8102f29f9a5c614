from __future__ import annotations

from datetime import datetime, timezone

import pytest

from questline.domain.defs import RewardDef
from questline.presentation.cli import render
from questline.services.errors import (
    AlreadyRewardedError,
    DuplicateActiveError,
    InvalidChoiceError,
    NoPendingBranchError,
    NotCompletedError,
    NotFoundError,
    PrerequisiteFailure,
    PrerequisiteNotMetError,
    QuestExpiredError,
    RewardApplicationError,
    StorageError,
)
from questline.services.quest_chain_service import ChainUpdate
from tests.helpers.engine_builders import build_test_engine


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (NotFoundError("quest", "q1"), "No quest named 'q1' was found."),
        (NotCompletedError("quest", "q1"), "The quest 'q1' is not finished yet."),
        (AlreadyRewardedError("chain", "c1"), "You already collected the reward for chain 'c1'."),
        (
            QuestExpiredError("q1", datetime(2024, 1, 2, 12, 0, tzinfo=timezone.utc)),
            "Quest 'q1' expired at 2024-01-02 12:00 UTC.",
        ),
        (NoPendingBranchError("c1", 2), "Chain 'c1' has no decision waiting."),
        (DuplicateActiveError("chain", "c1", "active"), "You already have the chain 'c1' (active)."),
        (
            PrerequisiteNotMetError("c1", [PrerequisiteFailure("level", None, 10, 9)]),
            "You cannot start 'c1' yet: requires level 10 (you are level 9).",
        ),
        (
            InvalidChoiceError("c1", "up", ["Left", "Right"]),
            "'up' is not an option. Choose one of: Left, Right.",
        ),
        (StorageError("down"), "Progress could not be saved right now. Please try again."),
        (
            RewardApplicationError("quest", "q1", "hero", "offline"),
            "The reward for quest 'q1' could not be granted. Nothing was claimed.",
        ),
    ],
)
def test_format_error_per_type(error, expected: str) -> None:
    assert render.format_error(error) == expected


def test_storage_error_is_retryable_and_others_are_not() -> None:
    assert StorageError("x").retryable is True
    assert NotFoundError("quest", "q").retryable is False


def test_format_prerequisite_kinds() -> None:
    assert render.format_prerequisite(PrerequisiteFailure("skill", "smithing", 5, 2)) == (
        "requires smithing 5 (you have 2)"
    )
    assert render.format_prerequisite(PrerequisiteFailure("chain", "prologue", "completed", None)) == (
        "finish the storyline 'prologue' first"
    )
    assert render.format_prerequisite(PrerequisiteFailure("quest", "q1", "completed", None)) == (
        "complete the quest 'q1' first"
    )


def test_format_rewards_lists_each_kind() -> None:
    rewards = [
        RewardDef(kind="currency", amount=40),
        RewardDef(kind="experience", amount=15),
        RewardDef(kind="item", amount=2, ref="minor_potion", description="Minor Potion"),
        RewardDef(kind="title", ref="Goblin Bane"),
        RewardDef(kind="unlock", ref="eastern_hills", unlock_kind="zone"),
    ]

    assert render.format_rewards(rewards) == (
        "40 gold, 15 XP, 2x Minor Potion, title 'Goblin Bane', zone unlock 'eastern_hills'"
    )
    assert render.format_rewards([]) == "nothing"


def test_format_quest_list_shows_progress_and_readiness() -> None:
    engine = build_test_engine()
    engine.progression.assign_quest("hero", "daily_goblin_hunt")
    engine.progression.assign_quest("hero", "goblin_threat_1")
    engine.progression.emit("hero", "combat", "goblin", 2)

    lines = render.format_quest_list(engine.progression.list_active_quests("hero"))

    assert lines[0] == "=== Quests ==="
    assert "[daily] Goblin Hunt (daily_goblin_hunt)" in lines
    assert "  [ ] Defeat goblins: 2/5" in lines
    assert "[ready] Scouting Party (goblin_threat_1)" in lines
    assert "  Expires: 2024-01-02 12:00 UTC" in lines


def test_format_quest_list_empty() -> None:
    assert render.format_quest_list([]) == ["You have no active quests. Try /refresh."]


def test_format_progression_result_mentions_tiers_and_chains() -> None:
    engine = build_test_engine()
    engine.progression.start_chain("hero", "crossroads")

    result = engine.progression.emit("hero", "explore", "old_road", 5)
    lines = render.format_progression_result(result)

    assert "Quest complete: The Old Road. Use /claim quest crossroads_scout." in lines
    assert "Achievement unlocked: Wanderer (tier 1)." in lines
    assert "'Crossroads' needs a decision: Ranger / Town." in lines


def test_format_failed_chain_offers_restart() -> None:
    lines = render.format_chain_update(ChainUpdate(chain_id="night_watch", title="Night Watch", failed=True))

    assert lines == ["Storyline failed: Night Watch. Use /start night_watch to try again."]


def test_wrap_text_keeps_bullet_prefix() -> None:
    lines = render.wrap_text("- " + "word " * 30, width=20)

    assert lines[0].startswith("- ")
    assert all(line.startswith("  ") for line in lines[1:])
    assert all(len(line) <= 20 for line in lines)
