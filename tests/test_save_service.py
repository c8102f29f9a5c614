from __future__ import annotations

from pathlib import Path

import pytest

from questline.services.errors import NotFoundError, SaveLoadError
from tests.helpers.engine_builders import build_test_engine


def _played_engine():
    engine = build_test_engine(skills={"smithing": 3})
    progression = engine.progression
    progression.assign_quest("hero", "daily_goblin_hunt")
    progression.start_chain("hero", "crossroads")
    progression.emit("hero", "combat", "goblin", 12)
    progression.emit("hero", "explore", "old_road", 1)
    progression.claim_achievement("hero", "goblin_slayer")
    return engine


def test_serialize_then_deserialize_restores_records() -> None:
    source = _played_engine()
    payload = source.saves.serialize("hero")

    target = build_test_engine()
    player = target.saves.deserialize(payload)

    assert player.skills == {"smithing": 3}
    quest = target.quest_store.get("hero", "daily_goblin_hunt")
    assert quest is not None and quest.is_completed is True
    achievement = target.achievement_store.get("hero", "goblin_slayer")
    assert (achievement.progress, achievement.current_tier, achievement.claimed_tiers) == (12, 1, [1])
    chain = target.chain_store.get("hero", "crossroads")
    assert chain.pending_branch_step == 1
    assert chain.current_quest_id == "crossroads_scout"

    update = target.progression.choose_branch("hero", "crossroads", "town").chains[0]
    assert update.current_quest_id == "crossroads_report"


def test_payload_is_versioned() -> None:
    payload = _played_engine().saves.serialize("hero")

    assert payload["save_version"] == 1
    assert payload["metadata"]["player_id"] == "hero"
    assert payload["metadata"]["saved_at"].startswith("2024-01-01T12:00:00")


def test_deserialize_replaces_existing_records() -> None:
    engine = _played_engine()
    payload = engine.saves.serialize("hero")
    engine.progression.assign_quest("hero", "daily_herb_gathering")

    engine.saves.deserialize(payload)

    assert engine.quest_store.get("hero", "daily_herb_gathering") is None


def test_write_and_read_round_trip_through_disk(tmp_path: Path) -> None:
    source = _played_engine()
    path = tmp_path / "saves" / "hero.json"
    source.saves.write(path, "hero")

    target = build_test_engine()
    target.saves.read(path)

    assert target.achievement_store.get("hero", "goblin_slayer").claimed_tiers == [1]


def test_read_missing_file_raises_save_error(tmp_path: Path) -> None:
    with pytest.raises(SaveLoadError):
        build_test_engine().saves.read(tmp_path / "nope.json")


def test_serialize_unknown_player_is_not_found() -> None:
    with pytest.raises(NotFoundError):
        build_test_engine().saves.serialize("ghost")


@pytest.mark.parametrize(
    "corrupt",
    [
        lambda payload: payload.update(save_version=99),
        lambda payload: payload["player"].pop("player_id"),
        lambda payload: payload["quests"][0].update(is_completed=False, is_rewarded=True),
        lambda payload: payload["quests"][0].update(started_at="yesterday"),
        lambda payload: payload["achievements"][0].update(claimed_tiers=[3]),
        lambda payload: payload["chains"][0].update(status="paused"),
        lambda payload: payload["chains"][0].update(current_quest_id=None),
        lambda payload: payload["quests"].append(dict(payload["quests"][0])),
        lambda payload: payload["chains"].append(dict(payload["chains"][0])),
        lambda payload: payload.update(completed_quests=["daily_goblin_hunt", 7]),
    ],
)
def test_deserialize_rejects_malformed_payloads(corrupt) -> None:
    engine = _played_engine()
    payload = engine.saves.serialize("hero")
    corrupt(payload)

    with pytest.raises(SaveLoadError):
        engine.saves.deserialize(payload)

    assert engine.chain_store.get("hero", "crossroads") is not None
    assert engine.quest_store.get("hero", "crossroads_scout") is not None


def test_deserialize_rejects_non_mapping() -> None:
    with pytest.raises(SaveLoadError):
        build_test_engine().saves.deserialize(["not", "a", "save"])  # type: ignore[arg-type]


def test_completion_history_survives_round_trip() -> None:
    source = _played_engine()
    payload = source.saves.serialize("hero")
    assert payload["completed_quests"] == ["crossroads_scout", "daily_goblin_hunt"]
    payload["completed_quests"].append("daily_ore_run")

    target = build_test_engine()
    target.saves.deserialize(payload)

    assert target.quest_store.completed_ids("hero") == ["crossroads_scout", "daily_goblin_hunt", "daily_ore_run"]
    assert target.quest_store.get("hero", "daily_ore_run") is None
