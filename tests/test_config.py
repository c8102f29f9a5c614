import json
from pathlib import Path

from questline.config import EngineConfig, get_default_config_path, load_config, save_config


def test_missing_config_returns_defaults(tmp_path: Path) -> None:
    assert load_config(tmp_path / "missing.json") == EngineConfig()


def test_unreadable_config_returns_defaults(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{broken", encoding="utf-8")

    assert load_config(path) == EngineConfig()


def test_invalid_values_fall_back_per_key(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "daily_quest_count": 5,
                "weekly_quest_count": -2,
                "daily_reset_hour_utc": 30,
                "weekly_reset_weekday": 3,
                "log_level": "debug",
                "definitions_path": "",
            }
        ),
        encoding="utf-8",
    )

    config = load_config(path)

    assert config.daily_quest_count == 5
    assert config.weekly_quest_count == 1
    assert config.daily_reset_hour_utc == 0
    assert config.weekly_reset_weekday == 3
    assert config.log_level == "DEBUG"
    assert config.definitions_path is None


def test_save_then_load_keeps_values(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "config.json"
    config = EngineConfig(daily_quest_count=2, daily_reset_hour_utc=6, definitions_path="/srv/defs")

    save_config(config, path)

    assert load_config(path) == config


def test_environment_variable_selects_config_path(monkeypatch, tmp_path: Path) -> None:
    path = tmp_path / "env_config.json"
    monkeypatch.setenv("QUESTLINE_CONFIG", str(path))

    assert get_default_config_path() == path
    save_config(EngineConfig(weekly_quest_count=2))
    assert load_config().weekly_quest_count == 2
