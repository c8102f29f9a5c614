"""Engine configuration and logging setup."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict

CONFIG_ENV_VAR = "QUESTLINE_CONFIG"
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """Tunables for quest generation, cadence resets and logging."""

    daily_quest_count: int = 3
    weekly_quest_count: int = 1
    daily_reset_hour_utc: int = 0
    weekly_reset_weekday: int = 0
    log_level: str = "INFO"
    definitions_path: str | None = None


_DEFAULTS = EngineConfig()


def get_user_data_dir() -> Path:
    """Return the per-user data directory."""
    if os.name == "nt":
        base = os.environ.get("APPDATA")
        if base:
            return Path(base) / "Questline"
        return Path.home() / "Questline"
    return Path.home() / ".config" / "questline"


def get_default_config_path() -> Path:
    """Return the config path from the environment or the per-user directory."""
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override)
    return get_user_data_dir() / "config.json"


def _normalize_count(value: object, default: int) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= 20:
        return value
    return default


def _normalize_hour(value: object) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= 23:
        return value
    return _DEFAULTS.daily_reset_hour_utc


def _normalize_weekday(value: object) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= 6:
        return value
    return _DEFAULTS.weekly_reset_weekday


def _normalize_log_level(value: object) -> str:
    if isinstance(value, str) and value.upper() in _LOG_LEVELS:
        return value.upper()
    return _DEFAULTS.log_level


def _normalize(raw: Dict[str, Any]) -> EngineConfig:
    definitions_path = raw.get("definitions_path")
    return EngineConfig(
        daily_quest_count=_normalize_count(raw.get("daily_quest_count"), _DEFAULTS.daily_quest_count),
        weekly_quest_count=_normalize_count(raw.get("weekly_quest_count"), _DEFAULTS.weekly_quest_count),
        daily_reset_hour_utc=_normalize_hour(raw.get("daily_reset_hour_utc")),
        weekly_reset_weekday=_normalize_weekday(raw.get("weekly_reset_weekday")),
        log_level=_normalize_log_level(raw.get("log_level")),
        definitions_path=definitions_path if isinstance(definitions_path, str) and definitions_path else None,
    )


def load_config(path: Path | None = None) -> EngineConfig:
    """Load config from disk or return defaults; unknown or invalid values fall back per key."""
    config_path = path or get_default_config_path()
    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return EngineConfig()
    except (OSError, json.JSONDecodeError) as exc:
        logging.getLogger(__name__).warning("Ignoring unreadable config %s: %s", config_path, exc)
        return EngineConfig()
    if not isinstance(raw, dict):
        return EngineConfig()
    return _normalize(raw)


def save_config(config: EngineConfig, path: Path | None = None) -> None:
    """Persist config to disk."""
    config_path = path or get_default_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    payload = asdict(_normalize(asdict(config)))
    config_path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once for hosts that do not set it up themselves."""
    logging.basicConfig(level=_normalize_log_level(level), format=_LOG_FORMAT)
