from __future__ import annotations

from datetime import datetime, timezone

from questline.config import EngineConfig
from questline.core.clock import ManualClock
from questline.domain.player import PlayerProfile
from questline.engine import Engine, build_engine

START = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def build_test_engine(
    *,
    level: int = 1,
    skills: dict[str, int] | None = None,
    config: EngineConfig | None = None,
    base_path=None,
    reward_applier=None,
    notification_sink=None,
    start: datetime = START,
) -> Engine:
    """Engine over the shipped catalogs with one player, ``hero``, and a manual clock."""
    engine = build_engine(
        config,
        base_path=base_path,
        clock=ManualClock(start),
        reward_applier=reward_applier,
        notification_sink=notification_sink,
    )
    engine.players.add(PlayerProfile(player_id="hero", name="Hero", level=level, skills=dict(skills or {})))
    return engine
