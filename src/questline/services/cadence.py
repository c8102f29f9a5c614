"""Calendar reset policy for repeating quests."""
from __future__ import annotations

from datetime import datetime, timedelta

from questline.config import EngineConfig


def current_period_start(now: datetime, quest_type: str, config: EngineConfig) -> datetime | None:
    """Start of the reset period ``now`` falls in, or None for non-repeating types.

    Daily periods begin every day at ``daily_reset_hour_utc``; weekly periods
    begin on ``weekly_reset_weekday`` (0 is Monday) at the same hour.
    """
    reset_today = now.replace(hour=config.daily_reset_hour_utc, minute=0, second=0, microsecond=0)
    if quest_type == "daily":
        if now < reset_today:
            return reset_today - timedelta(days=1)
        return reset_today
    if quest_type == "weekly":
        days_back = (now.weekday() - config.weekly_reset_weekday) % 7
        start = reset_today - timedelta(days=days_back)
        if now < start:
            start -= timedelta(days=7)
        return start
    return None


def is_stale(started_at: datetime, now: datetime, quest_type: str, config: EngineConfig) -> bool:
    """True when a repeating quest was assigned before the current reset period."""
    period_start = current_period_start(now, quest_type, config)
    if period_start is None:
        return False
    return started_at < period_start
