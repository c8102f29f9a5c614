"""Fan-out of one gameplay event across a player's tracked goals."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Sequence

from questline.core.clock import Clock
from questline.core.types import ACHIEVEMENT_KINDS
from questline.domain.defs import RequirementDef
from questline.domain.progress import TrackedRecord, apply_event

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TrackedGoal:
    """A record paired with the requirement list it is measured against."""

    goal_kind: str
    goal_id: str
    record: TrackedRecord
    requirements: Sequence[RequirementDef]


@dataclass(slots=True)
class CompletedGoal:
    goal_kind: str
    goal_id: str
    player_id: str
    completed_at: datetime


class ProgressTracker:
    """Increments matching requirement counters; never notifies or rewards.

    Callers own deduplication of replayed events. Counters saturate at their
    thresholds, so replays can neither push a counter past its cap nor
    un-complete a requirement.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or Clock()

    def apply_event(
        self,
        player_id: str,
        event_type: str,
        target_id: str | None,
        quantity: int,
        goals: Iterable[TrackedGoal],
    ) -> List[CompletedGoal]:
        validate_event(event_type, quantity)
        now = self._clock.now()
        completed: List[CompletedGoal] = []
        for goal in goals:
            if apply_event(goal.record, goal.requirements, event_type, target_id, quantity, now):
                logger.info("Player %s completed %s %s", player_id, goal.goal_kind, goal.goal_id)
                completed.append(
                    CompletedGoal(
                        goal_kind=goal.goal_kind,
                        goal_id=goal.goal_id,
                        player_id=player_id,
                        completed_at=now,
                    )
                )
        return completed


def validate_event(event_type: str, quantity: int) -> None:
    if event_type not in ACHIEVEMENT_KINDS:
        raise ValueError(f"Unknown event type '{event_type}'.")
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
        raise ValueError("Event quantity must be an integer >= 1.")
