"""Requirement and reward definitions shared by every goal kind."""
from __future__ import annotations

from dataclasses import dataclass

from questline.core.types import WILDCARD_TARGET, RewardKind


@dataclass(frozen=True, slots=True)
class RequirementDef:
    """One countable sub-condition of a goal."""

    kind: str
    target: str | None
    threshold: int
    description: str = ""

    @property
    def is_wildcard(self) -> bool:
        return self.target is None or self.target == WILDCARD_TARGET

    def matches(self, event_type: str, target_id: str | None) -> bool:
        """Return True when an event of this type and target counts toward the requirement."""
        if self.kind != event_type:
            return False
        if self.is_wildcard:
            return True
        return self.target == target_id


@dataclass(frozen=True, slots=True)
class RewardDef:
    """Single reward entry handed to the reward applier.

    ``ref`` holds the item id for items, the title text for titles and the
    unlocked value for unlocks; ``unlock_kind`` is only set for unlocks.
    """

    kind: RewardKind
    amount: int = 0
    ref: str | None = None
    unlock_kind: str | None = None
    description: str = ""
