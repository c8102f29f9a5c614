"""Generic requirement accumulator shared by quests and achievements."""
from __future__ import annotations

from datetime import datetime
from typing import List, Protocol, Sequence

from questline.domain.defs import RequirementDef
from questline.domain.progress_state import RequirementProgress


class TrackedRecord(Protocol):
    """Anything with per-requirement counters and a completion flag."""

    requirements: List[RequirementProgress]
    is_completed: bool
    completed_at: datetime | None


def zeroed_progress(requirements: Sequence[RequirementDef]) -> List[RequirementProgress]:
    return [RequirementProgress(requirement_index=index) for index in range(len(requirements))]


def ensure_entries(record: TrackedRecord, requirements: Sequence[RequirementDef]) -> None:
    """Backfill missing counters so every requirement index has an entry."""
    known = {entry.requirement_index for entry in record.requirements}
    for index in range(len(requirements)):
        if index not in known:
            record.requirements.append(RequirementProgress(requirement_index=index))
    record.requirements.sort(key=lambda entry: entry.requirement_index)


def credit(entry: RequirementProgress, requirement: RequirementDef, amount: int) -> bool:
    """Add to one counter, saturating at the threshold. Returns True if it changed."""
    if entry.completed or amount <= 0:
        return False
    entry.current = min(entry.current + amount, requirement.threshold)
    if entry.current >= requirement.threshold:
        entry.completed = True
    return True


def apply_event(
    record: TrackedRecord,
    requirements: Sequence[RequirementDef],
    event_type: str,
    target_id: str | None,
    quantity: int,
    now: datetime,
) -> bool:
    """Apply one event to a record.

    Returns True only when this call flips the record from in-progress to
    completed. Already completed records are left untouched.
    """
    if record.is_completed:
        return False
    ensure_entries(record, requirements)
    updated = False
    for entry in record.requirements:
        if entry.requirement_index >= len(requirements):
            continue
        requirement = requirements[entry.requirement_index]
        if not requirement.matches(event_type, target_id):
            continue
        updated |= credit(entry, requirement, quantity)
    if not updated:
        return False
    if all(entry.completed for entry in record.requirements):
        record.is_completed = True
        record.completed_at = now
        return True
    return False
