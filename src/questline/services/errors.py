"""Service-layer exceptions.

Every rejection carries the failed precondition as attributes so the command
layer can word its own message. ``retryable`` is only True for storage
failures.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple


class ProgressionError(Exception):
    """Base class for every typed progression outcome that is not a success."""

    retryable = False


class NotFoundError(ProgressionError):
    """Raised when a player, definition or progress record does not exist."""

    def __init__(self, entity: str, entity_id: str, *, player_id: str | None = None) -> None:
        self.entity = entity
        self.entity_id = entity_id
        self.player_id = player_id
        owner = f" for player '{player_id}'" if player_id else ""
        super().__init__(f"{entity} '{entity_id}' not found{owner}.")


class InvalidStateError(ProgressionError):
    """Raised when an operation is not valid in the record's lifecycle state."""

    def __init__(self, entity: str, entity_id: str, state: str, detail: str = "") -> None:
        self.entity = entity
        self.entity_id = entity_id
        self.state = state
        self.detail = detail
        message = f"{entity} '{entity_id}' is {state}."
        super().__init__(f"{message} {detail}".strip())


class NotCompletedError(InvalidStateError):
    """Raised when claiming a goal that is still in progress."""

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(entity, entity_id, "not completed")


class AlreadyRewardedError(InvalidStateError):
    """Raised when claiming a goal whose reward was already granted."""

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(entity, entity_id, "already rewarded")


class QuestExpiredError(InvalidStateError):
    """Raised when a time-limited quest ran out before it was completed."""

    def __init__(self, quest_id: str, expired_at: object) -> None:
        self.expired_at = expired_at
        super().__init__("quest", quest_id, "expired", f"Time limit ended at {expired_at}.")


class NoPendingBranchError(InvalidStateError):
    """Raised when choosing a branch while the chain is not waiting for a choice."""

    def __init__(self, chain_id: str, current_step: int) -> None:
        self.current_step = current_step
        super().__init__("chain", chain_id, "not awaiting a choice", f"Current step is {current_step}.")


class DuplicateActiveError(ProgressionError):
    """Raised when starting or assigning something the player already holds."""

    def __init__(self, entity: str, entity_id: str, state: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        self.state = state
        super().__init__(f"{entity} '{entity_id}' is already {state}.")


@dataclass(frozen=True, slots=True)
class PrerequisiteFailure:
    """One unmet gating condition.

    ``kind`` is ``level``, ``skill``, ``chain`` or ``quest``; ``subject`` names
    the skill, chain or quest (None for level).
    """

    kind: str
    subject: str | None
    required: int | str
    actual: int | str | None

    @property
    def gap(self) -> int | None:
        if isinstance(self.required, int) and isinstance(self.actual, int):
            return max(self.required - self.actual, 0)
        return None


class PrerequisiteNotMetError(ProgressionError):
    """Raised when a chain's level, skill, prior-chain or prior-quest gate fails."""

    def __init__(self, chain_id: str, failures: Sequence[PrerequisiteFailure]) -> None:
        if not failures:
            raise ValueError("PrerequisiteNotMetError needs at least one failure.")
        self.chain_id = chain_id
        self.failures: Tuple[PrerequisiteFailure, ...] = tuple(failures)
        first = self.failures[0]
        subject = f" '{first.subject}'" if first.subject else ""
        super().__init__(
            f"chain '{chain_id}' prerequisite {first.kind}{subject} not met "
            f"(required {first.required}, have {first.actual})."
        )

    @property
    def failure(self) -> PrerequisiteFailure:
        return self.failures[0]


class InvalidChoiceError(ProgressionError):
    """Raised when a branch label matches none of the offered choices."""

    def __init__(self, chain_id: str, choice: str, valid_choices: Sequence[str]) -> None:
        self.chain_id = chain_id
        self.choice = choice
        self.valid_choices: Tuple[str, ...] = tuple(valid_choices)
        super().__init__(
            f"'{choice}' is not a choice for chain '{chain_id}'. Valid: {', '.join(self.valid_choices)}."
        )


class StorageError(ProgressionError):
    """Raised when the record store fails transiently. Safe to retry."""

    retryable = True


class RewardApplicationError(ProgressionError):
    """Raised when granting a reward fails; the claim is rolled back."""

    def __init__(self, entity: str, entity_id: str, player_id: str, cause: str = "") -> None:
        self.entity = entity
        self.entity_id = entity_id
        self.player_id = player_id
        suffix = f": {cause}" if cause else ""
        super().__init__(f"Reward for {entity} '{entity_id}' could not be granted to '{player_id}'{suffix}")


class SaveLoadError(Exception):
    """Raised when a progression save payload cannot be read or written."""
