"""Service layer exports."""

from .errors import (
    AlreadyRewardedError,
    DuplicateActiveError,
    InvalidChoiceError,
    InvalidStateError,
    NoPendingBranchError,
    NotCompletedError,
    NotFoundError,
    PrerequisiteFailure,
    PrerequisiteNotMetError,
    ProgressionError,
    QuestExpiredError,
    RewardApplicationError,
    SaveLoadError,
    StorageError,
)
from .achievement_service import AchievementService, AchievementUpdate
from .notifications import InMemoryNotificationSink, Notifier
from .progress_tracker import ProgressTracker
from .progression_service import ProgressionResult, ProgressionService
from .quest_chain_service import ChainUpdate, QuestChainService
from .quest_service import QuestService, QuestUpdate
from .rewards import InMemoryRewardApplier
from .save_service import SaveService

__all__ = [
    "AchievementService",
    "AchievementUpdate",
    "AlreadyRewardedError",
    "ChainUpdate",
    "DuplicateActiveError",
    "InMemoryNotificationSink",
    "InMemoryRewardApplier",
    "InvalidChoiceError",
    "InvalidStateError",
    "NoPendingBranchError",
    "NotCompletedError",
    "NotFoundError",
    "Notifier",
    "PrerequisiteFailure",
    "PrerequisiteNotMetError",
    "ProgressTracker",
    "ProgressionError",
    "ProgressionResult",
    "ProgressionService",
    "QuestChainService",
    "QuestExpiredError",
    "QuestService",
    "QuestUpdate",
    "RewardApplicationError",
    "SaveLoadError",
    "SaveService",
    "StorageError",
]
