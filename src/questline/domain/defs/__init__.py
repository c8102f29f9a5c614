"""Domain definition exports."""

from .achievement_def import AchievementDef, AchievementTierDef
from .quest_chain_def import (
    BranchChoiceDef,
    ChainBranchDef,
    ChainPrereqDef,
    ChainRewardDef,
    ChainStepDef,
    ChainUnlockDef,
    QuestChainDef,
    SkillPrereqDef,
)
from .quest_def import QuestDef
from .requirement_def import RequirementDef, RewardDef

__all__ = [
    "AchievementDef",
    "AchievementTierDef",
    "BranchChoiceDef",
    "ChainBranchDef",
    "ChainPrereqDef",
    "ChainRewardDef",
    "ChainStepDef",
    "ChainUnlockDef",
    "QuestChainDef",
    "QuestDef",
    "RequirementDef",
    "RewardDef",
    "SkillPrereqDef",
]
