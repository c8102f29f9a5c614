"""Quest chain (storyline) definition structures."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

from questline.core.types import ChainCategory

from .requirement_def import RewardDef


@dataclass(frozen=True, slots=True)
class ChainStepDef:
    """One step of a chain.

    ``is_required`` is informational only; every step must still be completed.
    """

    step: int
    quest_id: str
    is_required: bool = True


@dataclass(frozen=True, slots=True)
class BranchChoiceDef:
    label: str
    next_step: int


@dataclass(frozen=True, slots=True)
class ChainBranchDef:
    """Branch point taken once the quest of ``after_step`` is completed."""

    after_step: int
    choices: Tuple[BranchChoiceDef, ...]

    @property
    def labels(self) -> Tuple[str, ...]:
        return tuple(choice.label for choice in self.choices)

    def match(self, label: str) -> BranchChoiceDef | None:
        """Case-insensitive exact match; partial labels never match."""
        wanted = label.strip().casefold()
        for choice in self.choices:
            if choice.label.casefold() == wanted:
                return choice
        return None


@dataclass(frozen=True, slots=True)
class SkillPrereqDef:
    skill: str
    level: int


@dataclass(frozen=True, slots=True)
class ChainPrereqDef:
    min_level: int = 1
    skills: Tuple[SkillPrereqDef, ...] = ()
    chains: Tuple[str, ...] = ()
    quests: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ChainUnlockDef:
    kind: str
    value: str


@dataclass(frozen=True, slots=True)
class ChainRewardDef:
    experience: int = 0
    currency: int = 0
    items: Tuple[RewardDef, ...] = ()
    unlocks: Tuple[ChainUnlockDef, ...] = ()

    def as_reward_list(self) -> Tuple[RewardDef, ...]:
        """Flatten the chain reward table into the applier's reward list."""
        rewards: list[RewardDef] = []
        if self.experience:
            rewards.append(RewardDef(kind="experience", amount=self.experience))
        if self.currency:
            rewards.append(RewardDef(kind="currency", amount=self.currency))
        rewards.extend(self.items)
        for unlock in self.unlocks:
            rewards.append(RewardDef(kind="unlock", ref=unlock.value, unlock_kind=unlock.kind))
        return tuple(rewards)


@dataclass(frozen=True, slots=True)
class QuestChainDef:
    chain_id: str
    title: str
    description: str
    category: ChainCategory
    steps: Tuple[ChainStepDef, ...]
    branches: Tuple[ChainBranchDef, ...] = ()
    prerequisites: ChainPrereqDef = field(default_factory=ChainPrereqDef)
    rewards: ChainRewardDef = field(default_factory=ChainRewardDef)
    recommended_level: int = 1
    is_repeatable: bool = False
    is_active: bool = True

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    def step(self, step_number: int) -> ChainStepDef | None:
        for step in self.steps:
            if step.step == step_number:
                return step
        return None

    def branch_after(self, step_number: int) -> ChainBranchDef | None:
        for branch in self.branches:
            if branch.after_step == step_number:
                return branch
        return None
