"""Repository for quest chain definitions."""
from __future__ import annotations

from typing import Dict, List

from questline.core.types import CHAIN_CATEGORIES, UNLOCK_KINDS
from questline.data.errors import DataReferenceError, DataValidationError
from questline.data.repositories.base import RepositoryBase
from questline.data.repositories.quests_repo import QuestsRepository
from questline.domain.defs import (
    BranchChoiceDef,
    ChainBranchDef,
    ChainPrereqDef,
    ChainRewardDef,
    ChainStepDef,
    ChainUnlockDef,
    QuestChainDef,
    RewardDef,
    SkillPrereqDef,
)


class QuestChainsRepository(RepositoryBase[QuestChainDef]):
    """Loads storylines and checks their quest and chain references."""

    def __init__(self, *, quests_repo: QuestsRepository, base_path=None) -> None:
        super().__init__("quest_chains.json", base_path)
        self._quests_repo = quests_repo

    def _build(self, raw: dict[str, object]) -> Dict[str, QuestChainDef]:
        container = self._require_mapping(raw.get("chains"), "quest_chains.json.chains")
        definitions: Dict[str, QuestChainDef] = {}
        for chain_id, payload in container.items():
            ctx = f"chain '{chain_id}'"
            mapping = self._require_mapping(payload, ctx)
            declared_id = self._require_str(mapping.get("chain_id"), f"{ctx} chain_id")
            if declared_id != chain_id:
                raise DataValidationError(f"{ctx} chain_id must match key (found '{declared_id}').")
            category = mapping.get("category", "side")
            if category not in CHAIN_CATEGORIES:
                raise DataValidationError(f"{ctx} category must be one of {', '.join(CHAIN_CATEGORIES)}.")
            definitions[chain_id] = QuestChainDef(
                chain_id=chain_id,
                title=self._require_str(mapping.get("title"), f"{ctx} title"),
                description=self._require_optional_str(mapping.get("description"), f"{ctx} description") or "",
                category=category,  # type: ignore[arg-type]
                steps=tuple(self._parse_steps(mapping.get("steps"), ctx)),
                branches=tuple(self._parse_branches(mapping.get("branches", []), ctx)),
                prerequisites=self._parse_prereqs(mapping.get("prerequisites"), ctx),
                rewards=self._parse_rewards(mapping.get("rewards"), ctx),
                recommended_level=self._require_positive_int(
                    mapping.get("recommended_level", 1), f"{ctx} recommended_level"
                ),
                is_repeatable=self._require_bool(mapping.get("is_repeatable", False), f"{ctx} is_repeatable"),
                is_active=self._require_bool(mapping.get("is_active", True), f"{ctx} is_active"),
            )
        for chain in definitions.values():
            for prior_chain_id in chain.prerequisites.chains:
                if prior_chain_id not in definitions:
                    raise DataReferenceError(
                        f"chain '{chain.chain_id}' prerequisites.chains references unknown chain '{prior_chain_id}'."
                    )
        return definitions

    def _parse_steps(self, value: object, ctx: str) -> List[ChainStepDef]:
        entries = self._require_list(value, f"{ctx} steps")
        if not entries:
            raise DataValidationError(f"{ctx} must define at least one step.")
        steps: List[ChainStepDef] = []
        seen: set[int] = set()
        for index, entry in enumerate(entries):
            step_ctx = f"{ctx} steps[{index}]"
            mapping = self._require_mapping(entry, step_ctx)
            step_number = self._require_positive_int(mapping.get("step"), f"{step_ctx}.step")
            if step_number in seen:
                raise DataValidationError(f"{step_ctx}.step {step_number} is defined twice.")
            seen.add(step_number)
            quest_id = self._require_str(mapping.get("quest_id"), f"{step_ctx}.quest_id")
            self._validate_quest_id(quest_id, step_ctx)
            is_required = self._require_bool(mapping.get("is_required", True), f"{step_ctx}.is_required")
            steps.append(ChainStepDef(step=step_number, quest_id=quest_id, is_required=is_required))
        steps.sort(key=lambda step: step.step)
        return steps

    def _parse_branches(self, value: object, ctx: str) -> List[ChainBranchDef]:
        entries = self._require_list(value, f"{ctx} branches")
        branches: List[ChainBranchDef] = []
        seen: set[int] = set()
        for index, entry in enumerate(entries):
            branch_ctx = f"{ctx} branches[{index}]"
            mapping = self._require_mapping(entry, branch_ctx)
            after_step = self._require_positive_int(mapping.get("after_step"), f"{branch_ctx}.after_step")
            if after_step in seen:
                raise DataValidationError(f"{branch_ctx}: step {after_step} already has a branch.")
            seen.add(after_step)
            choice_entries = self._require_list(mapping.get("choices"), f"{branch_ctx}.choices")
            if not choice_entries:
                raise DataValidationError(f"{branch_ctx} must offer at least one choice.")
            choices: List[BranchChoiceDef] = []
            labels: set[str] = set()
            for choice_index, choice_entry in enumerate(choice_entries):
                choice_ctx = f"{branch_ctx}.choices[{choice_index}]"
                choice_map = self._require_mapping(choice_entry, choice_ctx)
                label = self._require_str(choice_map.get("label"), f"{choice_ctx}.label")
                if label.casefold() in labels:
                    raise DataValidationError(f"{choice_ctx}.label '{label}' duplicates another choice.")
                labels.add(label.casefold())
                next_step = self._require_positive_int(choice_map.get("next_step"), f"{choice_ctx}.next_step")
                choices.append(BranchChoiceDef(label=label, next_step=next_step))
            branches.append(ChainBranchDef(after_step=after_step, choices=tuple(choices)))
        return branches

    def _parse_prereqs(self, value: object, ctx: str) -> ChainPrereqDef:
        if value is None:
            return ChainPrereqDef()
        mapping = self._require_mapping(value, f"{ctx} prerequisites")
        skills: List[SkillPrereqDef] = []
        for index, entry in enumerate(self._require_list(mapping.get("skills", []), f"{ctx} prerequisites.skills")):
            skill_ctx = f"{ctx} prerequisites.skills[{index}]"
            skill_map = self._require_mapping(entry, skill_ctx)
            skills.append(
                SkillPrereqDef(
                    skill=self._require_str(skill_map.get("skill"), f"{skill_ctx}.skill"),
                    level=self._require_positive_int(skill_map.get("level"), f"{skill_ctx}.level"),
                )
            )
        quests = tuple(self._require_str_list(mapping.get("quests", []), f"{ctx} prerequisites.quests"))
        for quest_id in quests:
            self._validate_quest_id(quest_id, f"{ctx} prerequisites.quests")
        return ChainPrereqDef(
            min_level=self._require_positive_int(mapping.get("min_level", 1), f"{ctx} prerequisites.min_level"),
            skills=tuple(skills),
            chains=tuple(self._require_str_list(mapping.get("chains", []), f"{ctx} prerequisites.chains")),
            quests=quests,
        )

    def _parse_rewards(self, value: object, ctx: str) -> ChainRewardDef:
        if value is None:
            return ChainRewardDef()
        mapping = self._require_mapping(value, f"{ctx} rewards")
        items: List[RewardDef] = []
        for index, entry in enumerate(self._require_list(mapping.get("items", []), f"{ctx} rewards.items")):
            item_ctx = f"{ctx} rewards.items[{index}]"
            item_map = self._require_mapping(entry, item_ctx)
            item_id = self._require_str(item_map.get("item_id"), f"{item_ctx}.item_id")
            quantity = self._require_positive_int(item_map.get("quantity", 1), f"{item_ctx}.quantity")
            name = self._require_optional_str(item_map.get("name"), f"{item_ctx}.name")
            items.append(RewardDef(kind="item", amount=quantity, ref=item_id, description=name or item_id))
        unlocks: List[ChainUnlockDef] = []
        for index, entry in enumerate(self._require_list(mapping.get("unlocks", []), f"{ctx} rewards.unlocks")):
            unlock_ctx = f"{ctx} rewards.unlocks[{index}]"
            unlock_map = self._require_mapping(entry, unlock_ctx)
            kind = self._require_str(unlock_map.get("kind"), f"{unlock_ctx}.kind")
            if kind not in UNLOCK_KINDS:
                raise DataValidationError(f"{unlock_ctx}.kind must be one of {', '.join(UNLOCK_KINDS)}.")
            unlocks.append(ChainUnlockDef(kind=kind, value=self._require_str(unlock_map.get("value"), f"{unlock_ctx}.value")))
        return ChainRewardDef(
            experience=self._require_non_negative_int(mapping.get("experience", 0), f"{ctx} rewards.experience"),
            currency=self._require_non_negative_int(mapping.get("currency", 0), f"{ctx} rewards.currency"),
            items=tuple(items),
            unlocks=tuple(unlocks),
        )

    def _validate_quest_id(self, quest_id: str, context: str) -> None:
        try:
            self._quests_repo.get(quest_id)
        except KeyError as exc:
            raise DataReferenceError(f"{context} references unknown quest '{quest_id}'.") from exc
