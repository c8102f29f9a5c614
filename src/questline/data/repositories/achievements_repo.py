"""Repository for achievement definitions."""
from __future__ import annotations

from typing import Dict, List

from questline.core.types import ACHIEVEMENT_CATEGORIES, ACHIEVEMENT_KINDS
from questline.data.errors import DataValidationError
from questline.data.repositories.base import RepositoryBase
from questline.domain.defs import AchievementDef, AchievementTierDef


class AchievementsRepository(RepositoryBase[AchievementDef]):
    """Loads single and tiered achievements."""

    def __init__(self, base_path=None) -> None:
        super().__init__("achievements.json", base_path)

    def _build(self, raw: dict[str, object]) -> Dict[str, AchievementDef]:
        container = self._require_mapping(raw.get("achievements"), "achievements.json.achievements")
        definitions: Dict[str, AchievementDef] = {}
        for achievement_id, payload in container.items():
            ctx = f"achievement '{achievement_id}'"
            mapping = self._require_mapping(payload, ctx)
            declared_id = self._require_str(mapping.get("achievement_id"), f"{ctx} achievement_id")
            if declared_id != achievement_id:
                raise DataValidationError(f"{ctx} achievement_id must match key (found '{declared_id}').")
            name = self._require_str(mapping.get("name"), f"{ctx} name")
            description = self._require_optional_str(mapping.get("description"), f"{ctx} description") or ""
            category = mapping.get("category", "misc")
            if category not in ACHIEVEMENT_CATEGORIES:
                raise DataValidationError(
                    f"{ctx} category must be one of {', '.join(ACHIEVEMENT_CATEGORIES)}."
                )
            tiers = self._parse_tiers(mapping.get("tiers", []), ctx)
            requirement = self._parse_requirement(
                mapping.get("requirement"),
                f"{ctx} requirement",
                allowed_kinds=ACHIEVEMENT_KINDS,
                threshold_required=not tiers,
            )
            reward = None
            if mapping.get("reward") is not None:
                reward = self._parse_reward(mapping.get("reward"), f"{ctx} reward")
            if not tiers and reward is None:
                raise DataValidationError(f"{ctx} must define a reward or tiers.")
            is_active = self._require_bool(mapping.get("is_active", True), f"{ctx} is_active")
            definitions[achievement_id] = AchievementDef(
                achievement_id=achievement_id,
                name=name,
                description=description,
                category=category,  # type: ignore[arg-type]
                requirement=requirement,
                reward=reward,
                tiers=tuple(tiers),
                is_active=is_active,
            )
        return definitions

    def find_by_requirement(self, kind: str, target_id: str | None) -> List[AchievementDef]:
        """Active achievements whose requirement counts an event of this kind and target."""
        return [
            achievement
            for achievement in self.all()
            if achievement.is_active and achievement.requirement.matches(kind, target_id)
        ]

    def _parse_tiers(self, value: object, ctx: str) -> List[AchievementTierDef]:
        entries = self._require_list(value, f"{ctx} tiers")
        tiers: List[AchievementTierDef] = []
        previous_threshold = 0
        for index, entry in enumerate(entries):
            tier_ctx = f"{ctx} tiers[{index}]"
            mapping = self._require_mapping(entry, tier_ctx)
            tier_number = self._require_positive_int(mapping.get("tier"), f"{tier_ctx}.tier")
            if tier_number != index + 1:
                raise DataValidationError(f"{tier_ctx}.tier must be {index + 1}; tiers are numbered from 1.")
            threshold = self._require_positive_int(mapping.get("threshold"), f"{tier_ctx}.threshold")
            if threshold <= previous_threshold:
                raise DataValidationError(f"{tier_ctx}.threshold must be greater than the previous tier.")
            previous_threshold = threshold
            reward = None
            if mapping.get("reward") is not None:
                reward = self._parse_reward(mapping.get("reward"), f"{tier_ctx}.reward")
            tiers.append(AchievementTierDef(tier=tier_number, threshold=threshold, reward=reward))
        return tiers
