"""Repository for quest definitions."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List

from questline.core.types import EVENT_TYPES, QUEST_TYPES
from questline.data.errors import DataValidationError
from questline.data.repositories.base import RepositoryBase
from questline.domain.defs import QuestDef, RequirementDef, RewardDef

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class QuestsRepository(RepositoryBase[QuestDef]):
    """Loads and validates quest definitions."""

    def __init__(self, base_path=None) -> None:
        super().__init__("quests.json", base_path)

    def _build(self, raw: dict[str, object]) -> Dict[str, QuestDef]:
        container = self._require_mapping(raw, "quests.json")
        raw_quests = self._require_mapping(container.get("quests"), "quests.json.quests")
        definitions: Dict[str, QuestDef] = {}
        for quest_id, quest_payload in raw_quests.items():
            quest_map = self._require_mapping(quest_payload, f"quest '{quest_id}'")
            quest_id_value = self._require_str(quest_map.get("quest_id"), f"quest '{quest_id}' quest_id")
            if quest_id_value != quest_id:
                raise DataValidationError(
                    f"quest '{quest_id}' quest_id must match key (found '{quest_id_value}')."
                )
            title = self._require_str(quest_map.get("title"), f"quest '{quest_id}' title")
            description = self._require_optional_str(
                quest_map.get("description"), f"quest '{quest_id}' description"
            )
            quest_type = quest_map.get("type", "daily")
            if quest_type not in QUEST_TYPES:
                raise DataValidationError(
                    f"quest '{quest_id}' type must be one of {', '.join(QUEST_TYPES)}."
                )
            level = self._require_positive_int(quest_map.get("level"), f"quest '{quest_id}' level")
            time_limit = self._require_non_negative_int(
                quest_map.get("time_limit_hours", 24), f"quest '{quest_id}' time_limit_hours"
            )
            is_active = self._require_bool(quest_map.get("is_active", True), f"quest '{quest_id}' is_active")
            created_at = self._require_timestamp(quest_map.get("created_at"), f"quest '{quest_id}' created_at")
            definitions[quest_id] = QuestDef(
                quest_id=quest_id,
                title=title,
                description=description or "",
                quest_type=quest_type,  # type: ignore[arg-type]
                level=level,
                requirements=tuple(self._parse_requirements(quest_map.get("requirements"), quest_id)),
                rewards=tuple(self._parse_rewards(quest_map.get("rewards"), quest_id)),
                time_limit_hours=time_limit,
                is_active=is_active,
                created_at=created_at,
            )
        return definitions

    def find_for_level(self, level: int, quest_type: str, limit: int) -> List[QuestDef]:
        """Return up to ``limit`` active quests of a type the level qualifies for.

        Higher-level quests come first, then the most recently created ones.
        """
        candidates = [
            quest
            for quest in self.all()
            if quest.is_active and quest.quest_type == quest_type and quest.level <= level
        ]
        candidates.sort(
            key=lambda quest: (quest.level, quest.created_at or _EPOCH),
            reverse=True,
        )
        return candidates[:limit] if limit >= 0 else candidates

    def _parse_requirements(self, value: object, quest_id: str) -> List[RequirementDef]:
        entries = self._require_list(value, f"quest '{quest_id}' requirements")
        if not entries:
            raise DataValidationError(f"quest '{quest_id}' must define at least one requirement.")
        return [
            self._parse_requirement(entry, f"quest '{quest_id}' requirements[{index}]", allowed_kinds=EVENT_TYPES)
            for index, entry in enumerate(entries)
        ]

    def _parse_rewards(self, value: object, quest_id: str) -> List[RewardDef]:
        entries = self._require_list(value, f"quest '{quest_id}' rewards")
        if not entries:
            raise DataValidationError(f"quest '{quest_id}' must define at least one reward.")
        return [
            self._parse_reward(entry, f"quest '{quest_id}' rewards[{index}]")
            for index, entry in enumerate(entries)
        ]
