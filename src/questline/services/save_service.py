"""Versioned export and import of one player's progression records."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping

from questline.core.clock import Clock
from questline.core.types import CHAIN_STATUSES
from questline.data.errors import DataLoadError
from questline.data.json_loader import load_json, write_json
from questline.data.stores import (
    AchievementRecordStore,
    ChainRecordStore,
    PlayerDirectory,
    QuestRecordStore,
)
from questline.domain.player import PlayerProfile
from questline.domain.progress_state import (
    AchievementProgressRecord,
    ChainStepRecord,
    PlayerChainProgress,
    QuestProgressRecord,
    RequirementProgress,
)
from questline.services.errors import NotFoundError, SaveLoadError

logger = logging.getLogger(__name__)

SavePayload = Dict[str, Any]


class SaveService:
    """Converts a player's records to/from a validated, versioned payload."""

    SAVE_VERSION = 1

    def __init__(
        self,
        *,
        players: PlayerDirectory,
        quest_store: QuestRecordStore,
        achievement_store: AchievementRecordStore,
        chain_store: ChainRecordStore,
        clock: Clock | None = None,
    ) -> None:
        self._players = players
        self._quest_store = quest_store
        self._achievement_store = achievement_store
        self._chain_store = chain_store
        self._clock = clock or Clock()

    def serialize(self, player_id: str) -> SavePayload:
        """Return a JSON-serializable payload for one player."""
        player = self._players.get(player_id)
        if player is None:
            raise NotFoundError("player", player_id)
        return {
            "save_version": self.SAVE_VERSION,
            "metadata": {
                "player_id": player.player_id,
                "player_name": player.name,
                "saved_at": self._clock.now().isoformat(),
            },
            "player": {
                "player_id": player.player_id,
                "name": player.name,
                "level": player.level,
                "exp": player.exp,
                "skills": dict(player.skills),
            },
            "quests": [self._serialize_quest(record) for record in self._quest_store.for_player(player_id)],
            "completed_quests": self._quest_store.completed_ids(player_id),
            "achievements": [
                self._serialize_achievement(record) for record in self._achievement_store.for_player(player_id)
            ],
            "chains": [self._serialize_chain(record) for record in self._chain_store.for_player(player_id)],
        }

    def deserialize(self, payload: Mapping[str, Any]) -> PlayerProfile:
        """Replace the player's profile and records with the payload's contents.

        The whole payload is validated before any store is touched.
        """
        if not isinstance(payload, Mapping):
            raise SaveLoadError("Save data must be a JSON object.")
        if payload.get("save_version") != self.SAVE_VERSION:
            raise SaveLoadError(f"Unsupported save version: {payload.get('save_version')!r}")
        player = self._coerce_player(payload.get("player"))
        quests = [
            self._coerce_quest(entry, player.player_id, f"quests[{index}]")
            for index, entry in enumerate(self._require_list(payload.get("quests", []), "quests"))
        ]
        achievements = [
            self._coerce_achievement(entry, player.player_id, f"achievements[{index}]")
            for index, entry in enumerate(self._require_list(payload.get("achievements", []), "achievements"))
        ]
        chains = [
            self._coerce_chain(entry, player.player_id, f"chains[{index}]")
            for index, entry in enumerate(self._require_list(payload.get("chains", []), "chains"))
        ]
        completed_quests = [
            self._require_str(entry, f"completed_quests[{index}]")
            for index, entry in enumerate(self._require_list(payload.get("completed_quests", []), "completed_quests"))
        ]
        self._require_unique([record.quest_id for record in quests], "quests")
        self._require_unique([record.achievement_id for record in achievements], "achievements")
        self._require_unique([record.chain_id for record in chains], "chains")

        self._players.replace(player)
        for store in (self._quest_store, self._achievement_store, self._chain_store):
            store.clear_player(player.player_id)
        for record in quests:
            self._quest_store.insert(record)
            if record.is_completed:
                self._quest_store.mark_completed(player.player_id, record.quest_id)
        for quest_id in completed_quests:
            self._quest_store.mark_completed(player.player_id, quest_id)
        for record in achievements:
            self._achievement_store.insert(record)
        for record in chains:
            self._chain_store.insert(record)
        logger.info(
            "Loaded save for player %s (%d quests, %d achievements, %d chains)",
            player.player_id,
            len(quests),
            len(achievements),
            len(chains),
        )
        return player

    def write(self, path: Path | str, player_id: str) -> None:
        try:
            write_json(Path(path), self.serialize(player_id))
        except OSError as exc:
            raise SaveLoadError(f"Unable to write save file {path}: {exc}") from exc

    def read(self, path: Path | str) -> PlayerProfile:
        try:
            payload = load_json(Path(path))
        except DataLoadError as exc:
            raise SaveLoadError(str(exc)) from exc
        return self.deserialize(payload)  # type: ignore[arg-type]

    @staticmethod
    def _serialize_requirements(entries: List[RequirementProgress]) -> List[Dict[str, Any]]:
        return [
            {"requirement_index": entry.requirement_index, "current": entry.current, "completed": entry.completed}
            for entry in entries
        ]

    def _serialize_quest(self, record: QuestProgressRecord) -> Dict[str, Any]:
        return {
            "quest_id": record.quest_id,
            "started_at": record.started_at.isoformat(),
            "requirements": self._serialize_requirements(record.requirements),
            "is_completed": record.is_completed,
            "is_rewarded": record.is_rewarded,
            "completed_at": _isoformat(record.completed_at),
            "rewarded_at": _isoformat(record.rewarded_at),
        }

    def _serialize_achievement(self, record: AchievementProgressRecord) -> Dict[str, Any]:
        return {
            "achievement_id": record.achievement_id,
            "requirements": self._serialize_requirements(record.requirements),
            "current_tier": record.current_tier,
            "is_completed": record.is_completed,
            "completed_at": _isoformat(record.completed_at),
            "claimed_tiers": list(record.claimed_tiers),
            "claimed_at": _isoformat(record.claimed_at),
        }

    @staticmethod
    def _serialize_chain(record: PlayerChainProgress) -> Dict[str, Any]:
        return {
            "chain_id": record.chain_id,
            "started_at": record.started_at.isoformat(),
            "current_step": record.current_step,
            "current_quest_id": record.current_quest_id,
            "completed_steps": [
                {
                    "step": entry.step,
                    "completed_at": entry.completed_at.isoformat(),
                    "choice_made": entry.choice_made,
                }
                for entry in record.completed_steps
            ],
            "status": record.status,
            "is_rewarded": record.is_rewarded,
            "pending_branch_step": record.pending_branch_step,
            "completed_at": _isoformat(record.completed_at),
        }

    def _coerce_player(self, value: Any) -> PlayerProfile:
        mapping = self._require_dict(value, "player")
        skills = self._require_dict(mapping.get("skills", {}), "player.skills")
        for skill, level in skills.items():
            self._require_non_negative_int(level, f"player.skills['{skill}']")
        return PlayerProfile(
            player_id=self._require_str(mapping.get("player_id"), "player.player_id"),
            name=self._require_str(mapping.get("name"), "player.name"),
            level=self._require_non_negative_int(mapping.get("level"), "player.level"),
            exp=self._require_non_negative_int(mapping.get("exp", 0), "player.exp"),
            skills=dict(skills),
        )

    def _coerce_requirements(self, value: Any, context: str) -> List[RequirementProgress]:
        entries: List[RequirementProgress] = []
        for index, entry in enumerate(self._require_list(value, context)):
            entry_ctx = f"{context}[{index}]"
            mapping = self._require_dict(entry, entry_ctx)
            entries.append(
                RequirementProgress(
                    requirement_index=self._require_non_negative_int(
                        mapping.get("requirement_index"), f"{entry_ctx}.requirement_index"
                    ),
                    current=self._require_non_negative_int(mapping.get("current"), f"{entry_ctx}.current"),
                    completed=self._require_bool(mapping.get("completed"), f"{entry_ctx}.completed"),
                )
            )
        return entries

    def _coerce_quest(self, value: Any, player_id: str, context: str) -> QuestProgressRecord:
        mapping = self._require_dict(value, context)
        record = QuestProgressRecord(
            player_id=player_id,
            quest_id=self._require_str(mapping.get("quest_id"), f"{context}.quest_id"),
            started_at=self._require_datetime(mapping.get("started_at"), f"{context}.started_at"),
            requirements=self._coerce_requirements(mapping.get("requirements", []), f"{context}.requirements"),
            is_completed=self._require_bool(mapping.get("is_completed"), f"{context}.is_completed"),
            is_rewarded=self._require_bool(mapping.get("is_rewarded"), f"{context}.is_rewarded"),
            completed_at=self._coerce_optional_datetime(mapping.get("completed_at"), f"{context}.completed_at"),
            rewarded_at=self._coerce_optional_datetime(mapping.get("rewarded_at"), f"{context}.rewarded_at"),
        )
        if record.is_rewarded and not record.is_completed:
            raise SaveLoadError(f"{context} is rewarded but not completed.")
        if record.is_completed != bool(record.requirements and all(e.completed for e in record.requirements)):
            raise SaveLoadError(f"{context}.is_completed disagrees with its requirements.")
        return record

    def _coerce_achievement(self, value: Any, player_id: str, context: str) -> AchievementProgressRecord:
        mapping = self._require_dict(value, context)
        claimed = self._require_list(mapping.get("claimed_tiers", []), f"{context}.claimed_tiers")
        record = AchievementProgressRecord(
            player_id=player_id,
            achievement_id=self._require_str(mapping.get("achievement_id"), f"{context}.achievement_id"),
            requirements=self._coerce_requirements(mapping.get("requirements", []), f"{context}.requirements"),
            current_tier=self._require_non_negative_int(mapping.get("current_tier"), f"{context}.current_tier"),
            is_completed=self._require_bool(mapping.get("is_completed"), f"{context}.is_completed"),
            completed_at=self._coerce_optional_datetime(mapping.get("completed_at"), f"{context}.completed_at"),
            claimed_tiers=[
                self._require_non_negative_int(tier, f"{context}.claimed_tiers[{index}]")
                for index, tier in enumerate(claimed)
            ],
            claimed_at=self._coerce_optional_datetime(mapping.get("claimed_at"), f"{context}.claimed_at"),
        )
        if any(tier < 1 or tier > record.current_tier for tier in record.claimed_tiers):
            raise SaveLoadError(f"{context}.claimed_tiers must be reached tiers.")
        return record

    def _coerce_chain(self, value: Any, player_id: str, context: str) -> PlayerChainProgress:
        mapping = self._require_dict(value, context)
        status = mapping.get("status")
        if status not in CHAIN_STATUSES:
            raise SaveLoadError(f"{context}.status must be one of {', '.join(CHAIN_STATUSES)}.")
        steps: List[ChainStepRecord] = []
        for index, entry in enumerate(self._require_list(mapping.get("completed_steps", []), f"{context}.completed_steps")):
            step_ctx = f"{context}.completed_steps[{index}]"
            step_map = self._require_dict(entry, step_ctx)
            choice = step_map.get("choice_made")
            steps.append(
                ChainStepRecord(
                    step=self._require_non_negative_int(step_map.get("step"), f"{step_ctx}.step"),
                    completed_at=self._require_datetime(step_map.get("completed_at"), f"{step_ctx}.completed_at"),
                    choice_made=None if choice is None else self._require_str(choice, f"{step_ctx}.choice_made"),
                )
            )
        current_quest_id = mapping.get("current_quest_id")
        pending = mapping.get("pending_branch_step")
        record = PlayerChainProgress(
            player_id=player_id,
            chain_id=self._require_str(mapping.get("chain_id"), f"{context}.chain_id"),
            started_at=self._require_datetime(mapping.get("started_at"), f"{context}.started_at"),
            current_step=self._require_non_negative_int(mapping.get("current_step"), f"{context}.current_step"),
            current_quest_id=(
                None if current_quest_id is None else self._require_str(current_quest_id, f"{context}.current_quest_id")
            ),
            completed_steps=steps,
            status=status,
            is_rewarded=self._require_bool(mapping.get("is_rewarded"), f"{context}.is_rewarded"),
            pending_branch_step=(
                None if pending is None else self._require_non_negative_int(pending, f"{context}.pending_branch_step")
            ),
            completed_at=self._coerce_optional_datetime(mapping.get("completed_at"), f"{context}.completed_at"),
        )
        if (record.current_quest_id is not None) != record.is_active:
            raise SaveLoadError(f"{context}.current_quest_id must be set exactly while the chain is active.")
        return record

    @staticmethod
    def _require_unique(ids: List[str], context: str) -> None:
        seen: set[str] = set()
        for record_id in ids:
            if record_id in seen:
                raise SaveLoadError(f"{context} lists '{record_id}' more than once.")
            seen.add(record_id)

    @staticmethod
    def _require_dict(value: Any, context: str) -> Dict[str, Any]:
        if not isinstance(value, dict):
            raise SaveLoadError(f"{context} must be an object.")
        return value

    @staticmethod
    def _require_list(value: Any, context: str) -> List[Any]:
        if not isinstance(value, list):
            raise SaveLoadError(f"{context} must be a list.")
        return value

    @staticmethod
    def _require_str(value: Any, context: str) -> str:
        if not isinstance(value, str) or not value:
            raise SaveLoadError(f"{context} must be a non-empty string.")
        return value

    @staticmethod
    def _require_bool(value: Any, context: str) -> bool:
        if not isinstance(value, bool):
            raise SaveLoadError(f"{context} must be a boolean.")
        return value

    @staticmethod
    def _require_non_negative_int(value: Any, context: str) -> int:
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise SaveLoadError(f"{context} must be a non-negative integer.")
        return value

    @staticmethod
    def _require_datetime(value: Any, context: str) -> datetime:
        if not isinstance(value, str):
            raise SaveLoadError(f"{context} must be an ISO timestamp.")
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError as exc:
            raise SaveLoadError(f"{context} must be an ISO timestamp.") from exc
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    def _coerce_optional_datetime(self, value: Any, context: str) -> datetime | None:
        if value is None:
            return None
        return self._require_datetime(value, context)


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None
