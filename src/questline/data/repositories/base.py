"""Base repository implementation for JSON definition data."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Generic, List, Sequence, TypeVar

from questline.core.types import REWARD_KINDS, UNLOCK_KINDS
from questline.data import paths
from questline.data.errors import DataValidationError
from questline.data.json_loader import load_json
from questline.domain.defs import RequirementDef, RewardDef

T = TypeVar("T")

logger = logging.getLogger(__name__)


class RepositoryBase(Generic[T]):
    """Common caching and loading behavior for repositories."""

    def __init__(self, filename: str, base_path: Path | str | None = None) -> None:
        self._filename = filename
        self._base_path = Path(base_path) if base_path is not None else None
        self._definitions: Dict[str, T] | None = None

    def _get_file_path(self) -> Path:
        definitions_dir = paths.get_definitions_path(self._base_path)
        return definitions_dir / self._filename

    def _load_raw(self) -> dict[str, object]:
        file_path = self._get_file_path()
        raw = load_json(file_path)
        if not isinstance(raw, dict):
            raise DataValidationError(f"Expected top-level object in {file_path}")
        return raw

    def _build(self, raw: dict[str, object]) -> Dict[str, T]:
        """Convert a raw dict into typed definitions."""
        raise NotImplementedError

    def _ensure_loaded(self) -> None:
        if self._definitions is None:
            raw = self._load_raw()
            self._definitions = self._build(raw)
            logger.info("Loaded %d definitions from %s", len(self._definitions), self._filename)

    def get(self, def_id: str) -> T:
        """Return a definition by id."""
        self._ensure_loaded()
        assert self._definitions is not None
        try:
            return self._definitions[def_id]
        except KeyError as exc:
            raise KeyError(def_id) from exc

    def find(self, def_id: str) -> T | None:
        """Return a definition by id, or None when it is unknown."""
        self._ensure_loaded()
        assert self._definitions is not None
        return self._definitions.get(def_id)

    def has(self, def_id: str) -> bool:
        return self.find(def_id) is not None

    def all(self) -> list[T]:
        """Return all definitions sorted deterministically by id."""
        self._ensure_loaded()
        assert self._definitions is not None
        return [self._definitions[key] for key in sorted(self._definitions.keys())]

    def _parse_requirement(
        self, value: object, context: str, *, allowed_kinds: Sequence[str], threshold_required: bool = True
    ) -> RequirementDef:
        mapping = self._require_mapping(value, context)
        kind = self._require_str(mapping.get("kind"), f"{context}.kind")
        if kind not in allowed_kinds:
            raise DataValidationError(f"{context}.kind must be one of {', '.join(allowed_kinds)}.")
        target = self._require_optional_str(mapping.get("target"), f"{context}.target")
        if threshold_required or "threshold" in mapping:
            threshold = self._require_positive_int(mapping.get("threshold"), f"{context}.threshold")
        else:
            threshold = 1
        description = self._require_optional_str(mapping.get("description"), f"{context}.description")
        return RequirementDef(kind=kind, target=target, threshold=threshold, description=description or "")

    def _parse_reward(self, value: object, context: str) -> RewardDef:
        mapping = self._require_mapping(value, context)
        kind = self._require_str(mapping.get("kind"), f"{context}.kind")
        if kind not in REWARD_KINDS:
            raise DataValidationError(f"{context}.kind must be one of {', '.join(REWARD_KINDS)}.")
        description = self._require_optional_str(mapping.get("description"), f"{context}.description") or ""
        ref = self._require_optional_str(mapping.get("ref"), f"{context}.ref")
        unlock_kind = None
        amount = 0
        if kind in ("currency", "experience"):
            amount = self._require_positive_int(mapping.get("amount"), f"{context}.amount")
        elif kind == "item":
            ref = self._require_str(ref, f"{context}.ref")
            amount = self._require_positive_int(mapping.get("amount", 1), f"{context}.amount")
        elif kind == "title":
            ref = self._require_str(ref, f"{context}.ref")
        else:
            ref = self._require_str(ref, f"{context}.ref")
            unlock_kind = self._require_str(mapping.get("unlock_kind"), f"{context}.unlock_kind")
            if unlock_kind not in UNLOCK_KINDS:
                raise DataValidationError(f"{context}.unlock_kind must be one of {', '.join(UNLOCK_KINDS)}.")
        return RewardDef(kind=kind, amount=amount, ref=ref, unlock_kind=unlock_kind, description=description)  # type: ignore[arg-type]

    @staticmethod
    def _require_mapping(value: object, context: str) -> dict[str, object]:
        if not isinstance(value, dict):
            raise DataValidationError(f"{context} must be an object/dict.")
        return value

    @staticmethod
    def _require_list(value: object, context: str) -> list[object]:
        if not isinstance(value, list):
            raise DataValidationError(f"{context} must be a list.")
        return value

    @staticmethod
    def _require_str(value: object, context: str) -> str:
        if not isinstance(value, str) or not value:
            raise DataValidationError(f"{context} must be a non-empty string.")
        return value

    @staticmethod
    def _require_optional_str(value: object, context: str) -> str | None:
        if value is None:
            return None
        if not isinstance(value, str):
            raise DataValidationError(f"{context} must be a string if provided.")
        return value

    @staticmethod
    def _require_str_list(value: object, context: str) -> List[str]:
        if not isinstance(value, list):
            raise DataValidationError(f"{context} must be a list.")
        result: List[str] = []
        for entry in value:
            if not isinstance(entry, str):
                raise DataValidationError(f"{context} entries must be strings.")
            result.append(entry)
        return result

    @staticmethod
    def _require_bool(value: object, context: str) -> bool:
        if not isinstance(value, bool):
            raise DataValidationError(f"{context} must be a boolean.")
        return value

    @staticmethod
    def _require_non_negative_int(value: object, context: str) -> int:
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise DataValidationError(f"{context} must be a non-negative integer.")
        return value

    @staticmethod
    def _require_positive_int(value: object, context: str) -> int:
        if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
            raise DataValidationError(f"{context} must be a positive integer.")
        return value

    @staticmethod
    def _require_timestamp(value: object, context: str) -> datetime | None:
        if value is None:
            return None
        if not isinstance(value, str):
            raise DataValidationError(f"{context} must be an ISO-8601 string.")
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError as exc:
            raise DataValidationError(f"{context} must be an ISO-8601 string.") from exc
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
