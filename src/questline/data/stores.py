"""In-memory stores for player-owned progress records.

Each store is one logical collection keyed by ``(player_id, record_id)``
with a uniqueness constraint on that pair.
"""
from __future__ import annotations

from typing import Dict, Generic, List, Protocol, Set, Tuple, TypeVar

from questline.data.errors import RecordConflictError
from questline.domain.player import PlayerProfile
from questline.domain.progress_state import (
    AchievementProgressRecord,
    PlayerChainProgress,
    QuestProgressRecord,
)


class _Keyed(Protocol):
    player_id: str

    @property
    def record_id(self) -> str: ...


R = TypeVar("R", bound=_Keyed)


class RecordStore(Generic[R]):
    """Dictionary-backed collection of records for many players."""

    def __init__(self) -> None:
        self._records: Dict[Tuple[str, str], R] = {}

    def get(self, player_id: str, record_id: str) -> R | None:
        return self._records.get((player_id, record_id))

    def for_player(self, player_id: str) -> List[R]:
        """Return the player's records sorted by record id."""
        return [
            record
            for (owner, _), record in sorted(self._records.items())
            if owner == player_id
        ]

    def insert(self, record: R) -> R:
        key = (record.player_id, record.record_id)
        if key in self._records:
            raise RecordConflictError(
                f"Record '{record.record_id}' already exists for player '{record.player_id}'."
            )
        self._records[key] = record
        return record

    def replace(self, record: R) -> R:
        """Insert or overwrite the record stored under the same key."""
        self._records[(record.player_id, record.record_id)] = record
        return record

    def save(self, record: R) -> R:
        key = (record.player_id, record.record_id)
        if key not in self._records:
            raise RecordConflictError(
                f"Record '{record.record_id}' does not exist for player '{record.player_id}'."
            )
        self._records[key] = record
        return record

    def delete(self, player_id: str, record_id: str) -> bool:
        return self._records.pop((player_id, record_id), None) is not None

    def clear_player(self, player_id: str) -> None:
        for key in [key for key in self._records if key[0] == player_id]:
            del self._records[key]

    def __len__(self) -> int:
        return len(self._records)


class QuestRecordStore(RecordStore[QuestProgressRecord]):
    """Quest progress records keyed by (player, quest).

    Alongside the live records it keeps every quest id a player has ever
    completed. Reassigning a quest replaces its record but not that history.
    """

    def __init__(self) -> None:
        super().__init__()
        self._completed: Dict[str, Set[str]] = {}

    def mark_completed(self, player_id: str, quest_id: str) -> None:
        self._completed.setdefault(player_id, set()).add(quest_id)

    def has_completed(self, player_id: str, quest_id: str) -> bool:
        return quest_id in self._completed.get(player_id, ())

    def completed_ids(self, player_id: str) -> List[str]:
        return sorted(self._completed.get(player_id, ()))

    def clear_player(self, player_id: str) -> None:
        super().clear_player(player_id)
        self._completed.pop(player_id, None)

    def active_for_player(self, player_id: str) -> List[QuestProgressRecord]:
        return [record for record in self.for_player(player_id) if not record.is_completed]


class AchievementRecordStore(RecordStore[AchievementProgressRecord]):
    """Achievement progress records keyed by (player, achievement)."""

    def claimable_for_player(self, player_id: str) -> List[AchievementProgressRecord]:
        return [
            record
            for record in self.for_player(player_id)
            if record.current_tier > len(record.claimed_tiers)
        ]


class ChainRecordStore(RecordStore[PlayerChainProgress]):
    """Chain progress records keyed by (player, chain)."""

    def active_for_player(self, player_id: str) -> List[PlayerChainProgress]:
        return [record for record in self.for_player(player_id) if record.status == "active"]

    def find_by_current_quest(self, player_id: str, quest_id: str) -> List[PlayerChainProgress]:
        return [
            record
            for record in self.active_for_player(player_id)
            if record.current_quest_id == quest_id
        ]


class PlayerDirectory:
    """Lookup of player profiles owned by the player module."""

    def __init__(self) -> None:
        self._players: Dict[str, PlayerProfile] = {}

    def get(self, player_id: str) -> PlayerProfile | None:
        return self._players.get(player_id)

    def add(self, player: PlayerProfile) -> PlayerProfile:
        if player.player_id in self._players:
            raise RecordConflictError(f"Player '{player.player_id}' already exists.")
        self._players[player.player_id] = player
        return player

    def all(self) -> List[PlayerProfile]:
        return [self._players[key] for key in sorted(self._players)]

    def replace(self, player: PlayerProfile) -> PlayerProfile:
        self._players[player.player_id] = player
        return player
