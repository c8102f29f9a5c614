"""Single-writer-per-player lock registry."""
from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator


class PlayerLocks:
    """Hands out one re-entrant lock per player id.

    Records are owned by exactly one player, so serializing by player id is
    enough to keep read-modify-write cycles on in-memory stores atomic.
    Locks are never evicted, so the registry holds one entry per player id
    it has seen and is bounded by the player count.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.RLock] = {}

    def for_player(self, player_id: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(player_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[player_id] = lock
            return lock

    @contextmanager
    def hold(self, player_id: str) -> Iterator[None]:
        lock = self.for_player(player_id)
        with lock:
            yield
