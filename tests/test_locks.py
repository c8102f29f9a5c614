from __future__ import annotations

from questline.core.locks import PlayerLocks


def test_one_lock_per_player() -> None:
    locks = PlayerLocks()

    assert locks.for_player("hero") is locks.for_player("hero")
    assert locks.for_player("hero") is not locks.for_player("rival")


def test_hold_is_reentrant_for_the_same_player() -> None:
    locks = PlayerLocks()

    with locks.hold("hero"):
        with locks.hold("hero"):
            acquired = locks.for_player("hero").acquire(blocking=False)
            assert acquired is True
            locks.for_player("hero").release()
