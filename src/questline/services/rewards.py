"""Reward applier boundary and an in-memory ledger implementation."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Protocol, Sequence

from questline.data.stores import PlayerDirectory
from questline.domain.defs import RewardDef
from questline.services.errors import ProgressionError, RewardApplicationError

logger = logging.getLogger(__name__)


class RewardApplier(Protocol):
    """Mutates player currency, experience and inventory; owned by the economy module."""

    def apply_rewards(self, player_id: str, rewards: Sequence[RewardDef]) -> None: ...


@dataclass(slots=True)
class PlayerLedger:
    currency: int = 0
    exp_granted: int = 0
    items: Dict[str, int] = field(default_factory=dict)
    titles: List[str] = field(default_factory=list)
    unlocks: List[tuple[str, str]] = field(default_factory=list)


class InMemoryRewardApplier:
    """Applies rewards to per-player ledgers and levels up profiles from experience."""

    def __init__(self, players: PlayerDirectory | None = None) -> None:
        self._players = players
        self._ledgers: Dict[str, PlayerLedger] = {}

    def ledger(self, player_id: str) -> PlayerLedger:
        return self._ledgers.setdefault(player_id, PlayerLedger())

    def apply_rewards(self, player_id: str, rewards: Sequence[RewardDef]) -> None:
        staged = PlayerLedger()
        for reward in rewards:
            if reward.kind == "currency":
                staged.currency += reward.amount
            elif reward.kind == "experience":
                staged.exp_granted += reward.amount
            elif reward.kind == "item":
                if not reward.ref:
                    raise ValueError("Item rewards need an item id.")
                staged.items[reward.ref] = staged.items.get(reward.ref, 0) + max(reward.amount, 1)
            elif reward.kind == "title":
                if reward.ref:
                    staged.titles.append(reward.ref)
            elif reward.kind == "unlock":
                if reward.ref and reward.unlock_kind:
                    staged.unlocks.append((reward.unlock_kind, reward.ref))
            else:
                raise ValueError(f"Unknown reward kind '{reward.kind}'.")
        self._commit(player_id, staged)

    def _commit(self, player_id: str, staged: PlayerLedger) -> None:
        ledger = self.ledger(player_id)
        ledger.currency += staged.currency
        ledger.exp_granted += staged.exp_granted
        for item_id, quantity in staged.items.items():
            ledger.items[item_id] = ledger.items.get(item_id, 0) + quantity
        ledger.titles.extend(title for title in staged.titles if title not in ledger.titles)
        ledger.unlocks.extend(unlock for unlock in staged.unlocks if unlock not in ledger.unlocks)
        if staged.exp_granted and self._players is not None:
            self._apply_player_exp(player_id, staged.exp_granted)

    def _apply_player_exp(self, player_id: str, amount: int) -> None:
        player = self._players.get(player_id) if self._players else None
        if player is None:
            return
        exp = player.exp + amount
        threshold = self._xp_to_next_level(player.level)
        while exp >= threshold:
            exp -= threshold
            player.level += 1
            logger.info("Player %s reached level %d", player_id, player.level)
            threshold = self._xp_to_next_level(player.level)
        player.exp = exp

    @staticmethod
    def _xp_to_next_level(level: int) -> int:
        return 10 + (level - 1) * 5


def grant_rewards(
    applier: RewardApplier,
    player_id: str,
    rewards: Sequence[RewardDef],
    *,
    entity: str,
    entity_id: str,
) -> None:
    """Call the applier and normalize any failure to RewardApplicationError."""
    try:
        applier.apply_rewards(player_id, rewards)
    except ProgressionError:
        raise
    except Exception as exc:
        logger.error("Reward for %s %s failed for player %s: %s", entity, entity_id, player_id, exc)
        raise RewardApplicationError(entity, entity_id, player_id, str(exc)) from exc
