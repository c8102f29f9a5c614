"""Outbound notification sink and the fire-and-forget wrapper around it."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Protocol

from questline.core.clock import Clock

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    """Delivers a notification to a player; owned by the messaging module."""

    def notify(self, player_id: str, category: str, title: str, body: str) -> None: ...


@dataclass(slots=True)
class Notification:
    player_id: str
    category: str
    title: str
    body: str
    created_at: datetime
    is_read: bool = False


class InMemoryNotificationSink:
    """Keeps notifications in a list, newest last."""

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or Clock()
        self.notifications: List[Notification] = []

    def notify(self, player_id: str, category: str, title: str, body: str) -> None:
        self.notifications.append(
            Notification(
                player_id=player_id,
                category=category,
                title=title,
                body=body,
                created_at=self._clock.now(),
            )
        )

    def for_player(self, player_id: str) -> List[Notification]:
        return [note for note in self.notifications if note.player_id == player_id]

    def unread_for_player(self, player_id: str, limit: int = 10) -> List[Notification]:
        unread = [note for note in self.for_player(player_id) if not note.is_read]
        return list(reversed(unread))[:limit]

    def mark_all_read(self, player_id: str) -> int:
        count = 0
        for note in self.for_player(player_id):
            if not note.is_read:
                note.is_read = True
                count += 1
        return count


class Notifier:
    """Calls the sink without letting delivery failures reach the caller."""

    def __init__(self, sink: NotificationSink | None = None) -> None:
        self._sink = sink

    def send(self, player_id: str, category: str, title: str, body: str) -> bool:
        if self._sink is None:
            return False
        try:
            self._sink.notify(player_id, category, title, body)
        except Exception as exc:
            logger.warning(
                "Notification %r for player %s could not be delivered: %s", title, player_id, exc
            )
            return False
        return True

    def quest_completed(self, player_id: str, quest_id: str, quest_title: str) -> bool:
        return self.send(player_id, "quest", "Quest completed", f"{quest_title} ({quest_id}) is ready to claim.")

    def quests_assigned(self, player_id: str, count: int) -> bool:
        return self.send(player_id, "quest", "New quests available", f"{count} new quest(s) assigned.")

    def tier_reached(self, player_id: str, achievement_id: str, name: str, tier: int, is_final: bool) -> bool:
        title = "Achievement completed" if is_final else "Achievement tier reached"
        return self.send(player_id, "achievement", title, f"{name} tier {tier} ({achievement_id}).")

    def chain_started(self, player_id: str, chain_id: str, chain_title: str) -> bool:
        return self.send(player_id, "chain", "Storyline started", f"{chain_title} ({chain_id}).")

    def chain_awaiting_choice(self, player_id: str, chain_id: str, chain_title: str) -> bool:
        return self.send(player_id, "chain", "Storyline choice", f"{chain_title} ({chain_id}) needs a decision.")

    def chain_advanced(self, player_id: str, chain_id: str, chain_title: str, step: int) -> bool:
        return self.send(player_id, "chain", "Storyline update", f"{chain_title} ({chain_id}) moved to step {step}.")

    def chain_failed(self, player_id: str, chain_id: str, chain_title: str) -> bool:
        return self.send(player_id, "chain", "Storyline failed", f"{chain_title} ({chain_id}) ran out of time.")

    def chain_completed(self, player_id: str, chain_id: str, chain_title: str) -> bool:
        return self.send(player_id, "chain", "Storyline completed", f"{chain_title} ({chain_id}) is ready to claim.")
