"""Text rendering for engine results and rejections.

The engine only returns structured values and typed errors; every
player-facing sentence is produced here.
"""
from __future__ import annotations

import os
import textwrap
from typing import Iterable, List, Sequence

from questline.domain.defs import RewardDef
from questline.domain.progress_state import QuestStatus
from questline.services.achievement_service import AchievementCategoryView, AchievementClaim, AchievementView
from questline.services.errors import (
    AlreadyRewardedError,
    DuplicateActiveError,
    InvalidChoiceError,
    InvalidStateError,
    NoPendingBranchError,
    NotCompletedError,
    NotFoundError,
    PrerequisiteFailure,
    PrerequisiteNotMetError,
    ProgressionError,
    QuestExpiredError,
    RewardApplicationError,
    StorageError,
)
from questline.services.notifications import Notification
from questline.services.progression_service import ProgressionResult
from questline.services.quest_chain_service import ChainSummary, ChainUpdate
from questline.services.quest_service import QuestRefreshResult, QuestStatusView, QuestUpdate

_WIDTH = 72


def debug_enabled() -> bool:
    """Return True only when QUESTLINE_DEBUG is explicitly set to '1'."""
    return os.getenv("QUESTLINE_DEBUG") == "1"


def wrap_text(text: str, width: int = _WIDTH, *, indent_continuation: bool = True) -> list[str]:
    """Wrap text on word boundaries, keeping a leading "- " bullet on the first line."""
    if not text or width <= 0:
        return [text] if text else [""]
    prefix = "- " if text.startswith("- ") else ""
    body = text[len(prefix):]
    wrapped = textwrap.wrap(
        body,
        width=width - len(prefix),
        break_long_words=False,
        break_on_hyphens=False,
    ) or [""]
    continuation = "  " if indent_continuation else ""
    return [prefix + wrapped[0]] + [continuation + line for line in wrapped[1:]]


def render_heading(title: str) -> str:
    return f"=== {title} ==="


def format_rewards(rewards: Iterable[RewardDef]) -> str:
    parts: List[str] = []
    for reward in rewards:
        if reward.kind == "currency":
            parts.append(f"{reward.amount} gold")
        elif reward.kind == "experience":
            parts.append(f"{reward.amount} XP")
        elif reward.kind == "item":
            parts.append(f"{reward.amount or 1}x {reward.description or reward.ref}")
        elif reward.kind == "title":
            parts.append(f"title '{reward.ref}'")
        elif reward.kind == "unlock":
            parts.append(f"{reward.unlock_kind} unlock '{reward.ref}'")
        else:
            parts.append(reward.kind)
    return ", ".join(parts) if parts else "nothing"


def format_error(error: ProgressionError) -> str:
    """One sentence describing why a command was rejected."""
    if isinstance(error, NotFoundError):
        return f"No {error.entity} named '{error.entity_id}' was found."
    if isinstance(error, QuestExpiredError):
        return f"Quest '{error.entity_id}' expired at {error.expired_at:%Y-%m-%d %H:%M} UTC."
    if isinstance(error, NotCompletedError):
        return f"The {error.entity} '{error.entity_id}' is not finished yet."
    if isinstance(error, AlreadyRewardedError):
        return f"You already collected the reward for {error.entity} '{error.entity_id}'."
    if isinstance(error, NoPendingBranchError):
        return f"Chain '{error.entity_id}' has no decision waiting."
    if isinstance(error, InvalidStateError):
        detail = f" ({error.detail})" if error.detail else ""
        return f"The {error.entity} '{error.entity_id}' is {error.state}{detail}."
    if isinstance(error, DuplicateActiveError):
        return f"You already have the {error.entity} '{error.entity_id}' ({error.state})."
    if isinstance(error, PrerequisiteNotMetError):
        return f"You cannot start '{error.chain_id}' yet: {format_prerequisite(error.failure)}."
    if isinstance(error, InvalidChoiceError):
        return f"'{error.choice}' is not an option. Choose one of: {', '.join(error.valid_choices)}."
    if isinstance(error, StorageError):
        return "Progress could not be saved right now. Please try again."
    if isinstance(error, RewardApplicationError):
        return f"The reward for {error.entity} '{error.entity_id}' could not be granted. Nothing was claimed."
    return str(error)


def format_prerequisite(failure: PrerequisiteFailure) -> str:
    if failure.kind == "level":
        return f"requires level {failure.required} (you are level {failure.actual})"
    if failure.kind == "skill":
        return f"requires {failure.subject} {failure.required} (you have {failure.actual})"
    if failure.kind == "chain":
        return f"finish the storyline '{failure.subject}' first"
    return f"complete the quest '{failure.subject}' first"


def format_quest_list(views: Sequence[QuestStatusView]) -> list[str]:
    if not views:
        return ["You have no active quests. Try /refresh."]
    lines = [render_heading("Quests")]
    for view in views:
        marker = "[ready]" if view.status is QuestStatus.COMPLETED else f"[{view.quest_type}]"
        lines.append(f"{marker} {view.title} ({view.quest_id})")
        for requirement in view.requirements:
            check = "x" if requirement.completed else " "
            lines.append(f"  [{check}] {requirement.label}: {requirement.current}/{requirement.target}")
        lines.append(f"  Rewards: {format_rewards(view.rewards)}")
        if view.expires_at is not None:
            lines.append(f"  Expires: {view.expires_at:%Y-%m-%d %H:%M} UTC")
    return lines


def format_refresh(result: QuestRefreshResult) -> list[str]:
    if not result.refreshed:
        return ["No new quests yet. Come back after the next reset."]
    lines = [f"New quest: {update.quest_title} ({update.quest_id})" for update in result.assigned]
    if result.removed:
        lines.append(f"Expired quests removed: {len(result.removed)}")
    return lines


def format_quest_update(update: QuestUpdate) -> str:
    if update.rewarded:
        return f"Claimed '{update.quest_title}': {format_rewards(update.rewards)}."
    if update.completed:
        return f"Quest complete: {update.quest_title}. Use /claim quest {update.quest_id}."
    return f"Quest accepted: {update.quest_title}."


def format_achievements(categories: Sequence[AchievementCategoryView]) -> list[str]:
    lines = [render_heading("Achievements")]
    for category in categories:
        lines.append(f"{category.category.title()} ({category.completed_count}/{category.total_count})")
        for view in category.achievements:
            lines.append("  " + format_achievement_line(view))
    return lines


def format_achievement_line(view: AchievementView) -> str:
    tier = f" tier {view.current_tier}/{view.total_tiers}" if view.total_tiers > 1 else ""
    status = " (complete)" if view.completed else ""
    return f"{view.name}: {view.progress}/{view.target}{tier}{status}"


def format_achievement_claim(claim: AchievementClaim) -> str:
    rewards = format_rewards([claim.reward]) if claim.reward else "nothing"
    return f"Claimed {claim.name} tier {claim.tier}: {rewards}."


def format_chain_list(summaries: Sequence[ChainSummary]) -> list[str]:
    if not summaries:
        return ["No storylines are open to you right now."]
    lines = [render_heading("Storylines")]
    for summary in summaries:
        if summary.status == "available":
            lines.append(f"{summary.title} ({summary.chain_id}) - level {summary.recommended_level}+")
            continue
        lines.append(f"{summary.title} ({summary.chain_id}) - step {summary.current_step}/{summary.total_steps}")
        if summary.awaiting_choice:
            lines.append(f"  Choose: {' / '.join(summary.choices)}")
        elif summary.current_quest_id:
            lines.append(f"  Current quest: {summary.current_quest_id}")
    return lines


def format_chain_update(update: ChainUpdate) -> list[str]:
    lines: List[str] = []
    if update.started:
        lines.append(f"Storyline started: {update.title}.")
    if update.failed:
        lines.append(f"Storyline failed: {update.title}. Use /start {update.chain_id} to try again.")
    if update.rewarded:
        lines.append(f"Storyline reward for '{update.title}': {format_rewards(update.rewards)}.")
    if update.requires_choice:
        lines.append(f"'{update.title}' needs a decision: {' / '.join(update.choices)}.")
    elif update.completed:
        lines.append(f"Storyline complete: {update.title}. Use /claim chain {update.chain_id}.")
    elif update.advanced and update.current_quest_id:
        lines.append(f"'{update.title}' continues with quest {update.current_quest_id}.")
    return lines


def format_progression_result(result: ProgressionResult) -> list[str]:
    lines = [format_quest_update(update) for update in result.quests]
    for update in result.achievements:
        for tier in update.tiers_unlocked:
            lines.append(f"Achievement unlocked: {update.name} (tier {tier}).")
    for update in result.chains:
        lines.extend(format_chain_update(update))
    return lines


def format_notifications(notifications: Sequence[Notification]) -> list[str]:
    if not notifications:
        return ["No new notifications."]
    return [f"[{note.category}] {note.title}: {note.body}" for note in notifications]
