"""Chat-command console for driving the progression engine by hand."""
from __future__ import annotations

import logging
import shlex
from typing import Callable, Dict, List

from questline.config import configure_logging, load_config
from questline.domain.player import PlayerProfile
from questline.engine import Engine, build_engine
from questline.presentation.cli import render
from questline.services.errors import ProgressionError, SaveLoadError
from questline.services.notifications import InMemoryNotificationSink

logger = logging.getLogger(__name__)

CommandHandler = Callable[[Engine, str, List[str]], List[str]]

_HELP = [
    "/quests [daily|weekly|story|event]  list active quests",
    "/refresh                            get new daily and weekly quests",
    "/event <type> [target] [quantity]   report a gameplay event",
    "/claim quest|achievement|chain <id> collect a reward",
    "/achievements                       show achievement progress",
    "/claimable                          show achievements with rewards waiting",
    "/chains                             list storylines",
    "/start <chain>                      begin a storyline",
    "/choose <chain> <label>             pick a storyline branch",
    "/inbox                              show unread notifications",
    "/save <path> | /load <path>         write or read a save file",
    "/quit                               leave",
]


def main() -> None:
    """Start the interactive console session."""
    config = load_config()
    configure_logging(config.log_level)
    engine = build_engine(config)
    print("=== Questline ===")
    player = _prompt_player(engine)
    print("Type /help for commands.")
    while True:
        try:
            line = input(f"{player.name}> ").strip()
        except EOFError:
            break
        if not line:
            continue
        if line in ("/quit", "/exit"):
            break
        for output in handle_command(engine, player.player_id, line):
            print(output)
    print("Goodbye!")


def handle_command(engine: Engine, player_id: str, line: str) -> List[str]:
    """Run one chat command and return the lines to show the player."""
    try:
        parts = shlex.split(line)
    except ValueError as exc:
        return [f"Could not read that command: {exc}"]
    if not parts or not parts[0].startswith("/"):
        return ["Commands start with '/'. Type /help for a list."]
    name, args = parts[0][1:].lower(), parts[1:]
    handler = _COMMANDS.get(name)
    if handler is None:
        return [f"Unknown command '/{name}'. Type /help for a list."]
    try:
        return handler(engine, player_id, args)
    except ProgressionError as exc:
        logger.debug("Command %r rejected: %s", line, exc)
        return [render.format_error(exc)]
    except SaveLoadError as exc:
        return [f"Save error: {exc}"]
    except ValueError as exc:
        return [str(exc)]


def _prompt_player(engine: Engine) -> PlayerProfile:
    while True:
        name = input("Player name: ").strip()
        if name:
            break
        print("Please enter a name.")
    player_id = name.casefold().replace(" ", "_")
    player = engine.players.get(player_id)
    if player is None:
        player = engine.players.add(PlayerProfile(player_id=player_id, name=name))
    return player


def _cmd_help(engine: Engine, player_id: str, args: List[str]) -> List[str]:
    return list(_HELP)


def _cmd_quests(engine: Engine, player_id: str, args: List[str]) -> List[str]:
    quest_type = args[0].lower() if args else None
    return render.format_quest_list(engine.progression.list_active_quests(player_id, quest_type))


def _cmd_refresh(engine: Engine, player_id: str, args: List[str]) -> List[str]:
    return render.format_refresh(engine.progression.refresh_daily(player_id))


def _cmd_event(engine: Engine, player_id: str, args: List[str]) -> List[str]:
    if not args:
        return ["Usage: /event <type> [target] [quantity]"]
    target = args[1] if len(args) > 1 and args[1] != "-" else None
    try:
        quantity = int(args[2]) if len(args) > 2 else 1
    except ValueError:
        return ["Quantity must be a whole number."]
    result = engine.progression.emit(player_id, args[0].lower(), target, quantity)
    return render.format_progression_result(result) or ["Nothing changed."]


def _cmd_claim(engine: Engine, player_id: str, args: List[str]) -> List[str]:
    if len(args) != 2:
        return ["Usage: /claim quest|achievement|chain <id>"]
    kind, goal_id = args[0].lower(), args[1]
    if kind == "quest":
        return [render.format_quest_update(engine.progression.claim_quest(player_id, goal_id))]
    if kind == "achievement":
        return [render.format_achievement_claim(engine.progression.claim_achievement(player_id, goal_id))]
    if kind == "chain":
        return render.format_chain_update(engine.progression.claim_chain(player_id, goal_id))
    return ["Usage: /claim quest|achievement|chain <id>"]


def _cmd_achievements(engine: Engine, player_id: str, args: List[str]) -> List[str]:
    return render.format_achievements(engine.progression.list_achievements(player_id))


def _cmd_claimable(engine: Engine, player_id: str, args: List[str]) -> List[str]:
    views = engine.progression.list_claimable_achievements(player_id)
    if not views:
        return ["No achievement rewards are waiting."]
    return [render.format_achievement_line(view) for view in views]


def _cmd_chains(engine: Engine, player_id: str, args: List[str]) -> List[str]:
    return render.format_chain_list(engine.progression.list_available_chains(player_id))


def _cmd_start(engine: Engine, player_id: str, args: List[str]) -> List[str]:
    if len(args) != 1:
        return ["Usage: /start <chain>"]
    return render.format_progression_result(engine.progression.start_chain(player_id, args[0]))


def _cmd_choose(engine: Engine, player_id: str, args: List[str]) -> List[str]:
    if len(args) < 2:
        return ["Usage: /choose <chain> <label>"]
    label = " ".join(args[1:])
    return render.format_progression_result(engine.progression.choose_branch(player_id, args[0], label))


def _cmd_inbox(engine: Engine, player_id: str, args: List[str]) -> List[str]:
    sink = engine.notification_sink
    if not isinstance(sink, InMemoryNotificationSink):
        return ["Notifications are delivered elsewhere."]
    lines = render.format_notifications(sink.unread_for_player(player_id))
    sink.mark_all_read(player_id)
    return lines


def _cmd_save(engine: Engine, player_id: str, args: List[str]) -> List[str]:
    if len(args) != 1:
        return ["Usage: /save <path>"]
    engine.saves.write(args[0], player_id)
    return [f"Saved to {args[0]}."]


def _cmd_load(engine: Engine, player_id: str, args: List[str]) -> List[str]:
    if len(args) != 1:
        return ["Usage: /load <path>"]
    player = engine.saves.read(args[0])
    if player.player_id != player_id:
        return [f"Loaded progress for {player.name}; switch players to use it."]
    return [f"Loaded progress for {player.name}."]


_COMMANDS: Dict[str, CommandHandler] = {
    "help": _cmd_help,
    "quests": _cmd_quests,
    "refresh": _cmd_refresh,
    "event": _cmd_event,
    "claim": _cmd_claim,
    "achievements": _cmd_achievements,
    "claimable": _cmd_claimable,
    "chains": _cmd_chains,
    "start": _cmd_start,
    "choose": _cmd_choose,
    "inbox": _cmd_inbox,
    "save": _cmd_save,
    "load": _cmd_load,
}
