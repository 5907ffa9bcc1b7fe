"""Terminal front-end for the tracking engine."""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
from typing import Awaitable, Callable

from settrack.config.logger import configure_logging
from settrack.config.settings import Settings, get_settings
from settrack.core.engine import TrackingEngine
from settrack.core.state import TrackingState
from settrack.workout.history_lookup import SessionHistoryLookup
from settrack.workout.library import build_template_from_library, list_templates
from settrack.workout.model import WorkoutTemplate
from settrack.workout.parser import load_workout
from settrack.workout.session_store import JsonlSessionRepository, SessionQuery

LineReader = Callable[[str], Awaitable[str | None]]

HELP_TEXT = """Commands:
  select N | s N     track exercise N
  back               return to exercise selection
  set N              toggle editing of set N
  weight V | w V     set weight of the edited (or current) set
  reps V | r V       set reps of the edited (or current) set
  +w / -w / +r / -r  nudge weight or reps of the current set
  done | d           complete the current set
  save               save progress now
  finish             finish the workout now
  status             show the workout
  clear              clear the last error
  quit | q           save and exit"""

STATUS_MARKS = {"not_started": " ", "in_progress": "~", "completed": "x"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Track a strength workout set by set")
    parser.add_argument(
        "--list-templates", action="store_true", help="List built-in workout templates"
    )
    parser.add_argument("--template", default=None, help="Built-in template key to run")
    parser.add_argument(
        "--scale",
        type=float,
        default=1.0,
        help="Multiply built-in template loads by this factor",
    )
    parser.add_argument(
        "--workout", type=Path, default=None, help="Run a workout template file (.json/.csv)"
    )
    parser.add_argument(
        "--resume",
        action="store_true",
        help="Continue the latest unfinished session of the chosen workout",
    )
    parser.add_argument("--history", action="store_true", help="Show recent sessions")
    parser.add_argument("--limit", type=int, default=10, help="Sessions shown by --history")
    parser.add_argument(
        "--data-dir", type=Path, default=None, help="Directory holding sessions.jsonl"
    )
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR")
    return parser


def _fmt_weight(value: float) -> str:
    return f"{value:g} kg"


def format_state(state: TrackingState) -> str:
    lines = [
        f"{state.template.name}: {state.total_completed_sets_count}/{state.total_sets_count} sets "
        f"({state.progress_fraction * 100:.0f}%)"
    ]
    for index, exercise in enumerate(state.template.exercises):
        mark = STATUS_MARKS[state.exercise_statuses[index]]
        pointer = ">" if state.view == "tracking" and index == state.exercise_index else " "
        lines.append(f"{pointer}[{mark}] {index + 1}. {exercise.name}")
        if state.view == "tracking" and index == state.exercise_index:
            for set_index, values in enumerate(state.overrides[index]):
                done = "x" if state.completion[index][set_index] else " "
                cursor = "*" if set_index == state.set_index else " "
                edit = " (editing)" if set_index == state.selected_set_index else ""
                lines.append(
                    f"     {cursor}[{done}] set {set_index + 1}: {values.reps} x "
                    f"{_fmt_weight(values.weight)}, rest {values.rest_sec}s{edit}"
                )
    if state.is_completed:
        lines.append("Workout completed.")
    if state.error:
        lines.append(f"Error: {state.error}")
    return "\n".join(lines)


async def _read_stdin(prompt: str) -> str | None:
    try:
        return await asyncio.to_thread(input, prompt)
    except EOFError:
        return None


async def apply_command(engine: TrackingEngine, line: str, settings: Settings) -> bool:
    """Run one command line; False means the session loop should stop."""
    parts = line.strip().split()
    if not parts:
        return True
    command, args = parts[0].lower(), parts[1:]

    if command in ("quit", "q", "exit"):
        if not engine.state.is_completed:
            await engine.save_progress()
        return False
    if command in ("help", "?"):
        print(HELP_TEXT)
        return True

    try:
        if command in ("select", "s"):
            engine.select_exercise(int(args[0]) - 1)
        elif command == "back":
            engine.return_to_selection()
        elif command == "set":
            engine.select_set(int(args[0]) - 1)
        elif command in ("weight", "w"):
            engine.edit_weight(args[0], engine.state.selected_set_index)
        elif command in ("reps", "r"):
            engine.edit_reps(args[0], engine.state.selected_set_index)
        elif command == "+w":
            engine.adjust_weight(settings.weight_step)
        elif command == "-w":
            engine.adjust_weight(-settings.weight_step)
        elif command == "+r":
            engine.adjust_reps(settings.reps_step)
        elif command == "-r":
            engine.adjust_reps(-settings.reps_step)
        elif command in ("done", "d"):
            engine.complete_set()
        elif command == "save":
            if await engine.save_progress():
                print("Progress saved.")
            else:
                print("Progress could not be saved; it will be retried after the next set.")
        elif command == "finish":
            await engine.complete_workout()
        elif command == "clear":
            engine.clear_error()
        elif command != "status":
            print(f"Unknown command '{command}'. Type 'help' for commands.")
            return True
    except (IndexError, ValueError):
        print(f"Invalid arguments for '{command}'. Type 'help' for commands.")
        return True

    await engine.drain()
    print(format_state(engine.state))
    return not engine.state.is_completed


async def run_session(
    engine: TrackingEngine,
    settings: Settings,
    read_line: LineReader = _read_stdin,
) -> int:
    print(format_state(engine.state))
    print("Type 'help' for commands.")
    while True:
        line = await read_line("> ")
        if line is None:
            if not engine.state.is_completed:
                await engine.save_progress()
            break
        if not await apply_command(engine, line, settings):
            break
    await engine.drain()
    return 0


async def run_workout(
    template: WorkoutTemplate,
    repository: JsonlSessionRepository,
    settings: Settings,
    resume: bool,
) -> int:
    lookup = SessionHistoryLookup(repository, scan_limit=settings.history_scan_limit)
    engine = TrackingEngine(repository, lookup, settings=settings)

    session = None
    if resume:
        matches = await repository.query(
            SessionQuery(name=template.name, status="in_progress", limit=1)
        )
        session = matches[0] if matches else None
        if session is None:
            print(f"No unfinished session of '{template.name}', starting a new one.")

    if session is not None:
        engine.resume_session(template, session)
    else:
        engine.initialize(template)
    return await run_session(engine, settings)


async def run_history(repository: JsonlSessionRepository, limit: int) -> int:
    sessions = await repository.query(SessionQuery(limit=limit))
    if not sessions:
        print("No sessions recorded")
        return 0
    for session in sessions:
        history = session.history
        status = "done" if history.is_completed else "open"
        print(
            f"{history.started_at:%Y-%m-%d %H:%M}  {history.name:<24} [{status}] "
            f"{history.total_reps:>4} reps  {history.total_weight_lifted:>8.1f} kg  "
            f"{history.duration_sec // 60:>3} min"
        )
    return 0


def run_list_templates() -> int:
    for template in list_templates():
        sets = sum(item.sets for item in template.exercises)
        print(f"{template.key:<20} {template.name:<22} {template.category:<10} {sets} sets")
    return 0


def main() -> int:
    parser = build_parser()
    args = parser.parse_args()
    settings = get_settings()
    if args.data_dir is not None:
        settings = settings.model_copy(update={"data_dir": args.data_dir})
    configure_logging(args.log_level or settings.log_level)

    if args.list_templates:
        return run_list_templates()

    repository = JsonlSessionRepository(settings.sessions_path)
    if args.history:
        return asyncio.run(run_history(repository, args.limit))

    try:
        if args.workout is not None:
            template = load_workout(args.workout)
        elif args.template is not None:
            template = build_template_from_library(args.template, args.scale)
        else:
            parser.print_help()
            return 1
    except ValueError as exc:
        print(f"Cannot load workout: {exc}")
        return 1

    try:
        return asyncio.run(run_workout(template, repository, settings, args.resume))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
