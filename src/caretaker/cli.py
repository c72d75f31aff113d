"""Argparse-based CLI for caretaker.

Runs the scheduler as a standalone loop or manages the task file directly.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from caretaker.app import create_engine
from caretaker.config import Settings
from caretaker.models import ScheduledTask
from caretaker.services import SchedulerEngine
from caretaker.templates import TEMPLATES, from_template

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="caretaker",
        description="Schedule and run system maintenance tasks",
    )
    parser.add_argument(
        "--tasks-file", default=None, help="Path to the scheduled tasks JSON file"
    )
    parser.add_argument(
        "--minimized",
        action="store_true",
        default=False,
        help="Started by the OS at login (no effect on scheduling)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("run", help="Run the scheduler loop until interrupted")
    subparsers.add_parser("run-once", help="Run a single poll cycle and exit")
    subparsers.add_parser("list", help="List scheduled tasks")

    p = subparsers.add_parser("add-template", help="Add a task from a quick template")
    p.add_argument("template", choices=sorted(TEMPLATES))

    for name, help_text in (
        ("remove", "Remove a task"),
        ("enable", "Enable a task"),
        ("disable", "Disable a task"),
    ):
        p = subparsers.add_parser(name, help=help_text)
        p.add_argument("task_id", help="Task id")

    return parser


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _format_task(task: ScheduledTask) -> str:
    status = "enabled" if task.enabled else "disabled"
    next_run = task.next_run.isoformat(timespec="seconds") if task.next_run else "-"
    line = (
        f"{task.id}  {task.name}  [{task.schedule.kind}, {status}]  "
        f"next={next_run}  runs={task.success_count}/{task.run_count}"
    )
    if task.last_error:
        line += f"  last_error={task.last_error}"
    return line


async def _run_forever(engine: SchedulerEngine) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, engine.stop)
        except (NotImplementedError, RuntimeError):
            # Not supported on this platform (e.g. Windows)
            pass
    await engine.run()


def run_command(args: argparse.Namespace, engine: SchedulerEngine) -> int:
    command = args.command

    if command == "run":
        asyncio.run(_run_forever(engine))
        return 0

    if command == "run-once":
        engine.start()
        outcomes = engine.poll() or []
        engine.stop()
        for outcome in outcomes:
            result = "ok" if outcome.success else f"failed: {outcome.error}"
            print(f"{outcome.task_id}  {outcome.task_name}  {result}")
        return 0 if all(o.success for o in outcomes) else 1

    if command == "list":
        for task in engine.list_tasks():
            print(_format_task(task))
        return 0

    if command == "add-template":
        task = engine.add_task(from_template(args.template))
        print(_format_task(task))
        return 0

    if command == "remove":
        if not engine.remove_task(args.task_id):
            print(f"Unknown task: {args.task_id}", file=sys.stderr)
            return 1
        return 0

    if command in ("enable", "disable"):
        task = engine.set_task_enabled(args.task_id, command == "enable")
        if task is None:
            print(f"Unknown task: {args.task_id}", file=sys.stderr)
            return 1
        print(_format_task(task))
        return 0

    raise ValueError(f"Unknown command: {command}")


def main(argv: list[str] | None = None) -> int:
    """Entry point for the caretaker command."""
    args = build_parser().parse_args(argv)

    settings = Settings()
    if args.tasks_file:
        settings = settings.model_copy(update={"tasks_path": Path(args.tasks_file)})
    logging.getLogger().setLevel(settings.log_level.upper())

    if args.minimized:
        logger.info("Starting in minimized mode")

    engine = create_engine(settings)
    if args.command == "run" and not settings.auto_start_scheduler:
        logger.info("Scheduler auto-start disabled, nothing to run")
        return 0
    return run_command(args, engine)


if __name__ == "__main__":
    sys.exit(main())
