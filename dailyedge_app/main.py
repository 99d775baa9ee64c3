"""Application entry point for the DailyEdge study widget (command line edition)."""
from __future__ import annotations

import argparse
import logging
import sys
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional

from dailyedge_app.tracker import __version__
from dailyedge_app.tracker.controllers import AppController, ConfigManager
from dailyedge_app.tracker.grades import Category, needed_message, points_percent, weighted_grade
from dailyedge_app.tracker.models import SUBJECTS
from dailyedge_app.tracker.planner import RANGE_FILTERS
from dailyedge_app.tracker.timers import PRESET_MINUTES, StudyTimer
from dailyedge_app.tracker.wakelock import SystemWakeLock

LOG_DIR = Path.home() / ".dailyedge" / "logs"
LOG_FILE = LOG_DIR / "app.log"


def configure_logging(level: str = "INFO") -> None:
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(LOG_FILE, maxBytes=1024 * 1024, backupCount=3)
    stream = logging.StreamHandler()
    stream.setLevel(logging.WARNING)
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[handler, stream],
    )
    logging.info("DailyEdge v%s starting", __version__)


def build_controller(config_manager: ConfigManager) -> AppController:
    config = config_manager.config
    wake_lock = SystemWakeLock() if config.keep_screen_awake else None
    return AppController(config, wake_lock=wake_lock)


def parse_category(value: str) -> Category:
    """Parse NAME:EARNED:POSSIBLE[:WEIGHT] as typed on the command line."""
    parts = value.split(":")
    if len(parts) not in (3, 4):
        raise argparse.ArgumentTypeError(f"expected NAME:EARNED:POSSIBLE[:WEIGHT], got {value!r}")
    try:
        numbers = [float(part) for part in parts[1:]]
    except ValueError:
        raise argparse.ArgumentTypeError(f"non-numeric score in {value!r}") from None
    weight = numbers[2] if len(numbers) == 3 else None
    return Category(parts[0], numbers[0], numbers[1], weight)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dailyedge", description="Study timer, streak and task planner")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("status", help="Today's study time, sessions, streak and tasks")

    add = sub.add_parser("add", help="Add a task")
    add.add_argument("text")
    add.add_argument("--tag", default="General", choices=SUBJECTS)
    add.add_argument("--due", default=None, help="YYYY-MM-DD")

    for name, text in (("toggle", "Mark a task done or open"), ("delete", "Delete a task")):
        cmd = sub.add_parser(name, help=text)
        cmd.add_argument("task_id", help="task id or a unique prefix of it")

    lst = sub.add_parser("list", help="List tasks")
    lst.add_argument("--range", dest="range_filter", default="all", choices=RANGE_FILTERS)
    lst.add_argument("--tag", dest="tag_filter", default="all")

    timer = sub.add_parser("timer", help="Run a study session (Ctrl+C stops it)")
    target = timer.add_mutually_exclusive_group()
    target.add_argument("--minutes", type=float, default=None, help="0 counts up with no target")
    target.add_argument("--preset", type=int, default=None, choices=PRESET_MINUTES)

    export = sub.add_parser("export", help="Export tasks and today's summary")
    export.add_argument("path", nargs="?", default=None, help=".xlsx (default) or .csv")

    imp = sub.add_parser("import", help="Import tasks from CSV or JSON")
    imp.add_argument("path")

    grade = sub.add_parser("grade", help="Grade calculator")
    grade_sub = grade.add_subparsers(dest="mode", required=True)
    points = grade_sub.add_parser("points")
    points.add_argument("earned", type=float)
    points.add_argument("possible", type=float)
    needed = grade_sub.add_parser("needed")
    needed.add_argument("current", type=float)
    needed.add_argument("final_weight", type=float)
    needed.add_argument("target", type=float)
    weighted = grade_sub.add_parser("weighted")
    weighted.add_argument(
        "--category",
        dest="categories",
        action="append",
        required=True,
        type=parse_category,
        metavar="NAME:EARNED:POSSIBLE[:WEIGHT]",
    )
    return parser


def print_status(controller: AppController) -> None:
    summary = controller.summary()
    print(f"Study time: {summary.study_value} ({summary.sessions_text})")
    print(f"Active tasks: {summary.active_value} ({summary.completed_text})")


def print_tasks(controller: AppController, range_filter: str, tag_filter: str) -> None:
    tasks = controller.list_tasks(range_filter, tag_filter)
    if not tasks:
        print("No tasks.")
        return
    for task in tasks:
        mark = "x" if task.done else " "
        due = f"  due {task.due.strftime('%a %b %d')}" if task.due else ""
        print(f"[{mark}] {task.id[:8]}  {task.tag:<16} {task.text}{due}")


def run_timer(controller: AppController, minutes: Optional[float], preset: Optional[int] = None) -> None:
    timer = controller.timer
    if preset is not None:
        timer.apply_preset(preset)
    elif minutes is not None:
        timer.set_target(minutes)
    done = threading.Event()

    def on_tick(t: StudyTimer) -> None:
        sys.stdout.write(f"\r{t.display}  {t.progress_percent:5.1f}%")
        sys.stdout.flush()

    timer.on_tick = on_tick
    timer.on_change = done.set
    print(timer.target_info)
    timer.start()
    print(f"Screen awake: {'on' if timer.wake_lock_active else 'off'}")
    try:
        while not done.wait(0.5):
            pass
        print("\nSession finished.")
    except KeyboardInterrupt:
        banked = timer.stop(finished=False)
        print(f"\nStopped. Banked {banked}s.")
    print_status(controller)


def run(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config_manager = ConfigManager()
    configure_logging(config_manager.config.log_level)
    controller = build_controller(config_manager)

    try:
        if args.command == "add":
            task = controller.add_task(args.text, args.tag, args.due)
            print(f"Added {task.id[:8]}" if task else "Nothing added: task text is empty.")
        elif args.command == "toggle":
            task = controller.toggle_task(args.task_id)
            print(f"{task.text}: {'done' if task.done else 'open'}" if task else "No such task.")
        elif args.command == "delete":
            print("Deleted." if controller.delete_task(args.task_id) else "No such task.")
        elif args.command == "list":
            print_tasks(controller, args.range_filter, args.tag_filter)
        elif args.command == "timer":
            run_timer(controller, args.minutes, args.preset)
        elif args.command == "export":
            if args.path and args.path.lower().endswith(".csv"):
                print(f"Exported to {controller.export_tasks(Path(args.path))}")
            else:
                if args.path:
                    controller.config.export_path = args.path
                print(f"Exported to {controller.export_to_excel()}")
        elif args.command == "import":
            print(f"Imported {controller.import_tasks(Path(args.path))} tasks.")
        elif args.command == "grade":
            if args.mode == "points":
                print(f"Score: {points_percent(args.earned, args.possible):.2f}%")
            elif args.mode == "weighted":
                result = weighted_grade(args.categories)
                print(f"Final Grade: {result.final:.2f}%")
                for line in result.lines():
                    print(f"  {line}")
            else:
                print(needed_message(args.current, args.final_weight, args.target))
        else:
            print_status(controller)
    except (ValueError, FileNotFoundError) as exc:
        logging.getLogger(__name__).warning("Command %s failed: %s", args.command, exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
