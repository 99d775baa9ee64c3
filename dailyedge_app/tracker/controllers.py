"""Controllers wiring configuration, the state store, the planner and the timer."""
from __future__ import annotations

import json
import logging
import tomllib
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import TYPE_CHECKING, Callable, List, Optional

from .models import AppState, Task
from .planner import DEFAULT_WEEK_DAYS, TaskPlanner
from .storage import KeyValueMedium, SqliteMedium, StateStore
from .summary import HomeSummary, home_summary
from .timers import (
    Feedback,
    FrameScheduler,
    NullFeedback,
    StudyTimer,
    TerminalBellFeedback,
    ThreadedFrameScheduler,
    WakeLock,
)

if TYPE_CHECKING:
    from reports.excel_export import ExcelExporter

LOGGER = logging.getLogger(__name__)


CONFIG_DIR = Path.home() / ".dailyedge"
CONFIG_FILE = CONFIG_DIR / "config.toml"
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "default_config.toml"
LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR"}


def _int_or(value, fallback: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return fallback


@dataclass
class AppConfig:
    data_path: str
    export_path: str
    default_target_minutes: int = 25
    week_window_days: int = DEFAULT_WEEK_DAYS
    log_level: str = "INFO"
    bell_feedback: bool = True
    keep_screen_awake: bool = True

    @classmethod
    def from_toml(cls, data: dict) -> "AppConfig":
        log_level = str(data.get("log_level", "INFO")).upper()
        return cls(
            data_path=str(data.get("data_path") or CONFIG_DIR / "state.db"),
            export_path=str(data.get("export_path") or "dailyedge.xlsx"),
            default_target_minutes=max(_int_or(data.get("default_target_minutes"), 25), 0),
            week_window_days=max(_int_or(data.get("week_window_days"), DEFAULT_WEEK_DAYS), 0),
            log_level=log_level if log_level in LOG_LEVELS else "INFO",
            bell_feedback=bool(data.get("bell_feedback", True)),
            keep_screen_awake=bool(data.get("keep_screen_awake", True)),
        )

    def to_toml(self) -> str:
        # json.dumps yields a valid TOML basic string, backslashes included.
        lines = [
            f"data_path = {json.dumps(self.data_path)}",
            f"export_path = {json.dumps(self.export_path)}",
            f"default_target_minutes = {self.default_target_minutes}",
            f"week_window_days = {self.week_window_days}",
            f"log_level = {json.dumps(self.log_level)}",
            f"bell_feedback = {str(bool(self.bell_feedback)).lower()}",
            f"keep_screen_awake = {str(bool(self.keep_screen_awake)).lower()}",
        ]
        return "\n".join(lines) + "\n"


class ConfigManager:
    def __init__(self, config_file: Path = CONFIG_FILE, default_path: Path = DEFAULT_CONFIG_PATH) -> None:
        self.config_file = Path(config_file)
        self.default_path = Path(default_path)
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        self.config = self._load()

    def _load(self) -> AppConfig:
        if self.config_file.exists():
            try:
                with open(self.config_file, "rb") as fh:
                    return AppConfig.from_toml(tomllib.load(fh))
            except tomllib.TOMLDecodeError:
                # Leave the broken file in place for the user to fix.
                LOGGER.warning("Config file %s is not valid TOML, using defaults", self.config_file)
                return self._defaults()
        config = self._defaults()
        self.save(config)
        return config

    def _defaults(self) -> AppConfig:
        with open(self.default_path, "rb") as fh:
            return AppConfig.from_toml(tomllib.load(fh))

    def save(self, config: Optional[AppConfig] = None) -> None:
        cfg = config or self.config
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        self.config_file.write_text(cfg.to_toml(), encoding="utf-8")
        LOGGER.info("Saved configuration to %s", self.config_file)


class AppController:
    """Owns the state document and hands it to the planner and the timer."""

    def __init__(
        self,
        config: AppConfig,
        medium: Optional[KeyValueMedium] = None,
        scheduler: Optional[FrameScheduler] = None,
        wake_lock: Optional[WakeLock] = None,
        feedback: Optional[Feedback] = None,
        exporter: Optional["ExcelExporter"] = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.config = config
        self.today = today
        self.exporter = exporter
        self.store = StateStore(medium or SqliteMedium(Path(config.data_path)), today=today)
        self.state: AppState = self.store.load()
        if feedback is None:
            feedback = TerminalBellFeedback() if config.bell_feedback else NullFeedback()
        self.planner = TaskPlanner(self.state, self.store, today=today, week_days=config.week_window_days)
        self.timer = StudyTimer(
            self.state,
            self.store,
            scheduler or ThreadedFrameScheduler(),
            wake_lock=wake_lock,
            feedback=feedback,
            today=today,
        )
        self.timer.set_target(config.default_target_minutes)

    # Planner
    def add_task(self, text: str, tag: str = "General", due=None) -> Optional[Task]:
        return self.planner.add_task(text, tag, due)

    def toggle_task(self, task_id: str) -> Optional[Task]:
        return self.planner.toggle_task(self._resolve(task_id))

    def delete_task(self, task_id: str) -> bool:
        return self.planner.delete_task(self._resolve(task_id))

    def list_tasks(self, range_filter: str = "all", tag_filter: str = "all") -> List[Task]:
        return self.planner.query(range_filter, tag_filter)

    def _resolve(self, prefix: str) -> str:
        """Accept a unique id prefix as typed on the command line."""
        matches = [task.id for task in self.state.tasks if task.id.startswith(prefix)]
        return matches[0] if len(matches) == 1 else prefix

    # Summary
    def refresh_today(self) -> bool:
        return self.store.rollover(self.state)

    def summary(self) -> HomeSummary:
        return home_summary(self.state)

    # Export
    def export_to_excel(self) -> Path:
        if self.exporter is None:
            from reports.excel_export import ExcelExporter

            self.exporter = ExcelExporter(Path(self.config.export_path))
        return self.exporter.export(self.planner.query(), self.state)

    def export_tasks(self, path: Path) -> Path:
        return self.planner.export_tasks(path)

    def import_tasks(self, path: Path) -> int:
        return self.planner.import_tasks(path)
