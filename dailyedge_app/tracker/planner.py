"""Task planner: CRUD over the tasks in the shared state plus the display query."""
from __future__ import annotations

import csv
import json
import logging
import uuid
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Callable, List, Optional

from .models import DEFAULT_TAG, SUBJECTS, AppState, Task, parse_day, parse_flag
from .storage import StateStore

LOGGER = logging.getLogger(__name__)

RANGE_FILTERS = ("all", "today", "week")
DEFAULT_WEEK_DAYS = 7


def sort_key(task: Task) -> tuple:
    """Incomplete first, dated before dateless, then due ascending."""
    return (task.done, task.due is None, task.due or date.min)


class TaskPlanner:
    """Mutates ``state.tasks`` and persists after every change."""

    def __init__(
        self,
        state: AppState,
        store: StateStore,
        today: Callable[[], date] = date.today,
        week_days: int = DEFAULT_WEEK_DAYS,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self.state = state
        self.store = store
        self.today = today
        self.week_days = max(int(week_days), 0)
        self.on_change = on_change

    def _new_id(self) -> str:
        existing = {task.id for task in self.state.tasks}
        task_id = uuid.uuid4().hex
        while task_id in existing:
            task_id = uuid.uuid4().hex
        return task_id

    def _commit(self) -> None:
        self.state.recount_completed()
        self.store.save(self.state)
        if self.on_change:
            try:
                self.on_change()
            except Exception:  # pragma: no cover - defensive
                LOGGER.exception("Planner change callback failed")

    def _build_task(self, text: Any, tag: Optional[str], due: Any) -> Optional[Task]:
        if not isinstance(text, str) or not text.strip():
            return None
        if tag not in SUBJECTS:
            if tag:
                LOGGER.warning("Unknown tag %r, using %s", tag, DEFAULT_TAG)
            tag = DEFAULT_TAG
        return Task(id=self._new_id(), text=text.strip(), tag=tag, due=parse_day(due))

    def add_task(self, text: str, tag: Optional[str] = DEFAULT_TAG, due: Any = None) -> Optional[Task]:
        task = self._build_task(text, tag, due)
        if task is None:
            LOGGER.debug("Ignored empty task text")
            return None
        self.state.tasks.insert(0, task)
        self._commit()
        LOGGER.info("Added task %s (%s)", task.id, task.tag)
        return task

    def get_task(self, task_id: str) -> Optional[Task]:
        return next((task for task in self.state.tasks if task.id == task_id), None)

    def toggle_task(self, task_id: str) -> Optional[Task]:
        task = self.get_task(task_id)
        if task is None:
            return None
        task.done = not task.done
        self._commit()
        LOGGER.info("Task %s marked %s", task_id, "done" if task.done else "open")
        return task

    def delete_task(self, task_id: str) -> bool:
        task = self.get_task(task_id)
        if task is None:
            return False
        self.state.tasks.remove(task)
        self._commit()
        LOGGER.info("Deleted task %s", task_id)
        return True

    def active_count(self) -> int:
        return sum(1 for task in self.state.tasks if not task.done)

    def _passes(self, task: Task, range_filter: str, tag_filter: str, today: date) -> bool:
        if tag_filter != "all" and task.tag != tag_filter:
            return False
        if range_filter == "today":
            return task.due is not None and task.due == today
        if range_filter == "week":
            if task.due is None:
                return False
            return today <= task.due <= today + timedelta(days=self.week_days)
        return True

    def query(self, range_filter: str = "all", tag_filter: str = "all") -> List[Task]:
        """Sorted and filtered view of the tasks for display."""
        if range_filter not in RANGE_FILTERS:
            range_filter = "all"
        tag_filter = tag_filter or "all"
        today = self.today()
        ordered = sorted(self.state.tasks, key=sort_key)
        return [task for task in ordered if self._passes(task, range_filter, tag_filter, today)]

    def export_tasks(self, path: Path) -> Path:
        path = Path(path)
        with path.open("w", newline="", encoding="utf-8") as fh:
            writer = csv.DictWriter(fh, fieldnames=["text", "done", "tag", "due"])
            writer.writeheader()
            for task in self.state.tasks:
                writer.writerow(
                    {
                        "text": task.text,
                        "done": int(task.done),
                        "tag": task.tag,
                        "due": task.due.isoformat() if task.due else "",
                    }
                )
        LOGGER.info("Exported %s tasks to %s", len(self.state.tasks), path)
        return path

    def import_tasks(self, path: Path) -> int:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(path)
        if path.suffix.lower() == ".json":
            data = json.loads(path.read_text(encoding="utf-8"))
            rows = data.get("tasks", []) if isinstance(data, dict) else data
            if not isinstance(rows, list):
                raise ValueError(f"{path.name}: expected a list of tasks or an object with a \"tasks\" list")
        else:
            with path.open("r", newline="", encoding="utf-8") as fh:
                rows = list(csv.DictReader(fh))
        imported = 0
        for row in rows:
            if not isinstance(row, dict):
                continue
            task = self._build_task(row.get("text"), row.get("tag"), row.get("due"))
            if task is None:
                continue
            task.done = parse_flag(row.get("done", False))
            self.state.tasks.insert(0, task)
            imported += 1
        if imported:
            self._commit()
        LOGGER.info("Imported %s tasks from %s", imported, path)
        return imported
