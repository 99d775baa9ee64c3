"""Data models for the study widget state document."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

LOGGER = logging.getLogger(__name__)

DOCUMENT_VERSION = 2
DEFAULT_TAG = "General"

SUBJECTS = (
    "General",
    "Maths",
    "Science",
    "English",
    "Physics",
    "Chemistry",
    "Biology",
    "History",
    "Geography",
    "Economics",
    "Civics(Politics)",
    "Computer(AI)",
    "Hindi",
    "Urdu",
    "Sanskrit",
    "sst",
    "GK",
    "Art",
    "Music",
    "Dance",
)


def parse_day(value: Any) -> Optional[date]:
    """Return a date for an ISO day string (or date), None when absent or invalid."""
    if isinstance(value, date):
        return value
    if not value or not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def _non_negative_int(value: Any) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(number, 0)


def parse_flag(value: Any) -> bool:
    """Strict truthiness for stored or imported flags; "false" and "0" are False."""
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes"}
    return value is True or (isinstance(value, (int, float)) and value == 1)


@dataclass
class Task:
    """A planner entry."""

    id: str
    text: str
    done: bool = False
    tag: str = DEFAULT_TAG
    due: Optional[date] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["Task"]:
        if not isinstance(data, dict):
            return None
        task_id = data.get("id")
        text = data.get("text")
        if task_id in (None, "") or not isinstance(text, str) or not text.strip():
            return None
        tag = data.get("tag")
        return cls(
            id=str(task_id),
            text=text.strip(),
            done=parse_flag(data.get("done", False)),
            tag=tag if tag in SUBJECTS else DEFAULT_TAG,
            due=parse_day(data.get("due")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "done": self.done,
            "tag": self.tag,
            "due": self.due.isoformat() if self.due else "",
        }


@dataclass
class AppState:
    """The single persisted document shared by the planner and the timer."""

    date: date
    study_seconds: int = 0
    sessions: int = 0
    tasks: List[Task] = field(default_factory=list)
    completed: int = 0
    streak_days: int = 0
    last_study_date: Optional[date] = None

    @classmethod
    def defaults(cls, today: date) -> "AppState":
        return cls(date=today)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], today: date) -> "AppState":
        """Overlay a (possibly partial or damaged) document onto the defaults."""
        if not isinstance(data, dict):
            return cls.defaults(today)

        tasks: List[Task] = []
        seen_ids = set()
        raw_tasks = data.get("tasks")
        for raw in raw_tasks if isinstance(raw_tasks, list) else []:
            task = Task.from_dict(raw)
            if task is None or task.id in seen_ids:
                LOGGER.debug("Dropped unusable task record %r", raw)
                continue
            seen_ids.add(task.id)
            tasks.append(task)

        state = cls(
            date=parse_day(data.get("date")) or today,
            study_seconds=_non_negative_int(data.get("studySeconds", 0)),
            sessions=_non_negative_int(data.get("sessions", 0)),
            tasks=tasks,
            streak_days=_non_negative_int(data.get("streakDays", 0)),
            last_study_date=parse_day(data.get("lastStudyDate")),
        )
        state.recount_completed()
        return state

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": DOCUMENT_VERSION,
            "date": self.date.isoformat(),
            "studySeconds": self.study_seconds,
            "sessions": self.sessions,
            "tasks": [task.to_dict() for task in self.tasks],
            "completed": self.completed,
            "streakDays": self.streak_days,
            "lastStudyDate": self.last_study_date.isoformat() if self.last_study_date else None,
        }

    def recount_completed(self) -> int:
        self.completed = sum(1 for task in self.tasks if task.done)
        return self.completed
