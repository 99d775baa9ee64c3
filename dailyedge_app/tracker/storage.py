"""Key-value persistence for the state document."""
from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Optional, Protocol

from .models import DEFAULT_TAG, DOCUMENT_VERSION, AppState

LOGGER = logging.getLogger(__name__)

STORAGE_KEY = "dailyedge:v2"
LEGACY_KEY = "dailyedge:v1"


class KeyValueMedium(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class MediumUnavailable(OSError):
    """Raised by a medium that cannot be read or written."""


class MemoryMedium:
    """Dict-backed medium; can simulate an unreadable or full medium."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self.values: Dict[str, str] = dict(initial or {})
        self.fail_reads = False
        self.fail_writes = False
        self.writes = 0

    def get(self, key: str) -> Optional[str]:
        if self.fail_reads:
            raise MediumUnavailable("medium unreadable")
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise MediumUnavailable("medium full")
        self.values[key] = value
        self.writes += 1


class SqliteMedium:
    """A single key/value table in a SQLite file."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    @contextmanager
    def _get_conn(self) -> Iterable[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            LOGGER.exception("Database operation failed")
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._get_conn() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )

    def get(self, key: str) -> Optional[str]:
        with self._get_conn() as conn:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
            return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        with self._get_conn() as conn:
            conn.execute(
                "INSERT INTO kv (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, value),
            )


def upgrade_document(data: Any, from_version: int) -> Dict[str, Any]:
    """Bring an older document up to the current shape.

    Version 1 documents predate tags and due dates on tasks and carry no
    streak fields; tasks without an id get a positional one. The streak
    fields are left for the defaults to fill in. The function never raises;
    anything that is not a mapping becomes ``{}``.
    """
    if not isinstance(data, dict):
        return {}
    doc = dict(data)
    if from_version < 2:
        tasks = doc.get("tasks")
        upgraded = []
        for index, task in enumerate(tasks if isinstance(tasks, list) else []):
            if not isinstance(task, dict):
                continue
            task = dict(task)
            if not task.get("id"):
                task["id"] = f"legacy-{index}"
            task.setdefault("tag", DEFAULT_TAG)
            task.setdefault("due", "")
            upgraded.append(task)
        doc["tasks"] = upgraded
    doc["version"] = DOCUMENT_VERSION
    return doc


def apply_rollover(doc: Dict[str, Any], today: date) -> bool:
    """Zero the daily counters of a raw document that belongs to another day."""
    if doc.get("date") == today.isoformat():
        return False
    doc["date"] = today.isoformat()
    doc["studySeconds"] = 0
    doc["sessions"] = 0
    return True


class StateStore:
    """Load, migrate and save the state document on a key-value medium."""

    def __init__(self, medium: KeyValueMedium, today: Callable[[], date] = date.today) -> None:
        self.medium = medium
        self.today = today

    def load(self) -> AppState:
        today = self.today()
        try:
            raw = self.medium.get(STORAGE_KEY)
            if raw is None:
                legacy = self.medium.get(LEGACY_KEY)
                if legacy is None:
                    LOGGER.info("No saved state found, starting fresh")
                    return AppState.defaults(today)
                LOGGER.info("Migrating legacy state document %s", LEGACY_KEY)
                doc = upgrade_document(json.loads(legacy), 1)
            else:
                data = json.loads(raw)
                version = data.get("version", DOCUMENT_VERSION) if isinstance(data, dict) else DOCUMENT_VERSION
                doc = upgrade_document(data, version if isinstance(version, int) else DOCUMENT_VERSION)
        except Exception:  # noqa: BLE001
            LOGGER.warning("Saved state unreadable, falling back to defaults", exc_info=True)
            return AppState.defaults(today)

        if not isinstance(doc, dict) or not doc:
            return AppState.defaults(today)
        if apply_rollover(doc, today):
            LOGGER.info("New day %s: daily counters reset", today.isoformat())
        try:
            return AppState.from_dict(doc, today)
        except Exception:  # noqa: BLE001
            LOGGER.warning("Saved state damaged, falling back to defaults", exc_info=True)
            return AppState.defaults(today)

    def save(self, state: AppState) -> bool:
        try:
            payload = json.dumps(state.to_dict(), ensure_ascii=False)
            self.medium.set(STORAGE_KEY, payload)
        except Exception:  # noqa: BLE001
            LOGGER.warning("Could not persist state; keeping it in memory only", exc_info=True)
            return False
        LOGGER.debug("State saved (%s tasks)", len(state.tasks))
        return True

    def rollover(self, state: AppState) -> bool:
        """Apply the day rollover to a state that stayed in memory past midnight."""
        today = self.today()
        if state.date == today:
            return False
        state.date = today
        state.study_seconds = 0
        state.sessions = 0
        self.save(state)
        LOGGER.info("New day %s: daily counters reset", today.isoformat())
        return True
