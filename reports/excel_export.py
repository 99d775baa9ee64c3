"""Excel export of the planner and today's study summary."""
from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable

import pandas as pd

from dailyedge_app.tracker.models import AppState, Task

LOGGER = logging.getLogger(__name__)


class ExcelExporter:
    def __init__(self, export_path: Path):
        self.export_path = Path(export_path)
        self.export_path.parent.mkdir(parents=True, exist_ok=True)

    def export(self, tasks: Iterable[Task], state: AppState) -> Path:
        """Write Tasks, Summary and Meta sheets, replacing any previous export."""
        tasks_df = pd.DataFrame(
            [
                (task.text, task.tag, task.due, task.done)
                for task in tasks
            ],
            columns=["Task", "Tag", "Due", "Done"],
        )
        summary_df = pd.DataFrame(
            [
                [
                    state.date,
                    round(state.study_seconds / 60, 1),
                    state.sessions,
                    state.completed,
                    state.streak_days,
                    state.last_study_date,
                ]
            ],
            columns=["Date", "StudyMinutes", "Sessions", "CompletedTasks", "StreakDays", "LastStudyDate"],
        )

        with pd.ExcelWriter(self.export_path, engine="openpyxl", mode="w") as writer:
            tasks_df.to_excel(writer, sheet_name="Tasks", index=False)
            summary_df.to_excel(writer, sheet_name="Summary", index=False)
            meta_df = pd.DataFrame([[datetime.now(), len(tasks_df)]], columns=["ExportedAt", "RowCount"])
            meta_df.to_excel(writer, sheet_name="Meta", index=False)
        LOGGER.info("Exported %s tasks to %s", len(tasks_df), self.export_path)
        return self.export_path
