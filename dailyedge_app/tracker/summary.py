"""Home screen projection of the state document."""
from __future__ import annotations

from dataclasses import dataclass

from .models import AppState


@dataclass
class HomeSummary:
    study_value: str
    sessions_text: str
    active_value: str
    completed_text: str


def home_summary(state: AppState) -> HomeSummary:
    sessions = state.sessions
    streak = f" • Streak {state.streak_days}d" if state.streak_days > 0 else ""
    active = sum(1 for task in state.tasks if not task.done)
    return HomeSummary(
        study_value=f"{state.study_seconds // 60}m",
        sessions_text=f"{sessions} session{'' if sessions == 1 else 's'}{streak}",
        active_value=str(active),
        completed_text=f"{state.completed} completed",
    )
