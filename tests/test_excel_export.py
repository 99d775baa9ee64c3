from datetime import date

import pytest

from dailyedge_app.tracker.models import AppState, Task

pd = pytest.importorskip("pandas")
pytest.importorskip("openpyxl")

from reports.excel_export import ExcelExporter  # noqa: E402


def test_export_writes_all_sheets(tmp_path):
    state = AppState(date=date(2025, 1, 8), study_seconds=1500, sessions=1, streak_days=2)
    state.tasks = [Task(id="a", text="Essay", tag="English", due=date(2025, 1, 9)), Task(id="b", text="Quiz", done=True)]
    state.recount_completed()

    path = ExcelExporter(tmp_path / "out" / "export.xlsx").export(state.tasks, state)

    sheets = pd.read_excel(path, sheet_name=None)
    assert set(sheets) == {"Tasks", "Summary", "Meta"}
    assert list(sheets["Tasks"]["Task"]) == ["Essay", "Quiz"]
    assert sheets["Summary"]["StudyMinutes"][0] == 25.0
    assert sheets["Summary"]["CompletedTasks"][0] == 1
    assert sheets["Meta"]["RowCount"][0] == 2
