import json
import random
from datetime import date, timedelta

import pytest

from dailyedge_app.tracker.models import AppState, Task
from dailyedge_app.tracker.planner import TaskPlanner
from dailyedge_app.tracker.storage import STORAGE_KEY


@pytest.fixture
def planner(store, today):
    return TaskPlanner(store.load(), store, today=lambda: today)


def test_add_task_prepends_and_persists(planner, medium):
    first = planner.add_task("Read chapter 1")
    second = planner.add_task("Solve worksheet", "Maths", "2025-01-09")
    assert [t.id for t in planner.state.tasks] == [second.id, first.id]
    assert second.tag == "Maths"
    assert second.due == date(2025, 1, 9)
    assert first.tag == "General" and first.due is None
    saved = json.loads(medium.values[STORAGE_KEY])
    assert [t["id"] for t in saved["tasks"]] == [second.id, first.id]


def test_add_task_ignores_blank_text(planner, medium):
    assert planner.add_task("   ") is None
    assert planner.state.tasks == []
    assert medium.writes == 0


def test_add_task_unknown_tag_and_bad_due(planner):
    task = planner.add_task("Poem", "Poetry", "someday")
    assert task.tag == "General"
    assert task.due is None


def test_ids_are_unique(planner):
    ids = {planner.add_task(f"task {i}").id for i in range(50)}
    assert len(ids) == 50


def test_toggle_and_delete_missing_ids_are_noops(planner, medium):
    planner.add_task("Only task")
    writes = medium.writes
    assert planner.toggle_task("missing") is None
    assert planner.delete_task("missing") is False
    assert medium.writes == writes


def test_completed_count_tracks_every_mutation(planner):
    rng = random.Random(7)
    for step in range(200):
        action = rng.choice(["add", "toggle", "delete"])
        ids = [t.id for t in planner.state.tasks]
        if action == "add" or not ids:
            planner.add_task(f"task {step}")
        elif action == "toggle":
            planner.toggle_task(rng.choice(ids))
        else:
            planner.delete_task(rng.choice(ids))
        assert planner.state.completed == sum(1 for t in planner.state.tasks if t.done)


def test_on_change_fires_after_mutations(store, today):
    calls = []
    planner = TaskPlanner(store.load(), store, today=lambda: today, on_change=lambda: calls.append(1))
    task = planner.add_task("Flashcards")
    planner.toggle_task(task.id)
    planner.delete_task(task.id)
    assert len(calls) == 3


def _planner_with(store, today, tasks, week_days=7):
    state = AppState(date=today, tasks=tasks)
    state.recount_completed()
    return TaskPlanner(state, store, today=lambda: today, week_days=week_days)


def test_query_sort_order(store, today):
    dated = Task(id="a", text="dated", due=date(2025, 1, 10))
    done = Task(id="b", text="done", done=True, due=date(2025, 1, 1))
    dateless = Task(id="c", text="dateless")
    planner = _planner_with(store, today, [dated, done, dateless])
    assert [t.id for t in planner.query()] == ["a", "c", "b"]


def test_query_sort_is_stable_and_ascending(store, today):
    tasks = [
        Task(id="n1", text="no date 1"),
        Task(id="d2", text="later", due=date(2025, 2, 1)),
        Task(id="n2", text="no date 2"),
        Task(id="d1", text="sooner", due=date(2025, 1, 9)),
        Task(id="d3", text="same as later", due=date(2025, 2, 1)),
    ]
    planner = _planner_with(store, today, tasks)
    assert [t.id for t in planner.query()] == ["d1", "d2", "d3", "n1", "n2"]


def test_query_does_not_reorder_state(store, today):
    tasks = [Task(id="n", text="no date"), Task(id="d", text="dated", due=today)]
    planner = _planner_with(store, today, tasks)
    planner.query()
    assert [t.id for t in planner.state.tasks] == ["n", "d"]


def test_today_filter(store, today):
    tasks = [
        Task(id="today", text="a", due=today),
        Task(id="tomorrow", text="b", due=today + timedelta(days=1)),
        Task(id="none", text="c"),
    ]
    planner = _planner_with(store, today, tasks)
    assert [t.id for t in planner.query("today")] == ["today"]


def test_week_filter_is_inclusive(store, today):
    tasks = [
        Task(id="yesterday", text="a", due=today - timedelta(days=1)),
        Task(id="today", text="b", due=today),
        Task(id="edge", text="c", due=today + timedelta(days=7)),
        Task(id="beyond", text="d", due=today + timedelta(days=8)),
        Task(id="none", text="e"),
    ]
    planner = _planner_with(store, today, tasks)
    assert [t.id for t in planner.query("week")] == ["today", "edge"]
    narrow = _planner_with(store, today, tasks, week_days=3)
    assert [t.id for t in narrow.query("week")] == ["today"]


def test_tag_filter_combines_with_range(store, today):
    tasks = [
        Task(id="m", text="a", tag="Maths", due=today),
        Task(id="p", text="b", tag="Physics", due=today),
        Task(id="m2", text="c", tag="Maths"),
    ]
    planner = _planner_with(store, today, tasks)
    assert [t.id for t in planner.query("all", "Maths")] == ["m", "m2"]
    assert [t.id for t in planner.query("today", "Maths")] == ["m"]
    assert [t.id for t in planner.query("bogus", "all")] == ["m", "p", "m2"]


def test_export_and_import_csv(planner, tmp_path, store, today):
    planner.add_task("Essay outline", "English", "2025-01-12")
    done = planner.add_task("Past paper", "Maths")
    planner.toggle_task(done.id)
    path = planner.export_tasks(tmp_path / "tasks.csv")

    other = TaskPlanner(AppState.defaults(today), store, today=lambda: today)
    assert other.import_tasks(path) == 2
    texts = {t.text: t for t in other.state.tasks}
    assert texts["Essay outline"].due == date(2025, 1, 12)
    assert texts["Past paper"].done is True
    assert other.state.completed == 1


def test_import_json_skips_blank_rows(planner, tmp_path):
    path = tmp_path / "tasks.json"
    path.write_text(json.dumps({"tasks": [{"text": "Vocab", "tag": "Urdu"}, {"text": ""}, "junk"]}), encoding="utf-8")
    assert planner.import_tasks(path) == 1
    assert planner.state.tasks[0].tag == "Urdu"


def test_import_missing_file_raises(planner, tmp_path):
    with pytest.raises(FileNotFoundError):
        planner.import_tasks(tmp_path / "missing.csv")


@pytest.mark.parametrize("payload", ['"just a string"', "42", '{"tasks": "Vocab"}', "null"])
def test_import_json_rejects_unexpected_shapes(planner, tmp_path, medium, payload):
    path = tmp_path / "tasks.json"
    path.write_text(payload, encoding="utf-8")
    with pytest.raises(ValueError):
        planner.import_tasks(path)
    assert planner.state.tasks == []
    assert STORAGE_KEY not in medium.values


def test_import_json_reads_done_strictly(planner, tmp_path):
    path = tmp_path / "tasks.json"
    path.write_text(json.dumps([{"text": "Quiz", "done": "false"}, {"text": "Lab", "done": True}]), encoding="utf-8")
    assert planner.import_tasks(path) == 2
    assert {t.text: t.done for t in planner.state.tasks} == {"Quiz": False, "Lab": True}
    assert planner.state.completed == 1
