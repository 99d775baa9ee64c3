import pytest

from dailyedge_app.tracker.grades import (
    Category,
    needed_message,
    needed_score,
    points_percent,
    weighted_grade,
)


def test_points_percent():
    assert points_percent(45, 50) == pytest.approx(90.0)
    with pytest.raises(ValueError):
        points_percent(10, 0)
    with pytest.raises(ValueError):
        points_percent(-1, 10)


def test_needed_score_formula():
    assert needed_score(80, 20, 85) == pytest.approx(105.0)
    assert "above 100%" in needed_message(80, 20, 85)
    assert needed_message(90, 50, 85).startswith("You need 80.00% on the final")


def test_needed_score_rejects_bad_weight():
    with pytest.raises(ValueError):
        needed_score(80, 0, 85)
    with pytest.raises(ValueError):
        needed_score(80, 120, 85)
    with pytest.raises(ValueError):
        needed_score(float("nan"), 20, 85)


def test_weighted_grade_normalises_weights():
    result = weighted_grade([
        Category("Exams", 80, 100, 40),
        Category("Quizzes", 18, 20, 20),
        Category("Homework", 50, 50, 20),
    ])
    # weights 40/20/20 normalise to 0.5/0.25/0.25
    assert result.final == pytest.approx(80 * 0.5 + 90 * 0.25 + 100 * 0.25)
    assert result.lines()[0] == "Exams: 80.00% × 50.0% = 40.00%"


def test_weighted_grade_equal_weights_and_skips_invalid():
    result = weighted_grade([
        Category("A", 5, 10),
        Category("B", 10, 10),
        Category("Broken", 3, 0),
    ])
    assert result.final == pytest.approx(75.0)
    assert [b.name for b in result.breakdown] == ["A", "B"]
    with pytest.raises(ValueError):
        weighted_grade([Category("Broken", 3, 0)])
