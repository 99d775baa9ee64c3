"""Grade calculator: plain percentage, weighted categories and needed final score."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional


@dataclass
class Category:
    name: str
    earned: float
    possible: float
    weight: Optional[float] = None


@dataclass
class CategoryShare:
    name: str
    percent: float
    weight: float

    @property
    def contribution(self) -> float:
        return self.percent * self.weight


@dataclass
class WeightedResult:
    final: float
    breakdown: List[CategoryShare]

    def lines(self) -> List[str]:
        return [
            f"{b.name}: {b.percent:.2f}% × {b.weight * 100:.1f}% = {b.contribution:.2f}%"
            for b in self.breakdown
        ]


def _finite(value: float) -> bool:
    return isinstance(value, (int, float)) and math.isfinite(value)


def points_percent(earned: float, possible: float) -> float:
    if not (_finite(earned) and _finite(possible)) or earned < 0 or possible <= 0:
        raise ValueError("Enter valid numbers (possible must be > 0).")
    return earned / possible * 100


def weighted_grade(categories: Iterable[Category]) -> WeightedResult:
    """Combine categories into a final grade.

    Categories with unusable points are skipped. Weights are normalised by
    their total; when no category carries a positive weight every category
    counts equally.
    """
    rows = [
        c for c in categories
        if _finite(c.earned) and _finite(c.possible) and c.earned >= 0 and c.possible > 0
    ]
    if not rows:
        raise ValueError("Add at least one valid category.")

    has_weight = any(c.weight is not None and c.weight > 0 for c in rows)
    if has_weight:
        total = sum(c.weight for c in rows if c.weight is not None and c.weight > 0)
    else:
        total = float(len(rows))

    breakdown = []
    for c in rows:
        if has_weight:
            share = (c.weight / total) if c.weight is not None and c.weight > 0 else 0.0
        else:
            share = 1 / len(rows)
        breakdown.append(CategoryShare(c.name.strip() or "Category", c.earned / c.possible * 100, share))
    return WeightedResult(sum(b.contribution for b in breakdown), breakdown)


def needed_score(current: float, final_weight: float, target: float) -> float:
    """Score needed on the final to reach ``target`` overall, all in percent."""
    if not all(_finite(v) for v in (current, final_weight, target)) or not 0 < final_weight <= 100:
        raise ValueError("Enter valid numbers. Final weight must be 1-100.")
    wf = final_weight / 100
    return (target - current * (1 - wf)) / wf


def needed_message(current: float, final_weight: float, target: float) -> str:
    needed = needed_score(current, final_weight, target)
    if needed > 100:
        return f"You need {needed:.2f}% (above 100%). Aim for every bit of partial credit."
    return f"You need {needed:.2f}% on the final to reach {target:g}% overall."
