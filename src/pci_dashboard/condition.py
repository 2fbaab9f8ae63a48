from __future__ import annotations

import math


COLOR_VERY_POOR = "red"
COLOR_POOR = "darkorange"
COLOR_FAIR = "yellow"
COLOR_GOOD = "#57C018"
COLOR_EXCELLENT = "darkgreen"

# (inclusive upper bound, color, label), evaluated in ascending order.
CONDITION_BUCKETS: tuple[tuple[int, str, str], ...] = (
    (20, COLOR_VERY_POOR, "Very Poor"),
    (40, COLOR_POOR, "Poor"),
    (60, COLOR_FAIR, "Fair"),
    (80, COLOR_GOOD, "Good"),
)
TOP_BUCKET = (COLOR_EXCELLENT, "Excellent")

# Legend rows, best first: (label, range text, color).
CONDITION_SCALE: tuple[tuple[str, str, str], ...] = (
    ("Excellent", "81-100", COLOR_EXCELLENT),
    ("Good", "61-80", COLOR_GOOD),
    ("Fair", "41-60", COLOR_FAIR),
    ("Poor", "21-40", COLOR_POOR),
    ("Very Poor", "0-20", COLOR_VERY_POOR),
)


def _bucket_score(score: float) -> int:
    try:
        value = float(score)
    except (TypeError, ValueError):
        return 0
    if math.isnan(value) or value < 0:
        return 0
    if math.isinf(value):
        return 100
    return int(math.floor(value + 0.5))


def _bucket(score: float) -> tuple[str, str]:
    rounded = _bucket_score(score)
    for upper, color, label in CONDITION_BUCKETS:
        if rounded <= upper:
            return color, label
    return TOP_BUCKET


def color_for(score: float) -> str:
    return _bucket(score)[0]


def condition_label(score: float) -> str:
    return _bucket(score)[1]


def severity_condition(severity: int) -> float:
    """Map distress severity (1-5) to a pseudo condition: 5 -> 0, 1 -> 80."""
    return float(max(0, 100 - int(severity) * 20))
