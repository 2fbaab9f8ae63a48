from __future__ import annotations

import calendar
from datetime import date, datetime
from typing import Callable, Iterable, TypeVar

import pandas as pd


TIME_RANGES = ("year", "quarter", "month")

T = TypeVar("T")


def window_for(time_range: str, anchor: date) -> tuple[date, date]:
    """Inclusive [start, end] window of the given range containing `anchor`."""
    normalized = str(time_range).strip().lower()
    if normalized == "year":
        return date(anchor.year, 1, 1), date(anchor.year, 12, 31)
    if normalized == "quarter":
        first_month = 3 * ((anchor.month - 1) // 3) + 1
        last_month = first_month + 2
        last_day = calendar.monthrange(anchor.year, last_month)[1]
        return date(anchor.year, first_month, 1), date(anchor.year, last_month, last_day)
    if normalized == "month":
        last_day = calendar.monthrange(anchor.year, anchor.month)[1]
        return date(anchor.year, anchor.month, 1), date(anchor.year, anchor.month, last_day)
    raise ValueError(
        f"Invalid time range '{time_range}'. Expected one of {list(TIME_RANGES)}."
    )


def coerce_date(value: object) -> date | None:
    """Best-effort date parsing; anything unparseable becomes None."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    try:
        parsed = pd.to_datetime(value, errors="coerce")
    except (TypeError, ValueError, OverflowError):
        return None
    if parsed is None or pd.isna(parsed):
        return None
    return parsed.date()


def in_window(value: object, start: date, end: date) -> bool:
    # Missing or malformed dates never exclude an item.
    parsed = coerce_date(value)
    if parsed is None:
        return True
    return start <= parsed <= end


def filter_by_window(
    items: Iterable[T],
    start: date,
    end: date,
    date_of: Callable[[T], object],
) -> list[T]:
    return [item for item in items if in_window(date_of(item), start, end)]
