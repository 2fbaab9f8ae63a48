from __future__ import annotations

from datetime import date, datetime

import pytest

from pci_dashboard.timeline import coerce_date, filter_by_window, in_window, window_for


def test_window_for_each_range() -> None:
    anchor = date(2024, 5, 17)
    assert window_for("year", anchor) == (date(2024, 1, 1), date(2024, 12, 31))
    assert window_for("quarter", anchor) == (date(2024, 4, 1), date(2024, 6, 30))
    assert window_for("month", anchor) == (date(2024, 5, 1), date(2024, 5, 31))
    assert window_for("Month", date(2024, 2, 3)) == (date(2024, 2, 1), date(2024, 2, 29))


def test_window_for_rejects_unknown_range() -> None:
    with pytest.raises(ValueError, match="week"):
        window_for("week", date(2024, 1, 1))


def test_coerce_date_accepts_common_inputs() -> None:
    assert coerce_date(date(2024, 1, 2)) == date(2024, 1, 2)
    assert coerce_date(datetime(2024, 1, 2, 13, 0)) == date(2024, 1, 2)
    assert coerce_date("2024-01-02") == date(2024, 1, 2)
    assert coerce_date("not a date") is None
    assert coerce_date(None) is None
    assert coerce_date(20240102) is None


def test_missing_or_malformed_dates_are_never_filtered_out() -> None:
    start, end = date(2024, 1, 1), date(2024, 3, 31)
    assert in_window(None, start, end)
    assert in_window("garbage", start, end)
    assert not in_window("2024-07-01", start, end)


def test_filter_by_window_keeps_order() -> None:
    items = [
        ("a", "2024-02-01"),
        ("b", "2024-08-01"),
        ("c", None),
        ("d", date(2024, 3, 31)),
    ]
    start, end = window_for("quarter", date(2024, 1, 15))
    kept = filter_by_window(items, start, end, lambda item: item[1])
    assert [name for name, _ in kept] == ["a", "c", "d"]


def test_summary_window_counts_are_bounded_by_section_count(line_dataset) -> None:
    from pci_dashboard.export import summary_frame

    quarter = summary_frame([line_dataset], time_range="quarter", anchor_month=2)
    # s1-0 inspected in March, s1-1 in June.
    assert list(quarter["inspected_in_window"]) == [1]
    assert summary_frame([line_dataset])["inspected_in_window"].isna().all()
