"""Tests for the HTML dashboard renderer."""
from __future__ import annotations

import json
from pathlib import Path

import pytest

from pci_dashboard.dashboard import Dashboard
from pci_dashboard.reporting import (
    COLORS,
    DashboardReportBuilder,
    condition_summary,
    year_payload,
)
from pci_dashboard.association import DistressAssociator
from pci_dashboard.models import YearDataset


def test_condition_summary_counts_every_section(line_catalog) -> None:
    datasets = {year: line_catalog.get(year) for year in line_catalog.years}
    summary = condition_summary(datasets)
    assert list(summary.columns) == ["year", "bucket", "color", "sections"]
    assert set(summary["year"]) == {2024, 2025}
    totals = summary.groupby("year")["sections"].sum().to_dict()
    assert totals == {2024: 2, 2025: 2}
    row = summary[(summary["year"] == 2025) & (summary["bucket"] == "Very Poor")]
    assert int(row["sections"].iloc[0]) == 1


def test_year_payload_carries_colors(line_dataset: YearDataset) -> None:
    payload = year_payload(line_dataset, DistressAssociator())
    assert payload["year"] == 2025
    assert [s["color"] for s in payload["sections"]] == ["red", "darkgreen"]
    assert payload["superSections"][0]["color"] == "yellow"
    by_id = {p["id"]: p for p in payload["distress"]}
    assert by_id["d-near-a"]["fill"] == "red"
    assert by_id["d-far"]["fill"] == "yellow"
    json.dumps(payload)


def test_render_contains_map_controls_and_data(headless_dashboard: Dashboard) -> None:
    html = DashboardReportBuilder(headless_dashboard, metadata={"run_id": "unit-run"}).render()
    assert "<!DOCTYPE html>" in html
    assert "leaflet" in html
    assert "unit-run" in html
    assert "Very Poor (0-20)" in html
    assert '"detailZoom": 13' in html
    assert '"inspectionZoom": 15' in html
    assert "Show Distress Points" in html
    assert "Test Road" in html
    assert COLORS["primary"] in html
    assert '<option value="2025" selected>' in html


def test_save_report_writes_file(headless_dashboard: Dashboard, tmp_path: Path) -> None:
    out = DashboardReportBuilder(headless_dashboard).save_report(tmp_path / "nested" / "dash.html")
    assert out.exists()
    assert out.stat().st_size > 1000


def test_package_exposes_report_builder_lazily() -> None:
    import pci_dashboard

    assert pci_dashboard.DashboardReportBuilder is DashboardReportBuilder
    with pytest.raises(AttributeError):
        getattr(pci_dashboard, "NotAThing")
