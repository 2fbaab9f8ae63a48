from __future__ import annotations

import json
import os
from pathlib import Path
import subprocess
import sys

import jsonschema
import pandas as pd
import pytest

from pci_dashboard.cli import REPLAY_COLUMNS, main


PROJECT_ROOT = Path(__file__).resolve().parents[1]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in list(os.environ):
        if key.startswith("PCI_DASHBOARD_"):
            monkeypatch.delenv(key, raising=False)


def _schema() -> dict[str, object]:
    schema_path = PROJECT_ROOT / "schemas" / "year_dataset.schema.json"
    return json.loads(schema_path.read_text(encoding="utf-8"))


def _pythonpath_env() -> dict[str, str]:
    env = os.environ.copy()
    src_path = str(PROJECT_ROOT / "src")
    existing_pythonpath = env.get("PYTHONPATH")
    env["PYTHONPATH"] = (
        src_path if not existing_pythonpath else f"{src_path}{os.pathsep}{existing_pythonpath}"
    )
    return env


def _run_module(args: list[str]) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        [sys.executable, "-m", "pci_dashboard", *args],
        cwd=PROJECT_ROOT,
        env=_pythonpath_env(),
        capture_output=True,
        text=True,
        check=False,
    )


def test_python_module_help() -> None:
    result = _run_module(["--help"])
    assert result.returncode == 0, result.stderr
    for command in ("generate", "summary", "replay", "report"):
        assert command in result.stdout


def test_python_module_invalid_command_returns_non_zero() -> None:
    result = _run_module(["not-a-command"])
    assert result.returncode != 0
    assert "invalid choice" in result.stderr.lower()


def test_generate_writes_schema_valid_json_and_csv(tmp_path: Path) -> None:
    code = main(
        ["generate", "--output-dir", str(tmp_path), "--years", "2024", "--csv", "--log-format", "json"]
    )
    assert code == 0

    payload = json.loads((tmp_path / "year_2024.json").read_text(encoding="utf-8"))
    jsonschema.validate(instance=payload, schema=_schema())
    assert payload["year"] == 2024
    assert payload["seed"] == 42
    assert len(payload["super_sections"]) == 11

    sections = pd.read_csv(tmp_path / "sub_sections_2024.csv")
    assert len(sections) == 440
    assert {"id", "parent_id", "condition", "label"} <= set(sections.columns)
    assert (tmp_path / "distress_points_2024.csv").exists()
    assert not (tmp_path / "year_2025.json").exists()


def test_schema_rejects_out_of_range_condition() -> None:
    payload = {
        "schema_version": 1,
        "year": 2025,
        "super_sections": [],
        "sub_sections": [
            {
                "kind": "sub_section",
                "id": "x",
                "parent_id": "s",
                "coordinates": [[0, 0], [0, 1]],
                "condition": 140,
                "last_inspected": None,
            }
        ],
        "distress_points": [],
    }
    with pytest.raises(jsonschema.ValidationError):
        jsonschema.validate(instance=payload, schema=_schema())


def test_generate_unknown_year_fails_with_exit_code_one(tmp_path: Path) -> None:
    assert main(["generate", "--output-dir", str(tmp_path), "--years", "1999"]) == 1


def test_summary_prints_table_and_writes_csv(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    out = tmp_path / "summary.csv"
    assert main(["summary", "--output", str(out), "--log-format", "json"]) == 0
    printed = capsys.readouterr().out
    assert "mean_condition" in printed
    summary = pd.read_csv(out)
    assert list(summary["year"]) == [2023, 2024, 2025]
    assert (summary["sub_sections"] == 440).all()
    assert (summary["matched_distress"] == 0).all()


def test_replay_writes_tracked_positions(tmp_path: Path) -> None:
    out = tmp_path / "replay.csv"
    code = main(
        [
            "replay",
            "--year",
            "2023",
            "--zooms",
            "10",
            "14",
            "--progress",
            "0",
            "50",
            "100",
            "--output",
            str(out),
            "--log-format",
            "json",
        ]
    )
    assert code == 0
    frame = pd.read_csv(out)
    assert list(frame.columns) == REPLAY_COLUMNS
    assert len(frame) == 6
    assert list(frame["tier"]) == ["overview"] * 3 + ["detail"] * 3
    assert list(frame["sections_visible"]) == [False] * 3 + [True] * 3
    assert frame["lat"].notna().all()
    overview = frame[frame["tier"] == "overview"]
    # 11 routes x 5 vertices on the overview path.
    assert set(overview["path_length"]) == {55}
    assert list(overview["index"]) == [0, 27, 54]
    assert set(frame[frame["tier"] == "detail"]["path_length"]) == {880}


def test_replay_unknown_year_returns_one(tmp_path: Path) -> None:
    assert main(["replay", "--year", "1999", "--output", str(tmp_path / "r.csv")]) == 1


def test_report_command_writes_html(tmp_path: Path) -> None:
    out = tmp_path / "dash.html"
    assert main(["report", "--output", str(out), "--run-id", "cli-test", "--log-format", "json"]) == 0
    html = out.read_text(encoding="utf-8")
    assert "cli-test" in html
    assert "Diagonal Express 1" in html


def test_invalid_env_config_surfaces_as_value_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PCI_DASHBOARD_TIER_SCHEME", "four")
    with pytest.raises(ValueError, match="PCI_DASHBOARD_TIER_SCHEME"):
        main(["summary"])


def test_summary_counts_sections_inspected_in_window(tmp_path: Path) -> None:
    out = tmp_path / "summary.csv"
    code = main(
        [
            "summary",
            "--years",
            "2025",
            "--time-range",
            "year",
            "--output",
            str(out),
            "--log-format",
            "json",
        ]
    )
    assert code == 0
    summary = pd.read_csv(out)
    # Every generated inspection date falls inside its own year.
    assert list(summary["inspected_in_window"]) == [440]
