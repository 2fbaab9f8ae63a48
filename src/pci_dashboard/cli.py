from __future__ import annotations

import argparse
import json
import time
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Sequence

import pandas as pd

from .config import RuntimeConfig, load_runtime_config, normalize_log_format, normalize_log_level
from .dashboard import Dashboard
from .export import dataset_tables, dataset_to_payload, summary_frame
from .logging_config import configure_logging, get_logger, log_event
from .tiers import ZoomTier
from .timeline import TIME_RANGES


PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_ARTIFACTS_DIR = PROJECT_ROOT / "artifacts"
DEFAULT_DATASET_DIR = DEFAULT_ARTIFACTS_DIR / "datasets"
DEFAULT_REPLAY_OUTPUT = DEFAULT_ARTIFACTS_DIR / "replay.csv"
DEFAULT_REPORT_OUTPUT = DEFAULT_ARTIFACTS_DIR / "pci_dashboard.html"

DEFAULT_RUN_ID = "pci-run"
DEFAULT_PROGRESS_STEPS = (0.0, 25.0, 50.0, 75.0, 100.0)

REPLAY_COLUMNS = [
    "step",
    "year",
    "zoom",
    "tier",
    "sections_visible",
    "distress_visible",
    "progress",
    "path_length",
    "index",
    "lat",
    "lng",
]


def _get_report_builder() -> type[Any]:
    try:
        from .reporting import DashboardReportBuilder
    except ImportError as exc:
        raise RuntimeError(
            "Report dependencies are missing. Install with: pip install pci-dashboard[report]"
        ) from exc
    return DashboardReportBuilder


def _resolve_runtime_config(args: argparse.Namespace) -> RuntimeConfig:
    runtime = load_runtime_config()
    if getattr(args, "log_level", None):
        runtime = replace(runtime, log_level=normalize_log_level(args.log_level))
    if getattr(args, "log_format", None):
        runtime = replace(runtime, log_format=normalize_log_format(args.log_format))
    return runtime


def _resolve_path(path: Path) -> Path:
    return path.expanduser().resolve()


def _selected_years(args: argparse.Namespace, runtime: RuntimeConfig) -> list[int]:
    years = list(args.years) if getattr(args, "years", None) else list(runtime.years)
    unknown = [year for year in years if year not in runtime.years]
    if unknown:
        raise ValueError(f"Unknown year(s) {unknown}. Available: {list(runtime.years)}")
    return years


def _cmd_generate(args: argparse.Namespace, runtime: RuntimeConfig, logger: Any) -> int:
    started = time.perf_counter()
    output_dir = _resolve_path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    dashboard = Dashboard.from_config(runtime)

    written: list[str] = []
    for year in _selected_years(args, runtime):
        dataset = dashboard.catalog.get(year)
        payload = dataset_to_payload(dataset)
        payload["generated_at_utc"] = datetime.now(timezone.utc).isoformat()
        payload["seed"] = runtime.seed
        json_path = output_dir / f"year_{year}.json"
        json_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        written.append(str(json_path))

        if args.csv:
            for name, frame in dataset_tables(dataset, dashboard.associator).items():
                csv_path = output_dir / f"{name}_{year}.csv"
                frame.to_csv(csv_path, index=False)
                written.append(str(csv_path))

        log_event(
            logger,
            "info",
            "dataset_written",
            run_id=args.run_id,
            year=year,
            super_sections=len(dataset.super_sections),
            sub_sections=len(dataset.sub_sections),
            distress_points=len(dataset.distress_points),
            output_path=str(json_path),
        )

    elapsed = time.perf_counter() - started
    log_event(
        logger,
        "info",
        "generate_complete",
        run_id=args.run_id,
        files_written=len(written),
        output_dir=str(output_dir),
        elapsed_sec=round(elapsed, 3),
    )
    return 0


def _cmd_summary(args: argparse.Namespace, runtime: RuntimeConfig, logger: Any) -> int:
    dashboard = Dashboard.from_config(runtime)
    years = _selected_years(args, runtime)
    summary = summary_frame(
        (dashboard.catalog.get(year) for year in years),
        dashboard.associator,
        time_range=args.time_range,
        anchor_month=args.anchor_month,
    )
    if args.output is not None:
        output_path = _resolve_path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        summary.to_csv(output_path, index=False)
        log_event(logger, "info", "summary_written", run_id=args.run_id, output_path=str(output_path))
    print(summary.to_string(index=False))
    return 0


def _cmd_replay(args: argparse.Namespace, runtime: RuntimeConfig, logger: Any) -> int:
    started = time.perf_counter()
    output_path = _resolve_path(args.output)
    if args.year is not None:
        runtime = replace(runtime, default_year=int(args.year))
        if runtime.default_year not in runtime.years:
            raise ValueError(
                f"Unknown year {runtime.default_year}. Available: {list(runtime.years)}"
            )

    dashboard = Dashboard.from_config(runtime)
    if args.distress:
        dashboard.on_distress_toggle(True)
    dashboard.on_video_toggle(True)

    zooms = list(args.zooms) if args.zooms else [runtime.initial_zoom]
    rows: list[dict[str, Any]] = []
    step = 0
    for zoom in zooms:
        dashboard.on_zoom_changed(zoom)
        for progress in args.progress:
            dashboard.on_playback_progress(progress)
            dashboard.on_frame()
            outputs = dashboard.outputs()
            position = outputs.tracked_position
            rows.append(
                {
                    "step": step,
                    "year": dashboard.state.year,
                    "zoom": zoom,
                    "tier": ZoomTier(outputs.tier).name.lower(),
                    "sections_visible": outputs.visible_layers.sections,
                    "distress_visible": outputs.visible_layers.distress,
                    "progress": dashboard.state.playback_progress,
                    "path_length": len(dashboard.engine.path),
                    "index": dashboard.engine.index,
                    "lat": position[0] if position is not None else None,
                    "lng": position[1] if position is not None else None,
                }
            )
            step += 1

    output_path.parent.mkdir(parents=True, exist_ok=True)
    pd.DataFrame(rows, columns=REPLAY_COLUMNS).to_csv(output_path, index=False)
    elapsed = time.perf_counter() - started
    log_event(
        logger,
        "info",
        "replay_complete",
        run_id=args.run_id,
        steps=len(rows),
        camera_updates_coalesced=dashboard.follower.coalesced,
        output_path=str(output_path),
        elapsed_sec=round(elapsed, 3),
    )
    return 0


def _cmd_report(args: argparse.Namespace, runtime: RuntimeConfig, logger: Any) -> int:
    started = time.perf_counter()
    output_path = _resolve_path(args.output)
    if args.year is not None:
        runtime = replace(runtime, default_year=int(args.year))
    if args.zoom is not None:
        runtime = replace(runtime, initial_zoom=int(args.zoom))

    log_event(logger, "info", "report_start", run_id=args.run_id, year=runtime.default_year)
    dashboard = Dashboard.from_config(runtime)
    ReportBuilder = _get_report_builder()
    builder = ReportBuilder(
        dashboard,
        metadata={"run_id": args.run_id, "title": args.title},
    )
    output_path.parent.mkdir(parents=True, exist_ok=True)
    out = builder.save_report(output_path)
    elapsed = time.perf_counter() - started
    log_event(
        logger,
        "info",
        "report_complete",
        run_id=args.run_id,
        output_path=str(out),
        report_size_kb=round(out.stat().st_size / 1024.0, 1),
        elapsed_sec=round(elapsed, 3),
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--run-id",
        type=str,
        default=DEFAULT_RUN_ID,
        help=f"Run identifier for logs/report metadata. Default: {DEFAULT_RUN_ID}",
    )
    common.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Override log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).",
    )
    common.add_argument(
        "--log-format",
        type=str,
        default=None,
        help="Override log format (auto, json, console).",
    )

    parser = argparse.ArgumentParser(
        prog="pci-dashboard",
        description="Pavement condition map dashboard: datasets, replay and HTML report.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    parser_generate = subparsers.add_parser(
        "generate", parents=[common], description="Write synthetic year datasets as JSON."
    )
    parser_generate.add_argument(
        "--output-dir",
        type=Path,
        default=DEFAULT_DATASET_DIR,
        help=f"Output directory. Default: {DEFAULT_DATASET_DIR}",
    )
    parser_generate.add_argument(
        "--years",
        nargs="+",
        type=int,
        default=None,
        help="Years to write (space-separated). Default: all configured years.",
    )
    parser_generate.add_argument(
        "--csv",
        action="store_true",
        help="Also write flat CSV tables per feature kind.",
    )
    parser_generate.set_defaults(handler=_cmd_generate)

    parser_summary = subparsers.add_parser(
        "summary", parents=[common], description="Print per-year network condition summary."
    )
    parser_summary.add_argument(
        "--years",
        nargs="+",
        type=int,
        default=None,
        help="Years to summarize. Default: all configured years.",
    )
    parser_summary.add_argument(
        "--time-range",
        choices=list(TIME_RANGES),
        default=None,
        help="Also count sections inspected inside this window of each year.",
    )
    parser_summary.add_argument(
        "--anchor-month",
        type=int,
        choices=range(1, 13),
        default=1,
        metavar="MONTH",
        help="Month (1-12) the --time-range window must contain. Default: 1",
    )
    parser_summary.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Optional CSV path for the summary table.",
    )
    parser_summary.set_defaults(handler=_cmd_summary)

    parser_replay = subparsers.add_parser(
        "replay",
        parents=[common],
        description="Drive the dashboard through zoom and playback steps; write tracked positions.",
    )
    parser_replay.add_argument(
        "--year",
        type=int,
        default=None,
        help="Year to replay. Default: configured default year.",
    )
    parser_replay.add_argument(
        "--zooms",
        nargs="+",
        type=float,
        default=None,
        help="Zoom levels applied in order. Default: configured initial zoom.",
    )
    parser_replay.add_argument(
        "--progress",
        nargs="+",
        type=float,
        default=list(DEFAULT_PROGRESS_STEPS),
        help="Playback percentages replayed at each zoom level.",
    )
    parser_replay.add_argument(
        "--distress",
        action="store_true",
        help="Enable the distress layer toggle before replaying.",
    )
    parser_replay.add_argument(
        "--output",
        type=Path,
        default=DEFAULT_REPLAY_OUTPUT,
        help=f"Output CSV path. Default: {DEFAULT_REPLAY_OUTPUT}",
    )
    parser_replay.set_defaults(handler=_cmd_replay)

    parser_report = subparsers.add_parser(
        "report", parents=[common], description="Generate the HTML pavement dashboard."
    )
    parser_report.add_argument(
        "--output",
        type=Path,
        default=DEFAULT_REPORT_OUTPUT,
        help=f"Output HTML path. Default: {DEFAULT_REPORT_OUTPUT}",
    )
    parser_report.add_argument(
        "--year",
        type=int,
        default=None,
        help="Initially selected year. Default: configured default year.",
    )
    parser_report.add_argument(
        "--zoom",
        type=int,
        default=None,
        help="Initial map zoom. Default: configured initial zoom.",
    )
    parser_report.add_argument(
        "--title",
        type=str,
        default="Pavement Condition Dashboard",
        help="Page title.",
    )
    parser_report.set_defaults(handler=_cmd_report)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    runtime = _resolve_runtime_config(args)
    effective_log_format = configure_logging(runtime.log_level, runtime.log_format)
    logger = get_logger("pci_dashboard.cli")
    log_event(
        logger,
        "info",
        "command_start",
        run_id=args.run_id,
        command=args.command,
        log_level=runtime.log_level,
        log_format=effective_log_format,
    )

    try:
        return int(args.handler(args, runtime, logger))
    except KeyboardInterrupt:
        log_event(
            logger,
            "warning",
            "command_interrupted",
            run_id=args.run_id,
            command=args.command,
        )
        return 130
    except (ValueError, RuntimeError, OSError) as exc:
        log_event(
            logger,
            "error",
            "command_failed",
            run_id=args.run_id,
            command=args.command,
            error=str(exc),
        )
        return 1
