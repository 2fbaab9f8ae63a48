from __future__ import annotations

from datetime import date
from typing import Any, Iterable

import numpy as np
import pandas as pd

from .association import DistressAssociator
from .condition import color_for, condition_label
from .models import YearDataset
from .timeline import filter_by_window, window_for


SCHEMA_VERSION = 1

SUMMARY_COLUMNS = [
    "year",
    "super_sections",
    "sub_sections",
    "distress_points",
    "mean_condition",
    "min_condition",
    "max_condition",
    "network_label",
    "network_color",
    "matched_distress",
    "total_length_km",
    "inspected_in_window",
]


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value is not None else None


def dataset_to_payload(dataset: YearDataset) -> dict[str, Any]:
    """JSON-ready view of one year; feature kinds are carried as tags."""
    return {
        "schema_version": SCHEMA_VERSION,
        "year": dataset.year,
        "super_sections": [
            {
                "kind": s.kind,
                "id": s.id,
                "name": s.name,
                "coordinates": [list(c) for c in s.coordinates],
                "condition": s.condition,
                "total_length_km": s.total_length_km,
                "traffic_volume": s.traffic_volume,
                "last_inspected": _iso(s.last_inspected),
                "category": s.category,
            }
            for s in dataset.super_sections
        ],
        "sub_sections": [
            {
                "kind": s.kind,
                "id": s.id,
                "parent_id": s.parent_id,
                "coordinates": [list(c) for c in s.coordinates],
                "condition": s.condition,
                "last_inspected": _iso(s.last_inspected),
                "category": s.category,
                "video_url": s.video_url,
            }
            for s in dataset.sub_sections
        ],
        "distress_points": [
            {
                "kind": p.kind,
                "id": p.id,
                "position": list(p.position),
                "distress_type": p.distress_type.value,
                "severity": p.severity,
                "size": p.size,
                "date_reported": _iso(p.date_reported),
            }
            for p in dataset.distress_points
        ],
    }


def dataset_tables(
    dataset: YearDataset, associator: DistressAssociator | None = None
) -> dict[str, pd.DataFrame]:
    associations = (associator or DistressAssociator()).associations(dataset, True)
    super_df = pd.DataFrame(
        [
            {
                "id": s.id,
                "name": s.name,
                "category": s.category,
                "condition": s.condition,
                "label": condition_label(s.condition),
                "total_length_km": s.total_length_km,
                "traffic_volume": s.traffic_volume,
                "last_inspected": _iso(s.last_inspected),
                "start_lat": s.coordinates[0][0],
                "start_lng": s.coordinates[0][1],
                "end_lat": s.coordinates[-1][0],
                "end_lng": s.coordinates[-1][1],
            }
            for s in dataset.super_sections
        ]
    )
    sub_df = pd.DataFrame(
        [
            {
                "id": s.id,
                "parent_id": s.parent_id,
                "condition": s.condition,
                "label": condition_label(s.condition),
                "start_lat": s.coordinates[0][0],
                "start_lng": s.coordinates[0][1],
                "end_lat": s.coordinates[1][0],
                "end_lng": s.coordinates[1][1],
                "last_inspected": _iso(s.last_inspected),
                "video_url": s.video_url,
            }
            for s in dataset.sub_sections
        ]
    )
    distress_df = pd.DataFrame(
        [
            {
                "id": p.id,
                "lat": p.position[0],
                "lng": p.position[1],
                "distress_type": p.distress_type.value,
                "severity": p.severity,
                "size": p.size,
                "date_reported": _iso(p.date_reported),
                "section_id": associations[p.id].section_id,
                "condition": associations[p.id].condition,
            }
            for p in dataset.distress_points
        ]
    )
    return {"super_sections": super_df, "sub_sections": sub_df, "distress_points": distress_df}


def summary_frame(
    datasets: Iterable[YearDataset],
    associator: DistressAssociator | None = None,
    time_range: str | None = None,
    anchor_month: int = 1,
) -> pd.DataFrame:
    """Per-year network summary.

    With `time_range`, each year also counts the 10 m sections inspected inside
    the year/quarter/month window of that year containing `anchor_month`.
    """
    assoc = associator or DistressAssociator()
    rows = []
    for dataset in datasets:
        scores = np.array([s.condition for s in dataset.sub_sections], dtype=np.float64)
        mean = float(scores.mean()) if scores.size else float("nan")
        associations = assoc.associations(dataset, True)
        inspected = None
        if time_range is not None:
            start, end = window_for(time_range, date(dataset.year, anchor_month, 1))
            inspected = len(
                filter_by_window(dataset.sub_sections, start, end, lambda s: s.last_inspected)
            )
        rows.append(
            {
                "year": dataset.year,
                "super_sections": len(dataset.super_sections),
                "sub_sections": len(dataset.sub_sections),
                "distress_points": len(dataset.distress_points),
                "mean_condition": round(mean, 2) if scores.size else None,
                "min_condition": float(scores.min()) if scores.size else None,
                "max_condition": float(scores.max()) if scores.size else None,
                "network_label": condition_label(mean),
                "network_color": color_for(mean),
                "matched_distress": sum(1 for a in associations.values() if a.matched),
                "total_length_km": round(
                    sum(s.total_length_km for s in dataset.super_sections), 1
                ),
                "inspected_in_window": inspected,
            }
        )
    return pd.DataFrame(rows, columns=SUMMARY_COLUMNS)
