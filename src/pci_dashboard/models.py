from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Literal, Union

import numpy as np


Coordinate = tuple[float, float]

MIN_CONDITION = 0.0
MAX_CONDITION = 100.0
ENDPOINT_TOLERANCE_DEG = 1e-9

CATEGORY_HIGHWAY = "highway"
CATEGORY_AIRPORT = "airport"


class DatasetError(ValueError):
    """Raised when a year dataset breaks a structural invariant."""


class DistressType(str, Enum):
    POTHOLE = "pothole"
    CRACK = "crack"
    RUTTING = "rutting"
    RAVELING = "raveling"
    BLEEDING = "bleeding"
    PATCHING = "patching"
    EDGE_CRACKING = "edge_cracking"
    # Extended taxonomy for richer survey datasets.
    ALLIGATOR_CRACKING = "alligator_cracking"
    LONGITUDINAL_CRACKING = "longitudinal_cracking"
    TRANSVERSE_CRACKING = "transverse_cracking"
    BLOCK_CRACKING = "block_cracking"
    SHOVING = "shoving"
    DEPRESSION = "depression"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").capitalize()


CORE_DISTRESS_TYPES: tuple[DistressType, ...] = (
    DistressType.POTHOLE,
    DistressType.CRACK,
    DistressType.RUTTING,
    DistressType.RAVELING,
    DistressType.BLEEDING,
    DistressType.PATCHING,
    DistressType.EDGE_CRACKING,
)


def clamp_score(score: float) -> float:
    """Clamp a condition score into [0, 100]; NaN collapses to 0."""
    value = float(score)
    if math.isnan(value):
        return MIN_CONDITION
    return float(np.clip(value, MIN_CONDITION, MAX_CONDITION))


def _coords(points: object) -> tuple[Coordinate, ...]:
    return tuple((float(lat), float(lng)) for lat, lng in points)  # type: ignore[union-attr]


@dataclass(frozen=True)
class SuperSection:
    id: str
    name: str
    coordinates: tuple[Coordinate, ...]
    condition: float
    total_length_km: float
    traffic_volume: int
    last_inspected: date | None
    category: str = CATEGORY_HIGHWAY
    kind: Literal["super_section"] = field(default="super_section", init=False)

    @classmethod
    def create(
        cls,
        id: str,
        name: str,
        coordinates: object,
        condition: float,
        total_length_km: float,
        traffic_volume: int,
        last_inspected: date | None,
        category: str = CATEGORY_HIGHWAY,
    ) -> SuperSection:
        coords = _coords(coordinates)
        if len(coords) < 2:
            raise DatasetError(f"Super-section '{id}' needs at least 2 coordinates.")
        return cls(
            id=id,
            name=name,
            coordinates=coords,
            condition=clamp_score(condition),
            total_length_km=float(total_length_km),
            traffic_volume=int(traffic_volume),
            last_inspected=last_inspected,
            category=category,
        )


@dataclass(frozen=True)
class SubSection:
    id: str
    parent_id: str
    coordinates: tuple[Coordinate, Coordinate]
    condition: float
    last_inspected: date | None
    category: str = CATEGORY_HIGHWAY
    video_url: str | None = None
    kind: Literal["sub_section"] = field(default="sub_section", init=False)

    @classmethod
    def create(
        cls,
        id: str,
        parent_id: str,
        coordinates: object,
        condition: float,
        last_inspected: date | None,
        category: str = CATEGORY_HIGHWAY,
        video_url: str | None = None,
    ) -> SubSection:
        coords = _coords(coordinates)
        if len(coords) != 2:
            raise DatasetError(f"Sub-section '{id}' must have exactly 2 endpoints.")
        return cls(
            id=id,
            parent_id=parent_id,
            coordinates=(coords[0], coords[1]),
            condition=clamp_score(condition),
            last_inspected=last_inspected,
            category=category,
            video_url=video_url,
        )


@dataclass(frozen=True)
class DistressPoint:
    id: str
    position: Coordinate
    distress_type: DistressType
    severity: int
    size: float
    date_reported: date | None
    kind: Literal["distress_point"] = field(default="distress_point", init=False)

    @classmethod
    def create(
        cls,
        id: str,
        position: Coordinate,
        distress_type: DistressType | str,
        severity: int,
        size: float,
        date_reported: date | None,
    ) -> DistressPoint:
        level = int(severity)
        if not 1 <= level <= 5:
            raise DatasetError(f"Distress point '{id}' severity must be 1-5, got {severity}.")
        lat, lng = position
        return cls(
            id=id,
            position=(float(lat), float(lng)),
            distress_type=DistressType(distress_type),
            severity=level,
            size=float(size),
            date_reported=date_reported,
        )


Feature = Union[SuperSection, SubSection, DistressPoint]


@dataclass(frozen=True)
class YearDataset:
    """All geometry for one calendar year. Swapped wholesale, never mutated."""

    year: int
    super_sections: tuple[SuperSection, ...]
    sub_sections: tuple[SubSection, ...]
    distress_points: tuple[DistressPoint, ...]

    @property
    def key(self) -> int:
        return self.year

    def super_section(self, section_id: str) -> SuperSection | None:
        for section in self.super_sections:
            if section.id == section_id:
                return section
        return None

    def children_of(self, parent_id: str) -> tuple[SubSection, ...]:
        return tuple(sub for sub in self.sub_sections if sub.parent_id == parent_id)

    def features(self) -> tuple[Feature, ...]:
        return (*self.super_sections, *self.sub_sections, *self.distress_points)

    def validate(self) -> YearDataset:
        parent_ids = {section.id for section in self.super_sections}
        if len(parent_ids) != len(self.super_sections):
            raise DatasetError(f"Duplicate super-section ids in {self.year} dataset.")

        last_end: dict[str, Coordinate] = {}
        for sub in self.sub_sections:
            if sub.parent_id not in parent_ids:
                raise DatasetError(
                    f"Sub-section '{sub.id}' references unknown parent '{sub.parent_id}'."
                )
            previous = last_end.get(sub.parent_id)
            if previous is not None and not _same_point(previous, sub.coordinates[0]):
                raise DatasetError(
                    f"Sub-section '{sub.id}' does not continue the path of '{sub.parent_id}'."
                )
            last_end[sub.parent_id] = sub.coordinates[1]

        for feature in (*self.super_sections, *self.sub_sections):
            if not MIN_CONDITION <= feature.condition <= MAX_CONDITION:
                raise DatasetError(f"Condition out of range on '{feature.id}'.")
        return self


@dataclass(frozen=True)
class ViewportState:
    center: Coordinate
    zoom: int


def _same_point(a: Coordinate, b: Coordinate, tol: float = ENDPOINT_TOLERANCE_DEG) -> bool:
    return abs(a[0] - b[0]) <= tol and abs(a[1] - b[1]) <= tol
