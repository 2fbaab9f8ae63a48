"""Distress point to sub-section association by coordinate proximity.

A distress point carries no condition score of its own. For coloring it
borrows the condition of the first sub-section that has an endpoint inside a
small tolerance box around the point. This is a coarse box test, not a true
nearest-neighbour search: the scan is linear over every sub-section for every
point, which is fine for datasets of a few hundred sections.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Hashable, Iterable, Sequence

from .logging_config import get_logger, log_event
from .models import DistressPoint, SubSection, YearDataset


DEFAULT_TOLERANCE_DEG = 1e-4
DEFAULT_CONDITION = 50.0

_LOGGER = get_logger("pci_dashboard.association")


@dataclass(frozen=True)
class Association:
    point_id: str
    section_id: str | None
    condition: float

    @property
    def matched(self) -> bool:
        return self.section_id is not None


def find_section(
    point: DistressPoint,
    sub_sections: Iterable[SubSection],
    tolerance: float = DEFAULT_TOLERANCE_DEG,
) -> SubSection | None:
    lat, lng = point.position
    for section in sub_sections:
        for s_lat, s_lng in section.coordinates:
            if abs(s_lat - lat) < tolerance and abs(s_lng - lng) < tolerance:
                return section
    return None


def associate_condition(
    point: DistressPoint,
    sub_sections: Sequence[SubSection],
    tolerance: float = DEFAULT_TOLERANCE_DEG,
    default: float = DEFAULT_CONDITION,
) -> Association:
    section = find_section(point, sub_sections, tolerance)
    if section is None:
        return Association(point_id=point.id, section_id=None, condition=float(default))
    return Association(point_id=point.id, section_id=section.id, condition=section.condition)


def associate_all(
    points: Iterable[DistressPoint],
    sub_sections: Sequence[SubSection],
    tolerance: float = DEFAULT_TOLERANCE_DEG,
    default: float = DEFAULT_CONDITION,
) -> dict[str, Association]:
    return {
        point.id: associate_condition(point, sub_sections, tolerance, default)
        for point in points
    }


class DistressAssociator:
    """Memoised association, recomputed only when the dataset or toggle changes."""

    def __init__(
        self,
        tolerance: float = DEFAULT_TOLERANCE_DEG,
        default_condition: float = DEFAULT_CONDITION,
    ) -> None:
        if tolerance <= 0:
            raise ValueError("tolerance must be > 0.")
        if not 0 <= default_condition <= 100:
            raise ValueError("default_condition must satisfy 0 <= value <= 100.")
        self.tolerance = float(tolerance)
        self.default_condition = float(default_condition)
        self._cache_key: tuple[Hashable, int] | None = None
        self._cache: dict[str, Association] = {}
        self.computations = 0

    def associations(self, dataset: YearDataset, enabled: bool) -> dict[str, Association]:
        if not enabled:
            self._cache_key = None
            self._cache = {}
            return {}
        key = (dataset.key, id(dataset.sub_sections))
        if key != self._cache_key:
            self._cache = associate_all(
                dataset.distress_points,
                dataset.sub_sections,
                self.tolerance,
                self.default_condition,
            )
            self._cache_key = key
            self.computations += 1
            unmatched = sum(1 for item in self._cache.values() if not item.matched)
            log_event(
                _LOGGER,
                "debug",
                "distress_associated",
                year=dataset.year,
                points=len(self._cache),
                unmatched=unmatched,
            )
        return self._cache

    def condition_for(self, dataset: YearDataset, point: DistressPoint) -> float:
        association = self.associations(dataset, True).get(point.id)
        if association is None:
            return self.default_condition
        return association.condition
