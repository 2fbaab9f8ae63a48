from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable

import numpy as np

from .logging_config import get_logger, log_event
from .models import (
    CATEGORY_AIRPORT,
    CATEGORY_HIGHWAY,
    CORE_DISTRESS_TYPES,
    Coordinate,
    DistressPoint,
    DistressType,
    SubSection,
    SuperSection,
    YearDataset,
)


DEFAULT_SEED = 42
DEFAULT_YEARS = (2023, 2024, 2025)
DEFAULT_ORIGIN: Coordinate = (51.5, -0.15)
DEFAULT_GRID_SIZE = 5
DEFAULT_GRID_SPACING_DEG = 0.01
DEFAULT_SUBSECTIONS_PER_SPAN = 10
DEFAULT_DISTRESS_PER_SUBSECTION = 3
VIDEO_URL_TEMPLATE = "https://example.com/videos/{parent}/section-{span}-{step}.mp4"

_LOGGER = get_logger("pci_dashboard.synthetic")


@dataclass(frozen=True)
class _Route:
    id: str
    name: str
    coordinates: tuple[Coordinate, ...]
    category: str


def _grid(origin: Coordinate, size: int, spacing: float) -> np.ndarray:
    rows, cols = np.meshgrid(np.arange(size), np.arange(size), indexing="ij")
    lat = origin[0] + rows * spacing
    lng = origin[1] + cols * spacing
    return np.stack([lat, lng], axis=-1)


def _as_coords(points: np.ndarray) -> tuple[Coordinate, ...]:
    return tuple((float(lat), float(lng)) for lat, lng in points)


def interpolate(start: Coordinate, end: Coordinate, steps: int) -> list[Coordinate]:
    """`steps + 1` evenly spaced points from start to end inclusive."""
    fractions = np.linspace(0.0, 1.0, steps + 1)
    lat = start[0] + (end[0] - start[0]) * fractions
    lng = start[1] + (end[1] - start[1]) * fractions
    return list(zip(lat.tolist(), lng.tolist()))


class SyntheticNetworkGenerator:
    """Deterministic stand-in for survey data: one full dataset per year."""

    def __init__(
        self,
        seed: int = DEFAULT_SEED,
        origin: Coordinate = DEFAULT_ORIGIN,
        grid_size: int = DEFAULT_GRID_SIZE,
        spacing_deg: float = DEFAULT_GRID_SPACING_DEG,
        subsections_per_span: int = DEFAULT_SUBSECTIONS_PER_SPAN,
        distress_per_subsection: int = DEFAULT_DISTRESS_PER_SUBSECTION,
        extended_taxonomy: bool = False,
    ) -> None:
        if grid_size < 2:
            raise ValueError("grid_size must be >= 2.")
        if spacing_deg <= 0:
            raise ValueError("spacing_deg must be > 0.")
        if subsections_per_span <= 0:
            raise ValueError("subsections_per_span must be > 0.")
        if distress_per_subsection < 0:
            raise ValueError("distress_per_subsection must be >= 0.")

        self.seed = int(seed)
        self.origin = (float(origin[0]), float(origin[1]))
        self.grid_size = int(grid_size)
        self.spacing_deg = float(spacing_deg)
        self.subsections_per_span = int(subsections_per_span)
        self.distress_per_subsection = int(distress_per_subsection)
        self.distress_types: tuple[DistressType, ...] = (
            tuple(DistressType) if extended_taxonomy else CORE_DISTRESS_TYPES
        )

    def routes(self) -> list[_Route]:
        grid = _grid(self.origin, self.grid_size, self.spacing_deg)
        routes: list[_Route] = []
        for i in range(self.grid_size):
            routes.append(
                _Route(
                    id=f"super-h-{i}",
                    name=f"East-West Highway {i + 1}",
                    coordinates=_as_coords(grid[i, :]),
                    category=CATEGORY_HIGHWAY,
                )
            )
        for i in range(self.grid_size):
            routes.append(
                _Route(
                    id=f"super-v-{i}",
                    name=f"North-South Route {i + 1}",
                    coordinates=_as_coords(grid[:, i]),
                    category=CATEGORY_HIGHWAY,
                )
            )
        diagonal = [
            (self.origin[0] + k * self.spacing_deg, self.origin[1] + k * self.spacing_deg)
            for k in range(self.grid_size)
        ]
        routes.append(
            _Route(
                id="super-d-1",
                name="Diagonal Express 1",
                coordinates=tuple(diagonal),
                category=CATEGORY_AIRPORT,
            )
        )
        return routes

    def generate(self, year: int) -> YearDataset:
        rng = np.random.default_rng(self.seed + int(year))
        super_sections: list[SuperSection] = []
        sub_sections: list[SubSection] = []
        distress_points: list[DistressPoint] = []

        for route in self.routes():
            children = self._sub_sections(route, year, rng)
            sub_sections.extend(children)
            for child in children:
                distress_points.extend(self._distress_points(child, year, rng))

            conditions = np.array([child.condition for child in children], dtype=np.float64)
            inspected = max(
                (child.last_inspected for child in children if child.last_inspected),
                default=None,
            )
            super_sections.append(
                SuperSection.create(
                    id=route.id,
                    name=route.name,
                    coordinates=route.coordinates,
                    condition=float(np.round(conditions.mean())) if conditions.size else 0.0,
                    total_length_km=float(rng.uniform(2.0, 7.0)),
                    traffic_volume=int(rng.integers(10_000, 60_000)),
                    last_inspected=inspected,
                    category=route.category,
                )
            )

        dataset = YearDataset(
            year=int(year),
            super_sections=tuple(super_sections),
            sub_sections=tuple(sub_sections),
            distress_points=tuple(distress_points),
        ).validate()
        log_event(
            _LOGGER,
            "debug",
            "dataset_generated",
            year=int(year),
            super_sections=len(super_sections),
            sub_sections=len(sub_sections),
            distress_points=len(distress_points),
        )
        return dataset

    def generate_all(self, years: Iterable[int] = DEFAULT_YEARS) -> dict[int, YearDataset]:
        return {int(year): self.generate(int(year)) for year in years}

    def _sub_sections(
        self, route: _Route, year: int, rng: np.random.Generator
    ) -> list[SubSection]:
        steps = self.subsections_per_span
        sections: list[SubSection] = []
        for span, (start, end) in enumerate(zip(route.coordinates, route.coordinates[1:])):
            points = interpolate(start, end, steps)
            for step in range(steps):
                sections.append(
                    SubSection.create(
                        id=f"{route.id}-section-{span}-{step}",
                        parent_id=route.id,
                        coordinates=(points[step], points[step + 1]),
                        condition=int(rng.integers(0, 100)),
                        last_inspected=_random_date(year, rng),
                        category=route.category,
                        video_url=VIDEO_URL_TEMPLATE.format(
                            parent=route.id, span=span, step=step
                        ),
                    )
                )
        return sections

    def _distress_points(
        self, section: SubSection, year: int, rng: np.random.Generator
    ) -> list[DistressPoint]:
        (lat0, lng0), (lat1, lng1) = section.coordinates
        count = self.distress_per_subsection
        points: list[DistressPoint] = []
        for i in range(count):
            fraction = (i + 1) / (count + 1)
            points.append(
                DistressPoint.create(
                    id=f"distress-{section.id}-{i}",
                    position=(
                        lat0 + (lat1 - lat0) * fraction,
                        lng0 + (lng1 - lng0) * fraction,
                    ),
                    distress_type=self.distress_types[
                        int(rng.integers(0, len(self.distress_types)))
                    ],
                    severity=int(rng.integers(1, 6)),
                    size=int(rng.integers(20, 120)),
                    date_reported=_random_date(year, rng),
                )
            )
        return points


def _random_date(year: int, rng: np.random.Generator) -> date:
    return date(int(year), int(rng.integers(1, 13)), int(rng.integers(1, 29)))


class DatasetCatalog:
    """Lazily generated, cached datasets for the selectable years."""

    def __init__(
        self,
        years: Iterable[int] = DEFAULT_YEARS,
        generator: SyntheticNetworkGenerator | None = None,
    ) -> None:
        self.years: tuple[int, ...] = tuple(sorted({int(year) for year in years}))
        if not self.years:
            raise ValueError("At least one year is required.")
        self.generator = generator or SyntheticNetworkGenerator()
        self._datasets: dict[int, YearDataset] = {}

    def __contains__(self, year: object) -> bool:
        return year in self.years

    def register(self, dataset: YearDataset) -> None:
        dataset.validate()
        if dataset.year not in self.years:
            self.years = tuple(sorted((*self.years, dataset.year)))
        self._datasets[dataset.year] = dataset

    def get(self, year: int) -> YearDataset:
        key = int(year)
        if key not in self.years:
            raise ValueError(f"Unknown year {year}. Available: {list(self.years)}")
        if key not in self._datasets:
            self._datasets[key] = self.generator.generate(key)
        return self._datasets[key]
