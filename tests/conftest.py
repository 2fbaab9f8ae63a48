from __future__ import annotations

import shutil
import uuid
from datetime import date
from pathlib import Path

import pytest

from pci_dashboard.dashboard import Dashboard, HeadlessMapSurface
from pci_dashboard.models import DistressPoint, SubSection, SuperSection, YearDataset
from pci_dashboard.synthetic import DatasetCatalog, SyntheticNetworkGenerator
from pci_dashboard.viewport import FrameQueue


@pytest.fixture
def tmp_path() -> Path:
    """Repo-local temporary dirs with explicit mkdir avoid host tmp ACL issues."""
    root = Path.cwd() / ".pytest-local"
    root.mkdir(parents=True, exist_ok=True)
    path = root / f"case-{uuid.uuid4().hex}"
    path.mkdir(parents=False, exist_ok=False)
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)


def make_line_dataset(year: int = 2025, conditions: tuple[float, float] = (15.0, 90.0)) -> YearDataset:
    """One super-section through three points, split into two 10 m sections."""
    a, b, c = (51.5, -0.1), (51.5, -0.09), (51.5, -0.08)
    return YearDataset(
        year=year,
        super_sections=(
            SuperSection.create(
                id="s1",
                name="Test Road",
                coordinates=[a, b, c],
                condition=50,
                total_length_km=2.0,
                traffic_volume=12_000,
                last_inspected=date(year, 3, 1),
            ),
        ),
        sub_sections=(
            SubSection.create("s1-0", "s1", [a, b], conditions[0], date(year, 3, 1)),
            SubSection.create("s1-1", "s1", [b, c], conditions[1], date(year, 6, 1)),
        ),
        distress_points=(
            DistressPoint.create("d-near-a", (51.50005, -0.09995), "pothole", 4, 30, date(year, 2, 1)),
            DistressPoint.create("d-far", (51.6, -0.2), "crack", 1, 50, None),
        ),
    ).validate()


@pytest.fixture
def line_dataset() -> YearDataset:
    return make_line_dataset()


@pytest.fixture
def line_catalog() -> DatasetCatalog:
    catalog = DatasetCatalog(years=(2024, 2025))
    catalog.register(make_line_dataset(2024, conditions=(70.0, 30.0)))
    catalog.register(make_line_dataset(2025))
    return catalog


@pytest.fixture
def synthetic_catalog() -> DatasetCatalog:
    return DatasetCatalog(years=(2023, 2024, 2025), generator=SyntheticNetworkGenerator(seed=42))


@pytest.fixture
def headless_dashboard(line_catalog: DatasetCatalog) -> Dashboard:
    surface = HeadlessMapSurface(center=(51.5, -0.09), zoom=10)
    dashboard = Dashboard(line_catalog, surface, scheduler=FrameQueue(), year=2025)
    surface.on_zoom = dashboard.on_zoom_changed
    return dashboard


@pytest.fixture
def dataset_factory():
    return make_line_dataset
