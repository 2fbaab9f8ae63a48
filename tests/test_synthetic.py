from __future__ import annotations

from datetime import date

import pytest

from pci_dashboard.association import DistressAssociator
from pci_dashboard.models import (
    CORE_DISTRESS_TYPES,
    DatasetError,
    DistressPoint,
    DistressType,
    SubSection,
    SuperSection,
    YearDataset,
)
from pci_dashboard.synthetic import DatasetCatalog, SyntheticNetworkGenerator, interpolate


def test_generated_network_shape() -> None:
    dataset = SyntheticNetworkGenerator(seed=42).generate(2025)
    assert len(dataset.super_sections) == 11
    # 5 coordinates per route -> 4 spans of 10 sections each.
    assert len(dataset.sub_sections) == 11 * 4 * 10
    assert len(dataset.distress_points) == len(dataset.sub_sections) * 3
    names = {s.name for s in dataset.super_sections}
    assert "East-West Highway 1" in names
    assert "North-South Route 5" in names
    assert "Diagonal Express 1" in names
    diagonal = dataset.super_section("super-d-1")
    assert diagonal is not None and diagonal.category == "airport"


def test_generation_is_deterministic_per_seed_and_year() -> None:
    first = SyntheticNetworkGenerator(seed=7).generate(2024)
    second = SyntheticNetworkGenerator(seed=7).generate(2024)
    other_year = SyntheticNetworkGenerator(seed=7).generate(2023)
    assert first == second
    assert [s.condition for s in first.sub_sections] != [
        s.condition for s in other_year.sub_sections
    ]


def test_generated_invariants_hold() -> None:
    dataset = SyntheticNetworkGenerator(seed=42).generate(2023)
    for section in dataset.super_sections:
        children = dataset.children_of(section.id)
        assert children
        assert children[0].coordinates[0] == pytest.approx(section.coordinates[0])
        assert children[-1].coordinates[1] == pytest.approx(section.coordinates[-1])
        assert section.last_inspected is not None and section.last_inspected.year == 2023
    for sub in dataset.sub_sections:
        assert 0 <= sub.condition <= 100
        assert sub.video_url is not None and sub.video_url.endswith(".mp4")
    for point in dataset.distress_points:
        assert 1 <= point.severity <= 5
        assert point.distress_type in CORE_DISTRESS_TYPES


def test_generated_distress_sits_between_endpoints_and_uses_default_condition() -> None:
    dataset = SyntheticNetworkGenerator(seed=42).generate(2025)
    associations = DistressAssociator().associations(dataset, True)
    assert all(not item.matched for item in associations.values())
    assert {item.condition for item in associations.values()} == {50.0}


def test_extended_taxonomy_is_opt_in() -> None:
    generator = SyntheticNetworkGenerator(seed=1, extended_taxonomy=True)
    assert DistressType.ALLIGATOR_CRACKING in generator.distress_types
    assert DistressType.ALLIGATOR_CRACKING.label == "Alligator cracking"


def test_interpolate_includes_both_ends() -> None:
    points = interpolate((0.0, 0.0), (1.0, 2.0), 4)
    assert len(points) == 5
    assert points[0] == (0.0, 0.0)
    assert points[-1] == (1.0, 2.0)


def test_generator_rejects_degenerate_grid() -> None:
    with pytest.raises(ValueError):
        SyntheticNetworkGenerator(grid_size=1)
    with pytest.raises(ValueError):
        SyntheticNetworkGenerator(spacing_deg=0)


def test_catalog_generates_lazily_and_caches(synthetic_catalog: DatasetCatalog) -> None:
    assert 2024 in synthetic_catalog
    assert 2019 not in synthetic_catalog
    first = synthetic_catalog.get(2024)
    assert synthetic_catalog.get(2024) is first
    with pytest.raises(ValueError, match="Unknown year"):
        synthetic_catalog.get(2019)


def test_catalog_register_extends_years(line_dataset: YearDataset) -> None:
    catalog = DatasetCatalog(years=(2023,))
    catalog.register(line_dataset)
    assert catalog.years == (2023, 2025)
    assert catalog.get(2025) is line_dataset


def test_model_constructors_validate_and_clamp() -> None:
    section = SuperSection.create("s", "S", [(0, 0), (0, 1)], 140, 1.0, 10, None)
    assert section.condition == 100.0
    assert section.kind == "super_section"
    assert SubSection.create("x", "s", [(0, 0), (0, 1)], -3, None).condition == 0.0
    with pytest.raises(DatasetError):
        SuperSection.create("s", "S", [(0, 0)], 50, 1.0, 10, None)
    with pytest.raises(DatasetError):
        SubSection.create("x", "s", [(0, 0), (0, 1), (0, 2)], 50, None)
    with pytest.raises(DatasetError):
        DistressPoint.create("d", (0, 0), "pothole", 6, 1.0, None)
    with pytest.raises(ValueError):
        DistressPoint.create("d", (0, 0), "sinkhole", 3, 1.0, None)


def test_dataset_validate_rejects_broken_structure() -> None:
    parent = SuperSection.create("s", "S", [(0, 0), (0, 2)], 50, 1.0, 10, None)
    orphan = SubSection.create("x", "missing", [(0, 0), (0, 1)], 50, None)
    with pytest.raises(DatasetError, match="unknown parent"):
        YearDataset(2025, (parent,), (orphan,), ()).validate()

    first = SubSection.create("a", "s", [(0, 0), (0, 1)], 50, None)
    gap = SubSection.create("b", "s", [(0, 1.5), (0, 2)], 50, None)
    with pytest.raises(DatasetError, match="does not continue"):
        YearDataset(2025, (parent,), (first, gap), ()).validate()

    with pytest.raises(DatasetError, match="Duplicate"):
        YearDataset(2025, (parent, parent), (), ()).validate()


def test_dataset_features_are_tagged(line_dataset: YearDataset) -> None:
    kinds = [feature.kind for feature in line_dataset.features()]
    assert kinds == ["super_section", "sub_section", "sub_section", "distress_point", "distress_point"]
    assert line_dataset.key == 2025
    assert line_dataset.super_sections[0].last_inspected == date(2025, 3, 1)
