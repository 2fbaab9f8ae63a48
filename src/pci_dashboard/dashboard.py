from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Hashable

from .association import DEFAULT_CONDITION, DEFAULT_TOLERANCE_DEG, DistressAssociator
from .condition import color_for, condition_label, severity_condition
from .config import RuntimeConfig
from .logging_config import get_logger, log_event
from .models import Coordinate, ViewportState, YearDataset
from .state import (
    DashboardState,
    effective_layers,
    initial_state,
    reduce_distress_toggle,
    reduce_duration,
    reduce_images_toggle,
    reduce_playback_progress,
    reduce_seek,
    reduce_video_toggle,
    reduce_year,
    reduce_zoom,
)
from .sync import (
    DEFAULT_FOLLOW_DURATION_MS,
    CameraFollower,
    PositionSyncEngine,
    build_path,
)
from .synthetic import DatasetCatalog, SyntheticNetworkGenerator
from .tiers import TierScheme, VisibleLayers, ZoomTier, ZoomTierResolver
from .viewport import (
    CameraTarget,
    FrameQueue,
    FrameScheduler,
    MapSurface,
    ViewportContinuityController,
)


_LOGGER = get_logger("pci_dashboard.dashboard")


class HeadlessMapSurface:
    """In-memory map surface: applies camera commands and reports zoom changes."""

    def __init__(
        self,
        center: Coordinate,
        zoom: int,
        on_zoom: Callable[[int], None] | None = None,
    ) -> None:
        self.viewport = ViewportState(center=center, zoom=int(zoom))
        self.commands: list[CameraTarget] = []
        self.on_zoom = on_zoom

    def get_viewport(self) -> ViewportState:
        return self.viewport

    def set_view(self, target: CameraTarget) -> None:
        self.commands.append(target)
        zoom = self.viewport.zoom if target.zoom is None else int(target.zoom)
        changed = zoom != self.viewport.zoom
        self.viewport = ViewportState(center=target.center, zoom=zoom)
        if changed and self.on_zoom is not None:
            self.on_zoom(zoom)

    def pan(self, center: Coordinate) -> None:
        self.viewport = ViewportState(center=center, zoom=self.viewport.zoom)

    def zoom_to(self, zoom: int) -> None:
        self.set_view(CameraTarget(center=self.viewport.center, zoom=zoom, animate=True))


@dataclass(frozen=True)
class DashboardOutputs:
    visible_layers: VisibleLayers
    tier: ZoomTier
    tracked_position: Coordinate | None
    camera_target: CameraTarget | None


@dataclass
class RenderFrame:
    year: int
    tier: ZoomTier
    layers: VisibleLayers
    super_sections: list[dict[str, Any]] = field(default_factory=list)
    sections: list[dict[str, Any]] = field(default_factory=list)
    distress: list[dict[str, Any]] = field(default_factory=list)
    tracked_position: Coordinate | None = None


class Dashboard:
    """Event-driven core: collaborators call the `on_*` handlers, renderers
    read `outputs()` and `render_frame()`.
    """

    def __init__(
        self,
        catalog: DatasetCatalog,
        surface: MapSurface,
        scheduler: FrameScheduler | None = None,
        year: int | None = None,
        scheme: TierScheme = TierScheme.THREE_TIER,
        association_tolerance: float = DEFAULT_TOLERANCE_DEG,
        default_condition: float = DEFAULT_CONDITION,
        follow_duration_ms: int = DEFAULT_FOLLOW_DURATION_MS,
        on_tier_changed: Callable[[int], None] | None = None,
    ) -> None:
        self.catalog = catalog
        self.surface = surface
        self.scheduler = scheduler if scheduler is not None else FrameQueue()
        start_year = catalog.years[-1] if year is None else int(year)
        if start_year not in catalog:
            raise ValueError(f"Unknown year {year}. Available: {list(catalog.years)}")

        self.resolver = ZoomTierResolver(scheme)
        if on_tier_changed is not None:
            self.resolver.subscribe(on_tier_changed)
        self.continuity = ViewportContinuityController(surface, self.scheduler)
        self.follower = CameraFollower(surface, duration_ms=follow_duration_ms)
        self.engine = PositionSyncEngine(self.follower)
        self.associator = DistressAssociator(association_tolerance, default_condition)

        zoom = surface.get_viewport().zoom
        self._state = initial_state(start_year, zoom, scheme)
        self.resolver.on_zoom_changed(zoom)
        self.continuity.prime(start_year)
        self._path_key: Hashable | None = None
        self._last_camera: CameraTarget | None = None

    @classmethod
    def from_config(
        cls,
        config: RuntimeConfig,
        surface: MapSurface | None = None,
        scheduler: FrameScheduler | None = None,
        on_tier_changed: Callable[[int], None] | None = None,
    ) -> Dashboard:
        catalog = DatasetCatalog(config.years, SyntheticNetworkGenerator(seed=config.seed))
        if surface is None:
            surface = HeadlessMapSurface(config.initial_center, config.initial_zoom)
        dashboard = cls(
            catalog,
            surface,
            scheduler=scheduler,
            year=config.default_year,
            scheme=config.scheme,
            association_tolerance=config.association_tolerance_deg,
            default_condition=config.default_condition,
            follow_duration_ms=config.follow_duration_ms,
            on_tier_changed=on_tier_changed,
        )
        if isinstance(surface, HeadlessMapSurface) and surface.on_zoom is None:
            surface.on_zoom = dashboard.on_zoom_changed
        return dashboard

    # ── State access ──────────────────────────────────────────────────────

    @property
    def state(self) -> DashboardState:
        return self._state

    @property
    def dataset(self) -> YearDataset:
        return self.catalog.get(self._state.year)

    @property
    def visible_layers(self) -> VisibleLayers:
        return effective_layers(self._state)

    def outputs(self) -> DashboardOutputs:
        return DashboardOutputs(
            visible_layers=self.visible_layers,
            tier=self._state.tier,
            tracked_position=self.engine.position if self._state.video_active else None,
            camera_target=self.follower.target or self._last_camera,
        )

    # ── Collaborator inputs ───────────────────────────────────────────────

    def on_zoom_changed(self, zoom: float) -> None:
        self._state = reduce_zoom(self._state, zoom)
        self.resolver.on_zoom_changed(zoom)
        self._sync_path()

    def on_year_selected(self, year: int) -> None:
        if int(year) not in self.catalog:
            raise ValueError(f"Unknown year {year}. Available: {list(self.catalog.years)}")
        new_state = reduce_year(self._state, year)
        if new_state is self._state:
            return
        # Capture the camera before any geometry for the new year is built.
        self.continuity.on_dataset_key(new_state.year)
        self._state = new_state
        dataset = self.dataset
        self._sync_path()
        self.continuity.on_geometry_committed()
        log_event(
            _LOGGER,
            "info",
            "year_selected",
            year=dataset.year,
            super_sections=len(dataset.super_sections),
            sub_sections=len(dataset.sub_sections),
        )

    def on_distress_toggle(self, enabled: bool) -> None:
        self._state = reduce_distress_toggle(self._state, enabled)

    def on_video_toggle(self, enabled: bool) -> None:
        self._state = reduce_video_toggle(self._state, enabled)
        self._sync_path()

    def on_images_toggle(self, enabled: bool) -> None:
        self._state = reduce_images_toggle(self._state, enabled)

    def on_duration_known(self, duration_sec: float) -> None:
        self._state = reduce_duration(self._state, duration_sec)
        if self._state.video_active and self._state.seek_target is not None:
            self.engine.on_progress(self._state.playback_progress)

    def on_playback_progress(self, percent: float) -> Coordinate | None:
        self._state = reduce_playback_progress(self._state, percent)
        if not self._state.video_active:
            return None
        return self.engine.on_progress(self._state.playback_progress)

    def on_seek_request(self, time_sec: float) -> float | None:
        """Returns the time the media element should jump to, if any."""
        self._state = reduce_seek(self._state, time_sec)
        if self._state.seek_target is None:
            return None
        if self._state.video_active and self._state.playback_duration is not None:
            self.engine.on_progress(self._state.playback_progress)
        return self._state.seek_target

    def on_frame(self) -> CameraTarget | None:
        """Advance one rendering frame: deferred restores, then camera follow."""
        run_frame = getattr(self.scheduler, "run_frame", None)
        if run_frame is not None:
            run_frame()
        target = self.follower.tick()
        if target is not None:
            self._last_camera = target
        return target

    def set_camera(self, center: Coordinate, zoom: int | None = None, animate: bool = True) -> None:
        """Explicit camera command; supersedes pending restores and follows."""
        self.continuity.cancel()
        self.follower.cancel()
        target = CameraTarget(center=center, zoom=zoom, animate=animate)
        self._last_camera = target
        self.surface.set_view(target)

    # ── Rendering ─────────────────────────────────────────────────────────

    def render_frame(self) -> RenderFrame:
        dataset = self.dataset
        layers = self.visible_layers
        frame = RenderFrame(year=dataset.year, tier=self._state.tier, layers=layers)
        if layers.super_sections:
            frame.super_sections = [
                {
                    "id": section.id,
                    "name": section.name,
                    "coordinates": [list(c) for c in section.coordinates],
                    "condition": section.condition,
                    "label": condition_label(section.condition),
                    "color": color_for(section.condition),
                    "length_km": round(section.total_length_km, 1),
                    "traffic_volume": section.traffic_volume,
                    "last_inspected": _iso(section.last_inspected),
                    "category": section.category,
                }
                for section in dataset.super_sections
            ]
        if layers.sections:
            frame.sections = [
                {
                    "id": section.id,
                    "parent_id": section.parent_id,
                    "coordinates": [list(c) for c in section.coordinates],
                    "condition": section.condition,
                    "color": color_for(section.condition),
                    "last_inspected": _iso(section.last_inspected),
                }
                for section in dataset.sub_sections
            ]
        if layers.distress:
            associations = self.associator.associations(dataset, True)
            frame.distress = []
            for point in dataset.distress_points:
                association = associations[point.id]
                frame.distress.append(
                    {
                        "id": point.id,
                        "position": list(point.position),
                        "type": point.distress_type.value,
                        "type_label": point.distress_type.label,
                        "severity": point.severity,
                        "size": point.size,
                        "date_reported": _iso(point.date_reported),
                        "section_id": association.section_id,
                        "condition": association.condition,
                        "fill_color": color_for(association.condition),
                        "color": color_for(severity_condition(point.severity)),
                    }
                )
        else:
            self.associator.associations(dataset, False)
        frame.tracked_position = self.outputs().tracked_position
        return frame

    # ── Internals ─────────────────────────────────────────────────────────

    def _sync_path(self) -> None:
        if not self._state.video_active:
            return
        layers = self.visible_layers
        key = (self._state.year, layers.sections)
        if key != self._path_key:
            self._path_key = key
            self.engine.set_path(build_path(self.dataset, layers))
        # Progress may have moved while video was off.
        self.engine.on_progress(self._state.playback_progress)


def _iso(value: object) -> str | None:
    return None if value is None else value.isoformat()  # type: ignore[attr-defined]
