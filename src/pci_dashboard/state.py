"""Immutable dashboard state and the pure reducers that advance it.

Every collaborator event (zoom, year, toggles, playback) is a reducer taking
the current `DashboardState` and returning a new one. Reducers never touch a
map surface or a dataset, so transitions can be exercised without rendering.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, replace

from .sync import progress_for_time
from .tiers import TierScheme, VisibleLayers, ZoomTier, layers_for_tier, tier_for_zoom


@dataclass(frozen=True)
class DashboardState:
    year: int
    zoom: float = 0.0
    tier: ZoomTier = ZoomTier.OVERVIEW
    scheme: TierScheme = TierScheme.THREE_TIER
    show_distress: bool = False
    show_video: bool = False
    show_images: bool = False
    playback_progress: float = 0.0
    playback_time: float = 0.0
    playback_duration: float | None = None
    seek_target: float | None = None

    @property
    def video_active(self) -> bool:
        return self.show_video

    @property
    def images_active(self) -> bool:
        return self.show_images


def initial_state(
    year: int,
    zoom: float = 0.0,
    scheme: TierScheme = TierScheme.THREE_TIER,
) -> DashboardState:
    return reduce_zoom(DashboardState(year=int(year), scheme=TierScheme(scheme)), zoom)


def reduce_zoom(state: DashboardState, zoom: float) -> DashboardState:
    value = float(zoom)
    tier = tier_for_zoom(value, state.scheme)
    if value == state.zoom and tier == state.tier:
        return state
    return replace(state, zoom=value, tier=tier)


def reduce_year(state: DashboardState, year: int) -> DashboardState:
    if int(year) == state.year:
        return state
    return replace(state, year=int(year))


def reduce_distress_toggle(state: DashboardState, enabled: bool) -> DashboardState:
    if bool(enabled) == state.show_distress:
        return state
    return replace(state, show_distress=bool(enabled))


def reduce_video_toggle(state: DashboardState, enabled: bool) -> DashboardState:
    if bool(enabled) == state.show_video:
        return state
    return replace(state, show_video=bool(enabled), seek_target=None)


def reduce_images_toggle(state: DashboardState, enabled: bool) -> DashboardState:
    if bool(enabled) == state.show_images:
        return state
    return replace(state, show_images=bool(enabled))


def reduce_duration(state: DashboardState, duration_sec: float) -> DashboardState:
    """Store the media duration and apply any seek recorded before it was known."""
    value = float(duration_sec)
    duration = value if math.isfinite(value) and value > 0 else None
    state = replace(state, playback_duration=duration)
    if state.seek_target is None or duration is None:
        return state
    return reduce_seek(state, state.seek_target)


def reduce_playback_progress(state: DashboardState, percent: float) -> DashboardState:
    value = float(percent)
    if math.isnan(value):
        value = 0.0
    value = min(max(value, 0.0), 100.0)
    playback_time = state.playback_time
    if state.playback_duration is not None:
        playback_time = value / 100.0 * state.playback_duration
    return replace(state, playback_progress=value, playback_time=playback_time)


def reduce_seek(state: DashboardState, time_sec: float) -> DashboardState:
    """Record a seek request; progress follows once the duration is known."""
    value = float(time_sec)
    if not math.isfinite(value):
        return state
    value = max(value, 0.0)
    if state.playback_duration is not None:
        value = min(value, state.playback_duration)
    progress = progress_for_time(value, state.playback_duration)
    return replace(
        state,
        seek_target=value,
        playback_time=value,
        playback_progress=state.playback_progress if progress is None else progress,
    )


def effective_layers(state: DashboardState) -> VisibleLayers:
    layers = layers_for_tier(state.tier)
    if state.show_distress and not layers.distress:
        return replace(layers, distress=True)
    return layers
