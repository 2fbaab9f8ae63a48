from __future__ import annotations

import math
from typing import Callable, Sequence

import numpy as np

from .logging_config import get_logger, log_event
from .models import Coordinate, YearDataset
from .tiers import VisibleLayers
from .viewport import CameraTarget, MapSurface


DEFAULT_FOLLOW_DURATION_MS = 500

_LOGGER = get_logger("pci_dashboard.sync")


def build_path(dataset: YearDataset, layers: VisibleLayers) -> tuple[Coordinate, ...]:
    """Concatenate the coordinates of whichever linear layer is finest on screen."""
    if layers.sections:
        return tuple(
            coord for section in dataset.sub_sections for coord in section.coordinates
        )
    return tuple(
        coord for section in dataset.super_sections for coord in section.coordinates
    )


def target_index(progress: float, length: int) -> int:
    if length <= 0:
        raise ValueError("Cannot map progress onto an empty path.")
    value = float(progress)
    if math.isnan(value) or value <= 0:
        return 0
    if math.isinf(value):
        return length - 1
    return min(int(math.floor((value / 100.0) * length)), length - 1)


def progress_for_time(time_sec: float, duration_sec: float | None) -> float | None:
    if duration_sec is None or not np.isfinite(duration_sec) or duration_sec <= 0:
        return None
    if not np.isfinite(time_sec):
        return None
    return float(np.clip(time_sec / duration_sec * 100.0, 0.0, 100.0))


def time_for_progress(progress: float, duration_sec: float | None) -> float | None:
    if duration_sec is None or not np.isfinite(duration_sec) or duration_sec <= 0:
        return None
    return float(np.clip(progress, 0.0, 100.0)) / 100.0 * duration_sec


class CameraFollower:
    """Latest-target-wins camera follow.

    `request` only records the target; `tick` hands the most recent one to
    the surface. Requests made between ticks coalesce, nothing is queued.
    """

    def __init__(
        self,
        surface: MapSurface | None = None,
        duration_ms: int = DEFAULT_FOLLOW_DURATION_MS,
    ) -> None:
        if duration_ms < 0:
            raise ValueError("duration_ms must be >= 0.")
        self.surface = surface
        self.duration_ms = int(duration_ms)
        self._target: CameraTarget | None = None
        self.coalesced = 0

    @property
    def target(self) -> CameraTarget | None:
        return self._target

    def request(self, center: Coordinate) -> None:
        if self._target is not None:
            self.coalesced += 1
        self._target = CameraTarget(center=center, zoom=None, animate=True)

    def cancel(self) -> None:
        self._target = None

    def tick(self) -> CameraTarget | None:
        target, self._target = self._target, None
        if target is not None and self.surface is not None:
            self.surface.set_view(target)
        return target


PositionListener = Callable[[Coordinate], None]


class PositionSyncEngine:
    def __init__(
        self,
        follower: CameraFollower | None = None,
        listeners: list[PositionListener] | None = None,
    ) -> None:
        self.follower = follower
        self._listeners: list[PositionListener] = list(listeners or [])
        self._path: tuple[Coordinate, ...] = ()
        self._progress = 0.0
        self._position: Coordinate | None = None
        self._index: int | None = None

    @property
    def path(self) -> tuple[Coordinate, ...]:
        return self._path

    @property
    def position(self) -> Coordinate | None:
        return self._position

    @property
    def index(self) -> int | None:
        return self._index

    @property
    def progress(self) -> float:
        return self._progress

    def subscribe(self, listener: PositionListener) -> None:
        self._listeners.append(listener)

    def set_path(self, path: Sequence[Coordinate]) -> Coordinate | None:
        new_path = tuple(path)
        was_empty = not self._path
        self._path = new_path
        log_event(_LOGGER, "debug", "path_rebuilt", points=len(new_path))
        if not new_path:
            # Keep the last marker; nothing new is emitted until a path exists.
            self._index = None
            return None
        if was_empty:
            # First usable path: initialise the marker at the path start.
            return self._emit(0)
        return self._emit(target_index(self._progress, len(new_path)))

    def on_progress(self, progress: float) -> Coordinate | None:
        value = float(progress)
        self._progress = 0.0 if math.isnan(value) else value
        if not self._path:
            return None
        return self._emit(target_index(self._progress, len(self._path)))

    def _emit(self, index: int) -> Coordinate | None:
        position = self._path[index]
        self._index = index
        if position == self._position:
            return None
        self._position = position
        for listener in list(self._listeners):
            listener(position)
        if self.follower is not None:
            self.follower.request(position)
        return position
