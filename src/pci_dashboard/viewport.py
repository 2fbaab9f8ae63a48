from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Callable, Hashable, Protocol

from .logging_config import get_logger, log_event
from .models import Coordinate, ViewportState


_LOGGER = get_logger("pci_dashboard.viewport")


@dataclass(frozen=True)
class CameraTarget:
    center: Coordinate
    zoom: int | None = None
    animate: bool = True


class MapSurface(Protocol):
    def get_viewport(self) -> ViewportState: ...

    def set_view(self, target: CameraTarget) -> None: ...


class FrameScheduler(Protocol):
    def call_next_frame(self, callback: Callable[[], None]) -> None: ...


class FrameQueue:
    """Frame scheduler for headless use: callbacks run on the next `run_frame`."""

    def __init__(self) -> None:
        self._pending: deque[Callable[[], None]] = deque()

    def __len__(self) -> int:
        return len(self._pending)

    def call_next_frame(self, callback: Callable[[], None]) -> None:
        self._pending.append(callback)

    def run_frame(self) -> int:
        # Callbacks scheduled while running belong to the following frame.
        batch = len(self._pending)
        for _ in range(batch):
            self._pending.popleft()()
        return batch


class ViewportContinuityController:
    def __init__(self, surface: MapSurface, scheduler: FrameScheduler) -> None:
        self.surface = surface
        self.scheduler = scheduler
        self._key: Hashable | None = None
        self._captured: ViewportState | None = None
        self._restore_scheduled = False
        self._restoring = False
        self._generation = 0

    @property
    def key(self) -> Hashable | None:
        return self._key

    @property
    def pending(self) -> ViewportState | None:
        return self._captured

    def is_programmatic_move(self) -> bool:
        return self._restoring

    def prime(self, key: Hashable) -> None:
        """Record the initial dataset key without capturing anything."""
        self._key = key

    def on_dataset_key(self, key: Hashable) -> bool:
        """Call before geometry for `key` is rendered. True when a swap started."""
        if key == self._key:
            return False

        previous = self._key
        self._key = key
        if previous is None:
            return False

        # A restore still in flight already holds the pre-swap viewport.
        if self._captured is None:
            self._captured = self.surface.get_viewport()
        self._generation += 1
        self._restore_scheduled = False
        log_event(
            _LOGGER,
            "debug",
            "viewport_captured",
            previous_key=previous,
            key=key,
            center=self._captured.center,
            zoom=self._captured.zoom,
        )
        return True

    def on_geometry_committed(self) -> None:
        if self._captured is None or self._restore_scheduled:
            return
        self._restore_scheduled = True
        generation = self._generation
        self.scheduler.call_next_frame(lambda: self._restore(generation))

    def cancel(self) -> None:
        """Drop a pending restore, e.g. when an explicit camera command wins."""
        self._captured = None
        self._restore_scheduled = False
        self._generation += 1

    def _restore(self, generation: int) -> None:
        if generation != self._generation or self._captured is None:
            return
        captured = self._captured
        self._captured = None
        self._restore_scheduled = False
        self._restoring = True
        try:
            self.surface.set_view(
                CameraTarget(center=captured.center, zoom=captured.zoom, animate=False)
            )
        finally:
            self._restoring = False
        log_event(
            _LOGGER,
            "debug",
            "viewport_restored",
            key=self._key,
            center=captured.center,
            zoom=captured.zoom,
        )
