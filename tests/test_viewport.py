from __future__ import annotations

from pci_dashboard.dashboard import HeadlessMapSurface
from pci_dashboard.viewport import CameraTarget, FrameQueue, ViewportContinuityController


def _controller(zoom: int = 14) -> tuple[ViewportContinuityController, HeadlessMapSurface, FrameQueue]:
    surface = HeadlessMapSurface(center=(51.52, -0.13), zoom=zoom)
    queue = FrameQueue()
    controller = ViewportContinuityController(surface, queue)
    controller.prime(2025)
    return controller, surface, queue


def test_year_swap_restores_captured_viewport_after_one_frame() -> None:
    controller, surface, queue = _controller()

    assert controller.on_dataset_key(2023) is True
    # Renderer auto-fit to the new geometry.
    surface.set_view(CameraTarget(center=(0.0, 0.0), zoom=3))
    controller.on_geometry_committed()
    assert surface.viewport.zoom == 3

    assert queue.run_frame() == 1
    assert surface.viewport.center == (51.52, -0.13)
    assert surface.viewport.zoom == 14
    restore = surface.commands[-1]
    assert restore.animate is False


def test_unchanged_key_never_captures_or_restores() -> None:
    controller, surface, queue = _controller()
    assert controller.on_dataset_key(2025) is False
    controller.on_geometry_committed()
    assert len(queue) == 0
    assert surface.commands == []


def test_initial_key_does_not_restore() -> None:
    surface = HeadlessMapSurface(center=(51.52, -0.13), zoom=14)
    queue = FrameQueue()
    controller = ViewportContinuityController(surface, queue)
    assert controller.on_dataset_key(2025) is False
    controller.on_geometry_committed()
    assert len(queue) == 0


def test_rapid_swaps_restore_the_first_captured_viewport_once() -> None:
    controller, surface, queue = _controller()

    controller.on_dataset_key(2024)
    controller.on_geometry_committed()
    surface.set_view(CameraTarget(center=(1.0, 1.0), zoom=5))
    controller.on_dataset_key(2023)
    controller.on_geometry_committed()

    queue.run_frame()
    restores = [c for c in surface.commands if c.animate is False]
    assert len(restores) == 1
    assert surface.viewport.center == (51.52, -0.13)
    assert surface.viewport.zoom == 14


def test_cancel_drops_pending_restore() -> None:
    controller, surface, queue = _controller()
    controller.on_dataset_key(2024)
    controller.on_geometry_committed()
    controller.cancel()
    queue.run_frame()
    assert surface.commands == []
    assert controller.pending is None


def test_restore_is_flagged_as_programmatic() -> None:
    controller, surface, queue = _controller()
    seen: list[bool] = []
    surface.on_zoom = lambda _zoom: seen.append(controller.is_programmatic_move())

    controller.on_dataset_key(2024)
    surface.set_view(CameraTarget(center=(0.0, 0.0), zoom=4))
    controller.on_geometry_committed()
    queue.run_frame()

    assert seen == [False, True]
    assert controller.is_programmatic_move() is False


def test_frame_queue_defers_callbacks_scheduled_during_a_frame() -> None:
    queue = FrameQueue()
    calls: list[str] = []
    queue.call_next_frame(lambda: (calls.append("a"), queue.call_next_frame(lambda: calls.append("b"))))
    assert queue.run_frame() == 1
    assert calls == ["a"]
    assert queue.run_frame() == 1
    assert calls == ["a", "b"]
