"""Interface shared by the rendering back-ends."""

from __future__ import annotations

from typing import Any, List

from spectroscape.history import SpectrogramHistory
from spectroscape.projection import AxisLabel


class RenderBackend:
    """Turns the smoothed history into drawable geometry, colour and labels.

    ``update`` runs on every render tick. ``advance_window`` runs on the
    slower window tick; back-ends that animate between analysis windows
    override it. ``resize`` must recompute the projection and labels before
    the next draw. ``release`` is idempotent.
    """

    name = "backend"

    def __init__(self, width: int, height: int) -> None:
        self.width = int(width)
        self.height = int(height)
        self.labels: List[AxisLabel] = []
        self.released = False

    def compute_geometry(self, data) -> Any:  # pragma: no cover - interface method
        raise NotImplementedError

    def compute_color(self, data) -> Any:  # pragma: no cover - interface method
        raise NotImplementedError

    def place_axis_labels(self) -> List[AxisLabel]:  # pragma: no cover
        raise NotImplementedError

    def update(self, history: SpectrogramHistory, now: float) -> None:
        raise NotImplementedError

    def advance_window(self, history: SpectrogramHistory, now: float) -> None:
        """Hook for the window-advance tick; most back-ends ignore it."""

    @property
    def wants_window_ticks(self) -> bool:
        return False

    def resize(self, width: int, height: int) -> None:
        self.width = max(1, int(width))
        self.height = max(1, int(height))
        self.labels = self.place_axis_labels()

    def release(self) -> None:
        self.released = True


__all__ = ["RenderBackend"]
