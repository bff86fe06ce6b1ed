"""Isometric contour ribbons built from depth layers of the history."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np

from spectroscape.backends.base import RenderBackend
from spectroscape.blend import LayerBlender
from spectroscape.colormap import contour_hsla, hsla_css
from spectroscape.curves import catmull_rom_segments, svg_path
from spectroscape.history import SpectrogramHistory
from spectroscape.projection import (
    AxisLabel,
    IsometricTransform,
    label_rotation,
    unit_direction,
)
from spectroscape.scheduler import FrameScheduler

FREQ_CONTOUR_RATIOS = (0.25, 0.5, 0.75)
TIME_CONTOUR_RATIOS = (0.3, 0.55, 0.8)
TICK_RATIOS = (0.25, 0.5, 0.75)
AMPLITUDE_TICKS = (0.3, 0.6, 0.85)


def _round_half_up(value: float) -> int:
    return int(np.floor(value + 0.5))


def contour_indices(ratios: Sequence[float], length: int) -> List[int]:
    """Distinct indices at fixed fractions of ``length - 1``, first-seen order."""

    if length <= 1:
        return []
    seen: List[int] = []
    for ratio in ratios:
        index = min(length - 1, max(0, _round_half_up(ratio * (length - 1))))
        if index not in seen:
            seen.append(index)
    return seen


def partition_layers(
    chronological: np.ndarray, layer_count: int, gamma: float = 0.85
) -> np.ndarray:
    """Split ``(time, freq)`` rows, oldest first, into ``layer_count`` matrices.

    All layers share one normalisation (the global maximum) and are then
    raised to ``gamma``. Rows that do not divide evenly are dropped from the
    oldest end.
    """

    rows, bins = chronological.shape
    per_layer = rows // layer_count
    if per_layer == 0:
        return np.zeros((layer_count, 0, bins), dtype=np.float64)
    usable = chronological[rows - per_layer * layer_count :]
    layers = np.asarray(usable, dtype=np.float64).reshape(layer_count, per_layer, bins)
    peak = float(layers.max()) if layers.size else 0.0
    normalizer = peak if peak > 0.0 else 1.0
    return np.power(np.clip(layers / normalizer, 0.0, 1.0), gamma)


@dataclass
class ContourPath:
    points: np.ndarray
    intensity: float = 0.0
    kind: str = "rim"
    closed: bool = False
    segments: np.ndarray = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.segments = catmull_rom_segments(self.points)

    def svg(self) -> str:
        return svg_path(self.points, close=self.closed)


@dataclass
class ProjectedSurface:
    layer: int
    rim: Optional[ContourPath]
    front_edge: Optional[ContourPath]
    time_contours: List[ContourPath]
    freq_contours: List[ContourPath]


@dataclass(frozen=True)
class AxisSegment:
    start: Tuple[float, float]
    end: Tuple[float, float]
    kind: str


class ContourRibbonBackend(RenderBackend):
    """Stack of smoothed iso-contour ribbons, one per depth layer.

    The window tick partitions the history into layers and hands them to a
    :class:`LayerBlender`; the render tick projects whatever the blender
    currently displays.
    """

    name = "contour"

    def __init__(
        self,
        scheduler: FrameScheduler,
        *,
        layer_count: int = 3,
        gamma: float = 0.85,
        blend_duration: float = 0.6,
        width: int = 520,
        height: int = 400,
    ) -> None:
        super().__init__(width, height)
        self.layer_count = int(layer_count)
        self.gamma = float(gamma)
        self.transform = IsometricTransform(width, height)
        self.blender = LayerBlender(scheduler, blend_duration)
        self.surfaces: List[ProjectedSurface] = []
        self.axes: List[AxisSegment] = []
        self.labels = self.place_axis_labels()

    @classmethod
    def from_config(cls, cfg, scheduler: FrameScheduler) -> "ContourRibbonBackend":
        return cls(
            scheduler,
            layer_count=cfg.layer_count,
            gamma=cfg.contour_gamma,
            blend_duration=cfg.blend_duration,
            width=cfg.width,
            height=cfg.height,
        )

    @property
    def wants_window_ticks(self) -> bool:
        return True

    # ------------------------------------------------------------------
    # Window and render ticks
    # ------------------------------------------------------------------
    def extract_layers(self, history: SpectrogramHistory) -> np.ndarray:
        return partition_layers(
            history.ordered(newest_first=False), self.layer_count, self.gamma
        )

    def advance_window(self, history: SpectrogramHistory, now: float) -> None:
        if self.released:
            return
        self.blender.retarget(self.extract_layers(history), now)

    def update(self, history: SpectrogramHistory, now: float) -> None:
        layers = self.blender.display
        if layers is None:
            self.surfaces = []
            return
        self.surfaces = self.compute_geometry(layers)

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------
    def _grid_points(self, surface: np.ndarray, layer: int) -> np.ndarray:
        """Projected ``(time, freq, 2)`` points of one layer."""

        times, freqs = surface.shape
        t = np.arange(times) / (times - 1 or 1)
        f = np.arange(freqs) / (freqs - 1 or 1)
        return self.transform.project(t[:, None], f[None, :], surface, layer)

    @staticmethod
    def rim_indices(times: int, freqs: int) -> List[Tuple[int, int]]:
        """Boundary walk of a ``times x freqs`` matrix as (time, freq) pairs."""

        if times == 1:
            return [(0, f) for f in range(freqs)]
        if freqs == 1:
            return [(t, 0) for t in range(times)]
        last_t, last_f = times - 1, freqs - 1
        walk = [(0, f) for f in range(freqs)]
        walk += [(t, last_f) for t in range(1, times)]
        walk += [(last_t, f) for f in range(last_f - 1, -1, -1)]
        walk += [(t, 0) for t in range(last_t - 1, 0, -1)]
        return walk

    def compute_geometry(self, layers) -> List[ProjectedSurface]:
        surfaces: List[ProjectedSurface] = []
        for layer, surface in enumerate(np.asarray(layers, dtype=np.float64)):
            if surface.ndim != 2 or surface.size == 0:
                surfaces.append(ProjectedSurface(layer, None, None, [], []))
                continue
            times, freqs = surface.shape
            grid = self._grid_points(surface, layer)

            walk = self.rim_indices(times, freqs)
            rim = ContourPath(
                np.array([grid[t, f] for t, f in walk]), kind="rim", closed=True
            )
            front = ContourPath(grid[:, 0].copy(), kind="front")

            time_contours = [
                ContourPath(
                    grid[:, f].copy(),
                    intensity=float(surface[:, f].max()),
                    kind="time",
                )
                for f in contour_indices(FREQ_CONTOUR_RATIOS, freqs)
            ]
            freq_contours = [
                ContourPath(
                    grid[t, :].copy(),
                    intensity=float(surface[t, :].max()),
                    kind="freq",
                )
                for t in contour_indices(TIME_CONTOUR_RATIOS, times)
            ]
            surfaces.append(
                ProjectedSurface(layer, rim, front, time_contours, freq_contours)
            )
        return surfaces

    def compute_color(self, surfaces: Sequence[ProjectedSurface]):
        """HSLA per contour, keyed by ``(layer, kind, index)``."""

        colours = {}
        for surface in surfaces:
            for kind, paths in (
                ("time", surface.time_contours),
                ("freq", surface.freq_contours),
            ):
                for index, path in enumerate(paths):
                    colours[(surface.layer, kind, index)] = contour_hsla(
                        path.intensity, surface.layer, kind
                    )
        return colours

    def to_svg_paths(self) -> List[dict]:
        """SVG path data and CSS stroke colours, one dict per layer."""

        colours = self.compute_color(self.surfaces)
        exported = []
        for surface in self.surfaces:
            strokes = {
                kind: [
                    hsla_css(colours[(surface.layer, kind, i)])
                    for i in range(len(paths))
                ]
                for kind, paths in (
                    ("time", surface.time_contours),
                    ("freq", surface.freq_contours),
                )
            }
            exported.append(
                {
                    "layer": surface.layer,
                    "rim": surface.rim.svg() if surface.rim else "",
                    "front_edge": (
                        surface.front_edge.svg() if surface.front_edge else ""
                    ),
                    "time_contours": [p.svg() for p in surface.time_contours],
                    "freq_contours": [p.svg() for p in surface.freq_contours],
                    "time_strokes": strokes["time"],
                    "freq_strokes": strokes["freq"],
                }
            )
        return exported

    # ------------------------------------------------------------------
    # Axes and labels
    # ------------------------------------------------------------------
    def _p(self, t: float, f: float, a: float) -> Tuple[float, float]:
        return self.transform.project_point(t, f, a, 0)

    def axis_segments(self) -> List[AxisSegment]:
        origin = self._p(0, 1, 0)
        segments = [
            AxisSegment(origin, self._p(1, 1, 0), "time"),
            AxisSegment(origin, self._p(0, 0, 0), "freq"),
            AxisSegment(origin, self._p(0, 1, 0.9), "amp"),
        ]
        segments += [
            AxisSegment(self._p(t, 1, 0), self._p(t, 1, 0.05), "time-tick")
            for t in TICK_RATIOS
        ]
        segments += [
            AxisSegment(self._p(0, 1 - f, 0), self._p(0, 1 - f, 0.05), "freq-tick")
            for f in TICK_RATIOS
        ]
        segments += [
            AxisSegment(self._p(0, 1, a), self._p(0.03, 0.97, a), "amp-tick")
            for a in AMPLITUDE_TICKS
        ]
        return segments

    def place_axis_labels(self) -> List[AxisLabel]:
        scale = self.transform.scale
        origin = self._p(0, 1, 0)
        time_end = self._p(1, 1, 0)
        freq_end = self._p(0, 0, 0)
        amp_end = self._p(0, 1, 0.9)
        amp_dir = unit_direction(origin, amp_end)
        freq_mid = ((origin[0] + freq_end[0]) / 2.0, (origin[1] + freq_end[1]) / 2.0)

        self.axes = self.axis_segments()
        return [
            AxisLabel(
                "Time",
                time_end[0] - 12 * scale,
                time_end[1] + 10 * scale,
                label_rotation(origin, time_end),
            ),
            AxisLabel(
                "Frequency",
                freq_mid[0] + amp_dir[0] * 72 * scale,
                freq_mid[1] + amp_dir[1] * 72 * scale,
                label_rotation(origin, freq_end),
            ),
            AxisLabel(
                "Amplitude",
                amp_end[0],
                amp_end[1] - 16 * scale,
                label_rotation(origin, amp_end, upright=True),
                anchor="start",
            ),
        ]

    def resize(self, width: int, height: int) -> None:
        self.transform.resize(width, height)
        super().resize(width, height)
        if self.blender.display is not None:
            self.surfaces = self.compute_geometry(self.blender.display)

    def release(self) -> None:
        if self.released:
            return
        self.blender.cancel()
        self.blender.display = None
        self.surfaces = []
        super().release()


__all__ = [
    "AxisSegment",
    "ContourPath",
    "ContourRibbonBackend",
    "ProjectedSurface",
    "contour_indices",
    "partition_layers",
]
