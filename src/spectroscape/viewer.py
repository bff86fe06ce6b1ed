"""Matplotlib host for a running :class:`SpectrogramPipeline`."""

from __future__ import annotations

import logging
from typing import List, Optional

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.collections import PolyCollection
from matplotlib.patches import PathPatch
from matplotlib.path import Path as MplPath

from spectroscape.backends.contour import ContourPath, ContourRibbonBackend
from spectroscape.backends.heightfield import HeightFieldBackend
from spectroscape.colormap import contour_hsla, hsla_to_rgba
from spectroscape.gate import MatplotlibEventSource
from spectroscape.pipeline import SpectrogramPipeline

logger = logging.getLogger(__name__)

_RIM_COLOUR = (0.85, 0.95, 0.9, 0.55)
_AXIS_COLOUR = (0.8, 0.85, 0.8, 0.8)


def bezier_path(path: ContourPath) -> MplPath:
    """Cubic Bézier ``matplotlib`` path through a contour's points."""

    points = np.asarray(path.points, dtype=np.float64)
    if len(points) == 0:
        return MplPath(np.zeros((0, 2)))
    vertices = [points[0]]
    codes = [MplPath.MOVETO]
    for cp1, cp2, end in path.segments:
        vertices.extend([cp1, cp2, end])
        codes.extend([MplPath.CURVE4] * 3)
    if path.closed:
        vertices.append(points[0])
        codes.append(MplPath.CLOSEPOLY)
    return MplPath(np.asarray(vertices), codes)


class SpectrogramViewer:
    """Interactive window drawing one back-end.

    Mouse clicks and key presses on the canvas unlock audio output. Keys:
    ``m`` toggles mute, ``q``/``escape`` closes the window.
    """

    def __init__(self, pipeline: SpectrogramPipeline) -> None:
        self.pipeline = pipeline
        cfg = pipeline.config
        dpi = 100.0
        self.fig = plt.figure(figsize=(cfg.width / dpi, cfg.height / dpi), dpi=dpi)
        self.fig.patch.set_facecolor("black")
        self.ax = self.fig.add_axes([0.0, 0.0, 1.0, 1.0])
        self.ax.set_axis_off()
        self._set_limits(cfg.width, cfg.height)
        self._artists: List = []
        self._label_artists: List = []
        self.mesh_collection: Optional[PolyCollection] = None
        self._timer = None

        canvas = self.fig.canvas
        # key handler first: it must see the engine before the gate resumes it
        canvas.mpl_connect("key_press_event", self.on_key)
        pipeline.gate.attach(MatplotlibEventSource(canvas))
        canvas.mpl_connect("resize_event", self.on_resize)
        canvas.mpl_connect("close_event", self.on_close)
        self._update_title()

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------
    def _set_limits(self, width: int, height: int) -> None:
        self.ax.set_xlim(0, width)
        # pixel space grows downwards
        self.ax.set_ylim(height, 0)

    def _update_title(self) -> None:
        manager = getattr(self.fig.canvas, "manager", None)
        if manager is None:
            return
        state = self.pipeline.gate.state.value
        muted = " (muted)" if self.pipeline.engine.muted else ""
        name = self.pipeline.backend.name
        manager.set_window_title(f"spectroscape | {name} | audio {state}{muted}")

    def on_key(self, event) -> None:
        if event.key in ("q", "escape"):
            plt.close(self.fig)
        elif event.key == "m":
            self.pipeline.toggle_mute()
        self._update_title()

    def on_resize(self, event) -> None:
        width = max(1, int(event.width))
        height = max(1, int(event.height))
        self.pipeline.resize(width, height)
        self._set_limits(width, height)
        self._draw_labels()

    def on_close(self, _event) -> None:
        if self._timer is not None:
            self._timer.stop()
        self.pipeline.teardown()

    # ------------------------------------------------------------------
    # Drawing
    # ------------------------------------------------------------------
    def _clear(self, artists: List) -> None:
        for artist in artists:
            artist.remove()
        artists.clear()

    def _draw_labels(self) -> None:
        self._clear(self._label_artists)
        for label in self.pipeline.backend.labels:
            self._label_artists.append(
                self.ax.text(
                    label.x,
                    label.y,
                    label.text,
                    color="white",
                    fontsize=9,
                    # clockwise in pixel space, matplotlib is counter-clockwise
                    rotation=-label.rotation,
                    rotation_mode="anchor",
                    ha="left" if label.anchor == "start" else "center",
                    va="center",
                )
            )

    def _draw_heightfield(self, backend: HeightFieldBackend) -> None:
        quads, colours = backend.faces()
        if self.mesh_collection is None:
            self.mesh_collection = PolyCollection(
                quads, facecolors=colours, edgecolors="none", antialiased=False
            )
            self.ax.add_collection(self.mesh_collection)
        else:
            self.mesh_collection.set_verts(quads)
            self.mesh_collection.set_facecolor(colours)

    def _draw_contours(self, backend: ContourRibbonBackend) -> None:
        self._clear(self._artists)
        for segment in backend.axes:
            (line,) = self.ax.plot(
                [segment.start[0], segment.end[0]],
                [segment.start[1], segment.end[1]],
                color=_AXIS_COLOUR,
                lw=0.8 if segment.kind.endswith("tick") else 1.2,
            )
            self._artists.append(line)
        # back layers first
        for surface in reversed(backend.surfaces):
            if surface.rim is not None:
                rim = PathPatch(
                    bezier_path(surface.rim),
                    facecolor=(0.05, 0.1, 0.08, 0.35),
                    edgecolor=_RIM_COLOUR,
                    lw=1.0,
                )
                self._artists.append(self.ax.add_patch(rim))
            for kind, paths in (
                ("time", surface.time_contours),
                ("freq", surface.freq_contours),
            ):
                for path in paths:
                    hsla = contour_hsla(path.intensity, surface.layer, kind)
                    rgba = hsla_to_rgba(hsla)
                    patch = PathPatch(
                        bezier_path(path), facecolor="none", edgecolor=rgba, lw=1.1
                    )
                    self._artists.append(self.ax.add_patch(patch))
            if surface.front_edge is not None:
                front = PathPatch(
                    bezier_path(surface.front_edge),
                    facecolor="none",
                    edgecolor=_RIM_COLOUR,
                    lw=1.4,
                )
                self._artists.append(self.ax.add_patch(front))

    def update_plot(self) -> None:
        backend = self.pipeline.backend
        if backend.released:
            return
        if isinstance(backend, HeightFieldBackend):
            self._draw_heightfield(backend)
        elif isinstance(backend, ContourRibbonBackend):
            self._draw_contours(backend)
        self.fig.canvas.draw_idle()

    def run(self) -> None:
        pipeline = self.pipeline
        interval_ms = max(1, int(round(pipeline.config.render_interval * 1000.0)))
        pipeline.start()
        self._draw_labels()
        try:

            def _on_timer(_):
                if pipeline.torn_down:
                    return
                pipeline.scheduler.run_due()
                self.update_plot()

            self._timer = self.fig.canvas.new_timer(interval=interval_ms)
            self._timer.add_callback(_on_timer, None)
            self._timer.start()
            plt.show()
        finally:
            pipeline.teardown()


__all__ = ["SpectrogramViewer", "bezier_path"]
