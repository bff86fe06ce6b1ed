"""Shaded height-field surface seen through a fixed orthographic camera."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from spectroscape.backends.base import RenderBackend
from spectroscape.colormap import intensity_to_rgb, upsample
from spectroscape.history import SpectrogramHistory
from spectroscape.projection import AxisLabel, OrthographicCamera, label_rotation
from spectroscape.smoothing import apply_gamma


@dataclass
class HeightFieldMesh:
    """Vertex buffers of the ``history_length x bin_count`` grid."""

    world: np.ndarray
    screen: np.ndarray
    depth: np.ndarray

    @property
    def heights(self) -> np.ndarray:
        return self.world[..., 1]


class HeightFieldBackend(RenderBackend):
    """Height-field surface: rows are time (newest at the front edge), columns
    frequency (low at the left edge).

    Vertex height is ``pow(sample, height_gamma) * amplitude_scale -
    vertical_offset``. Colour is evaluated on an upsampled copy of the
    history image so it varies per pixel rather than per vertex.
    """

    name = "heightfield"

    def __init__(
        self,
        history_length: int,
        bin_count: int,
        *,
        amplitude_scale: float = 1.6,
        height_gamma: float = 1.2,
        vertical_offset: float = 0.4,
        display_gamma: float = 0.7,
        green_gamma: Optional[float] = 1.4,
        colormap: str = "turbo",
        elevation: float = 35.0,
        azimuth: float = -50.0,
        texture_scale: int = 4,
        width: int = 520,
        height: int = 400,
    ) -> None:
        super().__init__(width, height)
        self.history_length = int(history_length)
        self.bin_count = int(bin_count)
        self.amplitude_scale = float(amplitude_scale)
        self.height_gamma = float(height_gamma)
        self.vertical_offset = float(vertical_offset)
        self.display_gamma = float(display_gamma)
        self.green_gamma = green_gamma
        self.colormap = colormap
        self.texture_scale = max(1, int(texture_scale))
        self.camera = OrthographicCamera(elevation, azimuth, width=width, height=height)

        shape = (self.history_length, self.bin_count)
        freq_axis = np.linspace(-1.0, 1.0, self.bin_count)
        # newest row (index 0) sits at the front edge, z = +1
        time_axis = np.linspace(1.0, -1.0, self.history_length)
        self._image = np.zeros(shape, dtype=np.float32)
        self._world = np.zeros(shape + (3,), dtype=np.float64)
        self._world[..., 0] = freq_axis[None, :]
        self._world[..., 2] = time_axis[:, None]
        self.mesh: Optional[HeightFieldMesh] = None
        self.texture: Optional[np.ndarray] = None
        self.labels = self.place_axis_labels()

    @classmethod
    def from_config(cls, cfg) -> "HeightFieldBackend":
        return cls(
            cfg.history_length,
            cfg.bin_count,
            amplitude_scale=cfg.amplitude_scale,
            height_gamma=cfg.height_gamma,
            vertical_offset=cfg.vertical_offset,
            display_gamma=cfg.display_gamma,
            green_gamma=cfg.green_gamma,
            colormap=cfg.colormap,
            elevation=cfg.camera_elevation,
            azimuth=cfg.camera_azimuth,
            width=cfg.width,
            height=cfg.height,
        )

    # ------------------------------------------------------------------
    # Geometry and colour
    # ------------------------------------------------------------------
    def vertex_heights(self, image: np.ndarray) -> np.ndarray:
        levels = np.clip(np.asarray(image, dtype=np.float64), 0.0, 1.0)
        heights = np.power(levels, self.height_gamma) * self.amplitude_scale
        return heights - self.vertical_offset

    def compute_geometry(self, image: np.ndarray) -> HeightFieldMesh:
        if image.shape != self._image.shape:
            raise ValueError(
                f"expected image of shape {self._image.shape}, got {image.shape}"
            )
        self._world[..., 1] = self.vertex_heights(image)
        screen, depth = self.camera.project(self._world)
        self.mesh = HeightFieldMesh(world=self._world, screen=screen, depth=depth)
        return self.mesh

    def compute_color(self, image: np.ndarray) -> np.ndarray:
        """RGB texture of shape ``(rows * s, bins * s, 3)``."""

        texels = upsample(image, self.texture_scale)
        intensity = apply_gamma(texels, self.display_gamma)
        self.texture = intensity_to_rgb(intensity, self.colormap, self.green_gamma)
        return self.texture

    def update(self, history: SpectrogramHistory, now: float) -> None:
        history.ordered(newest_first=True, out=self._image)
        self.compute_geometry(self._image)
        self.compute_color(self._image)

    def faces(self) -> Tuple[np.ndarray, np.ndarray]:
        """Quads in painter's order (far first) and their texture colours."""

        if self.mesh is None or self.texture is None:
            return np.zeros((0, 4, 2)), np.zeros((0, 3))
        s = self.mesh.screen
        quads = np.stack(
            [s[:-1, :-1], s[:-1, 1:], s[1:, 1:], s[1:, :-1]], axis=2
        ).reshape(-1, 4, 2)
        depth = (
            self.mesh.depth[:-1, :-1]
            + self.mesh.depth[:-1, 1:]
            + self.mesh.depth[1:, 1:]
            + self.mesh.depth[1:, :-1]
        ).reshape(-1)
        rows, cols = self.history_length - 1, self.bin_count - 1
        tex_h, tex_w = self.texture.shape[:2]
        ty = ((np.arange(rows) + 0.5) / max(rows, 1) * tex_h).astype(int)
        tx = ((np.arange(cols) + 0.5) / max(cols, 1) * tex_w).astype(int)
        ty = np.minimum(ty, tex_h - 1)
        tx = np.minimum(tx, tex_w - 1)
        colors = self.texture[ty[:, None], tx[None, :]].reshape(-1, 3)
        order = np.argsort(depth, kind="stable")
        return quads[order], colors[order]

    # ------------------------------------------------------------------
    # Labels
    # ------------------------------------------------------------------
    def _axis_anchors(self) -> dict[str, Tuple[np.ndarray, np.ndarray]]:
        base = -self.vertical_offset
        top = self.amplitude_scale - self.vertical_offset
        return {
            "Time": (np.array([-1.0, base, 1.0]), np.array([-1.0, base, -1.0])),
            "Frequency": (np.array([-1.0, base, 1.0]), np.array([1.0, base, 1.0])),
            "Amplitude": (np.array([-1.0, base, -1.0]), np.array([-1.0, top, -1.0])),
        }

    def place_axis_labels(self) -> List[AxisLabel]:
        labels: List[AxisLabel] = []
        center = self.camera.project_point([0.0, -self.vertical_offset, 0.0])
        for text, (start, end) in self._axis_anchors().items():
            p0 = self.camera.project_point(start)
            p1 = self.camera.project_point(end)
            mid = ((p0[0] + p1[0]) / 2.0, (p0[1] + p1[1]) / 2.0)
            # push the label away from the surface centre
            dx, dy = mid[0] - center[0], mid[1] - center[1]
            norm = float(np.hypot(dx, dy)) or 1.0
            pad = 0.04 * min(self.camera.width, self.camera.height)
            labels.append(
                AxisLabel(
                    text=text,
                    x=mid[0] + dx / norm * pad,
                    y=mid[1] + dy / norm * pad,
                    rotation=label_rotation(p0, p1, upright=True),
                )
            )
        return labels

    def resize(self, width: int, height: int) -> None:
        self.camera.resize(width, height)
        super().resize(width, height)
        if self.mesh is not None:
            self.compute_geometry(self._image)

    def release(self) -> None:
        if self.released:
            return
        self.mesh = None
        self.texture = None
        super().release()


__all__ = ["HeightFieldBackend", "HeightFieldMesh"]
