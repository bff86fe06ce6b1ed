"""Camera and isometric transforms plus rotated axis label placement.

All screen coordinates are in pixels of the host container with the origin
at the top-left corner and ``y`` growing downwards. Label rotations are in
degrees, clockwise in that space.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

import numpy as np

Point = Tuple[float, float]


@dataclass(frozen=True)
class AxisLabel:
    text: str
    x: float
    y: float
    rotation: float
    anchor: str = "middle"


def label_rotation(start: Point, end: Point, upright: bool = False) -> float:
    """Angle of the projected segment ``start -> end`` in degrees."""

    angle = math.degrees(math.atan2(end[1] - start[1], end[0] - start[0]))
    if upright:
        if angle > 90.0:
            angle -= 180.0
        elif angle < -90.0:
            angle += 180.0
    return angle


def unit_direction(start: Point, end: Point) -> Point:
    dx = end[0] - start[0]
    dy = end[1] - start[1]
    length = math.hypot(dx, dy) or 1.0
    return dx / length, dy / length


# ----------------------------------------------------------------------
# 3D orthographic camera
# ----------------------------------------------------------------------
class OrthographicCamera:
    """Fixed-orientation orthographic camera looking at the world origin.

    ``elevation`` and ``azimuth`` are in degrees; there is no orbit control.
    ``view_size`` is the world-space height visible in the viewport; the
    width follows the container aspect ratio and is recomputed on
    :meth:`resize`.
    """

    def __init__(
        self,
        elevation: float = 35.0,
        azimuth: float = -50.0,
        view_size: float = 3.2,
        width: int = 520,
        height: int = 400,
    ) -> None:
        self.elevation = float(elevation)
        self.azimuth = float(azimuth)
        self.view_size = float(view_size)
        el = math.radians(self.elevation)
        az = math.radians(self.azimuth)
        forward = np.array(
            [math.cos(el) * math.sin(az), math.sin(el), math.cos(el) * math.cos(az)]
        )
        right = np.cross(np.array([0.0, 1.0, 0.0]), forward)
        norm = np.linalg.norm(right)
        if norm < 1e-9:
            # looking straight down: any horizontal right vector will do
            right = np.array([math.cos(az), 0.0, -math.sin(az)])
        else:
            right /= norm
        up = np.cross(forward, right)
        self._basis = np.stack([right, up, forward])
        self.width = 1
        self.height = 1
        self.half_width = self.view_size / 2.0
        self.half_height = self.view_size / 2.0
        self.resize(width, height)

    def resize(self, width: int, height: int) -> None:
        self.width = max(1, int(width))
        self.height = max(1, int(height))
        aspect = self.width / self.height
        self.half_height = self.view_size / 2.0
        self.half_width = self.half_height * aspect

    @property
    def extents(self) -> Tuple[float, float, float, float]:
        """``(left, right, top, bottom)`` of the orthographic frustum."""
        return -self.half_width, self.half_width, self.half_height, -self.half_height

    def view(self, points: np.ndarray) -> np.ndarray:
        """World points ``(..., 3)`` to camera space ``(..., 3)``; z is depth."""
        return np.asarray(points, dtype=np.float64) @ self._basis.T

    def project(self, points: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Return pixel coordinates ``(..., 2)`` and depth ``(...)``.

        Larger depth is closer to the camera.
        """

        cam = self.view(points)
        px = (cam[..., 0] / self.half_width * 0.5 + 0.5) * self.width
        py = (0.5 - cam[..., 1] / self.half_height * 0.5) * self.height
        return np.stack([px, py], axis=-1), cam[..., 2]

    def project_point(self, point) -> Point:
        xy, _ = self.project(np.asarray(point, dtype=np.float64))
        return float(xy[0]), float(xy[1])


# ----------------------------------------------------------------------
# 2D isometric transform
# ----------------------------------------------------------------------
class IsometricTransform:
    """Isometric layout of normalized (time, frequency, amplitude) points.

    Geometry is laid out in a ``base_width x base_height`` design box and
    scaled uniformly to fit the container, centred on both axes.
    """

    base_width = 520.0
    base_height = 400.0
    origin_x = 250.0
    origin_y = 230.0
    lateral_span = 220.0
    depth_span = 70.0
    amplitude_span = 220.0
    amplitude_exponent = 0.88
    layer_offset = 36.0

    def __init__(self, width: int = 520, height: int = 400) -> None:
        self.width = 1
        self.height = 1
        self.scale = 1.0
        self.offset_x = 0.0
        self.offset_y = 0.0
        self.resize(width, height)

    def resize(self, width: int, height: int) -> None:
        self.width = max(1, int(width))
        self.height = max(1, int(height))
        self.scale = min(self.width / self.base_width, self.height / self.base_height)
        self.offset_x = (self.width - self.base_width * self.scale) / 2.0
        self.offset_y = (self.height - self.base_height * self.scale) / 2.0

    def project(self, time_norm, freq_norm, amplitude, layer=0) -> np.ndarray:
        """Vectorised projection; returns ``(..., 2)`` pixel coordinates."""

        time_norm = np.asarray(time_norm, dtype=np.float64)
        freq_norm = np.asarray(freq_norm, dtype=np.float64)
        amplitude = np.maximum(np.asarray(amplitude, dtype=np.float64), 0.0)
        shift = np.asarray(layer, dtype=np.float64) * self.layer_offset
        x = self.origin_x + (time_norm - freq_norm) * self.lateral_span + shift * 0.7
        y = (
            self.origin_y
            + (time_norm + freq_norm) * self.depth_span
            - np.power(amplitude, self.amplitude_exponent) * self.amplitude_span
            - shift * 0.35
        )
        x = self.offset_x + x * self.scale
        y = self.offset_y + y * self.scale
        return np.stack(np.broadcast_arrays(x, y), axis=-1)

    def project_point(self, time_norm, freq_norm, amplitude, layer=0) -> Point:
        xy = self.project(time_norm, freq_norm, amplitude, layer)
        return float(xy[0]), float(xy[1])


__all__ = [
    "AxisLabel",
    "IsometricTransform",
    "OrthographicCamera",
    "label_rotation",
    "unit_direction",
]
