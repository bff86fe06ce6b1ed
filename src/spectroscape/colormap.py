"""Intensity to colour mapping for both rendering back-ends."""

from __future__ import annotations

import colorsys
from typing import Optional, Sequence, Tuple

import matplotlib
import numpy as np
from matplotlib.colors import Colormap, LinearSegmentedColormap
from scipy import ndimage

RAINFOREST_STOPS: Sequence[Tuple[float, str]] = (
    (0.0, "#04080c"),
    (0.35, "#0f3d2e"),
    (0.6, "#adffc7"),
    (0.85, "#e9ff7a"),
    (1.0, "#ffffff"),
)

_CUSTOM = {
    "rainforest": LinearSegmentedColormap.from_list(
        "rainforest", list(RAINFOREST_STOPS)
    ),
}


def get_colormap(name: str) -> Colormap:
    """Look up ``name`` among the custom gradients, then matplotlib's registry."""
    if name in _CUSTOM:
        return _CUSTOM[name]
    try:
        return matplotlib.colormaps[name]
    except KeyError as exc:
        raise ValueError(f"unknown colormap {name!r}") from exc


def intensity_to_rgb(
    values: np.ndarray,
    cmap: str = "turbo",
    green_gamma: Optional[float] = None,
) -> np.ndarray:
    """Map [0, 1] intensities to RGB floats of shape ``values.shape + (3,)``.

    ``green_gamma`` re-derives the green channel from its own exponent of the
    intensity, independent of the ramp.
    """

    clipped = np.clip(np.asarray(values, dtype=np.float64), 0.0, 1.0)
    rgb = get_colormap(cmap)(clipped)[..., :3]
    if green_gamma is not None:
        rgb[..., 1] = rgb[..., 1] * np.power(clipped, green_gamma)
    return rgb


def upsample(image: np.ndarray, factor: int) -> np.ndarray:
    """Bilinear upsampling so colour is evaluated per pixel, not per vertex."""
    if factor <= 1:
        return np.asarray(image, dtype=np.float64)
    image = np.asarray(image, dtype=np.float64)
    return ndimage.zoom(image, factor, order=1, mode="nearest")


def contour_hsla(
    intensity: float, layer: int, kind: str
) -> Tuple[float, float, float, float]:
    """Hue/saturation/lightness/alpha of a contour line.

    Time contours run green to yellow-green, frequency contours cyan to green;
    deeper layers get slightly darker and more transparent.
    """

    if kind not in ("time", "freq"):
        raise ValueError(f"kind must be 'time' or 'freq', got {kind!r}")
    clamped = min(1.0, max(0.0, float(intensity)))
    hue_start, hue_end = (150.0, 95.0) if kind == "time" else (195.0, 150.0)
    hue = hue_start + (hue_end - hue_start) * clamped - layer * 2
    lightness = 32 + clamped * 35 - layer * 3
    saturation = 55 + clamped * 35
    alpha = 0.35 + clamped * 0.45 - layer * 0.04
    return hue, saturation, lightness, min(0.95, max(0.35, alpha))


HSLA = Tuple[float, float, float, float]


def hsla_to_rgba(hsla: HSLA) -> HSLA:
    hue, saturation, lightness, alpha = hsla
    r, g, b = colorsys.hls_to_rgb(
        (hue % 360.0) / 360.0, lightness / 100.0, saturation / 100.0
    )
    return r, g, b, alpha


def hsla_css(hsla: HSLA) -> str:
    hue, saturation, lightness, alpha = hsla
    return f"hsla({hue:.1f}, {saturation:.1f}%, {lightness:.1f}%, {alpha:.3f})"


__all__ = [
    "RAINFOREST_STOPS",
    "contour_hsla",
    "get_colormap",
    "hsla_css",
    "hsla_to_rgba",
    "intensity_to_rgb",
    "upsample",
]
