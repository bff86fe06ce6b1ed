"""Spatial and temporal smoothing applied before rows enter the history."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
from scipy import ndimage

from spectroscape.config import DEFAULT_KERNEL


def spatial_smooth(
    row: np.ndarray,
    kernel: Sequence[float] = DEFAULT_KERNEL,
    mix: float = 0.9,
    out: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Convolve ``row`` across frequency and blend with the raw values.

    Out-of-range taps reuse the nearest edge bin. The result is
    ``raw * (1 - mix) + filtered * mix``, written as ``raw + mix * (filtered
    - raw)`` so an identity kernel reproduces the input exactly.
    """

    weights = np.asarray(kernel, dtype=np.float64)
    if weights.ndim != 1 or weights.size % 2 == 0:
        raise ValueError("kernel must be a 1D sequence with an odd number of taps")
    raw = np.asarray(row, dtype=np.float64)
    filtered = ndimage.correlate1d(raw, weights, mode="nearest")
    blended = raw + mix * (filtered - raw)
    if out is None:
        return blended
    out[:] = blended
    return out


def temporal_smooth(
    new: np.ndarray,
    previous: Optional[np.ndarray],
    k: float,
    out: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Exponential blend ``previous * k + new * (1 - k)``.

    The first frame has nothing to blend against and passes through.
    """

    new = np.asarray(new, dtype=np.float64)
    if previous is None:
        blended = new.copy()
    else:
        blended = np.asarray(previous, dtype=np.float64) * k + new * (1.0 - k)
    if out is None:
        return blended
    out[:] = blended
    return out


def apply_gamma(
    values: np.ndarray, exponent: float, out: Optional[np.ndarray] = None
) -> np.ndarray:
    """Raise clipped [0, 1] values to ``exponent`` (< 1 brightens mid levels)."""
    clipped = np.clip(values, 0.0, 1.0, out=out)
    return np.power(clipped, exponent, out=clipped)


@dataclass
class SmoothingState:
    """Previous committed row, owned by the pipeline between ticks."""

    previous: np.ndarray
    primed: bool = False

    @classmethod
    def empty(cls, bin_count: int) -> "SmoothingState":
        return cls(previous=np.zeros(bin_count, dtype=np.float32))

    def reset(self) -> None:
        self.previous[:] = 0.0
        self.primed = False


@dataclass
class SmoothingPipeline:
    kernel: Sequence[float] = DEFAULT_KERNEL
    mix: float = 0.9
    temporal_constant: float = 0.6

    @classmethod
    def from_config(cls, cfg) -> "SmoothingPipeline":
        return cls(
            kernel=tuple(cfg.spatial_kernel),
            mix=cfg.spatial_mix,
            temporal_constant=cfg.temporal_constant,
        )

    def process(self, frame: np.ndarray, state: SmoothingState) -> np.ndarray:
        """Filter one analysis frame; returns ``state.previous`` updated in place."""

        spatial = spatial_smooth(frame, self.kernel, self.mix)
        previous = state.previous if state.primed else None
        temporal_smooth(spatial, previous, self.temporal_constant, out=spatial)
        np.clip(spatial, 0.0, 1.0, out=spatial)
        state.previous[:] = spatial
        state.primed = True
        return state.previous


__all__ = [
    "SmoothingPipeline",
    "SmoothingState",
    "apply_gamma",
    "spatial_smooth",
    "temporal_smooth",
]
