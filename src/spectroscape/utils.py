"""Utility helpers shared by the analysis and rendering stages."""

from __future__ import annotations

import numpy as np

EPS = 1e-12


def dbfs(x: np.ndarray, eps: float = EPS) -> np.ndarray:
    """Convert a linear magnitude array into decibels."""
    return 20.0 * np.log10(np.asarray(x, dtype=np.float64) + eps)


def hann_window(n: int) -> np.ndarray:
    """Return a symmetric Hann window of length ``n`` as ``float32``."""
    if n <= 1:
        return np.ones(max(n, 0), dtype=np.float32)
    idx = np.arange(n, dtype=np.float64)
    return (0.5 * (1.0 - np.cos(2.0 * np.pi * idx / (n - 1)))).astype(np.float32)


def rescale_clip(
    values: np.ndarray, low: float, high: float, out: np.ndarray | None = None
) -> np.ndarray:
    """Linearly map ``[low, high]`` onto ``[0, 1]`` and clamp both ends."""
    span = high - low if high != low else 1.0
    result = np.subtract(values, low, out=out)
    result /= span
    return np.clip(result, 0.0, 1.0, out=result)


def lerp(start: np.ndarray, end: np.ndarray, t: float) -> np.ndarray:
    """Linear interpolation ``start + (end - start) * t``."""
    return start + (end - start) * t


__all__ = ["EPS", "dbfs", "hann_window", "rescale_clip", "lerp"]
