"""Catmull-Rom smoothing of polylines into cubic Bézier segments."""

from __future__ import annotations

import numpy as np


def catmull_rom_segments(points: np.ndarray) -> np.ndarray:
    """Return ``(n - 1, 3, 2)`` Bézier controls ``(cp1, cp2, end)`` for ``points``.

    Each interior tangent comes from the neighbouring points; the ends reuse
    their own point as the missing neighbour.
    """

    pts = np.asarray(points, dtype=np.float64)
    n = len(pts)
    if n < 2:
        return np.zeros((0, 3, 2), dtype=np.float64)
    p1 = pts[:-1]
    p2 = pts[1:]
    p0 = np.concatenate([pts[:1], pts[:-2]])
    p3 = np.concatenate([pts[2:], pts[-1:]])
    cp1 = p1 + (p2 - p0) / 6.0
    cp2 = p2 - (p3 - p1) / 6.0
    return np.stack([cp1, cp2, p2], axis=1)


def svg_path(points: np.ndarray, close: bool = False) -> str:
    """SVG path data for the smoothed curve through ``points``."""

    pts = np.asarray(points, dtype=np.float64)
    if len(pts) < 2:
        return ""
    commands = [f"M{pts[0, 0]:.2f} {pts[0, 1]:.2f}"]
    for cp1, cp2, end in catmull_rom_segments(pts):
        commands.append(
            f"C{cp1[0]:.2f} {cp1[1]:.2f}, {cp2[0]:.2f} {cp2[1]:.2f}, "
            f"{end[0]:.2f} {end[1]:.2f}"
        )
    if close:
        commands.append("Z")
    return " ".join(commands)


__all__ = ["catmull_rom_segments", "svg_path"]
