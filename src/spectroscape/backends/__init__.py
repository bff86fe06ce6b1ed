"""Rendering back-ends sharing one analysis pipeline."""

from __future__ import annotations

from spectroscape.backends.base import RenderBackend
from spectroscape.backends.contour import ContourRibbonBackend
from spectroscape.backends.heightfield import HeightFieldBackend


def create_backend(cfg, scheduler) -> RenderBackend:
    """Instantiate the back-end named by ``cfg.backend``."""

    if cfg.backend == "heightfield":
        return HeightFieldBackend.from_config(cfg)
    if cfg.backend == "contour":
        return ContourRibbonBackend.from_config(cfg, scheduler)
    raise ValueError(f"unknown backend {cfg.backend!r}")


__all__ = [
    "ContourRibbonBackend",
    "HeightFieldBackend",
    "RenderBackend",
    "create_backend",
]
