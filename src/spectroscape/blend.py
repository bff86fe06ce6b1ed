"""Cross-fading between successive contour layer sets."""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence, Union

import numpy as np

from spectroscape.scheduler import FrameScheduler

logger = logging.getLogger(__name__)

Layers = Union[np.ndarray, Sequence]


def blend_layers(source: Optional[Layers], target: Layers, t: float) -> Layers:
    """Linearly interpolate ``source`` towards ``target`` by ``t``.

    ``t >= 1`` returns ``target`` itself, never a re-computed copy, so the
    end of a blend is exact. A missing or empty source jumps straight to
    ``target``; a source of another shape starts from zero.
    """

    if t >= 1.0:
        return target
    if source is None or len(source) == 0:
        return target
    end = np.asarray(target, dtype=np.float64)
    start = np.asarray(source, dtype=np.float64)
    if start.shape != end.shape:
        start = np.zeros_like(end)
    clamped = max(0.0, float(t))
    return start + (end - start) * clamped


class LayerBlender:
    """Self-terminating per-frame blend task.

    At most one frame callback is outstanding. :meth:`retarget` while a blend
    is in flight restarts it from whatever is currently displayed towards the
    new target instead of queuing another task.
    """

    def __init__(
        self,
        scheduler: FrameScheduler,
        duration: float,
        on_frame: Optional[Callable[[Layers], None]] = None,
    ) -> None:
        self.scheduler = scheduler
        self.duration = max(0.0, float(duration))
        self.on_frame = on_frame
        self.display: Optional[Layers] = None
        self._source: Optional[Layers] = None
        self._target: Optional[Layers] = None
        self._start = 0.0
        self._handle: Optional[int] = None

    @property
    def active(self) -> bool:
        return self._handle is not None

    @property
    def target(self) -> Optional[Layers]:
        return self._target

    def retarget(self, target: Layers, now: float) -> None:
        baseline = self.display if self.display is not None else target
        self._source = baseline
        self._target = target
        self._start = float(now)
        if self._handle is None:
            self._handle = self.scheduler.request_frame(self._step)

    def progress(self, now: float) -> float:
        if self.duration <= 0.0:
            return 1.0
        return min((now - self._start) / self.duration, 1.0)

    def _step(self, now: float) -> None:
        self._handle = None
        if self._target is None:
            return
        progress = self.progress(now)
        blended = blend_layers(self._source, self._target, progress)
        self.display = blended
        if self.on_frame is not None:
            self.on_frame(blended)
        if progress >= 1.0:
            self._source = None
            self._target = None
            logger.debug("Layer blend finished")
        else:
            self._handle = self.scheduler.request_frame(self._step)

    def cancel(self) -> None:
        if self._handle is not None:
            self.scheduler.cancel_frame(self._handle)
            self._handle = None
        self._source = None
        self._target = None


__all__ = ["LayerBlender", "blend_layers"]
