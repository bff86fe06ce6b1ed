"""Single-threaded cooperative scheduler for render and timer ticks.

Nothing here owns a thread. A host (the matplotlib viewer, or a test) calls
:meth:`FrameScheduler.run_due` with the current time; due timers fire first,
then every frame callback that was requested before this call.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

FrameCallback = Callable[[float], None]


@dataclass(order=True)
class _Timer:
    due: float
    handle: int
    interval: float = field(compare=False, default=0.0)
    callback: Optional[FrameCallback] = field(compare=False, default=None)


class FrameScheduler:
    def __init__(self, time_fn: Callable[[], float] = time.monotonic) -> None:
        self._time_fn = time_fn
        self._ids = itertools.count(1)
        self._frames: Dict[int, FrameCallback] = {}
        self._timers: List[_Timer] = []
        self._live_timers: Dict[int, _Timer] = {}
        self.closed = False

    def now(self) -> float:
        return self._time_fn()

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------
    def request_frame(self, callback: FrameCallback) -> int:
        """Run ``callback(now)`` once on the next frame."""
        if self.closed:
            return 0
        handle = next(self._ids)
        self._frames[handle] = callback
        return handle

    def cancel_frame(self, handle: int) -> None:
        self._frames.pop(handle, None)

    def call_every(
        self, interval: float, callback: FrameCallback, now: Optional[float] = None
    ) -> int:
        """Run ``callback`` every ``interval`` seconds, first after one interval."""
        if interval <= 0:
            raise ValueError("interval must be positive")
        return self._add_timer(interval, callback, now)

    def cancel(self, handle: int) -> None:
        timer = self._live_timers.pop(handle, None)
        if timer is not None:
            timer.callback = None
        self._frames.pop(handle, None)

    def cancel_all(self) -> None:
        """Drop every pending callback and refuse new ones."""
        self._frames.clear()
        for timer in self._live_timers.values():
            timer.callback = None
        self._live_timers.clear()
        self._timers.clear()
        self.closed = True

    def _add_timer(
        self,
        interval: float,
        callback: FrameCallback,
        now: Optional[float],
    ) -> int:
        if self.closed:
            return 0
        start = self.now() if now is None else now
        handle = next(self._ids)
        timer = _Timer(start + interval, handle, interval, callback)
        heapq.heappush(self._timers, timer)
        self._live_timers[handle] = timer
        return handle

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------
    @property
    def pending_frames(self) -> int:
        return len(self._frames)

    @property
    def pending_timers(self) -> int:
        return len(self._live_timers)

    def run_due(self, now: Optional[float] = None) -> None:
        now = self.now() if now is None else now
        while self._timers and self._timers[0].due <= now:
            timer = heapq.heappop(self._timers)
            if timer.callback is None:
                continue
            callback = timer.callback
            # keep cadence; skip missed periods instead of bursting
            next_due = timer.due + timer.interval
            if next_due <= now:
                next_due = now + timer.interval
            timer.due = next_due
            heapq.heappush(self._timers, timer)
            self._invoke(callback, now)

        frames = self._frames
        self._frames = {}
        for callback in frames.values():
            self._invoke(callback, now)

    @staticmethod
    def _invoke(callback: FrameCallback, now: float) -> None:
        try:
            callback(now)
        except Exception:  # noqa: BLE001 - the render loop must keep running
            logger.exception("Scheduled callback failed")


__all__ = ["FrameScheduler"]
