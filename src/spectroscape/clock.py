"""Wall-clock derived playback position.

The visual pipeline never asks the audio hardware where playback is. It
derives the position from monotonic wall time modulo the asset duration, and
real playback is (re)started at that same position, so sound and picture
agree at the moment audio resumes.
"""

from __future__ import annotations

import math
import time
from typing import Callable, Optional


def playback_offset(now: float, duration: float) -> float:
    """Return ``now mod duration`` in seconds."""

    if not duration > 0.0:
        raise ValueError(f"duration must be positive, got {duration!r}")
    offset = math.fmod(now, duration)
    if offset < 0.0:
        offset += duration
    # fmod can land exactly on ``duration`` after the correction above
    return 0.0 if offset >= duration else offset


class VirtualPlaybackClock:
    """Deterministic looping playback clock."""

    def __init__(
        self,
        duration: float,
        time_fn: Callable[[], float] = time.monotonic,
        origin: Optional[float] = None,
    ) -> None:
        if not duration > 0.0:
            raise ValueError(f"duration must be positive, got {duration!r}")
        self.duration = float(duration)
        self._time_fn = time_fn
        self.origin = float(time_fn() if origin is None else origin)

    def now(self) -> float:
        """Seconds elapsed since the clock was created."""
        return self._time_fn() - self.origin

    def offset(self, now: Optional[float] = None) -> float:
        return playback_offset(self.now() if now is None else now, self.duration)

    def offset_at(self, timestamp: float) -> float:
        """Offset for an absolute reading of the clock's time source."""
        return playback_offset(timestamp - self.origin, self.duration)

    def sample_offset(self, sample_rate: int, now: Optional[float] = None) -> int:
        return int(self.offset(now) * sample_rate)

    def retime(self, duration: float) -> None:
        """Adopt a new loop length, keeping the same origin."""
        if not duration > 0.0:
            raise ValueError(f"duration must be positive, got {duration!r}")
        self.duration = float(duration)


__all__ = ["playback_offset", "VirtualPlaybackClock"]
