"""Real audio output for the looping asset."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

import numpy as np

try:  # Optional dependency
    import sounddevice as sd
except Exception:  # pragma: no cover - optional dependency may be absent in CI
    sd = None  # type: ignore[assignment]

from spectroscape.audio import AudioAsset
from spectroscape.errors import PlaybackEngineError

logger = logging.getLogger(__name__)

SUSPENDED = "suspended"
RUNNING = "running"
CLOSED = "closed"


def _default_stream_factory(**kwargs: Any):
    if sd is None:
        raise PlaybackEngineError("sounddevice is not available.")
    return sd.OutputStream(**kwargs)


def ramp_block(
    current: float, target: float, step: float, frames: int
) -> tuple[np.ndarray, float]:
    """Per-sample gains moving ``current`` towards ``target`` by ``step``.

    Returns the gains for ``frames`` samples and the gain after the block.
    """

    if frames <= 0:
        return np.zeros(0, dtype=np.float32), current
    if step <= 0.0 or current == target:
        return np.full(frames, target, dtype=np.float32), target
    direction = 1.0 if target > current else -1.0
    gains = current + direction * step * np.arange(1, frames + 1, dtype=np.float64)
    if direction > 0:
        np.minimum(gains, target, out=gains)
    else:
        np.maximum(gains, target, out=gains)
    return gains.astype(np.float32), float(gains[-1])


class PlaybackEngine:
    """Loops an :class:`AudioAsset` through a ``sounddevice`` output stream.

    The engine starts ``suspended``; :meth:`resume` opens and starts the
    stream. :meth:`start_source` (re)positions playback, typically at the
    virtual clock offset. Gain changes are ramped linearly over ``ramp``
    seconds. :meth:`close` is idempotent.
    """

    def __init__(
        self,
        asset: Optional[AudioAsset] = None,
        *,
        blocksize: int = 1024,
        device: Optional[str] = None,
        ramp: float = 0.25,
        stream_factory: Callable[..., Any] = _default_stream_factory,
    ) -> None:
        self.asset = asset
        self.blocksize = int(blocksize)
        self.device = device
        self.ramp = max(0.0, float(ramp))
        self._stream_factory = stream_factory
        self.stream = None
        self._state = SUSPENDED
        self._lock = threading.Lock()
        self._position = 0
        self._source_active = False
        self._gain = 1.0
        self._target_gain = 1.0
        self._gain_step = 0.0
        self.source_starts = 0

    @property
    def state(self) -> str:
        return self._state

    @property
    def muted(self) -> bool:
        return self._target_gain == 0.0

    @property
    def gain(self) -> float:
        return self._gain

    @property
    def source_active(self) -> bool:
        return self._source_active

    def set_asset(self, asset: AudioAsset) -> None:
        with self._lock:
            if self.stream is not None and self.asset is not None:
                if asset.sample_rate != self.asset.sample_rate:
                    self._close_stream()
                    self._state = SUSPENDED if self._state != CLOSED else CLOSED
            self.asset = asset
            self._position = 0

    # ------------------------------------------------------------------
    # Engine lifecycle
    # ------------------------------------------------------------------
    def resume(self) -> None:
        if self._state == CLOSED:
            raise PlaybackEngineError("audio engine is closed")
        if self._state == RUNNING:
            return
        if self.asset is None:
            raise PlaybackEngineError("no audio asset loaded yet")
        try:
            if self.stream is None:
                self.stream = self._stream_factory(
                    channels=1,
                    samplerate=self.asset.sample_rate,
                    blocksize=self.blocksize,
                    device=self.device,
                    callback=self._callback,
                    dtype="float32",
                )
            self.stream.start()
        except PlaybackEngineError:
            raise
        except Exception as exc:  # noqa: BLE001 - backend errors vary by platform
            raise PlaybackEngineError(f"could not start audio output: {exc}") from exc
        self._state = RUNNING
        logger.info("Audio engine running")

    def suspend(self) -> None:
        if self._state != RUNNING:
            return
        try:
            self.stream.stop()
        except Exception as exc:  # noqa: BLE001 - depends on audio backend
            logger.warning("Failed to stop audio stream: %s", exc)
        self._state = SUSPENDED

    def close(self) -> None:
        if self._state == CLOSED:
            return
        with self._lock:
            self._source_active = False
            self._close_stream()
            self._state = CLOSED
        logger.debug("Audio engine closed")

    def _close_stream(self) -> None:
        if self.stream is None:
            return
        try:  # pragma: no cover - depends on audio backend
            self.stream.stop()
            self.stream.close()
        except Exception as exc:  # noqa: BLE001 - release must not raise
            logger.debug("Ignoring error while closing stream: %s", exc)
        self.stream = None

    # ------------------------------------------------------------------
    # Source and gain
    # ------------------------------------------------------------------
    def start_source(self, offset_seconds: float) -> None:
        if self._state == CLOSED:
            raise PlaybackEngineError("audio engine is closed")
        if self.asset is None:
            raise PlaybackEngineError("no audio asset loaded yet")
        with self._lock:
            position = int(offset_seconds * self.asset.sample_rate)
            self._position = position % max(1, len(self.asset))
            self._source_active = True
            self.source_starts += 1
        logger.debug("Audio source started at %.3f s", offset_seconds)

    def stop_source(self) -> None:
        with self._lock:
            self._source_active = False

    def set_gain(self, target: float, ramp: Optional[float] = None) -> None:
        duration = self.ramp if ramp is None else max(0.0, float(ramp))
        sample_rate = self.asset.sample_rate if self.asset is not None else 44100
        with self._lock:
            self._target_gain = float(target)
            span = abs(self._target_gain - self._gain)
            if duration <= 0.0 or span == 0.0:
                self._gain = self._target_gain
                self._gain_step = 0.0
            else:
                self._gain_step = span / (duration * sample_rate)

    def toggle_mute(self) -> bool:
        """Flip between silent and full gain; returns the new muted state."""
        self.set_gain(1.0 if self.muted else 0.0)
        return self.muted

    def render(self, frames: int) -> np.ndarray:
        """Next ``frames`` samples of the looping source with gain applied."""

        out = np.zeros(frames, dtype=np.float32)
        with self._lock:
            if not self._source_active or self.asset is None or len(self.asset) == 0:
                return out
            samples = self.asset.samples
            total = len(samples)
            filled = 0
            position = self._position
            while filled < frames:
                take = min(frames - filled, total - position)
                out[filled : filled + take] = samples[position : position + take]
                filled += take
                position = (position + take) % total
            self._position = position
            gains, self._gain = ramp_block(
                self._gain, self._target_gain, self._gain_step, frames
            )
        out *= gains
        return out

    def _callback(self, outdata, frames, time_info, status):  # pragma: no cover
        if status:
            logger.debug("Output stream status: %s", status)
        outdata[:, 0] = self.render(frames)


__all__ = [
    "CLOSED",
    "PlaybackEngine",
    "RUNNING",
    "SUSPENDED",
    "ramp_block",
    "sd",
]
