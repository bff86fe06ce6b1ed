"""Bin-limited windowed frequency analyzer.

Only a few dozen bands are displayed, so instead of a full FFT each band is
measured with a direct single-frequency correlation over a Hann-windowed
slice of the decoded asset. The cost per frame is ``bin_count * window_size``
multiply-adds.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional

import numpy as np

from spectroscape.audio import AudioAsset
from spectroscape.utils import EPS, dbfs, hann_window, rescale_clip


def target_frequencies(
    bin_count: int,
    low_hz: float,
    high_hz: float,
    sample_rate: int,
    spacing: str = "linear",
) -> np.ndarray:
    """Return ``bin_count`` band centre frequencies between the cutoffs."""

    nyquist = sample_rate / 2.0
    high = min(float(high_hz), nyquist)
    low = max(0.0, min(float(low_hz), high))
    if bin_count == 1:
        return np.array([low], dtype=np.float64)
    if spacing == "log":
        return np.geomspace(max(low, 1.0), max(high, 1.0), num=bin_count)
    if spacing != "linear":
        raise ValueError(f"unknown frequency spacing {spacing!r}")
    span = max(1.0, high - low)
    return low + span * np.arange(bin_count, dtype=np.float64) / (bin_count - 1)


@lru_cache(maxsize=16)
def _rotation_table(
    freqs: tuple[float, ...], sample_rate: int, length: int
) -> np.ndarray:
    """Phasor ``exp(-i*w*n)`` per band, advanced by incremental rotation."""

    angles = 2.0 * np.pi * np.asarray(freqs, dtype=np.float64) / sample_rate
    delta = np.exp(-1j * angles)
    table = np.empty((len(freqs), length), dtype=np.complex128)
    if length:
        table[:, 0] = 1.0
        steps = np.broadcast_to(delta[:, None], (len(freqs), length - 1))
        np.cumprod(steps, axis=1, out=table[:, 1:])
    table.setflags(write=False)
    return table


def direct_magnitudes(
    segment: np.ndarray, frequencies: np.ndarray, sample_rate: int
) -> np.ndarray:
    """Hann-windowed magnitude of each single frequency component of ``segment``."""

    segment = np.asarray(segment, dtype=np.float64)
    if segment.size == 0:
        return np.zeros(len(frequencies), dtype=np.float64)
    windowed = segment * hann_window(segment.size)
    table = _rotation_table(
        tuple(float(f) for f in frequencies), int(sample_rate), segment.size
    )
    return np.abs(table @ windowed)


@dataclass
class AnalyzerState:
    """Buffers owned by one pipeline and threaded through ``analyze`` calls."""

    previous: np.ndarray
    has_previous: bool = False
    skipped: int = 0

    @classmethod
    def empty(cls, bin_count: int) -> "AnalyzerState":
        return cls(previous=np.zeros(bin_count, dtype=np.float32))


@dataclass
class FrequencyAnalyzer:
    """Turn a slice of an :class:`AudioAsset` into a normalized analysis frame."""

    bin_count: int = 64
    window_size: int = 2048
    low_hz: float = 0.0
    high_hz: float = 11025.0
    min_decibels: float = -100.0
    max_decibels: float = -30.0
    smoothing_constant: float = 0.8
    low_frequency_cutoff_hz: float = 60.0
    spacing: str = "linear"
    _cache: dict = field(default_factory=dict, init=False, repr=False, compare=False)

    @classmethod
    def from_config(cls, cfg) -> "FrequencyAnalyzer":
        return cls(
            bin_count=cfg.bin_count,
            window_size=cfg.window_size,
            low_hz=cfg.low_hz,
            high_hz=cfg.high_hz,
            min_decibels=cfg.min_decibels,
            max_decibels=cfg.max_decibels,
            smoothing_constant=cfg.smoothing_constant,
            low_frequency_cutoff_hz=cfg.low_frequency_cutoff_hz,
            spacing=cfg.frequency_spacing,
        )

    def new_state(self) -> AnalyzerState:
        return AnalyzerState.empty(self.bin_count)

    def frequencies(self, sample_rate: int) -> np.ndarray:
        key = ("freqs", sample_rate)
        if key not in self._cache:
            self._cache[key] = target_frequencies(
                self.bin_count, self.low_hz, self.high_hz, sample_rate, self.spacing
            )
        return self._cache[key]

    def cutoff_mask(self, sample_rate: int) -> np.ndarray:
        """Bands whose FFT-bin index falls below the cutoff's bin index."""

        key = ("cutoff", sample_rate)
        if key not in self._cache:
            resolution = sample_rate / float(self.window_size)
            cutoff_bin = int(np.floor(self.low_frequency_cutoff_hz / resolution))
            band_bins = np.floor(self.frequencies(sample_rate) / resolution)
            self._cache[key] = band_bins < cutoff_bin
        return self._cache[key]

    def analyze(
        self,
        asset: Optional[AudioAsset],
        offset: int,
        state: AnalyzerState,
    ) -> np.ndarray:
        """Analyze ``window_size`` samples starting at ``offset``.

        Returns ``state.previous`` updated in place. A window that would run
        past either end of the samples leaves the previous frame untouched.
        """

        if asset is None:
            return state.previous
        offset = int(offset)
        end = offset + self.window_size
        if offset < 0 or end > len(asset):
            state.skipped += 1
            return state.previous

        segment = asset.samples[offset:end]
        magnitudes = direct_magnitudes(
            segment, self.frequencies(asset.sample_rate), asset.sample_rate
        )
        decibels = dbfs(magnitudes / self.window_size, eps=EPS)
        level = rescale_clip(decibels, self.min_decibels, self.max_decibels)

        k = float(self.smoothing_constant)
        if state.has_previous and k > 0.0:
            level = state.previous * k + level * (1.0 - k)
        level[self.cutoff_mask(asset.sample_rate)] = 0.0

        state.previous[:] = level
        state.has_previous = True
        return state.previous


def to_bytes(frame: np.ndarray) -> np.ndarray:
    """Render a [0, 1] analysis frame as ``uint8`` levels."""
    return np.round(np.clip(frame, 0.0, 1.0) * 255.0).astype(np.uint8)


__all__ = [
    "AnalyzerState",
    "FrequencyAnalyzer",
    "direct_magnitudes",
    "target_frequencies",
    "to_bytes",
]
