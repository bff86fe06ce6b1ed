"""Fixed-length scrolling spectrogram history."""

from __future__ import annotations

from typing import Optional

import numpy as np


class SpectrogramHistory:
    """Ring of ``capacity`` rows addressed as ``(time, frequency)``.

    Rows are written into a preallocated array at a rotating head index, so a
    push costs one row copy and never allocates. Readers get rows ordered by
    age. Frequency orientation is fixed at write time: with
    ``low_first=False`` the producer is assumed to emit high-to-low bins and
    each row is flipped once on ``push``.
    """

    def __init__(self, capacity: int, bin_count: int, low_first: bool = True) -> None:
        if capacity < 1 or bin_count < 1:
            raise ValueError("capacity and bin_count must be positive")
        self.capacity = int(capacity)
        self.bin_count = int(bin_count)
        self.low_first = bool(low_first)
        self._data = np.zeros((self.capacity, self.bin_count), dtype=np.float32)
        self._head = -1  # index of the newest row
        self._count = 0

    def __len__(self) -> int:
        return self.capacity

    @property
    def filled(self) -> int:
        """Number of rows pushed so far, saturating at ``capacity``."""
        return self._count

    @property
    def shape(self) -> tuple[int, int]:
        return self._data.shape

    def push(self, row: np.ndarray) -> None:
        row = np.asarray(row)
        if row.shape != (self.bin_count,):
            raise ValueError(
                f"row must have shape ({self.bin_count},), got {row.shape}"
            )
        self._head = (self._head + 1) % self.capacity
        target = self._data[self._head]
        if self.low_first:
            target[:] = row
        else:
            target[:] = row[::-1]
        self._count = min(self._count + 1, self.capacity)

    def newest(self) -> np.ndarray:
        if self._head < 0:
            return np.zeros(self.bin_count, dtype=np.float32)
        return self._data[self._head].copy()

    def row(self, age: int) -> np.ndarray:
        """Row pushed ``age`` ticks ago (``0`` is the newest)."""
        if not 0 <= age < self.capacity:
            raise IndexError(age)
        if self._head < 0:
            return np.zeros(self.bin_count, dtype=np.float32)
        return self._data[(self._head - age) % self.capacity].copy()

    def ordered(
        self, newest_first: bool = True, out: Optional[np.ndarray] = None
    ) -> np.ndarray:
        """Return a ``(capacity, bin_count)`` copy ordered by age."""

        if out is None:
            out = np.empty_like(self._data)
        elif out.shape != self._data.shape:
            raise ValueError("out has the wrong shape")
        if self._head < 0:
            out[:] = 0.0
            return out
        # rows head, head-1, ... wrap around to head+1
        split = self._head + 1
        out[:split] = self._data[self._head :: -1]
        if split < self.capacity:
            out[split:] = self._data[: self._head : -1]
        if not newest_first:
            out[:] = out[::-1].copy()
        return out

    def clear(self) -> None:
        self._data[:] = 0.0
        self._head = -1
        self._count = 0


__all__ = ["SpectrogramHistory"]
