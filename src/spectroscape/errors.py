"""Exception types raised by the spectrogram pipeline."""

from __future__ import annotations


class SpectroscapeError(RuntimeError):
    """Base class for pipeline failures."""


class AssetError(SpectroscapeError):
    """The audio asset could not be fetched or decoded."""


class PlaybackEngineError(SpectroscapeError):
    """The audio output engine failed to start, resume or play."""


__all__ = ["SpectroscapeError", "AssetError", "PlaybackEngineError"]
