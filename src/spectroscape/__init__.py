"""Looping audio asset rendered as a scrolling 3D spectrogram."""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any

__all__ = [
    "AudioAsset",
    "FrequencyAnalyzer",
    "PlaybackEngine",
    "PlaybackGestureGate",
    "SpectrogramConfig",
    "SpectrogramHistory",
    "SpectrogramPipeline",
    "SpectrogramViewer",
    "VirtualPlaybackClock",
    "create_backend",
    "load_audio_asset",
    "main",
]

_EXPORT_MAP = {
    "AudioAsset": ("spectroscape.audio", "AudioAsset"),
    "FrequencyAnalyzer": ("spectroscape.analyzer", "FrequencyAnalyzer"),
    "PlaybackEngine": ("spectroscape.playback", "PlaybackEngine"),
    "PlaybackGestureGate": ("spectroscape.gate", "PlaybackGestureGate"),
    "SpectrogramConfig": ("spectroscape.config", "SpectrogramConfig"),
    "SpectrogramHistory": ("spectroscape.history", "SpectrogramHistory"),
    "SpectrogramPipeline": ("spectroscape.pipeline", "SpectrogramPipeline"),
    "SpectrogramViewer": ("spectroscape.viewer", "SpectrogramViewer"),
    "VirtualPlaybackClock": ("spectroscape.clock", "VirtualPlaybackClock"),
    "create_backend": ("spectroscape.backends", "create_backend"),
    "load_audio_asset": ("spectroscape.audio", "load_audio_asset"),
    "main": ("spectroscape.cli", "main"),
}


if TYPE_CHECKING:  # pragma: no cover - only for type checkers
    from spectroscape.analyzer import FrequencyAnalyzer
    from spectroscape.audio import AudioAsset, load_audio_asset
    from spectroscape.backends import create_backend
    from spectroscape.cli import main
    from spectroscape.clock import VirtualPlaybackClock
    from spectroscape.config import SpectrogramConfig
    from spectroscape.gate import PlaybackGestureGate
    from spectroscape.history import SpectrogramHistory
    from spectroscape.pipeline import SpectrogramPipeline
    from spectroscape.playback import PlaybackEngine
    from spectroscape.viewer import SpectrogramViewer


def __getattr__(name: str) -> Any:
    """Lazily import heavy submodules on demand."""

    if name in _EXPORT_MAP:
        module_name, attribute = _EXPORT_MAP[name]
        module = import_module(module_name)
        value = getattr(module, attribute)
        globals()[name] = value
        return value
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:
    return sorted(set(__all__))
