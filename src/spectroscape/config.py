"""Configuration for the spectrogram pipeline."""

from __future__ import annotations

import dataclasses
import json
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

_DEFAULT_CONFIG_NAME = "spectroscape_config.json"

BACKENDS = ("heightfield", "contour")

DEFAULT_KERNEL: Tuple[float, ...] = (0.03, 0.08, 0.15, 0.18, 0.15, 0.08, 0.03)

# Per back-end overrides applied by ``SpectrogramConfig.for_backend``.
_BACKEND_PRESETS: Dict[str, Dict[str, Any]] = {
    "heightfield": {
        "bin_count": 64,
        "history_length": 128,
        "low_hz": 0.0,
        "high_hz": 11025.0,
    },
    "contour": {
        "bin_count": 20,
        "history_length": 84,
        "low_hz": 60.0,
        "high_hz": 9000.0,
    },
}


@dataclasses.dataclass
class SpectrogramConfig:
    """Tunable constants for analysis, smoothing, projection and playback."""

    backend: str = "heightfield"
    asset_path: Optional[str] = "audio/rainforest.mp3"

    # analysis
    bin_count: int = 64
    history_length: int = 128
    window_size: int = 2048
    low_hz: float = 0.0
    high_hz: float = 11025.0
    frequency_spacing: str = "linear"
    min_decibels: float = -100.0
    max_decibels: float = -30.0
    smoothing_constant: float = 0.8
    low_frequency_cutoff_hz: float = 60.0

    # smoothing
    spatial_kernel: Tuple[float, ...] = DEFAULT_KERNEL
    spatial_mix: float = 0.9
    temporal_constant: float = 0.6
    display_gamma: float = 0.7
    green_gamma: float = 1.4

    # height-field
    amplitude_scale: float = 1.6
    height_gamma: float = 1.2
    vertical_offset: float = 0.4
    colormap: str = "turbo"
    camera_elevation: float = 35.0
    camera_azimuth: float = -50.0

    # contour
    layer_count: int = 3
    contour_gamma: float = 0.85

    # scheduling
    render_interval: float = 1.0 / 60.0
    window_interval: float = 0.18
    blend_duration: float = 0.6

    # playback
    mute_ramp: float = 0.25

    # container
    width: int = 520
    height: int = 400

    def __post_init__(self) -> None:
        self.spatial_kernel = tuple(float(v) for v in self.spatial_kernel)
        if self.backend not in BACKENDS:
            raise ValueError(
                f"backend must be one of {BACKENDS}, got {self.backend!r}"
            )
        if self.bin_count < 1 or self.history_length < 1:
            raise ValueError("bin_count and history_length must be positive")
        if self.window_size < 2:
            raise ValueError("window_size must be at least 2")
        if len(self.spatial_kernel) % 2 == 0:
            raise ValueError("spatial_kernel must have an odd number of taps")
        if self.max_decibels <= self.min_decibels:
            raise ValueError("max_decibels must exceed min_decibels")
        if self.backend == "contour" and self.history_length < self.layer_count:
            raise ValueError("history_length must cover every contour layer")

    @staticmethod
    def from_dict(raw: Dict[str, Any]) -> "SpectrogramConfig":
        known = {f.name for f in dataclasses.fields(SpectrogramConfig)}
        filtered = {k: v for k, v in raw.items() if k in known}
        if "spatial_kernel" in filtered:
            filtered["spatial_kernel"] = tuple(filtered["spatial_kernel"])
        return SpectrogramConfig(**filtered)

    @staticmethod
    def for_backend(name: str, **overrides: Any) -> "SpectrogramConfig":
        """Return the default configuration tuned for back-end ``name``."""

        if name not in _BACKEND_PRESETS:
            raise ValueError(f"unknown backend {name!r}")
        data = dict(load_default_config())
        data.update(_BACKEND_PRESETS[name])
        data["backend"] = name
        data.update(overrides)
        return SpectrogramConfig.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        data = dataclasses.asdict(self)
        data["spatial_kernel"] = list(self.spatial_kernel)
        return data


def load_default_config() -> dict[str, Any]:
    """Load the packaged default configuration values."""
    config_path = Path(__file__).with_name(_DEFAULT_CONFIG_NAME)
    with config_path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def read_overrides(path: Path) -> dict[str, Any]:
    """Raw values of a user JSON config file."""
    with Path(path).open("r", encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object")
    return data


def load_config(path: Path) -> SpectrogramConfig:
    """Read a JSON config file layered over the back-end preset it names."""

    user = read_overrides(path)
    backend = user.get("backend", load_default_config().get("backend", "heightfield"))
    return SpectrogramConfig.for_backend(backend, **user)


__all__ = [
    "BACKENDS",
    "DEFAULT_KERNEL",
    "SpectrogramConfig",
    "load_config",
    "load_default_config",
    "read_overrides",
]
