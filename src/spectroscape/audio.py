"""Audio asset loading for the spectrogram pipeline."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import numpy as np
from scipy.io import wavfile

try:  # Optional dependency - may not be available in CI
    import soundfile as sf  # type: ignore
except Exception:  # pragma: no cover - soundfile is optional
    sf = None  # type: ignore

try:  # Optional dependency - full audio analysis toolkit
    import librosa  # type: ignore
except Exception:  # pragma: no cover - dependency may be absent
    librosa = None  # type: ignore

from spectroscape.errors import AssetError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AudioAsset:
    """Decoded mono samples of the looping source audio."""

    samples: np.ndarray
    sample_rate: int

    def __post_init__(self) -> None:
        if self.sample_rate <= 0:
            raise ValueError("sample_rate must be positive")
        samples = np.ascontiguousarray(self.samples, dtype=np.float32)
        samples.setflags(write=False)
        object.__setattr__(self, "samples", samples)

    @property
    def duration(self) -> float:
        return self.samples.size / float(self.sample_rate)

    def __len__(self) -> int:
        return int(self.samples.size)


def _first_channel(audio: np.ndarray) -> np.ndarray:
    if audio.ndim > 1:
        return audio[:, 0]
    return audio


def load_audio_asset(path: Path, target_sr: Optional[int] = None) -> AudioAsset:
    """Decode ``path`` into an :class:`AudioAsset` holding its first channel."""

    path = Path(path)
    if not path.exists():
        raise AssetError(f"audio asset not found: {path}")

    try:
        if sf is not None:
            audio, sr = sf.read(str(path), dtype="float32", always_2d=False)
            audio = _first_channel(audio)
        else:
            sr, audio = wavfile.read(path)
            audio = _first_channel(audio)
            if audio.dtype != np.float32:
                max_val = (
                    np.iinfo(audio.dtype).max
                    if np.issubdtype(audio.dtype, np.integer)
                    else 1.0
                )
                audio = audio.astype(np.float32) / max_val
    except (OSError, ValueError, RuntimeError) as exc:
        raise AssetError(f"could not decode {path}: {exc}") from exc

    if target_sr is not None and sr != target_sr:
        if librosa is None:
            raise AssetError(
                "librosa is required to resample audio but is not available."
            )
        audio = librosa.resample(
            np.asarray(audio, dtype=np.float32), orig_sr=sr, target_sr=target_sr
        )
        sr = target_sr

    if np.asarray(audio).size == 0:
        raise AssetError(f"audio asset is empty: {path}")

    return AudioAsset(samples=np.asarray(audio, dtype=np.float32), sample_rate=int(sr))


def synthetic_asset(
    sample_rate: int = 44100, duration: float = 10.0, seed: int = 0
) -> AudioAsset:
    """Synthetic chirp-plus-tones asset used when no audio file is available."""

    n = int(round(sample_rate * duration))
    t = np.arange(n) / sample_rate
    chirp = np.sin(2 * np.pi * (100 + (t * 0.5e3)) * t) * 0.4
    tone1 = 0.25 * np.sin(2 * np.pi * 440 * t)
    tone2 = 0.2 * np.sin(2 * np.pi * 880 * t + 0.3)
    noise = 0.02 * np.random.default_rng(seed).standard_normal(n)
    y = np.tanh(1.5 * (chirp + tone1 + tone2 + noise))
    return AudioAsset(samples=y.astype(np.float32), sample_rate=sample_rate)


class AssetLoader:
    """Decode an asset once on a background thread, cancellable before delivery.

    ``on_loaded`` is called with the asset, ``on_failed`` with the exception.
    Neither is called once :meth:`cancel` has run, so a torn-down pipeline
    never receives a late result.
    """

    def __init__(
        self,
        path: Path,
        on_loaded: Callable[[AudioAsset], None],
        on_failed: Optional[Callable[[BaseException], None]] = None,
        *,
        target_sr: Optional[int] = None,
        loader: Callable[..., AudioAsset] = load_audio_asset,
    ) -> None:
        self.path = Path(path)
        self.target_sr = target_sr
        self._on_loaded = on_loaded
        self._on_failed = on_failed
        self._loader = loader
        self._cancelled = threading.Event()
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def start(self) -> "AssetLoader":
        if self._thread is not None:
            return self
        self._thread = threading.Thread(
            target=self._run, name="AssetLoader", daemon=True
        )
        self._thread.start()
        return self

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout=timeout)

    def cancel(self) -> None:
        with self._lock:
            self._cancelled.set()

    def _run(self) -> None:
        try:
            asset = self._loader(self.path, target_sr=self.target_sr)
        except Exception as exc:  # noqa: BLE001 - asset errors never escape
            with self._lock:
                if self._cancelled.is_set():
                    return
                logger.warning("Failed to load audio asset %s: %s", self.path, exc)
                if self._on_failed is not None:
                    self._on_failed(exc)
            return
        with self._lock:
            if self._cancelled.is_set():
                logger.debug("Discarding asset %s loaded after cancel", self.path)
                return
            self._on_loaded(asset)


__all__ = [
    "AudioAsset",
    "AssetLoader",
    "load_audio_asset",
    "synthetic_asset",
    "sf",
    "librosa",
]
