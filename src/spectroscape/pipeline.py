"""Wiring of clock, analysis, smoothing, history and one render back-end."""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Callable, List, Optional

from spectroscape.analyzer import FrequencyAnalyzer
from spectroscape.audio import AssetLoader, AudioAsset
from spectroscape.backends import RenderBackend, create_backend
from spectroscape.clock import VirtualPlaybackClock
from spectroscape.config import SpectrogramConfig
from spectroscape.errors import PlaybackEngineError
from spectroscape.gate import PlaybackGestureGate, PlaybackState
from spectroscape.history import SpectrogramHistory
from spectroscape.playback import PlaybackEngine
from spectroscape.scheduler import FrameScheduler
from spectroscape.smoothing import SmoothingPipeline, SmoothingState

logger = logging.getLogger(__name__)


class SpectrogramPipeline:
    """One running spectrogram: a render tick, an optional window tick and
    the audio output gated behind the first user gesture.

    Until an asset has been adopted the analysis frame stays at zero, so the
    back-end draws a flat surface.
    """

    def __init__(
        self,
        config: Optional[SpectrogramConfig] = None,
        *,
        asset: Optional[AudioAsset] = None,
        scheduler: Optional[FrameScheduler] = None,
        engine: Optional[PlaybackEngine] = None,
        backend: Optional[RenderBackend] = None,
        time_fn: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or SpectrogramConfig()
        cfg = self.config
        self.scheduler = scheduler or FrameScheduler(time_fn)
        self.clock = VirtualPlaybackClock(1.0, time_fn)
        self.analyzer = FrequencyAnalyzer.from_config(cfg)
        self.analyzer_state = self.analyzer.new_state()
        self.smoothing = SmoothingPipeline.from_config(cfg)
        self.smoothing_state = SmoothingState.empty(cfg.bin_count)
        self.history = SpectrogramHistory(cfg.history_length, cfg.bin_count)
        self.backend = backend or create_backend(cfg, self.scheduler)
        if engine is None:
            engine = PlaybackEngine(ramp=cfg.mute_ramp)
        self.engine = engine
        self.gate = PlaybackGestureGate(self.engine, self.clock.offset)

        self.asset: Optional[AudioAsset] = None
        self.loader: Optional[AssetLoader] = None
        self.load_error: Optional[BaseException] = None
        self._pending: Optional[AudioAsset] = None
        self._pending_lock = threading.Lock()
        self._frame_handle = 0
        self._window_handle = 0
        self.started = False
        self.torn_down = False
        self.ticks = 0

        if asset is not None:
            self.adopt_asset(asset)

    # ------------------------------------------------------------------
    # Asset handling
    # ------------------------------------------------------------------
    def adopt_asset(self, asset: AudioAsset) -> None:
        self.asset = asset
        self.clock.retime(asset.duration)
        self.engine.set_asset(asset)
        if self.gate.state is PlaybackState.RUNNING and self.engine.state != "running":
            # a new sample rate closes the stream
            self.resume_audio()
        logger.info(
            "Using audio asset: %.2f s at %d Hz", asset.duration, asset.sample_rate
        )

    def load_asset(self, path: Path, **loader_kwargs) -> AssetLoader:
        """Decode ``path`` in the background; adopted on the next tick."""

        if self.loader is not None:
            self.loader.cancel()
        self.loader = AssetLoader(
            path, self._stash_asset, self._record_failure, **loader_kwargs
        )
        return self.loader.start()

    def _stash_asset(self, asset: AudioAsset) -> None:
        with self._pending_lock:
            self._pending = asset

    def _record_failure(self, exc: BaseException) -> None:
        # visuals stay at zero; the render loop keeps going
        self.load_error = exc

    def _adopt_pending(self) -> None:
        with self._pending_lock:
            asset, self._pending = self._pending, None
        if asset is not None and not self.torn_down:
            self.adopt_asset(asset)

    # ------------------------------------------------------------------
    # Ticks
    # ------------------------------------------------------------------
    def start(self, now: Optional[float] = None) -> None:
        if self.started or self.torn_down:
            return
        now = self.scheduler.now() if now is None else now
        self.started = True
        self._frame_handle = self.scheduler.request_frame(self._on_frame)
        if self.backend.wants_window_ticks:
            self.advance_window(now)
            self._window_handle = self.scheduler.call_every(
                self.config.window_interval, self.advance_window, now
            )

    def _on_frame(self, now: float) -> None:
        if self.torn_down:
            return
        self._frame_handle = self.scheduler.request_frame(self._on_frame)
        self.tick(now)

    def tick(self, now: Optional[float] = None) -> None:
        """Clock, analyze, smooth, commit to history, then update the back-end."""

        now = self.scheduler.now() if now is None else now
        self._adopt_pending()
        if self.asset is not None:
            offset = int(self.clock.offset_at(now) * self.asset.sample_rate)
        else:
            offset = 0
        frame = self.analyzer.analyze(self.asset, offset, self.analyzer_state)
        row = self.smoothing.process(frame, self.smoothing_state)
        self.history.push(row)
        self.ticks += 1
        try:
            self.backend.update(self.history, now)
        except Exception:  # noqa: BLE001 - one bad frame must not stop the loop
            logger.exception("Back-end %s failed to update", self.backend.name)

    def advance_window(self, now: float) -> None:
        try:
            self.backend.advance_window(self.history, now)
        except Exception:  # noqa: BLE001 - keep the window tick alive
            logger.exception("Back-end %s failed to advance", self.backend.name)

    # ------------------------------------------------------------------
    # User interaction
    # ------------------------------------------------------------------
    def handle_gesture(self, event=None) -> PlaybackState:
        return self.gate.handle_event(event)

    def toggle_mute(self) -> bool:
        """Flip the output gain.

        An engine that is not running is started audibly instead: through
        the gate on first use, directly once the gate has been spent.
        """

        if self.engine.state == "running":
            muted = self.engine.toggle_mute()
        else:
            self.engine.set_gain(1.0)
            self.resume_audio()
            muted = self.engine.muted
        logger.info("Audio %s", "muted" if muted else "unmuted")
        return muted

    def resume_audio(self) -> bool:
        """Resume the engine and restart the source at the clock offset."""

        if self.gate.state is not PlaybackState.RUNNING:
            return self.gate.unlock() is PlaybackState.RUNNING
        try:
            self.engine.resume()
            self.engine.start_source(self.clock.offset())
        except PlaybackEngineError as exc:
            logger.warning("Audio resume failed: %s", exc)
            return False
        return True

    def resize(self, width: int, height: int) -> None:
        self.backend.resize(width, height)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------
    def teardown(self) -> None:
        """Stop callbacks, audio and loading, then free back-end resources."""

        if self.torn_down:
            return
        self.torn_down = True
        self.scheduler.cancel_all()
        self._frame_handle = self._window_handle = 0
        self.gate.detach()
        self.engine.stop_source()
        if self.loader is not None:
            self.loader.cancel()
        self.backend.release()
        self.engine.close()
        logger.debug("Pipeline torn down after %d ticks", self.ticks)

    @property
    def handles(self) -> List[int]:
        return [h for h in (self._frame_handle, self._window_handle) if h]


__all__ = ["SpectrogramPipeline"]
