"""Tests for the wired spectrogram pipeline."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest

np = pytest.importorskip("numpy")
pytest.importorskip("scipy")
pytest.importorskip("matplotlib")

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from spectroscape.audio import synthetic_asset  # noqa: E402
from spectroscape.backends import RenderBackend  # noqa: E402
from spectroscape.config import SpectrogramConfig  # noqa: E402
from spectroscape.errors import AssetError  # noqa: E402
from spectroscape.gate import PlaybackState  # noqa: E402
from spectroscape.pipeline import SpectrogramPipeline  # noqa: E402
from spectroscape.playback import PlaybackEngine  # noqa: E402
from spectroscape.scheduler import FrameScheduler  # noqa: E402


class FakeTime:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class RecordingEngine:
    def __init__(self, log: list) -> None:
        self.log = log
        self.state = "suspended"
        self.muted = False
        self.asset = None
        self.starts = []

    def set_asset(self, asset) -> None:
        self.asset = asset

    def resume(self) -> None:
        self.state = "running"

    def start_source(self, offset: float) -> None:
        self.starts.append(offset)

    def set_gain(self, target: float, ramp=None) -> None:
        self.muted = target == 0.0

    def toggle_mute(self) -> bool:
        self.muted = not self.muted
        return self.muted

    def stop_source(self) -> None:
        self.log.append("stop_source")

    def close(self) -> None:
        self.log.append("close_engine")


class RecordingBackend(RenderBackend):
    name = "recording"

    def __init__(
        self, log: list, fail: bool = False, window_ticks: bool = False
    ) -> None:
        super().__init__(520, 400)
        self.log = log
        self.fail = fail
        self.window_ticks = window_ticks
        self.updates = 0
        self.windows = 0

    @property
    def wants_window_ticks(self) -> bool:
        return self.window_ticks

    def place_axis_labels(self):
        return []

    def update(self, history, now) -> None:
        self.updates += 1
        if self.fail:
            raise RuntimeError("lost context")

    def advance_window(self, history, now) -> None:
        self.windows += 1

    def release(self) -> None:
        self.log.append("release_backend")
        super().release()


def _config(**overrides) -> SpectrogramConfig:
    return SpectrogramConfig.for_backend(
        "heightfield", bin_count=8, history_length=6, window_size=256, **overrides
    )


def _pipeline(log=None, **kwargs):
    log = [] if log is None else log
    time_fn = FakeTime()
    kwargs.setdefault("engine", RecordingEngine(log))
    pipeline = SpectrogramPipeline(
        _config(),
        scheduler=FrameScheduler(time_fn),
        time_fn=time_fn,
        **kwargs,
    )
    return pipeline, time_fn


def test_tick_commits_one_row_and_updates_backend() -> None:
    pipeline, _ = _pipeline(asset=synthetic_asset(8000, duration=1.0))
    for i in range(4):
        pipeline.tick(now=0.05 * i)

    assert pipeline.history.filled == 4
    assert pipeline.history.newest().any()
    assert pipeline.backend.mesh is not None
    assert pipeline.clock.duration == pytest.approx(1.0)


def test_without_asset_the_surface_stays_flat() -> None:
    pipeline, _ = _pipeline()
    pipeline.tick(now=0.1)
    pipeline.tick(now=0.2)
    assert not pipeline.history.ordered().any()


def test_backend_failure_does_not_stop_the_loop(caplog) -> None:
    backend = RecordingBackend([], fail=True)
    pipeline, _ = _pipeline(backend=backend, asset=synthetic_asset(8000, duration=1.0))
    pipeline.start(now=0.0)

    with caplog.at_level(logging.ERROR):
        pipeline.scheduler.run_due(0.1)
        pipeline.scheduler.run_due(0.2)

    assert backend.updates == 2
    assert pipeline.ticks == 2
    assert "failed to update" in caplog.text


def test_window_ticks_only_for_backends_that_want_them() -> None:
    quiet = RecordingBackend([])
    pipeline, _ = _pipeline(backend=quiet)
    pipeline.start(now=0.0)
    assert pipeline.scheduler.pending_timers == 0

    windowed = RecordingBackend([], window_ticks=True)
    pipeline, _ = _pipeline(backend=windowed)
    pipeline.start(now=0.0)
    assert windowed.windows == 1
    pipeline.scheduler.run_due(0.18)
    pipeline.scheduler.run_due(0.36)
    assert windowed.windows == 3


def test_background_load_is_adopted_on_the_next_tick() -> None:
    pipeline, _ = _pipeline()
    asset = synthetic_asset(8000, duration=2.0)
    loader = pipeline.load_asset(
        Path("rainforest.mp3"), loader=lambda path, target_sr=None: asset
    )
    loader.join(timeout=5)
    assert pipeline.asset is None

    pipeline.tick(now=0.0)
    assert pipeline.asset is asset
    assert pipeline.clock.duration == pytest.approx(2.0)
    assert pipeline.engine.asset is asset


def test_failed_load_keeps_running(caplog) -> None:
    def failing(path, target_sr=None):
        raise AssetError("not an audio file")

    pipeline, _ = _pipeline()
    with caplog.at_level(logging.WARNING):
        pipeline.load_asset(Path("broken.mp3"), loader=failing).join(timeout=5)
    pipeline.tick(now=0.0)

    assert isinstance(pipeline.load_error, AssetError)
    assert pipeline.asset is None
    assert "Failed to load audio asset" in caplog.text


def test_gesture_starts_audio_at_the_clock_offset() -> None:
    pipeline, time_fn = _pipeline(asset=synthetic_asset(8000, duration=10.0))
    time_fn.now = 12.0

    assert pipeline.handle_gesture() is PlaybackState.RUNNING
    assert pipeline.engine.starts == [pytest.approx(2.0)]
    pipeline.handle_gesture()
    assert len(pipeline.engine.starts) == 1


class FakeStream:
    def __init__(self, **kwargs) -> None:
        self.samplerate = kwargs["samplerate"]
        self.closed = False

    def start(self) -> None:
        pass

    def stop(self) -> None:
        pass

    def close(self) -> None:
        self.closed = True


def _audible_engine() -> PlaybackEngine:
    return PlaybackEngine(ramp=0.0, stream_factory=FakeStream)


def test_mute_toggle_starts_suspended_audio_audibly() -> None:
    pipeline, _ = _pipeline(
        asset=synthetic_asset(8000, duration=1.0), engine=_audible_engine()
    )
    engine = pipeline.engine

    assert pipeline.toggle_mute() is False
    assert engine.state == "running"
    assert pipeline.gate.state is PlaybackState.RUNNING
    assert np.abs(engine.render(256)).max() > 0.0

    assert pipeline.toggle_mute() is True
    assert np.abs(engine.render(256)).max() == 0.0
    assert engine.source_starts == 1


def test_mute_toggle_resumes_engine_after_gate_is_spent() -> None:
    pipeline, time_fn = _pipeline(asset=synthetic_asset(8000, duration=10.0))
    pipeline.handle_gesture()
    pipeline.engine.state = "suspended"
    time_fn.now = 3.0

    assert pipeline.toggle_mute() is False
    assert pipeline.engine.state == "running"
    assert pipeline.engine.starts == [pytest.approx(0.0), pytest.approx(3.0)]


def test_new_sample_rate_reopens_running_output() -> None:
    pipeline, _ = _pipeline(
        asset=synthetic_asset(8000, duration=1.0), engine=_audible_engine()
    )
    pipeline.handle_gesture()
    first = pipeline.engine.stream

    pipeline.adopt_asset(synthetic_asset(16000, duration=1.0))

    engine = pipeline.engine
    assert first.closed
    assert engine.state == "running"
    assert engine.stream.samplerate == 16000
    assert engine.source_starts == 2
    assert np.abs(engine.render(256)).max() > 0.0


def test_teardown_runs_in_order_once() -> None:
    log = []
    backend = RecordingBackend(log)
    pipeline, _ = _pipeline(log=log, backend=backend)

    class Loader:
        def cancel(self) -> None:
            log.append("cancel_load")

    pipeline.start(now=0.0)
    pipeline.loader = Loader()
    pipeline.teardown()
    pipeline.teardown()

    assert log == ["stop_source", "cancel_load", "release_backend", "close_engine"]
    assert pipeline.scheduler.pending_frames == 0
    assert pipeline.handles == []
    pipeline.scheduler.run_due(1.0)
    assert backend.updates == 0
