"""Tests for the sounddevice-backed playback engine."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

np = pytest.importorskip("numpy")

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from spectroscape.audio import AudioAsset  # noqa: E402
from spectroscape.errors import PlaybackEngineError  # noqa: E402
import spectroscape.playback as playback  # noqa: E402
from spectroscape.playback import PlaybackEngine, ramp_block  # noqa: E402


class FakeStream:
    instances = []

    def __init__(self, **kwargs) -> None:
        self.kwargs = kwargs
        self.calls = []
        FakeStream.instances.append(self)

    def start(self) -> None:
        self.calls.append("start")

    def stop(self) -> None:
        self.calls.append("stop")

    def close(self) -> None:
        self.calls.append("close")


def _engine(**kwargs) -> PlaybackEngine:
    asset = AudioAsset(np.arange(5, dtype=np.float32) / 10.0, 10)
    return PlaybackEngine(asset, stream_factory=FakeStream, **kwargs)


def test_ramp_block_moves_linearly_and_stops_at_target() -> None:
    gains, after = ramp_block(1.0, 0.0, 0.25, 6)
    assert gains.tolist() == pytest.approx([0.75, 0.5, 0.25, 0.0, 0.0, 0.0])
    assert after == 0.0

    gains, after = ramp_block(0.0, 1.0, 0.0, 3)
    assert gains.tolist() == [1.0, 1.0, 1.0]
    assert after == 1.0


def test_resume_opens_one_mono_stream() -> None:
    engine = _engine()
    assert engine.state == "suspended"
    engine.resume()
    engine.resume()

    assert engine.state == "running"
    assert engine.stream.kwargs["channels"] == 1
    assert engine.stream.kwargs["samplerate"] == 10
    assert engine.stream.calls == ["start"]


def test_source_loops_from_the_requested_offset() -> None:
    engine = _engine()
    engine.start_source(0.2)
    out = engine.render(7)
    assert out.tolist() == pytest.approx([0.2, 0.3, 0.4, 0.0, 0.1, 0.2, 0.3])
    assert engine.source_starts == 1


def test_silence_until_the_source_starts() -> None:
    engine = _engine()
    assert not engine.render(4).any()


def test_mute_ramps_gain_instead_of_cutting() -> None:
    engine = _engine(ramp=0.4)  # 4 samples at 10 Hz
    engine.start_source(0.0)
    engine.render(1)
    muted = engine.toggle_mute()
    assert muted

    engine.start_source(0.0)
    out = engine.render(5)
    assert out.tolist() == pytest.approx([0.0, 0.05, 0.05, 0.0, 0.0])
    assert engine.gain == 0.0

    assert engine.toggle_mute() is False


def test_close_is_idempotent_and_final() -> None:
    engine = _engine()
    engine.resume()
    stream = engine.stream
    engine.close()
    engine.close()

    assert engine.state == "closed"
    assert stream.calls == ["start", "stop", "close"]
    with pytest.raises(PlaybackEngineError):
        engine.resume()
    with pytest.raises(PlaybackEngineError):
        engine.start_source(0.0)


def test_backend_failures_become_engine_errors() -> None:
    def broken(**kwargs):
        raise OSError("no default output device")

    engine = PlaybackEngine(AudioAsset(np.zeros(4), 8000), stream_factory=broken)
    with pytest.raises(PlaybackEngineError):
        engine.resume()
    assert engine.state == "suspended"


def test_resume_without_asset_fails() -> None:
    with pytest.raises(PlaybackEngineError):
        PlaybackEngine(stream_factory=FakeStream).resume()


def test_missing_sounddevice_is_an_engine_error(monkeypatch) -> None:
    monkeypatch.setattr(playback, "sd", None)
    engine = PlaybackEngine(AudioAsset(np.zeros(4), 8000))
    with pytest.raises(PlaybackEngineError):
        engine.resume()


def test_default_factory_opens_sounddevice_stream(monkeypatch) -> None:
    opened = []

    class FakeSoundDevice:
        @staticmethod
        def OutputStream(**kwargs):
            opened.append(kwargs)
            return FakeStream(**kwargs)

    monkeypatch.setattr(playback, "sd", FakeSoundDevice)
    engine = PlaybackEngine(AudioAsset(np.zeros(4), 8000), blocksize=256)
    engine.resume()

    assert opened[0]["blocksize"] == 256
    assert opened[0]["dtype"] == "float32"
