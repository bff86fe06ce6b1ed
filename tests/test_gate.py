"""Tests for the audio unlock gesture gate."""

from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from spectroscape.errors import PlaybackEngineError  # noqa: E402
from spectroscape.gate import (  # noqa: E402
    MatplotlibEventSource,
    PlaybackGestureGate,
    PlaybackState,
)


class FakeEngine:
    def __init__(self, failures: int = 0, stay_suspended: bool = False) -> None:
        self.state = "suspended"
        self.failures = failures
        self.stay_suspended = stay_suspended
        self.resumes = 0
        self.starts = []

    def resume(self) -> None:
        self.resumes += 1
        if self.failures:
            self.failures -= 1
            raise PlaybackEngineError("device busy")
        if not self.stay_suspended:
            self.state = "running"

    def start_source(self, offset: float) -> None:
        self.starts.append(offset)


class FakeEventSource:
    def __init__(self) -> None:
        self.handlers = {}
        self._next = 0

    def connect(self, event, handler):
        self._next += 1
        self.handlers[self._next] = (event, handler)
        return self._next

    def disconnect(self, token) -> None:
        self.handlers.pop(token, None)

    def emit(self, event) -> None:
        for name, handler in list(self.handlers.values()):
            if name == event:
                handler(None)


def test_first_gesture_unlocks_and_removes_listeners() -> None:
    engine = FakeEngine()
    source = FakeEventSource()
    gate = PlaybackGestureGate(engine, lambda: 3.25)
    gate.attach(source)
    assert len(source.handlers) == 2

    source.emit("button_press_event")

    assert gate.state is PlaybackState.RUNNING
    assert source.handlers == {}
    assert engine.starts == [3.25]


def test_later_gestures_do_not_start_the_source_again() -> None:
    engine = FakeEngine()
    source = FakeEventSource()
    gate = PlaybackGestureGate(engine, lambda: 0.0)
    gate.attach(source)

    source.emit("key_press_event")
    source.emit("key_press_event")
    gate.handle_event(None)
    gate.unlock()

    assert engine.starts == [0.0]
    assert engine.resumes == 1


def test_failed_resume_stays_unlocking_and_retries() -> None:
    engine = FakeEngine(failures=1)
    source = FakeEventSource()
    gate = PlaybackGestureGate(engine, lambda: 1.0)
    gate.attach(source)

    source.emit("button_press_event")
    assert gate.state is PlaybackState.UNLOCKING
    assert engine.starts == []
    assert gate.attached

    source.emit("button_press_event")
    assert gate.state is PlaybackState.RUNNING
    assert engine.starts == [1.0]
    assert not gate.attached


def test_engine_that_does_not_confirm_running_keeps_gate_open() -> None:
    engine = FakeEngine(stay_suspended=True)
    gate = PlaybackGestureGate(engine, lambda: 0.0)
    assert gate.handle_event() is PlaybackState.UNLOCKING
    assert engine.starts == []


def test_matplotlib_adapter_forwards_to_canvas() -> None:
    class Canvas:
        def __init__(self) -> None:
            self.connected = {}

        def mpl_connect(self, name, handler):
            self.connected[7] = name
            return 7

        def mpl_disconnect(self, cid):
            del self.connected[cid]

    canvas = Canvas()
    source = MatplotlibEventSource(canvas)
    token = source.connect("button_press_event", lambda event: None)
    assert canvas.connected == {7: "button_press_event"}
    source.disconnect(token)
    assert canvas.connected == {}
