"""Tests for the cooperative frame scheduler."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from spectroscape.scheduler import FrameScheduler  # noqa: E402


def test_frames_requested_during_a_run_wait_for_the_next() -> None:
    scheduler = FrameScheduler(lambda: 0.0)
    calls = []

    def frame(now: float) -> None:
        calls.append(now)
        scheduler.request_frame(frame)

    scheduler.request_frame(frame)
    scheduler.run_due(1.0)
    scheduler.run_due(2.0)
    assert calls == [1.0, 2.0]
    assert scheduler.pending_frames == 1


def test_repeating_timer_keeps_cadence_and_skips_missed_periods() -> None:
    scheduler = FrameScheduler(lambda: 0.0)
    ticks = []
    scheduler.call_every(0.18, ticks.append, now=0.0)

    scheduler.run_due(0.1)
    scheduler.run_due(0.2)
    scheduler.run_due(1.0)
    scheduler.run_due(1.1)
    scheduler.run_due(1.2)

    assert ticks == [0.2, 1.0, 1.2]


def test_timers_fire_before_frames() -> None:
    scheduler = FrameScheduler(lambda: 0.0)
    order = []
    scheduler.request_frame(lambda now: order.append("frame"))
    scheduler.call_every(1.0, lambda now: order.append("timer"), now=0.0)
    scheduler.run_due(1.0)
    assert order == ["timer", "frame"]


def test_failing_callback_is_logged_and_others_still_run(caplog) -> None:
    scheduler = FrameScheduler(lambda: 0.0)
    seen = []

    def boom(now: float) -> None:
        raise RuntimeError("boom")

    scheduler.request_frame(boom)
    scheduler.request_frame(seen.append)
    with caplog.at_level(logging.ERROR):
        scheduler.run_due(3.0)

    assert seen == [3.0]
    assert "Scheduled callback failed" in caplog.text


def test_cancel_and_cancel_all() -> None:
    scheduler = FrameScheduler(lambda: 0.0)
    fired = []
    handle = scheduler.call_every(1.0, fired.append, now=0.0)
    scheduler.cancel(handle)
    scheduler.run_due(5.0)
    assert fired == []

    scheduler.request_frame(fired.append)
    scheduler.cancel_all()
    assert scheduler.pending_frames == 0
    assert scheduler.request_frame(fired.append) == 0
    scheduler.run_due(6.0)
    assert fired == []


def test_interval_must_be_positive() -> None:
    with pytest.raises(ValueError):
        FrameScheduler().call_every(0.0, lambda now: None)
