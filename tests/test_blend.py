"""Tests for layer cross-fading."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

np = pytest.importorskip("numpy")

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from spectroscape.blend import LayerBlender, blend_layers  # noqa: E402
from spectroscape.scheduler import FrameScheduler  # noqa: E402


def test_blend_is_linear_and_exact_at_the_end() -> None:
    source = np.array([0.0])
    target = np.array([10.0])

    assert blend_layers(source, target, 0.0).tolist() == [0.0]
    assert blend_layers(source, target, 0.5).tolist() == [5.0]
    assert blend_layers(source, target, 1.0) is target
    assert blend_layers(source, target, 1.7) is target


def test_missing_or_mismatched_source() -> None:
    target = np.ones((2, 3))
    assert blend_layers(None, target, 0.3) is target
    halfway = blend_layers(np.ones((1, 3)), target, 0.5)
    assert halfway == pytest.approx(np.full((2, 3), 0.5))


def test_blender_runs_to_completion_then_stops() -> None:
    scheduler = FrameScheduler(lambda: 0.0)
    frames = []
    blender = LayerBlender(scheduler, 0.6, on_frame=frames.append)
    first = np.zeros((1, 2))
    blender.display = first
    target = np.full((1, 2), 4.0)

    blender.retarget(target, now=0.0)
    assert blender.active
    scheduler.run_due(0.3)
    assert blender.display == pytest.approx(np.full((1, 2), 2.0))
    scheduler.run_due(0.6)

    assert blender.display is target
    assert not blender.active
    assert scheduler.pending_frames == 0
    assert len(frames) == 2


def test_retarget_in_flight_keeps_one_task() -> None:
    scheduler = FrameScheduler(lambda: 0.0)
    blender = LayerBlender(scheduler, 1.0)
    blender.display = np.zeros(1)

    blender.retarget(np.array([10.0]), now=0.0)
    scheduler.run_due(0.5)
    assert blender.display.tolist() == [5.0]

    blender.retarget(np.array([0.0]), now=0.5)
    blender.retarget(np.array([5.0]), now=0.5)
    assert scheduler.pending_frames == 1

    scheduler.run_due(1.0)
    # restarted from what was on screen
    assert blender.display.tolist() == [5.0]
    assert blender.progress(1.0) == pytest.approx(0.5)


def test_cancel_drops_pending_frame() -> None:
    scheduler = FrameScheduler(lambda: 0.0)
    blender = LayerBlender(scheduler, 1.0)
    blender.retarget(np.ones(2), now=0.0)
    blender.cancel()
    assert scheduler.pending_frames == 0
    assert blender.target is None
