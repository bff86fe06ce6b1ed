"""Tests for spatial and temporal smoothing."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

np = pytest.importorskip("numpy")
pytest.importorskip("scipy")

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from spectroscape.config import DEFAULT_KERNEL  # noqa: E402
from spectroscape.smoothing import (  # noqa: E402
    SmoothingPipeline,
    SmoothingState,
    apply_gamma,
    spatial_smooth,
    temporal_smooth,
)


def _impulse(index: int, bins: int = 11) -> np.ndarray:
    row = np.zeros(bins)
    row[index] = 1.0
    return row


def test_identity_kernel_is_a_no_op_twice() -> None:
    row = np.random.default_rng(0).random(32)
    once = spatial_smooth(row, kernel=(1.0,), mix=0.9)
    twice = spatial_smooth(once, kernel=(1.0,), mix=0.9)
    assert np.array_equal(twice, row)


def test_impulse_in_the_middle() -> None:
    mix = 0.9
    out = spatial_smooth(_impulse(5), DEFAULT_KERNEL, mix)

    assert out[5] == pytest.approx(1.0 * (1 - mix) + 0.18 * mix)
    assert out[4] == pytest.approx(0.15 * mix)
    assert out[2] == pytest.approx(0.03 * mix)
    assert out[1] == 0.0


@pytest.mark.parametrize("index", [0, 10])
def test_impulse_at_either_edge_uses_clamped_taps(index: int) -> None:
    mix = 0.9
    out = spatial_smooth(_impulse(index), DEFAULT_KERNEL, mix)
    # three out-of-range taps repeat the edge bin
    edge_sum = 0.03 + 0.08 + 0.15 + 0.18
    assert out[index] == pytest.approx((1 - mix) + edge_sum * mix)


def test_spatial_smooth_rejects_even_kernel() -> None:
    with pytest.raises(ValueError):
        spatial_smooth(np.zeros(4), kernel=(0.5, 0.5))


def test_temporal_first_frame_passes_through() -> None:
    new = np.array([0.2, 0.4])
    assert np.array_equal(temporal_smooth(new, None, 0.6), new)
    assert temporal_smooth(new, np.array([1.0, 0.0]), 0.5) == pytest.approx([0.6, 0.2])


def test_constant_frame_converges_geometrically() -> None:
    k = 0.6
    pipeline = SmoothingPipeline(kernel=(1.0,), mix=0.9, temporal_constant=k)
    state = SmoothingState.empty(8)
    state.primed = True
    value = 0.7
    frame = np.full(8, value)

    for tick in range(1, 41):
        out = pipeline.process(frame, state)
        assert np.all(np.abs(out - value) <= value * k**tick + 1e-6)
    assert out == pytest.approx(np.full(8, value), abs=1e-6)


def test_pipeline_output_is_clipped_and_owned_by_state() -> None:
    pipeline = SmoothingPipeline()
    state = SmoothingState.empty(6)
    out = pipeline.process(np.full(6, 5.0), state)
    assert out is state.previous
    assert np.all(out <= 1.0)
    assert state.primed

    state.reset()
    assert not state.primed
    assert not state.previous.any()


def test_gamma_brightens_mid_levels() -> None:
    values = np.array([0.0, 0.25, 1.0, 1.5])
    out = apply_gamma(values.copy(), 0.5)
    assert out.tolist() == pytest.approx([0.0, 0.5, 1.0, 1.0])
