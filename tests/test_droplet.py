from __future__ import annotations

import numpy as np
import pytest

from erosion.brush import build_brush
from erosion.config import ErosionParameters
from erosion.droplet import CPU_MODEL, DropletOutcome, pack_parameters


def _east_slope(size: int) -> np.ndarray:
    xs = np.tile(np.arange(size, dtype=np.float64), size)
    return 1.0 - xs / size


def _simulate(heights, size, x, y, params=None):
    brush = build_brush(size, (params or ErosionParameters()).erosion_radius)
    packed = pack_parameters(params or ErosionParameters())
    return CPU_MODEL.simulate(heights, size, brush.offsets, brush.indices, brush.weights, x, y, packed)


def test_deposit_conserves_mass_exactly() -> None:
    size = 5
    heights = np.random.default_rng(1).random(size * size)
    before = heights.sum()

    CPU_MODEL.deposit(heights, size, 1 * size + 2, 0.3, 0.6, 0.125)

    assert heights.sum() - before == pytest.approx(0.125, abs=1e-12)
    changed = np.flatnonzero(heights != np.random.default_rng(1).random(size * size))
    assert changed.tolist() == [7, 8, 12, 13]


def test_deposit_at_cell_corner_lands_on_one_node() -> None:
    heights = np.zeros(16, dtype=np.float64)

    CPU_MODEL.deposit(heights, 4, 5, 0.0, 0.0, 0.5)

    assert heights[5] == 0.5
    assert heights.sum() == 0.5


def test_erode_removes_what_it_reports() -> None:
    size = 8
    heights = np.full(size * size, 0.5, dtype=np.float64)
    brush = build_brush(size, 3)
    before = heights.sum()

    removed = CPU_MODEL.erode(heights, brush.offsets, brush.indices, brush.weights, 3 * size + 3, 0.2)

    assert removed == pytest.approx(0.2)
    assert before - heights.sum() == pytest.approx(removed, abs=1e-12)


def test_erode_never_digs_below_zero() -> None:
    size = 8
    heights = np.full(size * size, 0.5, dtype=np.float64)
    brush = build_brush(size, 3)
    center = 3 * size + 3
    heights[center] = 0.001
    before = heights.sum()

    removed = CPU_MODEL.erode(heights, brush.offsets, brush.indices, brush.weights, center, 0.5)

    assert heights.min() >= 0.0
    assert heights[center] == 0.0
    assert removed < 0.5
    assert before - heights.sum() == pytest.approx(removed, abs=1e-12)


def test_flat_terrain_stalls_without_changes() -> None:
    heights = np.full(16, 0.5, dtype=np.float32)
    original = heights.copy()

    outcome = _simulate(heights, 4, 1.5, 1.5, ErosionParameters(erosion_radius=1))

    assert outcome == DropletOutcome.STALLED
    assert np.array_equal(heights, original)


def test_droplet_runs_downhill_and_erodes() -> None:
    size = 16
    heights = _east_slope(size)
    before = heights.sum()

    outcome = _simulate(heights, size, 2.5, 7.5)

    assert outcome == DropletOutcome.OFF_MAP
    assert heights.sum() < before
    assert np.isfinite(heights).all()
    assert heights.min() >= 0.0


def test_lifetime_limits_steps() -> None:
    size = 64
    heights = _east_slope(size)

    outcome = _simulate(heights, size, 2.5, 30.5, ErosionParameters(max_droplet_lifetime=3))

    assert outcome == DropletOutcome.LIFETIME_EXPIRED


def test_packed_parameters_follow_dataclass() -> None:
    params = ErosionParameters(inertia=0.2, gravity=9.0, max_droplet_lifetime=12)
    packed = pack_parameters(params)

    assert packed.dtype == np.float64
    assert 0.2 in packed
    assert 9.0 in packed
    assert 12.0 in packed
