"""Bilinear height and gradient sampling on a flat heightmap."""

from __future__ import annotations

from typing import NamedTuple

import numpy as np
from numba import njit


class Vec2(NamedTuple):
    """Position, direction or gradient on the map plane."""

    x: float
    y: float


class HeightSample(NamedTuple):
    height: float
    gradient: Vec2


def height_and_gradient(heights, size, pos_x, pos_y):
    """Interpolate height and gradient inside the cell containing ``(pos_x, pos_y)``.

    Written against scalars and a flat array only so it compiles unchanged
    for both CPU and CUDA targets. Callers keep the position inside
    ``[0, size-1)`` on both axes.
    """

    node_x = int(pos_x)
    node_y = int(pos_y)
    u = pos_x - node_x
    v = pos_y - node_y

    nw_index = node_y * size + node_x
    height_nw = heights[nw_index]
    height_ne = heights[nw_index + 1]
    height_sw = heights[nw_index + size]
    height_se = heights[nw_index + size + 1]

    gradient_x = (height_ne - height_nw) * (1.0 - v) + (height_se - height_sw) * v
    gradient_y = (height_sw - height_nw) * (1.0 - u) + (height_se - height_ne) * u
    height = (
        height_nw * (1.0 - u) * (1.0 - v)
        + height_ne * u * (1.0 - v)
        + height_sw * (1.0 - u) * v
        + height_se * u * v
    )
    return height, Vec2(gradient_x, gradient_y)


_height_and_gradient_cpu = njit(nogil=True)(height_and_gradient)


def sample(heights: np.ndarray, size: int, x: float, y: float) -> HeightSample:
    """Sample interpolated height and gradient at a fractional position."""

    flat = heights.reshape(-1)
    if flat.shape[0] != size * size:
        raise ValueError(f"heights has {flat.shape[0]} cells, expected {size * size}")
    if not (0.0 <= x < size - 1 and 0.0 <= y < size - 1):
        raise ValueError(f"position ({x}, {y}) outside [0, {size - 1})")
    height, gradient = _height_and_gradient_cpu(flat, size, float(x), float(y))
    return HeightSample(float(height), Vec2(float(gradient.x), float(gradient.y)))
