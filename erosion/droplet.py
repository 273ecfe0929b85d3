"""Single-droplet simulation shared by every compute backend.

The step functions are plain Python over scalars and flat arrays. Each
backend compiles them for its own target through ``build_droplet_model``
so the CPU loops and the CUDA kernel run the same arithmetic.
"""

from __future__ import annotations

from enum import IntEnum
import math
from typing import Any, Callable, NamedTuple

import numpy as np
from numba import njit

from erosion.config import ErosionParameters
from erosion.sampler import Vec2, height_and_gradient


class DropletOutcome(IntEnum):
    OFF_MAP = 0
    STALLED = 1
    LIFETIME_EXPIRED = 2


# Layout of the packed parameter vector handed to compiled code.
INERTIA = 0
CAPACITY_FACTOR = 1
MIN_CAPACITY = 2
ERODE_SPEED = 3
DEPOSIT_SPEED = 4
EVAPORATE_SPEED = 5
GRAVITY = 6
MAX_LIFETIME = 7
INITIAL_SPEED = 8
INITIAL_WATER = 9
PARAM_COUNT = 10

_OFF_MAP = 0
_STALLED = 1
_LIFETIME_EXPIRED = 2


def pack_parameters(params: ErosionParameters) -> np.ndarray:
    """Flatten parameters into the float64 vector read by compiled code."""

    packed = np.empty(PARAM_COUNT, dtype=np.float64)
    packed[INERTIA] = params.inertia
    packed[CAPACITY_FACTOR] = params.sediment_capacity_factor
    packed[MIN_CAPACITY] = params.min_sediment_capacity
    packed[ERODE_SPEED] = params.erode_speed
    packed[DEPOSIT_SPEED] = params.deposit_speed
    packed[EVAPORATE_SPEED] = params.evaporate_speed
    packed[GRAVITY] = params.gravity
    packed[MAX_LIFETIME] = params.max_droplet_lifetime
    packed[INITIAL_SPEED] = params.initial_speed
    packed[INITIAL_WATER] = params.initial_water_volume
    return packed


class DropletModel(NamedTuple):
    sample: Callable[..., Any]
    deposit: Callable[..., Any]
    erode: Callable[..., Any]
    simulate: Callable[..., Any]


def build_droplet_model(jit: Callable[[Callable[..., Any]], Any]) -> DropletModel:
    """Compile the droplet step functions with ``jit``.

    ``jit`` is any function decorator accepted by Numba for its target,
    e.g. ``njit(nogil=True)`` or ``cuda.jit(device=True)``.
    """

    sample = jit(height_and_gradient)

    @jit
    def deposit(heights, size, node_index, u, v, amount):
        heights[node_index] += amount * (1.0 - u) * (1.0 - v)
        heights[node_index + 1] += amount * u * (1.0 - v)
        heights[node_index + size] += amount * (1.0 - u) * v
        heights[node_index + size + 1] += amount * u * v

    @jit
    def erode(heights, brush_offsets, brush_indices, brush_weights, node_index, amount):
        removed = 0.0
        for k in range(brush_offsets[node_index], brush_offsets[node_index + 1]):
            cell = brush_indices[k]
            weighted = amount * brush_weights[k]
            current = heights[cell]
            delta = current if current < weighted else weighted
            heights[cell] -= delta
            removed += delta
        return removed

    @jit
    def simulate(heights, size, brush_offsets, brush_indices, brush_weights, start_x, start_y, params):
        inertia = params[INERTIA]
        pos = Vec2(start_x, start_y)
        direction = Vec2(0.0, 0.0)
        speed = params[INITIAL_SPEED]
        water = params[INITIAL_WATER]
        sediment = 0.0
        limit = size - 1

        for _ in range(int(params[MAX_LIFETIME])):
            node_x = int(pos.x)
            node_y = int(pos.y)
            node_index = node_y * size + node_x
            u = pos.x - node_x
            v = pos.y - node_y

            height, gradient = sample(heights, size, pos.x, pos.y)

            dir_x = direction.x * inertia - gradient.x * (1.0 - inertia)
            dir_y = direction.y * inertia - gradient.y * (1.0 - inertia)
            length = math.sqrt(dir_x * dir_x + dir_y * dir_y)
            if length != 0.0:
                dir_x /= length
                dir_y /= length
            direction = Vec2(dir_x, dir_y)
            pos = Vec2(pos.x + dir_x, pos.y + dir_y)

            if dir_x == 0.0 and dir_y == 0.0:
                return _STALLED
            if pos.x < 0.0 or pos.x >= limit or pos.y < 0.0 or pos.y >= limit:
                return _OFF_MAP

            new_height, _gradient = sample(heights, size, pos.x, pos.y)
            delta_height = new_height - height

            capacity = max(
                -delta_height * speed * water * params[CAPACITY_FACTOR],
                params[MIN_CAPACITY],
            )

            if sediment > capacity or delta_height > 0.0:
                if delta_height > 0.0:
                    amount = min(delta_height, sediment)
                else:
                    amount = (sediment - capacity) * params[DEPOSIT_SPEED]
                sediment -= amount
                deposit(heights, size, node_index, u, v, amount)
            else:
                amount = min((capacity - sediment) * params[ERODE_SPEED], -delta_height)
                sediment += erode(heights, brush_offsets, brush_indices, brush_weights, node_index, amount)

            speed = math.sqrt(speed * speed + abs(delta_height) * params[GRAVITY])
            water *= 1.0 - params[EVAPORATE_SPEED]

        return _LIFETIME_EXPIRED

    return DropletModel(sample=sample, deposit=deposit, erode=erode, simulate=simulate)


CPU_MODEL = build_droplet_model(njit(nogil=True))
