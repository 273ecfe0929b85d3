"""Base heightmap generation from fractal value noise."""

from __future__ import annotations

import numpy as np


def _smoothstep(t: np.ndarray) -> np.ndarray:
    return t * t * (3.0 - 2.0 * t)


def value_noise_2d(
    width: int,
    height: int,
    rng: np.random.Generator,
    *,
    res_x: int,
    res_y: int,
) -> np.ndarray:
    """Generate value noise in [-1, 1] from a coarse random lattice."""

    if width <= 0 or height <= 0:
        raise ValueError("width and height must be positive")
    if res_x < 1 or res_y < 1:
        raise ValueError("res_x and res_y must be >= 1")

    grid = rng.uniform(-1.0, 1.0, size=(res_y + 1, res_x + 1)).astype(np.float32)

    xs = np.linspace(0.0, float(res_x), num=width, endpoint=False, dtype=np.float32)
    ys = np.linspace(0.0, float(res_y), num=height, endpoint=False, dtype=np.float32)

    x0 = np.floor(xs).astype(np.int32)
    y0 = np.floor(ys).astype(np.int32)
    x1 = np.minimum(x0 + 1, res_x)
    y1 = np.minimum(y0 + 1, res_y)

    tx = _smoothstep(xs - x0)
    ty = _smoothstep(ys - y0)

    g00 = grid[y0[:, None], x0[None, :]]
    g10 = grid[y0[:, None], x1[None, :]]
    g01 = grid[y1[:, None], x0[None, :]]
    g11 = grid[y1[:, None], x1[None, :]]

    top = g00 * (1.0 - tx[None, :]) + g10 * tx[None, :]
    bottom = g01 * (1.0 - tx[None, :]) + g11 * tx[None, :]
    return (top * (1.0 - ty[:, None]) + bottom * ty[:, None]).astype(np.float32)


def fbm_noise(
    width: int,
    height: int,
    rng: np.random.Generator,
    *,
    base_res: int = 2,
    octaves: int = 8,
    lacunarity: float = 1.99,
    gain: float = 0.5,
) -> np.ndarray:
    """Generate fBm value noise in approximately [-1, 1]."""

    field = np.zeros((height, width), dtype=np.float32)
    amplitude = 1.0
    total_amplitude = 0.0
    aspect = width / max(height, 1)

    for octave in range(octaves):
        freq = lacunarity**octave
        res_y = max(1, min(height, int(round(base_res * freq))))
        res_x = max(1, min(width, int(round(res_y * aspect))))
        field += amplitude * value_noise_2d(width, height, rng, res_x=res_x, res_y=res_y)
        total_amplitude += amplitude
        amplitude *= gain

    if total_amplitude == 0:
        return field
    return (field / total_amplitude).astype(np.float32)


def generate_base_heightmap(resolution: int, rng: np.random.Generator, *, octaves: int = 8) -> np.ndarray:
    """Return a flat row-major float32 buffer of heights in [0, 1]."""

    if resolution < 2:
        raise ValueError(f"resolution must be >= 2, got {resolution}")
    field = fbm_noise(resolution, resolution, rng, octaves=octaves)
    return np.clip((field + 1.0) * 0.5, 0.0, 1.0).astype(np.float32).reshape(-1)
