"""Raster encodings of eroded heightmaps."""

from __future__ import annotations

import numpy as np


def as_grid(heights: np.ndarray, size: int) -> np.ndarray:
    """View a flat row-major buffer as a ``(size, size)`` grid."""

    if heights.size != size * size:
        raise ValueError(f"heights has {heights.size} cells, expected {size * size}")
    return heights.reshape(size, size)


def height_to_u16(heights: np.ndarray, *, rescale: bool = False) -> np.ndarray:
    """Encode float heights as 16-bit grayscale.

    Erosion can push values slightly outside [0, 1]; by default they are
    clamped. With ``rescale`` the buffer's own min/max span the full range.
    """

    values = heights.astype(np.float64)
    if rescale:
        lo, hi = float(values.min()), float(values.max())
        values = (values - lo) / max(hi - lo, 1e-12)
    return np.round(np.clip(values, 0.0, 1.0) * 65535.0).astype(np.uint16)

