"""Erosion brush precomputation."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class BrushKernel:
    """Edge-clipped, normalized erosion footprints for every cell of a map.

    Stored in CSR form: the footprint of cell ``i`` is
    ``indices[offsets[i]:offsets[i + 1]]`` with matching ``weights``.
    """

    size: int
    radius: int
    offsets: np.ndarray
    indices: np.ndarray
    weights: np.ndarray

    def footprint(self, cell: int) -> tuple[np.ndarray, np.ndarray]:
        start, stop = self.offsets[cell], self.offsets[cell + 1]
        return self.indices[start:stop], self.weights[start:stop]

    def weight_sums(self) -> np.ndarray:
        """Sum of weights per cell; 1.0 everywhere up to rounding."""

        return np.add.reduceat(self.weights, self.offsets[:-1])


def disc_offsets(radius: int) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Return ``(dx, dy, raw_weight)`` for the disc of the given radius.

    Offsets are kept when ``dx² + dy² < radius²``; the weight falls off
    linearly from 1 at the center to 0 at the rim.
    """

    if radius < 1:
        raise ValueError(f"radius must be >= 1, got {radius}")

    span = np.arange(-radius, radius + 1, dtype=np.int64)
    dy, dx = np.meshgrid(span, span, indexing="ij")
    sqr_dist = dx * dx + dy * dy
    inside = sqr_dist < radius * radius
    weight = 1.0 - np.sqrt(sqr_dist[inside].astype(np.float64)) / radius
    return dx[inside], dy[inside], weight


def build_brush(size: int, radius: int, *, chunk_cells: int = 1 << 16) -> BrushKernel:
    """Build per-cell brush footprints clipped to the map and renormalized."""

    if size < 2:
        raise ValueError(f"size must be >= 2, got {size}")
    dx, dy, raw = disc_offsets(radius)

    total = size * size
    counts = np.empty(total, dtype=np.int64)
    index_parts: list[np.ndarray] = []
    weight_parts: list[np.ndarray] = []

    for start in range(0, total, chunk_cells):
        cell = np.arange(start, min(start + chunk_cells, total), dtype=np.int64)
        nx = (cell % size)[:, None] + dx[None, :]
        ny = (cell // size)[:, None] + dy[None, :]
        valid = (nx >= 0) & (nx < size) & (ny >= 0) & (ny < size)

        # The disc center is always inside, so every row sum is positive.
        raw_rows = np.where(valid, raw[None, :], 0.0)
        norm_rows = raw_rows / raw_rows.sum(axis=1, keepdims=True)

        counts[cell] = valid.sum(axis=1)
        index_parts.append((ny * size + nx)[valid])
        weight_parts.append(norm_rows[valid])

    offsets = np.zeros(total + 1, dtype=np.int64)
    np.cumsum(counts, out=offsets[1:])
    return BrushKernel(
        size=size,
        radius=radius,
        offsets=offsets,
        indices=np.concatenate(index_parts).astype(np.int64),
        weights=np.concatenate(weight_parts).astype(np.float64),
    )
