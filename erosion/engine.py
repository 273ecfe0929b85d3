"""Droplet erosion engine: brush caching, reseeding, and backend dispatch."""

from __future__ import annotations

import logging
import time

import numpy as np

from erosion.backends import ComputeBackend, ComputeMode, make_backend
from erosion.brush import BrushKernel, build_brush
from erosion.config import DEFAULT_SEED, ErosionParameters, validate_parameters
from erosion.droplet import DropletOutcome, pack_parameters
from erosion.metrics import ErosionReport, outcome_counts
from erosion.rng import RandomSource

logger = logging.getLogger(__name__)


def flat_height_view(heights: np.ndarray, size: int) -> np.ndarray:
    """Return a flat, writeable view of ``heights`` or raise ValueError."""

    if isinstance(size, bool) or int(size) != size or size < 2:
        raise ValueError(f"size must be an integer >= 2, got {size!r}")
    if not isinstance(heights, np.ndarray):
        raise ValueError(f"heights must be a numpy array, got {type(heights).__name__}")
    if heights.dtype not in (np.float32, np.float64):
        raise ValueError(f"heights must be float32 or float64, got {heights.dtype}")
    if heights.size != size * size:
        raise ValueError(f"heights has {heights.size} cells, expected {size}x{size}={size * size}")
    if not heights.flags.c_contiguous:
        raise ValueError("heights must be C-contiguous to be eroded in place")
    if not heights.flags.writeable:
        raise ValueError("heights must be writeable")
    return heights.reshape(-1)


class ErosionEngine:
    """Runs batches of droplets over a caller-owned heightmap.

    The engine owns the parameters, the brush cache and the random source.
    The height buffer is only borrowed for the duration of ``erode``.
    """

    def __init__(
        self,
        params: ErosionParameters | None = None,
        *,
        mode: ComputeMode | str = ComputeMode.SEQUENTIAL,
        seed: int = DEFAULT_SEED,
        random_source: RandomSource | None = None,
        backend: ComputeBackend | None = None,
        threads: int | None = None,
    ) -> None:
        self.params = validate_parameters(params or ErosionParameters())
        self.backend = backend or make_backend(mode, threads=threads)
        self.seed = int(seed)
        self.random = random_source or RandomSource(self.seed)
        self.brush_builds = 0
        self._brush: BrushKernel | None = None

    def __enter__(self) -> "ErosionEngine":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self.backend.close()

    def configure(self, params: ErosionParameters) -> None:
        self.params = validate_parameters(params)

    def set_seed(self, value: int) -> None:
        self.seed = int(value)
        self.random.reseed(self.seed)

    def brush_for(self, size: int) -> tuple[BrushKernel, bool]:
        """Return the cached brush, rebuilding it if size or radius changed."""

        radius = self.params.erosion_radius
        brush = self._brush
        if brush is not None and brush.size == size and brush.radius == radius:
            return brush, False

        start = time.perf_counter()
        brush = build_brush(size, radius)
        self._brush = brush
        self.brush_builds += 1
        logger.debug(
            "built brush size=%d radius=%d entries=%d in %.3fs",
            size,
            radius,
            brush.indices.shape[0],
            time.perf_counter() - start,
        )
        return brush, True

    def erode(
        self,
        heights: np.ndarray,
        size: int,
        iterations: int,
        *,
        force_reseed: bool = False,
    ) -> ErosionReport:
        """Drop ``iterations`` droplets on ``heights`` and mutate it in place."""

        flat = flat_height_view(heights, size)
        if iterations < 0:
            raise ValueError(f"iterations must be >= 0, got {iterations}")
        size = int(size)
        iterations = int(iterations)

        start = time.perf_counter()
        self.random.reseed(self.seed, force=force_reseed)
        sum_before = float(flat.sum(dtype=np.float64))
        if iterations == 0:
            return ErosionReport(
                mode=self.backend.mode.value,
                iterations=0,
                off_map=0,
                stalled=0,
                lifetime_expired=0,
                height_sum_before=sum_before,
                height_sum_after=sum_before,
                brush_rebuilt=False,
                seconds=time.perf_counter() - start,
            )

        brush, rebuilt = self.brush_for(size)
        spawn_x, spawn_y = self.random.spawn_positions(iterations, size)
        spawn_x = np.ascontiguousarray(spawn_x, dtype=np.float64)
        spawn_y = np.ascontiguousarray(spawn_y, dtype=np.float64)
        outcomes = np.zeros(iterations, dtype=np.int8)

        self.backend.run(flat, size, brush, spawn_x, spawn_y, pack_parameters(self.params), outcomes)

        counts = outcome_counts(outcomes)
        report = ErosionReport(
            mode=self.backend.mode.value,
            iterations=iterations,
            off_map=counts[DropletOutcome.OFF_MAP],
            stalled=counts[DropletOutcome.STALLED],
            lifetime_expired=counts[DropletOutcome.LIFETIME_EXPIRED],
            height_sum_before=sum_before,
            height_sum_after=float(flat.sum(dtype=np.float64)),
            brush_rebuilt=rebuilt,
            seconds=time.perf_counter() - start,
        )
        logger.debug(
            "%s erosion: %d droplets in %.3fs (off_map=%d stalled=%d expired=%d)",
            report.mode,
            iterations,
            report.seconds,
            report.off_map,
            report.stalled,
            report.lifetime_expired,
        )
        return report
