"""Execution strategies for running a batch of droplets."""

from __future__ import annotations

from enum import Enum
import logging
from typing import Any

import numba
from numba import njit, prange
from numba.core.errors import NumbaError
import numpy as np

from erosion.brush import BrushKernel
from erosion.droplet import CPU_MODEL
from erosion.errors import DeviceAllocationError, DeviceUnavailableError, KernelBuildError, KernelLoadError

logger = logging.getLogger(__name__)

_simulate = CPU_MODEL.simulate


class ComputeMode(str, Enum):
    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"
    GPU = "gpu"


@njit(nogil=True)
def _run_sequential(heights, size, offsets, indices, weights, spawn_x, spawn_y, params, outcomes):
    for i in range(spawn_x.shape[0]):
        outcomes[i] = _simulate(heights, size, offsets, indices, weights, spawn_x[i], spawn_y[i], params)


@njit(nogil=True, parallel=True)
def _run_parallel(heights, size, offsets, indices, weights, spawn_x, spawn_y, params, outcomes):
    # Droplets write the shared buffer without synchronization.
    for i in prange(spawn_x.shape[0]):
        outcomes[i] = _simulate(heights, size, offsets, indices, weights, spawn_x[i], spawn_y[i], params)


class ComputeBackend:
    """Runs droplets from precomputed spawn points against a flat height buffer."""

    mode: ComputeMode
    deterministic: bool = False

    def run(
        self,
        heights: np.ndarray,
        size: int,
        brush: BrushKernel,
        spawn_x: np.ndarray,
        spawn_y: np.ndarray,
        params: np.ndarray,
        outcomes: np.ndarray,
    ) -> None:
        raise NotImplementedError

    def close(self) -> None:
        """Release backend resources. CPU backends hold none."""


class SequentialBackend(ComputeBackend):
    """Droplets run one after another; droplet N sees every change made by N-1."""

    mode = ComputeMode.SEQUENTIAL
    deterministic = True

    def run(self, heights, size, brush, spawn_x, spawn_y, params, outcomes) -> None:
        _run_sequential(
            heights, size, brush.offsets, brush.indices, brush.weights, spawn_x, spawn_y, params, outcomes
        )


class ParallelBackend(ComputeBackend):
    """Droplets are spread across a Numba thread pool with no locking.

    Two droplets may read and write the same cell concurrently, so results
    are statistically similar to the sequential mode but not reproducible
    from run to run. Use ``SequentialBackend`` when determinism matters.
    """

    mode = ComputeMode.PARALLEL

    def __init__(self, threads: int | None = None) -> None:
        if threads is not None:
            if threads < 1:
                raise ValueError(f"threads must be >= 1, got {threads}")
            threads = min(threads, numba.config.NUMBA_NUM_THREADS)
        self.threads = threads

    def run(self, heights, size, brush, spawn_x, spawn_y, params, outcomes) -> None:
        if self.threads is not None:
            numba.set_num_threads(self.threads)
        _run_parallel(
            heights, size, brush.offsets, brush.indices, brush.weights, spawn_x, spawn_y, params, outcomes
        )


class GpuBackend(ComputeBackend):
    """Runs every droplet in one CUDA kernel launch.

    The host uploads heights, the brush table, spawn points and parameters,
    launches a single kernel on the backend's stream, waits for it, and
    copies heights and outcomes back. Droplets race on shared cells exactly
    as in the parallel mode.
    """

    mode = ComputeMode.GPU

    def __init__(self, *, threads_per_block: int = 128) -> None:
        if threads_per_block < 1:
            raise ValueError(f"threads_per_block must be >= 1, got {threads_per_block}")
        try:
            from numba import cuda
            from numba.cuda.cudadrv.error import CudaSupportError
        except ImportError as exc:
            raise DeviceUnavailableError("cuda runtime", f"numba.cuda could not be imported ({exc})") from exc

        if not cuda.is_available():
            raise DeviceUnavailableError("cuda device", "no CUDA-capable device or driver was found")
        try:
            self._device = cuda.get_current_device()
            self._stream = cuda.stream()
        except CudaSupportError as exc:
            raise DeviceUnavailableError("cuda device", str(exc)) from exc

        try:
            from erosion import gpu_kernel
        except (NumbaError, ImportError, CudaSupportError) as exc:
            raise KernelLoadError("droplet device functions", str(exc)) from exc

        self._cuda = cuda
        self._kernel = gpu_kernel.erode_kernel
        self.threads_per_block = threads_per_block
        self._brush: BrushKernel | None = None
        self._brush_buffers: tuple[Any, Any, Any] | None = None
        logger.debug("gpu backend bound to %s", self._device.name)

    def _to_device(self, what: str, array: np.ndarray):
        from numba.cuda.cudadrv.driver import CudaAPIError

        try:
            return self._cuda.to_device(array, stream=self._stream)
        except CudaAPIError as exc:
            raise DeviceAllocationError(what, f"could not allocate {array.nbytes} bytes ({exc})") from exc

    def _upload_brush(self, brush: BrushKernel) -> tuple[Any, Any, Any]:
        if self._brush is not brush or self._brush_buffers is None:
            self._brush_buffers = (
                self._to_device("brush offsets", brush.offsets),
                self._to_device("brush indices", brush.indices),
                self._to_device("brush weights", brush.weights),
            )
            self._brush = brush
        return self._brush_buffers

    def run(self, heights, size, brush, spawn_x, spawn_y, params, outcomes) -> None:
        d_offsets, d_indices, d_weights = self._upload_brush(brush)
        d_heights = self._to_device("height buffer", heights)
        d_spawn_x = self._to_device("spawn x", spawn_x)
        d_spawn_y = self._to_device("spawn y", spawn_y)
        d_params = self._to_device("parameters", params)
        d_outcomes = self._to_device("outcomes", outcomes)

        blocks = (spawn_x.shape[0] + self.threads_per_block - 1) // self.threads_per_block
        try:
            self._kernel[blocks, self.threads_per_block, self._stream](
                d_heights, size, d_offsets, d_indices, d_weights, d_spawn_x, d_spawn_y, d_params, d_outcomes
            )
        except NumbaError as exc:
            raise KernelBuildError("erosion kernel", str(exc)) from exc
        self._stream.synchronize()

        d_heights.copy_to_host(heights, stream=self._stream)
        d_outcomes.copy_to_host(outcomes, stream=self._stream)
        self._stream.synchronize()

    def close(self) -> None:
        self._brush = None
        self._brush_buffers = None


def make_backend(mode: ComputeMode | str, *, threads: int | None = None) -> ComputeBackend:
    """Create the backend for ``mode``; GPU construction fails fast if no device is usable."""

    try:
        mode = ComputeMode(mode)
    except ValueError:
        choices = ", ".join(m.value for m in ComputeMode)
        raise ValueError(f"unknown compute mode {mode!r}; expected one of: {choices}") from None

    if mode is ComputeMode.SEQUENTIAL:
        return SequentialBackend()
    if mode is ComputeMode.PARALLEL:
        return ParallelBackend(threads)
    return GpuBackend()
