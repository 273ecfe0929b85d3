"""CUDA kernel running the shared droplet model, one thread per droplet."""

from __future__ import annotations

from numba import cuda

from erosion.droplet import build_droplet_model

GPU_MODEL = build_droplet_model(cuda.jit(device=True))

_simulate = GPU_MODEL.simulate


@cuda.jit
def erode_kernel(heights, size, offsets, indices, weights, spawn_x, spawn_y, params, outcomes):
    i = cuda.grid(1)
    if i < spawn_x.shape[0]:
        outcomes[i] = _simulate(heights, size, offsets, indices, weights, spawn_x[i], spawn_y[i], params)
