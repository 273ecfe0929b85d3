from __future__ import annotations

import sys

import numpy as np
import pytest

from cli.main import main
from erosion.backends import GpuBackend
from erosion.engine import ErosionEngine
from erosion.errors import ComputeBackendError, DeviceUnavailableError, KernelLoadError
from erosion.noise import generate_base_heightmap
from erosion.rng import make_generator

cuda = pytest.importorskip("numba.cuda")

requires_cuda = pytest.mark.skipif(not cuda.is_available(), reason="no CUDA device")


def test_missing_device_is_a_distinct_error(monkeypatch) -> None:
    monkeypatch.setattr(cuda, "is_available", lambda: False)

    with pytest.raises(DeviceUnavailableError) as exc:
        GpuBackend()

    assert isinstance(exc.value, ComputeBackendError)
    assert exc.value.resource == "cuda device"


class _FakeDevice:
    name = b"fake"


def test_missing_device_functions_are_a_kernel_load_error(monkeypatch) -> None:
    import erosion

    monkeypatch.setattr(cuda, "is_available", lambda: True)
    monkeypatch.setattr(cuda, "get_current_device", lambda: _FakeDevice())
    monkeypatch.setattr(cuda, "stream", lambda: object())
    monkeypatch.delattr(erosion, "gpu_kernel", raising=False)
    monkeypatch.setitem(sys.modules, "erosion.gpu_kernel", None)

    with pytest.raises(KernelLoadError) as exc:
        GpuBackend()

    assert exc.value.resource == "droplet device functions"


def test_cli_reports_unavailable_gpu(monkeypatch, tmp_path, capsys) -> None:
    monkeypatch.setattr(cuda, "is_available", lambda: False)

    assert main(["gpu", str(tmp_path / "out.png"), "16", "10"]) == 1
    assert "gpu backend" in capsys.readouterr().err


@requires_cuda
def test_single_droplet_matches_sequential() -> None:
    a = generate_base_heightmap(64, make_generator(2)).astype(np.float64)
    b = a.copy()

    ErosionEngine(seed=8).erode(a, 64, 1)
    with ErosionEngine(seed=8, mode="gpu") as engine:
        engine.erode(b, 64, 1)

    assert np.allclose(a, b, atol=1e-9)


@requires_cuda
def test_gpu_erodes_every_droplet() -> None:
    heights = generate_base_heightmap(64, make_generator(2))
    original = heights.copy()

    with ErosionEngine(seed=8, mode="gpu") as engine:
        report = engine.erode(heights, 64, 5000)

    assert report.off_map + report.stalled + report.lifetime_expired == 5000
    assert np.isfinite(heights).all()
    assert not np.array_equal(heights, original)
