from __future__ import annotations

from PIL import Image
import numpy as np
import pytest

from erosion.derive import as_grid, height_to_u16
from erosion.io import write_heightmap
from erosion.noise import generate_base_heightmap
from erosion.rng import make_generator


def test_base_heightmap_is_flat_and_normalized() -> None:
    heights = generate_base_heightmap(64, make_generator(1))

    assert heights.shape == (64 * 64,)
    assert heights.dtype == np.float32
    assert float(heights.min()) >= 0.0
    assert float(heights.max()) <= 1.0
    assert float(heights.std()) > 0.01
    assert np.array_equal(heights, generate_base_heightmap(64, make_generator(1)))


def test_u16_encoding_clamps_out_of_range_heights() -> None:
    encoded = height_to_u16(np.array([-0.01, 0.0, 0.5, 1.0, 1.02]))

    assert encoded.dtype == np.uint16
    assert encoded.tolist() == [0, 0, 32768, 65535, 65535]


def test_u16_rescale_spans_full_range() -> None:
    encoded = height_to_u16(np.array([0.25, 0.5, 0.75]), rescale=True)

    assert encoded.tolist() == [0, 32768, 65535]


def test_as_grid_rejects_wrong_length() -> None:
    with pytest.raises(ValueError):
        as_grid(np.zeros(10), 4)


def test_heightmap_raster_is_16bit(tmp_path) -> None:
    heights = generate_base_heightmap(32, make_generator(2))
    out_path = write_heightmap(tmp_path / "height.png", heights, 32)

    with Image.open(out_path) as image:
        assert image.mode in {"I", "I;16"}
        assert image.size == (32, 32)
