"""Output serialization for eroded heightmaps."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import numpy as np
from PIL import Image

from erosion.derive import as_grid, height_to_u16

# Written when the file extension names no format Pillow knows.
FALLBACK_RASTER_FORMAT = "TIFF"


def write_height_npy(path: str | Path, heights: np.ndarray, size: int) -> None:
    np.save(Path(path), as_grid(heights, size).astype(np.float32), allow_pickle=False)


def write_png_u16(path: str | Path, raster_u16: np.ndarray) -> None:
    target = Path(path)
    image = Image.fromarray(raster_u16.astype(np.uint16))
    if target.suffix.lower() in Image.registered_extensions():
        image.save(target)
    else:
        image.save(target, format=FALLBACK_RASTER_FORMAT)


def write_heightmap(path: str | Path, heights: np.ndarray, size: int, *, rescale: bool = False) -> Path:
    """Write heights as raw ``.npy`` or as a 16-bit raster chosen by extension.

    Unknown extensions still produce a 16-bit raster, stored as TIFF.
    """

    target = Path(path)
    if target.suffix.lower() == ".npy":
        write_height_npy(target, heights, size)
    else:
        write_png_u16(target, height_to_u16(as_grid(heights, size), rescale=rescale))
    return target


def write_json(path: str | Path, payload: dict[str, Any]) -> None:
    text = json.dumps(payload, indent=2, sort_keys=True)
    Path(path).write_text(text + "\n", encoding="utf-8")
