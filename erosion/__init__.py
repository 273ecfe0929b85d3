"""Hydraulic droplet erosion package."""

from .config import DEFAULT_ITERATIONS, DEFAULT_RESOLUTION, DEFAULT_SEED, ErosionParameters
from .engine import ErosionEngine

__all__ = [
    "DEFAULT_RESOLUTION",
    "DEFAULT_ITERATIONS",
    "DEFAULT_SEED",
    "ErosionParameters",
    "ErosionEngine",
]
