"""Seeded random sources for droplet spawning and base terrain."""

from __future__ import annotations

import hashlib
import logging

import numpy as np

logger = logging.getLogger(__name__)


def _normalize_seed(seed: int) -> int:
    return int(seed) & ((1 << 64) - 1)


def derive_seed(parent_seed: int, key: str, *, namespace: str = "erosion-v1") -> int:
    """Derive a deterministic child seed from a parent seed and label."""

    if not key:
        raise ValueError("derive key must be non-empty")
    payload = f"{namespace}:{_normalize_seed(parent_seed)}:{key}".encode("utf-8")
    digest = hashlib.blake2b(payload, digest_size=8, person=b"rngfork00").digest()
    return int.from_bytes(digest, byteorder="big", signed=False)


def make_generator(seed: int) -> np.random.Generator:
    return np.random.Generator(np.random.PCG64(np.uint64(_normalize_seed(seed))))


class RandomSource:
    """Engine-owned generator with explicit reseed semantics.

    Reseeding with the seed that was last applied is a no-op unless forced,
    so an in-progress stream survives repeated ``erode`` calls.
    """

    def __init__(self, seed: int) -> None:
        self._generator = make_generator(seed)
        self._applied_seed = int(seed)

    @property
    def seed(self) -> int:
        return self._applied_seed

    def reseed(self, seed: int, *, force: bool = False) -> bool:
        """Apply ``seed``; return True if the stream was restarted."""

        seed = int(seed)
        if seed == self._applied_seed and not force:
            return False
        self._generator = make_generator(seed)
        self._applied_seed = seed
        logger.debug("random source reseeded with %d (force=%s)", seed, force)
        return True

    def spawn_positions(self, count: int, size: int) -> tuple[np.ndarray, np.ndarray]:
        """Draw ``count`` droplet positions uniformly from ``[0, size-1)``."""

        xs = self._generator.uniform(0.0, float(size - 1), size=count)
        ys = self._generator.uniform(0.0, float(size - 1), size=count)
        return xs.astype(np.float64), ys.astype(np.float64)
