"""Per-call erosion summaries."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

import numpy as np

from erosion.droplet import DropletOutcome


@dataclass(frozen=True)
class ErosionReport:
    """What one ``erode`` call did to the height buffer."""

    mode: str
    iterations: int
    off_map: int
    stalled: int
    lifetime_expired: int
    height_sum_before: float
    height_sum_after: float
    brush_rebuilt: bool
    seconds: float

    @property
    def height_sum_delta(self) -> float:
        return self.height_sum_after - self.height_sum_before

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["height_sum_delta"] = self.height_sum_delta
        return payload


def outcome_counts(outcomes: np.ndarray) -> dict[DropletOutcome, int]:
    """Count droplets per termination state."""

    counts = np.bincount(outcomes.astype(np.int64), minlength=len(DropletOutcome))
    return {outcome: int(counts[outcome.value]) for outcome in DropletOutcome}


def height_stats(heights: np.ndarray) -> dict[str, float]:
    """Summary statistics of a height buffer, accumulated in float64."""

    values = heights.astype(np.float64, copy=False)
    return {
        "min": float(values.min()),
        "max": float(values.max()),
        "mean": float(values.mean()),
        "sum": float(values.sum()),
    }
