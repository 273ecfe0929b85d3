"""Configuration models for droplet erosion."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
import math
from typing import Any


DEFAULT_RESOLUTION = 512
DEFAULT_ITERATIONS = 70000
DEFAULT_SEED = 1231204

_UNIT_INTERVAL_FIELDS = ("inertia", "erode_speed", "deposit_speed", "evaporate_speed")
_INTEGER_FIELDS = ("erosion_radius", "max_droplet_lifetime")


@dataclass(frozen=True)
class ErosionParameters:
    """Physical constants read by every droplet step."""

    erosion_radius: int = 3
    inertia: float = 0.05
    sediment_capacity_factor: float = 4.0
    min_sediment_capacity: float = 0.01
    erode_speed: float = 0.3
    deposit_speed: float = 0.3
    evaporate_speed: float = 0.01
    gravity: float = 4.0
    max_droplet_lifetime: int = 30
    initial_speed: float = 1.0
    initial_water_volume: float = 1.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def with_overrides(self, **overrides: Any) -> "ErosionParameters":
        """Return a validated copy with the given fields replaced."""

        updated = replace(self, **{k: v for k, v in overrides.items() if v is not None})
        validate_parameters(updated)
        return updated


def validate_parameters(params: ErosionParameters) -> ErosionParameters:
    """Raise ValueError if any parameter is outside its valid range."""

    for item in fields(params):
        value = getattr(params, item.name)
        if not math.isfinite(value):
            raise ValueError(f"{item.name} must be finite, got {value!r}")
        if item.name in _INTEGER_FIELDS:
            if isinstance(value, bool) or int(value) != value:
                raise ValueError(f"{item.name} must be an integer, got {value!r}")
            if value < 1:
                raise ValueError(f"{item.name} must be >= 1, got {value!r}")
            continue
        if item.name in _UNIT_INTERVAL_FIELDS:
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{item.name} must lie in [0, 1], got {value!r}")
        elif value <= 0.0:
            raise ValueError(f"{item.name} must be positive, got {value!r}")
    return params
