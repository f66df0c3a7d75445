"""Occupancy snapshot value object."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, eq=True)
class OccupancySnapshot:
    """Point-in-time occupancy.

    Attributes:
        current: Number of checked-in visits.
        max_occupancy: Configured capacity.
        rate: current / max_occupancy, 0 when capacity is not positive.
    """

    current: int
    max_occupancy: int
    rate: float

    @classmethod
    def compute(cls, current: int, max_occupancy: int) -> OccupancySnapshot:
        rate = current / max_occupancy if max_occupancy > 0 else 0.0
        return cls(current=current, max_occupancy=max_occupancy, rate=rate)

    def to_dict(self) -> dict[str, Any]:
        return {"current": self.current, "max": self.max_occupancy, "rate": self.rate}
