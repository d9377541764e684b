"""
Location Fix Schema.

One item of the user-location stream delivered by the platform location
collaborator.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional
import time

from .coordinate import Coordinate


class FixStatus(IntEnum):
    """Status of a location stream item."""

    NO_FIX = 0              # Source is running but has no position yet
    FIX = 1                 # Valid position
    PERMISSION_DENIED = 2   # Terminal: user refused location access


@dataclass(frozen=True)
class LocationFix:
    """
    Location stream item.

    Attributes:
        status: FixStatus
        coordinate: Position (required for FIX, None otherwise)
        accuracy_m: Horizontal accuracy reported by the platform (optional)
        timestamp: Monotonic time the fix was produced
    """

    status: FixStatus
    coordinate: Optional[Coordinate] = None
    accuracy_m: Optional[float] = None
    timestamp: float = field(default_factory=time.monotonic)

    def __post_init__(self):
        if self.status == FixStatus.FIX and self.coordinate is None:
            raise ValueError("FIX requires a coordinate")
        if self.accuracy_m is not None and self.accuracy_m < 0:
            raise ValueError(f"Accuracy cannot be negative: {self.accuracy_m}")

    @property
    def has_fix(self) -> bool:
        return self.status == FixStatus.FIX


def create_fix(latitude: float, longitude: float, accuracy_m: Optional[float] = None) -> LocationFix:
    """Create a FIX item from raw degrees."""
    return LocationFix(
        status=FixStatus.FIX,
        coordinate=Coordinate(latitude, longitude),
        accuracy_m=accuracy_m,
    )


def create_no_fix() -> LocationFix:
    return LocationFix(status=FixStatus.NO_FIX)


def create_permission_denied() -> LocationFix:
    return LocationFix(status=FixStatus.PERMISSION_DENIED)
