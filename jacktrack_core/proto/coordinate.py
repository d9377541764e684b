"""
Geographic coordinate value type (WGS84 degrees).

Used for the user's position, ball positions and course pin/tee locations.
"""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Coordinate:
    """
    Immutable latitude/longitude pair in degrees.

    The constructor does not range-check: geometry on out-of-range values is
    a caller precondition violation. Use Coordinate.validated() at system
    boundaries where input is untrusted.

    Attributes:
        latitude: Latitude in degrees [-90, 90]
        longitude: Longitude in degrees [-180, 180]
    """

    latitude: float
    longitude: float

    @classmethod
    def validated(cls, latitude: float, longitude: float) -> "Coordinate":
        """
        Build a coordinate, rejecting out-of-range values.

        Raises:
            ValueError: latitude or longitude outside its range
        """
        if not -90.0 <= latitude <= 90.0:
            raise ValueError(f"Latitude must be in [-90, 90]: {latitude}")
        if not -180.0 <= longitude <= 180.0:
            raise ValueError(f"Longitude must be in [-180, 180]: {longitude}")
        return cls(float(latitude), float(longitude))

    @classmethod
    def from_dict(cls, data: dict) -> "Coordinate":
        """Build from a {'latitude': ..., 'longitude': ...} mapping."""
        return cls.validated(data["latitude"], data["longitude"])

    @property
    def is_valid(self) -> bool:
        """True if both components are within range."""
        return -90.0 <= self.latitude <= 90.0 and -180.0 <= self.longitude <= 180.0

    def as_tuple(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)

    def to_dict(self) -> dict:
        return {'latitude': self.latitude, 'longitude': self.longitude}
