"""
Navigation State Schema.

Read-only view model published by NavigationSession.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class NavigationState:
    """
    Snapshot of the navigation view.

    Distances are derived at snapshot time from the current user fix and
    the current target; None means unavailable (no fix or no target).

    Attributes:
        target_id: Selected ball id, or None
        target_name: Display name of the selected ball
        navigating: True while actively navigating to the target
        distance_m: Meters from user to target ball
        bearing_deg: Initial bearing from user to target ball (0 = north)
        hole_distance_m: Meters from user to the active hole's pin
        has_fix: True once the user position is known
    """

    target_id: Optional[str] = None
    target_name: Optional[str] = None
    navigating: bool = False
    distance_m: Optional[int] = None
    bearing_deg: Optional[float] = None
    hole_distance_m: Optional[int] = None
    has_fix: bool = False

    @property
    def has_target(self) -> bool:
        return self.target_id is not None

    def to_dict(self) -> dict:
        return {
            'target_id': self.target_id,
            'target_name': self.target_name,
            'navigating': self.navigating,
            'distance_m': self.distance_m,
            'bearing_deg': self.bearing_deg,
            'hole_distance_m': self.hole_distance_m,
            'has_fix': self.has_fix,
        }
