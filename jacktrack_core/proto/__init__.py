"""
Protocol Module: Value types exchanged between core and collaborators.

- Coordinates and location stream items
- Tracked ball records and discovery events
- Course reference data
- Round statistics and saved-round snapshots
- Navigation view model
"""

from .coordinate import Coordinate
from .location_fix import (
    LocationFix,
    FixStatus,
    create_fix,
    create_no_fix,
    create_permission_denied,
)
from .tracked_ball import (
    TrackedBall,
    ConnectionState,
    DiscoveryEvent,
    ALLOWED_TRANSITIONS,
    can_transition,
    clamp_battery,
)
from .course import Hole, Course
from .scorecard import RoundStats, SavedRound, ScorecardGame
from .navigation_state import NavigationState

__all__ = [
    'Coordinate',
    'LocationFix',
    'FixStatus',
    'create_fix',
    'create_no_fix',
    'create_permission_denied',
    'TrackedBall',
    'ConnectionState',
    'DiscoveryEvent',
    'ALLOWED_TRANSITIONS',
    'can_transition',
    'clamp_battery',
    'Hole',
    'Course',
    'RoundStats',
    'SavedRound',
    'ScorecardGame',
    'NavigationState',
]
