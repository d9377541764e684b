"""
Localization Module: Distances, user location, ball registry, navigation.

Key classes:
- geo_distance: Haversine distance/bearing between coordinates
- LocationTracker: Adapter over the platform location stream
- DeviceRegistry: Tracked balls and their connection state machine
- NavigationSession: Target selection and live distance to the target
"""

from .geo_distance import (
    EARTH_RADIUS_M,
    distance,
    distance_precise,
    distances_from,
    initial_bearing,
    meters_to_yards,
    yards_to_meters,
)
from .location_tracker import LocationTracker, TrackerStatus
from .device_registry import (
    DeviceRegistry,
    RegistryConfig,
    RegistryEvent,
    RegistryEventType,
    ScanSession,
)
from .navigation_session import NavigationSession, NavigationConfig

__all__ = [
    # Geometry
    'EARTH_RADIUS_M',
    'distance',
    'distance_precise',
    'distances_from',
    'initial_bearing',
    'meters_to_yards',
    'yards_to_meters',
    # Location
    'LocationTracker',
    'TrackerStatus',
    # Registry
    'DeviceRegistry',
    'RegistryConfig',
    'RegistryEvent',
    'RegistryEventType',
    'ScanSession',
    # Navigation
    'NavigationSession',
    'NavigationConfig',
]
