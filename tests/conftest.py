"""
Pytest configuration and shared fixtures for JackTrack core tests.

Provides course data, coordinates around Pebble Beach hole 7, a controllable
clock, and pre-wired registry / tracker / navigation / scorecard objects.
Every fixture gets its own MetricsCollector so counters never leak between
tests.
"""

import sys
from pathlib import Path
from typing import Callable, Iterator, List

import pytest

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from jacktrack_core.domain import ScorecardEngine, StaticCourseProvider
from jacktrack_core.io import InMemoryRoundStore, NullBallLink
from jacktrack_core.localization import (
    DeviceRegistry,
    LocationTracker,
    NavigationSession,
    RegistryConfig,
)
from jacktrack_core.metrics import MetricsCollector
from jacktrack_core.proto import Coordinate, Course, DiscoveryEvent, LocationFix, create_fix


# =============================================================================
# Coordinates and Course
# =============================================================================


TEE = Coordinate(36.5650, -121.9480)
PIN = Coordinate(36.5674, -121.9500)


@pytest.fixture
def tee() -> Coordinate:
    """Hole 7 tee."""
    return TEE


@pytest.fixture
def pin() -> Coordinate:
    """Hole 7 pin."""
    return PIN


@pytest.fixture
def course_data() -> dict:
    """
    Three-hole course in provider dict format.

    Pars 4, 3, 5 (total 12); hole 2 carries pin and tee locations.
    """
    return {
        "course_id": "test-links",
        "name": "Test Links",
        "holes": [
            {"number": 1, "par": 4, "yardage": 380},
            {
                "number": 2, "par": 3, "yardage": 160,
                "pin": {"latitude": PIN.latitude, "longitude": PIN.longitude},
                "tee": {"latitude": TEE.latitude, "longitude": TEE.longitude},
            },
            {"number": 3, "par": 5, "yardage": 520},
        ],
    }


@pytest.fixture
def course(course_data) -> Course:
    return StaticCourseProvider.from_dicts([course_data]).load_course("test-links")


# =============================================================================
# Infrastructure
# =============================================================================


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def metrics() -> MetricsCollector:
    """Fresh metrics collector per test."""
    return MetricsCollector()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def link() -> NullBallLink:
    return NullBallLink()


# =============================================================================
# Registry
# =============================================================================


def make_discovery(
    ball_id: str,
    latitude: float = 36.5662,
    longitude: float = -121.9489,
    battery: int = 80,
    signal: int = -60,
    name: str = None,
) -> DiscoveryEvent:
    """Discovery event with sensible defaults."""
    return DiscoveryEvent(
        ball_id=ball_id,
        name=name or ball_id.replace("ball-", "Ball "),
        position=Coordinate(latitude, longitude),
        battery=battery,
        signal=signal,
    )


@pytest.fixture
def registry(link, metrics, clock) -> DeviceRegistry:
    """Empty registry, not scanning."""
    return DeviceRegistry(link=link, config=RegistryConfig(), metrics=metrics, clock=clock)


@pytest.fixture
def scanning_registry(registry) -> DeviceRegistry:
    """Scanning registry with ball-1, ball-2 and ball-3 discovered."""
    registry.start_scan()
    registry.on_discovery(make_discovery("ball-1", 36.5662, -121.9489))
    registry.on_discovery(make_discovery("ball-2", 36.5668, -121.9495))
    registry.on_discovery(make_discovery("ball-3", 36.5659, -121.9502))
    return registry


# =============================================================================
# Location
# =============================================================================


def fixes_source(fixes: List[LocationFix]) -> Callable[[], Iterator[LocationFix]]:
    """Restartable source replaying the same list each time it is started."""
    return lambda: iter(list(fixes))


@pytest.fixture
def tracker_at_tee(metrics) -> LocationTracker:
    """Tracker started and holding one fix at the tee."""
    tracker = LocationTracker(
        fixes_source([create_fix(TEE.latitude, TEE.longitude)]), metrics=metrics
    )
    tracker.start()
    tracker.poll()
    return tracker


@pytest.fixture
def tracker_no_fix(metrics) -> LocationTracker:
    """Tracker whose source never produces a fix."""
    return LocationTracker(fixes_source([]), metrics=metrics)


@pytest.fixture
def navigation(scanning_registry, tracker_at_tee, course) -> NavigationSession:
    session = NavigationSession(scanning_registry, tracker_at_tee, hole=course.hole(2))
    yield session
    session.close()


# =============================================================================
# Scorecard
# =============================================================================


@pytest.fixture
def round_store() -> InMemoryRoundStore:
    return InMemoryRoundStore()


@pytest.fixture
def engine(course, round_store, metrics) -> ScorecardEngine:
    """Fresh round on the three-hole course with a fixed save time."""
    return ScorecardEngine(course, store=round_store, metrics=metrics, clock=lambda: 1700000000.0)
