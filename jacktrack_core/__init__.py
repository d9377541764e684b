"""
JackTrack Core Package.

Tracking and scoring logic for the JackTrack golf-ball tracker: BLE ball
registry, live distances to balls and pins, and round scorecard statistics.
The mobile screens only render what these objects expose.

Package structure:
- proto: Value types (coordinates, tracked balls, course, saved rounds)
- localization: Great-circle distance, user location, ball registry, navigation
- domain: Scorecard engine and course data
- io: External collaborator contracts (BLE link, round store)
- metrics: Diagnostics, counters, histograms
"""

__version__ = "0.1.0"
__author__ = "JackTrack Team"

from .errors import (
    JackTrackError,
    RejectedInput,
    PreconditionNotMet,
    InvalidTarget,
    InvalidScore,
    UnknownBall,
    UnknownCourse,
    EmptyRound,
    NoLocationFix,
    NoTargetSelected,
    LocationPermissionDenied,
)

__all__ = [
    'JackTrackError',
    'RejectedInput',
    'PreconditionNotMet',
    'InvalidTarget',
    'InvalidScore',
    'UnknownBall',
    'UnknownCourse',
    'EmptyRound',
    'NoLocationFix',
    'NoTargetSelected',
    'LocationPermissionDenied',
]
