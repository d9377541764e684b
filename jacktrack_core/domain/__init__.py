"""
Domain Module: Round scoring and course data.

- ScorecardEngine: per-hole strokes and round statistics
- StaticCourseProvider: course reference data collaborator
"""

from .scorecard_engine import (
    ScorecardEngine,
    ScorecardConfig,
    DEFAULT_PLAYER_NAME,
)
from .course_provider import CourseProvider, StaticCourseProvider

__all__ = [
    'ScorecardEngine',
    'ScorecardConfig',
    'DEFAULT_PLAYER_NAME',
    'CourseProvider',
    'StaticCourseProvider',
]
