"""
Error kinds raised to callers of the tracking and scoring core.

Two families are kept apart so the presentation layer can choose between
reprompting and silently ignoring:

- RejectedInput: the caller passed something invalid (unknown ball, score
  out of range). The UI should reprompt.
- PreconditionNotMet: the input was fine but the operation cannot run yet
  (no location fix, nothing scored). The UI may ignore or show a hint.

Connection timeouts are NOT errors: a connect attempt that never confirms
moves the ball to ConnectionState.LOST.
"""

from typing import Optional


class JackTrackError(Exception):
    """Base class for all core errors."""


class RejectedInput(JackTrackError):
    """Caller supplied invalid input."""


class PreconditionNotMet(JackTrackError):
    """Operation requested before its preconditions hold."""


class InvalidTarget(RejectedInput):
    """Navigation selection references a ball that is not known."""

    def __init__(self, ball_id: str):
        super().__init__(f"Unknown navigation target: {ball_id!r}")
        self.ball_id = ball_id


class InvalidScore(RejectedInput):
    """Score outside [0, max_strokes], or hole not on the loaded course."""

    def __init__(self, hole_number, strokes, reason: str):
        super().__init__(f"Invalid score {strokes!r} for hole {hole_number!r}: {reason}")
        self.hole_number = hole_number
        self.strokes = strokes
        self.reason = reason


class UnknownBall(RejectedInput):
    """Registry operation references a ball id that was never discovered."""

    def __init__(self, ball_id: str):
        super().__init__(f"Unknown ball: {ball_id!r}")
        self.ball_id = ball_id


class UnknownCourse(RejectedInput):
    """Course provider has no course with this id."""

    def __init__(self, course_id: str):
        super().__init__(f"Unknown course: {course_id!r}")
        self.course_id = course_id


class EmptyRound(PreconditionNotMet):
    """Save attempted before any score was entered."""

    def __init__(self, player_name: Optional[str] = None):
        super().__init__("Cannot save a round with no scores")
        self.player_name = player_name


class NoLocationFix(PreconditionNotMet):
    """Distance requested before the user's position is known."""

    def __init__(self, message: str = "No location fix yet"):
        super().__init__(message)


class NoTargetSelected(PreconditionNotMet):
    """Navigation requested without a selected ball."""

    def __init__(self, message: str = "No navigation target selected"):
        super().__init__(message)


class LocationPermissionDenied(JackTrackError):
    """Location source reported a permission denial. Terminal, never retried."""

    def __init__(self, message: str = "Location permission denied"):
        super().__init__(message)
