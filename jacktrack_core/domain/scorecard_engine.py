"""
Scorecard Engine.

Holds one round's per-hole strokes and derives the round statistics shown
on the scorecard (total, relative to par, holes played, average).

Aggregates are recomputed from the stored scores on every call, never kept
as running totals.
"""

import logging
import numbers
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from jacktrack_core.errors import EmptyRound, InvalidScore
from jacktrack_core.events import ListenerRegistry
from jacktrack_core.io.round_store import RoundStore
from jacktrack_core.metrics import get_metrics
from jacktrack_core.metrics.counters import MetricsCollector
from jacktrack_core.proto.course import Course
from jacktrack_core.proto.scorecard import RoundStats, SavedRound, ScorecardGame

logger = logging.getLogger(__name__)

DEFAULT_PLAYER_NAME = "Player 1"


@dataclass
class ScorecardConfig:
    """
    Configuration for the scorecard engine.

    Attributes:
        max_strokes: Highest accepted stroke count for one hole
    """

    max_strokes: int = 15


class ScorecardEngine:
    """
    Score accumulation for a single round.

    Usage:
        engine = ScorecardEngine(course, store=round_store)
        engine.set_score(1, 4)
        engine.aggregate().total_score   # 4
        engine.save("Alex")              # SavedRound, handed to the store
        engine.reset()
    """

    def __init__(
        self,
        course: Course,
        player_name: str = DEFAULT_PLAYER_NAME,
        store: Optional[RoundStore] = None,
        config: Optional[ScorecardConfig] = None,
        metrics: Optional[MetricsCollector] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize a fresh round (all scores zero).

        Args:
            course: Loaded course; defines valid hole numbers and pars
            player_name: Initial player name
            store: Persistence collaborator receiving saved rounds
            config: Engine configuration (uses defaults if None)
            metrics: Metrics collector (global collector if None)
            clock: Wall clock used for save timestamps
        """
        self.course = course
        self.store = store
        self.config = config or ScorecardConfig()
        self.metrics = metrics or get_metrics()
        self._clock = clock

        self._lock = threading.Lock()
        self._pars = course.par_by_hole()
        self._scores: Dict[int, int] = {number: 0 for number in course.hole_numbers}
        self._player_name = player_name
        self._saved_at: Optional[float] = None
        self._listeners = ListenerRegistry()

    @property
    def player_name(self) -> str:
        return self._player_name

    @player_name.setter
    def player_name(self, name: str):
        self._player_name = name

    @property
    def scores(self) -> Dict[int, int]:
        """Copy of hole number -> strokes."""
        with self._lock:
            return dict(self._scores)

    def game(self) -> ScorecardGame:
        """Read-only view of the round in progress."""
        with self._lock:
            return ScorecardGame(
                player_name=self._player_name,
                scores=dict(self._scores),
                saved_at=self._saved_at,
            )

    def score_for(self, hole_number: int) -> int:
        """Strokes on a hole (0 = unplayed)."""
        self._check_hole(hole_number, None)
        return self._scores[hole_number]

    def set_score(self, hole_number: int, strokes: int):
        """
        Set (or overwrite) the strokes for one hole. 0 marks it unplayed.

        Raises:
            InvalidScore: hole not on the course, strokes not an integer,
                or strokes outside [0, max_strokes]
        """
        self._check_hole(hole_number, strokes)
        if isinstance(strokes, bool) or not isinstance(strokes, numbers.Integral):
            raise InvalidScore(hole_number, strokes, "strokes must be an integer")
        if strokes < 0 or strokes > self.config.max_strokes:
            raise InvalidScore(
                hole_number, strokes, f"strokes must be in [0, {self.config.max_strokes}]"
            )

        with self._lock:
            previous = self._scores[hole_number]
            self._scores[hole_number] = int(strokes)
        self.metrics.increment('scores_set')
        logger.debug(f"Hole {hole_number}: {previous} -> {strokes}")
        self._publish()

    def increment_score(self, hole_number: int) -> int:
        """Add one stroke, capped at max_strokes. Returns the new value."""
        current = self.score_for(hole_number)
        if current < self.config.max_strokes:
            self.set_score(hole_number, current + 1)
        return self._scores[hole_number]

    def decrement_score(self, hole_number: int) -> int:
        """Remove one stroke, floored at 0. Returns the new value."""
        current = self.score_for(hole_number)
        if current > 0:
            self.set_score(hole_number, current - 1)
        return self._scores[hole_number]

    def aggregate(self) -> RoundStats:
        """Round statistics computed from the current scores."""
        with self._lock:
            scores = dict(self._scores)
        return RoundStats.from_scores(scores, self._pars)

    def hole_relative_to_par(self, hole_number: int) -> Optional[int]:
        """Strokes minus par for a played hole, None if unplayed."""
        strokes = self.score_for(hole_number)
        if strokes == 0:
            return None
        return strokes - self._pars[hole_number]

    def save(self, player_name: Optional[str] = None) -> SavedRound:
        """
        Snapshot the round and hand it to the round store.

        Args:
            player_name: Name to save under (also becomes the current name);
                current player name if None

        Returns:
            Immutable SavedRound

        Raises:
            EmptyRound: no hole has a score
        """
        with self._lock:
            scores = dict(self._scores)
            name = player_name if player_name is not None else self._player_name
        if RoundStats.from_scores(scores, self._pars).total_score == 0:
            logger.info(f"Save refused for {name}: no scores entered")
            raise EmptyRound(name)

        saved_at = self._clock()
        snapshot = SavedRound(
            round_id=uuid.uuid4().hex,
            player_name=name,
            course_id=self.course.course_id,
            scores=tuple(sorted(scores.items())),
            pars=tuple(sorted(self._pars.items())),
            saved_at=saved_at,
        )
        if self.store is not None:
            self.store.save_round(snapshot)
        with self._lock:
            self._player_name = name
            self._saved_at = saved_at
        self.metrics.increment('rounds_saved')
        logger.info(f"Round saved for {name}: total {snapshot.total_score}")
        return snapshot

    def reset(self):
        """Zero every hole. Player name and course are kept."""
        with self._lock:
            for number in self._scores:
                self._scores[number] = 0
            self._saved_at = None
        logger.info("Scorecard reset")
        self._publish()

    def subscribe(self, listener: Callable[[RoundStats], None]) -> Callable[[], None]:
        """Call listener with fresh RoundStats after every score change or reset."""
        return self._listeners.add(listener)

    def _check_hole(self, hole_number, strokes):
        if hole_number not in self._scores:
            raise InvalidScore(hole_number, strokes, "hole not on course")

    def _publish(self):
        if len(self._listeners):
            self._listeners.notify(self.aggregate())
