"""
Scorecard Schemas.

RoundStats is the aggregate view of a round in progress; SavedRound is the
immutable snapshot handed to the persistence collaborator on save.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional, Tuple
import numpy as np


@dataclass(frozen=True)
class RoundStats:
    """
    Aggregate statistics for one round.

    Attributes:
        total_score: Sum of all nonzero hole scores
        total_par: Sum of par over holes with a nonzero score
        holes_played: Number of holes with a nonzero score
        average_score: total_score / holes_played (0.0 when nothing played)
    """

    total_score: int
    total_par: int
    holes_played: int
    average_score: float

    @classmethod
    def from_scores(cls, scores: Mapping[int, int], pars: Mapping[int, int]) -> "RoundStats":
        """
        Compute stats from per-hole strokes.

        Args:
            scores: hole number -> strokes (0 = unplayed)
            pars: hole number -> par, must cover every hole in scores

        Returns:
            RoundStats computed from scratch
        """
        holes = sorted(scores)
        strokes = np.array([scores[h] for h in holes], dtype=np.int64)
        par = np.array([pars[h] for h in holes], dtype=np.int64)
        played = strokes > 0

        holes_played = int(np.count_nonzero(played))
        total_score = int(strokes[played].sum())
        total_par = int(par[played].sum())
        average = total_score / holes_played if holes_played else 0.0

        return cls(
            total_score=total_score,
            total_par=total_par,
            holes_played=holes_played,
            average_score=float(average),
        )

    @property
    def relative_to_par(self) -> int:
        """Strokes over (+) or under (-) par for the holes played."""
        return self.total_score - self.total_par

    @property
    def relative_to_par_display(self) -> str:
        """'+3', '-1', '0', or '-' when nothing has been played."""
        if self.total_score == 0:
            return "-"
        diff = self.relative_to_par
        return f"+{diff}" if diff > 0 else str(diff)

    def to_dict(self) -> dict:
        return {
            'total_score': self.total_score,
            'total_par': self.total_par,
            'holes_played': self.holes_played,
            'average_score': self.average_score,
            'relative_to_par': self.relative_to_par,
        }


@dataclass(frozen=True)
class ScorecardGame:
    """
    Read-only view of the round in progress.

    Attributes:
        player_name: Current player name
        scores: hole number -> strokes (0 = unplayed), every course hole present
        saved_at: Time of the last save since the last reset, or None
    """

    player_name: str
    scores: Dict[int, int]
    saved_at: Optional[float] = None

    @property
    def holes_played(self) -> int:
        return sum(1 for strokes in self.scores.values() if strokes > 0)


@dataclass(frozen=True)
class SavedRound:
    """
    Immutable snapshot of a saved round.

    Attributes:
        round_id: Unique id for the saved record
        player_name: Player the round belongs to
        course_id: Course the round was played on
        scores: ((hole number, strokes), ...) in hole order, unplayed = 0
        pars: ((hole number, par), ...) in hole order
        saved_at: Wall-clock save time (Unix epoch seconds)
    """

    round_id: str
    player_name: str
    course_id: str
    scores: Tuple[Tuple[int, int], ...]
    pars: Tuple[Tuple[int, int], ...]
    saved_at: float

    @property
    def score_map(self) -> Dict[int, int]:
        """Copy of the scores as a dict."""
        return dict(self.scores)

    @property
    def stats(self) -> RoundStats:
        return RoundStats.from_scores(dict(self.scores), dict(self.pars))

    @property
    def total_score(self) -> int:
        return self.stats.total_score

    @property
    def saved_at_iso(self) -> str:
        return datetime.fromtimestamp(self.saved_at, tz=timezone.utc).isoformat()

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'round_id': self.round_id,
            'player_name': self.player_name,
            'course_id': self.course_id,
            'scores': {str(hole): strokes for hole, strokes in self.scores},
            'saved_at': self.saved_at_iso,
            'stats': self.stats.to_dict(),
        }

    def to_rows(self) -> List[dict]:
        """One flat record per hole, for tabular export."""
        pars = dict(self.pars)
        return [
            {
                'round_id': self.round_id,
                'player_name': self.player_name,
                'course_id': self.course_id,
                'saved_at': self.saved_at_iso,
                'hole': hole,
                'par': pars[hole],
                'strokes': strokes,
            }
            for hole, strokes in self.scores
        ]
