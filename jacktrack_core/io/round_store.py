"""
Saved-round persistence collaborator.

The scorecard engine builds SavedRound snapshots and hands them to a
RoundStore; how and where rounds are stored is the store's business.
InMemoryRoundStore is the reference implementation used by tests and the
demo runner, with CSV export of all saved rounds.
"""

import csv
import logging
import threading
from typing import IO, List, Protocol

from jacktrack_core.proto.scorecard import SavedRound

logger = logging.getLogger(__name__)

EXPORT_FIELDS = ['round_id', 'player_name', 'course_id', 'saved_at', 'hole', 'par', 'strokes']


class RoundStore(Protocol):
    """Persistence contract for saved rounds."""

    def save_round(self, snapshot: SavedRound) -> None:
        ...

    def list_rounds(self) -> List[SavedRound]:
        ...

    def export_rows(self) -> List[dict]:
        ...


class InMemoryRoundStore:
    """Keeps saved rounds in memory, in save order."""

    def __init__(self):
        self._lock = threading.Lock()
        self._rounds: List[SavedRound] = []

    def save_round(self, snapshot: SavedRound) -> None:
        with self._lock:
            self._rounds.append(snapshot)
        logger.info(f"Round {snapshot.round_id} saved for {snapshot.player_name}")

    def list_rounds(self) -> List[SavedRound]:
        with self._lock:
            return list(self._rounds)

    def rounds_for(self, player_name: str) -> List[SavedRound]:
        return [r for r in self.list_rounds() if r.player_name == player_name]

    def clear(self) -> int:
        """
        Delete every saved round.

        Returns:
            Number of rounds deleted
        """
        with self._lock:
            count = len(self._rounds)
            self._rounds.clear()
        logger.info(f"Cleared {count} saved rounds")
        return count

    def export_rows(self) -> List[dict]:
        """Flat per-hole records for all saved rounds."""
        rows = []
        for snapshot in self.list_rounds():
            rows.extend(snapshot.to_rows())
        return rows

    def export_csv(self, stream: IO[str]) -> int:
        """
        Write all saved rounds to stream as CSV (one row per hole).

        Args:
            stream: Text stream opened with newline=''

        Returns:
            Number of data rows written
        """
        rows = self.export_rows()
        writer = csv.DictWriter(stream, fieldnames=EXPORT_FIELDS)
        writer.writeheader()
        writer.writerows(rows)
        logger.info(f"Exported {len(rows)} rows")
        return len(rows)

    def __len__(self) -> int:
        with self._lock:
            return len(self._rounds)
