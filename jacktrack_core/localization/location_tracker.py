"""
User location tracker.

Thin adapter over the platform location collaborator. The collaborator is
modelled as a factory returning a lazy, possibly infinite iterator of
LocationFix items; calling the factory again restarts the stream.

The tracker only keeps the most recent position. It never retries after a
permission denial: DENIED is terminal.
"""

import logging
import threading
from enum import Enum
from typing import Callable, Iterator, Optional

from jacktrack_core.errors import LocationPermissionDenied, NoLocationFix
from jacktrack_core.events import ListenerRegistry
from jacktrack_core.metrics import get_metrics
from jacktrack_core.metrics.counters import MetricsCollector
from jacktrack_core.proto.coordinate import Coordinate
from jacktrack_core.proto.location_fix import FixStatus, LocationFix

logger = logging.getLogger(__name__)

LocationSource = Callable[[], Iterator[LocationFix]]


class TrackerStatus(Enum):
    IDLE = "idle"           # Never started
    RUNNING = "running"
    STOPPED = "stopped"     # Stopped by caller or source exhausted
    DENIED = "denied"       # Permission denied (terminal)


class LocationTracker:
    """
    Pull-based view over the location stream.

    Usage:
        tracker = LocationTracker(lambda: platform.location_updates())
        tracker.start()
        tracker.poll()                 # apply next item from the stream
        pos = tracker.current_position # None until the first FIX
    """

    def __init__(
        self,
        source: LocationSource,
        enabled: bool = True,
        metrics: Optional[MetricsCollector] = None,
    ):
        """
        Initialize tracker.

        Args:
            source: Zero-argument factory returning an iterator of LocationFix
            enabled: Location tracking setting; a disabled tracker won't start
            metrics: Metrics collector (global collector if None)
        """
        self._source = source
        self._enabled = enabled
        self.metrics = metrics or get_metrics()

        self._lock = threading.Lock()
        self._iterator: Optional[Iterator[LocationFix]] = None
        self._status = TrackerStatus.IDLE
        self._position: Optional[Coordinate] = None
        self._last_fix: Optional[LocationFix] = None
        self._listeners = ListenerRegistry()

    @property
    def status(self) -> TrackerStatus:
        return self._status

    @property
    def is_running(self) -> bool:
        return self._status == TrackerStatus.RUNNING

    @property
    def is_denied(self) -> bool:
        return self._status == TrackerStatus.DENIED

    @property
    def enabled(self) -> bool:
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool):
        self._enabled = bool(value)
        if not self._enabled and self.is_running:
            logger.info("Location tracking disabled, stopping tracker")
            self.stop()

    @property
    def current_position(self) -> Optional[Coordinate]:
        """Most recent position, or None if no fix has been received."""
        return self._position

    @property
    def last_fix(self) -> Optional[LocationFix]:
        return self._last_fix

    @property
    def has_fix(self) -> bool:
        return self._position is not None

    def require_position(self) -> Coordinate:
        """
        Current position, raising if unknown.

        Raises:
            LocationPermissionDenied: tracker is in the DENIED state
            NoLocationFix: no fix received yet
        """
        if self.is_denied:
            raise LocationPermissionDenied()
        position = self._position
        if position is None:
            raise NoLocationFix()
        return position

    def start(self) -> bool:
        """
        Start (or restart) consuming the location stream.

        Returns:
            True if running, False if location tracking is disabled

        Raises:
            LocationPermissionDenied: permission was previously denied
        """
        with self._lock:
            if self._status == TrackerStatus.DENIED:
                raise LocationPermissionDenied()
            if not self._enabled:
                logger.warning("Location tracking is disabled, not starting")
                return False
            if self._status == TrackerStatus.RUNNING:
                return True
            self._iterator = iter(self._source())
            self._status = TrackerStatus.RUNNING
        logger.info("Location tracker started")
        return True

    def stop(self):
        """Stop consuming. The last known position is kept."""
        with self._lock:
            if self._status != TrackerStatus.RUNNING:
                return
            self._iterator = None
            self._status = TrackerStatus.STOPPED
        logger.info("Location tracker stopped")

    def poll(self) -> Optional[Coordinate]:
        """
        Pull and apply one item from the stream.

        Returns:
            Current position after applying the item (may be None)

        Raises:
            LocationPermissionDenied: the stream reported a denial (tracker
                becomes DENIED and the position is cleared)
        """
        with self._lock:
            if self._status == TrackerStatus.DENIED:
                raise LocationPermissionDenied()
            if self._status != TrackerStatus.RUNNING:
                self.metrics.increment_drop('tracker_stopped')
                return self._position

            try:
                fix = next(self._iterator)
            except StopIteration:
                self._iterator = None
                self._status = TrackerStatus.STOPPED
                logger.info("Location source exhausted, tracker stopped")
                return self._position

            self._last_fix = fix
            if fix.status == FixStatus.PERMISSION_DENIED:
                self._iterator = None
                self._status = TrackerStatus.DENIED
                self._position = None
                denied = True
            else:
                denied = False
                if fix.status == FixStatus.NO_FIX:
                    self.metrics.increment_drop('no_fix')
                    logger.debug("Location source has no fix yet")
                    return self._position
                self._position = fix.coordinate
                self.metrics.increment('location_fixes')
            position = self._position

        if denied:
            logger.error("Location permission denied, tracker disabled")
            raise LocationPermissionDenied()

        logger.debug(f"Location fix: ({position.latitude:.6f}, {position.longitude:.6f})")
        self._listeners.notify(position)
        return position

    def run(self, max_items: Optional[int] = None) -> int:
        """
        Poll until the tracker stops or max_items items were consumed.

        Returns:
            Number of items consumed
        """
        consumed = 0
        while self.is_running and (max_items is None or consumed < max_items):
            self.poll()
            consumed += 1
        return consumed

    def subscribe(self, listener: Callable[[Coordinate], None]) -> Callable[[], None]:
        """Call listener with every newly applied position."""
        return self._listeners.add(listener)
