"""
Navigation Session.

Composes DeviceRegistry, LocationTracker and great-circle distance into the
navigation view model: which ball is targeted, whether the golfer is
navigating to it, and the live distance/bearing to it and to the pin.

Nothing is cached: every distance is recomputed from the current user fix
and the current registry record of the target.

Invariant: navigating implies a selected target that is still registered.
Removing the target from the registry clears the selection and stops
navigation.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from jacktrack_core.errors import InvalidTarget, NoLocationFix, NoTargetSelected
from jacktrack_core.events import ListenerRegistry
from jacktrack_core.proto.coordinate import Coordinate
from jacktrack_core.proto.course import Hole
from jacktrack_core.proto.navigation_state import NavigationState
from jacktrack_core.proto.tracked_ball import TrackedBall
from .device_registry import DeviceRegistry, RegistryEvent, RegistryEventType
from .geo_distance import distance, distances_from, initial_bearing
from .location_tracker import LocationTracker

logger = logging.getLogger(__name__)


@dataclass
class NavigationConfig:
    """
    Configuration for navigation session.

    Attributes:
        stop_on_target_change: Selecting a different ball while navigating
            stops navigation
    """

    stop_on_target_change: bool = True


class NavigationSession:
    """
    Navigation view model over the registry and the user location.

    Usage:
        session = NavigationSession(registry, tracker, hole=course.hole(7))
        session.select_target("ball-1")
        session.start_navigating()
        session.current_distance()   # meters, or None if unavailable
        session.state()              # NavigationState snapshot
    """

    def __init__(
        self,
        registry: DeviceRegistry,
        tracker: LocationTracker,
        hole: Optional[Hole] = None,
        config: Optional[NavigationConfig] = None,
    ):
        """
        Initialize navigation session.

        Args:
            registry: Ball registry targets are resolved against
            tracker: Source of the user's current position
            hole: Active hole (for distance to pin)
            config: Session configuration (uses defaults if None)
        """
        self.registry = registry
        self.tracker = tracker
        self.config = config or NavigationConfig()

        self._lock = threading.Lock()
        self._hole = hole
        self._target_id: Optional[str] = None
        self._navigating = False
        self._listeners = ListenerRegistry()

        self._unsubscribers = [
            registry.subscribe(self._on_registry_event),
            tracker.subscribe(self._on_position),
        ]

    # ------------------------------------------------------------------
    # Selection and navigation flag
    # ------------------------------------------------------------------

    @property
    def target_id(self) -> Optional[str]:
        return self._target_id

    @property
    def is_navigating(self) -> bool:
        return self._navigating

    @property
    def hole(self) -> Optional[Hole]:
        return self._hole

    def select_target(self, ball_id: Optional[str]):
        """
        Select the ball to navigate to, or clear the selection with None.

        Raises:
            InvalidTarget: ball_id is not in the registry
        """
        with self._lock:
            if ball_id is None:
                self._target_id = None
                self._navigating = False
            else:
                if ball_id not in self.registry:
                    raise InvalidTarget(ball_id)
                if ball_id != self._target_id and self._navigating and self.config.stop_on_target_change:
                    logger.info(f"Target changed to {ball_id}, navigation to {self._target_id} stopped")
                    self._navigating = False
                self._target_id = ball_id
        logger.debug(f"Target selected: {ball_id}")
        self._publish()

    def toggle_target(self, ball_id: str) -> Optional[str]:
        """
        Select ball_id, or clear the selection if it is already selected.

        Returns:
            Selected target after the call
        """
        if ball_id == self._target_id:
            self.select_target(None)
        else:
            self.select_target(ball_id)
        return self._target_id

    def start_navigating(self):
        """
        Start navigating to the selected ball.

        Raises:
            NoTargetSelected: nothing selected, or the target is gone
        """
        with self._lock:
            if self._target_id is None:
                raise NoTargetSelected()
            if self._target_id not in self.registry:
                self._target_id = None
                self._navigating = False
                raise NoTargetSelected("Selected ball is no longer tracked")
            self._navigating = True
            target = self._target_id
        logger.info(f"Navigating to {target}")
        self._publish()

    def stop_navigating(self):
        """Stop navigating; the selection is kept."""
        with self._lock:
            was_navigating = self._navigating
            self._navigating = False
        if was_navigating:
            logger.info("Navigation stopped")
        self._publish()

    def set_hole(self, hole: Optional[Hole]):
        """Change the active hole used for distance to pin."""
        with self._lock:
            self._hole = hole
        self._publish()

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    def target_ball(self) -> Optional[TrackedBall]:
        target_id = self._target_id
        return self.registry.get(target_id) if target_id else None

    def current_distance(self) -> Optional[int]:
        """
        Meters from the user to the target ball.

        Returns:
            Rounded meters, or None when there is no fix or no target
        """
        position = self.tracker.current_position
        ball = self.target_ball()
        if position is None or ball is None:
            return None
        return distance(position, ball.position)

    def require_distance(self) -> int:
        """
        Like current_distance() but raising when unavailable.

        Raises:
            NoTargetSelected: no target selected
            NoLocationFix: user position unknown
        """
        ball = self.target_ball()
        if ball is None:
            raise NoTargetSelected()
        position = self.tracker.require_position()
        return distance(position, ball.position)

    def current_bearing(self) -> Optional[float]:
        """Initial bearing from user to target in degrees, or None."""
        position = self.tracker.current_position
        ball = self.target_ball()
        if position is None or ball is None:
            return None
        return initial_bearing(position, ball.position)

    def distance_to_hole(self) -> Optional[int]:
        """Meters from the user to the active hole's pin, or None."""
        position = self.tracker.current_position
        hole = self._hole
        if position is None or hole is None or hole.pin is None:
            return None
        return distance(position, hole.pin)

    def ranked_balls(self, connected_only: bool = False) -> List[Tuple[TrackedBall, int]]:
        """
        Balls ordered by distance from the user, nearest first.

        Ties keep discovery order.

        Raises:
            NoLocationFix: user position unknown
        """
        position = self.tracker.current_position
        if position is None:
            raise NoLocationFix()
        balls = self.registry.connected_balls() if connected_only else self.registry.balls()
        meters = distances_from(position, [ball.position for ball in balls])
        order = sorted(range(len(balls)), key=lambda i: (int(meters[i]), i))
        return [(balls[i], int(meters[i])) for i in order]

    def state(self) -> NavigationState:
        """Snapshot of the navigation view, derived now."""
        with self._lock:
            navigating = self._navigating
        position = self.tracker.current_position
        ball = self.target_ball()
        located = position is not None and ball is not None
        return NavigationState(
            target_id=ball.id if ball is not None else None,
            target_name=ball.name if ball is not None else None,
            navigating=navigating and ball is not None,
            distance_m=distance(position, ball.position) if located else None,
            bearing_deg=initial_bearing(position, ball.position) if located else None,
            hole_distance_m=self.distance_to_hole(),
            has_fix=position is not None,
        )

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, listener: Callable[[NavigationState], None]) -> Callable[[], None]:
        """Call listener with a fresh NavigationState after every change."""
        return self._listeners.add(listener)

    def close(self):
        """Detach from registry and tracker."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        self._listeners.clear()

    def _on_registry_event(self, event: RegistryEvent):
        if event.ball_id is None or event.ball_id != self._target_id:
            return
        if event.kind == RegistryEventType.BALL_REMOVED:
            with self._lock:
                if self._target_id != event.ball_id:
                    return
                was_navigating = self._navigating
                self._target_id = None
                self._navigating = False
            if was_navigating:
                logger.warning(f"Target {event.ball_id} removed, navigation stopped")
        self._publish()

    def _on_position(self, position: Coordinate):
        self._publish()

    def _publish(self):
        if len(self._listeners):
            self._listeners.notify(self.state())
