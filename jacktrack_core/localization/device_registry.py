"""
Device Registry for BLE-tagged golf balls.

Owns the mapping ball id -> TrackedBall, the per-ball connection state
machine, and the scan session. The BLE collaborator feeds it discovery,
telemetry and connect/disconnect outcome events; the UI reads partitions
(connected / available) and subscribes to RegistryEvents.

State machine (see proto.tracked_ball.ALLOWED_TRANSITIONS):

    DISCOVERED -> CONNECTING -> CONNECTED -> DISCONNECTING -> DISCOVERED
         |             |            |
         v             v            v
        LOST <---------+------------+        LOST -> CONNECTING / DISCOVERED

Policies:
- A ball never leaves the mapping except through remove().
- Connect timeouts are state transitions (CONNECTING -> LOST), not errors.
- On stop_scan(), DISCOVERED balls that were never connected become LOST.
- Discovery events are only applied while scanning; telemetry is applied
  while scanning or for CONNECTED balls.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, FrozenSet, List, Optional

from jacktrack_core.errors import UnknownBall
from jacktrack_core.events import ListenerRegistry
from jacktrack_core.io.ball_link import BallLink, NullBallLink
from jacktrack_core.metrics import get_metrics
from jacktrack_core.metrics.counters import MetricsCollector
from jacktrack_core.proto.tracked_ball import (
    ConnectionState,
    DiscoveryEvent,
    TrackedBall,
    can_transition,
    clamp_battery,
)

logger = logging.getLogger(__name__)


@dataclass
class RegistryConfig:
    """
    Configuration for the device registry.

    Attributes:
        connect_timeout_s: Connect attempts older than this are expired to
            LOST by expire_pending() (timeout policy of the BLE link)
        mark_lost_on_scan_stop: Mark never-connected DISCOVERED balls LOST
            when scanning stops
        await_disconnect_confirmation: Stay in DISCONNECTING until the link
            confirms; if False, go straight back to DISCOVERED
    """

    connect_timeout_s: float = 10.0
    mark_lost_on_scan_stop: bool = True
    await_disconnect_confirmation: bool = True


@dataclass(frozen=True)
class ScanSession:
    """
    Scan session state.

    Attributes:
        active: True while scanning
        discovered: Ball ids sighted during the current (or last) session
        started_at: Monotonic start time of the session
    """

    active: bool = False
    discovered: FrozenSet[str] = field(default_factory=frozenset)
    started_at: Optional[float] = None


class RegistryEventType(Enum):
    SCAN_STARTED = "scan_started"
    SCAN_STOPPED = "scan_stopped"
    BALL_DISCOVERED = "ball_discovered"
    BALL_UPDATED = "ball_updated"
    STATE_CHANGED = "state_changed"
    BALL_REMOVED = "ball_removed"


@dataclass(frozen=True)
class RegistryEvent:
    """
    Change notification delivered to registry subscribers.

    Attributes:
        kind: What happened
        ball_id: Affected ball (None for scan events)
        ball: Record after the change (None for scan events and removals)
        previous_state: State before a STATE_CHANGED event
    """

    kind: RegistryEventType
    ball_id: Optional[str] = None
    ball: Optional[TrackedBall] = None
    previous_state: Optional[ConnectionState] = None


class DeviceRegistry:
    """
    Registry of tracked balls.

    Usage:
        registry = DeviceRegistry(link=ble_link)
        registry.start_scan()
        registry.on_discovery(event)          # from the BLE collaborator
        registry.connect("ball-1")            # -> CONNECTING
        registry.on_connect_confirmed("ball-1")
        registry.connected_balls()

    All mutations run under one lock and replace TrackedBall records
    wholesale; subscribers are notified after the lock is released.
    """

    def __init__(
        self,
        link: Optional[BallLink] = None,
        config: Optional[RegistryConfig] = None,
        metrics: Optional[MetricsCollector] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize registry.

        Args:
            link: BLE collaborator (NullBallLink if None)
            config: Registry configuration (uses defaults if None)
            metrics: Metrics collector (global collector if None)
            clock: Monotonic clock, injectable for tests
        """
        self.link = link if link is not None else NullBallLink()
        self.config = config or RegistryConfig()
        self.metrics = metrics or get_metrics()
        self._clock = clock

        self._lock = threading.Lock()
        # dict keeps discovery insertion order
        self._balls: Dict[str, TrackedBall] = {}
        self._scan = ScanSession()
        self._listeners = ListenerRegistry()

    # ------------------------------------------------------------------
    # Scan session
    # ------------------------------------------------------------------

    @property
    def is_scanning(self) -> bool:
        return self._scan.active

    @property
    def scan_session(self) -> ScanSession:
        return self._scan

    def start_scan(self):
        """Start accepting discovery events. Idempotent."""
        with self._lock:
            if self._scan.active:
                return
            self._scan = ScanSession(active=True, started_at=self._clock())
        logger.info("Scan started")
        self._notify([RegistryEvent(RegistryEventType.SCAN_STARTED)])

    def stop_scan(self):
        """
        Stop accepting discovery events. Idempotent.

        CONNECTED balls stay connected. With mark_lost_on_scan_stop,
        DISCOVERED balls that never connected are marked LOST (kept in the
        registry so their ids stay stable).
        """
        events = []
        with self._lock:
            if not self._scan.active:
                return
            self._scan = ScanSession(
                active=False,
                discovered=self._scan.discovered,
                started_at=self._scan.started_at,
            )
            if self.config.mark_lost_on_scan_stop:
                for ball_id, ball in list(self._balls.items()):
                    if ball.connection_state == ConnectionState.DISCOVERED and not ball.ever_connected:
                        event = self._transition(ball_id, ConnectionState.LOST)
                        if event:
                            events.append(event)
            events.append(RegistryEvent(RegistryEventType.SCAN_STOPPED))
        logger.info(f"Scan stopped ({len(events) - 1} balls marked lost)")
        self._notify(events)

    # ------------------------------------------------------------------
    # BLE collaborator callbacks
    # ------------------------------------------------------------------

    def on_discovery(self, event: DiscoveryEvent) -> Optional[TrackedBall]:
        """
        Apply a discovery sighting.

        New ids are appended as DISCOVERED. Known ids get fresh position
        and telemetry; a LOST ball is re-marked DISCOVERED.

        Args:
            event: Sighting from the BLE collaborator

        Returns:
            Registry record after the update, or None if ignored
        """
        events = []
        with self._lock:
            if not self._scan.active:
                self.metrics.increment_drop('scan_inactive')
                logger.debug(f"Discovery of {event.ball_id} ignored: not scanning")
                return None

            self.metrics.increment('discovery_events')
            self.metrics.record_histogram('signal_strength', event.signal)
            self._scan = ScanSession(
                active=True,
                discovered=self._scan.discovered | {event.ball_id},
                started_at=self._scan.started_at,
            )

            existing = self._balls.get(event.ball_id)
            if existing is None:
                ball = event.to_ball()
                self._balls[ball.id] = ball
                logger.info(f"Discovered {ball.name} ({ball.id}), signal={ball.signal_strength}")
                events.append(RegistryEvent(RegistryEventType.BALL_DISCOVERED, ball.id, ball))
            else:
                ball = existing.with_changes(
                    name=event.name or existing.name,
                    position=event.position,
                    battery_level=clamp_battery(event.battery),
                    signal_strength=int(event.signal),
                    last_seen=event.timestamp,
                )
                self._balls[ball.id] = ball
                events.append(RegistryEvent(RegistryEventType.BALL_UPDATED, ball.id, ball))
                if ball.connection_state == ConnectionState.LOST:
                    state_event = self._transition(ball.id, ConnectionState.DISCOVERED)
                    if state_event:
                        events.append(state_event)
                        ball = state_event.ball
        self._notify(events)
        return ball

    def on_telemetry_update(self, ball_id: str, battery: int, signal: int) -> Optional[TrackedBall]:
        """
        Apply a battery/signal reading. Never changes connection state.

        Returns:
            Updated record, or None if ignored (unknown id, or not scanning
            and the ball is not connected)
        """
        with self._lock:
            ball = self._balls.get(ball_id)
            if ball is None:
                self.metrics.increment_drop('unknown_ball')
                logger.debug(f"Telemetry for unknown ball {ball_id} ignored")
                return None
            if not self._scan.active and not ball.is_connected:
                self.metrics.increment_drop('scan_inactive')
                return None

            ball = ball.with_changes(
                battery_level=clamp_battery(battery),
                signal_strength=int(signal),
                last_seen=self._clock(),
            )
            self._balls[ball_id] = ball
            self.metrics.increment('telemetry_updates')
            self.metrics.record_histogram('signal_strength', signal)
        self._notify([RegistryEvent(RegistryEventType.BALL_UPDATED, ball_id, ball)])
        return ball

    def on_connect_confirmed(self, ball_id: str) -> Optional[ConnectionState]:
        """Link confirmed a pending connect: CONNECTING -> CONNECTED."""
        with self._lock:
            ball = self._known(ball_id)
            if ball is None:
                return None
            started = ball.connecting_since
            event = self._transition(
                ball_id,
                ConnectionState.CONNECTED,
                ever_connected=True,
                connecting_since=None,
            )
            if event:
                self.metrics.increment('connections_established')
                if started is not None:
                    self.metrics.record_histogram('connect_latency_s', self._clock() - started)
                logger.info(f"{ball_id}: connected")
        return self._finish(ball_id, event)

    def on_connect_failed(self, ball_id: str) -> Optional[ConnectionState]:
        """Link reported a failed connect: CONNECTING -> LOST."""
        return self._fail_connect(ball_id, 'connection_failures')

    def on_connect_timeout(self, ball_id: str) -> Optional[ConnectionState]:
        """Link gave up waiting for a connect: CONNECTING -> LOST."""
        return self._fail_connect(ball_id, 'connection_timeouts')

    def expire_pending(self, now: Optional[float] = None) -> List[str]:
        """
        Move connect attempts older than connect_timeout_s to LOST.

        Args:
            now: Monotonic time (clock() if None)

        Returns:
            Ids of the balls that timed out
        """
        now = self._clock() if now is None else now
        with self._lock:
            expired = [
                ball.id for ball in self._balls.values()
                if ball.connection_state == ConnectionState.CONNECTING
                and ball.connecting_since is not None
                and now - ball.connecting_since >= self.config.connect_timeout_s
            ]
        for ball_id in expired:
            logger.warning(f"{ball_id}: connect timed out after {self.config.connect_timeout_s:.1f}s")
            self.on_connect_timeout(ball_id)
        return expired

    def on_disconnect_confirmed(self, ball_id: str) -> Optional[ConnectionState]:
        """Link confirmed a disconnect: DISCONNECTING -> DISCOVERED."""
        with self._lock:
            if self._known(ball_id) is None:
                return None
            event = self._transition(ball_id, ConnectionState.DISCOVERED)
            if event:
                logger.info(f"{ball_id}: disconnected")
        return self._finish(ball_id, event)

    def on_link_lost(self, ball_id: str) -> Optional[ConnectionState]:
        """
        Link dropped unexpectedly.

        CONNECTED -> LOST; a ball already DISCONNECTING completes its
        disconnect instead.
        """
        with self._lock:
            ball = self._known(ball_id)
            if ball is None:
                return None
            if ball.connection_state == ConnectionState.DISCONNECTING:
                target = ConnectionState.DISCOVERED
            else:
                target = ConnectionState.LOST
            event = self._transition(ball_id, target)
            if event:
                logger.warning(f"{ball_id}: link lost")
        return self._finish(ball_id, event)

    # ------------------------------------------------------------------
    # Caller operations
    # ------------------------------------------------------------------

    def connect(self, ball_id: str) -> ConnectionState:
        """
        Begin connecting to a ball.

        DISCOVERED/LOST -> CONNECTING and the link is asked to connect.
        CONNECTING, CONNECTED and DISCONNECTING are left untouched.

        Returns:
            Connection state after the call

        Raises:
            UnknownBall: ball_id is not registered
        """
        with self._lock:
            ball = self._balls.get(ball_id)
            if ball is None:
                raise UnknownBall(ball_id)
            if ball.connection_state not in (ConnectionState.DISCOVERED, ConnectionState.LOST):
                return ball.connection_state
            event = self._transition(
                ball_id, ConnectionState.CONNECTING, connecting_since=self._clock()
            )
            self.metrics.increment('connect_attempts')
        logger.info(f"{ball_id}: connecting")
        self._notify([event])
        self.link.request_connect(ball_id)
        return self._state_of(ball_id)

    def disconnect(self, ball_id: str) -> ConnectionState:
        """
        Begin disconnecting a CONNECTED ball. No-op in any other state.

        Returns:
            Connection state after the call

        Raises:
            UnknownBall: ball_id is not registered
        """
        events = []
        with self._lock:
            ball = self._balls.get(ball_id)
            if ball is None:
                raise UnknownBall(ball_id)
            if ball.connection_state != ConnectionState.CONNECTED:
                return ball.connection_state
            events.append(self._transition(ball_id, ConnectionState.DISCONNECTING))
            if not self.config.await_disconnect_confirmation:
                events.append(self._transition(ball_id, ConnectionState.DISCOVERED))
        logger.info(f"{ball_id}: disconnecting")
        self._notify(events)
        self.link.request_disconnect(ball_id)
        return self._state_of(ball_id)

    def remove(self, ball_id: str) -> bool:
        """
        Remove a ball from the registry.

        Returns:
            True if the ball was registered
        """
        with self._lock:
            if self._balls.pop(ball_id, None) is None:
                return False
            self._scan = ScanSession(
                active=self._scan.active,
                discovered=self._scan.discovered - {ball_id},
                started_at=self._scan.started_at,
            )
        logger.info(f"{ball_id}: removed")
        self._notify([RegistryEvent(RegistryEventType.BALL_REMOVED, ball_id)])
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, ball_id: str) -> Optional[TrackedBall]:
        return self._balls.get(ball_id)

    def balls(self) -> List[TrackedBall]:
        """All balls in discovery order."""
        with self._lock:
            return list(self._balls.values())

    def connected_balls(self) -> List[TrackedBall]:
        """Balls in state CONNECTED, in discovery order."""
        return [ball for ball in self.balls() if ball.is_connected]

    def available_balls(self) -> List[TrackedBall]:
        """Every ball not CONNECTED, in discovery order."""
        return [ball for ball in self.balls() if not ball.is_connected]

    def subscribe(self, listener: Callable[[RegistryEvent], None]) -> Callable[[], None]:
        """Call listener with every RegistryEvent. Returns an unsubscribe callable."""
        return self._listeners.add(listener)

    def __contains__(self, ball_id: str) -> bool:
        return ball_id in self._balls

    def __len__(self) -> int:
        return len(self._balls)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _known(self, ball_id: str) -> Optional[TrackedBall]:
        """Lookup for collaborator callbacks: unknown ids are dropped, not raised."""
        ball = self._balls.get(ball_id)
        if ball is None:
            self.metrics.increment_drop('unknown_ball')
            logger.debug(f"Event for unknown ball {ball_id} ignored")
        return ball

    def _transition(self, ball_id: str, target: ConnectionState, **changes) -> Optional[RegistryEvent]:
        """Apply one state step. Caller holds the lock."""
        ball = self._balls[ball_id]
        current = ball.connection_state
        if not can_transition(current, target):
            self.metrics.increment_drop('invalid_transition')
            logger.warning(f"{ball_id}: refused transition {current.name} -> {target.name}")
            return None
        updated = ball.with_changes(connection_state=target, **changes)
        self._balls[ball_id] = updated
        return RegistryEvent(RegistryEventType.STATE_CHANGED, ball_id, updated, previous_state=current)

    def _fail_connect(self, ball_id: str, counter: str) -> Optional[ConnectionState]:
        with self._lock:
            if self._known(ball_id) is None:
                return None
            if self._balls[ball_id].connection_state != ConnectionState.CONNECTING:
                self.metrics.increment_drop('invalid_transition')
                logger.debug(f"{ball_id}: stale connect outcome ignored")
                return self._balls[ball_id].connection_state
            event = self._transition(ball_id, ConnectionState.LOST, connecting_since=None)
            if event:
                self.metrics.increment(counter)
                logger.warning(f"{ball_id}: connect did not complete ({counter}), marked lost")
        return self._finish(ball_id, event)

    def _finish(self, ball_id: str, event: Optional[RegistryEvent]) -> Optional[ConnectionState]:
        if event:
            self._notify([event])
        return self._state_of(ball_id)

    def _state_of(self, ball_id: str) -> Optional[ConnectionState]:
        ball = self._balls.get(ball_id)
        return ball.connection_state if ball else None

    def _notify(self, events: List[Optional[RegistryEvent]]):
        for event in events:
            if event is not None:
                self._listeners.notify(event)
