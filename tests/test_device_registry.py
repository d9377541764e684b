"""
Unit tests for DeviceRegistry.

Tests cover:
- Scan session start/stop (idempotence, stop policy)
- Discovery events (new balls, refresh, re-sighting lost balls, ignored when idle)
- Connection state machine (connect, confirm, fail, timeout, disconnect, link loss)
- Telemetry updates (clamping, no state change, unknown ids)
- Partition queries and insertion order
- Explicit removal and subscriber notifications
- Drop reason metrics for every ignored event
"""

import random

import pytest

from jacktrack_core.errors import RejectedInput, UnknownBall
from jacktrack_core.localization import (
    DeviceRegistry,
    RegistryConfig,
    RegistryEventType,
)
from jacktrack_core.proto import ALLOWED_TRANSITIONS, ConnectionState, TrackedBall
from tests.conftest import make_discovery


# =============================================================================
# Scan Session
# =============================================================================


class TestScanSession:
    """Tests for scan start/stop."""

    def test_initially_idle(self, registry):
        assert not registry.is_scanning
        assert len(registry) == 0

    def test_start_scan(self, registry):
        registry.start_scan()
        assert registry.is_scanning
        assert registry.scan_session.active

    def test_start_scan_idempotent(self, registry):
        events = []
        registry.subscribe(events.append)

        registry.start_scan()
        registry.start_scan()

        assert [e.kind for e in events] == [RegistryEventType.SCAN_STARTED]

    def test_stop_scan_idempotent(self, scanning_registry):
        scanning_registry.stop_scan()
        scanning_registry.stop_scan()
        assert not scanning_registry.is_scanning

    def test_stop_scan_marks_never_connected_lost(self, scanning_registry):
        scanning_registry.stop_scan()

        for ball in scanning_registry.balls():
            assert ball.connection_state == ConnectionState.LOST
        # Nothing deleted
        assert len(scanning_registry) == 3

    def test_stop_scan_keeps_connected_balls(self, scanning_registry):
        scanning_registry.connect("ball-1")
        scanning_registry.on_connect_confirmed("ball-1")

        scanning_registry.stop_scan()

        assert scanning_registry.get("ball-1").connection_state == ConnectionState.CONNECTED
        assert scanning_registry.get("ball-2").connection_state == ConnectionState.LOST

    def test_stop_scan_keeps_previously_connected_discovered(self, scanning_registry):
        scanning_registry.connect("ball-1")
        scanning_registry.on_connect_confirmed("ball-1")
        scanning_registry.disconnect("ball-1")
        scanning_registry.on_disconnect_confirmed("ball-1")

        scanning_registry.stop_scan()

        assert scanning_registry.get("ball-1").connection_state == ConnectionState.DISCOVERED

    def test_stop_scan_policy_disabled(self, link, metrics, clock):
        registry = DeviceRegistry(
            link=link,
            config=RegistryConfig(mark_lost_on_scan_stop=False),
            metrics=metrics,
            clock=clock,
        )
        registry.start_scan()
        registry.on_discovery(make_discovery("ball-1"))
        registry.stop_scan()

        assert registry.get("ball-1").connection_state == ConnectionState.DISCOVERED

    def test_scan_session_tracks_discovered_ids(self, scanning_registry):
        assert scanning_registry.scan_session.discovered == {"ball-1", "ball-2", "ball-3"}

    def test_new_scan_session_starts_empty(self, scanning_registry):
        scanning_registry.stop_scan()
        scanning_registry.start_scan()
        assert scanning_registry.scan_session.discovered == frozenset()


# =============================================================================
# Discovery
# =============================================================================


class TestDiscovery:
    """Tests for discovery events."""

    def test_discovery_adds_ball(self, registry, metrics):
        registry.start_scan()
        ball = registry.on_discovery(make_discovery("ball-1", battery=85, signal=-58))

        assert isinstance(ball, TrackedBall)
        assert ball.connection_state == ConnectionState.DISCOVERED
        assert ball.battery_level == 85
        assert ball.signal_strength == -58
        assert "ball-1" in registry
        assert metrics.get_counter('discovery_events') == 1

    def test_discovery_ignored_when_not_scanning(self, registry, metrics):
        assert registry.on_discovery(make_discovery("ball-1")) is None
        assert len(registry) == 0
        assert metrics.get_drop_count('scan_inactive') == 1

    def test_discovery_ignored_after_stop(self, scanning_registry, metrics):
        scanning_registry.stop_scan()
        scanning_registry.on_discovery(make_discovery("ball-9"))

        assert "ball-9" not in scanning_registry
        assert metrics.get_drop_count('scan_inactive') == 1

    def test_rediscovery_refreshes_fields(self, scanning_registry):
        scanning_registry.on_discovery(
            make_discovery("ball-1", latitude=36.0, longitude=-121.0, battery=40, signal=-90)
        )
        ball = scanning_registry.get("ball-1")

        assert ball.position.latitude == 36.0
        assert ball.battery_level == 40
        assert ball.signal_strength == -90
        assert len(scanning_registry) == 3

    def test_rediscovery_restores_lost_ball(self, scanning_registry):
        scanning_registry.stop_scan()
        assert scanning_registry.get("ball-2").is_lost

        scanning_registry.start_scan()
        scanning_registry.on_discovery(make_discovery("ball-2"))

        assert scanning_registry.get("ball-2").connection_state == ConnectionState.DISCOVERED

    def test_rediscovery_does_not_change_connected_state(self, scanning_registry):
        scanning_registry.connect("ball-1")
        scanning_registry.on_connect_confirmed("ball-1")
        scanning_registry.on_discovery(make_discovery("ball-1", battery=10))

        ball = scanning_registry.get("ball-1")
        assert ball.connection_state == ConnectionState.CONNECTED
        assert ball.battery_level == 10

    def test_battery_clamped(self, registry):
        registry.start_scan()
        assert registry.on_discovery(make_discovery("ball-1", battery=140)).battery_level == 100
        assert registry.on_discovery(make_discovery("ball-2", battery=-5)).battery_level == 0

    def test_discovery_event_notified(self, registry):
        events = []
        registry.start_scan()
        registry.subscribe(events.append)

        registry.on_discovery(make_discovery("ball-1"))

        assert events[0].kind == RegistryEventType.BALL_DISCOVERED
        assert events[0].ball.id == "ball-1"


# =============================================================================
# Connection State Machine
# =============================================================================


class TestConnect:
    """Tests for connect and its outcomes."""

    def test_connect_moves_to_connecting(self, scanning_registry, link, metrics):
        state = scanning_registry.connect("ball-1")

        assert state == ConnectionState.CONNECTING
        assert link.requested("connect") == ["ball-1"]
        assert metrics.get_counter('connect_attempts') == 1

    def test_confirm_connects(self, scanning_registry, metrics):
        scanning_registry.connect("ball-1")
        state = scanning_registry.on_connect_confirmed("ball-1")

        assert state == ConnectionState.CONNECTED
        ball = scanning_registry.get("ball-1")
        assert ball.ever_connected
        assert ball.connecting_since is None
        assert metrics.get_counter('connections_established') == 1

    def test_connect_latency_recorded(self, scanning_registry, clock, metrics):
        scanning_registry.connect("ball-1")
        clock.advance(2.5)
        scanning_registry.on_connect_confirmed("ball-1")

        stats = metrics.get_histogram_stats('connect_latency_s')
        assert stats.count == 1
        assert stats.max == pytest.approx(2.5)

    def test_confirm_without_connecting_refused(self, scanning_registry, metrics):
        """DISCOVERED -> CONNECTED would skip CONNECTING."""
        state = scanning_registry.on_connect_confirmed("ball-1")

        assert state == ConnectionState.DISCOVERED
        assert metrics.get_drop_count('invalid_transition') == 1

    def test_connect_already_connected_is_noop(self, scanning_registry, link):
        scanning_registry.connect("ball-1")
        scanning_registry.on_connect_confirmed("ball-1")

        assert scanning_registry.connect("ball-1") == ConnectionState.CONNECTED
        assert link.requested("connect") == ["ball-1"]

    def test_connect_while_connecting_is_noop(self, scanning_registry, link):
        scanning_registry.connect("ball-1")
        assert scanning_registry.connect("ball-1") == ConnectionState.CONNECTING
        assert link.requested("connect") == ["ball-1"]

    def test_connect_unknown_raises(self, registry):
        with pytest.raises(UnknownBall) as exc_info:
            registry.connect("ball-x")
        assert isinstance(exc_info.value, RejectedInput)
        assert exc_info.value.ball_id == "ball-x"

    def test_connect_failure_marks_lost(self, scanning_registry, metrics):
        scanning_registry.connect("ball-1")
        state = scanning_registry.on_connect_failed("ball-1")

        assert state == ConnectionState.LOST
        assert metrics.get_counter('connection_failures') == 1

    def test_connect_timeout_marks_lost(self, scanning_registry, metrics):
        scanning_registry.connect("ball-1")
        state = scanning_registry.on_connect_timeout("ball-1")

        assert state == ConnectionState.LOST
        assert metrics.get_counter('connection_timeouts') == 1

    def test_connect_from_lost(self, scanning_registry):
        scanning_registry.connect("ball-1")
        scanning_registry.on_connect_timeout("ball-1")

        assert scanning_registry.connect("ball-1") == ConnectionState.CONNECTING
        assert scanning_registry.on_connect_confirmed("ball-1") == ConnectionState.CONNECTED

    def test_late_confirmation_after_timeout_refused(self, scanning_registry):
        scanning_registry.connect("ball-1")
        scanning_registry.on_connect_timeout("ball-1")

        assert scanning_registry.on_connect_confirmed("ball-1") == ConnectionState.LOST

    def test_stale_failure_does_not_drop_connected_ball(self, scanning_registry, metrics):
        scanning_registry.connect("ball-1")
        scanning_registry.on_connect_confirmed("ball-1")

        assert scanning_registry.on_connect_failed("ball-1") == ConnectionState.CONNECTED
        assert metrics.get_drop_count('invalid_transition') == 1

    def test_outcome_for_unknown_ball_dropped(self, registry, metrics):
        assert registry.on_connect_confirmed("ghost") is None
        assert registry.on_connect_failed("ghost") is None
        assert metrics.get_drop_count('unknown_ball') == 2


class TestExpirePending:
    """Tests for observing the link's connect timeout."""

    def test_expires_stale_attempts(self, scanning_registry, clock):
        scanning_registry.connect("ball-1")
        clock.advance(5.0)
        scanning_registry.connect("ball-2")
        clock.advance(5.0)

        expired = scanning_registry.expire_pending()

        assert expired == ["ball-1"]
        assert scanning_registry.get("ball-1").is_lost
        assert scanning_registry.get("ball-2").connection_state == ConnectionState.CONNECTING

    def test_explicit_now(self, scanning_registry, clock):
        scanning_registry.connect("ball-1")
        assert scanning_registry.expire_pending(now=clock.now + 9.9) == []
        assert scanning_registry.expire_pending(now=clock.now + 10.0) == ["ball-1"]

    def test_nothing_pending(self, scanning_registry):
        assert scanning_registry.expire_pending() == []


class TestDisconnect:
    """Tests for disconnect and link loss."""

    @pytest.fixture
    def connected(self, scanning_registry):
        scanning_registry.connect("ball-1")
        scanning_registry.on_connect_confirmed("ball-1")
        return scanning_registry

    def test_disconnect_sequence(self, connected, link):
        assert connected.disconnect("ball-1") == ConnectionState.DISCONNECTING
        assert link.requested("disconnect") == ["ball-1"]

        assert connected.on_disconnect_confirmed("ball-1") == ConnectionState.DISCOVERED

    def test_disconnect_not_connected_is_noop(self, scanning_registry, link):
        assert scanning_registry.disconnect("ball-2") == ConnectionState.DISCOVERED
        assert link.requested("disconnect") == []

    def test_disconnect_unknown_raises(self, registry):
        with pytest.raises(UnknownBall):
            registry.disconnect("ball-x")

    def test_disconnect_without_confirmation(self, link, metrics, clock):
        registry = DeviceRegistry(
            link=link,
            config=RegistryConfig(await_disconnect_confirmation=False),
            metrics=metrics,
            clock=clock,
        )
        registry.start_scan()
        registry.on_discovery(make_discovery("ball-1"))
        registry.connect("ball-1")
        registry.on_connect_confirmed("ball-1")

        assert registry.disconnect("ball-1") == ConnectionState.DISCOVERED

    def test_link_lost(self, connected):
        assert connected.on_link_lost("ball-1") == ConnectionState.LOST

    def test_link_lost_while_disconnecting_completes_disconnect(self, connected):
        connected.disconnect("ball-1")
        assert connected.on_link_lost("ball-1") == ConnectionState.DISCOVERED

    def test_disconnect_confirmation_when_connected_refused(self, connected, metrics):
        assert connected.on_disconnect_confirmed("ball-1") == ConnectionState.CONNECTED
        assert metrics.get_drop_count('invalid_transition') == 1


class TestStateMachineProperty:
    """Random operation sequences never break the state machine."""

    def test_random_sequences(self, scanning_registry):
        observed = []
        scanning_registry.subscribe(
            lambda e: observed.append((e.previous_state, e.ball.connection_state))
            if e.kind == RegistryEventType.STATE_CHANGED else None
        )
        rng = random.Random(1234)
        ops = [
            scanning_registry.connect,
            scanning_registry.disconnect,
            scanning_registry.on_connect_confirmed,
            scanning_registry.on_connect_failed,
            scanning_registry.on_connect_timeout,
            scanning_registry.on_disconnect_confirmed,
            scanning_registry.on_link_lost,
        ]

        for _ in range(2000):
            op = rng.choice(ops)
            op(rng.choice(["ball-1", "ball-2", "ball-3"]))
            for ball in scanning_registry.balls():
                assert ball.connection_state in ConnectionState

        assert observed
        for previous, current in observed:
            assert current in ALLOWED_TRANSITIONS[previous]
            if current == ConnectionState.CONNECTED:
                assert previous == ConnectionState.CONNECTING


# =============================================================================
# Telemetry
# =============================================================================


class TestTelemetry:
    """Tests for telemetry updates."""

    def test_updates_fields_not_state(self, scanning_registry, metrics):
        ball = scanning_registry.on_telemetry_update("ball-1", 55, -75)

        assert ball.battery_level == 55
        assert ball.signal_strength == -75
        assert ball.connection_state == ConnectionState.DISCOVERED
        assert metrics.get_counter('telemetry_updates') == 1

    def test_unknown_ball_ignored(self, scanning_registry, metrics):
        assert scanning_registry.on_telemetry_update("ghost", 50, -60) is None
        assert metrics.get_drop_count('unknown_ball') == 1

    def test_clamps_battery(self, scanning_registry):
        assert scanning_registry.on_telemetry_update("ball-1", 250, -60).battery_level == 100

    def test_connected_ball_updates_after_scan_stop(self, scanning_registry):
        scanning_registry.connect("ball-1")
        scanning_registry.on_connect_confirmed("ball-1")
        scanning_registry.stop_scan()

        assert scanning_registry.on_telemetry_update("ball-1", 30, -65).battery_level == 30

    def test_unconnected_ball_ignored_after_scan_stop(self, scanning_registry, metrics):
        scanning_registry.stop_scan()
        assert scanning_registry.on_telemetry_update("ball-2", 30, -65) is None
        assert metrics.get_drop_count('scan_inactive') == 1

    def test_telemetry_does_not_reorder(self, scanning_registry):
        scanning_registry.on_telemetry_update("ball-3", 99, -30)
        scanning_registry.on_telemetry_update("ball-1", 5, -99)

        assert [b.id for b in scanning_registry.balls()] == ["ball-1", "ball-2", "ball-3"]

    def test_records_are_replaced_not_mutated(self, scanning_registry):
        before = scanning_registry.get("ball-1")
        scanning_registry.on_telemetry_update("ball-1", 12, -88)

        assert before.battery_level == 80
        assert scanning_registry.get("ball-1") is not before


# =============================================================================
# Queries and Removal
# =============================================================================


class TestQueries:
    """Tests for partitions and removal."""

    def test_partitions(self, scanning_registry):
        scanning_registry.connect("ball-2")
        scanning_registry.on_connect_confirmed("ball-2")
        scanning_registry.connect("ball-3")

        assert [b.id for b in scanning_registry.connected_balls()] == ["ball-2"]
        assert [b.id for b in scanning_registry.available_balls()] == ["ball-1", "ball-3"]

    def test_partition_keeps_discovery_order(self, scanning_registry):
        for ball_id in ["ball-3", "ball-1"]:
            scanning_registry.connect(ball_id)
            scanning_registry.on_connect_confirmed(ball_id)

        assert [b.id for b in scanning_registry.connected_balls()] == ["ball-1", "ball-3"]

    def test_remove(self, scanning_registry):
        events = []
        scanning_registry.subscribe(events.append)

        assert scanning_registry.remove("ball-2")
        assert "ball-2" not in scanning_registry
        assert scanning_registry.get("ball-2") is None
        assert "ball-2" not in scanning_registry.scan_session.discovered
        assert events[-1].kind == RegistryEventType.BALL_REMOVED

    def test_remove_unknown(self, scanning_registry):
        assert not scanning_registry.remove("ghost")

    def test_state_changes_never_remove(self, scanning_registry):
        scanning_registry.connect("ball-1")
        scanning_registry.on_connect_timeout("ball-1")
        scanning_registry.stop_scan()

        assert len(scanning_registry) == 3

    def test_unsubscribe(self, scanning_registry):
        events = []
        unsubscribe = scanning_registry.subscribe(events.append)
        unsubscribe()

        scanning_registry.on_telemetry_update("ball-1", 50, -50)
        assert events == []

    def test_state_changed_event_carries_previous_state(self, scanning_registry):
        events = []
        scanning_registry.subscribe(events.append)

        scanning_registry.connect("ball-1")

        assert events[0].kind == RegistryEventType.STATE_CHANGED
        assert events[0].previous_state == ConnectionState.DISCOVERED
        assert events[0].ball.connection_state == ConnectionState.CONNECTING
