"""
Tracked Ball Schema.

Defines the registry record for a BLE-tagged golf ball, its connection
state machine, and the discovery event delivered by the BLE collaborator.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, FrozenSet, Optional
import time

from .coordinate import Coordinate


BATTERY_MIN = 0
BATTERY_MAX = 100


class ConnectionState(Enum):
    """Connectivity of one tracked ball."""

    DISCOVERED = "discovered"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTING = "disconnecting"
    LOST = "lost"


# state -> states reachable in one step
ALLOWED_TRANSITIONS: Dict[ConnectionState, FrozenSet[ConnectionState]] = {
    ConnectionState.DISCOVERED: frozenset({ConnectionState.CONNECTING, ConnectionState.LOST}),
    ConnectionState.CONNECTING: frozenset({ConnectionState.CONNECTED, ConnectionState.LOST}),
    ConnectionState.CONNECTED: frozenset({ConnectionState.DISCONNECTING, ConnectionState.LOST}),
    ConnectionState.DISCONNECTING: frozenset({ConnectionState.DISCOVERED}),
    ConnectionState.LOST: frozenset({ConnectionState.CONNECTING, ConnectionState.DISCOVERED}),
}


def can_transition(current: ConnectionState, target: ConnectionState) -> bool:
    """True if current -> target is a single legal step."""
    return target in ALLOWED_TRANSITIONS[current]


def clamp_battery(level: int) -> int:
    """Clamp a battery reading to [0, 100]."""
    return max(BATTERY_MIN, min(BATTERY_MAX, int(level)))


@dataclass(frozen=True)
class TrackedBall:
    """
    Registry record for one physical ball.

    Instances are never mutated: the registry swaps in a new record built
    with with_changes(), so readers always see a whole record.

    Attributes:
        id: Unique device id, never reused across devices
        name: Display name (e.g., "Ball 1")
        position: Last reported ball position
        battery_level: Battery percentage 0-100
        signal_strength: RSSI in dBm, higher (less negative) is stronger
        connection_state: Current ConnectionState
        last_seen: Monotonic time of the last discovery/telemetry event
        ever_connected: True once the ball has reached CONNECTED
        connecting_since: Monotonic time the current connect attempt began
    """

    id: str
    name: str
    position: Coordinate
    battery_level: int
    signal_strength: int
    connection_state: ConnectionState = ConnectionState.DISCOVERED
    last_seen: float = field(default_factory=time.monotonic)
    ever_connected: bool = False
    connecting_since: Optional[float] = None

    def __post_init__(self):
        if not self.id:
            raise ValueError("Ball id cannot be empty")
        if not BATTERY_MIN <= self.battery_level <= BATTERY_MAX:
            raise ValueError(f"Battery level must be in [0,100]: {self.battery_level}")

    @property
    def is_connected(self) -> bool:
        return self.connection_state == ConnectionState.CONNECTED

    @property
    def is_lost(self) -> bool:
        return self.connection_state == ConnectionState.LOST

    def with_changes(self, **changes) -> "TrackedBall":
        """Copy of this record with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'id': self.id,
            'name': self.name,
            'position': self.position.to_dict(),
            'battery_level': self.battery_level,
            'signal_strength': self.signal_strength,
            'connection_state': self.connection_state.value,
            'ever_connected': self.ever_connected,
        }


@dataclass(frozen=True)
class DiscoveryEvent:
    """
    Sighting reported by the BLE discovery collaborator.

    Battery outside [0, 100] is clamped when applied, not rejected.
    """

    ball_id: str
    name: str
    position: Coordinate
    battery: int
    signal: int
    timestamp: float = field(default_factory=time.monotonic)

    def to_ball(self) -> TrackedBall:
        """Fresh DISCOVERED record for a first sighting."""
        return TrackedBall(
            id=self.ball_id,
            name=self.name,
            position=self.position,
            battery_level=clamp_battery(self.battery),
            signal_strength=int(self.signal),
            connection_state=ConnectionState.DISCOVERED,
            last_seen=self.timestamp,
        )
