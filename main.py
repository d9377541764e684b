"""
JackTrack demo runner.

Simulates playing one hole: virtual balls are discovered and connected,
the golfer walks from the tee toward a selected ball while live distances
are logged, then a round is scored, saved and exported as CSV.
"""

import sys
import signal
import logging
import argparse
from typing import Dict, Iterator, Optional

import config
from jacktrack_core.errors import EmptyRound, JackTrackError
from jacktrack_core.domain import ScorecardConfig, ScorecardEngine, StaticCourseProvider
from jacktrack_core.io import InMemoryRoundStore, NullBallLink
from jacktrack_core.localization import (
    DeviceRegistry,
    LocationTracker,
    NavigationSession,
    RegistryConfig,
    meters_to_yards,
)
from jacktrack_core.metrics import get_metrics
from jacktrack_core.proto import (
    Coordinate,
    DiscoveryEvent,
    LocationFix,
    NavigationState,
    create_fix,
    create_no_fix,
)

logger = logging.getLogger(__name__)


class SimulatedBallLink(NullBallLink):
    """BLE link that confirms every connect/disconnect straight away."""

    def __init__(self):
        super().__init__()
        self.registry: Optional[DeviceRegistry] = None

    def request_connect(self, ball_id: str) -> None:
        super().request_connect(ball_id)
        self.registry.on_connect_confirmed(ball_id)

    def request_disconnect(self, ball_id: str) -> None:
        super().request_disconnect(ball_id)
        self.registry.on_disconnect_confirmed(ball_id)


def walk(start: Coordinate, end: Coordinate, steps: int) -> Iterator[LocationFix]:
    """Location stream: one NO_FIX, then fixes on a straight line start -> end."""
    yield create_no_fix()
    for i in range(steps + 1):
        t = i / steps if steps else 1.0
        yield create_fix(
            start.latitude + (end.latitude - start.latitude) * t,
            start.longitude + (end.longitude - start.longitude) * t,
            accuracy_m=5.0,
        )


class JackTrackSimulator:
    """Wires the core objects together with simulated collaborators."""

    def __init__(self, sim_config: Dict, target_ball: str):
        self.sim = sim_config
        self.target_ball = target_ball
        self.running = False

        provider = StaticCourseProvider.from_dicts(sim_config["courses"])
        self.course = provider.load_course(sim_config["course_id"])
        self.hole = self.course.hole(sim_config["hole"])

        self.link = SimulatedBallLink()
        self.registry = DeviceRegistry(link=self.link, config=RegistryConfig(**config.REGISTRY_CONFIG))
        self.link.registry = self.registry

        ball = sim_config["balls"][target_ball]
        self.tracker = LocationTracker(
            lambda: walk(self.hole.tee, Coordinate(ball["latitude"], ball["longitude"]),
                         sim_config["walk_steps"]),
            enabled=config.TRACKING_CONFIG["location_tracking"],
        )
        self.navigation = NavigationSession(self.registry, self.tracker, hole=self.hole)
        self.navigation.subscribe(self._on_navigation)

        self.store = InMemoryRoundStore()
        self.scorecard = ScorecardEngine(
            self.course,
            player_name=config.SCORECARD_CONFIG["default_player_name"],
            store=self.store,
            config=ScorecardConfig(max_strokes=config.SCORECARD_CONFIG["max_strokes"]),
        )

        signal.signal(signal.SIGINT, self._signal_handler)
        logger.info(f"Simulator ready: {self.course.name}, hole {self.hole.number}")

    def _signal_handler(self, signum, frame):
        logger.info(f"Received signal {signum}, stopping...")
        self.running = False
        self.tracker.stop()

    def _on_navigation(self, state: NavigationState):
        if state.navigating and state.distance_m is not None:
            logger.info(
                f"-> {state.target_name}: {state.distance_m} m "
                f"({meters_to_yards(state.distance_m)} yd) bearing {state.bearing_deg:.0f}, "
                f"pin {state.hole_distance_m} m"
            )

    def discover_and_connect(self):
        self.registry.start_scan()
        for ball_id, ball in self.sim["balls"].items():
            self.registry.on_discovery(DiscoveryEvent(
                ball_id=ball_id,
                name=ball["name"],
                position=Coordinate(ball["latitude"], ball["longitude"]),
                battery=ball["battery"],
                signal=ball["signal"],
            ))
        self.registry.connect(self.target_ball)
        if not config.TRACKING_CONFIG["ble_always_on"]:
            self.registry.stop_scan()

        logger.info(f"Connected: {[b.name for b in self.registry.connected_balls()]}")
        logger.info(f"Available: {[b.name for b in self.registry.available_balls()]}")

    def navigate(self):
        self.navigation.select_target(self.target_ball)
        self.navigation.start_navigating()
        self.running = self.tracker.start()
        while self.running and self.tracker.is_running:
            self.tracker.poll()
        self.navigation.stop_navigating()

        ranked = self.navigation.ranked_balls()
        for ball, meters in ranked:
            logger.info(f"  {ball.name:8s} {meters:5d} m  battery {ball.battery_level}%")

    def score_round(self, export_path: Optional[str]):
        try:
            self.scorecard.save()
        except EmptyRound:
            logger.info("Nothing to save yet (expected before scoring)")

        for hole_number, strokes in self.sim["scores"].items():
            self.scorecard.set_score(int(hole_number), strokes)
        stats = self.scorecard.aggregate()
        logger.info(
            f"Total {stats.total_score} ({stats.relative_to_par_display}) over "
            f"{stats.holes_played}/{len(self.course)} holes, average {stats.average_score:.1f}"
        )
        self.scorecard.save()

        if export_path:
            with open(export_path, "w", newline="", encoding="utf-8") as f:
                rows = self.store.export_csv(f)
            logger.info(f"Exported {rows} rows to {export_path}")

    def run(self, export_path: Optional[str] = None):
        self.discover_and_connect()
        self.navigate()
        self.score_round(export_path)
        self.navigation.close()


def main():
    parser = argparse.ArgumentParser(description="JackTrack core simulation")
    parser.add_argument("--ball", default="ball-1", help="Ball to navigate to")
    parser.add_argument("--export", default=None, help="CSV path for saved rounds")
    parser.add_argument("--metrics", action="store_true", help="Print metrics summary")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else getattr(logging, config.LOGGING_CONFIG["level"]),
        format=config.LOGGING_CONFIG["format"],
    )

    if args.ball not in config.SIMULATION_CONFIG["balls"]:
        parser.error(f"unknown ball {args.ball!r}")

    try:
        simulator = JackTrackSimulator(config.SIMULATION_CONFIG, args.ball)
        simulator.run(args.export)
    except JackTrackError as e:
        logger.error(f"Simulation failed: {e}")
        return 1

    if args.metrics:
        get_metrics().print_summary()
    return 0


if __name__ == "__main__":
    sys.exit(main())
