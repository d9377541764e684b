"""
Diagnostics for the tracking and scoring core.

Collaborator events the core ignores are never dropped silently: each is
counted under a reason code. The remaining counters follow one round of
play (scan activity, connection outcomes, location fixes, scoring) and are
grouped into the sections printed by `main.py --metrics`.
"""

import logging
import threading
from collections import Counter, deque
from dataclasses import dataclass
from typing import Deque, Dict, Iterable, List, Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)

# Section title -> counters reported under it, in display order
SUMMARY_SECTIONS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("Scan", ('discovery_events', 'telemetry_updates')),
    ("Connections", (
        'connect_attempts',
        'connections_established',
        'connection_failures',
        'connection_timeouts',
    )),
    ("Location", ('location_fixes',)),
    ("Scorecard", ('scores_set', 'rounds_saved')),
)

DROP_REASONS = {
    'scan_inactive': 'Discovery/telemetry event arrived while not scanning',
    'unknown_ball': 'Event references a ball id that is not registered',
    'invalid_transition': 'Requested connection state change not allowed',
    'tracker_stopped': 'Location poll while the tracker is not running',
    'no_fix': 'Location source reported no fix',
}

HISTOGRAM_SAMPLES = 1000


@dataclass(frozen=True)
class HistogramStats:
    """Summary of the retained samples of one histogram."""

    count: int
    min: float
    max: float
    mean: float
    median: float
    p95: float

    @classmethod
    def from_samples(cls, samples: Iterable[float]) -> "HistogramStats":
        values = np.asarray(list(samples), dtype=float)
        return cls(
            count=int(values.size),
            min=float(values.min()),
            max=float(values.max()),
            mean=float(values.mean()),
            median=float(np.median(values)),
            p95=float(np.percentile(values, 95)),
        )


@dataclass(frozen=True)
class MetricsSnapshot:
    """
    Point-in-time copy of the collector.

    Attributes:
        counters: Counter name -> value (summary counters always present)
        drop_reasons: Reason code -> dropped events (standard codes always present)
        histograms: Histogram name -> stats over the retained samples
    """

    counters: Dict[str, int]
    drop_reasons: Dict[str, int]
    histograms: Dict[str, HistogramStats]

    @property
    def total_dropped(self) -> int:
        return sum(self.drop_reasons.values())

    @property
    def connect_success_rate(self) -> Optional[float]:
        """Share of connect attempts the link confirmed, None before any attempt."""
        attempts = self.counters.get('connect_attempts', 0)
        if attempts == 0:
            return None
        return self.counters.get('connections_established', 0) / attempts

    def summary_lines(self) -> List[str]:
        """Human-readable report, one section per concern."""
        lines = []
        for title, names in SUMMARY_SECTIONS:
            lines.append(f"{title}:")
            for name in names:
                lines.append(f"  {name:26s} {self.counters.get(name, 0):6d}")
            if title == "Connections" and self.connect_success_rate is not None:
                lines.append(f"  {'success rate':26s} {self.connect_success_rate:6.0%}")

        dropped = sorted((r, c) for r, c in self.drop_reasons.items() if c > 0)
        if dropped:
            lines.append(f"Dropped events ({self.total_dropped}):")
            for reason, count in dropped:
                lines.append(f"  {reason:26s} {count:6d}")

        for name, stats in sorted(self.histograms.items()):
            lines.append(
                f"{name}: n={stats.count} median={stats.median:.2f} "
                f"p95={stats.p95:.2f} range=[{stats.min:.2f}, {stats.max:.2f}]"
            )
        return lines


class MetricsCollector:
    """
    Thread-safe counters, drop reasons and bounded histograms.

    Usage:
        collector = MetricsCollector()
        collector.increment('connect_attempts')
        collector.increment_drop('unknown_ball')
        collector.record_histogram('connect_latency_s', 1.4)
        collector.snapshot().connect_success_rate
    """

    DROP_REASONS = DROP_REASONS

    def __init__(self, histogram_samples: int = HISTOGRAM_SAMPLES):
        """
        Args:
            histogram_samples: Samples kept per histogram (oldest discarded first)
        """
        self._lock = threading.Lock()
        self._histogram_samples = histogram_samples
        self._counters: Counter = Counter()
        self._drops: Counter = Counter()
        self._histograms: Dict[str, Deque[float]] = {}

    def increment(self, counter_name: str, value: int = 1):
        with self._lock:
            self._counters[counter_name] += value

    def increment_drop(self, reason: str, value: int = 1):
        """Count ignored events under a reason code (unknown codes are logged, still counted)."""
        if reason not in self.DROP_REASONS:
            logger.warning(f"Unknown drop reason '{reason}'")
        with self._lock:
            self._drops[reason] += value

    def get_counter(self, counter_name: str) -> int:
        with self._lock:
            return self._counters[counter_name]

    def get_drop_count(self, reason: str) -> int:
        with self._lock:
            return self._drops[reason]

    def record_histogram(self, histogram_name: str, value: float):
        with self._lock:
            samples = self._histograms.get(histogram_name)
            if samples is None:
                samples = deque(maxlen=self._histogram_samples)
                self._histograms[histogram_name] = samples
            samples.append(float(value))

    def get_histogram_stats(self, histogram_name: str) -> Optional[HistogramStats]:
        """Stats over the retained samples, or None if nothing was recorded."""
        with self._lock:
            samples = list(self._histograms.get(histogram_name, ()))
        if not samples:
            return None
        return HistogramStats.from_samples(samples)

    def snapshot(self) -> MetricsSnapshot:
        with self._lock:
            counters = dict(self._counters)
            drops = dict(self._drops)
            histograms = {name: list(samples) for name, samples in self._histograms.items()}

        for _, names in SUMMARY_SECTIONS:
            for name in names:
                counters.setdefault(name, 0)
        for reason in self.DROP_REASONS:
            drops.setdefault(reason, 0)

        return MetricsSnapshot(
            counters=counters,
            drop_reasons=drops,
            histograms={
                name: HistogramStats.from_samples(samples)
                for name, samples in histograms.items()
            },
        )

    def reset(self):
        with self._lock:
            self._counters.clear()
            self._drops.clear()
            self._histograms.clear()

    def print_summary(self):
        """Print the sectioned report to stdout."""
        print("\n" + "=" * 50)
        print("  JACKTRACK METRICS")
        print("=" * 50)
        for line in self.snapshot().summary_lines():
            print(line)
        print("=" * 50 + "\n")
