"""
Metrics Module: Diagnostics, counters, histograms.

Every ignored collaborator event is counted with a drop reason code so
nothing is dropped silently:
- Counters: discovery_events, telemetry_updates, connect_attempts, ...
- Histograms: signal_strength, connect_latency_s
- Drop reasons: scan_inactive, unknown_ball, invalid_transition, ...

Usage:
    from jacktrack_core.metrics import get_metrics
    
    metrics = get_metrics()
    metrics.increment('discovery_events')
    metrics.increment_drop('unknown_ball')
    metrics.record_histogram('signal_strength', -62)
"""

from .counters import HistogramStats, MetricsCollector, MetricsSnapshot

# Global singleton for easy access
_global_metrics = None


def get_metrics() -> MetricsCollector:
    """
    Get the global metrics collector singleton.
    
    Returns:
        MetricsCollector instance
    """
    global _global_metrics
    if _global_metrics is None:
        _global_metrics = MetricsCollector()
    return _global_metrics


def reset_metrics():
    """Reset global metrics (for testing)."""
    global _global_metrics
    _global_metrics = MetricsCollector()


__all__ = [
    'HistogramStats',
    'MetricsCollector',
    'MetricsSnapshot',
    'get_metrics',
    'reset_metrics',
]
