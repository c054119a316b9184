"""
OpenTelemetry Integration Module

Provides tracing and metrics for the bridge:
- tracer: tracer setup and span creation
- metrics: counters, latency histograms and the cache size gauge
"""

from .tracer import setup_tracer, create_span
from .metrics import setup_metrics, increment_counter, record_latency, observe_size

__all__ = [
    "setup_tracer",
    "create_span",
    "setup_metrics",
    "increment_counter",
    "record_latency",
    "observe_size",
]
