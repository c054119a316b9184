"""
OpenTelemetry Metrics Collection

Counters and latency histograms for argument cache and method call activity.
Instruments are created lazily on first use, so nothing is exported until a
MeterProvider is installed with setup_metrics.
"""

import logging
from typing import Any, Callable, Dict

from opentelemetry import metrics
from opentelemetry.metrics import CallbackOptions, Observation
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter

logger = logging.getLogger(__name__)

# name -> (description, unit)
INSTRUMENTS = {
    "opcua_bridge.cache.hits": ("InputArguments lookups answered from memory", "1"),
    "opcua_bridge.cache.misses": ("InputArguments lookups requiring a server round trip", "1"),
    "opcua_bridge.cache.fetches": ("Batched browse + read round trips", "1"),
    "opcua_bridge.cache.fetch_latency": ("Duration of a batched InputArguments fetch", "ms"),
    "opcua_bridge.cache.size": ("Methods with cached InputArguments", "1"),
    "opcua_bridge.invoke.requests": ("Method calls forwarded to the session", "1"),
    "opcua_bridge.invoke.errors": ("Call batches rejected before reaching the session", "1"),
    "opcua_bridge.invoke.latency": ("Duration of a call batch including argument resolution", "ms"),
}

_counters = {}
_histograms = {}


def setup_metrics(service_name: str, otlp_endpoint: str = "localhost:4317", export_interval_ms: int = 5000):
    """Configure OpenTelemetry metrics collection

    Args:
        service_name: Service name
        otlp_endpoint: OTLP receiver address
        export_interval_ms: Metrics export interval in milliseconds
    """
    otlp_reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=otlp_endpoint),
        export_interval_millis=export_interval_ms
    )

    provider = MeterProvider(metric_readers=[otlp_reader])
    metrics.set_meter_provider(provider)
    meter = metrics.get_meter(service_name)

    logger.info(f"OpenTelemetry metrics configured, service name: {service_name}, OTLP endpoint: {otlp_endpoint}")

    return meter


def _describe(name: str, fallback_unit: str):
    return INSTRUMENTS.get(name, (name, fallback_unit))


def get_counter(name: str):
    """Get or create a counter from the instrument table"""
    if name not in _counters:
        description, unit = _describe(name, "1")
        _counters[name] = metrics.get_meter(__name__).create_counter(
            name=name, description=description, unit=unit)
    return _counters[name]


def get_histogram(name: str):
    """Get or create a histogram from the instrument table"""
    if name not in _histograms:
        description, unit = _describe(name, "ms")
        _histograms[name] = metrics.get_meter(__name__).create_histogram(
            name=name, description=description, unit=unit)
    return _histograms[name]


def increment_counter(name: str, amount: int = 1, attributes: Dict[str, Any] = None):
    """Increment counter value

    Args:
        name: Counter name
        amount: Amount to increment
        attributes: Attribute labels
    """
    get_counter(name).add(amount, attributes or {})


def record_latency(name: str, value_ms: float, attributes: Dict[str, Any] = None):
    """Record latency histogram

    Args:
        name: Histogram name
        value_ms: Latency value in milliseconds
        attributes: Attribute labels
    """
    get_histogram(name).record(value_ms, attributes or {})


def observe_size(name: str, size: Callable[[], int]):
    """Register an observable gauge reporting ``size()`` at each export"""

    def callback(options: CallbackOptions):
        yield Observation(size())

    description, unit = _describe(name, "1")
    return metrics.get_meter(__name__).create_observable_gauge(
        name=name, description=description, unit=unit, callbacks=[callback])
