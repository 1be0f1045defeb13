"""Prometheus metrics sink for sensor measurements."""

import logging
from typing import Optional, Protocol, Tuple

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, Gauge, generate_latest

from scd4x_lib.models import Measurement

logger = logging.getLogger(__name__)


class MetricsSink(Protocol):
    """Protocol for anything that records measurements and read errors."""

    def update(self, measurement: Measurement) -> None:
        ...

    def inc_read_error(self) -> None:
        ...


class PrometheusMetrics:
    """Holds the exporter's gauges and error counter in a private registry.

    Series:
        scd41_value{type="co2", unit="ppm"}
        scd41_value{type="temperature", unit="°C"}
        scd41_value{type="humidity", unit="%"}
        sensor_read_errors_total
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        """Initialize metrics.

        Args:
            registry: Registry to register collectors in. A fresh one is
                      created if omitted, so instances never collide.
        """
        self.registry = registry if registry is not None else CollectorRegistry()

        self._values = Gauge(
            "scd41_value",
            "SCD41 sensor values with type and unit labels",
            ["type", "unit"],
            registry=self.registry,
        )
        self._read_errors = Counter(
            "sensor_read_errors",
            "Total number of failed sensor reads",
            registry=self.registry,
        )

    def update(self, measurement: Measurement) -> None:
        """Publish one measurement to the gauges."""
        self._values.labels("co2", "ppm").set(measurement.co2_ppm)
        self._values.labels("temperature", "°C").set(measurement.temperature_c)
        self._values.labels("humidity", "%").set(measurement.humidity_pct)
        logger.debug(f"Metrics updated: {measurement}")

    def inc_read_error(self) -> None:
        self._read_errors.inc()

    def render(self) -> Tuple[bytes, str]:
        """Render the registry in Prometheus text exposition format.

        Returns:
            Tuple of (body, content_type)
        """
        return generate_latest(self.registry), CONTENT_TYPE_LATEST
