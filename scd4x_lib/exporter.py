"""Exporter lifecycle: owns the transport, driver, poller, health and metrics."""

import logging
from typing import Optional

from scd4x_lib.driver import SCD4xDriver
from scd4x_lib.errors import SCD4xError
from scd4x_lib.metrics import PrometheusMetrics
from scd4x_lib.models import HealthState
from scd4x_lib.poller import DEFAULT_FAILURE_THRESHOLD, DEFAULT_INTERVAL_S, MeasurementPoller
from scd4x_lib.transport import BusTransport

logger = logging.getLogger(__name__)


class Exporter:
    """One sensor, one poller, one metrics registry.

    All state that the HTTP layer reads lives on this instance; nothing is
    module-global. Startup and shutdown ordering:

        start():    driver.init() -> [set ambient pressure] -> poller.start()
        shutdown(): poller.stop() -> driver.stop() -> transport.close()
    """

    def __init__(
        self,
        transport: BusTransport,
        driver: Optional[SCD4xDriver] = None,
        metrics: Optional[PrometheusMetrics] = None,
        interval_s: float = DEFAULT_INTERVAL_S,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
        ambient_pressure_pa: Optional[int] = None,
    ) -> None:
        """Initialize exporter.

        Args:
            transport: Bus transport, owned by this exporter from now on
            driver: Pre-built driver (for tests). Built over transport if None.
            metrics: Metrics sink. A fresh PrometheusMetrics if None.
            interval_s: Poll period in seconds
            failure_threshold: Consecutive failures before recovery
            ambient_pressure_pa: Optional pressure compensation applied at start
        """
        self.transport = transport
        self.driver = driver if driver is not None else SCD4xDriver(transport)
        self.metrics = metrics if metrics is not None else PrometheusMetrics()
        self.health = HealthState()
        self.poller = MeasurementPoller(
            self.driver,
            self.metrics,
            self.health,
            interval_s=interval_s,
            failure_threshold=failure_threshold,
        )
        self._ambient_pressure_pa = ambient_pressure_pa
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    def start(self) -> None:
        """Start periodic measurement on the sensor and begin polling.

        Failures here are fatal to the caller; nothing is retried.

        Raises:
            TransportError: If the first init command cannot be sent
            ValueError: If the configured ambient pressure is out of range
        """
        if self._started:
            return

        logger.info("Starting exporter...")
        self.driver.init()
        self._started = True

        if self._ambient_pressure_pa is not None:
            self.driver.set_ambient_pressure(self._ambient_pressure_pa)

        self.poller.start()
        logger.info("Exporter started")

    def shutdown(self, stop_timeout: float = 5.0) -> None:
        """Stop polling, put the sensor into idle, and release the bus.

        If the polling thread is still inside a bus transaction after
        stop_timeout, the bus is left to it: no stop command is sent and the
        transport stays open.

        Args:
            stop_timeout: Seconds to wait for the polling thread to exit
        """
        logger.info("Shutting down exporter...")

        if not self.poller.stop(timeout=stop_timeout):
            logger.error("Poller still running, leaving sensor and bus untouched")
            return

        if self._started:
            try:
                self.driver.stop()
                logger.info("Sensor stopped successfully")
            except SCD4xError as e:
                logger.error(f"Sensor stop failed: {e}")
            self._started = False

        close = getattr(self.transport, "close", None)
        if callable(close):
            close()

        logger.info("Shutdown complete")
