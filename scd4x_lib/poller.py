"""Periodic measurement poller with failure counting and automatic recovery."""

import logging
import math
import threading
import time
from typing import Optional

from scd4x_lib.driver import SCD4xDriver
from scd4x_lib.errors import RecoveryError, SCD4xError
from scd4x_lib.metrics import MetricsSink
from scd4x_lib.models import HealthState, ReadResult

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_S = 5.0
DEFAULT_FAILURE_THRESHOLD = 5


class MeasurementPoller:
    """Drives the sensor driver on a fixed period and keeps health up to date.

    Each tick is classified as SUCCESS, NOT_READY or FAILED:

    ========== =============== ========= ===================================
    Outcome    Failure counter Health    Action
    ========== =============== ========= ===================================
    SUCCESS    reset to 0      healthy   forward measurement to the sink
    NOT_READY  unchanged       unchanged none
    FAILED     +1              unhealthy count error, recover at threshold
    ========== =============== ========= ===================================

    The polling thread is the only user of the driver once started.
    """

    def __init__(
        self,
        driver: SCD4xDriver,
        sink: MetricsSink,
        health: HealthState,
        interval_s: float = DEFAULT_INTERVAL_S,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
    ) -> None:
        """Initialize poller.

        Args:
            driver: Protocol driver to poll
            sink: Receives measurements and read error increments
            health: Shared health flag (this poller is its only writer)
            interval_s: Seconds between ticks. Must be positive.
            failure_threshold: Consecutive failures before a recovery attempt.
        """
        if not math.isfinite(interval_s) or interval_s <= 0:
            raise ValueError(f"interval_s must be positive, got {interval_s}")
        if failure_threshold < 1:
            raise ValueError(f"failure_threshold must be >= 1, got {failure_threshold}")

        self._driver = driver
        self._sink = sink
        self._health = health
        self._interval_s = interval_s
        self._failure_threshold = failure_threshold

        self._consecutive_failures = 0

        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    @property
    def interval_s(self) -> float:
        return self._interval_s

    @property
    def failure_threshold(self) -> int:
        return self._failure_threshold

    def is_running(self) -> bool:
        """Check if the polling thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    # ========================================================================
    # Thread Control
    # ========================================================================

    def start(self) -> None:
        """Start the background polling thread.

        Raises:
            RuntimeError: If already running
        """
        if self.is_running():
            raise RuntimeError("Poller already running")

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            name="SensorPoller",
            daemon=True,
        )
        self._thread.start()
        logger.debug(f"Started poller thread at {self._interval_s}s interval")

    def stop(self, timeout: float = 5.0) -> bool:
        """Signal the polling thread to exit and wait for it.

        A bus transaction already in flight completes; no new one is started.
        A thread still alive after the timeout is kept, so is_running() stays
        True and start() keeps refusing until it has exited.

        Args:
            timeout: Seconds to wait for the thread to exit

        Returns:
            True if the thread has exited (or was never started)
        """
        if self._thread is None:
            return True

        logger.debug("Stopping poller thread...")
        self._stop_event.set()
        self._thread.join(timeout=timeout)

        if self._thread.is_alive():
            logger.error(f"Poller thread did not stop within {timeout}s")
            return False

        self._thread = None
        return True

    # ========================================================================
    # Classification and Reaction
    # ========================================================================

    def tick(self) -> ReadResult:
        """Run one poll: classify the outcome and react to it.

        Returns:
            The classified outcome of this tick
        """
        result = self._read_and_update()

        if result is ReadResult.SUCCESS:
            self._consecutive_failures = 0

        elif result is ReadResult.NOT_READY:
            logger.debug("Skipping update: data not ready")

        elif result is ReadResult.FAILED:
            self._consecutive_failures += 1
            logger.warning(
                f"Sensor read failed, consecutive failures: {self._consecutive_failures}"
            )

            if self._stop_event.is_set():
                logger.debug("Stop requested, skipping sensor recovery")
            elif self._consecutive_failures >= self._failure_threshold:
                try:
                    self._recover_sensor()
                    self._consecutive_failures = 0
                except RecoveryError as e:
                    logger.warning(f"Sensor recovery failed, will retry later: {e}")

        return result

    def _read_and_update(self) -> ReadResult:
        """Poll the driver once and update health and metrics."""
        try:
            ready = self._driver.is_measuring()
        except SCD4xError as e:
            self._health.mark_unhealthy()
            self._sink.inc_read_error()
            logger.error(f"Sensor status check failed: {e}")
            return ReadResult.FAILED

        if not ready:
            logger.debug("Sensor data not ready, skipping update")
            return ReadResult.NOT_READY

        try:
            measurement = self._driver.read()
        except SCD4xError as e:
            self._health.mark_unhealthy()
            self._sink.inc_read_error()
            logger.error(f"Failed to read sensor data: {e}")
            return ReadResult.FAILED

        self._health.mark_healthy()
        self._sink.update(measurement)
        logger.info(
            f"Sensor data updated: co2={measurement.co2_ppm:.0f}ppm "
            f"temperature={measurement.temperature_c:.2f}C humidity={measurement.humidity_pct:.2f}%"
        )
        return ReadResult.SUCCESS

    def _recover_sensor(self) -> None:
        """Stop and restart periodic measurement, then confirm it is running.

        Raises:
            RecoveryError: If re-init fails or the sensor is not measuring after it
        """
        logger.warning("Attempting to recover sensor")

        try:
            self._driver.stop()
        except SCD4xError as e:
            logger.debug(f"Stop during recovery failed (ignored): {e}")

        try:
            self._driver.init()
        except SCD4xError as e:
            raise RecoveryError(f"Sensor re-init failed: {e}") from e

        try:
            measuring = self._driver.is_measuring()
        except SCD4xError as e:
            raise RecoveryError(f"Sensor status check after re-init failed: {e}") from e

        if not measuring:
            raise RecoveryError("Sensor still not measuring after re-init")

        logger.info("Sensor re-initialized successfully")

    # ========================================================================
    # Background Loop
    # ========================================================================

    def _poll_loop(self) -> None:
        """Background thread loop: wait for the next period, then tick."""
        logger.info(f"Sensor polling started (thread {threading.get_ident()})")

        next_tick = time.monotonic() + self._interval_s
        while not self._stop_event.wait(timeout=max(0.0, next_tick - time.monotonic())):
            try:
                self.tick()
            except Exception as e:
                logger.error(f"Error in poller loop: {e}", exc_info=True)

            next_tick += self._interval_s
            now = time.monotonic()
            if next_tick <= now:
                # Drop ticks missed while a slow tick was running
                missed = int((now - next_tick) // self._interval_s) + 1
                next_tick += missed * self._interval_s

        logger.info("Sensor polling stopped")
