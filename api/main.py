"""FastAPI metrics and health surface for the SCD41 exporter.

Single-process, single-sensor lifecycle. The app owns one Exporter for its
whole lifetime; the exporter is started when the app starts and shut down
(poller first, then a final stop command, then the bus) when it stops.

Endpoints:
- GET /metrics → Prometheus text exposition
- GET /healthz → 200 "ok" / 503 "sensor error"
- GET /status  → JSON snapshot of poller state
- GET /        → service info
"""

import logging
import math
import os
import sys
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Mapping, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, Response
from pydantic import BaseModel

from api.logging_config import configure_logging
from scd4x_lib import Exporter, I2CTransport, __version__, protocol
from scd4x_lib.errors import SCD4xError
from scd4x_lib.poller import DEFAULT_FAILURE_THRESHOLD, DEFAULT_INTERVAL_S

logger = logging.getLogger(__name__)

SERVICE_NAME = "SCD41 Exporter"

# =============================================================================
# Environment Configuration
# =============================================================================


@dataclass(frozen=True)
class ExporterConfig:
    """Process configuration, fixed for the life of the process.

    Attributes:
        api_host: HTTP bind host.
        api_port: HTTP bind port.
        i2c_bus: Linux I2C adapter number.
        i2c_address: 7-bit sensor address.
        poll_interval_s: Seconds between polls.
        failure_threshold: Consecutive failed polls before recovery.
        ambient_pressure_pa: Optional pressure compensation applied at startup.
        log_level: Root log level name.
        log_format: "json" or "text".
    """

    api_host: str = "0.0.0.0"
    api_port: int = 9105
    i2c_bus: int = protocol.DEFAULT_I2C_BUS
    i2c_address: int = protocol.DEFAULT_I2C_ADDRESS
    poll_interval_s: float = DEFAULT_INTERVAL_S
    failure_threshold: int = DEFAULT_FAILURE_THRESHOLD
    ambient_pressure_pa: Optional[int] = None
    log_level: str = "INFO"
    log_format: str = "json"

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if not (1 <= self.api_port <= 65535):
            raise ValueError(f"api_port must be 1-65535, got {self.api_port}")

        if self.i2c_bus < 0:
            raise ValueError(f"i2c_bus must be non-negative, got {self.i2c_bus}")

        if not (0x03 <= self.i2c_address <= 0x77):
            raise ValueError(f"i2c_address must be 0x03-0x77, got {self.i2c_address:#x}")

        if not math.isfinite(self.poll_interval_s) or self.poll_interval_s <= 0:
            raise ValueError(f"poll_interval_s must be positive, got {self.poll_interval_s}")

        if self.failure_threshold < 1:
            raise ValueError(f"failure_threshold must be >= 1, got {self.failure_threshold}")

        if self.ambient_pressure_pa is not None and not (
            protocol.AMBIENT_PRESSURE_MIN_PA
            <= self.ambient_pressure_pa
            <= protocol.AMBIENT_PRESSURE_MAX_PA
        ):
            raise ValueError(
                f"ambient_pressure_pa must be {protocol.AMBIENT_PRESSURE_MIN_PA}-"
                f"{protocol.AMBIENT_PRESSURE_MAX_PA}, got {self.ambient_pressure_pa}"
            )

        if self.log_format not in ("json", "text"):
            raise ValueError(f"log_format must be 'json' or 'text', got '{self.log_format}'")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ExporterConfig":
        """Read configuration from environment variables.

        Args:
            environ: Mapping to read from. Defaults to os.environ.

        Raises:
            ValueError: If a variable cannot be parsed or is out of range
        """
        env = os.environ if environ is None else environ

        pressure = env.get("AMBIENT_PRESSURE_PA", "").strip()

        return cls(
            api_host=env.get("API_HOST", "0.0.0.0"),
            api_port=int(env.get("API_PORT", "9105")),
            i2c_bus=int(env.get("I2C_BUS", str(protocol.DEFAULT_I2C_BUS))),
            # Base 0 accepts "0x62" as well as "98"
            i2c_address=int(env.get("I2C_ADDRESS", hex(protocol.DEFAULT_I2C_ADDRESS)), 0),
            poll_interval_s=float(env.get("POLL_INTERVAL_S", str(DEFAULT_INTERVAL_S))),
            failure_threshold=int(env.get("FAILURE_THRESHOLD", str(DEFAULT_FAILURE_THRESHOLD))),
            ambient_pressure_pa=int(pressure) if pressure else None,
            log_level=env.get("LOG_LEVEL", "INFO"),
            log_format=env.get("LOG_FORMAT", "json").lower(),
        )


# =============================================================================
# Request/Response Models
# =============================================================================


class StatusResponse(BaseModel):
    """Response for GET /status."""
    healthy: bool
    polling: bool
    consecutive_failures: int
    failure_threshold: int
    interval_s: float


# =============================================================================
# FastAPI App
# =============================================================================


def create_app(exporter: Exporter) -> FastAPI:
    """Build the HTTP app around an exporter.

    The exporter is started in the app's lifespan; a startup failure aborts
    the app (the bus is released before the error propagates).

    Args:
        exporter: Exporter instance owned by the app from now on
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            exporter.start()
        except Exception:
            logger.error("Sensor initialization failed", exc_info=True)
            exporter.shutdown()
            raise

        try:
            yield
        finally:
            exporter.shutdown()

    app = FastAPI(
        title=SERVICE_NAME,
        description="Prometheus exporter for Sensirion SCD4x CO2 sensors",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.exporter = exporter

    @app.get("/")
    async def root():
        """Service info."""
        return {
            "service": SERVICE_NAME,
            "version": __version__,
            "status": "online",
        }

    @app.get("/metrics")
    async def metrics(request: Request):
        """Prometheus scrape endpoint."""
        body, content_type = request.app.state.exporter.metrics.render()
        return Response(content=body, media_type=content_type)

    @app.get("/healthz", response_class=PlainTextResponse)
    async def healthz(request: Request):
        """Sensor health: 200 when the last classified poll succeeded."""
        if not request.app.state.exporter.health.is_healthy():
            remote = request.client.host if request.client else "unknown"
            logger.warning(f"Health check failed, remote={remote}")
            return PlainTextResponse("sensor error", status_code=503)
        return PlainTextResponse("ok")

    @app.get("/status", response_model=StatusResponse)
    async def status(request: Request):
        """Snapshot of the poller's failure tracking."""
        exp: Exporter = request.app.state.exporter
        return StatusResponse(
            healthy=exp.health.is_healthy(),
            polling=exp.poller.is_running(),
            consecutive_failures=exp.poller.consecutive_failures,
            failure_threshold=exp.poller.failure_threshold,
            interval_s=exp.poller.interval_s,
        )

    return app


# =============================================================================
# Entry Point
# =============================================================================


def build_exporter(config: ExporterConfig) -> Exporter:
    """Open the I2C bus and build an exporter over it.

    Raises:
        TransportError: If the bus cannot be opened
    """
    transport = I2CTransport.open(config.i2c_bus, config.i2c_address)
    return Exporter(
        transport,
        interval_s=config.poll_interval_s,
        failure_threshold=config.failure_threshold,
        ambient_pressure_pa=config.ambient_pressure_pa,
    )


def main() -> int:
    """Run the exporter until interrupted. Returns the process exit code."""
    try:
        config = ExporterConfig.from_env()
    except ValueError as e:
        configure_logging()
        logger.error(f"Invalid configuration: {e}")
        return 1

    configure_logging(config.log_level, config.log_format)

    logger.info("=" * 60)
    logger.info(f"{SERVICE_NAME} {__version__} starting")
    logger.info(f"Listen: {config.api_host}:{config.api_port}")
    logger.info(f"I2C: bus {config.i2c_bus}, address {config.i2c_address:#04x}")
    logger.info(f"Poll interval: {config.poll_interval_s}s")
    logger.info(f"Failure threshold: {config.failure_threshold}")
    logger.info("=" * 60)

    try:
        exporter = build_exporter(config)
    except SCD4xError as e:
        logger.error(f"Failed to open sensor bus: {e}")
        return 1

    app = create_app(exporter)
    # log_config=None keeps uvicorn on the root handler installed above
    uvicorn.run(app, host=config.api_host, port=config.api_port, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
