"""Data models for the SCD4x exporter library."""

import threading
from dataclasses import dataclass
from enum import Enum


class ReadResult(Enum):
    """Outcome of a single poll of the sensor."""

    SUCCESS = "success"
    NOT_READY = "not_ready"
    FAILED = "failed"


@dataclass(frozen=True)
class Measurement:
    """One decoded sample from the sensor.

    Attributes:
        co2_ppm: CO2 concentration in parts per million.
        temperature_c: Temperature in degrees Celsius.
        humidity_pct: Relative humidity in percent. Not clamped to 0-100,
                      the raw conversion can land slightly outside that range.
    """

    co2_ppm: float
    temperature_c: float
    humidity_pct: float

    def __post_init__(self) -> None:
        """Validate measurement values."""
        if self.co2_ppm < 0:
            raise ValueError(f"co2_ppm must be non-negative, got {self.co2_ppm}")


class HealthState:
    """Binary sensor health flag shared between the poller and the HTTP layer.

    Only the poller writes it; readers never mutate. Starts unhealthy until
    the first successful read.
    """

    def __init__(self, healthy: bool = False) -> None:
        self._flag = threading.Event()
        if healthy:
            self._flag.set()

    def mark_healthy(self) -> None:
        self._flag.set()

    def mark_unhealthy(self) -> None:
        self._flag.clear()

    def is_healthy(self) -> bool:
        return self._flag.is_set()
