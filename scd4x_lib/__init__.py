"""
scd4x_lib - Polling driver and Prometheus exporter core for Sensirion SCD4x sensors.

Supports SCD40/SCD41 in periodic measurement mode over Linux I2C.
"""

from scd4x_lib.driver import SCD4xDriver
from scd4x_lib.errors import ProtocolError, RecoveryError, SCD4xError, TransportError
from scd4x_lib.exporter import Exporter
from scd4x_lib.metrics import MetricsSink, PrometheusMetrics
from scd4x_lib.models import HealthState, Measurement, ReadResult
from scd4x_lib.poller import MeasurementPoller
from scd4x_lib.transport import BusTransport, I2CTransport

__version__ = "0.1.0"

__all__ = [
    "SCD4xDriver",
    "MeasurementPoller",
    "Exporter",
    "PrometheusMetrics",
    "MetricsSink",
    "Measurement",
    "ReadResult",
    "HealthState",
    "BusTransport",
    "I2CTransport",
    "SCD4xError",
    "TransportError",
    "ProtocolError",
    "RecoveryError",
]
