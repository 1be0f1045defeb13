"""Custom exceptions for the SCD4x exporter library."""


class SCD4xError(Exception):
    """Base exception for all SCD4x library errors."""

    pass


class TransportError(SCD4xError):
    """Raised when an I2C exchange cannot complete (NACK, bus busy, device absent)."""

    pass


class ProtocolError(SCD4xError):
    """Raised when the sensor sends a response with a bad checksum or wrong length."""

    pass


class RecoveryError(SCD4xError):
    """Raised when re-initialising the sensor after repeated failures does not succeed."""

    pass
