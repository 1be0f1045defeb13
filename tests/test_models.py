"""Tests for data models."""

import dataclasses

import pytest

from scd4x_lib.models import HealthState, Measurement, ReadResult


def test_measurement_is_immutable() -> None:
    measurement = Measurement(co2_ppm=400.0, temperature_c=-5.0, humidity_pct=101.2)

    with pytest.raises(dataclasses.FrozenInstanceError):
        measurement.co2_ppm = 500.0  # type: ignore[misc]


def test_measurement_rejects_negative_co2() -> None:
    with pytest.raises(ValueError):
        Measurement(co2_ppm=-1.0, temperature_c=20.0, humidity_pct=40.0)


def test_health_state_transitions() -> None:
    health = HealthState()
    assert not health.is_healthy()

    health.mark_healthy()
    assert health.is_healthy()

    health.mark_unhealthy()
    assert not health.is_healthy()

    assert HealthState(healthy=True).is_healthy()


def test_read_result_has_three_cases() -> None:
    assert {r.name for r in ReadResult} == {"SUCCESS", "NOT_READY", "FAILED"}
