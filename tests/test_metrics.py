"""Tests for the Prometheus metrics sink."""

from prometheus_client import CollectorRegistry

from scd4x_lib.metrics import PrometheusMetrics
from scd4x_lib.models import Measurement


def test_update_sets_labelled_gauges() -> None:
    metrics = PrometheusMetrics()
    metrics.update(Measurement(co2_ppm=812.0, temperature_c=22.25, humidity_pct=41.5))

    registry = metrics.registry
    assert registry.get_sample_value("scd41_value", {"type": "co2", "unit": "ppm"}) == 812.0
    assert registry.get_sample_value("scd41_value", {"type": "temperature", "unit": "°C"}) == 22.25
    assert registry.get_sample_value("scd41_value", {"type": "humidity", "unit": "%"}) == 41.5


def test_latest_measurement_wins() -> None:
    metrics = PrometheusMetrics()
    metrics.update(Measurement(co2_ppm=500.0, temperature_c=20.0, humidity_pct=40.0))
    metrics.update(Measurement(co2_ppm=900.0, temperature_c=21.0, humidity_pct=42.0))

    assert metrics.registry.get_sample_value("scd41_value", {"type": "co2", "unit": "ppm"}) == 900.0


def test_read_errors_counter() -> None:
    metrics = PrometheusMetrics()
    assert metrics.registry.get_sample_value("sensor_read_errors_total") == 0.0

    metrics.inc_read_error()
    metrics.inc_read_error()

    assert metrics.registry.get_sample_value("sensor_read_errors_total") == 2.0


def test_instances_do_not_share_state() -> None:
    """Test that two sinks can coexist without registry collisions."""
    first = PrometheusMetrics()
    second = PrometheusMetrics()

    first.inc_read_error()

    assert second.registry.get_sample_value("sensor_read_errors_total") == 0.0


def test_explicit_registry() -> None:
    registry = CollectorRegistry()
    metrics = PrometheusMetrics(registry)
    assert metrics.registry is registry


def test_render_exposition() -> None:
    metrics = PrometheusMetrics()
    metrics.update(Measurement(co2_ppm=800.0, temperature_c=25.0, humidity_pct=40.0))

    body, content_type = metrics.render()

    text = body.decode("utf-8")
    assert content_type.startswith("text/plain")
    assert 'scd41_value{type="co2",unit="ppm"} 800.0' in text
    assert "sensor_read_errors_total 0.0" in text
