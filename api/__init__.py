"""HTTP surface and entry point for the SCD41 exporter."""
