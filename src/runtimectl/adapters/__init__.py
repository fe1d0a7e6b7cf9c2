"""Adapters binding the core to logging, telemetry and web frameworks."""
