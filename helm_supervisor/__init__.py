"""Helm Supervisor: telemetry collector for the home-automation host."""

__version__ = "1.0.0"
