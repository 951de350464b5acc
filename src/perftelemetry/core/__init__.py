"""Core telemetry clock and scheduler."""

from .environment import TelemetryEnvironment

__all__ = ["TelemetryEnvironment"]
