"""Telemetry context orchestration."""

from .telemetry_context import TelemetryContext

__all__ = ["TelemetryContext"]
