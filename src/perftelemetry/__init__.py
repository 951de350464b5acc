"""PerfTelemetry: client-side performance instrumentation and reporting."""

__version__ = "0.1.0"
