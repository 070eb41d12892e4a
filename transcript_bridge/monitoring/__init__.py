from .telemetry import ErrorReporter, TelemetryLogger

__all__ = ["ErrorReporter", "TelemetryLogger"]
