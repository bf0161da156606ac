"""Error kinds raised by the telemetry core."""

from __future__ import annotations

from pathlib import Path


class TelemetryError(Exception):
    """Base exception for telemetry backend errors."""


class NotFoundError(TelemetryError):
    """Requested bot is unknown."""


class MalformedRecordError(TelemetryError):
    """A persisted record could not be parsed."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Malformed record {path}: {reason}")
        self.path = path
        self.reason = reason


class WriteFailureError(TelemetryError):
    """Storage rejected a write; the report was not recorded."""


class ReportValidationError(TelemetryError):
    """An incoming report does not match its expected shape."""
