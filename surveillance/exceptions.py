"""
Exception hierarchy for the surveillance subsystem.

Adapters raise these; the registry and service boundaries convert them into
data (DataSourceError, None) so callers never see them.
"""

from typing import Any


class SurveillanceError(Exception):
    """Base exception for all surveillance errors."""

    def __init__(
        self,
        message: str,
        code: str = "SURVEILLANCE_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {"error": self.code, "message": self.message, "details": self.details}


class DataSourceFetchError(SurveillanceError):
    """An external feed could not be fetched or returned an unusable payload."""

    def __init__(
        self,
        message: str,
        source: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code="DATA_SOURCE_ERROR",
            details={"source": source, "status_code": status_code, **(details or {})},
        )
        self.source = source
        self.status_code = status_code


class ConfigurationError(SurveillanceError):
    """Invalid or missing configuration."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code="CONFIGURATION_ERROR", details=details)
