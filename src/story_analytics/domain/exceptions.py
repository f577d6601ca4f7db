"""Exception hierarchy for analytics aggregation failures."""

from __future__ import annotations

from typing import Any, Mapping


class AnalyticsError(Exception):
    """Base class for all domain-level errors in the analytics engine."""

    default_message = "Analytics error occurred"

    def __init__(
        self, message: str | None = None, *, context: Mapping[str, Any] | None = None
    ):
        self.message = message or self.default_message
        self.context: Mapping[str, Any] = dict(context or {})
        formatted = self._format_message()
        super().__init__(formatted)

    def _format_message(self) -> str:
        if self.context:
            return f"{self.message} | context={self.context}"
        return self.message


class RecordSourceError(AnalyticsError):
    """The record source could not answer a query (storage or network fault)."""

    default_message = "Record source is unavailable"


class InvalidParameterError(AnalyticsError, ValueError):
    """Raised when a caller supplies a negative or non-integer parameter."""

    default_message = "Invalid report parameter"


class UnknownReportError(AnalyticsError, ValueError):
    """Raised for report names or metrics the engine does not provide."""

    default_message = "Unknown report"
