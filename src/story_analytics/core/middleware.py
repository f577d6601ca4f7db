"""Middleware system for report-request cross-cutting concerns."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Mapping, Protocol, Sequence

from pydantic import BaseModel, ConfigDict, Field

from story_analytics.domain.exceptions import InvalidParameterError
from story_analytics.utils.validators import validate_count


class ReportRequest(BaseModel):
    """Immutable named report request with its query parameters."""

    model_config = ConfigDict(frozen=True)

    name: str
    params: Mapping[str, Any] = Field(default_factory=dict)


class IMiddleware(Protocol):
    """Protocol describing middleware hooks."""

    def process_request(self, request: ReportRequest) -> ReportRequest: ...

    def process_response(self, request: ReportRequest, report: Any) -> Any: ...


class LoggingMiddleware(IMiddleware):
    """Logs inbound report requests and the time taken to build them."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(__name__)
        self._started: float | None = None

    def process_request(self, request: ReportRequest) -> ReportRequest:
        self._started = time.perf_counter()
        self._logger.info(
            "report_request",
            extra={"report": request.name, "params": dict(request.params)},
        )
        return request

    def process_response(self, request: ReportRequest, report: Any) -> Any:
        elapsed_ms = None
        if self._started is not None:
            elapsed_ms = round((time.perf_counter() - self._started) * 1000, 3)
            self._started = None
        self._logger.info(
            "report_response",
            extra={
                "report": request.name,
                "elapsed_ms": elapsed_ms,
                "rows": len(report) if isinstance(report, list) else None,
            },
        )
        return report


class ValidationMiddleware(IMiddleware):
    """Rejects malformed ``days`` / ``limit`` values before any query runs."""

    COUNT_PARAMS = ("days", "limit")

    def __init__(self, allowed_params: Mapping[str, Sequence[str]] | None = None) -> None:
        self._allowed_params = allowed_params

    def process_request(self, request: ReportRequest) -> ReportRequest:
        if self._allowed_params is not None and request.name in self._allowed_params:
            unexpected = set(request.params) - set(self._allowed_params[request.name])
            if unexpected:
                raise InvalidParameterError(
                    f"Unexpected parameters for '{request.name}'",
                    context={"unexpected": sorted(unexpected)},
                )
        for name in self.COUNT_PARAMS:
            if name in request.params:
                validate_count(name, request.params[name], default=0)
        return request

    def process_response(self, request: ReportRequest, report: Any) -> Any:
        return report


class MiddlewareChain:
    """Applies middleware around a handler using chain of responsibility."""

    def __init__(self, middlewares: Sequence[IMiddleware]) -> None:
        self._middlewares = list(middlewares)

    def execute(
        self, request: ReportRequest, handler: Callable[[ReportRequest], Any]
    ) -> Any:
        for middleware in self._middlewares:
            request = middleware.process_request(request)

        report = handler(request)

        for middleware in reversed(self._middlewares):
            report = middleware.process_response(request, report)

        return report
