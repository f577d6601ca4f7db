"""Report router dispatching named report requests through middleware."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel

from story_analytics.core.middleware import IMiddleware, MiddlewareChain, ReportRequest
from story_analytics.core.reports import ReportService
from story_analytics.domain.exceptions import UnknownReportError
from story_analytics.domain.models import TimeSeriesPoint

ReportHandler = Callable[..., Any]


class ReportRouter:
    """High-level API mapping dashboard endpoint names to report builders."""

    ROUTE_PARAMS: Mapping[str, Tuple[str, ...]] = {
        "dashboard-summary": (),
        "user-growth": ("days",),
        "ai-usage-chart": ("days",),
        "daily-calls": ("days",),
        "daily-cost": ("days",),
        "cost-by-service": (),
        "subscription-stats": (),
        "emotion-stats": (),
        "narrative-stats": (),
        "monthly-summary": (),
        "recent-activities": ("limit",),
        "ai-usage-stats": (),
        "story-stats": (),
    }

    def __init__(
        self,
        service: ReportService,
        *,
        middleware: Optional[MiddlewareChain] = None,
        middlewares: Optional[Sequence[IMiddleware]] = None,
    ) -> None:
        if middleware and middlewares:
            raise ValueError("Provide either 'middleware' or 'middlewares', not both")
        self._service = service
        self._middleware = middleware or MiddlewareChain(middlewares or [])
        self._routes: Dict[str, ReportHandler] = {
            "dashboard-summary": service.get_dashboard_summary,
            "user-growth": service.get_user_growth,
            "ai-usage-chart": service.get_ai_call_series,
            "daily-calls": service.get_ai_call_series,
            "daily-cost": service.get_ai_cost_series,
            "cost-by-service": self._breakdown("cost_by_service"),
            "subscription-stats": self._breakdown("subscription_tier"),
            "emotion-stats": self._breakdown("emotion"),
            "narrative-stats": self._breakdown("narrative_type"),
            "monthly-summary": service.get_monthly_summary,
            "recent-activities": service.get_recent_activity,
            "ai-usage-stats": service.get_ai_usage_stats,
            "story-stats": service.get_story_stats,
        }

    @property
    def reports(self) -> List[str]:
        return sorted(self._routes)

    def run(self, name: str, **params: Any) -> Any:
        """Build the named report as typed objects."""
        if name not in self._routes:
            raise UnknownReportError(
                f"Unknown report '{name}'", context={"available": self.reports}
            )
        request = ReportRequest(name=name, params=params)

        def handler(processed: ReportRequest) -> Any:
            return self._routes[processed.name](**processed.params)

        return self._middleware.execute(request, handler)

    def render(self, name: str, **params: Any) -> Any:
        """Build the named report as JSON-ready primitives (chart rows use MM-DD)."""
        return self._to_payload(name, self.run(name, **params))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _breakdown(self, metric: str) -> ReportHandler:
        def build() -> Any:
            return self._service.get_category_breakdown(metric)

        return build

    @staticmethod
    def _to_payload(name: str, report: Any) -> Any:
        if isinstance(report, list):
            return [ReportRouter._row(name, item) for item in report]
        if isinstance(report, BaseModel):
            return report.model_dump(mode="json")
        return report

    @staticmethod
    def _row(name: str, item: Any) -> Mapping[str, Any]:
        if isinstance(item, TimeSeriesPoint):
            value_key = "value" if name == "user-growth" else "total"
            return item.to_chart_row(value_key)
        return item.model_dump(mode="json")
