import logging
from datetime import datetime, timezone

import pytest

from story_analytics.analytics.memory_repository import InMemoryRecordSource
from story_analytics.core.clock import FixedClock
from story_analytics.core.config import AnalyticsConfig
from story_analytics.core.container import DIContainer
from story_analytics.core.middleware import LoggingMiddleware, MiddlewareChain
from story_analytics.core.reports import ReportService
from story_analytics.core.router import ReportRouter
from story_analytics.domain.exceptions import InvalidParameterError

NOW = datetime(2026, 2, 5, 15, 30, tzinfo=timezone.utc)


def test_create_report_service_defaults_to_sqlite(tmp_path):
    db_path = tmp_path / "analytics.db"
    service = DIContainer.create_report_service(
        config=AnalyticsConfig(), analytics_db_path=db_path
    )

    assert isinstance(service, ReportService)
    assert db_path.exists()
    assert service.get_dashboard_summary().total_users == 0


def test_create_report_service_reads_config_from_env(monkeypatch):
    monkeypatch.setenv("ANALYTICS_DEFAULT_DAYS", "10")
    service = DIContainer.create_report_service(
        source=InMemoryRecordSource(), clock=FixedClock(NOW)
    )
    assert service.config.default_days == 10
    assert len(service.get_ai_cost_series()) == 10


def test_create_report_service_applies_log_level():
    package_logger = logging.getLogger("story_analytics")
    previous = package_logger.level
    try:
        DIContainer.create_report_service(
            source=InMemoryRecordSource(), config=AnalyticsConfig(log_level="debug")
        )
        assert package_logger.level == logging.DEBUG
    finally:
        package_logger.setLevel(previous)


def test_create_router_wires_validation():
    router = DIContainer.create_router(
        source=InMemoryRecordSource(), config=AnalyticsConfig(), clock=FixedClock(NOW)
    )

    assert isinstance(router, ReportRouter)
    with pytest.raises(InvalidParameterError):
        router.run("monthly-summary", days=30)
    with pytest.raises(InvalidParameterError):
        router.run("daily-cost", days=-1)


def test_create_custom_router_uses_given_chain():
    service = ReportService(InMemoryRecordSource(), clock=FixedClock(NOW))
    chain = MiddlewareChain([LoggingMiddleware()])

    router = DIContainer.create_custom_router(service=service, middleware=chain)

    assert len(router.run("daily-calls", days=2)) == 2


def test_create_custom_router_rejects_both_middleware_styles():
    service = ReportService(InMemoryRecordSource(), clock=FixedClock(NOW))
    with pytest.raises(ValueError):
        DIContainer.create_custom_router(
            service=service,
            middleware=MiddlewareChain([]),
            middlewares=[LoggingMiddleware()],
        )
