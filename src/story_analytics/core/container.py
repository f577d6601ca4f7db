"""Dependency injection container for building fully-wired report services."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence

from story_analytics.analytics.aggregator import Aggregator
from story_analytics.analytics.bucketing import BucketingEngine
from story_analytics.analytics.projector import Projector
from story_analytics.analytics.sqlite_repository import SQLiteRecordSource
from story_analytics.core.clock import SystemClock
from story_analytics.core.config import AnalyticsConfig
from story_analytics.core.middleware import (
    IMiddleware,
    LoggingMiddleware,
    MiddlewareChain,
    ValidationMiddleware,
)
from story_analytics.core.reports import ReportService
from story_analytics.core.router import ReportRouter
from story_analytics.domain.interfaces import IClock, IRecordSource

PACKAGE_LOGGER = "story_analytics"


class DIContainer:
    """Factory helpers that assemble report services with default wiring."""

    @staticmethod
    def create_report_service(
        *,
        source: Optional[IRecordSource] = None,
        config: Optional[AnalyticsConfig] = None,
        clock: Optional[IClock] = None,
        analytics_db_path: str | Path = "analytics.db",
    ) -> ReportService:
        cfg = config or AnalyticsConfig.from_env()
        DIContainer._configure_logging(cfg)
        bucketing = BucketingEngine()
        return ReportService(
            source or SQLiteRecordSource(analytics_db_path),
            clock=clock or SystemClock(),
            config=cfg,
            bucketing=bucketing,
            aggregator=Aggregator(bucketing),
            projector=Projector(),
        )

    @staticmethod
    def create_router(
        *,
        source: Optional[IRecordSource] = None,
        config: Optional[AnalyticsConfig] = None,
        clock: Optional[IClock] = None,
        analytics_db_path: str | Path = "analytics.db",
    ) -> ReportRouter:
        service = DIContainer.create_report_service(
            source=source,
            config=config,
            clock=clock,
            analytics_db_path=analytics_db_path,
        )
        return ReportRouter(service, middleware=DIContainer._build_middleware_chain())

    @staticmethod
    def create_custom_router(
        *,
        service: ReportService,
        middleware: Optional[MiddlewareChain] = None,
        middlewares: Optional[Sequence[IMiddleware]] = None,
    ) -> ReportRouter:
        return ReportRouter(service, middleware=middleware, middlewares=middlewares)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _build_middleware_chain() -> MiddlewareChain:
        return MiddlewareChain(
            [
                ValidationMiddleware(ReportRouter.ROUTE_PARAMS),
                LoggingMiddleware(),
            ]
        )

    @staticmethod
    def _configure_logging(config: AnalyticsConfig) -> None:
        logging.getLogger(PACKAGE_LOGGER).setLevel(config.log_level.upper())
