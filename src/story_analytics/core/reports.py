"""Report assembly facade that coordinates record source, aggregator and projector."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from story_analytics.analytics.aggregator import Aggregator, count_one, numeric_field
from story_analytics.analytics.bucketing import BucketingEngine
from story_analytics.analytics.projector import Projector
from story_analytics.core.clock import SystemClock
from story_analytics.core.config import AnalyticsConfig
from story_analytics.domain.exceptions import UnknownReportError
from story_analytics.domain.interfaces import IClock, IRecordSource
from story_analytics.domain.models import (
    AI_SERVICES,
    SUBSCRIPTION_TIERS,
    ActivityItem,
    ActivityType,
    AiUsageStats,
    CategoryBreakdown,
    DashboardComparison,
    DashboardSummary,
    EventRecord,
    MonthlySummary,
    RecordFilter,
    RecordType,
    ServiceUsage,
    StoryStatus,
    StoryStats,
    TimeSeriesPoint,
)
from story_analytics.utils.formatting import percentage, round_amount
from story_analytics.utils.validators import validate_days, validate_limit

logger = logging.getLogger(__name__)

ALL_RECORDS = RecordFilter()
COST = numeric_field("cost")

TIME_SERIES_METRICS = ("user_growth", "ai_calls", "ai_cost")
BREAKDOWN_METRICS = ("cost_by_service", "subscription_tier", "emotion", "narrative_type")


class ReportService:
    """Builds every dashboard report from explicit parameters.

    The record source and clock are injected; nothing is cached between
    calls, so each report reflects the source at the time it is requested.
    """

    def __init__(
        self,
        source: IRecordSource,
        *,
        clock: IClock | None = None,
        config: AnalyticsConfig | None = None,
        bucketing: BucketingEngine | None = None,
        aggregator: Aggregator | None = None,
        projector: Projector | None = None,
    ) -> None:
        self._source = source
        self._clock = clock or SystemClock()
        self._config = config or AnalyticsConfig()
        self._bucketing = bucketing or BucketingEngine()
        self._aggregator = aggregator or Aggregator(self._bucketing)
        self._projector = projector or Projector()

    @property
    def config(self) -> AnalyticsConfig:
        return self._config

    def get_dashboard_summary(self) -> DashboardSummary:
        now = self._clock.now()
        today, yesterday = self._bucketing.comparison_windows(now)
        today_filter = RecordFilter(date_range=today)
        yesterday_filter = RecordFilter(date_range=yesterday)

        def pair(record_type: RecordType):
            return self._aggregator.compare(
                self._source.count(record_type, today_filter),
                self._source.count(record_type, yesterday_filter),
            )

        users = pair(RecordType.USER)
        ai_usage = pair(RecordType.AI_USAGE)
        return DashboardSummary(
            total_users=self._source.count(RecordType.USER, ALL_RECORDS),
            active_users=self._source.count(
                RecordType.USER, RecordFilter(match={"is_active": True})
            ),
            total_stories=self._source.count(RecordType.STORY, ALL_RECORDS),
            total_emotion_records=self._source.count(RecordType.EMOTION, ALL_RECORDS),
            ai_usage_today=ai_usage.today,
            new_users_today=users.today,
            comparison=DashboardComparison(
                users=users,
                stories=pair(RecordType.STORY),
                emotions=pair(RecordType.EMOTION),
                ai_usage=ai_usage,
            ),
        )

    def get_time_series(self, metric: str, days: Optional[int] = None) -> List[TimeSeriesPoint]:
        builders: Mapping[str, Callable[[Optional[int]], List[TimeSeriesPoint]]] = {
            "user_growth": self.get_user_growth,
            "ai_calls": self.get_ai_call_series,
            "ai_cost": self.get_ai_cost_series,
        }
        try:
            builder = builders[metric]
        except KeyError as exc:
            raise UnknownReportError(
                f"Unknown time series metric '{metric}'",
                context={"available": list(TIME_SERIES_METRICS)},
            ) from exc
        return builder(days)

    def get_user_growth(self, days: Optional[int] = None) -> List[TimeSeriesPoint]:
        range_start, keys, records = self._bucketed_records(RecordType.USER, days)
        aggregates = self._aggregator.reduce(records, keys)
        increments = [int(aggregate.total) for aggregate in aggregates]
        baseline = self._source.count(
            RecordType.USER, RecordFilter.between(end=range_start)
        )
        cumulative = self._aggregator.cumulative(increments, baseline)
        return [
            TimeSeriesPoint(bucket_key=aggregate.bucket_key, value=increment, cumulative=running)
            for aggregate, increment, running in zip(aggregates, increments, cumulative)
        ]

    def get_ai_call_series(self, days: Optional[int] = None) -> List[TimeSeriesPoint]:
        _, keys, records = self._bucketed_records(RecordType.AI_USAGE, days)
        aggregates = self._aggregator.reduce(records, keys, count_one, AI_SERVICES)
        points = []
        for aggregate in aggregates:
            breakdown = {
                service: int(calls) for service, calls in aggregate.by_category.items()
            }
            points.append(
                TimeSeriesPoint(
                    bucket_key=aggregate.bucket_key,
                    value=sum(breakdown.values()),
                    breakdown=breakdown,
                )
            )
        return points

    def get_ai_cost_series(self, days: Optional[int] = None) -> List[TimeSeriesPoint]:
        _, keys, records = self._bucketed_records(RecordType.AI_USAGE, days)
        aggregates = self._aggregator.reduce(records, keys, COST, AI_SERVICES)
        places = self._config.cost_precision
        points = []
        for aggregate in aggregates:
            breakdown = {
                service: round_amount(cost, places)
                for service, cost in aggregate.by_category.items()
            }
            # total is re-derived from the rounded parts so it always equals their sum
            points.append(
                TimeSeriesPoint(
                    bucket_key=aggregate.bucket_key,
                    value=round_amount(sum(breakdown.values()), places),
                    breakdown=breakdown,
                )
            )
        return points

    def get_category_breakdown(self, metric: str) -> CategoryBreakdown:
        if metric == "cost_by_service":
            records = self._source.fetch(RecordType.AI_USAGE, ALL_RECORDS)
            totals = self._aggregator.sum_by_category(records, COST, AI_SERVICES)
            return self._breakdown(metric, totals, places=self._config.cost_precision)
        if metric == "subscription_tier":
            counts = self._source.group_by_category(RecordType.USER, ALL_RECORDS)
            return self._breakdown(metric, _closed_set_order(counts, SUBSCRIPTION_TIERS))
        if metric == "emotion":
            counts = self._source.group_by_category(RecordType.EMOTION, ALL_RECORDS)
            return self._breakdown(metric, _most_frequent_first(counts))
        if metric == "narrative_type":
            counts = self._source.group_by_category(
                RecordType.STORY, ALL_RECORDS, dimension="narrative_type"
            )
            return self._breakdown(metric, _most_frequent_first(counts))
        raise UnknownReportError(
            f"Unknown breakdown metric '{metric}'",
            context={"available": list(BREAKDOWN_METRICS)},
        )

    def get_monthly_summary(self) -> MonthlySummary:
        now = self._clock.now()
        this_month_start, _ = self._projector.current_month_window(now)
        last_month_start, last_month_end = self._projector.previous_month_window(now)

        this_month = self._source.fetch(
            RecordType.AI_USAGE, RecordFilter.between(this_month_start)
        )
        last_month = self._source.fetch(
            RecordType.AI_USAGE, RecordFilter.between(last_month_start, last_month_end)
        )
        this_month_cost = self._aggregator.total(this_month, COST)
        last_month_cost = self._aggregator.total(last_month, COST)

        daily_average = self._projector.daily_average(this_month_cost, now.day)
        projected = self._projector.project_month_end(
            daily_average, self._projector.days_in_month(now.year, now.month)
        )
        currency = self._config.currency_precision
        return MonthlySummary(
            this_month=round_amount(this_month_cost, currency),
            last_month=round_amount(last_month_cost, currency),
            daily_average=round_amount(daily_average, self._config.cost_precision),
            projected_cost=round_amount(projected, currency),
            change_percent=self._projector.change_percent(this_month_cost, last_month_cost),
            total_calls=len(this_month),
        )

    def get_recent_activity(self, limit: Optional[int] = None) -> List[ActivityItem]:
        limit = validate_limit(limit, self._config.default_activity_limit)
        if limit == 0:
            return []

        def newest(record_type: RecordType) -> List[EventRecord]:
            return self._source.fetch(
                record_type, ALL_RECORDS, newest_first=True, limit=limit
            )

        activities = [
            *(_user_activity(record) for record in newest(RecordType.USER)),
            *(_story_activity(record) for record in newest(RecordType.STORY)),
            *(_subscription_activity(record) for record in newest(RecordType.SUBSCRIPTION)),
        ]
        # sorted() is stable, so equal timestamps keep the per-type order above
        activities = sorted(activities, key=lambda item: item.created_at, reverse=True)
        return activities[:limit]

    def get_ai_usage_stats(self) -> AiUsageStats:
        records = self._source.fetch(RecordType.AI_USAGE, ALL_RECORDS)
        places = self._config.cost_precision
        by_service = {
            service: ServiceUsage(
                calls=len(service_records),
                cost=round_amount(self._aggregator.total(service_records, COST), places),
            )
            for service, service_records in self._aggregator.group_by_category(records).items()
        }
        return AiUsageStats(
            total_calls=len(records),
            total_cost=round_amount(self._aggregator.total(records, COST), places),
            by_service=by_service,
        )

    def get_story_stats(self) -> StoryStats:
        now = self._clock.now()
        window_start = now - timedelta(days=self._config.story_window_days)
        total_stories = self._source.count(RecordType.STORY, ALL_RECORDS)
        average_illustrations = self._source.average(
            RecordType.STORY,
            "illustration_count",
            RecordFilter(category_in={StoryStatus.COMPLETED.value}),
        )
        tts_count = self._source.count(
            RecordType.STORY, RecordFilter(match={"tts_generated": True})
        )
        return StoryStats(
            total_stories=total_stories,
            this_week_stories=self._source.count(
                RecordType.STORY, RecordFilter.between(window_start)
            ),
            avg_illustrations=(
                round_amount(average_illustrations, 1)
                if average_illustrations is not None
                else 0.0
            ),
            tts_rate=percentage(tts_count, total_stories),
            narrative_distribution=self.get_category_breakdown("narrative_type").data,
        )

    def to_dataframe(
        self, record_type: RecordType = RecordType.AI_USAGE, days: Optional[int] = None
    ) -> Any:
        """Export the records behind a day series to a pandas DataFrame."""

        try:
            import pandas as pd  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("pandas is required for dataframe export") from exc

        _, _, records = self._bucketed_records(record_type, days)
        rows = []
        for record in records:
            row: Dict[str, Any] = {
                "id": record.id,
                "created_at": record.created_at,
                "category": record.category,
                "user_id": record.user_id,
            }
            row.update(record.numeric_fields)
            rows.append(row)
        return pd.DataFrame(rows)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _bucketed_records(
        self, record_type: RecordType, days: Optional[int]
    ) -> Tuple[datetime, List[date], List[EventRecord]]:
        days = validate_days(days, self._config.default_days)
        range_start = self._bucketing.range_start(days, self._clock.now())
        keys = self._bucketing.bucket_keys(range_start.date(), days)
        records = self._source.fetch(
            record_type,
            RecordFilter.between(range_start, range_start + timedelta(days=days)),
        )
        logger.debug(
            "bucketed_records_loaded",
            extra={
                "record_type": record_type.value,
                "days": days,
                "records": len(records),
            },
        )
        return range_start, keys, records

    def _breakdown(
        self, metric: str, totals: Mapping[str, float], places: Optional[int] = None
    ) -> CategoryBreakdown:
        shares = self._aggregator.category_shares(totals)
        grand_total = sum(totals.values())
        if places is None:
            return CategoryBreakdown(metric=metric, data=shares, total=grand_total)
        return CategoryBreakdown(
            metric=metric,
            data=[
                share.model_copy(update={"amount": round_amount(share.amount, places)})
                for share in shares
            ],
            total=round_amount(grand_total, places),
        )


def _closed_set_order(counts: Mapping[str, int], known: Sequence[str]) -> Dict[str, int]:
    ordered = {key: counts[key] for key in known if key in counts}
    ordered.update({key: value for key, value in sorted(counts.items()) if key not in ordered})
    return ordered


def _most_frequent_first(counts: Mapping[str, int]) -> Dict[str, int]:
    return dict(sorted(counts.items(), key=lambda item: (-item[1], item[0])))


def _user_activity(record: EventRecord) -> ActivityItem:
    name = record.attribute("display_name") or "New user"
    return ActivityItem(
        type=ActivityType.USER_JOIN,
        message=f"{name} joined",
        detail=record.category,
        created_at=record.created_at,
    )


def _story_activity(record: EventRecord) -> ActivityItem:
    name = record.attribute("user_display_name") or "A user"
    return ActivityItem(
        type=ActivityType.STORY_CREATE,
        message=f"{name} created a story",
        detail=record.attribute("title"),
        created_at=record.created_at,
    )


def _subscription_activity(record: EventRecord) -> ActivityItem:
    name = record.attribute("user_display_name") or "A user"
    verb = "subscribed to" if record.attribute("status") == "ACTIVE" else "switched to"
    return ActivityItem(
        type=ActivityType.SUBSCRIPTION,
        message=f"{name} {verb} {record.category}",
        detail=record.category,
        created_at=record.created_at,
    )
