"""Forward-looking estimates derived from aggregated totals."""

from __future__ import annotations

import calendar
from datetime import datetime, timezone
from typing import Tuple

from story_analytics.domain.exceptions import InvalidParameterError
from story_analytics.utils.formatting import round_half_up


class Projector:
    """Month-to-date averages, month-end projections and relative change."""

    @staticmethod
    def daily_average(period_total: float, days_elapsed: int) -> float:
        if days_elapsed < 1:
            raise InvalidParameterError(
                "days_elapsed must be at least 1",
                context={"days_elapsed": days_elapsed},
            )
        return period_total / days_elapsed

    @staticmethod
    def project_month_end(daily_average: float, days_in_month: int) -> float:
        return daily_average * days_in_month

    @staticmethod
    def change_percent(current: float, previous: float) -> int:
        """Relative change in whole percent.

        A previous total of zero yields 0 even when ``current`` is positive;
        callers rely on this rather than an infinite or undefined growth value.
        """
        if previous <= 0:
            return 0
        return round_half_up((current - previous) / previous * 100)

    @staticmethod
    def days_in_month(year: int, month: int) -> int:
        return calendar.monthrange(year, month)[1]

    @staticmethod
    def month_start(year: int, month: int) -> datetime:
        return datetime(year, month, 1, tzinfo=timezone.utc)

    def current_month_window(self, now: datetime) -> Tuple[datetime, datetime]:
        """``[first of this month, first of next month)`` in UTC."""
        now = now.astimezone(timezone.utc)
        year, month = (now.year + 1, 1) if now.month == 12 else (now.year, now.month + 1)
        return self.month_start(now.year, now.month), self.month_start(year, month)

    def previous_month_window(self, now: datetime) -> Tuple[datetime, datetime]:
        """``[first of last month, first of this month)`` in UTC."""
        now = now.astimezone(timezone.utc)
        year, month = (now.year - 1, 12) if now.month == 1 else (now.year, now.month - 1)
        return self.month_start(year, month), self.month_start(now.year, now.month)
