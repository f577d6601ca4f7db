"""Day-granularity bucketing over UTC calendar days."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, Iterable, List, Sequence, Tuple

from story_analytics.domain.exceptions import InvalidParameterError
from story_analytics.domain.models import DateRange, EventRecord

ONE_DAY = timedelta(days=1)


class BucketingEngine:
    """Maps ranges to contiguous bucket keys and records to their bucket.

    All day boundaries are UTC midnights so every call site agrees on which
    day a timestamp belongs to.
    """

    @staticmethod
    def bucket_key(moment: datetime) -> date:
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return moment.astimezone(timezone.utc).date()

    @staticmethod
    def bucket_keys(range_start: date, count: int) -> List[date]:
        if count < 0:
            raise InvalidParameterError(
                "bucket count must be non-negative", context={"count": count}
            )
        return [range_start + timedelta(days=offset) for offset in range(count)]

    @staticmethod
    def midnight(day: date) -> datetime:
        return datetime.combine(day, time.min, tzinfo=timezone.utc)

    def start_of_day(self, moment: datetime) -> datetime:
        return self.midnight(self.bucket_key(moment))

    def range_start(self, days: int, now: datetime) -> datetime:
        """Midnight ``days`` days before today; the series ends yesterday."""
        return self.start_of_day(now) - timedelta(days=days)

    def today_window(self, now: datetime) -> DateRange:
        return DateRange(start=self.start_of_day(now), end=now)

    def yesterday_window(self, now: datetime) -> DateRange:
        today_start = self.start_of_day(now)
        return DateRange(start=today_start - ONE_DAY, end=today_start)

    def comparison_windows(self, now: datetime) -> Tuple[DateRange, DateRange]:
        return self.today_window(now), self.yesterday_window(now)

    def assign(
        self, records: Iterable[EventRecord], bucket_keys: Sequence[date]
    ) -> Dict[date, List[EventRecord]]:
        """Partition records by bucket; every key is present, outsiders dropped."""

        assigned: Dict[date, List[EventRecord]] = {key: [] for key in bucket_keys}
        for record in records:
            bucket = assigned.get(self.bucket_key(record.created_at))
            if bucket is not None:
                bucket.append(record)
        return assigned
