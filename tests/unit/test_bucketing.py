from datetime import date, datetime, timedelta, timezone

import pytest

from story_analytics.analytics.bucketing import BucketingEngine
from story_analytics.domain.exceptions import InvalidParameterError
from story_analytics.domain.models import EventRecord, RecordType

NOW = datetime(2026, 2, 5, 15, 30, tzinfo=timezone.utc)


def _record(idx: int, created_at: datetime) -> EventRecord:
    return EventRecord(id=str(idx), record_type=RecordType.STORY, created_at=created_at)


def test_bucket_keys_are_contiguous_days():
    keys = BucketingEngine.bucket_keys(date(2026, 2, 27), 4)
    assert keys == [
        date(2026, 2, 27),
        date(2026, 2, 28),
        date(2026, 3, 1),
        date(2026, 3, 2),
    ]


def test_bucket_keys_cross_year_boundary():
    keys = BucketingEngine.bucket_keys(date(2025, 12, 30), 3)
    assert keys[-1] == date(2026, 1, 1)


def test_zero_buckets_is_empty():
    assert BucketingEngine.bucket_keys(date(2026, 1, 1), 0) == []


def test_negative_bucket_count_rejected():
    with pytest.raises(InvalidParameterError):
        BucketingEngine.bucket_keys(date(2026, 1, 1), -1)


def test_bucket_key_uses_utc_day():
    late_evening_west = datetime(
        2026, 2, 4, 22, 0, tzinfo=timezone(timedelta(hours=-5))
    )
    assert BucketingEngine.bucket_key(late_evening_west) == date(2026, 2, 5)
    assert BucketingEngine.bucket_key(datetime(2026, 2, 4, 23, 59)) == date(2026, 2, 4)


def test_range_start_is_midnight_days_ago():
    engine = BucketingEngine()
    start = engine.range_start(3, NOW)
    assert start == datetime(2026, 2, 2, tzinfo=timezone.utc)


def test_comparison_windows_are_adjacent():
    engine = BucketingEngine()
    today, yesterday = engine.comparison_windows(NOW)
    assert today.start == yesterday.end == datetime(2026, 2, 5, tzinfo=timezone.utc)
    assert yesterday.start == datetime(2026, 2, 4, tzinfo=timezone.utc)
    assert today.end == NOW


def test_assign_keeps_empty_buckets_and_drops_outsiders():
    engine = BucketingEngine()
    keys = engine.bucket_keys(date(2026, 2, 2), 3)
    records = [
        _record(1, datetime(2026, 2, 2, 1, tzinfo=timezone.utc)),
        _record(2, datetime(2026, 2, 4, 23, tzinfo=timezone.utc)),
        _record(3, datetime(2026, 2, 5, 0, tzinfo=timezone.utc)),
        _record(4, datetime(2026, 2, 1, 23, tzinfo=timezone.utc)),
    ]

    assigned = engine.assign(records, keys)

    assert list(assigned) == keys
    assert [r.id for r in assigned[date(2026, 2, 2)]] == ["1"]
    assert assigned[date(2026, 2, 3)] == []
    assert [r.id for r in assigned[date(2026, 2, 4)]] == ["2"]


def test_bucket_keys_are_deterministic():
    first = BucketingEngine.bucket_keys(date(2026, 2, 2), 30)
    second = BucketingEngine.bucket_keys(date(2026, 2, 2), 30)
    assert first == second
    assert len(first) == 30
