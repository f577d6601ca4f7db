from datetime import datetime, timedelta, timezone

from story_analytics.analytics.memory_repository import InMemoryRecordSource
from story_analytics.domain.models import EventRecord, RecordFilter, RecordType

START = datetime(2026, 2, 1, tzinfo=timezone.utc)


def _story(idx: int, status: str, **attributes) -> EventRecord:
    return EventRecord(
        id=f"s{idx}",
        record_type=RecordType.STORY,
        created_at=START + timedelta(hours=idx),
        category=status,
        numeric_fields={"illustration_count": attributes.pop("illustrations", None)},
        attributes=attributes,
    )


def _source() -> InMemoryRecordSource:
    return InMemoryRecordSource(
        [
            _story(1, "COMPLETED", illustrations=3, narrative_type="growth"),
            _story(2, "COMPLETED", illustrations=6, narrative_type="growth"),
            _story(3, "FAILED", illustrations=0, narrative_type=None),
            EventRecord(id="u1", record_type=RecordType.USER, created_at=START, category="FREE"),
        ]
    )


def test_fetch_orders_and_limits():
    source = _source()
    oldest_first = source.fetch(RecordType.STORY, RecordFilter())
    newest_two = source.fetch(RecordType.STORY, RecordFilter(), newest_first=True, limit=2)
    assert [r.id for r in oldest_first] == ["s1", "s2", "s3"]
    assert [r.id for r in newest_two] == ["s3", "s2"]


def test_count_filters_by_type_and_range():
    source = _source()
    assert source.count(RecordType.STORY, RecordFilter()) == 3
    assert source.count(RecordType.USER, RecordFilter()) == 1
    window = RecordFilter.between(START + timedelta(hours=2))
    assert source.count(RecordType.STORY, window) == 2


def test_group_by_category_and_dimension():
    source = _source()
    assert source.group_by_category(RecordType.STORY, RecordFilter()) == {
        "COMPLETED": 2,
        "FAILED": 1,
    }
    assert source.group_by_category(
        RecordType.STORY, RecordFilter(), dimension="narrative_type"
    ) == {"growth": 2}


def test_average_ignores_nulls_and_returns_none_when_empty():
    source = _source()
    completed = RecordFilter(category_in={"COMPLETED"})
    assert source.average(RecordType.STORY, "illustration_count", completed) == 4.5
    assert source.average(RecordType.USER, "illustration_count", RecordFilter()) is None
