import sqlite3
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from story_analytics.analytics.sqlite_repository import SQLiteRecordSource
from story_analytics.domain.exceptions import RecordSourceError
from story_analytics.domain.models import EventRecord, RecordFilter, RecordType

START = datetime(2026, 2, 1, 12, tzinfo=timezone.utc)


@pytest.fixture
def temp_db(tmp_path: Path) -> Path:
    return tmp_path / "analytics.db"


@pytest.fixture
def source(temp_db: Path) -> SQLiteRecordSource:
    return SQLiteRecordSource(temp_db)


def _story(idx: int, when: datetime) -> EventRecord:
    return EventRecord(
        id=f"{idx}",
        record_type=RecordType.STORY,
        created_at=when,
        category="COMPLETED" if idx % 3 else "FAILED",
        user_id="u1" if idx % 2 else "u2",
        numeric_fields={"illustration_count": idx if idx % 3 else None},
        attributes={
            "tts_generated": idx % 2 == 0,
            "narrative_type": "growth" if idx < 3 else "adventure",
            "title": f"Story {idx}",
        },
    )


def test_round_trip_preserves_fields(source: SQLiteRecordSource):
    record = _story(1, START)
    source.save(record)
    [loaded] = source.fetch(RecordType.STORY, RecordFilter())
    assert loaded == record


def test_fetch_filters_half_open_window(source: SQLiteRecordSource):
    source.save_many(_story(i, START + timedelta(minutes=i * 5)) for i in range(1, 6))

    window = RecordFilter.between(START + timedelta(minutes=5), START + timedelta(minutes=15))
    ids = [record.id for record in source.fetch(RecordType.STORY, window)]

    assert ids == ["1", "2"]


def test_fetch_newest_first_with_limit(source: SQLiteRecordSource):
    source.save_many(_story(i, START + timedelta(hours=i)) for i in range(1, 5))
    newest = source.fetch(RecordType.STORY, RecordFilter(), newest_first=True, limit=2)
    assert [record.id for record in newest] == ["4", "3"]


def test_count_with_category_user_and_attribute_filters(source: SQLiteRecordSource):
    source.save_many(_story(i, START + timedelta(hours=i)) for i in range(1, 7))
    assert source.count(RecordType.STORY, RecordFilter()) == 6
    assert source.count(RecordType.STORY, RecordFilter(category_in={"FAILED"})) == 2
    assert source.count(RecordType.STORY, RecordFilter(user_id="u1")) == 3
    assert source.count(RecordType.STORY, RecordFilter(match={"tts_generated": True})) == 3
    assert source.count(RecordType.USER, RecordFilter()) == 0


def test_group_by_category_and_attribute(source: SQLiteRecordSource):
    source.save_many(_story(i, START + timedelta(hours=i)) for i in range(1, 7))
    assert source.group_by_category(RecordType.STORY, RecordFilter()) == {
        "COMPLETED": 4,
        "FAILED": 2,
    }
    assert source.group_by_category(
        RecordType.STORY, RecordFilter(), dimension="narrative_type"
    ) == {"adventure": 4, "growth": 2}


def test_average_skips_nulls(source: SQLiteRecordSource):
    source.save_many(_story(i, START + timedelta(hours=i)) for i in range(1, 7))
    completed = RecordFilter(category_in={"COMPLETED"})
    # completed stories are 1, 2, 4, 5
    assert source.average(RecordType.STORY, "illustration_count", completed) == 3.0
    assert source.average(RecordType.USER, "illustration_count", RecordFilter()) is None


def test_upsert_replaces_existing_record(source: SQLiteRecordSource):
    source.save(_story(1, START))
    source.save(_story(1, START + timedelta(days=1)))
    [loaded] = source.fetch(RecordType.STORY, RecordFilter())
    assert loaded.created_at == START + timedelta(days=1)


def test_storage_failure_raises_record_source_error(temp_db: Path):
    source = SQLiteRecordSource(temp_db)
    with sqlite3.connect(temp_db) as conn:
        conn.execute("DROP TABLE records")
    with pytest.raises(RecordSourceError):
        source.count(RecordType.USER, RecordFilter())


def test_unopenable_database_raises_record_source_error(tmp_path: Path):
    with pytest.raises(RecordSourceError):
        SQLiteRecordSource(tmp_path)


def test_rejects_unsafe_attribute_names(source: SQLiteRecordSource):
    with pytest.raises(ValueError):
        source.count(RecordType.STORY, RecordFilter(match={"a') OR 1=1 --": 1}))
