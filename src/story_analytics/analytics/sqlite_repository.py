"""SQLite-backed record source."""

from __future__ import annotations

import json
import logging
import re
import sqlite3
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from story_analytics.domain.exceptions import RecordSourceError
from story_analytics.domain.interfaces import IRecordSource
from story_analytics.domain.models import EventRecord, RecordFilter, RecordType
from story_analytics.utils.retry import retry

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MICROSECOND = timedelta(microseconds=1)
_JSON_KEY = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS records (
    id TEXT NOT NULL,
    record_type TEXT NOT NULL,
    created_at INTEGER NOT NULL,
    category TEXT,
    user_id TEXT,
    numeric_fields TEXT NOT NULL,
    attributes TEXT NOT NULL,
    PRIMARY KEY (record_type, id)
);
"""

_CREATE_INDEX_SQL = """
CREATE INDEX IF NOT EXISTS idx_records_type_created
ON records (record_type, created_at);
"""

_INSERT_SQL = """
INSERT INTO records (id, record_type, created_at, category, user_id, numeric_fields, attributes)
VALUES (?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(record_type, id) DO UPDATE SET
    created_at=excluded.created_at,
    category=excluded.category,
    user_id=excluded.user_id,
    numeric_fields=excluded.numeric_fields,
    attributes=excluded.attributes;
"""

_SELECT_COLUMNS = (
    "id, record_type, created_at, category, user_id, numeric_fields, attributes"
)

Row = Tuple[str, str, int, Optional[str], Optional[str], str, str]


def _to_micros(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (moment - _EPOCH) // _ONE_MICROSECOND


def _json_path(key: str) -> str:
    if not _JSON_KEY.match(key):
        raise ValueError(f"Unsupported attribute name '{key}'")
    return f"$.{key}"


class SQLiteRecordSource(IRecordSource):
    """Record source that pushes filters down to a single SQLite table."""

    def __init__(self, db_path: str | Path):
        self._db_path = str(db_path)
        self._ensure_schema()

    def save(self, record: EventRecord) -> None:
        self.save_many([record])

    def save_many(self, records: Iterable[EventRecord]) -> None:
        rows = [self._record_to_row(record) for record in records]
        self._write(_INSERT_SQL, rows)

    def fetch(
        self,
        record_type: RecordType,
        record_filter: RecordFilter,
        *,
        newest_first: bool = False,
        limit: Optional[int] = None,
    ) -> List[EventRecord]:
        where, params = self._where(record_type, record_filter)
        order = "DESC" if newest_first else "ASC"
        sql = (
            f"SELECT {_SELECT_COLUMNS} FROM records WHERE {where} "
            f"ORDER BY created_at {order}, rowid ASC"
        )
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        rows = self._read(sql, params)
        return [self._row_to_record(row) for row in rows]

    def count(self, record_type: RecordType, record_filter: RecordFilter) -> int:
        where, params = self._where(record_type, record_filter)
        rows = self._read(f"SELECT COUNT(*) FROM records WHERE {where}", params)
        return int(rows[0][0])

    def group_by_category(
        self,
        record_type: RecordType,
        record_filter: RecordFilter,
        dimension: Optional[str] = None,
    ) -> Dict[str, int]:
        where, params = self._where(record_type, record_filter)
        if dimension is None:
            label = "category"
        else:
            label = "json_extract(attributes, ?)"
            params.insert(0, _json_path(dimension))
        sql = (
            f"SELECT {label} AS label, COUNT(*) FROM records WHERE {where} "
            "GROUP BY label HAVING label IS NOT NULL ORDER BY label"
        )
        return {str(label_value): int(total) for label_value, total in self._read(sql, params)}

    def average(
        self, record_type: RecordType, field: str, record_filter: RecordFilter
    ) -> Optional[float]:
        where, params = self._where(record_type, record_filter)
        sql = f"SELECT AVG(json_extract(numeric_fields, ?)) FROM records WHERE {where}"
        rows = self._read(sql, [_json_path(field), *params])
        value = rows[0][0]
        return float(value) if value is not None else None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _where(
        record_type: RecordType, record_filter: RecordFilter
    ) -> Tuple[str, List[Any]]:
        clauses = ["record_type = ?"]
        params: List[Any] = [record_type.value]
        date_range = record_filter.date_range
        if date_range is not None and date_range.start is not None:
            clauses.append("created_at >= ?")
            params.append(_to_micros(date_range.start))
        if date_range is not None and date_range.end is not None:
            clauses.append("created_at < ?")
            params.append(_to_micros(date_range.end))
        if record_filter.category_in is not None:
            categories = sorted(record_filter.category_in)
            if not categories:
                clauses.append("0")
            else:
                placeholders = ", ".join("?" for _ in categories)
                clauses.append(f"category IN ({placeholders})")
                params.extend(categories)
        if record_filter.user_id is not None:
            clauses.append("user_id = ?")
            params.append(record_filter.user_id)
        for key, expected in record_filter.match.items():
            if expected is None:
                clauses.append("json_extract(attributes, ?) IS NULL")
                params.append(_json_path(key))
            else:
                clauses.append("json_extract(attributes, ?) = ?")
                params.extend([_json_path(key), expected])
        return " AND ".join(clauses), params

    @retry(exceptions=(sqlite3.OperationalError,))
    def _execute_read(self, sql: str, params: Sequence[Any]) -> List[Tuple[Any, ...]]:
        with sqlite3.connect(self._db_path) as conn:
            return conn.execute(sql, list(params)).fetchall()

    @retry(exceptions=(sqlite3.OperationalError,))
    def _execute_write(self, sql: str, rows: Sequence[Sequence[Any]]) -> None:
        with sqlite3.connect(self._db_path) as conn:
            conn.executemany(sql, rows)
            conn.commit()

    def _read(self, sql: str, params: Sequence[Any]) -> List[Tuple[Any, ...]]:
        try:
            return self._execute_read(sql, params)
        except sqlite3.Error as exc:
            logger.error("record_source_read_failed", extra={"db_path": self._db_path})
            raise RecordSourceError(
                "Record source query failed", context={"db_path": self._db_path}
            ) from exc

    def _write(self, sql: str, rows: Sequence[Sequence[Any]]) -> None:
        try:
            self._execute_write(sql, rows)
        except sqlite3.Error as exc:
            logger.error("record_source_write_failed", extra={"db_path": self._db_path})
            raise RecordSourceError(
                "Record source write failed", context={"db_path": self._db_path}
            ) from exc

    def _ensure_schema(self) -> None:
        try:
            with sqlite3.connect(self._db_path) as conn:
                conn.execute(_CREATE_TABLE_SQL)
                conn.execute(_CREATE_INDEX_SQL)
                conn.commit()
        except sqlite3.Error as exc:
            raise RecordSourceError(
                "Could not initialise record store", context={"db_path": self._db_path}
            ) from exc

    @staticmethod
    def _record_to_row(record: EventRecord) -> Row:
        return (
            record.id,
            record.record_type.value,
            _to_micros(record.created_at),
            record.category,
            record.user_id,
            json.dumps(dict(record.numeric_fields)),
            json.dumps(dict(record.attributes), default=str),
        )

    @staticmethod
    def _row_to_record(row: Row) -> EventRecord:
        id_, record_type, created_at, category, user_id, numeric_fields, attributes = row
        return EventRecord(
            id=id_,
            record_type=RecordType(record_type),
            created_at=_EPOCH + timedelta(microseconds=created_at),
            category=category,
            user_id=user_id,
            numeric_fields=json.loads(numeric_fields),
            attributes=json.loads(attributes),
        )
