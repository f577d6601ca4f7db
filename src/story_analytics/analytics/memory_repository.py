"""List-backed record source for fixtures and tests."""

from __future__ import annotations

from statistics import fmean
from typing import Dict, Iterable, List, Optional

from story_analytics.domain.interfaces import IRecordSource
from story_analytics.domain.models import EventRecord, RecordFilter, RecordType


class InMemoryRecordSource(IRecordSource):
    """Holds record snapshots in memory and evaluates filters in Python."""

    def __init__(self, records: Iterable[EventRecord] = ()) -> None:
        self._records: List[EventRecord] = list(records)

    def add(self, *records: EventRecord) -> None:
        self._records.extend(records)

    def fetch(
        self,
        record_type: RecordType,
        record_filter: RecordFilter,
        *,
        newest_first: bool = False,
        limit: Optional[int] = None,
    ) -> List[EventRecord]:
        matched = sorted(
            self._select(record_type, record_filter),
            key=lambda record: record.created_at,
            reverse=newest_first,
        )
        return matched if limit is None else matched[:limit]

    def count(self, record_type: RecordType, record_filter: RecordFilter) -> int:
        return len(self._select(record_type, record_filter))

    def group_by_category(
        self,
        record_type: RecordType,
        record_filter: RecordFilter,
        dimension: Optional[str] = None,
    ) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for record in self._select(record_type, record_filter):
            label = record.category if dimension is None else record.attribute(dimension)
            if label is None:
                continue
            counts[str(label)] = counts.get(str(label), 0) + 1
        return counts

    def average(
        self, record_type: RecordType, field: str, record_filter: RecordFilter
    ) -> Optional[float]:
        values = [
            record.numeric_fields[field]
            for record in self._select(record_type, record_filter)
            if record.numeric_fields.get(field) is not None
        ]
        return fmean(values) if values else None

    def _select(
        self, record_type: RecordType, record_filter: RecordFilter
    ) -> List[EventRecord]:
        return [
            record
            for record in self._records
            if record.record_type == record_type and record_filter.matches(record)
        ]
