"""Domain-level interfaces defining contracts for analytics collaborators."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional, Protocol

from .models import EventRecord, RecordFilter, RecordType


class IClock(Protocol):
    """Time source used to derive day and month windows."""

    def now(self) -> datetime:
        """Return the current instant as a timezone-aware UTC datetime."""


class IRecordSource(Protocol):
    """Read-only query contract of the record storage collaborator."""

    def fetch(
        self,
        record_type: RecordType,
        record_filter: RecordFilter,
        *,
        newest_first: bool = False,
        limit: Optional[int] = None,
    ) -> List[EventRecord]:
        """Return matching records ordered by creation time."""

    def count(self, record_type: RecordType, record_filter: RecordFilter) -> int:
        """Return the number of matching records."""

    def group_by_category(
        self,
        record_type: RecordType,
        record_filter: RecordFilter,
        dimension: Optional[str] = None,
    ) -> Dict[str, int]:
        """Count matching records per category, or per attribute ``dimension``."""

    def average(
        self, record_type: RecordType, field: str, record_filter: RecordFilter
    ) -> Optional[float]:
        """Mean of a numeric field over matching records, ``None`` when empty."""
