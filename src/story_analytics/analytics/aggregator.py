"""Pure business-logic helpers for analytics aggregation."""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from story_analytics.analytics.bucketing import BucketingEngine
from story_analytics.domain.models import (
    BucketedAggregate,
    CategoryShare,
    ComparisonPair,
    EventRecord,
)
from story_analytics.utils.formatting import percentage

ValueFn = Callable[[EventRecord], float]
Predicate = Callable[[EventRecord], bool]

logger = logging.getLogger(__name__)


def count_one(_: EventRecord) -> float:
    return 1.0


def numeric_field(field: str) -> ValueFn:
    """Value function reading a numeric field, nulls counted as zero."""

    def value(record: EventRecord) -> float:
        return record.value(field)

    return value


class Aggregator:
    """Performs read-only reductions on record snapshots."""

    def __init__(self, bucketing: BucketingEngine | None = None) -> None:
        self._bucketing = bucketing or BucketingEngine()

    def count(
        self, records: Sequence[EventRecord], predicate: Optional[Predicate] = None
    ) -> int:
        if predicate is None:
            return len(records)
        return sum(1 for record in records if predicate(record))

    def total(
        self, records: Sequence[EventRecord], value_fn: ValueFn = count_one
    ) -> float:
        return sum(value_fn(record) for record in records)

    def group_by_category(
        self, records: Sequence[EventRecord]
    ) -> Dict[str, List[EventRecord]]:
        grouped: Dict[str, List[EventRecord]] = {}
        for record in records:
            if record.category is None:
                continue
            grouped.setdefault(record.category, []).append(record)
        return grouped

    def sum_by_category(
        self,
        records: Sequence[EventRecord],
        value_fn: ValueFn = count_one,
        category_keys: Optional[Sequence[str]] = None,
    ) -> Dict[str, float]:
        """Sum values per category; a closed key set is zero-filled and enforced."""

        totals: Dict[str, float] = (
            {key: 0.0 for key in category_keys} if category_keys is not None else {}
        )
        for record in records:
            category = record.category
            if category is None:
                continue
            if category_keys is not None and category not in totals:
                logger.debug(
                    "category_outside_closed_set",
                    extra={"category": category, "record_id": record.id},
                )
                continue
            totals[category] = totals.get(category, 0.0) + value_fn(record)
        return totals

    def reduce(
        self,
        records: Sequence[EventRecord],
        bucket_keys: Sequence[date],
        value_fn: ValueFn = count_one,
        category_keys: Optional[Sequence[str]] = None,
    ) -> List[BucketedAggregate]:
        """One aggregate per bucket key, in key order, zero-filled when empty.

        With ``category_keys`` only records in that set contribute, and each
        bucket total is the sum of its categories.
        """

        assigned = self._bucketing.assign(records, bucket_keys)
        aggregates: List[BucketedAggregate] = []
        for key in bucket_keys:
            bucket_records = assigned[key]
            if category_keys is None:
                aggregates.append(
                    BucketedAggregate(
                        bucket_key=key, total=self.total(bucket_records, value_fn)
                    )
                )
                continue
            by_category = self.sum_by_category(bucket_records, value_fn, category_keys)
            aggregates.append(
                BucketedAggregate(
                    bucket_key=key,
                    total=sum(by_category.values()),
                    by_category=by_category,
                )
            )
        return aggregates

    def category_shares(self, totals: Mapping[str, float]) -> List[CategoryShare]:
        # Each entry is rounded on its own; shares need not add up to 100.
        grand_total = sum(totals.values())
        return [
            CategoryShare(
                category=category,
                amount=amount,
                percentage=percentage(amount, grand_total),
            )
            for category, amount in totals.items()
        ]

    @staticmethod
    def cumulative(increments: Sequence[float], baseline: float = 0) -> List[float]:
        running = baseline
        series: List[float] = []
        for increment in increments:
            running += increment
            series.append(running)
        return series

    @staticmethod
    def compare(today: int, yesterday: int) -> ComparisonPair:
        return ComparisonPair(today=today, yesterday=yesterday)
