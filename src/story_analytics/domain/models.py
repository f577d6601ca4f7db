"""Domain value objects representing analytics records and reports."""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from story_analytics.utils.formatting import chart_label


class RecordType(str, Enum):
    """Record families supplied by the record source."""

    USER = "user"
    STORY = "story"
    EMOTION = "emotion"
    AI_USAGE = "ai_usage"
    SUBSCRIPTION = "subscription"


class AiService(str, Enum):
    """Closed set of AI services billed by the storytelling app."""

    OPENAI_CHAT = "OPENAI_CHAT"
    RECRAFT = "RECRAFT"
    GOOGLE_TTS = "GOOGLE_TTS"
    OPENAI_TTS = "OPENAI_TTS"


class SubscriptionTier(str, Enum):
    FREE = "FREE"
    BASIC = "BASIC"
    PREMIUM = "PREMIUM"


class StoryStatus(str, Enum):
    COMPLETED = "COMPLETED"
    GENERATING = "GENERATING"
    FAILED = "FAILED"


AI_SERVICES: Tuple[str, ...] = tuple(service.value for service in AiService)
SUBSCRIPTION_TIERS: Tuple[str, ...] = tuple(tier.value for tier in SubscriptionTier)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class EventRecord(BaseModel):
    """Immutable snapshot of a timestamped, categorized record."""

    model_config = ConfigDict(frozen=True)

    id: str
    record_type: RecordType
    created_at: datetime
    category: Optional[str] = None
    numeric_fields: Mapping[str, Optional[float]] = Field(default_factory=dict)
    attributes: Mapping[str, Any] = Field(default_factory=dict)
    user_id: Optional[str] = None

    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, value: datetime) -> datetime:
        return _as_utc(value)

    def value(self, field: str) -> float:
        """Numeric field value, with missing or null values counted as zero."""
        raw = self.numeric_fields.get(field)
        return float(raw) if raw is not None else 0.0

    def attribute(self, name: str, default: Any = None) -> Any:
        return self.attributes.get(name, default)


class DateRange(BaseModel):
    """Half-open ``[start, end)`` window; either side may be left open."""

    model_config = ConfigDict(frozen=True)

    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @field_validator("start", "end")
    @classmethod
    def normalize_bounds(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value) if value is not None else None

    @model_validator(mode="after")
    def validate_order(self) -> "DateRange":
        if self.start is not None and self.end is not None and self.end < self.start:
            raise ValueError("date range end must not precede start")
        return self

    def contains(self, moment: datetime) -> bool:
        moment = _as_utc(moment)
        if self.start is not None and moment < self.start:
            return False
        if self.end is not None and moment >= self.end:
            return False
        return True


class RecordFilter(BaseModel):
    """Predicates pushed down to the record source."""

    model_config = ConfigDict(frozen=True)

    date_range: Optional[DateRange] = None
    category_in: Optional[FrozenSet[str]] = None
    user_id: Optional[str] = None
    match: Mapping[str, Any] = Field(default_factory=dict)

    @classmethod
    def between(
        cls,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        **kwargs: Any,
    ) -> "RecordFilter":
        return cls(date_range=DateRange(start=start, end=end), **kwargs)

    def matches(self, record: EventRecord) -> bool:
        if self.date_range is not None and not self.date_range.contains(
            record.created_at
        ):
            return False
        if self.category_in is not None and record.category not in self.category_in:
            return False
        if self.user_id is not None and record.user_id != self.user_id:
            return False
        return all(
            record.attributes.get(key) == expected
            for key, expected in self.match.items()
        )


class BucketedAggregate(BaseModel):
    """Per-bucket reduction produced for a single report request."""

    model_config = ConfigDict(frozen=True)

    bucket_key: date
    total: float = 0.0
    by_category: Dict[str, float] = Field(default_factory=dict)


class ComparisonPair(BaseModel):
    """Counts over the adjacent today / yesterday windows."""

    model_config = ConfigDict(frozen=True)

    today: int = Field(..., ge=0)
    yesterday: int = Field(..., ge=0)


class DashboardComparison(BaseModel):
    model_config = ConfigDict(frozen=True)

    users: ComparisonPair
    stories: ComparisonPair
    emotions: ComparisonPair
    ai_usage: ComparisonPair


class DashboardSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_users: int
    active_users: int
    total_stories: int
    total_emotion_records: int
    ai_usage_today: int
    new_users_today: int
    comparison: DashboardComparison


class TimeSeriesPoint(BaseModel):
    """One day of a chart series.

    ``value`` holds the bucket total, ``breakdown`` the per-category values.
    ``cumulative`` is only set for growth series.
    """

    model_config = ConfigDict(frozen=True)

    bucket_key: date
    value: Union[int, float]
    breakdown: Dict[str, Union[int, float]] = Field(default_factory=dict)
    cumulative: Optional[int] = None

    @property
    def label(self) -> str:
        return chart_label(self.bucket_key)

    def to_chart_row(self, value_key: str = "value") -> Dict[str, Any]:
        row: Dict[str, Any] = {"date": self.label, value_key: self.value}
        row.update(self.breakdown)
        if self.cumulative is not None:
            row["cumulative"] = self.cumulative
        return row


class CategoryShare(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: str
    amount: float
    percentage: int


class CategoryBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    metric: str
    data: List[CategoryShare]
    total: float


class MonthlySummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    this_month: float
    last_month: float
    daily_average: float
    projected_cost: float
    change_percent: int
    total_calls: int


class ServiceUsage(BaseModel):
    model_config = ConfigDict(frozen=True)

    calls: int = 0
    cost: float = 0.0


class AiUsageStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_calls: int
    total_cost: float
    by_service: Dict[str, ServiceUsage]


class StoryStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_stories: int
    this_week_stories: int
    avg_illustrations: float
    tts_rate: int
    narrative_distribution: List[CategoryShare]


class ActivityType(str, Enum):
    USER_JOIN = "user_join"
    STORY_CREATE = "story_create"
    SUBSCRIPTION = "subscription"


class ActivityItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: ActivityType
    message: str
    detail: Optional[str] = None
    created_at: datetime
