"""Injectable time sources."""

from __future__ import annotations

from datetime import datetime, timezone

from story_analytics.domain.interfaces import IClock


class SystemClock(IClock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(IClock):
    """Always reports the same instant; naive values are taken as UTC."""

    def __init__(self, instant: datetime) -> None:
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        self._instant = instant.astimezone(timezone.utc)

    def now(self) -> datetime:
        return self._instant
