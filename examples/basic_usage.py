"""Builds a few dashboard reports from a throwaway SQLite store."""

import json
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

from story_analytics.analytics.sqlite_repository import SQLiteRecordSource
from story_analytics.core.container import DIContainer
from story_analytics.domain.models import EventRecord, RecordType


def _sample_records(now: datetime):
    services = ["OPENAI_CHAT", "RECRAFT", "GOOGLE_TTS", "OPENAI_TTS"]
    for offset in range(1, 8):
        yield EventRecord(
            id=f"log-{offset}",
            record_type=RecordType.AI_USAGE,
            created_at=now - timedelta(days=offset),
            category=services[offset % len(services)],
            numeric_fields={"cost": 0.01 * offset},
        )
    yield EventRecord(
        id="user-1",
        record_type=RecordType.USER,
        created_at=now - timedelta(days=2),
        category="FREE",
        attributes={"is_active": True, "display_name": "Sora"},
    )


def main() -> None:
    now = datetime.now(timezone.utc)
    with tempfile.TemporaryDirectory() as workdir:
        source = SQLiteRecordSource(Path(workdir) / "analytics.db")
        source.save_many(_sample_records(now))
        router = DIContainer.create_router(source=source)

        print(json.dumps(router.render("dashboard-summary"), indent=2))
        print(json.dumps(router.render("daily-cost", days=7), indent=2))
        print(json.dumps(router.render("monthly-summary"), indent=2))


if __name__ == "__main__":
    main()
