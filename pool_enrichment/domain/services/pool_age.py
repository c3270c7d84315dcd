from __future__ import annotations

from datetime import datetime, timedelta, timezone

from pool_enrichment.domain.entities.pool import Pool


NEW_POOL_WINDOW = timedelta(weeks=1)


def is_new(pool: Pool, *, now: datetime | None = None) -> bool:
    current = now or datetime.now(timezone.utc)
    created_at = datetime.fromtimestamp(pool.create_time, tz=timezone.utc)
    return current - created_at < NEW_POOL_WINDOW
