from datetime import datetime, timezone
from typing import Optional

TODAY = "today"
YESTERDAY = "yesterday"
LAST_7_DAYS = "7days"
LAST_30_DAYS = "30days"

BUCKET_ORDER = (TODAY, YESTERDAY, LAST_7_DAYS, LAST_30_DAYS)


def recency_bucket(created_at: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Classifies a timestamp by whole days elapsed since it, relative to ``now``.

    Naive datetimes are treated as UTC (SQLite hands them back that way).
    Missing or future timestamps fall into ``today``.
    """
    if created_at is None:
        return TODAY
    now = now or datetime.now(timezone.utc)
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    days = (now - created_at).days
    if days <= 0:
        return TODAY
    if days == 1:
        return YESTERDAY
    if days <= 7:
        return LAST_7_DAYS
    return LAST_30_DAYS
