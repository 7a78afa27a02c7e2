"""Column helpers shared by the models."""
from datetime import datetime, timezone

from sqlalchemy import DateTime


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def timestamp_type() -> DateTime:
    return DateTime(timezone=True)
