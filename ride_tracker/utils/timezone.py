"""
Timezone helpers.

All timestamps handled by the tracker are timezone-aware UTC. Naive values
coming from callers or from CSV files are assumed to already be in UTC.
"""
from datetime import datetime, timezone

import pandas as pd


def ensure_utc(dt: datetime) -> datetime:
    """Return ``dt`` as an aware UTC datetime."""
    if isinstance(dt, pd.Timestamp):
        dt = dt.to_pydatetime()
    if not isinstance(dt, datetime):
        raise TypeError(f"Expected datetime, got {type(dt).__name__}")
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utc_now() -> datetime:
    """Get current time in UTC (timezone-aware)."""
    return datetime.now(timezone.utc)


def parse_timestamp(value) -> datetime:
    """Parse an ISO string, datetime or pandas Timestamp into an aware UTC datetime."""
    if isinstance(value, str):
        value = pd.Timestamp(value)
    return ensure_utc(value)
