"""Goal period arithmetic."""
from datetime import datetime, timedelta
from typing import Optional

import pandas as pd

from ..utils.config import get_config
from ..utils.timezone import ensure_utc


def period_end_for(kind: str, start: datetime, weekly_days: Optional[int] = None) -> datetime:
    """
    End of a goal period beginning at ``start``.

    Weekly periods last ``weekly_days`` days (the configured length when not
    given). Monthly periods end on the same day-of-month in the following
    month, clamped to that month's length (January 31 -> February 28/29).
    """
    start = ensure_utc(start)
    if kind == 'weekly':
        if weekly_days is None:
            weekly_days = get_config().goals.weekly_period_days
        return start + timedelta(days=weekly_days)
    if kind == 'monthly':
        return (pd.Timestamp(start) + pd.DateOffset(months=1)).to_pydatetime()
    raise ValueError(f"Unknown goal period: {kind}")
