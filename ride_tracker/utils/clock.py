"""Clock sources used for expiration checks, duration accrual and renewal."""
from datetime import datetime, timedelta
from typing import Optional

from .timezone import ensure_utc, utc_now


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return utc_now()


class ManualClock:
    """Settable clock for deterministic tests and replays."""

    def __init__(self, start: Optional[datetime] = None):
        self._now = ensure_utc(start) if start is not None else utc_now()

    def now(self) -> datetime:
        return self._now

    def set(self, value: datetime) -> None:
        self._now = ensure_utc(value)

    def advance(self, seconds: float = 0.0, **kwargs) -> datetime:
        """Move the clock forward by ``seconds`` plus any ``timedelta`` keyword arguments."""
        self._now = self._now + timedelta(seconds=seconds, **kwargs)
        return self._now
