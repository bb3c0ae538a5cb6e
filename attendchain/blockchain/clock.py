"""
Time sources for block and payload construction.

Chains never read the wall clock directly; they ask a Clock. Tests pass a
FixedClock so genesis blocks, timestamps and attendance dates are
reproducible.
"""

from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Clock frozen at a given moment until advanced explicitly."""

    def __init__(self, moment: datetime):
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        self._moment = moment

    def now(self) -> datetime:
        return self._moment

    def advance(self, **kwargs) -> datetime:
        """Move the clock forward; accepts timedelta keyword arguments."""
        self._moment = self._moment + timedelta(**kwargs)
        return self._moment

    def set(self, moment: datetime) -> None:
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        self._moment = moment


def epoch_millis(moment: datetime) -> int:
    """Milliseconds since the Unix epoch."""
    return int(moment.timestamp() * 1000)


def iso_timestamp(moment: datetime) -> str:
    """UTC ISO-8601 string with millisecond precision, e.g. 2024-03-01T09:30:00.000Z"""
    utc = moment.astimezone(timezone.utc)
    return utc.strftime('%Y-%m-%dT%H:%M:%S.') + f"{utc.microsecond // 1000:03d}Z"


def calendar_date(moment: datetime) -> str:
    """UTC calendar date as YYYY-MM-DD."""
    return moment.astimezone(timezone.utc).date().isoformat()
