"""Contract calendar — maps wall-clock time onto contract day numbers.

Day 1 is the contract's start date in the user's local timezone. The
day number is never stored: it is derived from the local date of "now"
each time it is needed.

    day_number = (today_local - start_local).days + 1   (0 before start)

Verification uses the same arithmetic in reverse (date_for_day), so an
activity dated in local time lands on the same day number a check-in
made at that moment would.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Optional

from lockedin.models.contract import Contract, StartOption


def local_date(ts: datetime, tz: tzinfo) -> date:
    """Return the calendar date of ts in tz. Naive datetimes are UTC."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(tz).date()


def contract_start_date(start_option: StartOption, created_at: datetime, tz: tzinfo) -> date:
    """Return the local date of day 1."""
    start = local_date(created_at, tz)
    if StartOption(start_option) == StartOption.TOMORROW:
        start += timedelta(days=1)
    return start


def current_day_number(start: date, today: date) -> int:
    """Return the 1-based day number of today, or 0 before the start."""
    diff = (today - start).days
    if diff < 0:
        return 0
    return diff + 1


def date_for_day(start: date, day_number: int) -> date:
    """Return the local date of a given day number."""
    return start + timedelta(days=day_number - 1)


class ContractCalendar:
    """Day-number arithmetic bound to one contract and timezone."""

    def __init__(self, contract: Contract, tz: tzinfo) -> None:
        self._tz = tz
        self._start = contract_start_date(contract.start_option, contract.created_at, tz)
        self._duration = contract.duration

    @property
    def tz(self) -> tzinfo:
        return self._tz

    @property
    def start(self) -> date:
        return self._start

    def today(self, now: Optional[datetime] = None) -> date:
        if now is None:
            now = datetime.now(timezone.utc)
        return local_date(now, self._tz)

    def day_number(self, now: Optional[datetime] = None) -> int:
        """Current day number; may exceed duration once the cycle ends."""
        return current_day_number(self._start, self.today(now))

    def date_for_day(self, day_number: int) -> date:
        return date_for_day(self._start, day_number)

    def has_started(self, now: Optional[datetime] = None) -> bool:
        return self.day_number(now) >= 1

    def has_ended(self, now: Optional[datetime] = None) -> bool:
        return self.day_number(now) > self._duration


def is_evening(now: datetime, tz: tzinfo, hour: int = 18) -> bool:
    """True when the local time is at or past the reminder hour."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(tz).hour >= hour
