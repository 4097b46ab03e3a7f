"""Retroactive verification sync against an external activity source.

The network client is an external collaborator. It only has to offer

    fetch_activities(start: date, end: date) -> FetchResult

covering the inclusive local date range. Upstream failures are never
raised out of sync_activities: verification is advisory and must not
block the check-in flow, so failures come back as
SyncResult(success=False, error=...).
"""

from __future__ import annotations

import logging
from datetime import date, tzinfo
from typing import Iterable, List, Protocol, Sequence

from lockedin.cycle.calendar import date_for_day, local_date
from lockedin.models.activity import Activity, FetchResult, SyncResult
from lockedin.verification.matcher import find_matching_days

logger = logging.getLogger(__name__)


class ActivitySource(Protocol):
    def fetch_activities(self, start: date, end: date) -> FetchResult: ...


class StaticActivitySource:
    """Serves a fixed list of activities, filtered to the requested range.

    Used by the CLI (activities read from a JSON export) and in tests.
    """

    def __init__(self, activities: Iterable[Activity], tz: tzinfo) -> None:
        self._activities = list(activities)
        self._tz = tz

    def fetch_activities(self, start: date, end: date) -> FetchResult:
        return FetchResult(
            activities=[
                a for a in self._activities
                if start <= local_date(a.started_at(), self._tz) <= end
            ]
        )


def sync_activities(
    source: ActivitySource,
    allowed_types: Sequence[str],
    contract_start: date,
    days_to_check: Sequence[int],
    tz: tzinfo,
) -> SyncResult:
    """Fetch activities covering days_to_check and report matching days.

    An empty days_to_check succeeds without fetching.
    """
    if not days_to_check:
        return SyncResult(success=True, days_verified=[])

    ordered: List[int] = sorted(set(days_to_check))
    start = date_for_day(contract_start, ordered[0])
    end = date_for_day(contract_start, ordered[-1])

    try:
        fetched = source.fetch_activities(start, end)
    except (OSError, ValueError) as exc:
        logger.warning("Activity fetch failed for %s..%s: %s", start, end, exc)
        return SyncResult(success=False, error=f"Activity fetch failed: {exc}")

    if not fetched.ok:
        logger.warning("Activity source reported an error: %s", fetched.error)
        return SyncResult(success=False, error=fetched.error)

    try:
        verified = find_matching_days(
            fetched.activities, allowed_types, contract_start, ordered, tz
        )
    except ValueError as exc:
        logger.warning("Malformed activity data: %s", exc)
        return SyncResult(success=False, error=f"Malformed activity data: {exc}")

    logger.info(
        "Verified %d of %d candidate day(s): %s", len(verified), len(ordered), verified
    )
    return SyncResult(success=True, days_verified=verified)
