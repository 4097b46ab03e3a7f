"""Activity verification matcher — maps dated activities onto day numbers.

Activities are grouped by their local calendar date. A contract day is
matched when any activity on that day's date has an allowed type
(compared case-insensitively).

Callers must pass only days that are still unrevealed as days_to_check.
A revealed outcome is final and is never re-verified. The matcher is
pure: it reports day numbers and never touches cycle state. Matches are
applied through CommitmentCycle.record_verified_completion.
"""

from __future__ import annotations

from datetime import date, tzinfo
from typing import Dict, Iterable, List, Sequence

from lockedin.cycle.calendar import date_for_day, local_date
from lockedin.models.activity import Activity


def has_matching_activity(activities: Iterable[Activity], allowed_types: Sequence[str]) -> bool:
    """True if any activity's type is in allowed_types (case-insensitive)."""
    if not allowed_types:
        return False
    normalized = {t.lower() for t in allowed_types}
    return any(a.activity_type.lower() in normalized for a in activities)


def group_activities_by_date(
    activities: Iterable[Activity], tz: tzinfo
) -> Dict[date, List[Activity]]:
    grouped: Dict[date, List[Activity]] = {}
    for activity in activities:
        grouped.setdefault(local_date(activity.started_at(), tz), []).append(activity)
    return grouped


def find_matching_days(
    activities: Sequence[Activity],
    allowed_types: Sequence[str],
    contract_start: date,
    days_to_check: Iterable[int],
    tz: tzinfo,
) -> List[int]:
    """Return the days in days_to_check that have a matching activity.

    Args:
        activities: Activities from the external feed.
        allowed_types: Activity types that count as the habit.
        contract_start: Local date of day 1.
        days_to_check: Candidate day numbers (unrevealed days only).
        tz: The user's local timezone.

    Returns:
        Matching day numbers in the order given. Empty when there is
        no activity data.
    """
    if not activities:
        return []
    grouped = group_activities_by_date(activities, tz)
    return [
        day
        for day in days_to_check
        if has_matching_activity(grouped.get(date_for_day(contract_start, day), []), allowed_types)
    ]
