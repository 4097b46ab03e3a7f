"""Automatic verification from external activity feeds."""

from lockedin.verification.matcher import (
    find_matching_days,
    group_activities_by_date,
    has_matching_activity,
)
from lockedin.verification.sync import ActivitySource, StaticActivitySource, sync_activities

__all__ = [
    "ActivitySource",
    "StaticActivitySource",
    "find_matching_days",
    "group_activities_by_date",
    "has_matching_activity",
    "sync_activities",
]
