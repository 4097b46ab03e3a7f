"""Core data models for the commitment cycle."""

from lockedin.models.activity import Activity, FetchResult, SyncResult
from lockedin.models.check_in import CheckInRecord, DayStatus
from lockedin.models.contract import Contract, StartOption
from lockedin.models.schedule import Reward, RewardSchedule, to_money

__all__ = [
    "Activity",
    "CheckInRecord",
    "Contract",
    "DayStatus",
    "FetchResult",
    "Reward",
    "RewardSchedule",
    "StartOption",
    "SyncResult",
    "to_money",
]
