"""Commitment cycle — calendar arithmetic, day state machine, storage."""

from lockedin.cycle.calendar import ContractCalendar
from lockedin.cycle.state_machine import CommitmentCycle, CycleSummary
from lockedin.cycle.storage import (
    CheckInRepository,
    ContractRepository,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
)

__all__ = [
    "CheckInRepository",
    "CommitmentCycle",
    "ContractCalendar",
    "ContractRepository",
    "CycleSummary",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
]
