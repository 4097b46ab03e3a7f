"""Check-in models — per-day resolution and reveal state.

Two independent monotonic flags live on each day:

    status:   PENDING → COMPLETED      (check-in or verified activity)
              PENDING → MISSED         (explicit miss or automatic sweep)
    revealed: False → True             (outcome surfaced to the user)

A day's status is write-once. Reveal never reverses.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

from lockedin.models.schedule import to_money


class DayStatus(str, enum.Enum):
    """Resolution state of a single contract day."""
    PENDING = "pending"
    COMPLETED = "completed"
    MISSED = "missed"


def format_timestamp(ts: datetime) -> str:
    """ISO-8601 UTC with millisecond precision, e.g. 2026-02-16T12:00:00.000Z."""
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    return ts.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ts.microsecond // 1000:03d}Z"


@dataclass(frozen=True)
class CheckInRecord:
    """The state of one day in the cycle.

    A PENDING record is an unresolved slot and carries no timestamp.
    reward_amount is set only for COMPLETED reward days.
    """
    day_number: int
    status: DayStatus = DayStatus.PENDING
    timestamp_utc: Optional[str] = None
    reward_amount: Optional[Decimal] = None
    revealed: bool = False
    reveal_timestamp_utc: Optional[str] = None

    @property
    def is_resolved(self) -> bool:
        return self.status != DayStatus.PENDING

    def resolve(
        self,
        status: DayStatus,
        now: datetime,
        reward_amount: Optional[Decimal] = None,
    ) -> CheckInRecord:
        """Return the resolved version of this slot.

        Raises:
            ValueError: If the slot is already resolved or the target
                status is PENDING.
        """
        if self.is_resolved:
            raise ValueError(
                f"Day {self.day_number} already resolved as {self.status.value}"
            )
        if status == DayStatus.PENDING:
            raise ValueError("Cannot resolve a day to pending")
        return replace(
            self,
            status=status,
            timestamp_utc=format_timestamp(now),
            reward_amount=reward_amount if status == DayStatus.COMPLETED else None,
            revealed=False,
            reveal_timestamp_utc=None,
        )

    def reveal(self, now: datetime) -> CheckInRecord:
        """Return the revealed version of this record.

        Revealing an already-revealed record keeps the first timestamp.
        """
        if self.revealed:
            return self
        return replace(self, revealed=True, reveal_timestamp_utc=format_timestamp(now))

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the stored check-in history keys."""
        data: Dict[str, Any] = {
            "dayNumber": self.day_number,
            "status": self.status.value,
            "timestamp": self.timestamp_utc,
            "revealed": self.revealed,
        }
        if self.reward_amount is not None:
            data["rewardAmount"] = str(self.reward_amount)
        if self.reveal_timestamp_utc is not None:
            data["revealTimestamp"] = self.reveal_timestamp_utc
        return data

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> CheckInRecord:
        """Load a stored record.

        Records written before reveal tracking existed have no
        "revealed" key and load as unrevealed. A stored reward on a
        missed day or a zero reward is dropped.

        Raises:
            ValueError: If the record is malformed.
        """
        try:
            day_number = int(data["dayNumber"])
            status = DayStatus(data["status"])
            timestamp = data.get("timestamp")
            raw_reward = data.get("rewardAmount")
        except (KeyError, TypeError) as exc:
            raise ValueError(f"Malformed check-in record: {exc}") from exc
        if day_number < 1:
            raise ValueError(f"Day number must be >= 1, got {day_number}")
        if status == DayStatus.PENDING:
            raise ValueError(f"Stored record for day {day_number} is unresolved")

        reward: Optional[Decimal] = None
        if raw_reward is not None and status == DayStatus.COMPLETED:
            try:
                reward = to_money(raw_reward)
            except ArithmeticError as exc:
                raise ValueError(f"Malformed reward amount: {raw_reward!r}") from exc
            if reward == 0:
                reward = None

        revealed = data.get("revealed") is True
        return CheckInRecord(
            day_number=day_number,
            status=status,
            timestamp_utc=timestamp,
            reward_amount=reward,
            revealed=revealed,
            reveal_timestamp_utc=data.get("revealTimestamp") if revealed else None,
        )
