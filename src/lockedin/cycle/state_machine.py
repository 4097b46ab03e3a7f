"""Commitment cycle state machine — per-day resolution and reveal tracking.

One CommitmentCycle is constructed per active contract per session.
It owns a dense slot array indexed 1..duration; every slot always holds
a CheckInRecord, PENDING until resolved.

Per-day state machine:
    PENDING → COMPLETED     (complete_check_in, record_verified_completion)
    PENDING → MISSED        (mark_day_missed, auto_mark_missed_days)
    revealed: False → True  (mark_day_revealed, resolved days only)

Mutators are idempotent no-ops when their preconditions fail (day
already resolved, cycle not started, day out of range). They return
the written record, or None when nothing changed. Callers that need to
tell "already recorded" from "rejected" inspect the cycle state.

The cycle is a pure state machine with no I/O. Persistence and event
logging are handled by the service layer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from lockedin.cycle.calendar import ContractCalendar
from lockedin.models.check_in import CheckInRecord, DayStatus
from lockedin.models.contract import Contract

logger = logging.getLogger(__name__)

_ZERO = Decimal("0.00")


@dataclass(frozen=True)
class CycleSummary:
    """Dashboard metrics derived from the cycle at a moment in time."""
    current_day_number: int
    duration: int
    deposit_amount: Decimal
    total_earned: Decimal
    total_forfeited: Decimal
    locked_amount: Decimal
    current_streak: int
    longest_streak: int
    days_completed: int
    days_missed: int
    unrevealed_days: List[int]
    checked_in_today: bool


class CommitmentCycle:
    """Tracks completion and reveal state for one contract.

    Usage:
        cycle = CommitmentCycle(contract, tz=timezone.utc)
        cycle.auto_mark_missed_days(now=now)
        cycle.complete_check_in(now=now)
        for day in cycle.unrevealed_days(now=now):
            cycle.mark_day_revealed(day, now=now)
        cycle.locked_amount()
    """

    def __init__(self, contract: Contract, tz: tzinfo = timezone.utc) -> None:
        self._contract = contract
        self._schedule = contract.reward_schedule
        self._calendar = ContractCalendar(contract, tz)
        self._slots: List[CheckInRecord] = [
            CheckInRecord(day_number=day) for day in range(1, contract.duration + 1)
        ]

    @classmethod
    def restore(
        cls,
        contract: Contract,
        records: Iterable[CheckInRecord],
        tz: tzinfo = timezone.utc,
    ) -> CommitmentCycle:
        """Rebuild a cycle from stored records.

        Records outside [1, duration] and unresolved records are skipped.
        When two records share a day the first one wins.
        """
        cycle = cls(contract, tz)
        for record in records:
            if not cycle._in_range(record.day_number):
                logger.warning(
                    "Ignoring stored record for day %d outside 1-%d (contract %s)",
                    record.day_number, contract.duration, contract.contract_id,
                )
                continue
            if not record.is_resolved:
                continue
            if cycle._slots[record.day_number - 1].is_resolved:
                logger.warning(
                    "Ignoring duplicate stored record for day %d (contract %s)",
                    record.day_number, contract.contract_id,
                )
                continue
            cycle._slots[record.day_number - 1] = record
        return cycle

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def contract(self) -> Contract:
        return self._contract

    @property
    def calendar(self) -> ContractCalendar:
        return self._calendar

    @property
    def duration(self) -> int:
        return self._contract.duration

    def current_day_number(self, now: Optional[datetime] = None) -> int:
        return self._calendar.day_number(now)

    @property
    def check_in_history(self) -> Dict[int, CheckInRecord]:
        """Resolved days only, keyed by day number."""
        return {s.day_number: s for s in self._slots if s.is_resolved}

    def slots(self) -> List[CheckInRecord]:
        """All slots in day order, including unresolved ones."""
        return list(self._slots)

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    def complete_check_in(self, now: Optional[datetime] = None) -> Optional[CheckInRecord]:
        """Mark today completed. No-op if today is resolved or out of range."""
        now = _utc_now(now)
        return self._resolve(self.current_day_number(now), DayStatus.COMPLETED, now)

    def mark_day_missed(self, now: Optional[datetime] = None) -> Optional[CheckInRecord]:
        """Mark today missed. No-op if today is resolved or out of range."""
        now = _utc_now(now)
        return self._resolve(self.current_day_number(now), DayStatus.MISSED, now)

    def record_verified_completion(
        self, day_number: int, now: Optional[datetime] = None
    ) -> Optional[CheckInRecord]:
        """Complete a day confirmed by external activity data.

        Applies only to an unresolved day on or before today. A day that
        is already resolved keeps its status.
        """
        now = _utc_now(now)
        if day_number > self.current_day_number(now):
            logger.debug("Verification for future day %d ignored", day_number)
            return None
        return self._resolve(day_number, DayStatus.COMPLETED, now)

    def auto_mark_missed_days(
        self, now: Optional[datetime] = None, grace_days: int = 0
    ) -> List[int]:
        """Resolve every unresolved day before today as missed.

        grace_days keeps the most recent past days unresolved so a
        pending verification can still complete them. Returns the days
        that were marked.
        """
        now = _utc_now(now)
        cutoff = min(self.current_day_number(now) - grace_days, self.duration + 1)
        marked: List[int] = []
        for day in range(1, cutoff):
            if self._resolve(day, DayStatus.MISSED, now) is not None:
                marked.append(day)
        if marked:
            logger.info(
                "Auto-marked %d missed day(s) for contract %s: %s",
                len(marked), self._contract.contract_id, marked,
            )
        return marked

    def mark_day_revealed(
        self, day_number: int, now: Optional[datetime] = None
    ) -> Optional[CheckInRecord]:
        """Reveal a resolved day's outcome. Touches no other day.

        No-op if the day has no resolved record or is already revealed.
        """
        now = _utc_now(now)
        record = self.record_for_day(day_number)
        if record is None:
            logger.warning("Cannot reveal day %d: no record found", day_number)
            return None
        if record.revealed:
            return None
        revealed = record.reveal(now)
        self._slots[day_number - 1] = revealed
        logger.info(
            "Revealed day %d (%s) for contract %s",
            day_number, revealed.status.value, self._contract.contract_id,
        )
        return revealed

    def _resolve(
        self, day_number: int, status: DayStatus, now: datetime
    ) -> Optional[CheckInRecord]:
        if day_number <= 0:
            logger.debug("Cycle for contract %s has not started", self._contract.contract_id)
            return None
        if not self._in_range(day_number):
            logger.debug("Day %d is outside the cycle", day_number)
            return None
        slot = self._slots[day_number - 1]
        if slot.is_resolved:
            logger.debug("Day %d already resolved as %s", day_number, slot.status.value)
            return None

        reward: Optional[Decimal] = None
        if status == DayStatus.COMPLETED:
            amount = self._schedule.reward_for_day(day_number)
            reward = amount if amount > 0 else None
        record = slot.resolve(status, now, reward_amount=reward)
        self._slots[day_number - 1] = record
        logger.info(
            "Day %d resolved as %s for contract %s",
            day_number, status.value, self._contract.contract_id,
        )
        return record

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def record_for_day(self, day_number: int) -> Optional[CheckInRecord]:
        """Return the resolved record for a day, or None."""
        if not self._in_range(day_number):
            return None
        slot = self._slots[day_number - 1]
        return slot if slot.is_resolved else None

    def day_status(self, day_number: int, now: Optional[datetime] = None) -> DayStatus:
        """Status for display: an unresolved past day reads as missed."""
        record = self.record_for_day(day_number)
        if record is not None:
            return record.status
        if day_number < self.current_day_number(now):
            return DayStatus.MISSED
        return DayStatus.PENDING

    def has_checked_in_today(self, now: Optional[datetime] = None) -> bool:
        return self.record_for_day(self.current_day_number(now)) is not None

    def reward_for_day(self, day_number: int) -> Decimal:
        return self._schedule.reward_for_day(day_number)

    def unrevealed_days(
        self,
        current_day: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> List[int]:
        """Resolved, unrevealed days strictly before current_day, ascending.

        Today's outcome is never revealed on the same day.
        """
        if current_day is None:
            current_day = self.current_day_number(now)
        return [
            s.day_number
            for s in self._slots
            if s.day_number < current_day and s.is_resolved and not s.revealed
        ]

    def has_unrevealed_days(self, now: Optional[datetime] = None) -> bool:
        return bool(self.unrevealed_days(now=now))

    def verifiable_days(self, now: Optional[datetime] = None) -> List[int]:
        """Unrevealed days up to and including today, ascending.

        These are the only days an external activity feed may be
        checked against. Revealed outcomes are final.
        """
        last = min(self.current_day_number(now), self.duration)
        return [s.day_number for s in self._slots[:max(last, 0)] if not s.revealed]

    def total_earned(self) -> Decimal:
        """Rewards on completed days, whether revealed or not."""
        return self.cumulative_earned(self.duration)

    def cumulative_earned(self, up_to_day: int) -> Decimal:
        """Rewards on completed days 1..up_to_day inclusive."""
        total = _ZERO
        for slot in self._slots[:max(up_to_day, 0)]:
            if slot.status == DayStatus.COMPLETED and slot.reward_amount is not None:
                total += slot.reward_amount
        return total

    def total_forfeited(self) -> Decimal:
        """Rewards on missed days, counted only once revealed."""
        total = _ZERO
        for slot in self._slots:
            if slot.status == DayStatus.MISSED and slot.revealed:
                total += self._schedule.reward_for_day(slot.day_number)
        return total

    def locked_amount(self) -> Decimal:
        """Deposit value not yet earned or shown as forfeited."""
        return self._contract.deposit_amount - self.total_earned() - self.total_forfeited()

    def current_streak(self) -> int:
        """Consecutive completed days ending at the latest resolved day."""
        resolved = [s for s in self._slots if s.is_resolved]
        if not resolved:
            return 0
        streak = 0
        for slot in reversed(self._slots[:resolved[-1].day_number]):
            if slot.status != DayStatus.COMPLETED:
                break
            streak += 1
        return streak

    def longest_streak(self) -> int:
        longest = 0
        run = 0
        for slot in self._slots:
            if slot.status == DayStatus.COMPLETED:
                run += 1
                longest = max(longest, run)
            else:
                run = 0
        return longest

    def summary(self, now: Optional[datetime] = None) -> CycleSummary:
        now = _utc_now(now)
        day = self.current_day_number(now)
        return CycleSummary(
            current_day_number=day,
            duration=self.duration,
            deposit_amount=self._contract.deposit_amount,
            total_earned=self.total_earned(),
            total_forfeited=self.total_forfeited(),
            locked_amount=self.locked_amount(),
            current_streak=self.current_streak(),
            longest_streak=self.longest_streak(),
            days_completed=sum(1 for s in self._slots if s.status == DayStatus.COMPLETED),
            days_missed=sum(1 for s in self._slots if s.status == DayStatus.MISSED),
            unrevealed_days=self.unrevealed_days(current_day=day),
            checked_in_today=self.has_checked_in_today(now),
        )

    def to_history_dict(self) -> Dict[str, dict]:
        """Serialize resolved records keyed by day number string."""
        return {str(day): r.to_dict() for day, r in self.check_in_history.items()}

    def _in_range(self, day_number: int) -> bool:
        return 1 <= day_number <= self.duration


def _utc_now(now: Optional[datetime]) -> datetime:
    return now if now is not None else datetime.now(timezone.utc)
