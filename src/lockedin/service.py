"""Locked In service — unified facade for the commitment cycle core.

This is the primary interface for programmatic access. It orchestrates:
- Contract creation (term validation, hidden schedule generation)
- Cycle sessions (restore, verify, sweep missed days)
- Daily check-in, explicit miss, and next-day reveal
- Retroactive verification from an external activity source
- Administrative schedule generation and what-if simulation

All operations return a typed ServiceResult. Every state change is
persisted through the key-value store immediately and appended to the
event log.

Missed-day finalization is deferred behind verification: when a
session opens, unresolved past days are first checked against the
activity source (if one is given) and only then swept to missed. The
policy's finalization_grace_days keeps the most recent past days open
for a later sync.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone, tzinfo
from decimal import Decimal
from typing import Any, Iterable, Optional, Sequence
from uuid import uuid4

from lockedin.cycle.state_machine import CommitmentCycle
from lockedin.cycle.storage import (
    CheckInRepository,
    ContractRepository,
    InMemoryKeyValueStore,
    KeyValueStore,
)
from lockedin.models.check_in import DayStatus
from lockedin.models.contract import Contract, StartOption
from lockedin.models.schedule import RewardSchedule, to_money
from lockedin.persistence.event_log import EventKind, EventLog, EventRecord
from lockedin.policy import ContractPolicy
from lockedin.rewards.generator import generate_reward_schedule
from lockedin.rewards.simulator import SimulationPreset, simulate
from lockedin.verification.sync import ActivitySource, sync_activities

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation."""
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)


class LockedInService:
    """Commitment cycle facade.

    Usage:
        policy = ContractPolicy.from_config_dir(config_dir)
        service = LockedInService(policy, store=JsonFileKeyValueStore(path))

        result = service.create_contract("Run 5k", 14, Decimal("200"), "today")
        service.open_cycle(activity_source=source)
        service.check_in()
        for day in service.status().data["summary"]["unrevealed_days"]:
            service.reveal_day(day)
    """

    def __init__(
        self,
        policy: Optional[ContractPolicy] = None,
        store: Optional[KeyValueStore] = None,
        event_log: Optional[EventLog] = None,
        tz: Optional[tzinfo] = None,
    ) -> None:
        self._policy = policy or ContractPolicy()
        self._tz = tz or self._policy.tzinfo()
        store = store if store is not None else InMemoryKeyValueStore()
        self._contracts = ContractRepository(store)
        self._checkins = CheckInRepository(store)
        self._event_log = event_log or EventLog()
        self._cycle: Optional[CommitmentCycle] = None

    @property
    def policy(self) -> ContractPolicy:
        return self._policy

    @property
    def event_log(self) -> EventLog:
        return self._event_log

    @property
    def cycle(self) -> Optional[CommitmentCycle]:
        return self._cycle

    # ------------------------------------------------------------------
    # Administrative surface
    # ------------------------------------------------------------------

    def generate_schedule(
        self, seed: str, duration: int, deposit_amount: Decimal
    ) -> ServiceResult:
        """Validate inputs and generate a reward schedule."""
        errors = self._policy.validate_generation_input(seed, duration, deposit_amount)
        if errors:
            return ServiceResult(success=False, errors=errors)
        schedule = generate_reward_schedule(
            seed, duration, deposit_amount, self._policy.rewards
        )
        return ServiceResult(success=True, data={"schedule": schedule})

    def simulate_schedule(
        self,
        schedule: RewardSchedule,
        completed_days: Optional[Iterable[int]] = None,
        preset: Optional[str] = None,
    ) -> ServiceResult:
        """Replay a schedule against explicit days or a named preset."""
        if (completed_days is None) == (preset is None):
            return ServiceResult(
                success=False,
                errors=["Either completed_days or preset must be provided"],
            )
        preset_value: Optional[SimulationPreset] = None
        if preset is not None:
            try:
                preset_value = SimulationPreset(preset)
            except ValueError:
                valid = ", ".join(p.value for p in SimulationPreset)
                return ServiceResult(
                    success=False,
                    errors=[f"Unknown preset {preset!r}; expected one of: {valid}"],
                )
        if completed_days is not None:
            completed_days = list(completed_days)
            bad = [d for d in completed_days if not isinstance(d, int) or d < 1]
            if bad:
                return ServiceResult(
                    success=False, errors=[f"Completed days must be integers >= 1: {bad}"]
                )
        result = simulate(
            schedule,
            completed_days=completed_days,
            preset=preset_value,
            settings=self._policy.simulation,
        )
        return ServiceResult(success=True, data={"simulation": result})

    # ------------------------------------------------------------------
    # Contract lifecycle
    # ------------------------------------------------------------------

    def create_contract(
        self,
        habit_title: str,
        duration: int,
        deposit_amount: Decimal,
        start_option: str,
        activity_types: Sequence[str] = (),
        now: Optional[datetime] = None,
        contract_id: Optional[str] = None,
    ) -> ServiceResult:
        """Create and persist a contract with its hidden schedule.

        The contract ID seeds the schedule. Any existing contract in the
        store is replaced and its session discarded.
        """
        errors = self._policy.validate_terms(
            habit_title, duration, deposit_amount, start_option
        )
        if errors:
            return ServiceResult(success=False, errors=errors)
        if now is None:
            now = datetime.now(timezone.utc)
        if contract_id is None:
            contract_id = str(uuid4())

        deposit = to_money(deposit_amount)
        schedule = generate_reward_schedule(
            contract_id, duration, deposit, self._policy.rewards
        )
        contract = Contract(
            contract_id=contract_id,
            habit_title=habit_title.strip(),
            duration=duration,
            deposit_amount=deposit,
            start_option=StartOption(start_option),
            created_at=now,
            reward_schedule=schedule,
            activity_types=tuple(activity_types),
        )

        previous = self._contracts.load()
        if previous is not None and previous.contract_id != contract_id:
            self._checkins.clear(previous.contract_id)
        self._contracts.save(contract)
        self._cycle = None
        self._record(
            EventKind.CONTRACT_CREATED,
            contract_id,
            {
                "duration": duration,
                "deposit_amount": str(deposit),
                "start_option": contract.start_option.value,
                "reward_day_count": schedule.reward_day_count,
            },
            now,
        )
        logger.info(
            "Created contract %s: %d days, deposit %s, %d reward days",
            contract_id, duration, deposit, schedule.reward_day_count,
        )
        return ServiceResult(success=True, data={"contract": contract})

    def clear_contract(self, now: Optional[datetime] = None) -> ServiceResult:
        """Discard the active contract and its history."""
        contract = self._contracts.load()
        if contract is None:
            return ServiceResult(success=False, errors=["No active contract"])
        self._checkins.clear(contract.contract_id)
        self._contracts.clear()
        self._cycle = None
        self._record(EventKind.CONTRACT_CLEARED, contract.contract_id, {}, now)
        return ServiceResult(success=True, data={"contract_id": contract.contract_id})

    def open_cycle(
        self,
        now: Optional[datetime] = None,
        activity_source: Optional[ActivitySource] = None,
    ) -> ServiceResult:
        """Start a session for the stored contract.

        Restores the history, verifies unresolved days against the
        activity source when the contract has activity types, then
        sweeps the remaining past days to missed.
        """
        if now is None:
            now = datetime.now(timezone.utc)
        contract = self._contracts.load()
        if contract is None:
            return ServiceResult(success=False, errors=["No active contract"])

        records = self._checkins.load(contract.contract_id)
        self._cycle = CommitmentCycle.restore(contract, records, self._tz)

        data: dict[str, Any] = {"contract_id": contract.contract_id}
        if activity_source is not None and contract.activity_types:
            sync = self.sync_verification(activity_source, now=now)
            data["verified_days"] = sync.data.get("verified_days", [])
            data["sync_errors"] = sync.errors

        marked = self._cycle.auto_mark_missed_days(
            now=now, grace_days=self._policy.cycle.finalization_grace_days
        )
        for day in marked:
            self._record(EventKind.DAY_AUTO_MISSED, contract.contract_id, {"day": day}, now)
        self._persist()

        data["auto_missed_days"] = marked
        data["summary"] = self._summary_dict(now)
        return ServiceResult(success=True, data=data)

    # ------------------------------------------------------------------
    # Daily actions
    # ------------------------------------------------------------------

    def check_in(self, now: Optional[datetime] = None) -> ServiceResult:
        """Complete today's check-in."""
        return self._resolve_today(DayStatus.COMPLETED, now)

    def mark_missed(self, now: Optional[datetime] = None) -> ServiceResult:
        """Record today as missed."""
        return self._resolve_today(DayStatus.MISSED, now)

    def reveal_day(self, day_number: int, now: Optional[datetime] = None) -> ServiceResult:
        """Reveal a resolved past day's outcome."""
        if now is None:
            now = datetime.now(timezone.utc)
        cycle = self._cycle
        if cycle is None:
            return ServiceResult(success=False, errors=["No open cycle"])
        if day_number >= cycle.current_day_number(now):
            return ServiceResult(
                success=False,
                errors=[f"Day {day_number} cannot be revealed before it has passed"],
            )
        record = cycle.record_for_day(day_number)
        if record is None:
            return ServiceResult(
                success=False, errors=[f"Day {day_number} has no recorded outcome"]
            )
        revealed = cycle.mark_day_revealed(day_number, now=now)
        if revealed is None:
            return ServiceResult(
                success=True, data={"day": day_number, "already_revealed": True}
            )
        self._persist()
        self._record(
            EventKind.DAY_REVEALED,
            cycle.contract.contract_id,
            {"day": day_number, "status": revealed.status.value},
            now,
        )
        reward = cycle.reward_for_day(day_number)
        outcome = {
            "day": day_number,
            "status": revealed.status.value,
            "reward_amount": reward,
            "recovered": reward if revealed.status == DayStatus.COMPLETED else Decimal("0.00"),
            "forfeited": reward if revealed.status == DayStatus.MISSED else Decimal("0.00"),
        }
        return ServiceResult(success=True, data=outcome)

    def sync_verification(
        self, activity_source: ActivitySource, now: Optional[datetime] = None
    ) -> ServiceResult:
        """Check unrevealed days against external activity and apply matches.

        Upstream failures come back as an unsuccessful result; the cycle
        is left untouched.
        """
        if now is None:
            now = datetime.now(timezone.utc)
        cycle = self._cycle
        if cycle is None:
            return ServiceResult(success=False, errors=["No open cycle"])
        contract = cycle.contract
        if not contract.activity_types:
            return ServiceResult(success=True, data={"verified_days": []})

        candidates = cycle.verifiable_days(now=now)
        result = sync_activities(
            activity_source,
            contract.activity_types,
            cycle.calendar.start,
            candidates,
            self._tz,
        )
        if not result.success:
            self._record(
                EventKind.VERIFICATION_FAILED,
                contract.contract_id,
                {"error": result.error},
                now,
            )
            return ServiceResult(success=False, errors=[result.error or "Sync failed"])

        applied: list[int] = []
        for day in result.days_verified:
            if cycle.record_verified_completion(day, now=now) is not None:
                applied.append(day)
                self._record(EventKind.DAY_VERIFIED, contract.contract_id, {"day": day}, now)
        if applied:
            self._persist()
        self._record(
            EventKind.VERIFICATION_SYNCED,
            contract.contract_id,
            {"candidates": candidates, "matched": result.days_verified, "applied": applied},
            now,
        )
        return ServiceResult(
            success=True,
            data={"verified_days": applied, "matched_days": result.days_verified},
        )

    def status(self, now: Optional[datetime] = None) -> ServiceResult:
        if self._cycle is None:
            return ServiceResult(success=False, errors=["No open cycle"])
        return ServiceResult(success=True, data={"summary": self._summary_dict(now)})

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve_today(self, status: DayStatus, now: Optional[datetime]) -> ServiceResult:
        if now is None:
            now = datetime.now(timezone.utc)
        cycle = self._cycle
        if cycle is None:
            return ServiceResult(success=False, errors=["No open cycle"])
        day = cycle.current_day_number(now)
        if status == DayStatus.COMPLETED:
            record = cycle.complete_check_in(now=now)
        else:
            record = cycle.mark_day_missed(now=now)

        if record is None:
            existing = cycle.record_for_day(day)
            if existing is not None:
                return ServiceResult(
                    success=True,
                    data={"day": day, "status": existing.status.value, "already_recorded": True},
                )
            return ServiceResult(
                success=False, errors=[f"Day {day} is outside the contract cycle"]
            )

        self._persist()
        kind = EventKind.DAY_COMPLETED if status == DayStatus.COMPLETED else EventKind.DAY_MISSED
        self._record(kind, cycle.contract.contract_id, {"day": day}, now)
        return ServiceResult(success=True, data={"day": day, "status": record.status.value})

    def _persist(self) -> None:
        cycle = self._cycle
        if cycle is not None:
            self._checkins.save(cycle.contract.contract_id, cycle.check_in_history)

    def _summary_dict(self, now: Optional[datetime]) -> dict[str, Any]:
        return asdict(self._cycle.summary(now))

    def _record(
        self,
        kind: EventKind,
        contract_id: str,
        payload: dict[str, Any],
        now: Optional[datetime],
    ) -> None:
        self._event_log.append(EventRecord.create(kind, contract_id, payload, now))
