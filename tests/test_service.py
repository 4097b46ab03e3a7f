"""Integration tests for the Locked In service facade."""

from dataclasses import replace
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from lockedin.cycle.storage import InMemoryKeyValueStore, checkin_key
from lockedin.models.activity import Activity, FetchResult
from lockedin.persistence.event_log import EventKind
from lockedin.policy import ContractPolicy, CycleSettings
from lockedin.rewards.generator import generate_reward_schedule
from lockedin.service import LockedInService
from lockedin.verification.sync import StaticActivitySource


def _now() -> datetime:
    return datetime(2026, 2, 16, 12, 0, 0, tzinfo=timezone.utc)


def _at(day: int) -> datetime:
    return _now() + timedelta(days=day - 1)


class _ErrorSource:
    def fetch_activities(self, start: date, end: date) -> FetchResult:
        return FetchResult(error="token expired")


def _service(store=None, policy=None) -> LockedInService:
    return LockedInService(policy, store=store or InMemoryKeyValueStore())


def _create(service: LockedInService, contract_id: str = "contract-abc", **kwargs) -> None:
    result = service.create_contract(
        habit_title=kwargs.pop("habit_title", "Run 5k"),
        duration=kwargs.pop("duration", 14),
        deposit_amount=kwargs.pop("deposit_amount", Decimal("200")),
        start_option=kwargs.pop("start_option", "today"),
        now=_now(),
        contract_id=contract_id,
        **kwargs,
    )
    assert result.success, result.errors


class TestAdministrative:
    def test_generate_schedule(self) -> None:
        result = _service().generate_schedule("contract-123", 14, Decimal("100"))
        assert result.success
        assert result.data["schedule"] == generate_reward_schedule(
            "contract-123", 14, Decimal("100")
        )

    def test_generate_rejects_bad_input(self) -> None:
        result = _service().generate_schedule("", 40, Decimal("5"))
        assert not result.success
        assert len(result.errors) == 3

    def test_simulate_preset(self) -> None:
        service = _service()
        schedule = service.generate_schedule("contract-123", 14, Decimal("100")).data["schedule"]
        result = service.simulate_schedule(schedule, preset="miss-all")
        assert result.success
        assert result.data["simulation"].total_forfeited == Decimal("100.00")

    def test_simulate_rejects_unknown_preset(self) -> None:
        service = _service()
        schedule = generate_reward_schedule("s", 14, Decimal("100"))
        result = service.simulate_schedule(schedule, preset="lazy")
        assert not result.success
        assert "Unknown preset" in result.errors[0]

    def test_simulate_requires_exactly_one_input(self) -> None:
        service = _service()
        schedule = generate_reward_schedule("s", 14, Decimal("100"))
        assert not service.simulate_schedule(schedule).success
        assert not service.simulate_schedule(schedule, [1], "perfect").success

    def test_simulate_rejects_bad_days(self) -> None:
        schedule = generate_reward_schedule("s", 14, Decimal("100"))
        result = _service().simulate_schedule(schedule, completed_days=[0, 3])
        assert not result.success


class TestContractCreation:
    def test_schedule_seeded_by_contract_id(self) -> None:
        service = _service()
        result = service.create_contract(
            "Run 5k", 14, Decimal("200"), "today", now=_now(), contract_id="contract-abc"
        )
        contract = result.data["contract"]
        assert contract.reward_schedule == generate_reward_schedule(
            "contract-abc", 14, Decimal("200")
        )
        assert contract.deposit_amount == Decimal("200.00")

    def test_generated_contract_id(self) -> None:
        service = _service()
        result = service.create_contract("Run 5k", 7, Decimal("100"), "tomorrow", now=_now())
        contract = result.data["contract"]
        assert contract.contract_id
        assert contract.reward_schedule.seed == contract.contract_id

    def test_invalid_terms(self) -> None:
        result = _service().create_contract("Run", 10, Decimal("50"), "today", now=_now())
        assert not result.success
        assert len(result.errors) == 2

    def test_creation_logged(self) -> None:
        service = _service()
        _create(service)
        (event,) = service.event_log.events(kind=EventKind.CONTRACT_CREATED)
        assert event.contract_id == "contract-abc"
        assert event.payload["start_option"] == "today"

    def test_new_contract_discards_previous_history(self) -> None:
        store = InMemoryKeyValueStore()
        service = _service(store)
        _create(service, "first")
        service.open_cycle(now=_at(1))
        service.check_in(now=_at(1))
        assert store.get(checkin_key("first")) is not None

        _create(service, "second")
        assert store.get(checkin_key("first")) is None
        assert service.cycle is None

    def test_clear_contract(self) -> None:
        service = _service()
        _create(service)
        assert service.clear_contract(now=_now()).success
        assert not service.open_cycle(now=_now()).success
        assert not service.clear_contract(now=_now()).success


class TestSession:
    def test_open_without_contract(self) -> None:
        result = _service().open_cycle(now=_now())
        assert not result.success
        assert result.errors == ["No active contract"]

    def test_actions_require_open_cycle(self) -> None:
        service = _service()
        _create(service)
        assert service.check_in(now=_now()).errors == ["No open cycle"]
        assert service.reveal_day(1, now=_now()).errors == ["No open cycle"]
        assert not service.status(now=_now()).success

    def test_open_sweeps_missed_days(self) -> None:
        service = _service()
        _create(service)
        result = service.open_cycle(now=_at(4))
        assert result.success
        assert result.data["auto_missed_days"] == [1, 2, 3]
        assert result.data["summary"]["days_missed"] == 3
        assert len(service.event_log.events(kind=EventKind.DAY_AUTO_MISSED)) == 3

    def test_grace_days_defer_sweep(self) -> None:
        policy = replace(ContractPolicy(), cycle=CycleSettings(finalization_grace_days=1))
        service = _service(policy=policy)
        _create(service)
        result = service.open_cycle(now=_at(4))
        assert result.data["auto_missed_days"] == [1, 2]

    def test_check_in_is_idempotent(self) -> None:
        service = _service()
        _create(service)
        service.open_cycle(now=_at(1))
        first = service.check_in(now=_at(1))
        assert first.success
        assert first.data == {"day": 1, "status": "completed"}
        second = service.check_in(now=_at(1))
        assert second.success
        assert second.data["already_recorded"] is True
        assert len(service.event_log.events(kind=EventKind.DAY_COMPLETED)) == 1

    def test_miss_then_check_in_keeps_miss(self) -> None:
        service = _service()
        _create(service)
        service.open_cycle(now=_at(1))
        service.mark_missed(now=_at(1))
        result = service.check_in(now=_at(1))
        assert result.data["status"] == "missed"

    def test_check_in_after_cycle_end_fails(self) -> None:
        service = _service()
        _create(service, duration=7, deposit_amount=Decimal("100"))
        service.open_cycle(now=_at(10))
        result = service.check_in(now=_at(10))
        assert not result.success
        assert "outside the contract cycle" in result.errors[0]

    def test_history_survives_new_session(self) -> None:
        store = InMemoryKeyValueStore()
        first = _service(store)
        _create(first)
        first.open_cycle(now=_at(1))
        first.check_in(now=_at(1))

        second = _service(store)
        result = second.open_cycle(now=_at(2))
        assert result.data["auto_missed_days"] == []
        assert result.data["summary"]["days_completed"] == 1
        assert result.data["summary"]["unrevealed_days"] == [1]


class TestReveal:
    def test_reveal_past_day(self) -> None:
        service = _service()
        _create(service)
        service.open_cycle(now=_at(1))
        service.check_in(now=_at(1))
        service.open_cycle(now=_at(2))

        result = service.reveal_day(1, now=_at(2))
        assert result.success
        expected = service.cycle.contract.reward_schedule.reward_for_day(1)
        assert result.data["status"] == "completed"
        assert result.data["recovered"] == expected
        assert result.data["forfeited"] == Decimal("0.00")
        assert service.status(now=_at(2)).data["summary"]["unrevealed_days"] == []

    def test_reveal_twice(self) -> None:
        service = _service()
        _create(service)
        service.open_cycle(now=_at(3))
        service.reveal_day(1, now=_at(3))
        result = service.reveal_day(1, now=_at(3))
        assert result.success
        assert result.data["already_revealed"] is True
        assert len(service.event_log.events(kind=EventKind.DAY_REVEALED)) == 1

    def test_cannot_reveal_today(self) -> None:
        service = _service()
        _create(service)
        service.open_cycle(now=_at(3))
        service.check_in(now=_at(3))
        result = service.reveal_day(3, now=_at(3))
        assert not result.success
        assert "before it has passed" in result.errors[0]

    def test_cannot_reveal_unresolved_day(self) -> None:
        policy = replace(ContractPolicy(), cycle=CycleSettings(finalization_grace_days=1))
        service = _service(policy=policy)
        _create(service)
        service.open_cycle(now=_at(4))
        result = service.reveal_day(3, now=_at(4))
        assert not result.success
        assert "no recorded outcome" in result.errors[0]

    def test_revealed_miss_forfeits_its_reward(self) -> None:
        service = _service()
        _create(service)
        service.open_cycle(now=_at(15))
        schedule = service.cycle.contract.reward_schedule
        for day in service.status(now=_at(15)).data["summary"]["unrevealed_days"]:
            service.reveal_day(day, now=_at(15))
        summary = service.status(now=_at(15)).data["summary"]
        assert summary["total_forfeited"] == schedule.total()
        assert summary["locked_amount"] == Decimal("0.00")


class TestVerification:
    def _source(self) -> StaticActivitySource:
        return StaticActivitySource(
            [
                Activity("a1", "run", "2026-02-17T07:00:00Z"),
                Activity("a2", "Walk", "2026-02-18T07:00:00Z"),
            ],
            timezone.utc,
        )

    def test_open_verifies_before_sweeping(self) -> None:
        service = _service()
        _create(service, activity_types=("Run",))
        result = service.open_cycle(now=_at(4), activity_source=self._source())
        assert result.data["verified_days"] == [2]
        assert result.data["auto_missed_days"] == [1, 3]
        assert service.cycle.record_for_day(2).status.value == "completed"
        assert len(service.event_log.events(kind=EventKind.DAY_VERIFIED)) == 1

    def test_manual_contract_skips_sync(self) -> None:
        service = _service()
        _create(service)
        result = service.open_cycle(now=_at(4), activity_source=self._source())
        assert "verified_days" not in result.data
        assert result.data["auto_missed_days"] == [1, 2, 3]

    def test_sync_failure_does_not_block_session(self) -> None:
        service = _service()
        _create(service, activity_types=("Run",))
        result = service.open_cycle(now=_at(4), activity_source=_ErrorSource())
        assert result.success
        assert result.data["sync_errors"] == ["token expired"]
        assert result.data["auto_missed_days"] == [1, 2, 3]
        assert len(service.event_log.events(kind=EventKind.VERIFICATION_FAILED)) == 1

    def test_sync_verifies_today(self) -> None:
        service = _service()
        _create(service, activity_types=("Run",))
        service.open_cycle(now=_at(2))
        result = service.sync_verification(self._source(), now=_at(2))
        assert result.success
        assert result.data["verified_days"] == [2]
        assert service.status(now=_at(2)).data["summary"]["checked_in_today"] is True

    def test_sync_skips_revealed_days(self) -> None:
        service = _service()
        _create(service, activity_types=("Walk",))
        service.open_cycle(now=_at(4))
        service.reveal_day(3, now=_at(4))
        result = service.sync_verification(self._source(), now=_at(4))
        assert result.data["matched_days"] == []
        assert result.data["verified_days"] == []
