"""Tests for the append-only cycle event log."""

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from lockedin.persistence.event_log import EventKind, EventLog, EventRecord


def _now() -> datetime:
    return datetime(2026, 2, 16, 12, 0, 0, tzinfo=timezone.utc)


def _event(event_id: str, kind: EventKind = EventKind.DAY_COMPLETED) -> EventRecord:
    return EventRecord.create(kind, "contract-1", {"day": 1}, _now(), event_id=event_id)


class TestEventRecord:
    def test_hash_is_deterministic(self) -> None:
        assert _event("evt_a").event_hash == _event("evt_a").event_hash

    def test_hash_covers_payload(self) -> None:
        a = EventRecord.create(EventKind.DAY_MISSED, "c", {"day": 1}, _now(), event_id="e")
        b = EventRecord.create(EventKind.DAY_MISSED, "c", {"day": 2}, _now(), event_id="e")
        assert a.event_hash != b.event_hash

    def test_generated_ids_are_unique(self) -> None:
        a = EventRecord.create(EventKind.DAY_MISSED, "c", {}, _now())
        b = EventRecord.create(EventKind.DAY_MISSED, "c", {}, _now())
        assert a.event_id != b.event_id
        assert a.event_id.startswith("evt_")

    def test_timestamp_normalized_to_utc(self) -> None:
        assert _event("evt_a").timestamp_utc == "2026-02-16T12:00:00Z"


class TestEventLog:
    def test_append_and_filter(self) -> None:
        log = EventLog()
        log.append(_event("evt_1"))
        log.append(_event("evt_2", EventKind.DAY_REVEALED))
        log.append(EventRecord.create(EventKind.DAY_MISSED, "other", {}, _now(), event_id="evt_3"))
        assert log.count == 3
        assert [e.event_id for e in log.events(kind=EventKind.DAY_REVEALED)] == ["evt_2"]
        assert len(log.events(contract_id="contract-1")) == 2
        assert log.last_event.event_id == "evt_3"

    def test_duplicate_id_rejected(self) -> None:
        log = EventLog()
        log.append(_event("evt_1"))
        with pytest.raises(ValueError, match="Duplicate event ID"):
            log.append(_event("evt_1"))

    def test_empty_log(self) -> None:
        log = EventLog()
        assert log.count == 0
        assert log.last_event is None


class TestEventLogPersistence:
    def test_reload_from_file(self, tmp_path: Path) -> None:
        path = tmp_path / "events.jsonl"
        log = EventLog(storage_path=path)
        log.append(_event("evt_1"))
        log.append(_event("evt_2", EventKind.DAY_AUTO_MISSED))

        reloaded = EventLog(storage_path=path)
        assert reloaded.count == 2
        assert reloaded.events()[1].event_kind == EventKind.DAY_AUTO_MISSED

    def test_tampered_line_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "events.jsonl"
        EventLog(storage_path=path).append(_event("evt_1"))

        data = json.loads(path.read_text(encoding="utf-8"))
        data["payload"]["day"] = 9
        path.write_text(json.dumps(data) + "\n", encoding="utf-8")

        with pytest.raises(ValueError, match="Integrity check failed"):
            EventLog(storage_path=path)

    def test_duplicate_line_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "events.jsonl"
        EventLog(storage_path=path).append(_event("evt_1"))
        line = path.read_text(encoding="utf-8")
        path.write_text(line + line, encoding="utf-8")

        with pytest.raises(ValueError, match="Duplicate event ID on recovery"):
            EventLog(storage_path=path)
