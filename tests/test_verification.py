"""Tests for activity matching and verification sync."""

from datetime import date, timedelta, timezone

import pytest

from lockedin.models.activity import Activity, FetchResult
from lockedin.verification.matcher import (
    find_matching_days,
    group_activities_by_date,
    has_matching_activity,
)
from lockedin.verification.sync import StaticActivitySource, sync_activities

START = date(2026, 2, 16)
PLUS_TWO = timezone(timedelta(hours=2))


def _activity(activity_id: str, kind: str, ts: str) -> Activity:
    return Activity(activity_id=activity_id, activity_type=kind, start_timestamp=ts)


ACTIVITIES = [
    _activity("a1", "Run", "2026-02-16T07:00:00Z"),
    _activity("a2", "Ride", "2026-02-17T18:00:00Z"),
    _activity("a3", "run", "2026-02-19T06:30:00Z"),
    _activity("a4", "Swim", "2026-02-20T23:30:00Z"),
]


class _FailingSource:
    def fetch_activities(self, start: date, end: date) -> FetchResult:
        raise ConnectionError("upstream unavailable")


class _ErrorSource:
    def fetch_activities(self, start: date, end: date) -> FetchResult:
        return FetchResult(error="token expired")


class _RecordingSource:
    def __init__(self) -> None:
        self.calls: list[tuple[date, date]] = []

    def fetch_activities(self, start: date, end: date) -> FetchResult:
        self.calls.append((start, end))
        return FetchResult(activities=list(ACTIVITIES))


class TestMatcher:
    def test_type_match_is_case_insensitive(self) -> None:
        assert has_matching_activity([ACTIVITIES[2]], ["Run"])
        assert has_matching_activity([ACTIVITIES[0]], ["RUN"])

    def test_no_allowed_types_never_matches(self) -> None:
        assert not has_matching_activity(ACTIVITIES, [])

    def test_group_by_local_date(self) -> None:
        grouped = group_activities_by_date(ACTIVITIES, timezone.utc)
        assert sorted(grouped) == [
            date(2026, 2, 16), date(2026, 2, 17), date(2026, 2, 19), date(2026, 2, 20),
        ]

    def test_find_matching_days(self) -> None:
        days = find_matching_days(ACTIVITIES, ["Run"], START, range(1, 6), timezone.utc)
        assert days == [1, 4]

    def test_only_candidate_days_reported(self) -> None:
        days = find_matching_days(ACTIVITIES, ["Run", "Ride"], START, [2, 3], timezone.utc)
        assert days == [2]

    def test_timezone_moves_activity_to_next_day(self) -> None:
        utc_days = find_matching_days(ACTIVITIES, ["Swim"], START, range(1, 8), timezone.utc)
        local_days = find_matching_days(ACTIVITIES, ["Swim"], START, range(1, 8), PLUS_TWO)
        assert utc_days == [5]
        assert local_days == [6]

    def test_no_activities(self) -> None:
        assert find_matching_days([], ["Run"], START, [1, 2], timezone.utc) == []


class TestActivityModel:
    def test_feed_shaped_record(self) -> None:
        activity = Activity.from_dict(
            {"id": 99, "type": "Run", "start_date": "2026-02-16T07:00:00Z"}
        )
        assert activity.activity_id == "99"
        assert activity.started_at().tzinfo is not None

    def test_missing_fields_rejected(self) -> None:
        with pytest.raises(ValueError, match="Malformed activity"):
            Activity.from_dict({"id": 1, "type": "Run"})

    def test_non_object_record_rejected(self) -> None:
        with pytest.raises(ValueError, match="JSON object"):
            Activity.from_dict("12345")


class TestSync:
    def test_empty_candidates_skip_fetch(self) -> None:
        result = sync_activities(_FailingSource(), ["Run"], START, [], timezone.utc)
        assert result.success
        assert result.days_verified == []

    def test_fetch_covers_candidate_range(self) -> None:
        source = _RecordingSource()
        result = sync_activities(source, ["Run"], START, [4, 2, 3], timezone.utc)
        assert source.calls == [(date(2026, 2, 17), date(2026, 2, 19))]
        assert result.success
        assert result.days_verified == [4]

    def test_raised_upstream_failure_returned_not_raised(self) -> None:
        result = sync_activities(_FailingSource(), ["Run"], START, [1], timezone.utc)
        assert not result.success
        assert "upstream unavailable" in result.error

    def test_reported_upstream_error(self) -> None:
        result = sync_activities(_ErrorSource(), ["Run"], START, [1], timezone.utc)
        assert not result.success
        assert result.error == "token expired"

    def test_malformed_timestamp_reported(self) -> None:
        class _BadSource:
            def fetch_activities(self, start: date, end: date) -> FetchResult:
                return FetchResult(activities=[_activity("x", "Run", "yesterday")])

        result = sync_activities(_BadSource(), ["Run"], START, [1], timezone.utc)
        assert not result.success

    def test_static_source_filters_range(self) -> None:
        source = StaticActivitySource(ACTIVITIES, timezone.utc)
        fetched = source.fetch_activities(date(2026, 2, 17), date(2026, 2, 19))
        assert [a.activity_id for a in fetched.activities] == ["a2", "a3"]
