"""Activity classification boundaries and cache TTL selection."""

from datetime import timedelta

import pytest

from gitpoke.activity.classifier import (
    ActiveThisWeek,
    ActiveToday,
    ActivityRecord,
    InactiveThisMonth,
    LongInactive,
    activity_cache_ttl,
    classify,
    days_inactive,
    is_active,
    should_poke,
)


class TestClassify:
    def test_zero_days_is_active_today(self, record, now):
        assert classify(record("octocat", 0), now) == ActiveToday()

    @pytest.mark.parametrize("days", [1, 3, 7])
    def test_up_to_seven_days_active_this_week(self, record, now, days):
        assert classify(record("octocat", days), now) == ActiveThisWeek(days_ago=days)

    @pytest.mark.parametrize("days", [8, 15, 30])
    def test_eight_to_thirty_inactive_this_month(self, record, now, days):
        assert classify(record("octocat", days), now) == InactiveThisMonth(days_ago=days)

    @pytest.mark.parametrize("days", [31, 100, 1000])
    def test_over_thirty_long_inactive(self, record, now, days):
        assert classify(record("octocat", days), now) == LongInactive(days_ago=days)

    def test_seven_eight_boundary(self, record, now):
        assert is_active(classify(record("octocat", 7), now))
        assert not is_active(classify(record("octocat", 8), now))

    def test_thirty_thirtyone_boundary(self, record, now):
        assert isinstance(classify(record("octocat", 30), now), InactiveThisMonth)
        assert isinstance(classify(record("octocat", 31), now), LongInactive)

    def test_absent_activity_is_365_days(self, record, now):
        rec = record("ghost", None)
        assert days_inactive(rec, now) == 365
        assert classify(rec, now) == LongInactive(days_ago=365)

    def test_future_timestamp_clamps_to_zero(self, record, now):
        rec = record("octocat", 0)
        assert days_inactive(rec, now - timedelta(days=2)) == 0
        assert classify(rec, now - timedelta(days=2)) == ActiveToday()

    def test_should_poke_is_negation(self, record, now):
        for days in (0, 7, 8, 30, 31, None):
            state = classify(record("octocat", days), now)
            assert should_poke(state) is not is_active(state)


class TestActivityCacheTtl:
    def test_recent_gets_short_ttl(self, record, now):
        assert activity_cache_ttl(record("octocat", 7), now) == 300

    def test_stale_gets_long_ttl(self, record, now):
        assert activity_cache_ttl(record("octocat", 8), now) == 3600
        assert activity_cache_ttl(record("octocat", None), now) == 3600

    def test_custom_ttls(self, record, now):
        assert activity_cache_ttl(record("octocat", 0), now, active_ttl=10, inactive_ttl=20) == 10


class TestActivityRecordJson:
    def test_round_trip_with_missing_activity(self, record):
        rec = record("ghost", None, streak=None)
        assert ActivityRecord.from_json(rec.to_json()) == rec

    def test_round_trip_keeps_timezone(self, record):
        rec = record("octocat", 3, streak=5)
        restored = ActivityRecord.from_json(rec.to_json())
        assert restored.last_activity_at == rec.last_activity_at
        assert restored.last_activity_at.tzinfo is not None
