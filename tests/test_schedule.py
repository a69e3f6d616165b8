"""Tests for next-run computation."""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest
from croniter import croniter

from core.errors import InvalidScheduleError
from core.schedule import compute_next_run, initial_next_run, parse_run_at, resolve_timezone, validate_cron

UTC = timezone.utc


class TestComputeNextRun:
    def test_daily_expression_later_same_day(self):
        after = datetime(2025, 1, 1, 8, 0, tzinfo=UTC)
        assert compute_next_run("0 9 * * *", after, UTC) == datetime(2025, 1, 1, 9, 0, tzinfo=UTC)

    def test_reference_on_a_match_advances_to_next_occurrence(self):
        after = datetime(2025, 1, 1, 9, 0, tzinfo=UTC)
        assert compute_next_run("0 9 * * *", after, UTC) == datetime(2025, 1, 2, 9, 0, tzinfo=UTC)

    def test_sub_minute_reference_never_returns_same_minute(self):
        after = datetime(2025, 1, 1, 9, 0, 0, 500000, tzinfo=UTC)
        assert compute_next_run("0 9 * * *", after, UTC) == datetime(2025, 1, 2, 9, 0, tzinfo=UTC)

    @pytest.mark.parametrize(
        "expr",
        ["* * * * *", "*/15 * * * *", "0 0 1 * *", "30 6 * * 1-5", "5,35 */2 * * *", "0 12 29 2 *"],
    )
    def test_result_is_strictly_later_and_matches(self, expr):
        refs = [
            datetime(2025, 1, 1, 0, 0, tzinfo=UTC),
            datetime(2025, 6, 2, 12, 34, 56, tzinfo=UTC),
            datetime(2025, 12, 31, 23, 59, tzinfo=UTC),
        ]
        for ref in refs:
            result = compute_next_run(expr, ref, UTC)
            assert result > ref
            assert croniter.match(expr, result)

    def test_day_of_month_and_day_of_week_are_ored(self):
        # Monday 2 June 2025, 13:00: the next Monday comes before the 1st of July
        after = datetime(2025, 6, 2, 13, 0, tzinfo=UTC)
        assert compute_next_run("0 12 1 * 1", after, UTC) == datetime(2025, 6, 9, 12, 0, tzinfo=UTC)

    def test_fields_are_evaluated_in_given_timezone(self):
        after = datetime(2025, 1, 1, 0, 0, tzinfo=UTC)
        result = compute_next_run("0 9 * * *", after, ZoneInfo("America/New_York"))
        assert result == datetime(2025, 1, 1, 14, 0, tzinfo=UTC)
        assert result.tzinfo == UTC

    def test_is_deterministic(self):
        after = datetime(2025, 3, 3, 3, 3, tzinfo=UTC)
        assert compute_next_run("*/7 * * * *", after, UTC) == compute_next_run("*/7 * * * *", after, UTC)

    @pytest.mark.parametrize("expr", ["not a cron", "0 9 * *", "61 * * * *", "0 0 * * * *", "", "0 25 * * *"])
    def test_invalid_expression_raises(self, expr):
        with pytest.raises(InvalidScheduleError):
            compute_next_run(expr, datetime(2025, 1, 1, tzinfo=UTC), UTC)

    def test_validate_cron_normalizes_whitespace(self):
        assert validate_cron("  0   9 * *  * ") == "0 9 * * *"


class TestParseRunAt:
    def test_zulu_timestamp(self):
        assert parse_run_at("2025-01-01T00:00:00Z") == datetime(2025, 1, 1, tzinfo=UTC)

    def test_offset_timestamp_is_converted_to_utc(self):
        assert parse_run_at("2025-01-01T10:00:00+02:00") == datetime(2025, 1, 1, 8, 0, tzinfo=UTC)

    def test_naive_timestamp_uses_given_timezone(self):
        result = parse_run_at("2025-07-01T09:00:00", ZoneInfo("Europe/Berlin"))
        assert result == datetime(2025, 7, 1, 7, 0, tzinfo=UTC)

    @pytest.mark.parametrize("value", ["tomorrow", "", "   ", "2025-13-01T00:00:00"])
    def test_invalid_timestamp_raises(self, value):
        with pytest.raises(InvalidScheduleError):
            parse_run_at(value)

    def test_invalid_schedule_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            parse_run_at("nope")


class TestInitialNextRun:
    def test_one_shot_in_the_past_is_kept_as_is(self):
        now = datetime(2025, 6, 1, tzinfo=UTC)
        assert initial_next_run("one_shot", "2025-01-01T00:00:00Z", now, UTC) == datetime(2025, 1, 1, tzinfo=UTC)

    def test_recurring_is_computed_from_now(self):
        now = datetime(2025, 6, 1, 10, 0, tzinfo=UTC)
        result = initial_next_run("recurring", "0 9 * * *", now, UTC)
        assert result == now.replace(hour=9) + timedelta(days=1)


class TestResolveTimezone:
    def test_named_zone(self):
        assert resolve_timezone("Europe/Berlin") == ZoneInfo("Europe/Berlin")

    def test_system_zone_follows_dst(self, monkeypatch):
        monkeypatch.setenv("TZ", "America/New_York")
        zone = resolve_timezone(None)
        assert zone == ZoneInfo("America/New_York")

        # Zone resolved once in winter still evaluates summer runs in EDT
        january = datetime(2025, 1, 15, 12, 0, tzinfo=UTC)
        assert compute_next_run("0 9 * * *", january, zone) == datetime(2025, 1, 15, 14, 0, tzinfo=UTC)
        july = datetime(2025, 7, 1, 0, 0, tzinfo=UTC)
        assert compute_next_run("0 9 * * *", july, zone) == datetime(2025, 7, 1, 13, 0, tzinfo=UTC)

    def test_tz_with_leading_colon(self, monkeypatch):
        monkeypatch.setenv("TZ", ":Asia/Tokyo")
        assert resolve_timezone(None) == ZoneInfo("Asia/Tokyo")

    def test_unknown_name_falls_back_to_system_zone(self, monkeypatch):
        monkeypatch.setenv("TZ", "America/New_York")
        assert resolve_timezone("Mars/Olympus") == ZoneInfo("America/New_York")
