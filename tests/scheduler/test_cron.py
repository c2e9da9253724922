"""Tests for five-field cron parsing."""

from datetime import datetime, timezone

import pytest

from scheduler.cron import _translate_day_of_week, parse_cron
from scheduler.errors import InvalidScheduleError

# Wednesday
REFERENCE = datetime(2024, 1, 3, 12, 1, 30, tzinfo=timezone.utc)


def next_fire(expr, now=REFERENCE):
    return parse_cron(expr, timezone="UTC").get_next_fire_time(None, now)


class TestParseCron:
    def test_weekly_sunday_midnight(self):
        assert next_fire("0 0 * * 0") == datetime(2024, 1, 7, 0, 0, tzinfo=timezone.utc)

    def test_seven_is_also_sunday(self):
        assert next_fire("0 2 * * 7") == datetime(2024, 1, 7, 2, 0, tzinfo=timezone.utc)

    def test_weekday_range(self):
        saturday = datetime(2024, 1, 6, 10, 0, tzinfo=timezone.utc)
        assert next_fire("0 9 * * 1-5", saturday) == datetime(2024, 1, 8, 9, 0, tzinfo=timezone.utc)

    def test_named_weekday(self):
        assert next_fire("30 8 * * fri") == datetime(2024, 1, 5, 8, 30, tzinfo=timezone.utc)

    def test_step_minutes(self):
        assert next_fire("*/15 * * * *") == datetime(2024, 1, 3, 12, 15, tzinfo=timezone.utc)

    def test_every_minute(self):
        assert next_fire("* * * * *") == datetime(2024, 1, 3, 12, 2, tzinfo=timezone.utc)

    def test_day_of_month_and_month(self):
        assert next_fire("0 6 1 3 *") == datetime(2024, 3, 1, 6, 0, tzinfo=timezone.utc)

    def test_no_seconds_field(self):
        assert next_fire("5 * * * *").second == 0

    def test_restricted_day_fields_match_either(self):
        # the 1st of the month or any Monday
        assert next_fire("0 0 1 * 1") == datetime(2024, 1, 8, 0, 0, tzinfo=timezone.utc)
        jan_9 = datetime(2024, 1, 9, 0, 0, 30, tzinfo=timezone.utc)
        assert next_fire("0 0 1 * 1", jan_9) == datetime(2024, 1, 15, 0, 0, tzinfo=timezone.utc)
        jan_30 = datetime(2024, 1, 30, tzinfo=timezone.utc)
        assert next_fire("0 0 1 * 1", jan_30) == datetime(2024, 2, 1, 0, 0, tzinfo=timezone.utc)

    def test_day_of_month_with_star_weekday_is_not_widened(self):
        assert next_fire("0 0 15 * *") == datetime(2024, 1, 15, 0, 0, tzinfo=timezone.utc)

    @pytest.mark.parametrize("expr", ["0 0 ? * 0", "0 0 ? * sun", "0 0 7 1 ?"])
    def test_question_mark_means_any(self, expr):
        assert next_fire(expr) == datetime(2024, 1, 7, 0, 0, tzinfo=timezone.utc)

    @pytest.mark.parametrize(
        "expr",
        [
            "",
            "invalid cron",
            "* * * *",
            "0 0 * * * *",
            "60 * * * *",
            "* 24 * * *",
            "* * 32 * *",
            "* * * 13 *",
            "0 0 * * 8",
            "0 0 * * 5-2",
        ],
    )
    def test_invalid_expressions(self, expr):
        with pytest.raises(InvalidScheduleError):
            parse_cron(expr)

    def test_invalid_is_value_error(self):
        with pytest.raises(ValueError):
            parse_cron("not a cron")

    def test_non_string_rejected(self):
        with pytest.raises(InvalidScheduleError):
            parse_cron(None)


class TestDayOfWeekTranslation:
    def test_star_passes_through(self):
        assert _translate_day_of_week("*") == "*"

    def test_names_pass_through(self):
        assert _translate_day_of_week("mon-fri") == "mon-fri"

    def test_single_numbers(self):
        assert _translate_day_of_week("0") == "sun"
        assert _translate_day_of_week("1") == "mon"
        assert _translate_day_of_week("6") == "sat"

    def test_sunday_aliases_deduplicated(self):
        assert _translate_day_of_week("0,7") == "sun"

    def test_range(self):
        assert _translate_day_of_week("1-3") == "mon,tue,wed"

    def test_star_step(self):
        assert _translate_day_of_week("*/2") == "sun,tue,thu,sat"

    def test_range_step(self):
        assert _translate_day_of_week("1-5/2") == "mon,wed,fri"
