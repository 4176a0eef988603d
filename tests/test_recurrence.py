from datetime import date, datetime
from types import SimpleNamespace

import pytest

from services.recurrence import matches, occurs_on
from utils.datetime_utils import UTC


def test_weekly_matches_same_weekday_only():
    assert matches("Weekly", date(2024, 1, 1), date(2024, 1, 8)) is True
    assert matches("Weekly", date(2024, 1, 1), date(2024, 1, 9)) is False


def test_never_recurs_before_original_date():
    assert matches("Daily", date(2024, 1, 10), date(2024, 1, 9)) is False
    assert matches("Daily", date(2024, 1, 10), date(2024, 1, 10)) is True


@pytest.mark.parametrize(
    "candidate, expected",
    [
        (date(2024, 1, 5), True),   # Friday
        (date(2024, 1, 6), False),  # Saturday
        (date(2024, 1, 7), False),  # Sunday
        (date(2024, 1, 8), True),   # Monday
    ],
)
def test_weekdays(candidate, expected):
    assert matches("Weekdays", date(2024, 1, 1), candidate) is expected


def test_monthly_on_the_31st_skips_short_months():
    original = date(2024, 1, 31)
    assert matches("Monthly", original, date(2024, 2, 29)) is False
    assert matches("Monthly", original, date(2024, 3, 31)) is True
    assert matches("Monthly", date(2024, 1, 15), date(2024, 6, 15)) is True


def test_yearly_on_leap_day_only_in_leap_years():
    original = date(2024, 2, 29)
    assert matches("Yearly", original, date(2025, 2, 28)) is False
    assert matches("Yearly", original, date(2028, 2, 29)) is True
    assert matches("Yearly", date(2024, 3, 1), date(2025, 3, 1)) is True


@pytest.mark.parametrize("rule", [None, "", "none", "Fortnightly"])
def test_missing_or_unknown_rule_never_matches(rule):
    assert matches(rule, date(2024, 1, 1), date(2024, 1, 2)) is False


def test_rule_names_are_case_insensitive():
    assert matches("weekly", date(2024, 1, 1), date(2024, 1, 15)) is True


def test_datetimes_are_reduced_to_calendar_dates():
    original = datetime(2024, 1, 1, 23, 30, tzinfo=UTC)
    candidate = datetime(2024, 1, 8, 0, 15, tzinfo=UTC)
    assert matches("Weekly", original, candidate) is True


def test_occurs_on_scheduled_date_without_rule():
    task = SimpleNamespace(date=date(2024, 1, 10), recurring=None)
    assert occurs_on(task, date(2024, 1, 10)) is True
    assert occurs_on(task, date(2024, 1, 11)) is False


def test_iso_date_strings_are_accepted():
    assert matches("Weekly", "2024-01-01", "2024-01-08") is True
    assert matches("Weekly", "2024-01-01", "2024-01-09") is False
    assert matches("Daily", "2024-01-10", "2024-01-09") is False
    assert matches("Monthly", "2024-01-31", date(2024, 3, 31)) is True


def test_occurs_on_accepts_iso_string_day():
    task = SimpleNamespace(date=date(2024, 1, 1), recurring="Weekly")
    assert occurs_on(task, "2024-01-15") is True
