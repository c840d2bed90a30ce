"""Tests for due-date urgency classification."""

import math
from datetime import date

import pytest

from billing_sdk.urgency import Urgency, classify, days_until, parse_due_date


class TestClassify:
    """Test urgency bands and their boundaries."""

    @pytest.mark.parametrize("days,expected", [
        (-3, Urgency.CRIT),
        (0, Urgency.CRIT),
        (1, Urgency.CRIT),
        (2, Urgency.WARN),
        (5, Urgency.WARN),
        (6, Urgency.OK),
        (30, Urgency.OK),
        (math.inf, Urgency.OK),
    ])
    def test_bands(self, days, expected):
        assert classify(days) == expected

    def test_values_are_plain_strings(self):
        assert classify(3) == "warn"


class TestDaysUntil:
    """Test day differences between calendar dates."""

    def test_plain_date(self):
        assert days_until("2024-06-13", today=date(2024, 6, 10)) == 3

    def test_overdue_is_negative(self):
        assert days_until("2024-06-08", today=date(2024, 6, 10)) == -2

    def test_time_of_day_is_ignored(self):
        today = date(2024, 6, 10)
        assert days_until("2024-06-11T23:59:59Z", today=today) == 1
        assert days_until("2024-06-11 00:00:00.000Z", today=today) == 1
        assert days_until("2024-06-11T01:00:00+05:00", today=today) == 1

    def test_unparseable_is_infinite(self):
        assert days_until("not a date", today=date(2024, 6, 10)) == math.inf
        assert days_until("", today=date(2024, 6, 10)) == math.inf
        assert days_until(None) == math.inf

    def test_unparseable_is_never_critical(self):
        assert classify(days_until("garbage")) == Urgency.OK

    def test_defaults_to_today(self):
        assert days_until(date.today().isoformat()) == 0


class TestParseDueDate:
    """Test the accepted date formats."""

    def test_backend_format(self):
        assert parse_due_date("2025-02-28 00:00:00.000Z") == date(2025, 2, 28)

    def test_invalid_calendar_date(self):
        assert parse_due_date("2025-02-30") is None
