"""Unit tests for day bucketing - pure functions, no mocks needed."""

from datetime import date, datetime, timedelta, timezone

import pytest

from nutrilog.core.errors import ValidationError
from nutrilog.core.dates import iter_days, month_bounds, parse_day, resolve_date, week_window


class TestParseDay:
    """Tests for parse_day."""

    def test_valid(self):
        """A canonical day parses."""
        assert parse_day("2024-02-29") == date(2024, 2, 29)

    def test_impossible_day(self):
        """Non-existent days are rejected."""
        with pytest.raises(ValidationError):
            parse_day("2023-02-29")

    def test_non_canonical(self):
        """Other formats are rejected."""
        with pytest.raises(ValidationError) as exc:
            parse_day("20240229", field="date_str")
        assert exc.value.field == "date_str"


class TestResolveDate:
    """Tests for resolve_date."""

    def test_none_is_today_utc(self):
        """None resolves to the UTC day of the reference time."""
        # 23:30 in UTC-5 is already the next day in UTC
        now = datetime(2024, 12, 28, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
        assert resolve_date(None, now=now) == "2024-12-29"

    def test_empty_string_is_today(self):
        """An empty string is treated like None."""
        now = datetime(2024, 12, 28, 12, tzinfo=timezone.utc)
        assert resolve_date("", now=now) == "2024-12-28"

    def test_date_object(self):
        """A date is formatted canonically."""
        assert resolve_date(date(2024, 1, 5)) == "2024-01-05"

    def test_string_passthrough(self):
        """A valid string is returned unchanged."""
        assert resolve_date("2024-12-28") == "2024-12-28"

    def test_invalid_string(self):
        """An invalid string is a validation error."""
        with pytest.raises(ValidationError):
            resolve_date("yesterday")


class TestWindows:
    """Tests for iter_days, week_window and month_bounds."""

    def test_week_window(self):
        """The window is the anchor and the six days before."""
        assert week_window("2024-03-01") == ("2024-02-24", "2024-03-01")

    def test_iter_days_inclusive(self):
        """Both ends are included."""
        assert iter_days("2024-12-30", "2025-01-01") == ["2024-12-30", "2024-12-31", "2025-01-01"]

    def test_iter_days_empty(self):
        """End before start gives nothing."""
        assert iter_days("2024-12-30", "2024-12-29") == []

    def test_month_bounds_leap_year(self):
        """February of a leap year ends on the 29th."""
        assert month_bounds(2024, 2) == ("2024-02-01", "2024-02-29")

    def test_month_out_of_range(self):
        """Month 13 is rejected."""
        with pytest.raises(ValidationError) as exc:
            month_bounds(2024, 13)
        assert exc.value.field == "month"
