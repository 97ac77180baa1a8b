"""Tests for calendar date helpers."""
import pytest
from datetime import date, datetime


class TestIsoDates:
    """Tests for ISO formatting and parsing."""

    def test_to_iso_date_pads_month_and_day(self):
        """Single digit months and days are zero padded."""
        from standup.utils.dates import to_iso_date

        assert to_iso_date(date(2025, 1, 5)) == "2025-01-05"

    def test_to_iso_date_drops_time(self):
        """Datetimes are reduced to their calendar day."""
        from standup.utils.dates import to_iso_date

        assert to_iso_date(datetime(2025, 3, 9, 23, 59)) == "2025-03-09"

    def test_parse_iso_date(self):
        """ISO strings parse back to dates."""
        from standup.utils.dates import parse_iso_date

        assert parse_iso_date("2024-02-29") == date(2024, 2, 29)

    def test_parse_iso_date_invalid(self):
        """Invalid dates raise ValueError."""
        from standup.utils.dates import parse_iso_date

        with pytest.raises(ValueError):
            parse_iso_date("2025-02-30")


class TestDayOffsets:
    """Tests for day arithmetic."""

    def test_add_days_crosses_year(self):
        from standup.utils.dates import add_days

        assert add_days(date(2024, 12, 31), 1) == date(2025, 1, 1)

    def test_previous_day_leap_year(self):
        from standup.utils.dates import previous_day

        assert previous_day(date(2024, 3, 1)) == date(2024, 2, 29)

    def test_today_prefers_reference(self):
        """An injected reference date wins over the wall clock."""
        from standup.utils.dates import today

        assert today(date(2025, 1, 1)) == date(2025, 1, 1)
        assert today() == date.today()

    def test_utcnow_is_naive(self):
        """Timestamps are naive UTC, like the ones MongoDB returns."""
        from standup.utils.dates import utcnow

        assert utcnow().tzinfo is None
