"""Unit tests for the activity policy - pure functions, no mocks needed."""

from datetime import datetime, timezone

import pytest

from nutrilog.core.errors import ValidationError
from nutrilog.core.models import ActivityEntry, ActivitySource, Intensity
from nutrilog.core.activity import (
    available_sources,
    estimate_activity_calories,
    summarize_activities,
)


DAY = "2024-12-28"


def entry(calories, source=ActivitySource.MANUAL, steps=None, distance_km=None, minute=0, sync_minute=None):
    return ActivityEntry(
        user_id="u1",
        ledger_id="l1",
        log_date=DAY,
        calories_burned=calories,
        source=source,
        steps=steps,
        distance_km=distance_km,
        created_at=datetime(2024, 12, 28, 8, minute, tzinfo=timezone.utc),
        sync_timestamp=None if sync_minute is None else datetime(2024, 12, 28, 9, sync_minute, tzinfo=timezone.utc),
    )


class TestEstimateActivityCalories:
    """Tests for estimate_activity_calories."""

    def test_known_activity(self):
        """Running at high intensity burns 16 kcal/min."""
        assert estimate_activity_calories("running", 30, Intensity.HIGH) == 480

    def test_unknown_activity_uses_default_row(self):
        """Unknown activity types fall back to the default rates."""
        assert estimate_activity_calories("unknown_sport", 10, "moderate") == 40

    def test_case_insensitive(self):
        """Activity names are matched case-insensitively."""
        assert estimate_activity_calories("Yoga", 60, "low") == 120

    def test_fractional_minutes_round_half_up(self):
        """Fractional results round half up."""
        # 2.5 minutes * 3 kcal = 7.5
        assert estimate_activity_calories("yoga", 2.5, "moderate") == 8

    def test_invalid_intensity(self):
        """An unknown intensity is a validation error."""
        with pytest.raises(ValidationError) as exc:
            estimate_activity_calories("running", 10, "extreme")
        assert exc.value.field == "intensity"


class TestAvailableSources:
    """Tests for available_sources."""

    def test_ios(self):
        """iOS offers Apple Health, sensors and manual entry."""
        sources = [s["source"] for s in available_sources("ios")]
        assert sources == ["healthkit", "device_sensors", "manual"]

    def test_android_case_insensitive(self):
        """Platform is matched case-insensitively."""
        sources = [s["source"] for s in available_sources("Android")]
        assert "googlefit" in sources
        assert "samsung_health" in sources

    def test_unknown_platform(self):
        """Unknown platforms are rejected."""
        with pytest.raises(ValidationError):
            available_sources("windows")

    def test_returns_copies(self):
        """Mutating the result does not change the table."""
        available_sources("ios")[0]["name"] = "changed"
        assert available_sources("ios")[0]["name"] == "Apple Health"


class TestSummarizeActivities:
    """Tests for summarize_activities."""

    def test_empty_day(self):
        """No activities gives zero totals."""
        summary = summarize_activities(DAY, [])

        assert summary.total_calories_burned == 0
        assert summary.total_steps == 0
        assert summary.source is None
        assert summary.last_sync is None

    def test_totals(self):
        """Calories, steps and distance are summed."""
        summary = summarize_activities(DAY, [
            entry(200, ActivitySource.HEALTHKIT, steps=4000, distance_km=2.111, minute=1, sync_minute=5),
            entry(150, ActivitySource.MANUAL, minute=2),
            entry(100, ActivitySource.HEALTHKIT, steps=1000, distance_km=1.002, minute=0, sync_minute=30),
        ])

        assert summary.total_calories_burned == 450
        assert summary.total_steps == 5000
        assert summary.total_distance_km == 3.11
        assert len(summary.activities) == 3

    def test_distance_rounds_half_up(self):
        """A half hundredth of a kilometre rounds up."""
        summary = summarize_activities(DAY, [entry(100, distance_km=0.125)])
        assert summary.total_distance_km == 0.13

    def test_source_from_latest_entry(self):
        """The reported source is the most recently created entry's."""
        summary = summarize_activities(DAY, [
            entry(200, ActivitySource.HEALTHKIT, minute=1),
            entry(150, ActivitySource.MANUAL, minute=2),
        ])
        assert summary.source == ActivitySource.MANUAL

    def test_last_sync_is_latest_timestamp(self):
        """last_sync is the latest sync timestamp seen."""
        summary = summarize_activities(DAY, [
            entry(200, ActivitySource.HEALTHKIT, minute=1, sync_minute=5),
            entry(100, ActivitySource.HEALTHKIT, minute=0, sync_minute=30),
        ])
        assert summary.last_sync == datetime(2024, 12, 28, 9, 30, tzinfo=timezone.utc)
