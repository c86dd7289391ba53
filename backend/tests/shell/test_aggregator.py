"""Tests for the aggregator against the in-memory store."""

import pytest

from nutrilog.core.errors import NotFoundError, ValidationError
from nutrilog.core.models import GoalStatus

from conftest import TODAY


def log_food(services, user_id, calories, date=None, **macros):
    return services.reconciliation.save_food_entry(
        user_id, {"total_calories": calories, "date": date, **macros}
    )


class TestGetDailySummary:
    """Tests for Aggregator.get_daily_summary."""

    def test_empty_day(self, services, repository, user_id):
        """An empty day shows the whole goal remaining and creates the ledger."""
        summary = services.aggregator.get_daily_summary(user_id)

        assert summary.date == TODAY
        assert summary.daily_calorie_goal == 2000
        assert summary.remaining_calories == 2000
        assert summary.goal_status == GoalStatus.UNDER
        assert (user_id, TODAY) in repository.ledger_rows

    def test_food_and_activity(self, services, user_id):
        """Consumed, burned and net come from the stored entries."""
        log_food(services, user_id, 1500, protein=80, carbs=150, fat=50)
        log_food(services, user_id, 700)
        services.reconciliation.sync_activity(user_id, {"source": "healthkit", "calories_burned": 300, "external_id": "a"})

        summary = services.aggregator.get_daily_summary(user_id)

        assert summary.total_calories_consumed == 2200
        assert summary.total_calories_burned == 300
        assert summary.net_calories == 1900
        assert summary.remaining_calories == 100
        assert summary.goal_status == GoalStatus.ON_TARGET
        assert summary.progress_percentage == 95
        assert summary.macros.protein == 80
        assert len(summary.food_entries) == 2
        assert len(summary.activity_entries) == 1

    def test_resynced_activity_counted_once(self, services, user_id):
        """A re-synced observation counts only with its latest value."""
        payload = {"source": "googlefit", "external_id": "steps-today"}
        services.reconciliation.sync_activity(user_id, {**payload, "calories_burned": 200})
        services.reconciliation.sync_activity(user_id, {**payload, "calories_burned": 350})

        summary = services.aggregator.get_daily_summary(user_id)
        assert summary.total_calories_burned == 350

    def test_ignores_stored_counters(self, services, repository, user_id):
        """Ledger counters are not trusted; entries are summed."""
        log_food(services, user_id, 400)
        repository.ledger_rows[(user_id, TODAY)]["total_calories_consumed"] = 99999

        assert services.aggregator.get_daily_summary(user_id).total_calories_consumed == 400

    def test_malformed_row_defaults_to_zero(self, services, repository, user_id):
        """A row with garbage numbers contributes zero instead of failing."""
        entry = log_food(services, user_id, 400, protein=10)[0]
        log_food(services, user_id, 100)
        repository.food_rows[entry.id]["calories"] = "lots"
        repository.food_rows[entry.id]["protein"] = None

        summary = services.aggregator.get_daily_summary(user_id)
        assert summary.total_calories_consumed == 100
        assert summary.macros.protein == 0

    def test_nan_row_defaults_to_zero(self, services, repository, user_id):
        """A stored NaN counts as zero and the day still loads."""
        entry = log_food(services, user_id, 400, fat=5)[0]
        log_food(services, user_id, 100)
        repository.food_rows[entry.id]["calories"] = float("nan")
        repository.food_rows[entry.id]["fat"] = float("-inf")

        summary = services.aggregator.get_daily_summary(user_id)
        assert summary.total_calories_consumed == 100
        assert summary.macros.fat == 0

    def test_infinite_distance_defaults_to_zero(self, services, repository, user_id):
        """An infinite activity distance is dropped from the activity totals."""
        entry = services.reconciliation.sync_activity(user_id, {
            "source": "garmin", "calories_burned": 200, "distance_km": 3.0,
        })
        repository.activity_rows[entry.id]["distance"] = float("inf")

        summary = services.aggregator.get_activity_summary(user_id)
        assert summary.total_calories_burned == 200
        assert summary.total_distance_km == 0

    def test_unmappable_row_skipped(self, services, repository, user_id):
        """A row missing required columns is skipped."""
        entry = log_food(services, user_id, 400)[0]
        log_food(services, user_id, 100)
        del repository.food_rows[entry.id]["daily_log_id"]

        summary = services.aggregator.get_daily_summary(user_id)
        assert summary.total_calories_consumed == 100
        assert len(summary.food_entries) == 1

    def test_uses_user_goal(self, services, user_id):
        """The user's own calorie goal is applied."""
        services.auth.set_calorie_goal(user_id, 1500)
        assert services.aggregator.get_daily_summary(user_id).daily_calorie_goal == 1500

    def test_unknown_user(self, services):
        """An unknown user is not found."""
        with pytest.raises(NotFoundError):
            services.aggregator.get_daily_summary("nobody")

    def test_invalid_date(self, services, user_id):
        """An invalid date is rejected."""
        with pytest.raises(ValidationError):
            services.aggregator.get_daily_summary(user_id, "28/12/2024")


class TestGetEnhancedDailySummary:
    """Tests for Aggregator.get_enhanced_daily_summary."""

    def test_active_day(self, services, user_id):
        """Burning 80% of the default 600 goal makes an active day."""
        log_food(services, user_id, 1000)
        services.reconciliation.sync_activity(user_id, {
            "source": "healthkit", "calories_burned": 480, "external_id": "w", "steps": 9000, "distance_km": 6.25,
        })

        summary = services.aggregator.get_enhanced_daily_summary(user_id)

        assert summary.is_active_day is True
        assert summary.activity.activity_goal == 600
        assert summary.activity.total_steps == 9000
        assert summary.activity.total_distance_km == 6.25
        assert summary.calorie_difference == 520

    def test_custom_activity_goal(self, services, user_id):
        """The preference's activity goal is used."""
        services.preferences.upsert(user_id, {"activity_goal": 1000})
        services.reconciliation.add_manual_activity(user_id, {
            "activity_type": "walking", "duration": 60, "intensity": "high",
        })

        summary = services.aggregator.get_enhanced_daily_summary(user_id)

        assert summary.activity.total_calories_burned == 300
        assert summary.is_active_day is False


class TestGetActivitySummary:
    """Tests for Aggregator.get_activity_summary."""

    def test_no_ledger_is_zero_and_creates_nothing(self, services, repository, user_id):
        """A day without a ledger reports zeros without creating one."""
        summary = services.aggregator.get_activity_summary(user_id, "2024-11-01")

        assert summary.total_calories_burned == 0
        assert summary.activities == []
        assert (user_id, "2024-11-01") not in repository.ledger_rows

    def test_totals(self, services, user_id):
        """Activities of the day are totalled."""
        services.reconciliation.sync_activity(user_id, {"source": "garmin", "calories_burned": 120, "steps": 3000})
        services.reconciliation.sync_activity(user_id, {"source": "garmin", "calories_burned": 80, "steps": 2000})

        summary = services.aggregator.get_activity_summary(user_id)
        assert summary.total_calories_burned == 200
        assert summary.total_steps == 5000
        assert summary.last_sync is not None


class TestGetWeeklySummary:
    """Tests for Aggregator.get_weekly_summary."""

    def test_seven_days(self, services, user_id):
        """Seven zero-filled days ending today, oldest first."""
        log_food(services, user_id, 500, date="2024-12-25")
        log_food(services, user_id, 800, date=TODAY)

        week = services.aggregator.get_weekly_summary(user_id)

        assert len(week) == 7
        assert week[0].date == "2024-12-22"
        assert week[-1].date == TODAY
        assert week[3].total_calories_consumed == 500
        assert week[-1].total_calories_consumed == 800
        assert week[1].food_entry_count == 0

    def test_infinite_calories_string(self, services, repository, user_id):
        """A stored "inf" calorie count does not break the week."""
        entry = log_food(services, user_id, 300)[0]
        log_food(services, user_id, 200)
        repository.food_rows[entry.id]["calories"] = "inf"

        week = services.aggregator.get_weekly_summary(user_id)
        assert week[-1].total_calories_consumed == 200

    def test_read_creates_no_ledgers(self, services, repository, user_id):
        """Weekly reads do not create ledgers."""
        services.aggregator.get_weekly_summary(user_id, "2024-12-10")
        assert repository.ledger_rows == {}


class TestGetMonthlySummary:
    """Tests for Aggregator.get_monthly_summary."""

    def test_current_month_by_default(self, services, user_id):
        """Defaults to the clock's month."""
        log_food(services, user_id, 2000, date="2024-12-01")
        log_food(services, user_id, 1000, date="2024-12-02")
        log_food(services, user_id, 5000, date="2024-11-30")
        services.reconciliation.add_manual_activity(user_id, {
            "activity_type": "running", "duration": 10, "intensity": "low", "date": "2024-12-02",
        })

        summary = services.aggregator.get_monthly_summary(user_id)

        assert (summary.year, summary.month) == (2024, 12)
        assert summary.total_days == 2
        assert summary.total_calories_consumed == 3000
        assert summary.total_calories_burned == 80
        assert summary.average_daily_calories == 1500
        assert summary.net_calories == 2920

    def test_explicit_month(self, services, user_id):
        """An explicit month is summarized on its own."""
        log_food(services, user_id, 5000, date="2024-11-30")
        summary = services.aggregator.get_monthly_summary(user_id, 2024, 11)

        assert summary.total_days == 1
        assert summary.average_daily_calories == 5000

    def test_empty_month(self, services, user_id):
        """A month without data averages to zero."""
        summary = services.aggregator.get_monthly_summary(user_id, 2023, 1)
        assert summary.total_days == 0
        assert summary.average_daily_calories == 0

    def test_invalid_month(self, services, user_id):
        """Month 0 is rejected."""
        with pytest.raises(ValidationError):
            services.aggregator.get_monthly_summary(user_id, 2024, 0)
