"""Aggregator - Read-side views recomputed from stored entries.

Stored ledger counters are never trusted; every view sums the entries as
they are now.
"""

import logging
from datetime import date, datetime
from typing import Callable, Optional

from ..core.activity import summarize_activities
from ..core.aggregation import calculate_daily_summary, enhance_daily_summary
from ..core.dates import month_bounds, utc_now, week_window
from ..core.errors import NotFoundError
from ..core.models import (
    ActivityDaySummary,
    DailySummary,
    DaySummary,
    EnhancedDailySummary,
    MonthSummary,
)
from ..core.reports import generate_month_summary, generate_weekly_summary
from .ledger import LedgerResolver
from .preferences import PreferenceStore
from .repository import LedgerRepository


logger = logging.getLogger(__name__)


class Aggregator:
    """Daily dashboard, weekly trend and monthly rollup."""

    def __init__(
        self,
        repository: LedgerRepository,
        resolver: LedgerResolver,
        preferences: PreferenceStore,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repository = repository
        self._resolver = resolver
        self._preferences = preferences
        self._clock = clock

    def get_daily_summary(self, user_id: str, log_date: str | date | None = None) -> DailySummary:
        """Dashboard for one day; creates the day's ledger if needed.

        Raises:
            NotFoundError: If the user does not exist
            ValidationError: If log_date is not a valid day
        """
        user = self._repository.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")

        ledger = self._resolver.get_or_create_ledger(user_id, log_date)
        day = ledger.log_date
        logger.debug("Getting dashboard data for %s on %s", user_id[:8], day)

        food_entries = self._repository.list_food_entries(user_id, day, day)
        activities = self._repository.list_activity_entries(user_id, day, day)
        summary = calculate_daily_summary(day, user.daily_calorie_goal, food_entries, activities)

        logger.info(
            "Dashboard calculated: %d/%d calories (%d%%)",
            summary.net_calories, summary.daily_calorie_goal, summary.progress_percentage,
        )
        return summary

    def get_enhanced_daily_summary(self, user_id: str, log_date: str | date | None = None) -> EnhancedDailySummary:
        """Dashboard plus activity totals, activity goal and active-day flag."""
        summary = self.get_daily_summary(user_id, log_date)
        activity = summarize_activities(summary.date, summary.activity_entries)
        prefs = self._preferences.get(user_id)
        return enhance_daily_summary(summary, activity, prefs.activity_goal)

    def get_activity_summary(self, user_id: str, log_date: str | date | None = None) -> ActivityDaySummary:
        """Activity totals for one day; zeroes when the day has no ledger."""
        day = self._resolver.resolve_date(log_date)
        logger.debug("Getting activity summary for %s on %s", user_id[:8], day)

        if self._repository.get_ledger(user_id, day) is None:
            return ActivityDaySummary(date=day)
        return summarize_activities(day, self._repository.list_activity_entries(user_id, day, day))

    def get_weekly_summary(self, user_id: str, anchor: str | date | None = None) -> list[DaySummary]:
        """The seven days ending at anchor (default today), oldest first, zero-filled."""
        day = self._resolver.resolve_date(anchor)
        start, end = week_window(day)
        logger.debug("Getting weekly logs for %s from %s to %s", user_id[:8], start, end)

        food_entries = self._repository.list_food_entries(user_id, start, end)
        activities = self._repository.list_activity_entries(user_id, start, end)
        week = generate_weekly_summary(day, food_entries, activities)

        logger.info("Retrieved %d days of weekly data", len(week))
        return week

    def get_monthly_summary(
        self, user_id: str, year: Optional[int] = None, month: Optional[int] = None
    ) -> MonthSummary:
        """Totals and daily average for a month (default: the current UTC month).

        Raises:
            ValidationError: If month is outside 1..12
        """
        now = self._clock()
        year = now.year if year is None else year
        month = now.month if month is None else month
        start, end = month_bounds(year, month)
        logger.debug("Getting monthly stats for %s for %d-%02d", user_id[:8], year, month)

        ledgers = self._repository.list_ledgers(user_id, start, end)
        food_entries = self._repository.list_food_entries(user_id, start, end)
        activities = self._repository.list_activity_entries(user_id, start, end)
        return generate_month_summary(year, month, ledgers, food_entries, activities)
