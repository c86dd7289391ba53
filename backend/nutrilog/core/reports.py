"""Report Generation - Pure functions for weekly and monthly rollups.

All functions are pure: same input always produces same output, no side effects.
"""

from collections import defaultdict

from .aggregation import calculate_calories_burned, calculate_daily_totals, macro_totals, round_half_up
from .dates import iter_days, week_window
from .models import ActivityEntry, DailyLedger, DaySummary, FoodEntry, MonthSummary


def _group_by_day(entries: list) -> dict[str, list]:
    grouped: dict[str, list] = defaultdict(list)
    for entry in entries:
        grouped[entry.log_date].append(entry)
    return grouped


def generate_day_summary(
    log_date: str,
    food_entries: list[FoodEntry],
    activities: list[ActivityEntry],
) -> DaySummary:
    """Generate a summary for a single day.

    Args:
        log_date: Canonical day
        food_entries: Food entries of that day (may be empty)
        activities: Activity entries of that day (may be empty)

    Returns:
        DaySummary with totals for the day
    """
    consumed, protein, carbs, fat = calculate_daily_totals(food_entries)
    burned = calculate_calories_burned(activities)

    return DaySummary(
        date=log_date,
        total_calories_consumed=consumed,
        total_calories_burned=burned,
        net_calories=consumed - burned,
        macros=macro_totals(protein, carbs, fat),
        food_entry_count=len(food_entries),
        activity_count=len(activities),
    )


def generate_weekly_summary(
    anchor: str,
    food_entries: list[FoodEntry],
    activities: list[ActivityEntry],
) -> list[DaySummary]:
    """Seven day summaries ending at anchor, oldest first.

    Days without stored entries are zero-filled so the result always has
    seven items. Entries outside the window are ignored.
    """
    start, end = week_window(anchor)
    foods_by_day = _group_by_day(food_entries)
    activities_by_day = _group_by_day(activities)

    return [
        generate_day_summary(day, foods_by_day.get(day, []), activities_by_day.get(day, []))
        for day in iter_days(start, end)
    ]


def generate_month_summary(
    year: int,
    month: int,
    ledgers: list[DailyLedger],
    food_entries: list[FoodEntry],
    activities: list[ActivityEntry],
) -> MonthSummary:
    """Rollup of a calendar month.

    Args:
        year: Calendar year
        month: Calendar month (1-12)
        ledgers: Ledgers stored for days of the month
        food_entries: Food entries of the month
        activities: Activity entries of the month

    Returns:
        MonthSummary; the daily average is over days that have a ledger
    """
    total_days = len({ledger.log_date for ledger in ledgers})
    consumed = calculate_daily_totals(food_entries)[0]
    burned = calculate_calories_burned(activities)
    average = round_half_up(consumed / total_days) if total_days > 0 else 0

    return MonthSummary(
        year=year,
        month=month,
        total_days=total_days,
        total_calories_consumed=consumed,
        total_calories_burned=burned,
        average_daily_calories=average,
        net_calories=consumed - burned,
    )
