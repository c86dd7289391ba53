"""Daily Aggregation - Pure functions for the dashboard math.

All functions are pure: same input always produces same output, no side effects.
Calorie counts are whole kcal; macros are rounded to one decimal.
"""

import math

from .models import (
    ActivityDaySummary,
    ActivityEntry,
    ActivityOverview,
    DailySummary,
    EnhancedDailySummary,
    FoodEntry,
    GoalStatus,
    MacroTotals,
)


# Symmetric band around the calorie goal, in percent
GOAL_TOLERANCE_PERCENT = 5
# Share of the activity goal that makes a day count as active, in percent
ACTIVE_DAY_PERCENT = 80


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves toward positive infinity."""
    return math.floor(value + 0.5)


def calculate_daily_totals(entries: list[FoodEntry]) -> tuple[int, float, float, float]:
    """Calculate total macros from a list of food entries.

    Args:
        entries: List of food entries for a day

    Returns:
        Tuple of (calories, protein, carbs, fat)
    """
    total_calories = sum(e.calories for e in entries)
    total_protein = sum(e.protein for e in entries)
    total_carbs = sum(e.carbs for e in entries)
    total_fat = sum(e.fat for e in entries)

    return total_calories, total_protein, total_carbs, total_fat


def calculate_calories_burned(activities: list[ActivityEntry]) -> int:
    """Sum of calories burned across a day's activities."""
    return sum(a.calories_burned for a in activities)


def macro_totals(protein: float, carbs: float, fat: float) -> MacroTotals:
    return MacroTotals(
        protein=round_half_up(protein * 10) / 10,
        carbs=round_half_up(carbs * 10) / 10,
        fat=round_half_up(fat * 10) / 10,
    )


def classify_goal_status(net_calories: int, goal: int) -> GoalStatus:
    """Classify net calories against the goal with a symmetric 5% band.

    Both band edges count as on target: with goal=2000, 1900 and 2100 are
    on_target, 1899 is under and 2101 is over.
    """
    if net_calories * 100 > goal * (100 + GOAL_TOLERANCE_PERCENT):
        return GoalStatus.OVER
    if net_calories * 100 >= goal * (100 - GOAL_TOLERANCE_PERCENT):
        return GoalStatus.ON_TARGET
    return GoalStatus.UNDER


def calculate_progress_percentage(net_calories: int, goal: int) -> int:
    """Net calories as a percentage of the goal.

    Capped at 100; negative values are kept since a net deficit is meaningful.
    """
    return min(round_half_up(net_calories / goal * 100), 100)


def is_active_day(calories_burned: int, activity_goal: int) -> bool:
    """A day is active once 80% of the activity goal has been burned."""
    return calories_burned * 100 >= activity_goal * ACTIVE_DAY_PERCENT


def calculate_daily_summary(
    log_date: str,
    daily_calorie_goal: int,
    food_entries: list[FoodEntry],
    activities: list[ActivityEntry],
) -> DailySummary:
    """Calculate the dashboard summary for one day.

    Args:
        log_date: Canonical day
        daily_calorie_goal: The user's calorie target (> 0)
        food_entries: Food entries stored for the day
        activities: Activity entries stored for the day

    Returns:
        DailySummary with totals, remaining calories, progress and goal status
    """
    consumed, protein, carbs, fat = calculate_daily_totals(food_entries)
    burned = calculate_calories_burned(activities)
    net = consumed - burned

    return DailySummary(
        date=log_date,
        daily_calorie_goal=daily_calorie_goal,
        total_calories_consumed=consumed,
        total_calories_burned=burned,
        net_calories=net,
        remaining_calories=daily_calorie_goal - net,
        macros=macro_totals(protein, carbs, fat),
        progress_percentage=calculate_progress_percentage(net, daily_calorie_goal),
        goal_status=classify_goal_status(net, daily_calorie_goal),
        food_entries=food_entries,
        activity_entries=activities,
    )


def enhance_daily_summary(
    summary: DailySummary,
    activity: ActivityDaySummary,
    activity_goal: int,
) -> EnhancedDailySummary:
    """Fold the activity summary and goal into a dashboard summary."""
    return EnhancedDailySummary(
        **summary.model_dump(),
        activity=ActivityOverview(
            total_calories_burned=activity.total_calories_burned,
            activity_goal=activity_goal,
            total_steps=activity.total_steps,
            total_distance_km=activity.total_distance_km,
            source=activity.source,
            last_sync=activity.last_sync,
            activities=activity.activities,
        ),
        calorie_difference=summary.total_calories_consumed - activity.total_calories_burned,
        is_active_day=is_active_day(activity.total_calories_burned, activity_goal),
    )
