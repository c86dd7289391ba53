"""Activity Policy - Calorie estimation table and activity summaries.

All functions are pure: same input always produces same output, no side effects.
"""

from .aggregation import calculate_calories_burned, round_half_up
from .errors import ValidationError
from .models import ActivityDaySummary, ActivityEntry, ActivitySource, Intensity


# Calories burned per minute by activity type and intensity
CALORIES_PER_MINUTE: dict[str, dict[Intensity, int]] = {
    "walking": {Intensity.LOW: 3, Intensity.MODERATE: 4, Intensity.HIGH: 5},
    "running": {Intensity.LOW: 8, Intensity.MODERATE: 12, Intensity.HIGH: 16},
    "cycling": {Intensity.LOW: 5, Intensity.MODERATE: 8, Intensity.HIGH: 12},
    "swimming": {Intensity.LOW: 6, Intensity.MODERATE: 10, Intensity.HIGH: 14},
    "gym": {Intensity.LOW: 4, Intensity.MODERATE: 6, Intensity.HIGH: 8},
    "sports": {Intensity.LOW: 6, Intensity.MODERATE: 9, Intensity.HIGH: 12},
    "yoga": {Intensity.LOW: 2, Intensity.MODERATE: 3, Intensity.HIGH: 4},
    "dancing": {Intensity.LOW: 3, Intensity.MODERATE: 5, Intensity.HIGH: 7},
    "cleaning": {Intensity.LOW: 2, Intensity.MODERATE: 3, Intensity.HIGH: 4},
    "gardening": {Intensity.LOW: 3, Intensity.MODERATE: 4, Intensity.HIGH: 5},
}

DEFAULT_CALORIES_PER_MINUTE = {Intensity.LOW: 3, Intensity.MODERATE: 4, Intensity.HIGH: 5}

PLATFORM_SOURCES: dict[str, list[dict[str, str]]] = {
    "ios": [
        {
            "source": ActivitySource.HEALTHKIT.value,
            "name": "Apple Health",
            "description": "Integrates with all iOS health apps",
        },
        {
            "source": ActivitySource.DEVICE_SENSORS.value,
            "name": "iPhone Sensors",
            "description": "Built-in step counter and motion sensors",
        },
        {
            "source": ActivitySource.MANUAL.value,
            "name": "Manual Entry",
            "description": "Manually log your activities",
        },
    ],
    "android": [
        {
            "source": ActivitySource.GOOGLEFIT.value,
            "name": "Google Fit",
            "description": "Integrates with most Android fitness apps",
        },
        {
            "source": ActivitySource.SAMSUNG_HEALTH.value,
            "name": "Samsung Health",
            "description": "Direct Samsung Health integration",
        },
        {
            "source": ActivitySource.HUAWEI_HEALTH.value,
            "name": "Huawei Health",
            "description": "Direct Huawei Health integration",
        },
        {
            "source": ActivitySource.DEVICE_SENSORS.value,
            "name": "Device Sensors",
            "description": "Built-in step counter and sensors",
        },
        {
            "source": ActivitySource.MANUAL.value,
            "name": "Manual Entry",
            "description": "Manually log your activities",
        },
    ],
}


def estimate_activity_calories(activity_type: str, duration: float, intensity: Intensity | str) -> int:
    """Estimate calories burned from the per-minute table.

    Unknown activity types use the default row.

    Args:
        activity_type: e.g. "running" (case-insensitive)
        duration: Minutes
        intensity: low, moderate or high

    Returns:
        round(duration x calories per minute)
    """
    try:
        level = Intensity(intensity)
    except ValueError:
        raise ValidationError("intensity", "must be one of low, moderate, high") from None
    rates = CALORIES_PER_MINUTE.get(activity_type.strip().lower(), DEFAULT_CALORIES_PER_MINUTE)
    return round_half_up(duration * rates[level])


def available_sources(platform: str) -> list[dict[str, str]]:
    """Activity sources a device platform can sync from.

    Raises:
        ValidationError: If platform is not ios or android
    """
    sources = PLATFORM_SOURCES.get((platform or "").lower())
    if sources is None:
        raise ValidationError("platform", 'must be "ios" or "android"')
    return [dict(s) for s in sources]


def summarize_activities(log_date: str, activities: list[ActivityEntry]) -> ActivityDaySummary:
    """Totals for a day's activities.

    The reported source is the one of the most recently created entry;
    last_sync is the latest sync timestamp seen.
    """
    if not activities:
        return ActivityDaySummary(date=log_date)

    latest = max(activities, key=lambda a: a.created_at)
    sync_times = [a.sync_timestamp for a in activities if a.sync_timestamp is not None]

    return ActivityDaySummary(
        date=log_date,
        total_calories_burned=calculate_calories_burned(activities),
        total_steps=sum(a.steps or 0 for a in activities),
        total_distance_km=round_half_up(sum(a.distance_km or 0 for a in activities) * 100) / 100,
        activities=activities,
        last_sync=max(sync_times) if sync_times else None,
        source=latest.source,
    )
