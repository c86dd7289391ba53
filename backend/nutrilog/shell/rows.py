"""Row Mapping - Storage rows to domain entities and back.

Column names are a storage concern and stay in this module. Reading is
defensive: a missing, non-numeric or non-finite number is treated as zero and logged,
and a row that still cannot be mapped is skipped, so one bad document never
breaks a summary.
"""

import logging
import math
from typing import Any, Callable, Iterable, Mapping, TypeVar

from pydantic import ValidationError as PydanticValidationError

from ..core.aggregation import round_half_up
from ..core.models import (
    ActivityEntry,
    DailyLedger,
    FoodEntry,
    UserActivityPreferences,
    UserProfile,
)


logger = logging.getLogger(__name__)

Row = dict[str, Any]
EntityT = TypeVar("EntityT")


def _number(row: Mapping[str, Any], column: str, default: float = 0.0) -> float:
    """Read a non-negative number, defaulting when absent or malformed."""
    value = row.get(column)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        try:
            value = float(value)
        except (TypeError, ValueError):
            logger.warning("Row %s has no usable %s (%r), using %s", row.get("id"), column, value, default)
            return default
    if not math.isfinite(value):
        logger.warning("Row %s has non-finite %s (%r), using %s", row.get("id"), column, value, default)
        return default
    if value < 0:
        logger.warning("Row %s has negative %s (%r), using %s", row.get("id"), column, value, default)
        return default
    return float(value)


def _optional_number(row: Mapping[str, Any], column: str) -> float | None:
    if row.get(column) is None:
        return None
    return _number(row, column)


def _whole(value: float | None) -> int | None:
    return None if value is None else round_half_up(value)


# ==================== Ledgers ====================


def ledger_to_row(ledger: DailyLedger) -> Row:
    return {
        "id": ledger.id,
        "user_id": ledger.user_id,
        "date": ledger.log_date,
        "total_calories_consumed": ledger.total_calories_consumed,
        "calories_burned": ledger.calories_burned,
        "created_at": ledger.created_at,
    }


def ledger_from_row(row: Mapping[str, Any]) -> DailyLedger:
    data: Row = {
        "id": row["id"],
        "user_id": row["user_id"],
        "log_date": row["date"],
        "total_calories_consumed": round_half_up(_number(row, "total_calories_consumed")),
        "calories_burned": round_half_up(_number(row, "calories_burned")),
    }
    if row.get("created_at"):
        data["created_at"] = row["created_at"]
    return DailyLedger(**data)


# ==================== Food Entries ====================


def food_entry_to_row(entry: FoodEntry) -> Row:
    return {
        "id": entry.id,
        "user_id": entry.user_id,
        "daily_log_id": entry.ledger_id,
        "date": entry.log_date,
        "description": entry.description,
        "food_name": entry.food_name,
        "quantity": entry.quantity,
        "unit": entry.unit,
        "calories": entry.calories,
        "protein": entry.protein,
        "carbs": entry.carbs,
        "fat": entry.fat,
        "fiber": entry.fiber,
        "sugar": entry.sugar,
        "sodium": entry.sodium,
        "ai_model_used": entry.source_model,
        "notes": entry.notes,
        "created_at": entry.created_at,
    }


def food_entry_from_row(row: Mapping[str, Any]) -> FoodEntry:
    data: Row = {
        "id": row["id"],
        "user_id": row["user_id"],
        "ledger_id": row["daily_log_id"],
        "log_date": row["date"],
        "description": row.get("description"),
        "food_name": row.get("food_name") or "Mixed Foods",
        "quantity": _number(row, "quantity", default=1.0),
        "unit": row.get("unit") or "serving",
        "calories": round_half_up(_number(row, "calories")),
        "protein": _number(row, "protein"),
        "carbs": _number(row, "carbs"),
        "fat": _number(row, "fat"),
        "fiber": _number(row, "fiber"),
        "sugar": _number(row, "sugar"),
        "sodium": _number(row, "sodium"),
        "source_model": row.get("ai_model_used"),
        "notes": row.get("notes"),
    }
    if row.get("created_at"):
        data["created_at"] = row["created_at"]
    return FoodEntry(**data)


# ==================== Activity Entries ====================


def activity_entry_to_row(entry: ActivityEntry) -> Row:
    return {
        "id": entry.id,
        "user_id": entry.user_id,
        "daily_log_id": entry.ledger_id,
        "date": entry.log_date,
        "activity_type": entry.activity_type,
        "duration": entry.duration_minutes,
        "calories_burned": entry.calories_burned,
        "activity_source": entry.source.value,
        "external_id": entry.external_id,
        "steps": entry.steps,
        "distance": entry.distance_km,
        "sync_timestamp": entry.sync_timestamp,
        "notes": entry.notes,
        "created_at": entry.created_at,
    }


def activity_entry_from_row(row: Mapping[str, Any]) -> ActivityEntry:
    data: Row = {
        "id": row["id"],
        "user_id": row["user_id"],
        "ledger_id": row["daily_log_id"],
        "log_date": row["date"],
        "activity_type": row.get("activity_type") or "general",
        "duration_minutes": _optional_number(row, "duration"),
        "calories_burned": round_half_up(_number(row, "calories_burned")),
        "source": row["activity_source"],
        "external_id": row.get("external_id"),
        "steps": _whole(_optional_number(row, "steps")),
        "distance_km": _optional_number(row, "distance"),
        "sync_timestamp": row.get("sync_timestamp"),
        "notes": row.get("notes"),
    }
    if row.get("created_at"):
        data["created_at"] = row["created_at"]
    return ActivityEntry(**data)


# ==================== Preferences & Users ====================


def preferences_to_row(prefs: UserActivityPreferences) -> Row:
    return {
        "user_id": prefs.user_id,
        "preferred_activity_source": prefs.preferred_source.value if prefs.preferred_source else None,
        "enabled_sources": [s.value for s in prefs.enabled_sources],
        "auto_sync_enabled": prefs.auto_sync_enabled,
        "sync_frequency": prefs.sync_frequency.value,
        "calorie_calculation_method": prefs.calorie_calculation_method.value,
        "activity_goal": prefs.activity_goal,
        "updated_at": prefs.updated_at,
    }


def preferences_from_row(row: Mapping[str, Any]) -> UserActivityPreferences:
    data: Row = {"user_id": row["user_id"]}
    optional_columns = {
        "preferred_activity_source": "preferred_source",
        "enabled_sources": "enabled_sources",
        "auto_sync_enabled": "auto_sync_enabled",
        "sync_frequency": "sync_frequency",
        "calorie_calculation_method": "calorie_calculation_method",
        "activity_goal": "activity_goal",
        "updated_at": "updated_at",
    }
    for column, field in optional_columns.items():
        if row.get(column) is not None:
            data[field] = row[column]
    return UserActivityPreferences(**data)


def user_to_row(user: UserProfile) -> Row:
    return user.model_dump()


def user_from_row(row: Mapping[str, Any]) -> UserProfile:
    return UserProfile(**row)


def map_rows(
    rows: Iterable[Mapping[str, Any]],
    mapper: Callable[[Mapping[str, Any]], EntityT],
) -> list[EntityT]:
    """Map rows, skipping (and logging) any row that cannot be mapped."""
    entities: list[EntityT] = []
    for row in rows:
        try:
            entities.append(mapper(row))
        except (KeyError, ValueError, OverflowError, PydanticValidationError) as e:
            logger.warning("Skipping malformed row %s: %s", row.get("id"), str(e))
    return entities
