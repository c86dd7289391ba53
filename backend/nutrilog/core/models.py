"""Core Data Models - Pydantic models for type safety.

Entities mirror what the store keeps, inputs describe what callers submit,
and summaries are the derived views. None of them carry behavior beyond
validation.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, TypeVar
import uuid

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError


DAY_PATTERN = r"^\d{4}-\d{2}-\d{2}$"

DEFAULT_ACTIVITY_GOAL = 600
DEFAULT_CALORIE_GOAL = 2000
MAX_CALORIES = 10000


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class ActivitySource(str, Enum):
    """Where an activity observation came from."""

    HEALTHKIT = "healthkit"
    GOOGLEFIT = "googlefit"
    SAMSUNG_HEALTH = "samsung_health"
    HUAWEI_HEALTH = "huawei_health"
    FITBIT = "fitbit"
    GARMIN = "garmin"
    STRAVA = "strava"
    MANUAL = "manual"
    DEVICE_SENSORS = "device_sensors"


class SyncFrequency(str, Enum):
    REALTIME = "realtime"
    HOURLY = "hourly"
    DAILY = "daily"


class CalorieMethod(str, Enum):
    DIRECT = "direct"
    ESTIMATED = "estimated"
    MANUAL = "manual"


class Intensity(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


class GoalStatus(str, Enum):
    UNDER = "under"
    ON_TARGET = "on_target"
    OVER = "over"


# ==================== Entities ====================


class DailyLedger(BaseModel):
    """The per-user, per-day bucket every entry attaches to.

    The two calorie counters are informational only; summaries are always
    recomputed from the entries.
    """

    id: str = Field(default_factory=_new_id)
    user_id: str = Field(min_length=1)
    log_date: str = Field(pattern=DAY_PATTERN, description="Day of this ledger (YYYY-MM-DD)")
    total_calories_consumed: int = Field(default=0, ge=0)
    calories_burned: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=_utcnow)


class FoodEntry(BaseModel):
    """A single food item attached to a ledger."""

    id: str = Field(default_factory=_new_id)
    user_id: str
    ledger_id: str
    log_date: str = Field(pattern=DAY_PATTERN)
    description: Optional[str] = Field(default=None, description="What the user typed or the image caption")
    food_name: str = Field(min_length=1)
    quantity: float = Field(default=1, ge=0)
    unit: str = Field(default="serving")
    calories: int = Field(ge=0, description="Total calories")
    protein: float = Field(default=0, ge=0, description="Protein in grams")
    carbs: float = Field(default=0, ge=0, description="Carbohydrates in grams")
    fat: float = Field(default=0, ge=0, description="Fat in grams")
    fiber: float = Field(default=0, ge=0, description="Fiber in grams")
    sugar: float = Field(default=0, ge=0, description="Sugar in grams")
    sodium: float = Field(default=0, ge=0, description="Sodium in milligrams")
    source_model: Optional[str] = Field(default=None, description="Estimator that produced the values")
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)


class ActivityEntry(BaseModel):
    """A single activity observation attached to a ledger.

    (user_id, ledger_id, source, external_id) is unique when external_id is set.
    """

    id: str = Field(default_factory=_new_id)
    user_id: str
    ledger_id: str
    log_date: str = Field(pattern=DAY_PATTERN)
    activity_type: str = "general"
    duration_minutes: Optional[float] = Field(default=None, ge=0)
    calories_burned: int = Field(ge=0)
    source: ActivitySource
    external_id: Optional[str] = None
    steps: Optional[int] = Field(default=None, ge=0)
    distance_km: Optional[float] = Field(default=None, ge=0)
    sync_timestamp: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)


class UserActivityPreferences(BaseModel):
    """Per-user activity tracking configuration."""

    user_id: str
    preferred_source: Optional[ActivitySource] = None
    enabled_sources: list[ActivitySource] = Field(default_factory=list)
    auto_sync_enabled: bool = True
    sync_frequency: SyncFrequency = SyncFrequency.REALTIME
    calorie_calculation_method: CalorieMethod = CalorieMethod.ESTIMATED
    activity_goal: int = Field(default=DEFAULT_ACTIVITY_GOAL, ge=100, le=2000, description="Calories/day to burn")
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_validator("enabled_sources")
    @classmethod
    def _dedupe_sources(cls, value: list[ActivitySource]) -> list[ActivitySource]:
        return list(dict.fromkeys(value))


class UserProfile(BaseModel):
    """User record; the API key hash doubles as the user id."""

    id: str
    email: str
    api_key_hash: str = Field(description="SHA256 hash of API key - never store plaintext")
    daily_calorie_goal: int = Field(default=DEFAULT_CALORIE_GOAL, gt=0, le=MAX_CALORIES)
    created_at: datetime = Field(default_factory=_utcnow)


# ==================== Inputs ====================


class ActivitySyncInput(BaseModel):
    """An activity observation pushed by a health platform or device.

    Producers may send camelCase keys and `distance` for the distance in km.
    """

    source: ActivitySource
    calories_burned: float = Field(
        ge=0, le=MAX_CALORIES, validation_alias=AliasChoices("calories_burned", "caloriesBurned")
    )
    external_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("external_id", "externalId"))
    steps: Optional[float] = Field(default=None, ge=0)
    distance_km: Optional[float] = Field(default=None, ge=0, validation_alias=AliasChoices("distance_km", "distance"))
    duration: Optional[float] = Field(default=None, ge=0, description="Minutes")
    activity_type: Optional[str] = Field(default=None, validation_alias=AliasChoices("activity_type", "activityType"))
    date: Optional[str] = None

    @field_validator("external_id", "activity_type")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value


class ManualActivityInput(BaseModel):
    """An activity typed in by the user."""

    activity_type: str = Field(min_length=1)
    duration: float = Field(ge=1, le=600, description="Minutes")
    intensity: Intensity
    calories_burned: Optional[float] = Field(default=None, ge=0, le=MAX_CALORIES)
    notes: Optional[str] = None
    date: Optional[str] = None


class FoodItemInput(BaseModel):
    """One food of a multi-food submission; numbers are clamped, not rejected."""

    name: str = Field(min_length=1)
    quantity: Optional[str] = None
    calories: float = 0
    protein: float = 0
    carbs: float = 0
    fat: float = 0


class SaveFoodInput(BaseModel):
    """A food submission: aggregate totals plus optional per-food detail."""

    description: Optional[str] = None
    total_calories: float = Field(ge=0, le=MAX_CALORIES)
    protein: float = 0
    carbs: float = 0
    fat: float = 0
    fiber: float = 0
    sugar: float = 0
    sodium: float = 0
    foods: Optional[list[FoodItemInput]] = None
    source_model: Optional[str] = None
    date: Optional[str] = None


class PreferencesUpdate(BaseModel):
    """Partial preferences; only the fields that are set are applied."""

    preferred_source: Optional[ActivitySource] = None
    enabled_sources: Optional[list[ActivitySource]] = None
    auto_sync_enabled: Optional[bool] = None
    sync_frequency: Optional[SyncFrequency] = None
    calorie_calculation_method: Optional[CalorieMethod] = None
    activity_goal: Optional[int] = Field(default=None, ge=100, le=2000)


class EstimatedFood(BaseModel):
    name: str = Field(min_length=1)
    quantity: str
    calories: float = Field(ge=0)
    protein: float = Field(ge=0)
    carbs: float = Field(ge=0)
    fat: float = Field(ge=0)


class NutritionEstimate(BaseModel):
    """Validated output of the nutrition estimator."""

    total_calories: float = Field(ge=0)
    protein: float = Field(ge=0)
    carbs: float = Field(ge=0)
    fat: float = Field(ge=0)
    fiber: float = Field(default=0, ge=0)
    sugar: float = Field(default=0, ge=0)
    sodium: float = Field(default=0, ge=0)
    foods: list[EstimatedFood]


# ==================== Summaries ====================


class MacroTotals(BaseModel):
    protein: float = 0
    carbs: float = 0
    fat: float = 0


class DailySummary(BaseModel):
    """Dashboard view of one day."""

    date: str
    daily_calorie_goal: int
    total_calories_consumed: int
    total_calories_burned: int
    net_calories: int
    remaining_calories: int = Field(description="Negative if over goal")
    macros: MacroTotals
    progress_percentage: int = Field(le=100, description="Clamped at 100, may be negative")
    goal_status: GoalStatus
    food_entries: list[FoodEntry] = Field(default_factory=list)
    activity_entries: list[ActivityEntry] = Field(default_factory=list)


class ActivityDaySummary(BaseModel):
    """Activity totals for one day."""

    date: str
    total_calories_burned: int = 0
    total_steps: int = 0
    total_distance_km: float = 0
    activities: list[ActivityEntry] = Field(default_factory=list)
    last_sync: Optional[datetime] = None
    source: Optional[ActivitySource] = None


class ActivityOverview(BaseModel):
    total_calories_burned: int
    activity_goal: int
    total_steps: int
    total_distance_km: float
    source: Optional[ActivitySource] = None
    last_sync: Optional[datetime] = None
    activities: list[ActivityEntry] = Field(default_factory=list)


class EnhancedDailySummary(DailySummary):
    """Dashboard view with the activity goal folded in."""

    activity: ActivityOverview
    calorie_difference: int = Field(description="Consumed minus burned")
    is_active_day: bool


class DaySummary(BaseModel):
    """One day of the weekly trend."""

    date: str
    total_calories_consumed: int = 0
    total_calories_burned: int = 0
    net_calories: int = 0
    macros: MacroTotals = Field(default_factory=MacroTotals)
    food_entry_count: int = 0
    activity_count: int = 0


class MonthSummary(BaseModel):
    """Rollup of one calendar month."""

    year: int
    month: int
    total_days: int = Field(ge=0, description="Days with a ledger in the month")
    total_calories_consumed: int
    total_calories_burned: int
    average_daily_calories: int
    net_calories: int


# ==================== Validation ====================


ModelT = TypeVar("ModelT", bound=BaseModel)


def validate_input(model: type[ModelT], payload: Any) -> ModelT:
    """Validate caller data, naming the first offending field on failure.

    Raises:
        ValidationError: If the payload violates the model's constraints
    """
    if isinstance(payload, model):
        return payload
    if isinstance(payload, BaseModel):
        payload = payload.model_dump()
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or model.__name__
        raise ValidationError(field, first.get("msg", "invalid value")) from None
