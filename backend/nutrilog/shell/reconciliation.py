"""Reconciliation Engine - Writes food and activity entries into ledgers.

Activity syncs are idempotent on (source, external_id): a repeated delivery
refreshes the stored row instead of adding one. Manual activities and food
submissions carry no natural key and always insert, so a retried submit
creates a second row.
"""

import logging
from datetime import date, datetime
from typing import Any, Callable, Mapping, Optional, Protocol

from ..core.activity import estimate_activity_calories
from ..core.aggregation import round_half_up
from ..core.dates import utc_now
from ..core.errors import (
    ConflictError,
    EstimationError,
    EstimationFailure,
    NotFoundError,
    StorageError,
    ValidationError,
)
from ..core.food import build_food_entries, estimate_to_food_input, parse_estimate_text, validate_estimate
from ..core.models import (
    ActivityEntry,
    ActivitySource,
    ActivitySyncInput,
    FoodEntry,
    ManualActivityInput,
    NutritionEstimate,
    SaveFoodInput,
    validate_input,
)
from .ledger import LedgerResolver
from .repository import LedgerRepository


logger = logging.getLogger(__name__)


class NutritionEstimator(Protocol):
    """Black-box estimator turning a description or photo into nutrition.

    ``estimate`` returns the raw reply, either a mapping or the model's text
    containing a JSON object, and raises EstimationError on upstream failure.
    """

    model_name: str

    def estimate(self, source: str | bytes) -> Mapping[str, Any] | str: ...


class ReconciliationEngine:
    """Upserts activity syncs and inserts manual and food entries."""

    def __init__(
        self,
        repository: LedgerRepository,
        resolver: LedgerResolver,
        estimator: Optional[NutritionEstimator] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repository = repository
        self._resolver = resolver
        self._estimator = estimator
        self._clock = clock

    # ==================== Activity ====================

    def sync_activity(self, user_id: str, payload: ActivitySyncInput | Mapping[str, Any]) -> ActivityEntry:
        """Record an activity observation from a health platform or device.

        With an external id, an existing entry for (source, external_id) in
        the day's ledger is refreshed in place and keeps its id; otherwise a
        new entry is inserted.

        Raises:
            ValidationError: If the payload violates a bound
            ConflictError: If a racing insert won and the refresh also failed
            StorageError: If the store fails
        """
        data = validate_input(ActivitySyncInput, payload)
        logger.info("Syncing activity data for %s from %s", user_id[:8], data.source.value)

        ledger = self._resolver.get_or_create_ledger(user_id, data.date)

        if data.external_id is None:
            return self._insert_synced(user_id, ledger.id, ledger.log_date, data)

        existing = self._repository.find_activity_entry(user_id, ledger.id, data.source, data.external_id)
        if existing is not None:
            logger.info("Updating existing activity entry %s", existing.id[:8])
            return self._refresh(existing, data)

        try:
            return self._insert_synced(user_id, ledger.id, ledger.log_date, data)
        except ConflictError:
            logger.info("Activity %s/%s inserted concurrently, updating instead", data.source.value, data.external_id)

        existing = self._repository.find_activity_entry(user_id, ledger.id, data.source, data.external_id)
        if existing is None:
            raise ConflictError(f"Activity {data.source.value}/{data.external_id} conflicted but was not found")
        try:
            return self._refresh(existing, data)
        except (NotFoundError, StorageError) as e:
            raise ConflictError(f"Activity {data.source.value}/{data.external_id} could not be updated") from e

    def _insert_synced(self, user_id: str, ledger_id: str, log_date: str, data: ActivitySyncInput) -> ActivityEntry:
        now = self._clock()
        entry = ActivityEntry(
            user_id=user_id,
            ledger_id=ledger_id,
            log_date=log_date,
            activity_type=data.activity_type or "general",
            duration_minutes=data.duration,
            calories_burned=round_half_up(data.calories_burned),
            source=data.source,
            external_id=data.external_id,
            steps=None if data.steps is None else round_half_up(data.steps),
            distance_km=data.distance_km,
            sync_timestamp=now,
            created_at=now,
        )
        logger.info("Creating new activity entry for %s", data.source.value)
        return self._repository.insert_activity_entry(entry)

    def _refresh(self, existing: ActivityEntry, data: ActivitySyncInput) -> ActivityEntry:
        """Apply a later sync of the same observation; omitted optionals keep their value."""
        changes: dict[str, Any] = {
            "calories_burned": round_half_up(data.calories_burned),
            "sync_timestamp": self._clock(),
        }
        if data.steps is not None:
            changes["steps"] = round_half_up(data.steps)
        if data.distance_km is not None:
            changes["distance_km"] = data.distance_km
        if data.duration is not None:
            changes["duration_minutes"] = data.duration
        return self._repository.update_activity_entry(existing.model_copy(update=changes))

    def add_manual_activity(self, user_id: str, payload: ManualActivityInput | Mapping[str, Any]) -> ActivityEntry:
        """Insert a user-entered activity, estimating calories when not given.

        Never deduplicated: two identical submissions give two entries.

        Raises:
            ValidationError: If the payload violates a bound
            StorageError: If the store fails
        """
        data = validate_input(ManualActivityInput, payload)
        logger.info("Adding manual activity for %s: %s", user_id[:8], data.activity_type)

        ledger = self._resolver.get_or_create_ledger(user_id, data.date)

        if data.calories_burned is None:
            calories = estimate_activity_calories(data.activity_type, data.duration, data.intensity)
        else:
            calories = round_half_up(data.calories_burned)

        entry = ActivityEntry(
            user_id=user_id,
            ledger_id=ledger.id,
            log_date=ledger.log_date,
            activity_type=data.activity_type,
            duration_minutes=data.duration,
            calories_burned=calories,
            source=ActivitySource.MANUAL,
            notes=data.notes,
            created_at=self._clock(),
        )
        saved = self._repository.insert_activity_entry(entry)
        logger.info("Manual activity added: %s", saved.id[:8])
        return saved

    # ==================== Food ====================

    def save_food_entry(self, user_id: str, payload: SaveFoodInput | Mapping[str, Any]) -> list[FoodEntry]:
        """Insert the food entries of one submission.

        Returns:
            One entry per submitted food, or a single entry built from the totals

        Raises:
            ValidationError: If total_calories is outside [0, 10000]
            StorageError: If the store fails
        """
        data = validate_input(SaveFoodInput, payload)
        ledger = self._resolver.get_or_create_ledger(user_id, data.date)

        entries = build_food_entries(user_id, ledger, data, self._clock())
        saved = [self._repository.insert_food_entry(entry) for entry in entries]
        logger.info("Saved %d food entries for %s on %s", len(saved), user_id[:8], ledger.log_date)
        return saved

    def log_estimated_food(
        self,
        user_id: str,
        source: str | bytes,
        description: Optional[str] = None,
        log_date: str | date | None = None,
    ) -> tuple[NutritionEstimate, list[FoodEntry]]:
        """Estimate nutrition for a description or photo and save it.

        Library entry point for hosts that pass a NutritionEstimator to
        build_services(config, estimator=...). The MCP server does not expose
        it: MCP clients estimate on their side and call log_food.

        Estimator failures propagate; nothing is saved when the estimate fails.

        Raises:
            ValidationError: If the input is empty
            EstimationError: If no estimator is configured or the estimate is unusable
        """
        if not source:
            raise ValidationError("description", "must not be empty")
        if self._estimator is None:
            raise EstimationError(EstimationFailure.INVALID_INPUT, "No nutrition estimator is configured")

        kind = "text" if isinstance(source, str) else "image"
        logger.info("Estimating %s food for %s", kind, user_id[:8])

        raw = self._estimator.estimate(source)
        estimate = validate_estimate(parse_estimate_text(raw) if isinstance(raw, str) else raw)

        if description is None:
            if isinstance(source, str):
                description = source
            else:
                description = "Food from image - " + ", ".join(f.name for f in estimate.foods)

        payload = estimate_to_food_input(
            estimate,
            description=description,
            source_model=f"{self._estimator.model_name}-{kind}",
            log_date=None if log_date is None else self._resolver.resolve_date(log_date),
        )
        return estimate, self.save_food_entry(user_id, payload)

    def list_food_entries(self, user_id: str, log_date: str | date | None = None) -> list[FoodEntry]:
        """Food entries of a day, newest first."""
        day = self._resolver.resolve_date(log_date)
        logger.debug("Getting food entries for %s on %s", user_id[:8], day)
        return self._repository.list_food_entries(user_id, day, day)

    def delete_food_entry(self, user_id: str, entry_id: str) -> None:
        """Delete one of the user's food entries.

        Raises:
            NotFoundError: If the user has no entry with that id
        """
        logger.info("Deleting food entry %s for %s", entry_id[:8], user_id[:8])
        self._repository.delete_food_entry(user_id, entry_id)
