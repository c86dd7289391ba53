"""Preference Store - Per-user activity tracking configuration."""

import logging
from datetime import datetime
from typing import Any, Callable

from ..core.dates import utc_now
from ..core.models import PreferencesUpdate, UserActivityPreferences, validate_input
from .repository import LedgerRepository


logger = logging.getLogger(__name__)


class PreferenceStore:
    """Reads and upserts UserActivityPreferences.

    A user without stored preferences gets the defaults persisted on first read.
    """

    def __init__(self, repository: LedgerRepository, clock: Callable[[], datetime] = utc_now) -> None:
        self._repository = repository
        self._clock = clock

    def get(self, user_id: str) -> UserActivityPreferences:
        """Get a user's preferences, creating the defaults on first access."""
        prefs = self._repository.get_preferences(user_id)
        if prefs is not None:
            return prefs

        logger.info("Creating default activity preferences for %s", user_id[:8])
        return self._repository.save_preferences(
            UserActivityPreferences(user_id=user_id, updated_at=self._clock())
        )

    def upsert(self, user_id: str, partial: PreferencesUpdate | dict[str, Any]) -> UserActivityPreferences:
        """Apply the provided fields over the current preferences.

        Raises:
            ValidationError: If a field is out of bounds (e.g. activity_goal)
        """
        update = validate_input(PreferencesUpdate, partial)
        current = self._repository.get_preferences(user_id) or UserActivityPreferences(user_id=user_id)

        changes = update.model_dump(exclude_unset=True)
        # Explicit nulls only make sense for the preferred source
        changes = {k: v for k, v in changes.items() if v is not None or k == "preferred_source"}

        merged = validate_input(
            UserActivityPreferences,
            {**current.model_dump(), **changes, "user_id": user_id, "updated_at": self._clock()},
        )
        logger.info("Updating activity preferences for %s: %s", user_id[:8], sorted(changes))
        return self._repository.save_preferences(merged)
