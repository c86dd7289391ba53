"""Firestore Client - Persistence for ledgers, entries and user data.

This module handles all database I/O against Firestore.
All I/O is contained here; business logic is in the core module.
"""

import hashlib
import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from google.api_core import exceptions as google_exceptions
from google.cloud import firestore

from ..core.errors import ConflictError, NotFoundError, StorageError
from ..core.models import (
    ActivityEntry,
    ActivitySource,
    DailyLedger,
    FoodEntry,
    UserActivityPreferences,
    UserProfile,
)
from .config import FirestoreConfig
from .rows import (
    activity_entry_from_row,
    activity_entry_to_row,
    food_entry_from_row,
    food_entry_to_row,
    ledger_from_row,
    ledger_to_row,
    map_rows,
    preferences_from_row,
    preferences_to_row,
    user_from_row,
    user_to_row,
)


logger = logging.getLogger(__name__)


def activity_document_id(entry_or_key: ActivityEntry | tuple[str, str, str]) -> str:
    """Document id of an activity entry.

    Entries with an external id are keyed by a digest of
    (ledger_id, source, external_id) so a second insert of the same
    observation collides; all others use their own id.
    """
    if isinstance(entry_or_key, ActivityEntry):
        if entry_or_key.external_id is None:
            return entry_or_key.id
        key = (entry_or_key.ledger_id, entry_or_key.source.value, entry_or_key.external_id)
    else:
        key = entry_or_key
    digest = hashlib.sha256("|".join(key).encode()).hexdigest()[:40]
    return f"ext_{digest}"


@contextmanager
def _storage_errors(action: str) -> Iterator[None]:
    """Translate Firestore exceptions into ledger errors."""
    try:
        yield
    except google_exceptions.AlreadyExists as e:
        raise ConflictError(f"Cannot {action}: already exists") from e
    except google_exceptions.NotFound as e:
        raise NotFoundError(f"Cannot {action}: not found") from e
    except google_exceptions.GoogleAPICallError as e:
        logger.error("Failed to %s: %s", action, str(e))
        raise StorageError(f"Failed to {action}") from e


class FirestoreLedgerRepository:
    """LedgerRepository backed by Firestore.

    Document structure per user:
        users/{user_id}: { email, api_key_hash, daily_calorie_goal, ... }
            ledgers/{YYYY-MM-DD}: { id, date, ... }
            food_entries/{entry_id}: { daily_log_id, date, calories, ... }
            activity_entries/{entry_id | ext_<digest>}: { activity_source, external_id, ... }
            settings/activity_preferences: { activity_goal, ... }
    """

    def __init__(self, config: FirestoreConfig | None = None) -> None:
        """Initialize Firestore repository.

        Args:
            config: Firestore configuration
        """
        self.config = config or FirestoreConfig()
        self._client: firestore.Client | None = None

    @property
    def client(self) -> firestore.Client:
        """Lazy initialization of Firestore client."""
        if self._client is None:
            kwargs: dict[str, Any] = {}
            if self.config.project_id:
                kwargs["project"] = self.config.project_id
            if self.config.database:
                kwargs["database"] = self.config.database
            self._client = firestore.Client(**kwargs)
        return self._client

    def _user_ref(self, user_id: str) -> firestore.DocumentReference:
        """Get reference to user document."""
        return self.client.collection("users").document(user_id)

    def _ledger_ref(self, user_id: str, log_date: str) -> firestore.DocumentReference:
        return self._user_ref(user_id).collection("ledgers").document(log_date)

    def _food_ref(self, user_id: str, entry_id: str) -> firestore.DocumentReference:
        return self._user_ref(user_id).collection("food_entries").document(entry_id)

    def _activity_ref(self, user_id: str, document_id: str) -> firestore.DocumentReference:
        return self._user_ref(user_id).collection("activity_entries").document(document_id)

    def _preferences_ref(self, user_id: str) -> firestore.DocumentReference:
        return self._user_ref(user_id).collection("settings").document("activity_preferences")

    def _range_query(self, user_id: str, collection: str, start: str, end: str):
        return (
            self._user_ref(user_id).collection(collection)
            .where("date", ">=", start)
            .where("date", "<=", end)
            .order_by("date")
        )

    # ==================== Ledger Operations ====================

    def get_ledger(self, user_id: str, log_date: str) -> Optional[DailyLedger]:
        logger.debug("Fetching ledger for %s on %s", user_id[:8], log_date)
        with _storage_errors("fetch ledger"):
            doc = self._ledger_ref(user_id, log_date).get()
        if not doc.exists:
            return None
        return ledger_from_row(doc.to_dict())

    def create_ledger(self, ledger: DailyLedger) -> DailyLedger:
        logger.info("Creating ledger for %s on %s", ledger.user_id[:8], ledger.log_date)
        with _storage_errors("create ledger"):
            self._ledger_ref(ledger.user_id, ledger.log_date).create(ledger_to_row(ledger))
        return ledger

    def list_ledgers(self, user_id: str, start: str, end: str) -> list[DailyLedger]:
        logger.debug("Fetching ledgers for %s from %s to %s", user_id[:8], start, end)
        with _storage_errors("list ledgers"):
            rows = [doc.to_dict() for doc in self._range_query(user_id, "ledgers", start, end).stream()]
        return map_rows(rows, ledger_from_row)

    # ==================== Food Entry Operations ====================

    def insert_food_entry(self, entry: FoodEntry) -> FoodEntry:
        logger.info("Saving food entry %s for %s", entry.id[:8], entry.user_id[:8])
        with _storage_errors("save food entry"):
            self._food_ref(entry.user_id, entry.id).create(food_entry_to_row(entry))
        return entry

    def list_food_entries(self, user_id: str, start: str, end: str) -> list[FoodEntry]:
        with _storage_errors("list food entries"):
            rows = [doc.to_dict() for doc in self._range_query(user_id, "food_entries", start, end).stream()]
        entries = map_rows(rows, food_entry_from_row)
        entries.sort(key=lambda e: e.created_at, reverse=True)
        return entries

    def delete_food_entry(self, user_id: str, entry_id: str) -> None:
        logger.info("Deleting food entry %s for %s", entry_id[:8], user_id[:8])
        ref = self._food_ref(user_id, entry_id)
        with _storage_errors("delete food entry"):
            if not ref.get().exists:
                raise NotFoundError(f"Food entry {entry_id} not found")
            ref.delete()

    # ==================== Activity Entry Operations ====================

    def insert_activity_entry(self, entry: ActivityEntry) -> ActivityEntry:
        logger.info("Saving activity entry %s for %s", entry.id[:8], entry.user_id[:8])
        with _storage_errors("save activity entry"):
            self._activity_ref(entry.user_id, activity_document_id(entry)).create(activity_entry_to_row(entry))
        return entry

    def find_activity_entry(
        self, user_id: str, ledger_id: str, source: ActivitySource, external_id: str
    ) -> Optional[ActivityEntry]:
        document_id = activity_document_id((ledger_id, source.value, external_id))
        with _storage_errors("find activity entry"):
            doc = self._activity_ref(user_id, document_id).get()
        if not doc.exists:
            return None
        return activity_entry_from_row(doc.to_dict())

    def update_activity_entry(self, entry: ActivityEntry) -> ActivityEntry:
        logger.info("Updating activity entry %s for %s", entry.id[:8], entry.user_id[:8])
        with _storage_errors("update activity entry"):
            self._activity_ref(entry.user_id, activity_document_id(entry)).update(activity_entry_to_row(entry))
        return entry

    def list_activity_entries(self, user_id: str, start: str, end: str) -> list[ActivityEntry]:
        with _storage_errors("list activity entries"):
            rows = [doc.to_dict() for doc in self._range_query(user_id, "activity_entries", start, end).stream()]
        entries = map_rows(rows, activity_entry_from_row)
        entries.sort(key=lambda e: e.created_at)
        return entries

    # ==================== Preferences & Users ====================

    def get_preferences(self, user_id: str) -> Optional[UserActivityPreferences]:
        with _storage_errors("fetch activity preferences"):
            doc = self._preferences_ref(user_id).get()
        if not doc.exists:
            return None
        return preferences_from_row(doc.to_dict())

    def save_preferences(self, prefs: UserActivityPreferences) -> UserActivityPreferences:
        logger.info("Saving activity preferences for %s", prefs.user_id[:8])
        with _storage_errors("save activity preferences"):
            self._preferences_ref(prefs.user_id).set(preferences_to_row(prefs))
        return prefs

    def get_user(self, user_id: str) -> Optional[UserProfile]:
        with _storage_errors("fetch user"):
            doc = self._user_ref(user_id).get()
        if not doc.exists:
            return None
        return user_from_row(doc.to_dict())

    def save_user(self, user: UserProfile) -> UserProfile:
        logger.info("Saving user %s", user.id[:8])
        with _storage_errors("save user"):
            self._user_ref(user.id).set(user_to_row(user))
        return user
