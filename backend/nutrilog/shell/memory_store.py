"""In-Memory Store - Process-local repository for local runs and tests.

Rows are kept as plain dicts and go through the same mapping as Firestore
documents. A single lock guards the tables so the unique indexes hold under
concurrent callers.
"""

import logging
import threading
from typing import Optional

from ..core.errors import ConflictError, NotFoundError
from ..core.models import (
    ActivityEntry,
    ActivitySource,
    DailyLedger,
    FoodEntry,
    UserActivityPreferences,
    UserProfile,
)
from .rows import (
    Row,
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


class InMemoryLedgerRepository:
    """LedgerRepository backed by dicts.

    Tables:
        ledger_rows: (user_id, date) -> row
        food_rows: id -> row
        activity_rows: id -> row
        preference_rows: user_id -> row
        user_rows: user_id -> row
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.ledger_rows: dict[tuple[str, str], Row] = {}
        self.food_rows: dict[str, Row] = {}
        self.activity_rows: dict[str, Row] = {}
        self.preference_rows: dict[str, Row] = {}
        self.user_rows: dict[str, Row] = {}
        self._activity_keys: dict[tuple[str, str, str, str], str] = {}

    # ==================== Ledgers ====================

    def get_ledger(self, user_id: str, log_date: str) -> Optional[DailyLedger]:
        with self._lock:
            row = self.ledger_rows.get((user_id, log_date))
        return ledger_from_row(row) if row else None

    def create_ledger(self, ledger: DailyLedger) -> DailyLedger:
        key = (ledger.user_id, ledger.log_date)
        with self._lock:
            if key in self.ledger_rows:
                raise ConflictError(f"Ledger already exists for {ledger.log_date}")
            self.ledger_rows[key] = ledger_to_row(ledger)
        logger.debug("Created ledger %s for %s", ledger.log_date, ledger.user_id[:8])
        return ledger

    def list_ledgers(self, user_id: str, start: str, end: str) -> list[DailyLedger]:
        with self._lock:
            rows = [
                dict(row) for (uid, day), row in self.ledger_rows.items()
                if uid == user_id and start <= day <= end
            ]
        rows.sort(key=lambda r: r["date"])
        return map_rows(rows, ledger_from_row)

    # ==================== Food Entries ====================

    def insert_food_entry(self, entry: FoodEntry) -> FoodEntry:
        with self._lock:
            self.food_rows[entry.id] = food_entry_to_row(entry)
        return entry

    def list_food_entries(self, user_id: str, start: str, end: str) -> list[FoodEntry]:
        with self._lock:
            rows = [
                dict(row) for row in self.food_rows.values()
                if row.get("user_id") == user_id and start <= row.get("date", "") <= end
            ]
        entries = map_rows(rows, food_entry_from_row)
        entries.sort(key=lambda e: e.created_at, reverse=True)
        return entries

    def delete_food_entry(self, user_id: str, entry_id: str) -> None:
        with self._lock:
            row = self.food_rows.get(entry_id)
            if row is None or row.get("user_id") != user_id:
                raise NotFoundError(f"Food entry {entry_id} not found")
            del self.food_rows[entry_id]

    # ==================== Activity Entries ====================

    def insert_activity_entry(self, entry: ActivityEntry) -> ActivityEntry:
        with self._lock:
            if entry.external_id is not None:
                key = (entry.user_id, entry.ledger_id, entry.source.value, entry.external_id)
                if key in self._activity_keys:
                    raise ConflictError(
                        f"Activity {entry.source.value}/{entry.external_id} already exists"
                    )
                self._activity_keys[key] = entry.id
            self.activity_rows[entry.id] = activity_entry_to_row(entry)
        return entry

    def find_activity_entry(
        self, user_id: str, ledger_id: str, source: ActivitySource, external_id: str
    ) -> Optional[ActivityEntry]:
        with self._lock:
            entry_id = self._activity_keys.get((user_id, ledger_id, source.value, external_id))
            row = self.activity_rows.get(entry_id) if entry_id else None
        return activity_entry_from_row(row) if row else None

    def update_activity_entry(self, entry: ActivityEntry) -> ActivityEntry:
        with self._lock:
            row = self.activity_rows.get(entry.id)
            if row is None or row.get("user_id") != entry.user_id:
                raise NotFoundError(f"Activity entry {entry.id} not found")
            self.activity_rows[entry.id] = activity_entry_to_row(entry)
        return entry

    def list_activity_entries(self, user_id: str, start: str, end: str) -> list[ActivityEntry]:
        with self._lock:
            rows = [
                dict(row) for row in self.activity_rows.values()
                if row.get("user_id") == user_id and start <= row.get("date", "") <= end
            ]
        entries = map_rows(rows, activity_entry_from_row)
        entries.sort(key=lambda e: e.created_at)
        return entries

    # ==================== Preferences & Users ====================

    def get_preferences(self, user_id: str) -> Optional[UserActivityPreferences]:
        with self._lock:
            row = self.preference_rows.get(user_id)
        return preferences_from_row(row) if row else None

    def save_preferences(self, prefs: UserActivityPreferences) -> UserActivityPreferences:
        with self._lock:
            self.preference_rows[prefs.user_id] = preferences_to_row(prefs)
        return prefs

    def get_user(self, user_id: str) -> Optional[UserProfile]:
        with self._lock:
            row = self.user_rows.get(user_id)
        return user_from_row(row) if row else None

    def save_user(self, user: UserProfile) -> UserProfile:
        with self._lock:
            self.user_rows[user.id] = user_to_row(user)
        return user
