"""Entry Store - The persistence interface the engine is written against.

Every method is scoped by user id. Implementations raise ``ConflictError``
when an insert would violate a uniqueness key, ``NotFoundError`` for
deletes of missing rows and ``StorageError`` for transport failures.
"""

from typing import Optional, Protocol

from ..core.models import (
    ActivityEntry,
    ActivitySource,
    DailyLedger,
    FoodEntry,
    UserActivityPreferences,
    UserProfile,
)


class LedgerRepository(Protocol):
    """Storage for ledgers, entries, preferences and user profiles.

    Uniqueness keys:
        ledgers: (user_id, log_date)
        activity entries: (user_id, ledger_id, source, external_id) when
            external_id is not None
    """

    # Ledgers

    def get_ledger(self, user_id: str, log_date: str) -> Optional[DailyLedger]: ...

    def create_ledger(self, ledger: DailyLedger) -> DailyLedger:
        """Insert a ledger; raises ConflictError if (user_id, log_date) exists."""
        ...

    def list_ledgers(self, user_id: str, start: str, end: str) -> list[DailyLedger]:
        """Ledgers with start <= log_date <= end, ordered by day."""
        ...

    # Food entries

    def insert_food_entry(self, entry: FoodEntry) -> FoodEntry: ...

    def list_food_entries(self, user_id: str, start: str, end: str) -> list[FoodEntry]:
        """Food entries with start <= log_date <= end, newest first."""
        ...

    def delete_food_entry(self, user_id: str, entry_id: str) -> None:
        """Hard delete; raises NotFoundError if the user has no such entry."""
        ...

    # Activity entries

    def insert_activity_entry(self, entry: ActivityEntry) -> ActivityEntry:
        """Insert; raises ConflictError if the external key is already taken."""
        ...

    def find_activity_entry(
        self, user_id: str, ledger_id: str, source: ActivitySource, external_id: str
    ) -> Optional[ActivityEntry]: ...

    def update_activity_entry(self, entry: ActivityEntry) -> ActivityEntry:
        """Replace a stored entry; raises NotFoundError if it does not exist."""
        ...

    def list_activity_entries(self, user_id: str, start: str, end: str) -> list[ActivityEntry]:
        """Activity entries with start <= log_date <= end, oldest first."""
        ...

    # Preferences

    def get_preferences(self, user_id: str) -> Optional[UserActivityPreferences]: ...

    def save_preferences(self, prefs: UserActivityPreferences) -> UserActivityPreferences: ...

    # Users

    def get_user(self, user_id: str) -> Optional[UserProfile]: ...

    def save_user(self, user: UserProfile) -> UserProfile: ...
