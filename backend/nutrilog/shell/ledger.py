"""Ledger Resolver - Fetch-or-create of the per-day ledger."""

import logging
from datetime import date, datetime
from typing import Callable

from ..core.dates import resolve_date, utc_now
from ..core.errors import ConflictError, StorageError
from ..core.models import DailyLedger
from .repository import LedgerRepository


logger = logging.getLogger(__name__)


class LedgerResolver:
    """Resolves (user_id, day) to its single ledger row.

    Creation relies on the store's unique key: when a concurrent caller wins
    the insert, the loser reads and returns the winner's row.
    """

    def __init__(self, repository: LedgerRepository, clock: Callable[[], datetime] = utc_now) -> None:
        self._repository = repository
        self._clock = clock

    def resolve_date(self, value: str | date | None = None) -> str:
        """Canonical day for value, defaulting to today in UTC."""
        return resolve_date(value, now=self._clock())

    def get_or_create_ledger(self, user_id: str, log_date: str | date | None = None) -> DailyLedger:
        """Return the user's ledger for the day, creating a zeroed one if absent.

        Args:
            user_id: The user's ID
            log_date: Day (YYYY-MM-DD); defaults to the current UTC day

        Returns:
            The one ledger for (user_id, day)

        Raises:
            ValidationError: If log_date is not a valid day
            StorageError: If the store fails
        """
        day = self.resolve_date(log_date)

        ledger = self._repository.get_ledger(user_id, day)
        if ledger is not None:
            return ledger

        try:
            created = self._repository.create_ledger(
                DailyLedger(user_id=user_id, log_date=day, created_at=self._clock())
            )
            logger.info("Created ledger for %s on %s", user_id[:8], day)
            return created
        except ConflictError:
            logger.debug("Ledger for %s on %s created concurrently, re-reading", user_id[:8], day)

        ledger = self._repository.get_ledger(user_id, day)
        if ledger is None:
            raise StorageError(f"Ledger for {day} conflicted on create but could not be read")
        return ledger
