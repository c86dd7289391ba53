"""Services - Wires the engine components around one repository.

Built once at process start and handed to the transport layers.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from ..core.dates import utc_now
from ..core.models import DEFAULT_CALORIE_GOAL
from .aggregator import Aggregator
from .auth import AuthClient
from .config import STORE_MEMORY, AppConfig
from .firestore_client import FirestoreLedgerRepository
from .ledger import LedgerResolver
from .memory_store import InMemoryLedgerRepository
from .preferences import PreferenceStore
from .reconciliation import NutritionEstimator, ReconciliationEngine
from .repository import LedgerRepository


logger = logging.getLogger(__name__)


@dataclass
class LedgerServices:
    """The engine components sharing one repository."""

    repository: LedgerRepository
    resolver: LedgerResolver
    preferences: PreferenceStore
    reconciliation: ReconciliationEngine
    aggregator: Aggregator
    auth: AuthClient

    @classmethod
    def create(
        cls,
        repository: LedgerRepository,
        estimator: Optional[NutritionEstimator] = None,
        clock: Callable[[], datetime] = utc_now,
        default_calorie_goal: int = DEFAULT_CALORIE_GOAL,
    ) -> "LedgerServices":
        resolver = LedgerResolver(repository, clock=clock)
        preferences = PreferenceStore(repository, clock=clock)
        auth = AuthClient(repository, default_calorie_goal=default_calorie_goal, clock=clock)
        return cls(
            repository=repository,
            resolver=resolver,
            preferences=preferences,
            reconciliation=ReconciliationEngine(repository, resolver, estimator=estimator, clock=clock),
            aggregator=Aggregator(repository, resolver, preferences, clock=clock),
            auth=auth,
        )


def build_repository(config: AppConfig) -> LedgerRepository:
    """Repository selected by the configuration."""
    if config.store == STORE_MEMORY:
        logger.warning("Using in-memory store; data is lost on restart")
        return InMemoryLedgerRepository()
    return FirestoreLedgerRepository(config.firestore)


def build_services(config: AppConfig, estimator: Optional[NutritionEstimator] = None) -> LedgerServices:
    """Create the services for a server process."""
    return LedgerServices.create(
        build_repository(config),
        estimator=estimator,
        default_calorie_goal=config.default_calorie_goal,
    )
