"""Shared fixtures for shell tests: an in-memory store and a fixed clock."""

from datetime import datetime, timedelta, timezone

import pytest

from nutrilog.shell.memory_store import InMemoryLedgerRepository
from nutrilog.shell.services import LedgerServices


TODAY = "2024-12-28"


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class StubEstimator:
    """Nutrition estimator returning a canned reply."""

    model_name = "stub-vision"

    def __init__(self, reply) -> None:
        self.reply = reply
        self.calls = []

    def estimate(self, source):
        self.calls.append(source)
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


@pytest.fixture
def clock():
    """Clock fixed at noon UTC on TODAY."""
    return FakeClock(datetime(2024, 12, 28, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def repository():
    """Empty in-memory repository."""
    return InMemoryLedgerRepository()


@pytest.fixture
def services(repository, clock):
    """Services over the in-memory repository and fixed clock."""
    return LedgerServices.create(repository, clock=clock)


@pytest.fixture
def user(services):
    """A registered user as (api_key, user_id)."""
    return services.auth.register_user("test@example.com")


@pytest.fixture
def user_id(user):
    return user[1]
