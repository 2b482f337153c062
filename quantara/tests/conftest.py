"""Shared fixtures: an in-memory database per test and a controllable clock."""

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from quantara.api import get_service
from quantara.config import Settings
from quantara.database import Database
from quantara.main import app
from quantara.service import WellnessService

NOW = datetime(2024, 3, 15, 12, 0, 0)


class FrozenClock:
    """Returns the same instant until advanced."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def database():
    db = Database("sqlite://")
    db.open()
    yield db
    db.close()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def settings():
    return Settings(_env_file=None, database_url="sqlite://")


@pytest.fixture
def service(database, settings, clock):
    return WellnessService(database, settings=settings, clock=clock)


@pytest.fixture
def client(service):
    app.dependency_overrides[get_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()
