import os

# Keep test runs from writing app.log or picking up a developer's database
os.environ["LOG_FILE"] = ""
os.environ.pop("DATABASE_URL", None)
os.environ.pop("OPENROUTER_API_KEY", None)

import random

import pytest
from fastapi.testclient import TestClient

from dating_sim.core.config import Settings
from dating_sim.database import build_engine, build_session_factory, create_tables
from dating_sim.main import create_app
from dating_sim.services.conversation import CannedResponseGateway, GatewaySelector
from dating_sim.services.memory_storage import MemoryStorage
from dating_sim.services.sql_storage import SqlStorage


@pytest.fixture
def sql_storage():
    """SqlStorage over a fresh in-memory SQLite database."""
    engine = build_engine("sqlite://")
    create_tables(engine)
    db = build_session_factory(engine)()
    try:
        yield SqlStorage(db=db)
    finally:
        db.close()
        engine.dispose()


@pytest.fixture
def memory_storage():
    return MemoryStorage()


@pytest.fixture(params=["sql", "memory"])
def storage(request):
    """Every store contract test runs against both backends."""
    return request.getfixturevalue(f"{request.param}_storage")


def make_settings(**overrides) -> Settings:
    values = {"DATABASE_URL": None, "LOG_FILE": "", "OPENROUTER_API_KEY": None, "STATIC_DIR": None}
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def offline_selector():
    return GatewaySelector(offline=CannedResponseGateway(rng=random.Random(1234)))


@pytest.fixture(params=["memory", "sqlite"])
def client(request, offline_selector):
    """TestClient with startup run, against the in-memory store and against SQLite."""
    database_url = "sqlite://" if request.param == "sqlite" else None
    app = create_app(make_settings(DATABASE_URL=database_url), gateway_selector=offline_selector)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def settings_factory():
    return make_settings
