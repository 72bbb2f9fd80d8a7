"""
Pytest fixtures for SkillChain tests. Each test gets its own temporary SQLite
database, fake ledger, fake AI generator and fake minter.
"""

from __future__ import annotations

import os
import tempfile

# Keep the default engine away from backend/data during tests
os.environ.setdefault("DATABASE_URL", f"sqlite:///{tempfile.mkdtemp()}/skillchain-default.db")
os.environ.setdefault("LOG_FORMAT", "console")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from sqlalchemy.orm import sessionmaker

from factories import TREASURY, FakeGenerator, FakeLedger, FakeMinter


@pytest.fixture
def settings():
    from skillchain.config import Settings

    return Settings(
        TREASURY_WALLET=TREASURY,
        TEST_PRICE_LAMPORTS=1_000_000_000,
        PAYMENT_TOLERANCE=0.95,
        GEMINI_API_KEY="",
        MINTER_URL="",
        MINT_TIMEOUT_SECONDS=1.0,
    )


@pytest.fixture
def sql_storage(tmp_path):
    from skillchain.database import create_db_engine, init_db
    from skillchain.storage import SQLStorage

    engine = create_db_engine(f"sqlite:///{tmp_path / 'skillchain.db'}", timeout=30.0)
    init_db(bind=engine)
    yield SQLStorage(sessionmaker(autocommit=False, autoflush=False, bind=engine))
    engine.dispose()


@pytest.fixture
def memory_storage():
    from skillchain.storage import MemoryStorage

    return MemoryStorage()


@pytest.fixture(params=["memory", "sql"])
def storage(request):
    """Runs the test once per storage backend."""
    return request.getfixturevalue(f"{request.param}_storage")


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def minter():
    return FakeMinter()


@pytest.fixture
def client(sql_storage, ledger, generator, minter, settings):
    """FastAPI TestClient wired to the fakes above through dependency overrides."""
    from fastapi.testclient import TestClient

    from skillchain import dependencies
    from skillchain.config import get_settings
    from skillchain.main import app
    from skillchain.utils.rate_limiter import reset_rate_limits

    reset_rate_limits()
    app.dependency_overrides[dependencies.get_storage] = lambda: sql_storage
    app.dependency_overrides[dependencies.get_ledger_client] = lambda: ledger
    app.dependency_overrides[dependencies.get_question_generator] = lambda: generator
    app.dependency_overrides[dependencies.get_minter] = lambda: minter
    app.dependency_overrides[get_settings] = lambda: settings

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    reset_rate_limits()
