import os

os.environ.setdefault("SHOPIFY_WEBHOOK_SECRET", "test-webhook-secret")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import httpx
import pytest
import pytest_asyncio

import get_env_values
from src.database.database import DatabaseManager, get_db_manager
from src.reconciliation.engine import ReconciliationEngine
from payloads import WEBHOOK_SECRET


@pytest.fixture(autouse=True)
def webhook_settings(monkeypatch):
    monkeypatch.setattr(get_env_values, "WEBHOOK_SECRET", WEBHOOK_SECRET)
    monkeypatch.setattr(get_env_values, "REQUIRE_WEBHOOK_SIGNATURE", False)
    monkeypatch.setattr(get_env_values, "DEFAULT_CURRENCY", "BRL")


async def _make_db_manager(path):
    manager = DatabaseManager(f"sqlite+aiosqlite:///{path}")
    await manager.init_db()
    return manager


@pytest_asyncio.fixture
async def db_manager(tmp_path):
    manager = await _make_db_manager(tmp_path / "cache.db")
    yield manager
    await manager.dispose()


@pytest_asyncio.fixture
async def other_db_manager(tmp_path):
    """A second, independent cache for comparing delivery orders."""
    manager = await _make_db_manager(tmp_path / "cache_other.db")
    yield manager
    await manager.dispose()


@pytest.fixture
def engine(db_manager):
    return ReconciliationEngine(db_manager, default_currency="BRL")


@pytest_asyncio.fixture
async def client(db_manager):
    from main import app

    app.dependency_overrides[get_db_manager] = lambda: db_manager
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http_client:
        yield http_client
    app.dependency_overrides.clear()
