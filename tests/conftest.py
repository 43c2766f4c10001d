import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from app.core.config import settings
from app.core.database import Database, get_database
from app.main import app


@pytest.fixture(autouse=True)
def open_gates(monkeypatch):
    """Start every test with both auth gates disabled"""
    monkeypatch.setattr(settings, "ingest_token", None)
    monkeypatch.setattr(settings, "ingest_token_required", False)
    monkeypatch.setattr(settings, "dashboard_basic_auth_user", None)
    monkeypatch.setattr(settings, "dashboard_basic_auth_pass", None)


@pytest_asyncio.fixture
async def test_db(tmp_path):
    # File-backed so concurrent dashboard sessions see the same data
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'events.db'}")
    await database.initialize()
    yield database
    await database.dispose()


@pytest_asyncio.fixture
async def client(test_db):
    app.dependency_overrides[get_database] = lambda: test_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
