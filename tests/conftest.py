"""Shared fixtures: an in-memory SQLite database and an in-process HTTP client."""
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from services.tracking_service.app import create_app
from shared.config import Settings
from shared.database import Database


@pytest.fixture
def settings():
    return Settings(
        database_dsn="sqlite+aiosqlite:///:memory:",
        db_connect_attempts=1,
        tracking_id_max_attempts=3,
    )


@pytest_asyncio.fixture
async def database(settings):
    db = Database(settings.database_url)
    await db.create_tables()
    yield db
    await db.close()


@pytest_asyncio.fixture
async def session(database):
    async with database.session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def app(settings):
    app = create_app(settings)
    await app.state.database.create_tables()
    yield app
    await app.state.database.close()


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
