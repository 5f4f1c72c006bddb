import os

# must be set before nido.core.config is imported
os.environ.setdefault("TELEMETRY_ENABLED", "false")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("WOMPI_EVENTS_SECRET", "")
os.environ.setdefault("CRON_SECRET", "")
os.environ.setdefault("RESEND_API_KEY", "")
os.environ.setdefault("INTERNAL_ADMIN_KEY", "test-admin-key")
os.environ.setdefault("INTERNAL_SERVICE_KEY", "test-service-key")

import pytest
import pytest_asyncio
import httpx

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

# Import Base + all models so metadata is complete
from nido.models.base import Base
import nido.models  # noqa: F401

from nido.main import app
from nido.core.db import get_db
from nido.api.v1.endpoints.jobs import get_email_sender

from tests.fixtures_seed import RecordingEmailSender, seed_owner, seed_verified_owner  # noqa: F401


def _test_db_url() -> str:
    return os.getenv("DATABASE_URL_TEST") or "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def async_engine():
    url = _test_db_url()
    if url.startswith("sqlite"):
        # one shared connection, otherwise every session sees its own empty memory DB
        engine = create_async_engine(url, poolclass=StaticPool)
    else:
        engine = create_async_engine(url, pool_pre_ping=True)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def db_session(async_engine):
    session_factory = async_sessionmaker(bind=async_engine, expire_on_commit=False, class_=AsyncSession)
    async with session_factory() as session:
        yield session


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, email_sender: RecordingEmailSender):
    """
    HTTP client that uses the test DB session via dependency override.
    """
    async def _override_get_db():
        yield db_session

    async def _override_sender():
        yield email_sender

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_email_sender] = _override_sender

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
