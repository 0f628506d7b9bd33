import os
from typing import AsyncGenerator

# Settings are read at import time, so the test environment goes first.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["TRUST_CLIENT_PAYMENT_CLAIMS"] = "false"
os.environ.setdefault("ENVIRONMENT", "local")
os.environ.setdefault("SUPABASE_URL", "http://supabase.test")
os.environ.setdefault("SUPABASE_ANON_KEY", "anon-key")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "service-role-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("PAYSTACK_SECRET_KEY", "sk_test_secret")
os.environ.setdefault("PAYSTACK_PUBLIC_KEY", "pk_test_public")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

from libs.common.config import Settings, get_settings
from libs.db.base import Base
from libs.db.config import create_session_factory
from libs.db.session import get_async_db
from services.earnings_service import models as _earnings_models  # noqa: F401
from services.earnings_service.app.main import app
from services.earnings_service.dependencies import (
    get_identity_gateway,
    get_paystack_client,
    get_storage,
)
from tests.factories import FakeIdentityGateway, FakePaystack, FakeStorage


@pytest.fixture
def settings() -> Settings:
    """
    The cached settings object that routes receive.

    Tests may change fields on it; they are restored afterwards.
    """
    current = get_settings()
    snapshot = current.model_dump()
    yield current
    for key, value in snapshot.items():
        setattr(current, key, value)


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """A fresh SQLite database per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'earnings.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return create_session_factory(test_engine)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for arranging data and asserting on it."""
    session = session_factory()
    try:
        yield session
    finally:
        await session.close()


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------


@pytest.fixture
def identity() -> FakeIdentityGateway:
    return FakeIdentityGateway()


@pytest.fixture
def paystack(settings) -> FakePaystack:
    return FakePaystack(settings.PAYSTACK_SECRET_KEY)


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest_asyncio.fixture
async def client(
    session_factory, identity, paystack, storage
) -> AsyncGenerator[AsyncClient, None]:
    """
    AsyncClient against the app with the database and outbound clients replaced.

    Every request gets its own session, as in production.
    """

    async def _get_test_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_db] = _get_test_db
    app.dependency_overrides[get_identity_gateway] = lambda: identity
    app.dependency_overrides[get_paystack_client] = lambda: paystack
    app.dependency_overrides[get_storage] = lambda: storage

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
