"""Pytest configuration and fixtures."""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from opentelemetry import trace

from subnetly.main import app
from subnetly.api.deps import get_db
from subnetly.models import Device, Subnet
from subnetly.store import InventoryStore

# One in-memory database per test; StaticPool keeps the single connection alive
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

SITE_ID = 1


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    # Create session
    async_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    # Provide session
    async with async_session_maker() as session:
        yield session

    # Drop tables
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)

    # Dispose engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def store(db_session: AsyncSession) -> InventoryStore:
    """Inventory store bound to the test session."""
    return InventoryStore(db_session)


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with a test database session."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def test_subnet(store: InventoryStore) -> Subnet:
    """A 10.0.0.0/24 subnet with gateway .1 in the default site."""
    return await store.create_subnet(
        Subnet(
            site_id=SITE_ID,
            prefix="10.0.0.0",
            mask=24,
            gateway="10.0.0.1",
            role="production",
            description="Test LAN",
        )
    )


@pytest_asyncio.fixture(scope="function")
async def test_device(store: InventoryStore) -> Device:
    """An unbound device in the default site."""
    return await store.create_device(Device(site_id=SITE_ID, name="nas-01"))


@pytest.fixture(scope="session", autouse=True)
def shutdown_tracer_provider():
    """Shutdown OpenTelemetry TracerProvider after all tests complete.

    This fixture ensures that the BatchSpanProcessor's background thread
    is properly shut down before pytest closes stdout/stderr, preventing
    "I/O operation on closed file" errors.
    """
    yield

    tracer_provider = trace.get_tracer_provider()
    if hasattr(tracer_provider, "force_flush"):
        # Flush pending spans first
        tracer_provider.force_flush(timeout_millis=5000)
    if hasattr(tracer_provider, "shutdown"):
        # Then shutdown the provider
        tracer_provider.shutdown()
