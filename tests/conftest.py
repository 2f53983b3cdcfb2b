"""Shared pytest fixtures."""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from multitenancy.context import RequestTenant
from multitenancy.storage.database import create_session_factory, open_session
from multitenancy.storage.isolation import TenantIsolation
from multitenancy.storage.orm import Base, Tenant
from tests import demo_models  # noqa: F401  registers test tables on Base

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-db",
        action="store_true",
        default=False,
        help="Run tests that require a live PostgreSQL instance",
    )


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    if config.getoption("--run-db"):
        return
    skip_db = pytest.mark.skip(reason="needs --run-db flag")
    for item in items:
        if "requires_db" in item.keywords:
            item.add_marker(skip_db)


# ── In-process database (aiosqlite) ────────────────────────────────


@pytest.fixture()
async def sqlite_engine() -> AsyncGenerator[AsyncEngine]:
    """In-memory SQLite engine with the full schema created.

    StaticPool keeps the single in-memory connection alive across sessions.
    """
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def isolation() -> TenantIsolation:
    return TenantIsolation(clock=lambda: FIXED_NOW)


@pytest.fixture()
def session_factory(
    sqlite_engine: AsyncEngine, isolation: TenantIsolation
) -> async_sessionmaker[AsyncSession]:
    """Tenant-aware session factory bound to the SQLite engine."""
    return create_session_factory(sqlite_engine, isolation)


@pytest.fixture()
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Session without a resolved tenant (tenant administration)."""
    async with open_session(session_factory, RequestTenant()) as session:
        yield session


@pytest.fixture()
async def two_tenants(
    session_factory: async_sessionmaker[AsyncSession],
) -> tuple[Tenant, Tenant]:
    """Two committed Tenant rows."""
    async with session_factory() as session:
        first = Tenant(identifier="tenant-one")
        second = Tenant(identifier="tenant-two")
        session.add_all([first, second])
        await session.commit()
    return first, second
