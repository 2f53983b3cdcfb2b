"""Shared fixtures for integration tests requiring live PostgreSQL."""

from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from multitenancy.config import get_settings
from multitenancy.context import RequestTenant
from multitenancy.storage.database import (
    create_engine,
    create_session_factory,
    open_session,
)
from multitenancy.storage.orm import Tenant

# ── Engine ──────────────────────────────────────────────────────────


@pytest.fixture()
async def pg_engine() -> AsyncGenerator[AsyncEngine]:
    """Create an async engine from settings."""
    engine = create_engine(get_settings(), pool_size=5, max_overflow=0)
    yield engine
    await engine.dispose()


@pytest.fixture()
def pg_session_factory(pg_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(pg_engine)


# ── Committed rows with DELETE cleanup ─────────────────────────────


@pytest.fixture()
async def pg_session(
    pg_session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Session whose tenants are removed after the test.

    TenantService commits, so savepoint rollback is not enough here.
    Identifiers created by tests must start with ``it-``.
    """
    async with open_session(pg_session_factory, RequestTenant()) as session:
        yield session

    async with pg_session_factory() as cleanup:
        await cleanup.execute(delete(Tenant).where(Tenant.identifier.like("it-%")))
        await cleanup.commit()
