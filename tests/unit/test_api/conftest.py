"""Fixtures for API tests: app over the in-process SQLite database."""

from collections.abc import AsyncGenerator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from multitenancy.api.app import create_app
from multitenancy.config import Settings
from multitenancy.configuration import TenantBuilder, TenantConfiguration
from tests.conftest import FIXED_NOW


@pytest.fixture()
def configuration(
    session_factory: async_sessionmaker[AsyncSession],
) -> TenantConfiguration:
    """Header-only resolution: the tenant provider never knows a tenant."""
    return (
        TenantBuilder()
        .with_session_factory(session_factory)
        .with_current_user_provider(lambda request: None)
        .with_current_tenant_provider(lambda request: None)
        .with_clock(lambda: FIXED_NOW)
        .build()
    )


@pytest.fixture()
def app(configuration: TenantConfiguration) -> FastAPI:
    return create_app(
        configuration,
        settings=Settings(environment="testing", _env_file=None),  # type: ignore[arg-type]
    )


@pytest.fixture()
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
