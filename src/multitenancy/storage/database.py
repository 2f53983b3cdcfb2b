"""Async engine, tenant-aware session factory and FastAPI session dependencies."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Any, cast

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from multitenancy.config import Settings
from multitenancy.configuration import TenantConfiguration
from multitenancy.context import RequestTenant
from multitenancy.storage.isolation import (
    REQUEST_TENANT_KEY,
    TenantIsolation,
    tenant_session_class,
)
from multitenancy.storage.orm import Base, Tenant

__all__ = [
    "create_engine",
    "create_session_factory",
    "create_tenant_schema",
    "get_configuration",
    "get_request_tenant",
    "get_session",
    "open_session",
]


def create_engine(settings: Settings, **kwargs: Any) -> AsyncEngine:
    """Create the async engine for ``settings.database_url``."""
    kwargs.setdefault("echo", settings.sqlalchemy_echo)
    return create_async_engine(settings.database_url, **kwargs)


def create_session_factory(
    engine: AsyncEngine,
    isolation: TenantIsolation | None = None,
) -> async_sessionmaker[AsyncSession]:
    """Build an ``async_sessionmaker`` whose sessions carry the isolation hooks.

    Hooks are registered on a Session subclass private to this factory,
    so other sessions in the process are left untouched.
    ``TenantBuilder.build`` later reconfigures them from the configuration.
    """
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        sync_session_class=tenant_session_class(),
    )
    (isolation or TenantIsolation()).attach(session_factory)
    return session_factory


def open_session(
    session_factory: async_sessionmaker[AsyncSession],
    request_tenant: RequestTenant,
) -> AsyncSession:
    """Open a session bound to one unit of work's tenant."""
    return session_factory(info={REQUEST_TENANT_KEY: request_tenant})


async def create_tenant_schema(
    engine: AsyncEngine, configuration: TenantConfiguration
) -> None:
    """Create all tables in ``Base.metadata``.

    The ``tenants`` table is skipped when the host manages it itself.
    """
    tables = [
        table
        for table in Base.metadata.sorted_tables
        if configuration.manage_tenant_entity or table is not Tenant.__table__
    ]
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all, tables=tables)


# ── FastAPI dependencies ────────────────────────────────────────────


async def get_configuration(request: Request) -> TenantConfiguration:
    """Retrieve TenantConfiguration from app state.

    Set by ``create_app`` at construction time.
    """
    return cast(TenantConfiguration, request.app.state.tenant_configuration)


async def get_request_tenant(request: Request) -> RequestTenant:
    """Return the RequestTenant populated by the resolution middleware.

    Requests that bypassed the middleware get an unresolved context.
    """
    request_tenant = getattr(request.state, "request_tenant", None)
    if request_tenant is None:
        request_tenant = RequestTenant()
        request.state.request_tenant = request_tenant
    return cast(RequestTenant, request_tenant)


_get_configuration = Depends(get_configuration)
_get_request_tenant = Depends(get_request_tenant)


async def get_session(
    configuration: TenantConfiguration = _get_configuration,
    request_tenant: RequestTenant = _get_request_tenant,
) -> AsyncGenerator[AsyncSession]:
    """Yield a tenant-scoped session for the duration of the request."""
    async with open_session(configuration.session_factory, request_tenant) as session:
        yield session
