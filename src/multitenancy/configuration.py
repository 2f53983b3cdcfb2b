"""Tenant configuration and its startup builder.

Usage::

    configuration = (
        TenantBuilder()
        .with_session_factory(create_session_factory(engine))
        .with_settings(settings)
        .with_current_user_provider(lambda request: request.state.user_id)
        .with_current_tenant_provider(lambda request: request.state.user_tenant_id)
        .build()
    )

The resulting :class:`TenantConfiguration` is frozen and meant to be built
once at startup and handed to ``create_app`` (or any other component)
explicitly. Building it also configures the isolation hooks of the
session factory, so clock and tenant entity options take effect there.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.requests import Request

from multitenancy.config import Settings
from multitenancy.errors import TenantConfigurationError
from multitenancy.storage.isolation import TenantIsolation

logger = structlog.get_logger()

DEFAULT_TENANT_HEADER = "X-Tenant-Id"

IdProvider = Callable[[Request], uuid.UUID | None]


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class TenantConfiguration:
    """Immutable process-wide tenant settings."""

    session_factory: async_sessionmaker[AsyncSession]
    current_user_id: IdProvider
    current_user_tenant_id: IdProvider
    user_type: type[Any] | None = None
    role_type: type[Any] | None = None
    manage_tenant_entity: bool = True
    tenant_header: str = DEFAULT_TENANT_HEADER
    clock: Callable[[], datetime] = _utcnow


class TenantBuilder:
    """Collects tenant settings and validates them in :meth:`build`."""

    def __init__(self) -> None:
        self._session_factory: async_sessionmaker[AsyncSession] | None = None
        self._user_type: type[Any] | None = None
        self._role_type: type[Any] | None = None
        self._current_user_id: IdProvider | None = None
        self._current_user_tenant_id: IdProvider | None = None
        self._manage_tenant_entity = True
        self._tenant_header = DEFAULT_TENANT_HEADER
        self._clock: Callable[[], datetime] = _utcnow

    def with_session_factory(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> TenantBuilder:
        self._session_factory = session_factory
        return self

    def with_user(self, user_type: type[Any]) -> TenantBuilder:
        """Register the host's user model (identity subsystems only)."""
        self._user_type = user_type
        return self

    def with_role(self, role_type: type[Any]) -> TenantBuilder:
        """Register the host's role model (identity subsystems only)."""
        self._role_type = role_type
        return self

    def with_current_user_provider(self, provider: IdProvider) -> TenantBuilder:
        self._current_user_id = provider
        return self

    def with_current_tenant_provider(self, provider: IdProvider) -> TenantBuilder:
        """Register the primary tenant resolver.

        The provider is called once per request with the current request.
        Returning ``None`` or the empty UUID makes resolution fall back to
        the tenant header.
        """
        self._current_user_tenant_id = provider
        return self

    def with_tenant_header(self, header: str) -> TenantBuilder:
        self._tenant_header = header
        return self

    def with_settings(self, settings: Settings) -> TenantBuilder:
        """Take the header name and tenant entity switch from ``Settings``."""
        self._tenant_header = settings.tenant_header
        self._manage_tenant_entity = settings.manage_tenant_entity
        return self

    def with_clock(self, clock: Callable[[], datetime]) -> TenantBuilder:
        self._clock = clock
        return self

    def without_tenant_entity(self) -> TenantBuilder:
        """Leave the ``tenants`` table and its timestamps to the host."""
        self._manage_tenant_entity = False
        return self

    def build(self) -> TenantConfiguration:
        """Validate collected settings and freeze them.

        The session factory's isolation hooks are reinstalled with this
        configuration's clock and tenant entity setting.

        Raises:
            TenantConfigurationError: session factory or a provider is unset.
        """
        logger.info("tenant_configuration_building")

        if self._session_factory is None:
            raise TenantConfigurationError("Session factory must be set.")
        if self._current_user_id is None:
            raise TenantConfigurationError("Current user provider must be set.")
        if self._current_user_tenant_id is None:
            raise TenantConfigurationError("Current tenant provider must be set.")

        logger.info(
            "tenant_configuration_built",
            tenant_header=self._tenant_header,
            manage_tenant_entity=self._manage_tenant_entity,
            user_type=getattr(self._user_type, "__name__", None),
            role_type=getattr(self._role_type, "__name__", None),
        )
        configuration = TenantConfiguration(
            session_factory=self._session_factory,
            current_user_id=self._current_user_id,
            current_user_tenant_id=self._current_user_tenant_id,
            user_type=self._user_type,
            role_type=self._role_type,
            manage_tenant_entity=self._manage_tenant_entity,
            tenant_header=self._tenant_header,
            clock=self._clock,
        )
        if isinstance(self._session_factory, async_sessionmaker):
            TenantIsolation.from_configuration(configuration).attach(
                self._session_factory
            )
        return configuration
