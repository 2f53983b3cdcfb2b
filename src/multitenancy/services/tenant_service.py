"""Lifecycle operations on the root Tenant entity.

Tenants are not tenant-scoped themselves, so the service works on the
session directly. Every lookup ignores soft-deleted rows; a tenant moves
from active to deleted once and never back.
"""

from __future__ import annotations

import re
import uuid
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import structlog
from faker import Faker
from sqlalchemy import inspect, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from multitenancy.errors import (
    TenantAlreadyExistsError,
    TenantError,
    TenantNotFoundError,
    TenantOperationError,
)
from multitenancy.models.tenant import TenantModel
from multitenancy.storage.orm import Tenant

logger = structlog.get_logger()

_WHITESPACE = re.compile(r"\s+")


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TenantService:
    """Create, read, rename and soft-delete tenants."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        faker: Faker | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._session = session
        self._faker = faker or Faker()
        self._clock = clock or _utcnow

    async def create(self, identifier: str) -> TenantModel:
        """Create a tenant with a fresh id.

        Raises:
            TenantAlreadyExistsError: a non-deleted tenant has ``identifier``.
            TenantOperationError: the row was not persisted.
        """
        async with self._operation(f"Failed to create tenant '{identifier}'"):
            if await self._find_active(identifier) is not None:
                raise TenantAlreadyExistsError(identifier)

            tenant = Tenant(identifier=identifier, deleted=False)
            self._session.add(tenant)
            await self._commit(identifier)

            if not inspect(tenant).persistent:
                raise TenantOperationError("Failed to create tenant")

            logger.info("tenant_created", tenant_id=str(tenant.id), identifier=identifier)
            return TenantModel.model_validate(tenant)

    async def find_by_identifier(self, identifier: str) -> TenantModel:
        """Look up a non-deleted tenant by identifier."""
        async with self._operation(
            f"Failed to find tenant with identifier '{identifier}'"
        ):
            tenant = await self._find_active(identifier)
            if tenant is None:
                raise TenantNotFoundError(identifier=identifier)
            return TenantModel.model_validate(tenant)

    async def get(self, tenant_id: uuid.UUID) -> TenantModel:
        """Get a non-deleted tenant by id."""
        async with self._operation(f"Failed to get tenant with Id '{tenant_id}'"):
            tenant = await self._get_active(tenant_id)
            return TenantModel.model_validate(tenant)

    async def get_by_identifier(self, identifier: str) -> TenantModel:
        """Get a non-deleted tenant by identifier."""
        async with self._operation(
            f"Failed to get tenant with Identifier '{identifier}'"
        ):
            tenant = await self._find_active(identifier)
            if tenant is None:
                raise TenantNotFoundError(identifier=identifier)
            return TenantModel.model_validate(tenant)

    async def list_active(self) -> list[TenantModel]:
        """All non-deleted tenants, ordered by identifier."""
        async with self._operation("Failed to list tenants"):
            stmt = (
                select(Tenant)
                .where(Tenant.deleted.is_(False))
                .order_by(Tenant.identifier)
            )
            result = await self._session.execute(stmt)
            return [TenantModel.model_validate(t) for t in result.scalars().all()]

    async def update(self, tenant_id: uuid.UUID, new_identifier: str) -> TenantModel:
        """Rename a tenant and refresh its ``updated_at``.

        Raises:
            TenantNotFoundError: tenant absent or soft-deleted.
            TenantAlreadyExistsError: another non-deleted tenant holds
                ``new_identifier``.
            TenantOperationError: the row was not persisted.
        """
        async with self._operation(f"Failed to update tenant '{tenant_id}'"):
            tenant = await self._get_active(tenant_id)

            existing = await self._find_active(new_identifier)
            if existing is not None and existing.id != tenant.id:
                raise TenantAlreadyExistsError(new_identifier)

            tenant.identifier = new_identifier
            tenant.updated_at = self._clock()
            await self._commit(new_identifier)

            if not inspect(tenant).persistent:
                raise TenantOperationError("Failed to update tenant")

            logger.info(
                "tenant_updated", tenant_id=str(tenant_id), identifier=new_identifier
            )
            return TenantModel.model_validate(tenant)

    async def delete(self, tenant_id: uuid.UUID) -> bool:
        """Soft-delete a tenant and refresh its ``updated_at``.

        Raises:
            TenantNotFoundError: tenant absent or already deleted.
        """
        async with self._operation(f"Failed to delete tenant '{tenant_id}'"):
            tenant = await self._get_active(tenant_id)
            tenant.deleted = True
            tenant.updated_at = self._clock()
            await self._commit(tenant.identifier)

            logger.info("tenant_deleted", tenant_id=str(tenant_id))
            return bool(inspect(tenant).persistent and tenant.deleted)

    def get_random_identifier(self) -> str:
        """Plausible identifier candidate; uniqueness is decided by ``create``."""
        job_area = self._faker.job().split(",")[0]
        parts = [
            self._faker.city(),
            self._faker.street_name(),
            self._faker.first_name(),
            job_area.strip(),
        ]
        return _WHITESPACE.sub("", "-".join(parts))

    # ── Internals ───────────────────────────────────────────────────

    async def _find_active(self, identifier: str) -> Tenant | None:
        stmt = select(Tenant).where(
            Tenant.identifier == identifier,
            Tenant.deleted.is_(False),
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def _get_active(self, tenant_id: uuid.UUID) -> Tenant:
        stmt = select(Tenant).where(
            Tenant.id == tenant_id,
            Tenant.deleted.is_(False),
        )
        result = await self._session.execute(stmt)
        tenant = result.scalar_one_or_none()
        if tenant is None:
            raise TenantNotFoundError(tenant_id=tenant_id)
        return tenant

    async def _commit(self, identifier: str) -> None:
        # The partial unique index is the final arbiter for concurrent writers.
        try:
            await self._session.commit()
        except IntegrityError as exc:
            await self._session.rollback()
            raise TenantAlreadyExistsError(identifier) from exc

    @asynccontextmanager
    async def _operation(self, message: str) -> AsyncIterator[None]:
        try:
            yield
        except TenantError:
            raise
        except Exception as exc:
            logger.error("tenant_operation_failed", message=message, exc_info=exc)
            await self._session.rollback()
            raise TenantOperationError(message, cause=exc) from exc
