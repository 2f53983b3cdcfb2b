"""TenantService against PostgreSQL and the migrated schema."""

import uuid

import pytest
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession

from multitenancy.errors import TenantAlreadyExistsError, TenantNotFoundError
from multitenancy.services.tenant_service import TenantService
from multitenancy.storage.orm import Tenant

pytestmark = pytest.mark.requires_db


def _identifier() -> str:
    return f"it-{uuid.uuid4().hex[:8]}"


class TestTenantServiceDb:
    async def test_create_and_get(self, pg_session: AsyncSession) -> None:
        service = TenantService(pg_session)
        identifier = _identifier()

        created = await service.create(identifier)
        fetched = await service.get(created.id)

        assert fetched.identifier == identifier
        assert fetched.created_at.tzinfo is not None

    async def test_duplicate_rejected(self, pg_session: AsyncSession) -> None:
        service = TenantService(pg_session)
        identifier = _identifier()
        await service.create(identifier)

        with pytest.raises(TenantAlreadyExistsError):
            await service.create(identifier)

    async def test_partial_index_rejects_active_duplicate(
        self, pg_session: AsyncSession
    ) -> None:
        """The database refuses a duplicate even when the service check is skipped."""
        service = TenantService(pg_session)
        identifier = _identifier()
        await service.create(identifier)

        pg_session.add(Tenant(identifier=identifier))
        with pytest.raises(TenantAlreadyExistsError):
            await service._commit(identifier)

    async def test_deleted_identifier_reusable(self, pg_session: AsyncSession) -> None:
        service = TenantService(pg_session)
        identifier = _identifier()
        first = await service.create(identifier)
        await service.delete(first.id)

        second = await service.create(identifier)

        assert second.id != first.id
        with pytest.raises(TenantNotFoundError):
            await service.get(first.id)

    async def test_many_deleted_rows_share_identifier(
        self, pg_session: AsyncSession
    ) -> None:
        identifier = _identifier()
        await pg_session.execute(
            insert(Tenant),
            [
                {"id": uuid.uuid4(), "identifier": identifier, "deleted": True},
                {"id": uuid.uuid4(), "identifier": identifier, "deleted": True},
            ],
        )
        await pg_session.commit()

        created = await TenantService(pg_session).create(identifier)
        assert created.identifier == identifier
