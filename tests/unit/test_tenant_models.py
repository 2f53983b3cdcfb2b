"""Tests for tenant pydantic projections."""

import uuid
from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from multitenancy.models.tenant import (
    ActionTenantAwareModel,
    TenantAwareModel,
    TenantIdentifierRequest,
    TenantModel,
)
from multitenancy.storage.orm import EMPTY_TENANT_ID, Tenant


class TestTenantModel:
    def test_from_orm_row(self) -> None:
        now = datetime.now(UTC)
        row = Tenant(
            id=uuid.uuid4(),
            identifier="acme",
            created_at=now,
            updated_at=None,
            deleted=False,
        )

        model = TenantModel.model_validate(row)

        assert model.id == row.id
        assert model.identifier == "acme"
        assert model.created_at == now
        assert model.updated_at is None
        assert model.deleted is False


class TestTenantAwareModels:
    def test_tenant_aware_defaults_to_empty(self) -> None:
        assert TenantAwareModel().tenant_id == EMPTY_TENANT_ID

    def test_action_model_accepts_tenant(self) -> None:
        tenant_id = uuid.uuid4()
        assert ActionTenantAwareModel(tenant_id=tenant_id).tenant_id == tenant_id

    def test_action_model_rejects_empty_tenant(self) -> None:
        with pytest.raises(ValidationError, match="Tenant ID cannot be empty"):
            ActionTenantAwareModel(tenant_id=EMPTY_TENANT_ID)

    def test_action_model_requires_tenant(self) -> None:
        with pytest.raises(ValidationError):
            ActionTenantAwareModel()  # type: ignore[call-arg]


class TestTenantIdentifierRequest:
    @pytest.mark.parametrize("identifier", ["", "x" * 201])
    def test_length_bounds(self, identifier: str) -> None:
        with pytest.raises(ValidationError):
            TenantIdentifierRequest(identifier=identifier)

    def test_max_length_accepted(self) -> None:
        assert len(TenantIdentifierRequest(identifier="x" * 200).identifier) == 200
