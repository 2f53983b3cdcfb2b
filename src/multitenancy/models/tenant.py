"""Public projections of tenants and tenant-aware payloads."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from multitenancy.storage.orm import EMPTY_TENANT_ID


class TenantModel(BaseModel):
    """Public projection of a Tenant row."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    identifier: str
    created_at: datetime
    updated_at: datetime | None = None
    deleted: bool = False


class TenantAwareModel(BaseModel):
    """Payload carrying a tenant id; the id may still be empty."""

    tenant_id: uuid.UUID = EMPTY_TENANT_ID


class ActionTenantAwareModel(BaseModel):
    """Payload for actions that must target a concrete tenant."""

    tenant_id: uuid.UUID

    @field_validator("tenant_id")
    @classmethod
    def _reject_empty(cls, value: uuid.UUID) -> uuid.UUID:
        if value == EMPTY_TENANT_ID:
            raise ValueError("Tenant ID cannot be empty")
        return value


class TenantIdentifierRequest(BaseModel):
    """Request body for tenant create and rename."""

    identifier: str = Field(..., min_length=1, max_length=200)
