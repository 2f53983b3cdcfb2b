"""Pydantic schemas for multitenancy domain models."""

from multitenancy.models.tenant import (
    ActionTenantAwareModel,
    TenantAwareModel,
    TenantIdentifierRequest,
    TenantModel,
)

__all__ = [
    "ActionTenantAwareModel",
    "TenantAwareModel",
    "TenantIdentifierRequest",
    "TenantModel",
]
