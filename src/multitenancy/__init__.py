"""Tenant resolution and tenant isolation for FastAPI + SQLAlchemy services."""

from multitenancy.configuration import TenantBuilder, TenantConfiguration
from multitenancy.context import RequestTenant
from multitenancy.errors import (
    TenantAlreadyExistsError,
    TenantConfigurationError,
    TenantError,
    TenantNotFoundError,
    TenantOperationError,
)
from multitenancy.storage.isolation import TenantIsolation, unscoped
from multitenancy.storage.orm import EMPTY_TENANT_ID, Base, Tenant, TenantAwareMixin

__all__ = [
    "EMPTY_TENANT_ID",
    "Base",
    "RequestTenant",
    "Tenant",
    "TenantAlreadyExistsError",
    "TenantAwareMixin",
    "TenantBuilder",
    "TenantConfiguration",
    "TenantConfigurationError",
    "TenantError",
    "TenantIsolation",
    "TenantNotFoundError",
    "TenantOperationError",
    "unscoped",
]
