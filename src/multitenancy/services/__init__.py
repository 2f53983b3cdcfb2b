"""Application services."""

from multitenancy.services.tenant_service import TenantService

__all__ = ["TenantService"]
