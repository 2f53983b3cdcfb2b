"""Tenant management API endpoints."""

from __future__ import annotations

import uuid
from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from multitenancy.configuration import TenantConfiguration
from multitenancy.context import RequestTenant
from multitenancy.errors import (
    TenantError,
    TenantNotFoundError,
    TenantOperationError,
)
from multitenancy.models.tenant import TenantIdentifierRequest, TenantModel
from multitenancy.services.tenant_service import TenantService
from multitenancy.storage.database import (
    get_configuration,
    get_request_tenant,
    get_session,
)

logger = structlog.get_logger()

router = APIRouter(tags=["tenants"])

SessionDep = Annotated[AsyncSession, Depends(get_session)]
RequestTenantDep = Annotated[RequestTenant, Depends(get_request_tenant)]
ConfigurationDep = Annotated[TenantConfiguration, Depends(get_configuration)]


def get_tenant_service(
    session: SessionDep, configuration: ConfigurationDep
) -> TenantService:
    return TenantService(session, clock=configuration.clock)


ServiceDep = Annotated[TenantService, Depends(get_tenant_service)]


def _to_http_error(exc: TenantError) -> HTTPException:
    """Map domain errors onto HTTP status codes."""
    if isinstance(exc, TenantNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, TenantOperationError):
        return HTTPException(status_code=500, detail="Tenant operation failed")
    return HTTPException(status_code=400, detail=str(exc))


def _require_current(tenant_id: uuid.UUID, request_tenant: RequestTenant) -> None:
    """Only the caller's own tenant may be modified."""
    if tenant_id != request_tenant.tenant_id:
        logger.warning(
            "tenant_access_denied",
            requested_tenant_id=str(tenant_id),
            current_tenant_id=str(request_tenant.tenant_id),
        )
        raise HTTPException(
            status_code=404, detail=f"Tenant with id '{tenant_id}' was not found."
        )


@router.post("/tenants", status_code=201)
async def create_tenant(
    body: TenantIdentifierRequest,
    request: Request,
    service: ServiceDep,
    configuration: ConfigurationDep,
) -> TenantModel:
    """Create a new tenant."""
    user_id = configuration.current_user_id(request)
    logger.info(
        "tenant_create_requested",
        identifier=body.identifier,
        user_id=str(user_id) if user_id else None,
    )
    try:
        return await service.create(body.identifier)
    except TenantError as exc:
        raise _to_http_error(exc) from exc


@router.get("/tenants")
async def get_current_tenant(
    service: ServiceDep,
    request_tenant: RequestTenantDep,
) -> TenantModel:
    """Return the tenant the request resolved to.

    Raises:
        HTTPException 404: no tenant resolved, or it does not exist.
    """
    if not request_tenant.is_resolved:
        raise HTTPException(status_code=404, detail="No tenant resolved")
    try:
        return await service.get(request_tenant.tenant_id)
    except TenantError as exc:
        raise _to_http_error(exc) from exc


@router.get("/tenants/random-identifier")
async def random_identifier(service: ServiceDep) -> dict[str, str]:
    """Suggest an identifier; collisions surface on create."""
    return {"identifier": service.get_random_identifier()}


@router.put("/tenants/{tenant_id}")
async def update_tenant(
    tenant_id: uuid.UUID,
    body: TenantIdentifierRequest,
    service: ServiceDep,
    request_tenant: RequestTenantDep,
) -> TenantModel:
    """Rename the caller's tenant."""
    _require_current(tenant_id, request_tenant)
    try:
        return await service.update(tenant_id, body.identifier)
    except TenantError as exc:
        raise _to_http_error(exc) from exc


@router.delete("/tenants/{tenant_id}")
async def delete_tenant(
    tenant_id: uuid.UUID,
    service: ServiceDep,
    request_tenant: RequestTenantDep,
) -> dict[str, bool]:
    """Soft-delete the caller's tenant."""
    _require_current(tenant_id, request_tenant)
    try:
        deleted = await service.delete(tenant_id)
    except TenantError as exc:
        raise _to_http_error(exc) from exc
    return {"deleted": deleted}
