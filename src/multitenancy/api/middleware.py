"""Tenant resolution and request logging middleware."""

from __future__ import annotations

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from multitenancy.configuration import TenantConfiguration
from multitenancy.context import RequestTenant
from multitenancy.storage.orm import is_empty_tenant_id

logger = structlog.get_logger()


class TenantResolutionMiddleware(BaseHTTPMiddleware):
    """Resolve the tenant of each request into a fresh RequestTenant.

    The configured tenant provider is asked first; when it yields nothing
    the tenant header is parsed instead. An unresolved request is not an
    error: it proceeds with the empty tenant, which scopes every
    tenant-aware query to no rows.
    """

    def __init__(self, app: ASGIApp, *, configuration: TenantConfiguration) -> None:
        super().__init__(app)
        self._configuration = configuration

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_tenant = RequestTenant()
        request.state.request_tenant = request_tenant

        tenant_id, source = self.resolve(request)
        if tenant_id is not None:
            request_tenant.set_tenant_id(tenant_id)

        logger.debug(
            "tenant_resolved",
            tenant_id=str(request_tenant.tenant_id),
            source=source,
        )
        with structlog.contextvars.bound_contextvars(
            tenant_id=str(request_tenant.tenant_id)
        ):
            return await call_next(request)

    def resolve(self, request: Request) -> tuple[uuid.UUID | None, str]:
        """Return the resolved tenant id and where it came from.

        Exceptions raised by the provider propagate to the host.
        """
        tenant_id = self._configuration.current_user_tenant_id(request)
        if not is_empty_tenant_id(tenant_id):
            return tenant_id, "provider"

        tenant_id = self._tenant_from_header(request)
        if not is_empty_tenant_id(tenant_id):
            return tenant_id, "header"

        return None, "none"

    def _tenant_from_header(self, request: Request) -> uuid.UUID | None:
        raw = request.headers.get(self._configuration.tenant_header)
        if not raw:
            return None
        try:
            return uuid.UUID(raw.strip())
        except ValueError:
            logger.debug("tenant_header_invalid", header=self._configuration.tenant_header)
            return None


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One ``http_request`` event per request, after the response is built.

    Runs inside tenant resolution, so the event inherits the bound
    ``tenant_id``; ``tenant_resolved`` makes anonymous traffic easy to
    filter. Probe and docs paths are not logged.
    """

    QUIET_PATHS: frozenset[str] = frozenset(
        {"/health", "/docs", "/openapi.json", "/redoc"}
    )

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.QUIET_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        request_tenant: RequestTenant | None = getattr(
            request.state, "request_tenant", None
        )
        logger.info(
            "http_request",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            latency_ms=round((time.perf_counter() - started) * 1000),
            tenant_resolved=bool(request_tenant and request_tenant.is_resolved),
        )
        return response
