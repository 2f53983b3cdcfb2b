"""Per-request tenant context."""

from __future__ import annotations

import uuid

from multitenancy.storage.orm import EMPTY_TENANT_ID


class RequestTenant:
    """Resolved tenant for one request or unit of work.

    Written by the resolution middleware, read by query scoping and
    save-time stamping. Each unit of work owns its own instance, so no
    locking is involved.
    """

    def __init__(self, tenant_id: uuid.UUID = EMPTY_TENANT_ID) -> None:
        self._tenant_id = tenant_id

    @property
    def tenant_id(self) -> uuid.UUID:
        return self._tenant_id

    @property
    def is_resolved(self) -> bool:
        return self._tenant_id != EMPTY_TENANT_ID

    def set_tenant_id(self, tenant_id: uuid.UUID) -> None:
        self._tenant_id = tenant_id

    def __repr__(self) -> str:
        return f"RequestTenant(tenant_id={self._tenant_id})"
