"""Domain-specific exceptions for multitenancy."""

from __future__ import annotations

import uuid


class TenantError(Exception):
    """Base class for tenant domain errors."""


class TenantNotFoundError(TenantError):
    """No matching non-deleted tenant."""

    def __init__(
        self,
        *,
        identifier: str | None = None,
        tenant_id: uuid.UUID | None = None,
        user_id: uuid.UUID | None = None,
    ) -> None:
        self.identifier = identifier
        self.tenant_id = tenant_id
        self.user_id = user_id
        if user_id is not None:
            message = f"Tenant '{tenant_id}' not found for user '{user_id}'"
        elif tenant_id is not None:
            message = f"Tenant with id '{tenant_id}' was not found."
        else:
            message = f"Tenant with identifier '{identifier}' was not found."
        super().__init__(message)


class TenantAlreadyExistsError(TenantError):
    """Identifier collides with an existing non-deleted tenant."""

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"Tenant with identifier '{identifier}' already exists")


class TenantOperationError(TenantError):
    """A persist step failed or an unexpected error occurred.

    ``cause`` holds the wrapped exception, when there is one. It is also
    chained as ``__cause__`` by the raising site.
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        self.cause = cause
        super().__init__(f"Failed to perform tenant operation: {message}")


class TenantConfigurationError(Exception):
    """Required builder input missing at startup."""
