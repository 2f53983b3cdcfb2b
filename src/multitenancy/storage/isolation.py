"""Tenant isolation hooks for SQLAlchemy sessions.

Two responsibilities, both registered once per session factory via
:meth:`TenantIsolation.attach`:

* **Query scoping** (``do_orm_execute``): every ORM SELECT, UPDATE and
  DELETE gets ``tenant_id == <current tenant>`` applied to all
  :class:`TenantAwareMixin` classes through ``with_loader_criteria``.
  The current tenant is read from the session's :class:`RequestTenant`
  when the statement executes, not when the hook is installed.
* **Save-time stamping** (``before_flush``): new or modified tenant-aware
  objects without a tenant get the current one; root :class:`Tenant`
  rows get their timestamps refreshed.

The ``RequestTenant`` travels in ``Session.info`` so that each unit of
work sees only its own tenant while the session factory is shared.
Hooks live on a Session subclass owned by the factory; attaching a
second isolation to the same factory replaces the first.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, TypeVar

import structlog
from sqlalchemy import ColumnElement, event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import (
    ORMExecuteState,
    Session,
    UOWTransaction,
    with_loader_criteria,
)
from sqlalchemy.sql import Executable

from multitenancy.context import RequestTenant
from multitenancy.errors import TenantConfigurationError
from multitenancy.storage.orm import Tenant, TenantAwareMixin, is_empty_tenant_id

if TYPE_CHECKING:
    from multitenancy.configuration import TenantConfiguration

logger = structlog.get_logger()

INCLUDE_ALL_TENANTS = "include_all_tenants"
REQUEST_TENANT_KEY = "request_tenant"

# Class attribute marking a Session subclass as carrying isolation hooks.
_ISOLATION_ATTR = "_tenant_isolation"

ExecutableT = TypeVar("ExecutableT", bound=Executable)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def current_request_tenant(session: Session) -> RequestTenant:
    """Return the session's RequestTenant, or an unresolved one.

    A session opened without a tenant scopes to the empty id, which
    matches no rows.
    """
    request_tenant = session.info.get(REQUEST_TENANT_KEY)
    if request_tenant is None:
        return RequestTenant()
    return request_tenant  # type: ignore[no-any-return]


def unscoped(statement: ExecutableT) -> ExecutableT:
    """Mark a statement as exempt from tenant scoping (administrative reads)."""
    return statement.execution_options(**{INCLUDE_ALL_TENANTS: True})


def tenant_criteria(
    cls: type[TenantAwareMixin], request_tenant: RequestTenant
) -> ColumnElement[bool]:
    """Explicit scoping predicate.

    For statements run ``unscoped`` or on sessions without isolation hooks.
    """
    return cls.tenant_id == request_tenant.tenant_id


def tenant_session_class(base: type[Session] = Session) -> type[Session]:
    """Fresh Session subclass to carry one factory's isolation hooks."""
    return type("TenantSession", (base,), {_ISOLATION_ATTR: None})


def installed_isolation(session_class: type[Session]) -> TenantIsolation | None:
    """The isolation installed directly on ``session_class``, if any."""
    return session_class.__dict__.get(_ISOLATION_ATTR)  # type: ignore[no-any-return]


class TenantIsolation:
    """Query scoping and save-time stamping for tenant-aware models."""

    def __init__(
        self,
        *,
        clock: Callable[[], datetime] = _utcnow,
        manage_tenant_entity: bool = True,
    ) -> None:
        self._clock = clock
        self._manage_tenant_entity = manage_tenant_entity

    @classmethod
    def from_configuration(cls, configuration: TenantConfiguration) -> TenantIsolation:
        return cls(
            clock=configuration.clock,
            manage_tenant_entity=configuration.manage_tenant_entity,
        )

    @property
    def manage_tenant_entity(self) -> bool:
        return self._manage_tenant_entity

    def attach(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Install on the factory's own Session subclass.

        A factory without one gets a subclass of its current sync session
        class, so sessions from other factories are never affected.
        """
        session_class = session_factory.kw.get("sync_session_class") or Session
        if _ISOLATION_ATTR not in session_class.__dict__:
            session_class = tenant_session_class(session_class)
            session_factory.configure(sync_session_class=session_class)
        self.install(session_class)

    def install(self, session_class: type[Session]) -> None:
        """Register both hooks on a Session subclass, replacing earlier ones."""
        if session_class is Session:
            raise TenantConfigurationError(
                "Isolation hooks must be installed on a Session subclass."
            )
        previous = installed_isolation(session_class)
        if previous is self:
            return
        if previous is not None:
            previous.uninstall(session_class)

        event.listen(session_class, "do_orm_execute", self.scope_query)
        event.listen(session_class, "before_flush", self.stamp)
        setattr(session_class, _ISOLATION_ATTR, self)
        logger.debug(
            "tenant_isolation_installed",
            target=session_class.__name__,
            manage_tenant_entity=self._manage_tenant_entity,
        )

    def uninstall(self, session_class: type[Session]) -> None:
        if installed_isolation(session_class) is not self:
            return
        event.remove(session_class, "do_orm_execute", self.scope_query)
        event.remove(session_class, "before_flush", self.stamp)
        setattr(session_class, _ISOLATION_ATTR, None)

    # ── Query scoping ───────────────────────────────────────────────

    def scope_query(self, orm_execute_state: ORMExecuteState) -> None:
        """Attach the tenant predicate to an ORM statement about to run."""
        if not (
            orm_execute_state.is_select
            or orm_execute_state.is_update
            or orm_execute_state.is_delete
        ):
            return
        # Refreshes of loaded rows and lazy loads inherit the criteria
        # from the statement that loaded the parent.
        if orm_execute_state.is_column_load or orm_execute_state.is_relationship_load:
            return
        if orm_execute_state.execution_options.get(INCLUDE_ALL_TENANTS, False):
            return

        tenant_id = current_request_tenant(orm_execute_state.session).tenant_id
        orm_execute_state.statement = orm_execute_state.statement.options(
            with_loader_criteria(
                TenantAwareMixin,
                lambda cls: cls.tenant_id == tenant_id,
                include_aliases=True,
            )
        )

    # ── Save-time stamping ──────────────────────────────────────────

    def stamp(
        self,
        session: Session,
        flush_context: UOWTransaction,
        instances: object,
    ) -> None:
        """Assign tenant ids and tenant timestamps before a flush."""
        tenant_id = current_request_tenant(session).tenant_id

        for obj in session.new:
            if isinstance(obj, TenantAwareMixin):
                self._assign_tenant(obj, tenant_id)
            elif isinstance(obj, Tenant) and self._manage_tenant_entity:
                obj.created_at = self._clock()
                obj.updated_at = None

        for obj in session.dirty:
            if not session.is_modified(obj):
                continue
            if isinstance(obj, TenantAwareMixin):
                self._assign_tenant(obj, tenant_id)
            elif isinstance(obj, Tenant) and self._manage_tenant_entity:
                obj.updated_at = self._clock()

    @staticmethod
    def _assign_tenant(obj: TenantAwareMixin, tenant_id: uuid.UUID) -> None:
        # An explicit tenant is never overwritten.
        if is_empty_tenant_id(obj.tenant_id):
            obj.tenant_id = tenant_id
