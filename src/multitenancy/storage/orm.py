"""SQLAlchemy ORM models for the root tenant entity and tenant-aware records."""

import uuid
from datetime import UTC, datetime

import uuid_utils as uuid7_lib
from sqlalchemy import DateTime, ForeignKey, Index, String, Uuid, text
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    declared_attr,
    mapped_column,
    relationship,
)

EMPTY_TENANT_ID = uuid.UUID(int=0)


def _uuid7() -> uuid.UUID:
    """Generate a UUIDv7 (time-ordered) for use as default PK value."""
    return uuid.UUID(bytes=uuid7_lib.uuid7().bytes)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models.

    Host applications declare their own tenant-aware models on this base
    so that ``tenants`` lives in the same metadata as the foreign keys
    pointing at it.
    """


# ──────────────────────────────────────────────
# Root tenant entity
# ──────────────────────────────────────────────


class Tenant(Base):
    """Root tenant record.

    ``identifier`` is unique among non-deleted rows only; the partial
    index expresses that on both PostgreSQL and SQLite. Rows are never
    removed, ``deleted`` is the soft-delete flag.
    """

    __tablename__ = "tenants"
    __table_args__ = (
        Index(
            "uq_tenants_identifier_active",
            "identifier",
            unique=True,
            postgresql_where=text("deleted = false"),
            sqlite_where=text("deleted = 0"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=_uuid7)
    identifier: Mapped[str] = mapped_column(String(200))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    deleted: Mapped[bool] = mapped_column(default=False)

    def __repr__(self) -> str:
        return f"<Tenant {self.identifier!r} id={self.id} deleted={self.deleted}>"


# ──────────────────────────────────────────────
# Tenant-aware capability
# ──────────────────────────────────────────────


class TenantAwareMixin:
    """Capability mixin for records owned by a tenant.

    Every mapped subclass gets a ``tenant_id`` column and a lookup-only
    ``tenant`` relationship. Inheriting this mixin is what opts a model
    into query scoping and save-time stamping.
    """

    tenant_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("tenants.id", ondelete="RESTRICT"), index=True
    )

    @declared_attr
    def tenant(cls) -> Mapped[Tenant | None]:
        return relationship(Tenant, cascade="merge")


def is_empty_tenant_id(tenant_id: uuid.UUID | None) -> bool:
    """True for ``None`` and the all-zero UUID."""
    return tenant_id is None or tenant_id == EMPTY_TENANT_ID
