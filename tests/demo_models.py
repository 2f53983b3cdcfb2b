"""Tenant-aware models used only by the test suite."""

import uuid

from sqlalchemy import ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from multitenancy.storage.orm import Base, TenantAwareMixin


class Project(TenantAwareMixin, Base):
    __tablename__ = "test_projects"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100))

    notes: Mapped[list["Note"]] = relationship(back_populates="project")


class Note(TenantAwareMixin, Base):
    __tablename__ = "test_notes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(100))
    project_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("test_projects.id")
    )

    project: Mapped[Project | None] = relationship(back_populates="notes")
