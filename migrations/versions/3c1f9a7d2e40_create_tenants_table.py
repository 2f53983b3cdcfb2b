"""create_tenants_table

Root tenant table with soft delete. Identifier uniqueness only applies
to rows that are not deleted, so a partial unique index is used.

Revision ID: 3c1f9a7d2e40
Revises:
Create Date: 2026-10-18 09:12:44.118203

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3c1f9a7d2e40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create tenants and the partial unique index on identifier."""
    op.create_table(
        "tenants",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("identifier", sa.String(length=200), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "deleted", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "uq_tenants_identifier_active",
        "tenants",
        ["identifier"],
        unique=True,
        postgresql_where=sa.text("deleted = false"),
    )


def downgrade() -> None:
    """Drop tenants."""
    op.drop_index("uq_tenants_identifier_active", table_name="tenants")
    op.drop_table("tenants")
