"""Add a unique readable slug to properties.

Revision ID: 20261018_0002
Revises: 20261017_0001
Create Date: 2026-10-18 08:30:00
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20261018_0002"
down_revision: str | None = "20261017_0001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade schema."""

    op.add_column("properties", sa.Column("slug", sa.String(length=120), nullable=True))
    # Rows created before slugs existed keep a stable id-based slug.
    op.execute("UPDATE properties SET slug = 'property-' || id WHERE slug IS NULL")
    with op.batch_alter_table("properties") as batch_op:
        batch_op.alter_column("slug", existing_type=sa.String(length=120), nullable=False)
        batch_op.create_unique_constraint("uq_properties_slug", ["slug"])


def downgrade() -> None:
    """Downgrade schema."""

    with op.batch_alter_table("properties") as batch_op:
        batch_op.drop_constraint("uq_properties_slug", type_="unique")
        batch_op.drop_column("slug")
