"""snaps table

Revision ID: 20261017_000001
Revises:
Create Date: 2026-10-17 00:00:00.000000
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261017_000001"
down_revision = None
branch_labels = None
depends_on = None

snap_type_enum = sa.Enum("story", "direct", name="snap_type")


def upgrade() -> None:
    op.create_table(
        "snaps",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("type", snap_type_enum, nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=True),
        sa.Column("expires_at", sa.String(length=32), nullable=False),
        sa.Column("viewed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("image_url", sa.String(length=2048), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_snaps_user_id", "snaps", ["user_id"])
    op.create_index("ix_snaps_expires_at", "snaps", ["expires_at"])
    op.create_index("ix_snaps_type_expires_at", "snaps", ["type", "expires_at"])


def downgrade() -> None:
    op.drop_index("ix_snaps_type_expires_at", table_name="snaps")
    op.drop_index("ix_snaps_expires_at", table_name="snaps")
    op.drop_index("ix_snaps_user_id", table_name="snaps")
    op.drop_table("snaps")
    snap_type_enum.drop(op.get_bind(), checkfirst=True)
