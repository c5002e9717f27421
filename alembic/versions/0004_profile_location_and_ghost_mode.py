"""profiles: coordinates, last_seen and ghost mode

Revision ID: 0004
Revises: 0003
Create Date: 2025-03-05 09:00:00

"""
from alembic import op
import sqlalchemy as sa

revision = "0004"
down_revision = "0003"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column("profiles", sa.Column("is_ghost", sa.Boolean(), nullable=False, server_default=sa.text("false")))
    op.add_column("profiles", sa.Column("latitude", sa.Float(), nullable=True))
    op.add_column("profiles", sa.Column("longitude", sa.Float(), nullable=True))
    op.add_column("profiles", sa.Column("last_seen", sa.DateTime(timezone=True), nullable=True))
    op.create_index("ix_profiles_is_ghost", "profiles", ["is_ghost"])
    op.create_index("ix_profiles_last_seen", "profiles", ["last_seen"])


def downgrade() -> None:
    op.drop_index("ix_profiles_last_seen", table_name="profiles")
    op.drop_index("ix_profiles_is_ghost", table_name="profiles")
    op.drop_column("profiles", "last_seen")
    op.drop_column("profiles", "longitude")
    op.drop_column("profiles", "latitude")
    op.drop_column("profiles", "is_ghost")
