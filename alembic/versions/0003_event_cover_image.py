"""events.cover_image_url

Revision ID: 0003
Revises: 0002
Create Date: 2025-02-20 10:15:00

"""
from alembic import op
import sqlalchemy as sa

revision = "0003"
down_revision = "0002"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column("events", sa.Column("cover_image_url", sa.String(500), nullable=True))


def downgrade() -> None:
    op.drop_column("events", "cover_image_url")
