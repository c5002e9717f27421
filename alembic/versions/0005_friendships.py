"""friendships

Revision ID: 0005
Revises: 0004
Create Date: 2025-03-18 16:45:00

"""
from alembic import op
import sqlalchemy as sa

revision = "0005"
down_revision = "0004"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "friendships",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("requester_id", sa.String(36), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("receiver_id", sa.String(36), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("requester_id", "receiver_id", name="friendships_requester_id_receiver_id_key"),
        sa.CheckConstraint("status in ('pending', 'accepted', 'rejected')", name="friendships_status_check"),
    )
    op.create_index("ix_friendships_requester_id", "friendships", ["requester_id"])
    op.create_index("ix_friendships_receiver_id", "friendships", ["receiver_id"])
    op.create_index("ix_friendships_status", "friendships", ["status"])


def downgrade() -> None:
    op.drop_table("friendships")
