"""events.auto_accept and event_participants.status (face control)

Revision ID: 0002
Revises: 0001
Create Date: 2025-02-03 18:30:00

"""
from alembic import op
import sqlalchemy as sa

revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "events",
        sa.Column("auto_accept", sa.Boolean(), nullable=False, server_default=sa.text("true")),
    )
    # Existing participants were all members already
    op.add_column(
        "event_participants",
        sa.Column("status", sa.String(20), nullable=False, server_default="approved"),
    )
    op.create_check_constraint(
        "event_participants_status_check",
        "event_participants",
        "status in ('pending', 'approved', 'rejected')",
    )


def downgrade() -> None:
    op.drop_constraint("event_participants_status_check", "event_participants", type_="check")
    op.drop_column("event_participants", "status")
    op.drop_column("events", "auto_accept")
