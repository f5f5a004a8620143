"""lead scoring cursors: resume discovery where the last run stopped

Revision ID: 20261020_0002
Revises: 20261019_0001
Create Date: 2026-10-20 00:00:01
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261020_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "lead_scoring_cursors",
        sa.Column("queue_type", sa.String(length=40), nullable=False),
        sa.Column("last_user_id", sa.BigInteger(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("queue_type"),
    )


def downgrade() -> None:
    op.drop_table("lead_scoring_cursors")
