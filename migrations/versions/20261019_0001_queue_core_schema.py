"""queue core schema: score store, snapshot tables and callbacks

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 00:00:01
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def _queue_entry_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("claim_id", sa.BigInteger(), nullable=True),
        sa.Column("priority_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("queue_position", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("queue_reason", sa.Text(), nullable=True),
        sa.Column("assigned_to_agent", sa.Integer(), nullable=True),
        sa.Column("assigned_at", sa.DateTime(), nullable=True),
        sa.Column("available_from", sa.DateTime(), nullable=True),
        *_timestamps(),
    ]


def upgrade() -> None:
    op.create_table(
        "user_call_scores",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("current_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("current_queue_type", sa.String(length=40), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("next_call_after", sa.DateTime(), nullable=True),
        sa.Column("last_outcome", sa.Text(), nullable=True),
        sa.Column("total_attempts", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_user_call_scores_user_id", "user_call_scores", ["user_id"], unique=True)
    op.create_index("idx_user_call_scores_queue_active", "user_call_scores", ["current_queue_type", "is_active"])
    op.create_index("idx_user_call_scores_score_created", "user_call_scores", ["current_score", "created_at"])

    op.create_table(
        "unsigned_users_queue",
        *_queue_entry_columns(),
        sa.Column("signature_missing_since", sa.DateTime(), nullable=True),
        sa.Column("signature_type", sa.String(length=20), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_unsigned_users_queue_user_id", "unsigned_users_queue", ["user_id"])
    op.create_index("idx_unsigned_users_queue_status_position", "unsigned_users_queue", ["status", "queue_position"])

    op.create_table(
        "outstanding_requests_queue",
        *_queue_entry_columns(),
        sa.Column("requirement_types", sa.JSON(), nullable=True),
        sa.Column("total_requirements", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("pending_requirements", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("completed_requirements", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("oldest_requirement_date", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_outstanding_requests_queue_user_id", "outstanding_requests_queue", ["user_id"])
    op.create_index(
        "idx_outstanding_requests_queue_status_position",
        "outstanding_requests_queue",
        ["status", "queue_position"],
    )

    op.create_table(
        "callbacks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("scheduled_for", sa.DateTime(), nullable=False),
        sa.Column("callback_reason", sa.Text(), nullable=True),
        sa.Column("preferred_agent_id", sa.Integer(), nullable=True),
        sa.Column("original_call_session_id", sa.String(length=64), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("consumed_by_agent", sa.Integer(), nullable=True),
        sa.Column("consumed_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_callbacks_user_id", "callbacks", ["user_id"])
    op.create_index("idx_callbacks_status_scheduled", "callbacks", ["status", "scheduled_for"])


def downgrade() -> None:
    op.drop_index("idx_callbacks_status_scheduled", table_name="callbacks")
    op.drop_index("ix_callbacks_user_id", table_name="callbacks")
    op.drop_table("callbacks")

    op.drop_index("idx_outstanding_requests_queue_status_position", table_name="outstanding_requests_queue")
    op.drop_index("ix_outstanding_requests_queue_user_id", table_name="outstanding_requests_queue")
    op.drop_table("outstanding_requests_queue")

    op.drop_index("idx_unsigned_users_queue_status_position", table_name="unsigned_users_queue")
    op.drop_index("ix_unsigned_users_queue_user_id", table_name="unsigned_users_queue")
    op.drop_table("unsigned_users_queue")

    op.drop_index("idx_user_call_scores_score_created", table_name="user_call_scores")
    op.drop_index("idx_user_call_scores_queue_active", table_name="user_call_scores")
    op.drop_index("ix_user_call_scores_user_id", table_name="user_call_scores")
    op.drop_table("user_call_scores")
