"""Initial schema.

Revision ID: 001
Revises: None
Create Date: 2026-10-16

Users, tasks with their locations and actions, responses with their
per-action answers, the change log and the balance ledger. The change
log and ledger keep task ids without foreign keys so their rows survive
task deletion.
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.VARCHAR(), nullable=False),
        sa.Column("name", sa.VARCHAR(), nullable=False),
        sa.Column("key_hash", sa.VARCHAR(), nullable=False),
        sa.Column("key_fingerprint", sa.VARCHAR(), nullable=False),
        sa.Column("balance", sa.FLOAT(), nullable=False, server_default="0"),
        sa.Column("notification_address", sa.VARCHAR(), nullable=True),
        sa.Column("created_at", sa.DATETIME(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_key_fingerprint", "users", ["key_fingerprint"])

    op.create_table(
        "tasks",
        sa.Column("id", sa.VARCHAR(), nullable=False),
        sa.Column("owner_id", sa.VARCHAR(), nullable=False),
        sa.Column("name", sa.VARCHAR(), nullable=False),
        sa.Column("cost", sa.FLOAT(), nullable=False),
        sa.Column("expires_at", sa.DATETIME(), nullable=True),
        sa.Column("refresh_rate", sa.INTEGER(), nullable=False, server_default="0"),
        sa.Column("answers_left", sa.INTEGER(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DATETIME(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
    )
    op.create_index("ix_tasks_owner_id", "tasks", ["owner_id"])
    op.create_index("ix_tasks_expires_at", "tasks", ["expires_at"])
    op.create_index("ix_tasks_created_at", "tasks", ["created_at"])

    op.create_table(
        "locations",
        sa.Column("id", sa.VARCHAR(), nullable=False),
        sa.Column("task_id", sa.VARCHAR(), nullable=False),
        sa.Column("name", sa.VARCHAR(), nullable=False),
        sa.Column("lat", sa.FLOAT(), nullable=False),
        sa.Column("lng", sa.FLOAT(), nullable=False),
        sa.Column("radius", sa.FLOAT(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["task_id"], ["tasks.id"]),
    )
    op.create_index("ix_locations_task_id", "locations", ["task_id"], unique=True)

    op.create_table(
        "task_actions",
        sa.Column("id", sa.VARCHAR(), nullable=False),
        sa.Column("task_id", sa.VARCHAR(), nullable=False),
        sa.Column("position", sa.INTEGER(), nullable=False, server_default="0"),
        sa.Column("description", sa.VARCHAR(), nullable=False),
        sa.Column("type", sa.VARCHAR(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["task_id"], ["tasks.id"]),
    )
    op.create_index("ix_task_actions_task_id", "task_actions", ["task_id"])
    op.create_index("ix_task_actions_task_position", "task_actions", ["task_id", "position"])

    op.create_table(
        "task_responses",
        sa.Column("id", sa.VARCHAR(), nullable=False),
        sa.Column("task_id", sa.VARCHAR(), nullable=False),
        sa.Column("user_id", sa.VARCHAR(), nullable=False),
        sa.Column("created_at", sa.DATETIME(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["task_id"], ["tasks.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    )
    op.create_index("ix_task_responses_task_id", "task_responses", ["task_id"])
    op.create_index("ix_task_responses_user_id", "task_responses", ["user_id"])
    op.create_index(
        "ix_task_responses_task_created", "task_responses", ["task_id", "created_at"]
    )

    op.create_table(
        "task_action_responses",
        sa.Column("id", sa.VARCHAR(), nullable=False),
        sa.Column("task_response_id", sa.VARCHAR(), nullable=False),
        sa.Column("task_action_id", sa.VARCHAR(), nullable=False),
        sa.Column("user_id", sa.VARCHAR(), nullable=False),
        sa.Column("response", sa.VARCHAR(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["task_response_id"], ["task_responses.id"]),
        sa.ForeignKeyConstraint(["task_action_id"], ["task_actions.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    )
    op.create_index(
        "ix_task_action_responses_task_response_id",
        "task_action_responses",
        ["task_response_id"],
    )
    op.create_index(
        "ix_task_action_responses_task_action_id", "task_action_responses", ["task_action_id"]
    )
    op.create_index("ix_task_action_responses_user_id", "task_action_responses", ["user_id"])

    op.create_table(
        "change_log",
        sa.Column("id", sa.INTEGER(), primary_key=True, autoincrement=True),
        sa.Column("task_id", sa.VARCHAR(), nullable=False),
        sa.Column("status", sa.VARCHAR(), nullable=False),
        sa.Column("created_at", sa.DATETIME(), nullable=False),
    )
    op.create_index("ix_change_log_created_id", "change_log", ["created_at", "id"])

    op.create_table(
        "ledger_entries",
        sa.Column("id", sa.VARCHAR(), nullable=False),
        sa.Column("user_id", sa.VARCHAR(), nullable=False),
        sa.Column("amount", sa.FLOAT(), nullable=False),
        sa.Column("reason", sa.VARCHAR(), nullable=False),
        sa.Column("task_id", sa.VARCHAR(), nullable=True),
        sa.Column("created_at", sa.DATETIME(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    )
    op.create_index("ix_ledger_entries_user_id", "ledger_entries", ["user_id"])
    op.create_index(
        "ix_ledger_entries_user_created", "ledger_entries", ["user_id", "created_at"]
    )


def downgrade() -> None:
    op.drop_table("ledger_entries")
    op.drop_table("change_log")
    op.drop_table("task_action_responses")
    op.drop_table("task_responses")
    op.drop_table("task_actions")
    op.drop_table("locations")
    op.drop_table("tasks")
    op.drop_table("users")
