"""Create users, identities, events, roster, tasks, ledger and token staging

Revision ID: 5c2e7a91b4d0
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5c2e7a91b4d0"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamp(name: str, **kw) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.func.now(), **kw)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("address", sa.String(42), nullable=False, unique=True),
        sa.Column("nonce", sa.String(64), nullable=False),
        sa.Column("first_name", sa.String(100)),
        sa.Column("last_name", sa.String(100)),
        sa.Column("email", sa.String(255)),
        sa.Column("verified", sa.Boolean()),
        sa.Column("total_points", sa.Integer(), nullable=False, server_default="0"),
        _timestamp("last_login"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index("ix_users_total_points", "users", ["total_points"])

    op.create_table(
        "linked_identities",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id", sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("provider", sa.String(20), nullable=False),
        sa.Column("provider_user_id", sa.String(100), nullable=False),
        sa.Column("username", sa.String(100)),
        sa.Column("access_token", sa.Text()),
        sa.Column("refresh_token", sa.Text()),
        sa.Column("token_secret", sa.Text()),
        sa.Column("profile", postgresql.JSONB()),
        _timestamp("linked_at"),
        sa.UniqueConstraint("user_id", "provider", name="uq_linked_identities_user_provider"),
    )
    op.create_index(
        "ix_linked_identities_provider_uid",
        "linked_identities",
        ["provider", "provider_user_id"],
    )

    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("creator_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("image_url", sa.String(500)),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("total_points", sa.Integer(), nullable=False, server_default="0"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index("ix_events_creator", "events", ["creator_id"])
    op.create_index("ix_events_created_at", "events", ["created_at"])

    op.create_table(
        "event_participants",
        sa.Column(
            "event_id", sa.Integer(),
            sa.ForeignKey("events.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column(
            "user_id", sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True,
        ),
        _timestamp("joined_at"),
        sa.Column("points_earned", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_event_participants_user", "event_participants", ["user_id"])

    op.create_table(
        "tasks",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "event_id", sa.Integer(),
            sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("creator_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("task_type", sa.String(30), nullable=False),
        sa.Column("platform", sa.String(20), nullable=False),
        sa.Column("custom_platform", sa.String(50)),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("link_url", sa.String(500), nullable=False),
        sa.Column("points_value", sa.Integer(), nullable=False),
        sa.Column("is_required", sa.Boolean()),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.CheckConstraint("points_value >= 1", name="ck_tasks_points_value_positive"),
    )
    op.create_index("ix_tasks_event", "tasks", ["event_id"])

    op.create_table(
        "user_tasks",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id", sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "task_id", sa.Integer(),
            sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "event_id", sa.Integer(),
            sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("points_earned", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("verification_data", postgresql.JSONB()),
        _timestamp("created_at"),
        sa.UniqueConstraint("user_id", "task_id", name="uq_user_tasks_user_task"),
    )
    op.create_index("ix_user_tasks_user_event", "user_tasks", ["user_id", "event_id"])
    op.create_index("ix_user_tasks_task", "user_tasks", ["task_id"])
    op.create_index(
        "ix_user_tasks_user_completed_at", "user_tasks", ["user_id", "completed_at"]
    )

    op.create_table(
        "oauth_request_tokens",
        sa.Column("oauth_token", sa.String(128), primary_key=True),
        sa.Column("oauth_token_secret", sa.String(128), nullable=False),
        sa.Column(
            "user_id", sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        _timestamp("created_at", nullable=False),
    )
    op.create_index(
        "ix_oauth_request_tokens_created_at", "oauth_request_tokens", ["created_at"]
    )


def downgrade() -> None:
    op.drop_index("ix_oauth_request_tokens_created_at", table_name="oauth_request_tokens")
    op.drop_table("oauth_request_tokens")

    op.drop_index("ix_user_tasks_user_completed_at", table_name="user_tasks")
    op.drop_index("ix_user_tasks_task", table_name="user_tasks")
    op.drop_index("ix_user_tasks_user_event", table_name="user_tasks")
    op.drop_table("user_tasks")

    op.drop_index("ix_tasks_event", table_name="tasks")
    op.drop_table("tasks")

    op.drop_index("ix_event_participants_user", table_name="event_participants")
    op.drop_table("event_participants")

    op.drop_index("ix_events_created_at", table_name="events")
    op.drop_index("ix_events_creator", table_name="events")
    op.drop_table("events")

    op.drop_index("ix_linked_identities_provider_uid", table_name="linked_identities")
    op.drop_table("linked_identities")

    op.drop_index("ix_users_total_points", table_name="users")
    op.drop_table("users")
