"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ACTOR_EXCLUSIVE_ARC = (
    "(CASE WHEN web_user_id IS NOT NULL THEN 1 ELSE 0 END"
    " + CASE WHEN telegram_user_id IS NOT NULL THEN 1 ELSE 0 END"
    " + CASE WHEN system_identifier IS NOT NULL THEN 1 ELSE 0 END) = 1"
)

USER_ACTION_TYPES = ("ban", "warn", "mute", "trust", "unban", "untrust")


def _actor_columns() -> list[sa.Column]:
    return [
        sa.Column("web_user_id", sa.Text(), nullable=True),
        sa.Column("telegram_user_id", sa.BigInteger(), nullable=True),
        sa.Column("system_identifier", sa.Text(), nullable=True),
    ]


def upgrade() -> None:
    """Create users, messages, detection results and the action log."""
    op.create_table(
        "telegram_users",
        sa.Column("telegram_user_id", sa.BigInteger(), nullable=False),
        sa.Column("username", sa.Text(), nullable=True),
        sa.Column("first_name", sa.Text(), nullable=True),
        sa.Column("is_bot", sa.Boolean(), nullable=False),
        sa.Column("first_seen_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_banned", sa.Boolean(), nullable=False),
        sa.Column("ban_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_trusted", sa.Boolean(), nullable=False),
        sa.Column("warnings", sa.JSON(), nullable=False),
        sa.Column("state_version", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("telegram_user_id"),
    )
    op.create_table(
        "messages",
        sa.Column("message_id", sa.BigInteger(), nullable=False),
        sa.Column("chat_id", sa.BigInteger(), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("message_text", sa.Text(), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("message_id"),
    )
    op.create_index("ix_messages_chat_id", "messages", ["chat_id"])
    op.create_index("ix_messages_user_id", "messages", ["user_id"])

    op.create_table(
        "detection_results",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("message_id", sa.BigInteger(), nullable=False),
        sa.Column("detected_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("detection_source", sa.Text(), nullable=False),
        sa.Column("detection_method", sa.Text(), nullable=False),
        sa.Column("net_confidence", sa.SmallInteger(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("used_for_training", sa.Boolean(), nullable=False),
        sa.Column("check_results_json", sa.Text(), nullable=True),
        sa.Column("edit_version", sa.Integer(), nullable=False),
        *_actor_columns(),
        sa.CheckConstraint(
            "net_confidence BETWEEN -100 AND 100",
            name="ck_detection_results_net_confidence",
        ),
        sa.CheckConstraint(ACTOR_EXCLUSIVE_ARC, name="ck_detection_results_added_by"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_detection_results_message_id", "detection_results", ["message_id"])
    op.create_index("ix_detection_results_detected_at", "detection_results", ["detected_at"])

    op.create_table(
        "user_actions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column(
            "action_type",
            sa.Enum(*USER_ACTION_TYPES, name="user_action_type"),
            nullable=False,
        ),
        sa.Column("message_id", sa.BigInteger(), nullable=True),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        *_actor_columns(),
        sa.CheckConstraint(ACTOR_EXCLUSIVE_ARC, name="ck_user_actions_issued_by"),
        sa.ForeignKeyConstraint(["user_id"], ["telegram_users.telegram_user_id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_user_actions_user_id", "user_actions", ["user_id"])
    op.create_index("ix_user_actions_message_id", "user_actions", ["message_id"])


def downgrade() -> None:
    """Drop every table created by this revision."""
    op.drop_index("ix_user_actions_message_id", table_name="user_actions")
    op.drop_index("ix_user_actions_user_id", table_name="user_actions")
    op.drop_table("user_actions")
    sa.Enum(name="user_action_type").drop(op.get_bind(), checkfirst=True)
    op.drop_index("ix_detection_results_detected_at", table_name="detection_results")
    op.drop_index("ix_detection_results_message_id", table_name="detection_results")
    op.drop_table("detection_results")
    op.drop_index("ix_messages_user_id", table_name="messages")
    op.drop_index("ix_messages_chat_id", table_name="messages")
    op.drop_table("messages")
    op.drop_table("telegram_users")
