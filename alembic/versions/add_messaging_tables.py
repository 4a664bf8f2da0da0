"""Add device token, notification preference and inbox tables

Revision ID: add_messaging_tables
Revises:
Create Date: 2026-10-19

The users and books tables are owned by the main Teekoob backend and are
expected to exist already.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "add_messaging_tables"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

INBOX_MESSAGE_TYPES = ("admin_message", "system", "book_update", "podcast_update")


def upgrade() -> None:
    conn = op.get_bind()
    existing_tables = sa.inspect(conn).get_table_names()

    # ── device_tokens ─────────────────────────────────────────────────
    if "device_tokens" not in existing_tables:
        op.create_table(
            "device_tokens",
            sa.Column("id", sa.String(36), primary_key=True),
            sa.Column(
                "user_id",
                sa.String(36),
                sa.ForeignKey("users.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("token", sa.String(500), nullable=False),
            sa.Column("platform", sa.String(50), nullable=False, server_default="mobile"),
            sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column(
                "created_at",
                sa.DateTime(timezone=True),
                nullable=False,
                server_default=sa.func.now(),
            ),
            sa.Column(
                "updated_at",
                sa.DateTime(timezone=True),
                nullable=False,
                server_default=sa.func.now(),
            ),
            sa.UniqueConstraint("user_id", "token", name="uq_device_tokens_user_token"),
        )
        op.create_index("ix_device_tokens_user_id", "device_tokens", ["user_id"])
        op.create_index("ix_device_tokens_token", "device_tokens", ["token"])

    # ── notification_preferences ──────────────────────────────────────
    if "notification_preferences" not in existing_tables:
        op.create_table(
            "notification_preferences",
            sa.Column("id", sa.String(36), primary_key=True),
            sa.Column(
                "user_id",
                sa.String(36),
                sa.ForeignKey("users.id", ondelete="CASCADE"),
                unique=True,
                nullable=False,
            ),
            sa.Column(
                "random_books_enabled",
                sa.Boolean(),
                nullable=False,
                server_default=sa.false(),
            ),
            sa.Column(
                "random_books_interval_minutes",
                sa.Integer(),
                nullable=False,
                server_default="10",
            ),
            sa.Column("platform", sa.String(50), nullable=False, server_default="mobile"),
            sa.Column(
                "daily_reminders_enabled",
                sa.Boolean(),
                nullable=False,
                server_default=sa.false(),
            ),
            sa.Column(
                "daily_reminder_time",
                sa.Time(),
                nullable=False,
                server_default="20:00:00",
            ),
            sa.Column(
                "new_content_enabled",
                sa.Boolean(),
                nullable=False,
                server_default=sa.true(),
            ),
            sa.Column(
                "progress_reminders_enabled",
                sa.Boolean(),
                nullable=False,
                server_default=sa.false(),
            ),
            sa.Column(
                "progress_reminder_interval_days",
                sa.Integer(),
                nullable=False,
                server_default="7",
            ),
            sa.Column(
                "created_at",
                sa.DateTime(timezone=True),
                nullable=False,
                server_default=sa.func.now(),
            ),
            sa.Column(
                "updated_at",
                sa.DateTime(timezone=True),
                nullable=False,
                server_default=sa.func.now(),
            ),
        )
        op.create_index(
            "ix_notification_preferences_user_id",
            "notification_preferences",
            ["user_id"],
        )
        op.create_index(
            "ix_notification_preferences_random_books_enabled",
            "notification_preferences",
            ["random_books_enabled"],
        )

    # ── inbox_messages ────────────────────────────────────────────────
    if "inbox_messages" not in existing_tables:
        op.create_table(
            "inbox_messages",
            sa.Column("id", sa.String(36), primary_key=True),
            sa.Column(
                "user_id",
                sa.String(36),
                sa.ForeignKey("users.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column(
                "sender_id",
                sa.String(36),
                sa.ForeignKey("users.id", ondelete="SET NULL"),
                nullable=True,
            ),
            sa.Column("title", sa.String(255), nullable=False),
            sa.Column("body", sa.Text(), nullable=False),
            sa.Column(
                "type",
                sa.Enum(*INBOX_MESSAGE_TYPES, name="inbox_message_type"),
                nullable=False,
                server_default="admin_message",
            ),
            sa.Column("action_url", sa.String(500), nullable=True),
            sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column(
                "created_at",
                sa.DateTime(timezone=True),
                nullable=False,
                server_default=sa.func.now(),
            ),
            sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        )
        op.create_index("ix_inbox_messages_user_id", "inbox_messages", ["user_id"])
        op.create_index("ix_inbox_messages_created_at", "inbox_messages", ["created_at"])
        op.create_index(
            "ix_inbox_messages_user_read",
            "inbox_messages",
            ["user_id", "is_read"],
        )


def downgrade() -> None:
    op.drop_index("ix_inbox_messages_user_read", table_name="inbox_messages")
    op.drop_index("ix_inbox_messages_created_at", table_name="inbox_messages")
    op.drop_index("ix_inbox_messages_user_id", table_name="inbox_messages")
    op.drop_table("inbox_messages")

    op.drop_index(
        "ix_notification_preferences_random_books_enabled",
        table_name="notification_preferences",
    )
    op.drop_index("ix_notification_preferences_user_id", table_name="notification_preferences")
    op.drop_table("notification_preferences")

    op.drop_index("ix_device_tokens_token", table_name="device_tokens")
    op.drop_index("ix_device_tokens_user_id", table_name="device_tokens")
    op.drop_table("device_tokens")

    op.execute("DROP TYPE IF EXISTS inbox_message_type")
