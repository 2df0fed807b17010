"""Sync schema - chats, messages, memories, id counters

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Tables:
- chats: owner-scoped chat threads, soft-deleted via deleted_at
- messages: messages keyed per (owner, chat), hard-deleted
- memories: owner-scoped memory notes, hard-deleted
- id_counters: per-scope counters for the counter id allocation strategy

Every primary key starts with owner_id; ids are BIGINT and never
auto-incremented by the database.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # ==========================================================================
    # Step 1: chats
    # ==========================================================================
    op.create_table(
        "chats",
        sa.Column("owner_id", sa.String(128), nullable=False),
        sa.Column("id", sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("owner_id", "id", name="pk_chats"),
    )
    op.create_index("ix_chats_owner_updated_at", "chats", ["owner_id", "updated_at"])
    op.create_index("ix_chats_owner_deleted_at", "chats", ["owner_id", "deleted_at"])

    # ==========================================================================
    # Step 2: messages
    # ==========================================================================
    op.create_table(
        "messages",
        sa.Column("owner_id", sa.String(128), nullable=False),
        sa.Column("chat_id", sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column("id", sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column("role", sa.String(16), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("web_search_used", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("image_base64", sa.Text(), nullable=True),
        sa.Column("image_path", sa.Text(), nullable=True),
        sa.Column("thinking_content", sa.Text(), nullable=True),
        sa.Column("is_thinking", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("response_time_ms", sa.Integer(), nullable=True),
        sa.Column("reaction", sa.Text(), nullable=True),
        sa.Column("generated_image_base64", sa.Text(), nullable=True),
        sa.Column("generated_image_prompt", sa.Text(), nullable=True),
        sa.Column("generated_image_model", sa.Text(), nullable=True),
        sa.Column(
            "is_generating_image", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.PrimaryKeyConstraint("owner_id", "chat_id", "id", name="pk_messages"),
        sa.ForeignKeyConstraint(
            ["owner_id", "chat_id"],
            ["chats.owner_id", "chats.id"],
            ondelete="CASCADE",
            name="fk_messages_chat",
        ),
        sa.CheckConstraint(
            "role IN ('user', 'assistant', 'system')",
            name="ck_messages_role",
        ),
    )
    op.create_index(
        "ix_messages_owner_chat_timestamp", "messages", ["owner_id", "chat_id", "timestamp"]
    )
    op.create_index("ix_messages_owner_timestamp", "messages", ["owner_id", "timestamp"])

    # ==========================================================================
    # Step 3: memories
    # ==========================================================================
    op.create_table(
        "memories",
        sa.Column("owner_id", sa.String(128), nullable=False),
        sa.Column("id", sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column("content", sa.String(500), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("owner_id", "id", name="pk_memories"),
    )
    op.create_index("ix_memories_owner_created_at", "memories", ["owner_id", "created_at"])
    op.create_index("ix_memories_owner_updated_at", "memories", ["owner_id", "updated_at"])

    # ==========================================================================
    # Step 4: id_counters
    # ==========================================================================
    op.create_table(
        "id_counters",
        sa.Column("owner_id", sa.String(128), nullable=False),
        sa.Column("kind", sa.String(16), nullable=False),
        sa.Column("chat_id", sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column("next_id", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("owner_id", "kind", "chat_id", name="pk_id_counters"),
    )


def downgrade() -> None:
    op.drop_table("id_counters")

    op.drop_index("ix_memories_owner_updated_at", table_name="memories")
    op.drop_index("ix_memories_owner_created_at", table_name="memories")
    op.drop_table("memories")

    op.drop_index("ix_messages_owner_timestamp", table_name="messages")
    op.drop_index("ix_messages_owner_chat_timestamp", table_name="messages")
    op.drop_table("messages")

    op.drop_index("ix_chats_owner_deleted_at", table_name="chats")
    op.drop_index("ix_chats_owner_updated_at", table_name="chats")
    op.drop_table("chats")
