"""Chat and notification tables

Revision ID: 001
Revises:
Create Date: 2026-10-19

Creates: users, conversations, chat_messages, notifications
Types: notificationkind enum
"""

from collections.abc import Sequence

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # ── 1. Directory ──────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE users (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            email VARCHAR(255) NOT NULL UNIQUE,
            name VARCHAR(100) NOT NULL,
            role VARCHAR(20) NOT NULL DEFAULT 'student',
            is_active BOOLEAN NOT NULL DEFAULT true,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)

    # ── 2. Conversations ──────────────────────────────────────────────────
    # participant_key is the sorted "low:high" id pair; its unique index is
    # what makes concurrent get-or-create converge on one row.
    op.execute("""
        CREATE TABLE conversations (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            participant_key VARCHAR(80) NOT NULL UNIQUE,
            participant_one_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            participant_two_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            participant_one_name VARCHAR(100) NOT NULL,
            participant_two_name VARCHAR(100) NOT NULL,
            last_message_content TEXT,
            last_message_at TIMESTAMPTZ,
            last_message_sender_id UUID,
            is_active BOOLEAN NOT NULL DEFAULT true,
            hidden_for JSONB NOT NULL DEFAULT '[]'::jsonb,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT ck_conversations_distinct_participants
                CHECK (participant_one_id <> participant_two_id)
        );
    """)
    op.execute("CREATE INDEX ix_conversations_participant_one_id ON conversations (participant_one_id);")
    op.execute("CREATE INDEX ix_conversations_participant_two_id ON conversations (participant_two_id);")
    op.execute("CREATE INDEX ix_conversations_last_message_at ON conversations (last_message_at DESC NULLS LAST);")

    # ── 3. Messages ───────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE chat_messages (
            id BIGSERIAL PRIMARY KEY,
            conversation_id UUID NOT NULL REFERENCES conversations(id) ON DELETE CASCADE,
            sender_id UUID NOT NULL,
            sender_name VARCHAR(100) NOT NULL,
            content TEXT NOT NULL,
            is_read BOOLEAN NOT NULL DEFAULT false,
            read_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT ck_chat_messages_read_at CHECK (is_read OR read_at IS NULL)
        );
    """)
    op.execute("CREATE INDEX ix_chat_messages_conversation_id_id ON chat_messages (conversation_id, id);")
    op.execute("CREATE INDEX ix_chat_messages_unread ON chat_messages (conversation_id, is_read);")

    # ── 4. Notifications ──────────────────────────────────────────────────
    op.execute("""
        CREATE TYPE notificationkind AS ENUM (
            'resource_upload', 'new_feedback', 'payment_success',
            'chat_message', 'system', 'admin'
        );
    """)
    op.execute("""
        CREATE TABLE notifications (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            recipient_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            sender_id UUID REFERENCES users(id) ON DELETE SET NULL,
            kind notificationkind NOT NULL,
            title VARCHAR(200) NOT NULL,
            body VARCHAR(500) NOT NULL,
            link VARCHAR(500),
            is_read BOOLEAN NOT NULL DEFAULT false,
            read_at TIMESTAMPTZ,
            metadata JSONB NOT NULL DEFAULT '{}'::jsonb,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT ck_notifications_read_at CHECK (is_read OR read_at IS NULL)
        );
    """)
    op.execute(
        "CREATE INDEX ix_notifications_recipient_read_created "
        "ON notifications (recipient_id, is_read, created_at DESC);"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS notifications;")
    op.execute("DROP TYPE IF EXISTS notificationkind;")
    op.execute("DROP TABLE IF EXISTS chat_messages;")
    op.execute("DROP TABLE IF EXISTS conversations;")
    op.execute("DROP TABLE IF EXISTS users;")
