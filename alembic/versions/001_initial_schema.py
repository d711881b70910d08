"""Initial schema: users and conversations with RLS policies.

Revision ID: 001
Revises:
Create Date: 2026-09-02
"""

from alembic import op

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # NULL when app.user_id is unset or empty (system_conn), so policies can
    # short-circuit without ever casting '' to uuid.
    op.execute("""
        CREATE OR REPLACE FUNCTION get_app_user_id() RETURNS uuid AS $$
        DECLARE
            val text;
        BEGIN
            val := current_setting('app.user_id', true);
            IF val IS NULL OR val = '' THEN
                RETURN NULL;
            END IF;
            RETURN val::uuid;
        END;
        $$ LANGUAGE plpgsql STABLE;
    """)

    op.execute("""
        CREATE TABLE users (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            email TEXT UNIQUE NOT NULL,
            password_hash TEXT,
            google_id TEXT UNIQUE,
            name TEXT,
            avatar_url TEXT,
            provider TEXT NOT NULL DEFAULT 'email' CHECK (provider IN ('email', 'google')),
            is_premium BOOLEAN NOT NULL DEFAULT false,
            is_admin BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)

    op.execute("ALTER TABLE users ENABLE ROW LEVEL SECURITY")
    op.execute("ALTER TABLE users FORCE ROW LEVEL SECURITY")

    op.execute("""
        CREATE POLICY users_select_own ON users
        FOR SELECT
        USING (get_app_user_id() IS NULL OR id = get_app_user_id());
    """)

    op.execute("""
        CREATE POLICY users_update_own ON users
        FOR UPDATE
        USING (get_app_user_id() IS NULL OR id = get_app_user_id());
    """)

    # Account creation only happens through system_conn
    op.execute("""
        CREATE POLICY users_insert_system ON users
        FOR INSERT
        WITH CHECK (get_app_user_id() IS NULL);
    """)

    op.execute("""
        CREATE TABLE conversations (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            bot_id TEXT NOT NULL DEFAULT 'default',
            title TEXT,
            messages JSONB NOT NULL DEFAULT '[]'::jsonb,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)

    op.execute("CREATE INDEX idx_conversations_user ON conversations(user_id, updated_at DESC)")

    op.execute("ALTER TABLE conversations ENABLE ROW LEVEL SECURITY")
    op.execute("ALTER TABLE conversations FORCE ROW LEVEL SECURITY")

    op.execute("""
        CREATE POLICY conversations_all_own ON conversations
        FOR ALL
        USING (get_app_user_id() IS NULL OR user_id = get_app_user_id())
        WITH CHECK (get_app_user_id() IS NULL OR user_id = get_app_user_id());
    """)


def downgrade():
    op.execute("DROP TABLE IF EXISTS conversations")
    op.execute("DROP TABLE IF EXISTS users")
    op.execute("DROP FUNCTION IF EXISTS get_app_user_id()")
