"""Add usage_records: per-(user, bot) free tier counters.

Revision ID: 002
Revises: 001
Create Date: 2026-09-09
"""

from alembic import op

# revision identifiers, used by Alembic.
revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


def upgrade():
    op.execute("""
        CREATE TABLE usage_records (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            bot_id TEXT NOT NULL,
            count INTEGER NOT NULL DEFAULT 0 CHECK (count >= 0),
            reserved INTEGER NOT NULL DEFAULT 0 CHECK (reserved >= 0),
            last_used_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            UNIQUE (user_id, bot_id)
        );
    """)

    op.execute("ALTER TABLE usage_records ENABLE ROW LEVEL SECURITY")
    op.execute("ALTER TABLE usage_records FORCE ROW LEVEL SECURITY")

    op.execute("""
        CREATE POLICY usage_records_all_own ON usage_records
        FOR ALL
        USING (get_app_user_id() IS NULL OR user_id = get_app_user_id())
        WITH CHECK (get_app_user_id() IS NULL OR user_id = get_app_user_id());
    """)


def downgrade():
    op.execute("DROP TABLE IF EXISTS usage_records")
