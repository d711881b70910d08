"""Add usage_records.reserved_at so abandoned reservations expire.

Revision ID: 003
Revises: 002
Create Date: 2026-10-18
"""

from alembic import op

# revision identifiers, used by Alembic.
revision = "003"
down_revision = "002"
branch_labels = None
depends_on = None


def upgrade():
    op.execute("ALTER TABLE usage_records ADD COLUMN reserved_at TIMESTAMPTZ")


def downgrade():
    op.execute("ALTER TABLE usage_records DROP COLUMN IF EXISTS reserved_at")
