"""create consent requests

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "consent_requests",
        sa.Column("conversation_sid", sa.String(length=255), primary_key=True),
        sa.Column("to_number", sa.String(length=50), nullable=False),
        sa.Column("apt", sa.String(length=100), nullable=False),
        sa.Column("visitor", sa.String(length=255), nullable=False),
        sa.Column("company", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("last_msg_sid", sa.String(length=255), nullable=True),
        sa.Column("ttl_seconds", sa.Integer, nullable=False, server_default="300"),
        sa.Column("transcript", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("decided_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_consent_requests_status", "consent_requests", ["status"])
    op.create_index("ix_consent_requests_to_number", "consent_requests", ["to_number"])


def downgrade() -> None:
    op.drop_index("ix_consent_requests_to_number", table_name="consent_requests")
    op.drop_index("ix_consent_requests_status", table_name="consent_requests")
    op.drop_table("consent_requests")
