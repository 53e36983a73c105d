"""add verification audit events

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-17

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = "a1b2c3d4e5f6"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    bind = op.get_bind()
    insp = inspect(bind)
    if "verification_audit_events" in set(insp.get_table_names()):
        return

    op.create_table(
        "verification_audit_events",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=False),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
        sa.Column("request_id", sa.String(length=64), nullable=True),
        sa.Column("batch_code", sa.String(length=128), nullable=False),
        sa.Column("outcome", sa.String(length=32), nullable=False),
        sa.Column("reason", sa.String(length=64), nullable=True),
        sa.Column("masked_mobile", sa.String(length=32), nullable=True),
        sa.Column("masked_email", sa.String(length=320), nullable=True),
        sa.Column("location", sa.String(length=512), nullable=False),
        sa.Column("user_agent", sa.String(length=512), nullable=True),
        sa.Column("client_ip", sa.String(length=64), nullable=True),
    )
    op.create_index(
        "ix_verification_audit_events_batch_code",
        "verification_audit_events",
        ["batch_code"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_verification_audit_events_batch_code", table_name="verification_audit_events")
    op.drop_table("verification_audit_events")
