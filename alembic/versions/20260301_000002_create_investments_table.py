"""Create investments table

Revision ID: 20260301_000002
Revises: 20260301_000001
Create Date: 2026-03-01

One row per confirmed checkout session; session_handle is unique.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "20260301_000002"
down_revision: Union[str, None] = "20260301_000001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "investments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("session_handle", sa.String(255), nullable=False),
        sa.Column("investor_id", sa.Integer(), nullable=True),
        sa.Column("startup_id", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column(
            "payment_status",
            sa.Enum("pending", "completed", "failed", "refunded", name="payment_status", create_constraint=True),
            nullable=False,
        ),
        sa.Column(
            "source",
            sa.Enum("webhook", "poll", name="confirmation_source", create_constraint=True),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["startup_id"],
            ["startups.id"],
            name="fk_investments_startup_id",
            ondelete="RESTRICT",
        ),
        sa.UniqueConstraint("session_handle", name="uq_investments_session_handle"),
        sa.CheckConstraint("amount > 0", name="ck_investments_amount_positive"),
    )
    op.create_index("ix_investments_investor_id", "investments", ["investor_id"])
    op.create_index("ix_investments_startup_id", "investments", ["startup_id"])
    op.create_index("ix_investments_payment_status", "investments", ["payment_status"])
    op.create_index("ix_investments_created_at", "investments", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_investments_created_at", table_name="investments")
    op.drop_index("ix_investments_payment_status", table_name="investments")
    op.drop_index("ix_investments_startup_id", table_name="investments")
    op.drop_index("ix_investments_investor_id", table_name="investments")
    op.drop_table("investments")
