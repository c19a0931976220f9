"""Create startups table

Revision ID: 20260301_000001
Revises: None
Create Date: 2026-03-01

Startup listings with the funding_received counter maintained by the ledger.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20260301_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the startups table."""
    op.create_table(
        'startups',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('startup_name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('industry', sa.String(100), nullable=False),
        sa.Column(
            'stage',
            sa.Enum('idea', 'mvp', 'early', 'growth', name='startup_stage', create_constraint=True),
            nullable=False,
        ),
        sa.Column('entrepreneur_id', sa.Integer(), nullable=True),
        sa.Column('funding_required', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('funding_received', sa.Numeric(precision=12, scale=2), server_default='0', nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_startups_entrepreneur_id', 'startups', ['entrepreneur_id'])
    op.create_index('ix_startups_created_at', 'startups', ['created_at'])


def downgrade() -> None:
    """Drop the startups table."""
    op.drop_index('ix_startups_created_at', table_name='startups')
    op.drop_index('ix_startups_entrepreneur_id', table_name='startups')
    op.drop_table('startups')
