"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Append-only call log
    op.create_table(
        'call_records',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('call_sid', sa.String(), nullable=True),
        sa.Column('client_id', sa.String(), nullable=False),
        sa.Column('from_number', sa.String(), nullable=True),
        sa.Column('to_number', sa.String(), nullable=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('transcript', sa.Text(), nullable=True),
        sa.Column('duration_seconds', sa.Integer(), nullable=False),
        sa.Column('call_type', sa.String(), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_call_records_id'), 'call_records', ['id'], unique=False)
    op.create_index(op.f('ix_call_records_call_sid'), 'call_records', ['call_sid'], unique=False)
    op.create_index(op.f('ix_call_records_client_id'), 'call_records', ['client_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_call_records_client_id'), table_name='call_records')
    op.drop_index(op.f('ix_call_records_call_sid'), table_name='call_records')
    op.drop_index(op.f('ix_call_records_id'), table_name='call_records')
    op.drop_table('call_records')
