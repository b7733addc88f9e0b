"""Initial schema

Revision ID: 001
Revises: 
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create call_sessions table
    op.create_table(
        'call_sessions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('owner_id', sa.String(), nullable=False),
        sa.Column('phone_number', sa.String(), nullable=False),
        sa.Column('assistant_id', sa.String(), nullable=False),
        sa.Column('assistant_name', sa.String(), nullable=True),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('provider_call_id', sa.String(), nullable=True),
        sa.Column('provider_control_id', sa.String(), nullable=True),
        sa.Column('started_at', sa.DateTime(), nullable=False),
        sa.Column('ended_at', sa.DateTime(), nullable=True),
        sa.Column('duration_seconds', sa.Integer(), nullable=True),
        sa.Column('recording_ref', sa.Text(), nullable=True),
        sa.Column('transcript', sa.Text(), nullable=True),
        sa.Column('insights', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'ix_call_sessions_owner_created', 'call_sessions', ['owner_id', 'created_at'], unique=False
    )
    op.create_index(
        op.f('ix_call_sessions_provider_call_id'), 'call_sessions', ['provider_call_id'], unique=False
    )


def downgrade() -> None:
    op.drop_index(op.f('ix_call_sessions_provider_call_id'), table_name='call_sessions')
    op.drop_index('ix_call_sessions_owner_created', table_name='call_sessions')
    op.drop_table('call_sessions')
