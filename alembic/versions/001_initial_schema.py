"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create video_calls table
    op.create_table(
        'video_calls',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('initiator_id', sa.String(), nullable=False),
        sa.Column('receiver_id', sa.String(), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('ended_at', sa.DateTime(), nullable=True),
        sa.Column('duration_seconds', sa.Integer(), nullable=False),
        sa.Column('switch_fired', sa.Boolean(), nullable=False),
        sa.Column('extended', sa.Boolean(), nullable=False),
        sa.Column('end_reason', sa.String(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_video_calls_id'), 'video_calls', ['id'], unique=False)
    op.create_index(op.f('ix_video_calls_initiator_id'), 'video_calls', ['initiator_id'], unique=False)
    op.create_index(op.f('ix_video_calls_receiver_id'), 'video_calls', ['receiver_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_video_calls_receiver_id'), table_name='video_calls')
    op.drop_index(op.f('ix_video_calls_initiator_id'), table_name='video_calls')
    op.drop_index(op.f('ix_video_calls_id'), table_name='video_calls')
    op.drop_table('video_calls')
