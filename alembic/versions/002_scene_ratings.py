"""Scene ratings and VR record creation-date index

Revision ID: 002_scene_ratings
Revises: 001_initial_schema
Create Date: 2026-10-17 00:00:00.000000

- scene_ratings: image ratings posted by the VR runtime
- ix_vr_session_data_created_at: date-range filter of the record list
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = '002_scene_ratings'
down_revision: Union[str, None] = '001_initial_schema'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'scene_ratings',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('session_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.String(100), nullable=False),
        sa.Column('scene_id', sa.String(100), nullable=False),
        sa.Column('image_id', sa.String(100), nullable=False),
        sa.Column('rate', sa.Float(), nullable=False),
        sa.Column('submitted_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['session_id'], ['therapy_sessions.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_scene_ratings_session_id', 'scene_ratings', ['session_id'])
    op.create_index('ix_vr_session_data_created_at', 'vr_session_data', ['created_at'])


def downgrade() -> None:
    op.drop_index('ix_vr_session_data_created_at', table_name='vr_session_data')
    op.drop_table('scene_ratings')
