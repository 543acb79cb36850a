"""create activities and activity_track

Revision ID: 3e1f0a9c2b7d
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3e1f0a9c2b7d'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'activities',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=100), nullable=False),
        sa.Column('description', sa.String(length=1000), server_default='', nullable=False),
        sa.Column('activity_type', sa.String(length=20), server_default='running', nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('duration_seconds', sa.Float(), nullable=False),
        sa.Column('distance_m', sa.Float(), nullable=False),
        sa.Column('elevation_gain_m', sa.Float(), nullable=False),
        sa.Column('avg_pace_s_per_km', sa.Float(), nullable=True),
        sa.Column('max_speed_kmh', sa.Float(), nullable=False),
        sa.Column('is_public', sa.Boolean(), nullable=False),
        sa.Column('source', sa.String(length=20), server_default='recorded', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_activities_id', 'activities', ['id'])
    op.create_index('ix_activities_activity_type', 'activities', ['activity_type'])

    op.create_table(
        'activity_track',
        sa.Column('activity_id', sa.Integer(), nullable=False),
        sa.Column('geojson', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('bounds', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('points_count', sa.Integer(), nullable=True),
        sa.Column('samples', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.ForeignKeyConstraint(['activity_id'], ['activities.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('activity_id')
    )


def downgrade() -> None:
    op.drop_table('activity_track')
    op.drop_index('ix_activities_activity_type', table_name='activities')
    op.drop_index('ix_activities_id', table_name='activities')
    op.drop_table('activities')
