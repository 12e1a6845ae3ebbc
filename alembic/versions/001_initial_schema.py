"""Initial schema - doctors, patients, therapy sessions, VR session data

Revision ID: 001_initial_schema
Revises: 
Create Date: 2026-10-17 00:00:00.000000

Creates the core VR therapy database schema:
- doctors: Doctors owning sessions
- patients: Patients with diagnosed phobias
- therapy_sessions: Session lifecycle with unique VR session token
- vr_session_data: One outcome record per session
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def upgrade() -> None:
    # Create doctors table
    op.create_table(
        'doctors',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('specialization', sa.String(50), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    
    # Create patients table
    op.create_table(
        'patients',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('doctor_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('identifier', sa.String(50), nullable=False),
        sa.Column('phobias', JSON, nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['doctor_id'], ['doctors.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('identifier'),
    )
    op.create_index('ix_patients_doctor_id', 'patients', ['doctor_id'])
    
    # Create therapy_sessions table
    op.create_table(
        'therapy_sessions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('doctor_id', sa.Uuid(), nullable=False),
        sa.Column('patient_id', sa.Uuid(), nullable=False),
        sa.Column('session_token', sa.String(64), nullable=False),
        sa.Column('session_type', sa.String(40), nullable=False),
        sa.Column('phobia_type', sa.String(40), nullable=False),
        sa.Column('vr_scenario', JSON, nullable=False),
        sa.Column('session_config', JSON, nullable=False),
        sa.Column('pre_session_data', JSON, nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='Scheduled'),
        sa.Column('scheduled_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('actual_start_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('actual_end_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['doctor_id'], ['doctors.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['patient_id'], ['patients.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_therapy_sessions_session_token', 'therapy_sessions', ['session_token'], unique=True)
    op.create_index('ix_therapy_sessions_doctor_id', 'therapy_sessions', ['doctor_id'])
    op.create_index('ix_therapy_sessions_patient_id', 'therapy_sessions', ['patient_id'])
    op.create_index('ix_therapy_sessions_phobia_type', 'therapy_sessions', ['phobia_type'])
    op.create_index('ix_therapy_sessions_status', 'therapy_sessions', ['status'])
    op.create_index('ix_therapy_sessions_scheduled_at', 'therapy_sessions', ['scheduled_at'])
    op.create_index('ix_therapy_sessions_created_at', 'therapy_sessions', ['created_at'])
    # Abandoned-session sweep looks up running sessions by start time
    op.create_index(
        'ix_therapy_sessions_in_progress_start',
        'therapy_sessions',
        ['actual_start_time'],
        postgresql_where=sa.text("status = 'In Progress'"),
    )
    
    # Create vr_session_data table
    op.create_table(
        'vr_session_data',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('session_id', sa.Uuid(), nullable=False),
        sa.Column('patient_id', sa.Uuid(), nullable=False),
        sa.Column('session_start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('session_end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('total_duration', sa.Float(), nullable=False),
        sa.Column('fear_scores', JSON, nullable=False),
        sa.Column('biometric_data', JSON, nullable=True),
        sa.Column('interactions', JSON, nullable=True),
        sa.Column('exposure_metrics', JSON, nullable=True),
        sa.Column('session_notes', JSON, nullable=True),
        sa.Column('session_rating', JSON, nullable=True),
        sa.Column('data_quality', JSON, nullable=True),
        sa.Column('improvement_percentage', sa.Float(), nullable=False, server_default='0'),
        sa.Column('effectiveness_score', sa.Float(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['session_id'], ['therapy_sessions.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['patient_id'], ['patients.id'], ondelete='CASCADE'),
        # One record per session; arbiter for concurrent telemetry submissions
        sa.UniqueConstraint('session_id'),
    )
    op.create_index('ix_vr_session_data_patient_id', 'vr_session_data', ['patient_id'])
    op.create_index('ix_vr_session_data_session_start_time', 'vr_session_data', ['session_start_time'])


def downgrade() -> None:
    op.drop_table('vr_session_data')
    op.drop_table('therapy_sessions')
    op.drop_table('patients')
    op.drop_table('doctors')
