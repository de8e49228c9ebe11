"""Baseline migration - accounts, invitations, assignments, check-ins, insights

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    """Create the CareTrack schema."""

    # ==========================================================================
    # Accounts
    # ==========================================================================
    op.create_table(
        'accounts',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('role', sa.String(20), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(320), nullable=False, unique=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # ==========================================================================
    # Invitations (one pending invitation per email)
    # ==========================================================================
    op.create_table(
        'invitations',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('token', sa.String(128), nullable=False, unique=True),
        sa.Column('email', sa.String(320), nullable=False),
        sa.Column('invited_by_user_id', sa.Uuid(), sa.ForeignKey('accounts.id', ondelete='SET NULL'), nullable=True),
        sa.Column('invited_by_role', sa.String(20), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('accepted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('accepted_by_user_id', sa.Uuid(), sa.ForeignKey('accounts.id', ondelete='SET NULL'), nullable=True),
    )
    op.create_index(
        'uq_pending_invitation_email',
        'invitations',
        ['email'],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
        sqlite_where=sa.text("status = 'pending'"),
    )
    op.create_index('idx_invitations_invited_by', 'invitations', ['invited_by_user_id'])

    # ==========================================================================
    # Assignments (one active row per patient/caretaker pair)
    # ==========================================================================
    op.create_table(
        'assignments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('patient_id', sa.Uuid(), sa.ForeignKey('accounts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('caretaker_id', sa.Uuid(), sa.ForeignKey('accounts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('assigned_by_user_id', sa.Uuid(), sa.ForeignKey('accounts.id', ondelete='SET NULL'), nullable=True),
        sa.Column('assigned_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('can_view_data', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('can_log_on_behalf', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('can_generate_reports', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(
        'uq_active_assignment_pair',
        'assignments',
        ['patient_id', 'caretaker_id'],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
        sqlite_where=sa.text("status = 'active'"),
    )
    op.create_index('idx_assignments_caretaker', 'assignments', ['caretaker_id', 'status'])
    op.create_index('idx_assignments_patient', 'assignments', ['patient_id', 'status'])

    # ==========================================================================
    # Check-ins (one row per user per date)
    # ==========================================================================
    op.create_table(
        'checkins',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('accounts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('check_in_date', sa.Date(), nullable=False),
        sa.Column('tremor_score', sa.Integer(), nullable=False),
        sa.Column('stiffness_score', sa.Integer(), nullable=False),
        sa.Column('balance_score', sa.Integer(), nullable=False),
        sa.Column('sleep_score', sa.Integer(), nullable=False),
        sa.Column('mood_score', sa.Integer(), nullable=False),
        sa.Column('medication_taken', sa.String(20), nullable=False),
        sa.Column('side_effects', JSON_TYPE, nullable=False),
        sa.Column('side_effects_other', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('logged_by_user_id', sa.Uuid(), sa.ForeignKey('accounts.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('user_id', 'check_in_date', name='uq_checkins_user_date'),
        sa.CheckConstraint('tremor_score BETWEEN 0 AND 10', name='ck_checkins_tremor'),
        sa.CheckConstraint('stiffness_score BETWEEN 0 AND 10', name='ck_checkins_stiffness'),
        sa.CheckConstraint('balance_score BETWEEN 0 AND 10', name='ck_checkins_balance'),
        sa.CheckConstraint('sleep_score BETWEEN 0 AND 10', name='ck_checkins_sleep'),
        sa.CheckConstraint('mood_score BETWEEN 0 AND 10', name='ck_checkins_mood'),
        sa.CheckConstraint(
            "medication_taken IN ('yes', 'partially', 'missed')",
            name='ck_checkins_medication_taken',
        ),
    )

    # ==========================================================================
    # Insights (append-only)
    # ==========================================================================
    op.create_table(
        'insights',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('accounts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('insight_type', sa.String(20), nullable=False),
        sa.Column('date_range_start', sa.Date(), nullable=False),
        sa.Column('date_range_end', sa.Date(), nullable=False),
        sa.Column('summary', sa.Text(), nullable=False),
        sa.Column('key_observations', JSON_TYPE, nullable=False),
        sa.Column('medication_patterns', sa.Text(), nullable=False),
        sa.Column('symptom_trends', sa.Text(), nullable=False),
        sa.Column('wearing_off_patterns', sa.Text(), nullable=False),
        sa.Column('recommendations', JSON_TYPE, nullable=False),
        sa.Column('data_points_analyzed', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(
        'idx_insights_user_created',
        'insights',
        ['user_id', sa.text('created_at DESC')],
    )


def downgrade() -> None:
    op.drop_index('idx_insights_user_created', table_name='insights')
    op.drop_table('insights')
    op.drop_table('checkins')
    op.drop_index('idx_assignments_patient', table_name='assignments')
    op.drop_index('idx_assignments_caretaker', table_name='assignments')
    op.drop_index('uq_active_assignment_pair', table_name='assignments')
    op.drop_table('assignments')
    op.drop_index('idx_invitations_invited_by', table_name='invitations')
    op.drop_index('uq_pending_invitation_email', table_name='invitations')
    op.drop_table('invitations')
    op.drop_table('accounts')
