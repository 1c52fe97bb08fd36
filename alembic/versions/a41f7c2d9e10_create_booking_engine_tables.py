"""create_booking_engine_tables

Revision ID: a41f7c2d9e10
Revises:
Create Date: 2026-10-19 09:12:44.318220

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'a41f7c2d9e10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

STATUS_VALUES = ('pending', 'confirmed', 'in_service', 'completed', 'cancelled', 'no_show')


def _status(name: str) -> sa.Enum:
    return sa.Enum(*STATUS_VALUES, name=name, native_enum=False, length=20)


def upgrade() -> None:
    # Tenants
    op.create_table('businesses',
        sa.Column('id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('phone_number', sa.String(length=20), nullable=True),
        sa.Column('business_type', sa.String(length=100), nullable=False),
        sa.Column('timezone', sa.String(length=50), nullable=True),
        sa.Column('booking_settings', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('services',
        sa.Column('id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('business_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('capacity_per_window', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=True),
        sa.Column('price_small', sa.Numeric(10, 2), nullable=True),
        sa.Column('price_medium', sa.Numeric(10, 2), nullable=True),
        sa.Column('price_large', sa.Numeric(10, 2), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('display_order', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.CheckConstraint('duration > 0', name='ck_services_duration_positive'),
        sa.CheckConstraint('capacity_per_window >= 1', name='ck_services_capacity_positive'),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_services_business_id'), 'services', ['business_id'], unique=False)
    op.create_index(op.f('ix_services_is_active'), 'services', ['is_active'], unique=False)

    # Calendar rules
    op.create_table('availability_windows',
        sa.Column('id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('business_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('day_of_week', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('capacity', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.CheckConstraint('start_time < end_time', name='ck_availability_windows_start_before_end'),
        sa.CheckConstraint('day_of_week BETWEEN 0 AND 6', name='ck_availability_windows_day_of_week'),
        sa.CheckConstraint('capacity >= 1', name='ck_availability_windows_capacity'),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_availability_windows_business_id'), 'availability_windows', ['business_id'], unique=False)

    op.create_table('blocked_dates',
        sa.Column('id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('business_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('is_full_day', sa.Boolean(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=True),
        sa.Column('end_time', sa.Time(), nullable=True),
        sa.Column('reason', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.CheckConstraint(
            'is_full_day OR (start_time IS NOT NULL AND end_time IS NOT NULL AND start_time < end_time)',
            name='ck_blocked_dates_range'
        ),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_blocked_dates_business_id'), 'blocked_dates', ['business_id'], unique=False)
    op.create_index(op.f('ix_blocked_dates_date'), 'blocked_dates', ['date'], unique=False)

    # Appointments
    op.create_table('appointments',
        sa.Column('id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('business_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('service_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('rebooked_from_id', sa.Uuid(as_uuid=True), nullable=True),
        sa.Column('customer_ref', sa.String(length=100), nullable=False),
        sa.Column('customer_name', sa.String(), nullable=True),
        sa.Column('customer_phone', sa.String(length=20), nullable=True),
        sa.Column('pet_ref', sa.String(length=100), nullable=True),
        sa.Column('pet_name', sa.String(), nullable=True),
        sa.Column('pet_size', sa.String(length=10), nullable=True),
        sa.Column('service_name', sa.String(length=200), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=True),
        sa.Column('scheduled_date', sa.Date(), nullable=False),
        sa.Column('scheduled_time', sa.Time(), nullable=False),
        sa.Column('scheduled_end_time', sa.Time(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('status', _status('appointment_status'), nullable=False),
        sa.Column('booking_source', sa.String(), nullable=True),
        sa.Column('confirmed_by_customer', sa.Boolean(), nullable=False),
        sa.Column('confirmed_by_company', sa.Boolean(), nullable=False),
        sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('arrived_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('no_show_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rescheduled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
        sa.Column('cancelled_by', sa.String(length=20), nullable=True),
        sa.Column('is_paid', sa.Boolean(), nullable=False),
        sa.Column('amount_paid', sa.Numeric(10, 2), nullable=True),
        sa.Column('payment_method', sa.String(length=20), nullable=True),
        sa.Column('rating', sa.Integer(), nullable=True),
        sa.Column('review_comment', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.CheckConstraint('duration_minutes > 0', name='ck_appointments_duration_positive'),
        sa.CheckConstraint('scheduled_time < scheduled_end_time', name='ck_appointments_start_before_end'),
        sa.CheckConstraint('rating IS NULL OR rating BETWEEN 1 AND 5', name='ck_appointments_rating_range'),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ),
        sa.ForeignKeyConstraint(['service_id'], ['services.id'], ),
        sa.ForeignKeyConstraint(['rebooked_from_id'], ['appointments.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_appointments_customer_ref'), 'appointments', ['customer_ref'], unique=False)
    op.create_index(
        'ix_appointments_business_date_status', 'appointments',
        ['business_id', 'scheduled_date', 'status'], unique=False
    )

    op.create_table('appointment_status_history',
        sa.Column('id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('appointment_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('business_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('previous_status', _status('appointment_previous_status'), nullable=True),
        sa.Column('new_status', _status('appointment_new_status'), nullable=False),
        sa.Column('actor', sa.String(length=20), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['appointment_id'], ['appointments.id'], ),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        op.f('ix_appointment_status_history_appointment_id'), 'appointment_status_history',
        ['appointment_id'], unique=False
    )

    # Cancellation recovery
    op.create_table('cancellation_recoveries',
        sa.Column('id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('appointment_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('business_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('attempts_sent', sa.Integer(), nullable=False),
        sa.Column('responded', sa.Boolean(), nullable=False),
        sa.Column('rescheduled', sa.Boolean(), nullable=False),
        sa.Column('rebooked_appointment_id', sa.Uuid(as_uuid=True), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['appointment_id'], ['appointments.id'], ),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ),
        sa.ForeignKeyConstraint(['rebooked_appointment_id'], ['appointments.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('appointment_id')
    )
    op.create_index(
        op.f('ix_cancellation_recoveries_business_id'), 'cancellation_recoveries', ['business_id'], unique=False
    )

    op.create_table('recovery_attempts',
        sa.Column('id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('recovery_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('appointment_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('attempt_number', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('scheduled_for', sa.DateTime(timezone=True), nullable=False),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('error', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['recovery_id'], ['cancellation_recoveries.id'], ),
        sa.ForeignKeyConstraint(['appointment_id'], ['appointments.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('appointment_id', 'attempt_number', name='uq_recovery_attempts_appointment_attempt')
    )
    op.create_index(op.f('ix_recovery_attempts_status'), 'recovery_attempts', ['status'], unique=False)
    op.create_index(op.f('ix_recovery_attempts_scheduled_for'), 'recovery_attempts', ['scheduled_for'], unique=False)

    # Customer metrics
    op.create_table('customer_metrics',
        sa.Column('id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('business_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('customer_ref', sa.String(length=100), nullable=False),
        sa.Column('visit_count', sa.Integer(), nullable=False),
        sa.Column('total_spent', sa.Numeric(12, 2), nullable=False),
        sa.Column('last_visit_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('business_id', 'customer_ref', name='uq_customer_metrics_business_customer')
    )


def downgrade() -> None:
    op.drop_table('customer_metrics')
    op.drop_index(op.f('ix_recovery_attempts_scheduled_for'), table_name='recovery_attempts')
    op.drop_index(op.f('ix_recovery_attempts_status'), table_name='recovery_attempts')
    op.drop_table('recovery_attempts')
    op.drop_index(op.f('ix_cancellation_recoveries_business_id'), table_name='cancellation_recoveries')
    op.drop_table('cancellation_recoveries')
    op.drop_index(op.f('ix_appointment_status_history_appointment_id'), table_name='appointment_status_history')
    op.drop_table('appointment_status_history')
    op.drop_index('ix_appointments_business_date_status', table_name='appointments')
    op.drop_index(op.f('ix_appointments_customer_ref'), table_name='appointments')
    op.drop_table('appointments')
    op.drop_index(op.f('ix_blocked_dates_date'), table_name='blocked_dates')
    op.drop_index(op.f('ix_blocked_dates_business_id'), table_name='blocked_dates')
    op.drop_table('blocked_dates')
    op.drop_index(op.f('ix_availability_windows_business_id'), table_name='availability_windows')
    op.drop_table('availability_windows')
    op.drop_index(op.f('ix_services_is_active'), table_name='services')
    op.drop_index(op.f('ix_services_business_id'), table_name='services')
    op.drop_table('services')
    op.drop_table('businesses')
