"""create scheduling tables

Revision ID: 4a1c2e9b7d10
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '4a1c2e9b7d10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

APPOINTMENT_STATUSES = ('PENDING', 'CONFIRMED', 'COMPLETED', 'CANCELLED', 'NO_SHOW')


def upgrade() -> None:
    """Upgrade schema."""

    # 1. Businesses and their calendars
    op.create_table(
        'businesses',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('slug', sa.String(100), nullable=True, unique=True),
        sa.Column('timezone', sa.String(50), nullable=False, server_default='Europe/London'),
        sa.Column('settings', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True, server_default=sa.true()),
    )

    op.create_table(
        'business_hours',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('business_id', sa.Uuid(), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('day_of_week', sa.Integer(), nullable=False),
        sa.Column('open_time', sa.String(5), nullable=False),
        sa.Column('close_time', sa.String(5), nullable=False),
        sa.Column('is_closed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.UniqueConstraint('business_id', 'day_of_week', name='uq_business_hours_day'),
    )

    op.create_table(
        'special_dates',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('business_id', sa.Uuid(), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('is_closed', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('open_time', sa.String(5), nullable=True),
        sa.Column('close_time', sa.String(5), nullable=True),
        sa.Column('is_recurring', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.UniqueConstraint('business_id', 'date', name='uq_special_dates_business_date'),
    )

    # 2. Services
    op.create_table(
        'services',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('business_id', sa.Uuid(), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(10, 2), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('buffer_time', sa.Integer(), nullable=True),
        sa.Column('use_business_hours', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('available_days', sa.JSON(), nullable=True),
        sa.Column('custom_availability', sa.JSON(), nullable=True),
        sa.Column('max_advance_booking_days', sa.Integer(), nullable=True),
        sa.Column('min_advance_hours', sa.Integer(), nullable=True),
        sa.Column('requires_approval', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_active', sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('duration > 0', name='ck_services_duration_positive'),
    )
    op.create_index('ix_services_business_id', 'services', ['business_id'])
    op.create_index('ix_services_is_active', 'services', ['is_active'])

    # 3. Customers
    op.create_table(
        'customers',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('business_id', sa.Uuid(), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('total_bookings', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('completed_bookings', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('cancelled_bookings', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('no_show_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_spent', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('first_booking_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_booking_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('business_id', 'email', name='uq_customers_business_email'),
    )

    # 4. Appointments and their audit trail
    appointment_status = sa.Enum(*APPOINTMENT_STATUSES, name='appointment_status')
    op.create_table(
        'appointments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('business_id', sa.Uuid(), sa.ForeignKey('businesses.id'), nullable=False),
        sa.Column('service_id', sa.Uuid(), sa.ForeignKey('services.id'), nullable=False),
        sa.Column('customer_id', sa.Uuid(), sa.ForeignKey('customers.id'), nullable=True),
        sa.Column('customer_name', sa.String(100), nullable=False),
        sa.Column('customer_email', sa.String(255), nullable=True),
        sa.Column('customer_phone', sa.String(20), nullable=True),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('timezone', sa.String(50), nullable=False),
        sa.Column('total_amount', sa.Numeric(10, 2), nullable=True),
        sa.Column('status', appointment_status, nullable=False),
        sa.Column('previous_status', appointment_status, nullable=True),
        sa.Column('booking_source', sa.String(20), nullable=True),
        sa.Column('customer_notes', sa.Text(), nullable=True),
        sa.Column('business_notes', sa.Text(), nullable=True),
        sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancellation_source', sa.Enum('CUSTOMER', 'BUSINESS', name='cancellation_source'), nullable=True),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
        sa.Column('rescheduled_from', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rescheduled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reschedule_reason', sa.Text(), nullable=True),
        sa.Column('reminder_sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reminder_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('series_id', sa.Uuid(), nullable=True),
        sa.Column('series_index', sa.Integer(), nullable=True),
        sa.Column('series_pattern', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('end_time > start_time', name='ck_appointments_window'),
    )

    # Conflict checks read one business over a time range
    op.create_index('ix_appointments_business_id', 'appointments', ['business_id'])
    op.create_index('ix_appointments_start_time', 'appointments', ['start_time'])
    op.create_index('ix_appointments_business_window', 'appointments', ['business_id', 'start_time', 'end_time'])
    op.create_index('ix_appointments_series_id', 'appointments', ['series_id'])

    op.create_table(
        'appointment_events',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('appointment_id', sa.Uuid(), sa.ForeignKey('appointments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('event_type', sa.String(30), nullable=False),
        sa.Column('from_status', sa.String(20), nullable=True),
        sa.Column('to_status', sa.String(20), nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_appointment_events_appointment_id', 'appointment_events', ['appointment_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_appointment_events_appointment_id', table_name='appointment_events')
    op.drop_table('appointment_events')

    op.drop_index('ix_appointments_series_id', table_name='appointments')
    op.drop_index('ix_appointments_business_window', table_name='appointments')
    op.drop_index('ix_appointments_start_time', table_name='appointments')
    op.drop_index('ix_appointments_business_id', table_name='appointments')
    op.drop_table('appointments')

    op.drop_table('customers')

    op.drop_index('ix_services_is_active', table_name='services')
    op.drop_index('ix_services_business_id', table_name='services')
    op.drop_table('services')

    op.drop_table('special_dates')
    op.drop_table('business_hours')
    op.drop_table('businesses')

    sa.Enum(name='cancellation_source').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='appointment_status').drop(op.get_bind(), checkfirst=True)
