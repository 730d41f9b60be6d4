"""Initial migration - rooms, calendar feeds, bookings, availability ledger

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'rooms',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('base_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('currency', sa.String(3), server_default='USD'),
        sa.Column('service_fee_rate', sa.Numeric(5, 4), server_default='0'),
        sa.Column('tax_rate', sa.Numeric(5, 4), server_default='0'),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime()),
        sa.Column('updated_at', sa.DateTime()),
    )
    op.create_index('ix_rooms_slug', 'rooms', ['slug'], unique=True)

    op.create_table(
        'room_calendar_feeds',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('room_id', sa.String(36), sa.ForeignKey('rooms.id', ondelete='CASCADE'), nullable=False),
        sa.Column('platform', sa.String(20), nullable=False),
        sa.Column('ical_url', sa.Text(), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        sa.Column('last_synced_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime()),
        sa.Column('updated_at', sa.DateTime()),
        sa.UniqueConstraint('room_id', 'platform', name='uq_calendar_feed_room_platform'),
    )

    op.create_table(
        'bookings',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('confirmation_id', sa.String(32), nullable=False, unique=True),
        sa.Column('room_id', sa.String(36), sa.ForeignKey('rooms.id', ondelete='CASCADE'), nullable=False),
        sa.Column('check_in_date', sa.Date(), nullable=False),
        sa.Column('check_out_date', sa.Date(), nullable=False),
        sa.Column('number_of_guests', sa.Integer(), server_default='1'),
        sa.Column('guest_name', sa.String(100), nullable=False),
        sa.Column('guest_email', sa.String(255), nullable=True),
        sa.Column('total_amount', sa.Numeric(10, 2), server_default='0'),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime()),
        sa.Column('updated_at', sa.DateTime()),
        sa.Column('confirmed_at', sa.DateTime(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_booking_room_status', 'bookings', ['room_id', 'status'])
    op.create_index('ix_booking_check_in', 'bookings', ['check_in_date'])

    op.create_table(
        'room_blocked_periods',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('room_id', sa.String(36), sa.ForeignKey('rooms.id', ondelete='CASCADE'), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('reason', sa.String(100), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime()),
        sa.Column('updated_at', sa.DateTime()),
    )
    op.create_index('ix_blocked_period_room_start', 'room_blocked_periods', ['room_id', 'start_date'])

    op.create_table(
        'room_pricing_rules',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('room_id', sa.String(36), sa.ForeignKey('rooms.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('rule_type', sa.String(20), nullable=False),
        sa.Column('value', sa.Numeric(10, 4), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('days_of_week', sa.String(20), nullable=True),
        sa.Column('created_at', sa.DateTime()),
        sa.Column('updated_at', sa.DateTime()),
    )
    op.create_index('ix_pricing_rule_room_active', 'room_pricing_rules', ['room_id', 'is_active'])

    op.create_table(
        'room_availability',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('room_id', sa.String(36), sa.ForeignKey('rooms.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('is_available', sa.Boolean(), server_default=sa.true()),
        sa.Column('is_blocked', sa.Boolean(), server_default=sa.false()),
        sa.Column('source', sa.String(20), nullable=False, server_default='direct'),
        sa.Column('external_booking_id', sa.String(255), nullable=True),
        sa.Column(
            'blocked_period_id', sa.String(36),
            sa.ForeignKey('room_blocked_periods.id', ondelete='CASCADE'), nullable=True
        ),
        sa.Column('underlying_source', sa.String(20), nullable=True),
        sa.Column('underlying_booking_id', sa.String(255), nullable=True),
        sa.Column('price_override', sa.Numeric(10, 2), nullable=True),
        sa.Column('created_at', sa.DateTime()),
        sa.Column('updated_at', sa.DateTime()),
        sa.UniqueConstraint('room_id', 'date', name='uq_room_availability_room_date'),
    )
    op.create_index('ix_room_availability_room_source', 'room_availability', ['room_id', 'source'])
    op.create_index('ix_room_availability_date', 'room_availability', ['date'])

    op.create_table(
        'calendar_sync_logs',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('room_id', sa.String(36), sa.ForeignKey('rooms.id', ondelete='CASCADE'), nullable=False),
        sa.Column('platform', sa.String(20), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('events_processed', sa.Integer(), server_default='0'),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('duration_ms', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_sync_log_room_platform', 'calendar_sync_logs', ['room_id', 'platform'])
    op.create_index('ix_sync_log_created', 'calendar_sync_logs', ['created_at'])


def downgrade() -> None:
    op.drop_table('calendar_sync_logs')
    op.drop_table('room_availability')
    op.drop_table('room_pricing_rules')
    op.drop_table('room_blocked_periods')
    op.drop_table('bookings')
    op.drop_table('room_calendar_feeds')
    op.drop_table('rooms')
