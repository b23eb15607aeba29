"""
Alembic migration: Initial schema for the trip status workflow.

Creates organizations with members and settings, users, drivers, vehicles,
upload files, routes, order groups, orders, trips with their status history,
messages and image links, driver reports and expenses, and notifications
with recipients.

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# Revision identifiers, used by Alembic
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TRIP_STATUS_VALUES = (
    'PENDING_CONFIRMATION',
    'CONFIRMED',
    'WAITING_FOR_PICKUP',
    'WAREHOUSE_GOING_TO_PICKUP',
    'WAREHOUSE_PICKED_UP',
    'WAITING_FOR_DELIVERY',
    'DELIVERED',
    'COMPLETED',
    'CANCELED',
)


def _enum(name: str, *values: str) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False)


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column(
            'id',
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            nullable=False,
            server_default=sa.text('gen_random_uuid()'),
        ),
        sa.Column(
            'created_at',
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text('CURRENT_TIMESTAMP'),
        ),
        sa.Column(
            'updated_at',
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text('CURRENT_TIMESTAMP'),
        ),
    ]


def _scoped_columns() -> list[sa.Column]:
    return _base_columns() + [
        sa.Column(
            'organization_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('organizations.id', ondelete='CASCADE'),
            nullable=False,
            index=True,
        ),
    ]


def _user_fk(name: str, nullable: bool = True, ondelete: str = 'SET NULL') -> sa.Column:
    return sa.Column(
        name,
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey('users.id', ondelete=ondelete),
        nullable=nullable,
    )


def upgrade() -> None:
    """Create the trip workflow schema."""
    op.execute('CREATE EXTENSION IF NOT EXISTS pgcrypto')

    op.create_table(
        'organizations',
        *_base_columns(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('code', sa.String(length=50), nullable=False, unique=True),
    )

    op.create_table(
        'users',
        *_base_columns(),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=True),
        sa.Column('last_name', sa.String(length=100), nullable=True),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'organization_members',
        *_scoped_columns(),
        sa.Column(
            'user_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('users.id', ondelete='CASCADE'),
            nullable=False,
            index=True,
        ),
        sa.Column(
            'role',
            _enum('organization_role_type', 'OWNER', 'MANAGER', 'ACCOUNTANT', 'DISPATCHER', 'DRIVER'),
            nullable=False,
            index=True,
        ),
        sa.UniqueConstraint('organization_id', 'user_id', name='uq_organization_members_user'),
    )
    op.create_index(
        'ix_organization_members_org_role',
        'organization_members',
        ['organization_id', 'role'],
    )

    op.create_table(
        'organization_settings',
        *_scoped_columns(),
        sa.Column('key', sa.String(length=100), nullable=False),
        sa.Column('value', sa.Text(), nullable=True),
        sa.UniqueConstraint('organization_id', 'key', name='uq_organization_settings_key'),
    )

    op.create_table(
        'drivers',
        *_scoped_columns(),
        sa.Column(
            'user_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('users.id', ondelete='SET NULL'),
            nullable=True,
            index=True,
        ),
        sa.Column('first_name', sa.String(length=100), nullable=True),
        sa.Column('last_name', sa.String(length=100), nullable=True),
    )

    op.create_table(
        'vehicles',
        *_scoped_columns(),
        sa.Column('vehicle_number', sa.String(length=20), nullable=False, index=True),
    )

    op.create_table(
        'upload_files',
        *_scoped_columns(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('path', sa.String(length=1024), nullable=False, unique=True),
        sa.Column('folder', sa.String(length=100), nullable=False, index=True),
        sa.Column('mime_type', sa.String(length=100), nullable=True),
        sa.Column('size', sa.BigInteger(), nullable=False, server_default=sa.text('0')),
    )

    op.create_table(
        'routes',
        *_scoped_columns(),
        sa.Column('code', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
    )

    op.create_table(
        'route_points',
        *_scoped_columns(),
        sa.Column(
            'route_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('routes.id', ondelete='CASCADE'),
            nullable=False,
            index=True,
        ),
        sa.Column('code', sa.String(length=50), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default=sa.text('0')),
    )

    op.create_table(
        'order_groups',
        *_scoped_columns(),
        sa.Column('code', sa.String(length=50), nullable=False),
        sa.UniqueConstraint('organization_id', 'code', name='uq_order_groups_org_code'),
    )

    op.create_table(
        'order_group_statuses',
        *_scoped_columns(),
        sa.Column(
            'group_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('order_groups.id', ondelete='CASCADE'),
            nullable=False,
            index=True,
        ),
        sa.Column(
            'type',
            _enum('order_group_status_type', 'IN_PROGRESS', 'DELIVERED', 'COMPLETED'),
            nullable=False,
        ),
        _user_fk('created_by_id'),
    )

    op.create_table(
        'orders',
        *_scoped_columns(),
        sa.Column('code', sa.String(length=50), nullable=False),
        sa.Column('order_date', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('weight', sa.Numeric(precision=12, scale=3), nullable=True),
        sa.Column('unit_of_measure', sa.String(length=20), nullable=True),
        sa.Column(
            'route_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('routes.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column(
            'order_group_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('order_groups.id', ondelete='SET NULL'),
            nullable=True,
            index=True,
        ),
        sa.Column('published_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.UniqueConstraint('organization_id', 'code', name='uq_orders_org_code'),
    )

    op.create_table(
        'order_statuses',
        *_scoped_columns(),
        sa.Column(
            'order_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('orders.id', ondelete='CASCADE'),
            nullable=False,
            index=True,
        ),
        sa.Column(
            'type',
            _enum('order_status_type', 'NEW', 'RECEIVED', 'IN_PROGRESS', 'COMPLETED', 'CANCELED'),
            nullable=False,
        ),
        sa.Column('position', sa.Integer(), nullable=False),
        _user_fk('created_by_id'),
    )
    op.create_index('ix_order_statuses_order_type', 'order_statuses', ['order_id', 'type'])

    op.create_table(
        'order_participants',
        *_scoped_columns(),
        sa.Column(
            'order_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('orders.id', ondelete='CASCADE'),
            nullable=False,
            index=True,
        ),
        sa.Column(
            'user_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('users.id', ondelete='CASCADE'),
            nullable=False,
            index=True,
        ),
        sa.UniqueConstraint('order_id', 'user_id', name='uq_order_participants_user'),
    )

    op.create_table(
        'driver_reports',
        *_scoped_columns(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('type', _enum('order_trip_status_type', *TRIP_STATUS_VALUES), nullable=True),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default=sa.text('0')),
    )
    op.create_index('ix_driver_reports_org_type', 'driver_reports', ['organization_id', 'type'])

    op.create_table(
        'order_trips',
        *_scoped_columns(),
        sa.Column(
            'order_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('orders.id', ondelete='CASCADE'),
            nullable=False,
            index=True,
        ),
        sa.Column('code', sa.String(length=50), nullable=False),
        sa.Column(
            'driver_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('drivers.id', ondelete='SET NULL'),
            nullable=True,
            index=True,
        ),
        sa.Column(
            'vehicle_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('vehicles.id', ondelete='SET NULL'),
            nullable=True,
            index=True,
        ),
        sa.Column('weight', sa.Numeric(precision=12, scale=3), nullable=True),
        sa.Column('pickup_date', sa.TIMESTAMP(timezone=True), nullable=True, index=True),
        sa.Column('delivery_date', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column(
            'last_status_type',
            _enum('order_trip_status_type', *TRIP_STATUS_VALUES),
            nullable=True,
            index=True,
        ),
        sa.Column('bill_of_lading', sa.String(length=100), nullable=True, index=True),
        sa.Column(
            'bill_of_lading_received',
            sa.Boolean(),
            nullable=False,
            server_default=sa.text('false'),
        ),
        sa.Column('bill_of_lading_received_date', sa.TIMESTAMP(timezone=True), nullable=True),
        _user_fk('updated_by_id'),
        sa.Column('published_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.UniqueConstraint('order_id', 'code', name='uq_order_trips_order_code'),
    )
    op.create_index(
        'ix_order_trips_org_bill_of_lading',
        'order_trips',
        ['organization_id', 'bill_of_lading'],
    )

    op.create_table(
        'order_trip_statuses',
        *_scoped_columns(),
        sa.Column(
            'trip_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('order_trips.id', ondelete='CASCADE'),
            nullable=False,
            index=True,
        ),
        sa.Column('type', _enum('order_trip_status_type', *TRIP_STATUS_VALUES), nullable=True),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column(
            'driver_report_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('driver_reports.id', ondelete='SET NULL'),
            nullable=True,
        ),
        _user_fk('created_by_id'),
        sa.UniqueConstraint('trip_id', 'sequence', name='uq_order_trip_statuses_trip_sequence'),
    )

    op.create_table(
        'order_trip_messages',
        *_scoped_columns(),
        sa.Column(
            'trip_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('order_trips.id', ondelete='CASCADE'),
            nullable=False,
            index=True,
        ),
        sa.Column(
            'type',
            _enum(
                'order_trip_message_type',
                'WAREHOUSE_PICKED_UP',
                'WAITING_FOR_DELIVERY',
                'DELIVERED',
                'COMPLETED',
                'CANCELED',
            ),
            nullable=True,
        ),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        _user_fk('created_by_id'),
    )

    op.create_table(
        'order_trip_bill_of_lading_images',
        sa.Column(
            'trip_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('order_trips.id', ondelete='CASCADE'),
            primary_key=True,
        ),
        sa.Column(
            'upload_file_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('upload_files.id', ondelete='CASCADE'),
            primary_key=True,
        ),
    )

    op.create_table(
        'order_trip_message_images',
        sa.Column(
            'message_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('order_trip_messages.id', ondelete='CASCADE'),
            primary_key=True,
        ),
        sa.Column(
            'upload_file_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('upload_files.id', ondelete='CASCADE'),
            primary_key=True,
        ),
    )

    op.create_table(
        'trip_driver_expenses',
        *_scoped_columns(),
        sa.Column(
            'trip_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('order_trips.id', ondelete='CASCADE'),
            nullable=False,
            index=True,
        ),
        sa.Column('amount', sa.Numeric(precision=14, scale=2), nullable=True),
    )

    op.create_table(
        'notifications',
        *_scoped_columns(),
        sa.Column(
            'type',
            _enum(
                'notification_type',
                'TRIP_STATUS_CHANGED',
                'BILL_OF_LADING_RECEIVED',
                'ORDER_STATUS_CHANGED',
                'ORDER_GROUP_STATUS_CHANGED',
            ),
            nullable=False,
            index=True,
        ),
        sa.Column('target_id', postgresql.UUID(as_uuid=True), nullable=False, index=True),
        _user_fk('created_by_id'),
        sa.Column('subject', sa.String(length=255), nullable=False),
        sa.Column('message', sa.String(length=255), nullable=False),
        sa.Column(
            'meta',
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
    )

    op.create_table(
        'notification_recipients',
        *_base_columns(),
        sa.Column(
            'notification_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('notifications.id', ondelete='CASCADE'),
            nullable=False,
            index=True,
        ),
        _user_fk('user_id', nullable=False, ondelete='CASCADE'),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('read_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.UniqueConstraint('notification_id', 'user_id', name='uq_notification_recipients_user'),
    )
    op.create_index(
        'ix_notification_recipients_user_read',
        'notification_recipients',
        ['user_id', 'is_read'],
    )


def downgrade() -> None:
    """Drop the trip workflow schema."""
    op.drop_index('ix_notification_recipients_user_read', table_name='notification_recipients')
    op.drop_table('notification_recipients')
    op.drop_table('notifications')
    op.drop_table('trip_driver_expenses')
    op.drop_table('order_trip_message_images')
    op.drop_table('order_trip_bill_of_lading_images')
    op.drop_table('order_trip_messages')
    op.drop_table('order_trip_statuses')
    op.drop_index('ix_order_trips_org_bill_of_lading', table_name='order_trips')
    op.drop_table('order_trips')
    op.drop_index('ix_driver_reports_org_type', table_name='driver_reports')
    op.drop_table('driver_reports')
    op.drop_table('order_participants')
    op.drop_index('ix_order_statuses_order_type', table_name='order_statuses')
    op.drop_table('order_statuses')
    op.drop_table('orders')
    op.drop_table('order_group_statuses')
    op.drop_table('order_groups')
    op.drop_table('route_points')
    op.drop_table('routes')
    op.drop_table('upload_files')
    op.drop_table('vehicles')
    op.drop_table('drivers')
    op.drop_table('organization_settings')
    op.drop_index('ix_organization_members_org_role', table_name='organization_members')
    op.drop_table('organization_members')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
    op.drop_table('organizations')
