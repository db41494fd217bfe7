"""Create inspection tables (users, apars, schedules, inspections, repairs, notifications, logs)

Revision ID: 001_create_inspection_tables
Revises:
Create Date: 2025-01-06

Note: Each table is only created when missing so the migration can run
against databases bootstrapped by init_db().
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_create_inspection_tables'
down_revision = None
branch_labels = None
depends_on = None

TABLES = (
    'users',
    'apars',
    'inspection_schedules',
    'inspections',
    'repair_approvals',
    'notifications',
    'inspection_logs',
)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True)),
    ]


def upgrade():
    """Create inspection tables."""
    existing = set(sa.inspect(op.get_bind()).get_table_names())

    if 'users' not in existing:
        op.create_table(
            'users',
            sa.Column('id', sa.Integer(), primary_key=True, index=True),
            sa.Column('name', sa.String(255), nullable=False),
            sa.Column('email', sa.String(255), nullable=False, unique=True, index=True),
            sa.Column('hashed_password', sa.String(255), nullable=False),
            sa.Column('role', sa.String(20), nullable=False, server_default='teknisi', index=True),
            sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
            *_timestamps(),
        )

    if 'apars' not in existing:
        op.create_table(
            'apars',
            sa.Column('id', sa.Integer(), primary_key=True, index=True),
            sa.Column('serial_number', sa.String(100), nullable=False, unique=True, index=True),
            sa.Column('qr_code', sa.String(100), nullable=False, unique=True, index=True),
            sa.Column('location_type', sa.String(20), nullable=False, server_default='fixed', index=True),
            sa.Column('location_name', sa.String(255), nullable=False),
            sa.Column('latitude', sa.Float()),
            sa.Column('longitude', sa.Float()),
            sa.Column('valid_radius', sa.Integer(), nullable=False, server_default='30'),
            sa.Column('capacity', sa.Integer(), nullable=False, server_default='1'),
            sa.Column('manufactured_date', sa.Date()),
            sa.Column('expired_at', sa.Date()),
            sa.Column('status', sa.String(20), nullable=False, server_default='active', index=True),
            sa.Column('notes', sa.Text()),
            *_timestamps(),
        )

    if 'inspection_schedules' not in existing:
        op.create_table(
            'inspection_schedules',
            sa.Column('id', sa.Integer(), primary_key=True, index=True),
            sa.Column('apar_id', sa.Integer(), sa.ForeignKey('apars.id', ondelete='CASCADE'), nullable=False, index=True),
            sa.Column('assigned_user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), index=True),
            sa.Column('scheduled_date', sa.Date(), nullable=False, index=True),
            sa.Column('start_time', sa.Time(), nullable=False),
            sa.Column('end_time', sa.Time(), nullable=False),
            sa.Column('frequency', sa.String(20), nullable=False, server_default='monthly'),
            sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true(), index=True),
            sa.Column('is_completed', sa.Boolean(), nullable=False, server_default=sa.false(), index=True),
            sa.Column('notes', sa.Text()),
            sa.Column('reminder_sent_at', sa.DateTime(timezone=True)),
            *_timestamps(),
        )

    if 'inspections' not in existing:
        op.create_table(
            'inspections',
            sa.Column('id', sa.Integer(), primary_key=True, index=True),
            sa.Column('apar_id', sa.Integer(), sa.ForeignKey('apars.id', ondelete='CASCADE'), nullable=False, index=True),
            sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False, index=True),
            sa.Column('schedule_id', sa.Integer(), sa.ForeignKey('inspection_schedules.id', ondelete='SET NULL'), index=True),
            sa.Column('condition', sa.String(20), nullable=False),
            sa.Column('notes', sa.Text()),
            sa.Column('photo_url', sa.String(500)),
            sa.Column('selfie_url', sa.String(500)),
            sa.Column('inspection_lat', sa.Float()),
            sa.Column('inspection_lng', sa.Float()),
            sa.Column('location_valid', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('status', sa.String(20), nullable=False, server_default='completed'),
            sa.Column('requires_repair', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('repair_status', sa.String(20), nullable=False, server_default='none'),
            sa.Column('repair_notes', sa.Text()),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
            sa.Column('updated_at', sa.DateTime(timezone=True)),
        )

    if 'repair_approvals' not in existing:
        op.create_table(
            'repair_approvals',
            sa.Column('id', sa.Integer(), primary_key=True, index=True),
            sa.Column('inspection_id', sa.Integer(), sa.ForeignKey('inspections.id', ondelete='CASCADE'),
                      nullable=False, unique=True, index=True),
            sa.Column('approved_by', sa.Integer(), sa.ForeignKey('users.id')),
            sa.Column('status', sa.String(20), nullable=False, server_default='pending', index=True),
            sa.Column('admin_notes', sa.Text()),
            sa.Column('repair_notes', sa.Text()),
            sa.Column('approved_at', sa.DateTime(timezone=True)),
            sa.Column('completed_at', sa.DateTime(timezone=True)),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
            sa.Column('updated_at', sa.DateTime(timezone=True)),
        )

    if 'notifications' not in existing:
        op.create_table(
            'notifications',
            sa.Column('id', sa.Integer(), primary_key=True, index=True),
            sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
            sa.Column('type', sa.String(50), nullable=False, index=True),
            sa.Column('title', sa.String(255), nullable=False),
            sa.Column('message', sa.Text(), nullable=False),
            sa.Column('read', sa.Boolean(), nullable=False, server_default=sa.false(), index=True),
            sa.Column('read_at', sa.DateTime(timezone=True)),
            sa.Column('link', sa.String(500)),
            sa.Column('metadata', sa.JSON()),
            sa.Column('source', sa.String(50)),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
        )

    if 'inspection_logs' not in existing:
        op.create_table(
            'inspection_logs',
            sa.Column('id', sa.Integer(), primary_key=True, index=True),
            sa.Column('apar_id', sa.Integer(), sa.ForeignKey('apars.id', ondelete='CASCADE'), nullable=False, index=True),
            sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), index=True),
            sa.Column('inspection_id', sa.Integer(), sa.ForeignKey('inspections.id', ondelete='SET NULL')),
            sa.Column('action', sa.String(50), nullable=False, index=True),
            sa.Column('lat', sa.Float()),
            sa.Column('lng', sa.Float()),
            sa.Column('ip_address', sa.String(45)),
            sa.Column('user_agent', sa.Text()),
            sa.Column('device_info', sa.JSON()),
            sa.Column('details', sa.Text()),
            sa.Column('is_successful', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
        )


def downgrade():
    """Drop inspection tables."""
    for table in reversed(TABLES):
        op.drop_table(table)
