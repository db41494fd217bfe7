"""Add repair_reports table

Revision ID: 002_add_repair_reports
Revises: 001_create_inspection_tables
Create Date: 2025-02-03
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '002_add_repair_reports'
down_revision = '001_create_inspection_tables'
branch_labels = None
depends_on = None


def upgrade():
    """Create repair_reports."""
    if 'repair_reports' in sa.inspect(op.get_bind()).get_table_names():
        return

    op.create_table(
        'repair_reports',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('repair_approval_id', sa.Integer(), sa.ForeignKey('repair_approvals.id', ondelete='CASCADE'),
                  nullable=False, unique=True, index=True),
        sa.Column('reported_by', sa.Integer(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('repair_description', sa.Text(), nullable=False),
        sa.Column('before_photo_url', sa.String(500)),
        sa.Column('after_photo_url', sa.String(500)),
        sa.Column('repair_lat', sa.Float()),
        sa.Column('repair_lng', sa.Float()),
        sa.Column('repair_completed_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
        sa.Column('updated_at', sa.DateTime(timezone=True)),
    )


def downgrade():
    """Drop repair_reports."""
    op.drop_table('repair_reports')
