"""Add reports and exports tables

Revision ID: rm_001
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'rm_001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'reports',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('handle', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('data_source', sa.String(100), nullable=False),
        sa.Column('entity_ids', sa.JSON(), nullable=False),
        sa.Column('site_id', sa.Integer(), nullable=True),
        sa.Column('date_range', sa.String(50), nullable=False, server_default='last30days'),
        sa.Column('custom_date_start', sa.DateTime(), nullable=True),
        sa.Column('custom_date_end', sa.DateTime(), nullable=True),
        sa.Column('field_handles', sa.JSON(), nullable=False),
        sa.Column('export_format', sa.String(10), nullable=False, server_default='csv'),
        sa.Column('export_mode', sa.String(20), nullable=False, server_default='separate'),
        sa.Column('enable_schedule', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('schedule', sa.String(50), nullable=False, server_default='disabled'),
        sa.Column('last_generated_at', sa.DateTime(), nullable=True),
        sa.Column('next_scheduled_at', sa.DateTime(), nullable=True),
        sa.Column('enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_reports'),
        sa.UniqueConstraint('handle', name='uq_reports_handle'),
    )
    op.create_index('ix_reports_next_scheduled_at', 'reports', ['next_scheduled_at'])

    op.create_table(
        'exports',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('report_id', sa.Uuid(), nullable=True),
        sa.Column('data_source', sa.String(100), nullable=False),
        sa.Column('target_kind', sa.String(20), nullable=False, server_default='single'),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('entity_ids', sa.JSON(), nullable=False),
        sa.Column('entity_name', sa.String(255), nullable=True),
        sa.Column('date_range_used', sa.String(50), nullable=True),
        sa.Column('date_start_used', sa.DateTime(), nullable=True),
        sa.Column('date_end_used', sa.DateTime(), nullable=True),
        sa.Column('field_handles_used', sa.JSON(), nullable=False),
        sa.Column('site_ids_used', sa.JSON(), nullable=False),
        sa.Column('format', sa.String(10), nullable=False),
        sa.Column('filename', sa.String(255), nullable=True),
        sa.Column('file_path', sa.String(1024), nullable=True),
        sa.Column('file_size', sa.Integer(), nullable=True),
        sa.Column('record_count', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('progress', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('triggered_by', sa.String(20), nullable=False, server_default='manual'),
        sa.Column('triggered_by_user', sa.String(255), nullable=True),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ['report_id'], ['reports.id'], name='fk_exports_report_id_reports', ondelete='SET NULL',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_exports'),
    )
    op.create_index('ix_exports_report_id', 'exports', ['report_id'])
    op.create_index('ix_exports_status', 'exports', ['status'])
    op.create_index('ix_exports_created_at', 'exports', ['created_at'])


def downgrade() -> None:
    op.drop_index('ix_exports_created_at', table_name='exports')
    op.drop_index('ix_exports_status', table_name='exports')
    op.drop_index('ix_exports_report_id', table_name='exports')
    op.drop_table('exports')
    op.drop_index('ix_reports_next_scheduled_at', table_name='reports')
    op.drop_table('reports')
