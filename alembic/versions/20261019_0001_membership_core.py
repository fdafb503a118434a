"""membership core tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 00:01:00
"""

from alembic import op
import sqlalchemy as sa


revision = '20261019_0001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'centers',
        sa.Column('id', sa.String(length=32), primary_key=True),
        sa.Column('name', sa.String(length=180), nullable=False),
        sa.Column('code', sa.String(length=7), nullable=False),
        sa.Column('is_pinned', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('image_url', sa.Text(), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
    )
    op.create_index('ix_centers_code', 'centers', ['code'])
    op.create_index('ix_centers_created_at', 'centers', ['created_at'])

    op.create_table(
        'class_definitions',
        sa.Column('id', sa.String(length=32), primary_key=True),
        sa.Column('center_id', sa.String(length=32), sa.ForeignKey('centers.id'), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('name_key', sa.String(length=120), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('image_url', sa.Text(), nullable=False, server_default=''),
        sa.Column('chat_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_pinned', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('schedule_ref', sa.Text(), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.UniqueConstraint('center_id', 'name_key', name='uq_class_definitions_center_name_key'),
    )
    op.create_index('ix_class_definitions_center_id', 'class_definitions', ['center_id'])
    op.create_index('ix_class_definitions_center_position', 'class_definitions', ['center_id', 'position'])

    op.create_table(
        'users',
        sa.Column('id', sa.String(length=32), primary_key=True),
        sa.Column('name', sa.String(length=180), nullable=False, server_default=''),
        sa.Column('email', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('role', sa.String(length=160), nullable=False, server_default='student'),
        sa.Column('organization_id', sa.String(length=32), nullable=False, server_default=''),
        sa.Column('center', sa.String(length=20), nullable=False, server_default='personal'),
        sa.Column('course', sa.String(length=40), nullable=False, server_default='personal'),
        sa.Column('class_name', sa.String(length=120), nullable=False, server_default='personal'),
        sa.Column('is_banned', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('trophies', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('streak', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
    )
    op.create_index('ix_users_email', 'users', ['email'])
    op.create_index('ix_users_role', 'users', ['role'])
    op.create_index('ix_users_organization_id', 'users', ['organization_id'])
    op.create_index('ix_users_center', 'users', ['center'])
    op.create_index('ix_users_is_banned', 'users', ['is_banned'])
    op.create_index('ix_users_org_course_class', 'users', ['organization_id', 'course', 'class_name'])

    op.create_table(
        'cascade_runs',
        sa.Column('id', sa.String(length=32), primary_key=True),
        sa.Column('operation', sa.String(length=40), nullable=False),
        sa.Column('center_id', sa.String(length=32), nullable=False),
        sa.Column('params_json', sa.Text(), nullable=False, server_default='{}'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='running'),
        sa.Column('batches_total', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('batches_committed', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('writes_committed', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_error', sa.Text(), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_cascade_runs_operation', 'cascade_runs', ['operation'])
    op.create_index('ix_cascade_runs_center_id', 'cascade_runs', ['center_id'])
    op.create_index('ix_cascade_runs_status', 'cascade_runs', ['status'])
    op.create_index('ix_cascade_runs_created_at', 'cascade_runs', ['created_at'])
    op.create_index('ix_cascade_runs_status_created', 'cascade_runs', ['status', 'created_at'])


def downgrade() -> None:
    op.drop_table('cascade_runs')
    op.drop_table('users')
    op.drop_table('class_definitions')
    op.drop_table('centers')
