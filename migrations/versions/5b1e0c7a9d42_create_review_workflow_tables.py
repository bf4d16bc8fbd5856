"""create review workflow tables

Revision ID: 5b1e0c7a9d42
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '5b1e0c7a9d42'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ENUMS = {
    'team_role': ('owner', 'admin', 'member'),
    'project_role': ('owner', 'admin', 'editor', 'client_viewer', 'client_approver'),
    'deliverable_status': ('pending', 'in_review', 'approved', 'rejected'),
    'thread_status': ('open', 'resolved'),
    'approval_decision': ('approved', 'changes_requested', 'rejected'),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _base_columns():
    return [
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    for name, values in ENUMS.items():
        enum_values = ", ".join(f"'{v}'" for v in values)
        op.execute(f"DO $$ BEGIN IF NOT EXISTS (SELECT 1 FROM pg_type WHERE typname = '{name}') THEN CREATE TYPE {name} AS ENUM ({enum_values}); END IF; END $$;")

    op.create_table(
        'tenants',
        *_base_columns(),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('domain', sa.String(), nullable=True, unique=True),
    )
    op.create_table(
        'users',
        *_base_columns(),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('full_name', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'team_members',
        *_base_columns(),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('role', _enum('team_role'), nullable=False),
        sa.UniqueConstraint('tenant_id', 'user_id', name='uq_team_members_tenant_user'),
    )
    op.create_index('ix_team_members_tenant_id', 'team_members', ['tenant_id'])
    op.create_index('ix_team_members_user_id', 'team_members', ['user_id'])

    op.create_table(
        'clients',
        *_base_columns(),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('company', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('tenants.id'), nullable=False),
    )
    op.create_table(
        'client_users',
        *_base_columns(),
        sa.Column('client_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('clients.id'), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.UniqueConstraint('client_id', 'user_id', name='uq_client_users_client_user'),
    )
    op.create_index('ix_client_users_client_id', 'client_users', ['client_id'])
    op.create_index('ix_client_users_user_id', 'client_users', ['user_id'])

    op.create_table(
        'projects',
        *_base_columns(),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('client_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('clients.id'), nullable=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('owner_user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=True),
    )
    op.create_index('ix_projects_tenant_id', 'projects', ['tenant_id'])

    op.create_table(
        'project_members',
        *_base_columns(),
        sa.Column('project_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('projects.id'), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('role', _enum('project_role'), nullable=False),
        sa.UniqueConstraint('project_id', 'user_id', name='uq_project_members_project_user'),
    )
    op.create_index('ix_project_members_project_id', 'project_members', ['project_id'])
    op.create_index('ix_project_members_user_id', 'project_members', ['user_id'])

    op.create_table(
        'deliverables',
        *_base_columns(),
        sa.Column('project_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('projects.id'), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', _enum('deliverable_status'), nullable=False),
        sa.Column('latest_version_number', sa.Integer(), nullable=False, server_default='0'),
    )
    op.create_index('ix_deliverables_project_id', 'deliverables', ['project_id'])

    op.create_table(
        'deliverable_versions',
        *_base_columns(),
        sa.Column('deliverable_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('deliverables.id'), nullable=False),
        sa.Column('version_number', sa.Integer(), nullable=False),
        sa.Column('file_url', sa.String(), nullable=True),
        sa.Column('file_type', sa.String(), nullable=True),
        sa.Column('duration', sa.Float(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('published_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('deliverable_id', 'version_number', name='uq_deliverable_versions_number'),
    )
    op.create_index('ix_deliverable_versions_deliverable_id', 'deliverable_versions', ['deliverable_id'])

    op.create_table(
        'review_threads',
        *_base_columns(),
        sa.Column('version_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('deliverable_versions.id'), nullable=False),
        sa.Column('timecode_seconds', sa.Float(), nullable=True),
        sa.Column('x', sa.Float(), nullable=True),
        sa.Column('y', sa.Float(), nullable=True),
        sa.Column('status', _enum('thread_status'), nullable=False),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('resolved_at', sa.DateTime(), nullable=True),
        sa.Column('resolved_by', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=True),
    )
    op.create_index('ix_review_threads_version_id', 'review_threads', ['version_id'])

    op.create_table(
        'review_comments',
        *_base_columns(),
        sa.Column('thread_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('review_threads.id'), nullable=False),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('guest_name', sa.String(), nullable=True),
        sa.Column('guest_email', sa.String(), nullable=True),
    )
    op.create_index('ix_review_comments_thread_id', 'review_comments', ['thread_id'])

    op.create_table(
        'approvals',
        *_base_columns(),
        sa.Column('deliverable_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('deliverables.id'), nullable=False),
        sa.Column('version_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('deliverable_versions.id'), nullable=False),
        sa.Column('decision', _enum('approval_decision'), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('approver_user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('approved_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_approvals_deliverable_id', 'approvals', ['deliverable_id'])
    op.create_index('ix_approvals_version_id', 'approvals', ['version_id'])

    op.create_table(
        'review_links',
        *_base_columns(),
        sa.Column('deliverable_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('deliverables.id'), nullable=False),
        sa.Column('token_hash', sa.String(64), nullable=False),
        sa.Column('password_hash', sa.String(), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('require_auth', sa.Boolean(), nullable=False),
        sa.Column('single_use', sa.Boolean(), nullable=False),
        sa.Column('allow_guest_comments', sa.Boolean(), nullable=False),
        sa.Column('use_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('used_at', sa.DateTime(), nullable=True),
        sa.Column('used_by_user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
    )
    op.create_index('ix_review_links_deliverable_id', 'review_links', ['deliverable_id'])
    op.create_index('ix_review_links_token_hash', 'review_links', ['token_hash'], unique=True)

    op.create_table(
        'notifications',
        *_base_columns(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('payload', postgresql.JSONB(), nullable=False),
        sa.Column('read_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])

    op.create_table(
        'user_preferences',
        *_base_columns(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False, unique=True),
        sa.Column('notification_prefs', postgresql.JSONB(), nullable=False),
    )

    op.create_table(
        'audit_events',
        *_base_columns(),
        sa.Column('project_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('projects.id'), nullable=True),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('actor_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('entity_type', sa.String(), nullable=False),
        sa.Column('entity_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('detail', postgresql.JSONB(), nullable=True),
    )
    op.create_index('ix_audit_events_project_id', 'audit_events', ['project_id'])


def downgrade() -> None:
    for table in (
        'audit_events', 'user_preferences', 'notifications', 'review_links', 'approvals',
        'review_comments', 'review_threads', 'deliverable_versions', 'deliverables',
        'project_members', 'projects', 'client_users', 'clients', 'team_members', 'users', 'tenants',
    ):
        op.drop_table(table)
    for name in reversed(list(ENUMS)):
        op.execute(f"DROP TYPE IF EXISTS {name}")
