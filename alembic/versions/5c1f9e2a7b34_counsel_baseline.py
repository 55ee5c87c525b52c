"""Counsel baseline: users, sessions, messages, notes, shares and counselor relationships

Revision ID: 5c1f9e2a7b34
Revises:
Create Date: 2026-10-18 09:12:44.318027

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5c1f9e2a7b34'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('hashed_password', sa.LargeBinary(), nullable=False),
        sa.Column('first_name', sa.String(), nullable=True),
        sa.Column('last_name', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('email_verified', sa.Boolean(), nullable=False),
        sa.Column('is_admin', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
    op.create_index(op.f('ix_users_username'), 'users', ['username'], unique=True)
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    op.create_table('user_subscriptions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('current_period_end', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id')
    )
    op.create_index(op.f('ix_user_subscriptions_id'), 'user_subscriptions', ['id'], unique=False)

    op.create_table('counsel_sessions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('title', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_counsel_sessions_user_id'), 'counsel_sessions', ['user_id'], unique=False)

    op.create_table('counsel_messages',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('session_id', sa.String(length=36), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('scripture_references', sa.JSON(), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['session_id'], ['counsel_sessions.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_counsel_messages_session_id'), 'counsel_messages', ['session_id'], unique=False)
    op.create_index(op.f('ix_counsel_messages_timestamp'), 'counsel_messages', ['timestamp'], unique=False)

    op.create_table('session_notes',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('session_id', sa.String(length=36), nullable=False),
        sa.Column('author_id', sa.Integer(), nullable=False),
        sa.Column('author_name', sa.String(), nullable=False),
        sa.Column('author_role', sa.String(length=16), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('is_private', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['author_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['session_id'], ['counsel_sessions.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_session_notes_session_id'), 'session_notes', ['session_id'], unique=False)
    op.create_index(op.f('ix_session_notes_author_id'), 'session_notes', ['author_id'], unique=False)

    op.create_table('session_shares',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('session_id', sa.String(length=36), nullable=False),
        sa.Column('share_token', sa.String(length=128), nullable=False),
        sa.Column('shared_by', sa.Integer(), nullable=False),
        sa.Column('shared_with', sa.String(), nullable=True),
        sa.Column('shared_with_user_id', sa.Integer(), nullable=True),
        sa.Column('allow_notes_access', sa.Boolean(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['session_id'], ['counsel_sessions.id'], ),
        sa.ForeignKeyConstraint(['shared_by'], ['users.id'], ),
        sa.ForeignKeyConstraint(['shared_with_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_session_shares_session_id'), 'session_shares', ['session_id'], unique=False)
    op.create_index(op.f('ix_session_shares_share_token'), 'session_shares', ['share_token'], unique=True)
    op.create_index(op.f('ix_session_shares_shared_by'), 'session_shares', ['shared_by'], unique=False)

    op.create_table('session_share_accesses',
        sa.Column('share_id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('first_accessed_at', sa.DateTime(), nullable=True),
        sa.Column('last_accessed_at', sa.DateTime(), nullable=False),
        sa.Column('is_dismissed', sa.Boolean(), nullable=False),
        sa.Column('dismissed_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('share_id', 'user_id')
    )

    op.create_table('counselor_assignments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('organization_id', sa.String(), nullable=False),
        sa.Column('counselor_id', sa.Integer(), nullable=False),
        sa.Column('member_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('assigned_by', sa.Integer(), nullable=True),
        sa.Column('assigned_at', sa.DateTime(), nullable=True),
        sa.Column('ended_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['assigned_by'], ['users.id'], ),
        sa.ForeignKeyConstraint(['counselor_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['member_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_counselor_assignments_id'), 'counselor_assignments', ['id'], unique=False)
    op.create_index(op.f('ix_counselor_assignments_organization_id'), 'counselor_assignments', ['organization_id'], unique=False)
    op.create_index(op.f('ix_counselor_assignments_counselor_id'), 'counselor_assignments', ['counselor_id'], unique=False)
    op.create_index(op.f('ix_counselor_assignments_member_id'), 'counselor_assignments', ['member_id'], unique=False)
    # At most one active row per (organization, counselor, member).
    op.create_index(
        'uq_counselor_assignments_active_triple',
        'counselor_assignments',
        ['organization_id', 'counselor_id', 'member_id'],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
        sqlite_where=sa.text("status = 'active'"),
    )

    op.create_table('counselor_coverage_grants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('organization_id', sa.String(), nullable=True),
        sa.Column('backup_counselor_id', sa.Integer(), nullable=False),
        sa.Column('member_id', sa.Integer(), nullable=False),
        sa.Column('granted_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=True),
        sa.Column('revoked_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['backup_counselor_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['granted_by'], ['users.id'], ),
        sa.ForeignKeyConstraint(['member_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_counselor_coverage_grants_id'), 'counselor_coverage_grants', ['id'], unique=False)
    op.create_index(op.f('ix_counselor_coverage_grants_backup_counselor_id'), 'counselor_coverage_grants', ['backup_counselor_id'], unique=False)
    op.create_index(op.f('ix_counselor_coverage_grants_member_id'), 'counselor_coverage_grants', ['member_id'], unique=False)


def downgrade() -> None:
    op.drop_table('counselor_coverage_grants')
    op.drop_index('uq_counselor_assignments_active_triple', table_name='counselor_assignments')
    op.drop_table('counselor_assignments')
    op.drop_table('session_share_accesses')
    op.drop_table('session_shares')
    op.drop_table('session_notes')
    op.drop_table('counsel_messages')
    op.drop_table('counsel_sessions')
    op.drop_table('user_subscriptions')
    op.drop_table('users')
