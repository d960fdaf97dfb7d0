"""initial custody schema

Revision ID: c0a1
Revises:
Create Date: 2026-10-18 00:00:00.000000

Creates the custody ledger schema:
- users: people who hold assets and may sign in
- session_tokens: server-side sessions (digest only)
- assets: tracked items with status/holder and optimistic version column
- assignments: custody periods; at most one open row per asset
- events: append-only custody event log keyed by tag strings
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'c0a1'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # users
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('user_tag_id', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username', name='uq_users_username'),
        sa.UniqueConstraint('user_tag_id', name='uq_users_user_tag_id'),
        sa.CheckConstraint("role IN ('ADMIN', 'USER')", name='ck_users_role'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=False)

    # ============================================================================
    # session_tokens: only the SHA-256 digest of the token is stored
    # ============================================================================
    op.create_table(
        'session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_seen_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('token_hash', name='uq_session_tokens_token_hash'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_session_tokens_user_id', 'session_tokens', ['user_id'], unique=False)
    op.create_index('ix_session_tokens_expires_at', 'session_tokens', ['expires_at'], unique=False)

    # ============================================================================
    # assets: holder_user_id set iff status = CHECKED_OUT
    # ============================================================================
    op.create_table(
        'assets',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('asset_tag_id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=120), nullable=True),
        sa.Column('serial', sa.String(length=120), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('holder_user_id', sa.Integer(), nullable=True),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['holder_user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('asset_tag_id', name='uq_assets_asset_tag_id'),
        sa.CheckConstraint(
            "status IN ('AVAILABLE', 'CHECKED_OUT', 'MISSING', 'MAINTENANCE', 'RETIRED')",
            name='ck_assets_status',
        ),
        sa.CheckConstraint(
            "(status = 'CHECKED_OUT' AND holder_user_id IS NOT NULL)"
            " OR (status <> 'CHECKED_OUT' AND holder_user_id IS NULL)",
            name='ck_assets_holder_matches_status',
        ),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_assets_asset_tag_id', 'assets', ['asset_tag_id'], unique=False)
    op.create_index('ix_assets_status', 'assets', ['status'], unique=False)
    op.create_index('ix_assets_holder_user_id', 'assets', ['holder_user_id'], unique=False)

    # ============================================================================
    # assignments: custody periods
    # ============================================================================
    op.create_table(
        'assignments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('asset_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('checked_out_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('due_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('returned_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['asset_id'], ['assets.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    # At most one open assignment per asset
    op.create_index(
        'uq_assignments_active_asset', 'assignments', ['asset_id'], unique=True,
        sqlite_where=sa.text('returned_at IS NULL'),
        postgresql_where=sa.text('returned_at IS NULL'),
    )
    op.create_index('ix_assignments_user_open', 'assignments', ['user_id', 'returned_at'], unique=False)
    op.create_index('ix_assignments_asset_checked_out', 'assignments', ['asset_id', 'checked_out_at'], unique=False)

    # ============================================================================
    # events: append-only, tag strings instead of foreign keys
    # ============================================================================
    op.create_table(
        'events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('ts', sa.DateTime(timezone=True), nullable=False),
        sa.Column('type', sa.String(length=32), nullable=False),
        sa.Column('asset_tag_id', sa.String(length=64), nullable=True),
        sa.Column('user_tag_id', sa.String(length=64), nullable=True),
        sa.Column('confidence', sa.Float(), nullable=False),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('confidence >= 0 AND confidence <= 1', name='ck_events_confidence_range'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_events_ts', 'events', ['ts'], unique=False)
    op.create_index('ix_events_type', 'events', ['type'], unique=False)
    op.create_index('ix_events_asset_tag_ts', 'events', ['asset_tag_id', 'ts'], unique=False)
    op.create_index('ix_events_user_tag_ts', 'events', ['user_tag_id', 'ts'], unique=False)


def downgrade():
    op.drop_index('ix_events_user_tag_ts', table_name='events')
    op.drop_index('ix_events_asset_tag_ts', table_name='events')
    op.drop_index('ix_events_type', table_name='events')
    op.drop_index('ix_events_ts', table_name='events')
    op.drop_table('events')

    op.drop_index('ix_assignments_asset_checked_out', table_name='assignments')
    op.drop_index('ix_assignments_user_open', table_name='assignments')
    op.drop_index('uq_assignments_active_asset', table_name='assignments')
    op.drop_table('assignments')

    op.drop_index('ix_assets_holder_user_id', table_name='assets')
    op.drop_index('ix_assets_status', table_name='assets')
    op.drop_index('ix_assets_asset_tag_id', table_name='assets')
    op.drop_table('assets')

    op.drop_index('ix_session_tokens_expires_at', table_name='session_tokens')
    op.drop_index('ix_session_tokens_user_id', table_name='session_tokens')
    op.drop_table('session_tokens')

    op.drop_index('ix_users_username', table_name='users')
    op.drop_table('users')
