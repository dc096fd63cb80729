"""initial cardmock schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id():
    return sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()'))


def _uuid(name, target=None, ondelete=None, nullable=True):
    if target is None:
        return sa.Column(name, postgresql.UUID(as_uuid=True), nullable=nullable)
    return sa.Column(name, postgresql.UUID(as_uuid=True), sa.ForeignKey(target, ondelete=ondelete), nullable=nullable)


def _ts(name, nullable=True):
    return sa.Column(name, sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=nullable)


def _created_updated():
    return [_ts('created_at'), _ts('updated_at')]


TEMPLATE_TYPES = [
    {
        'id': 'prepaid-cr80',
        'name': 'Prepaid Card (CR80)',
        'width': 1013,
        'height': 638,
        'aspect_ratio': 1.5878,
        'category': 'physical',
        'description': 'Standard CR80 card at 300 DPI (3.375in x 2.125in).',
        'guide_presets': {'logo_left': 90, 'logo_top': 107, 'midpoint': 384},
    },
    {
        'id': 'wallet-apple',
        'name': 'Apple Wallet',
        'width': 1032,
        'height': 336,
        'aspect_ratio': 3.0714,
        'category': 'digital',
        'description': 'Apple Wallet pass strip image.',
        'guide_presets': {'logo_zone_right': 200, 'safe_area': 50},
    },
    {
        'id': 'wallet-google',
        'name': 'Google Wallet',
        'width': 1032,
        'height': 336,
        'aspect_ratio': 3.0714,
        'category': 'digital',
        'description': 'Google Wallet pass hero image.',
        'guide_presets': {'logo_zone_right': 200, 'safe_area': 50},
    },
]


def upgrade() -> None:
    """Upgrade schema."""
    op.execute('CREATE EXTENSION IF NOT EXISTS pgcrypto')

    # --- identity ---
    op.create_table(
        'users',
        _id(),
        sa.Column('email', sa.String(), nullable=False, unique=True),
        sa.Column('display_name', sa.String(), nullable=True),
        sa.Column('image_url', sa.String(), nullable=True),
        sa.Column('is_superadmin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('auth_provider', sa.String(), nullable=True),
        sa.Column('external_subject', sa.String(), nullable=True, unique=True),
        *_created_updated(),
    )
    op.create_index('ix_users_email', 'users', ['email'])

    op.create_table(
        'organizations',
        _id(),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('slug', sa.String(), nullable=True, unique=True),
        sa.Column('external_id', sa.String(), nullable=True, unique=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        _uuid('created_by', 'users.id'),
        *_created_updated(),
    )

    op.create_table(
        'organization_memberships',
        sa.Column('organization_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('organizations.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('role', sa.String(), nullable=False),
        sa.Column('can_read', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('can_write', sa.Boolean(), nullable=False, server_default=sa.true()),
        _ts('created_at'),
        sa.CheckConstraint("role in ('admin','member','client')", name='ck_org_memberships_role'),
    )
    op.create_index('idx_org_memberships_user_id', 'organization_memberships', ['user_id'])

    # --- clients ---
    op.create_table(
        'clients',
        _id(),
        _uuid('organization_id', 'organizations.id', 'CASCADE', nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('email', sa.String(320), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('ein', sa.String(20), nullable=True),
        _uuid('parent_client_id', 'clients.id', 'SET NULL'),
        _uuid('created_by', 'users.id'),
        *_created_updated(),
    )
    op.create_index('idx_clients_organization_id', 'clients', ['organization_id'])
    op.create_index('idx_clients_parent_client_id', 'clients', ['parent_client_id'])

    op.create_table(
        'client_users',
        _id(),
        _uuid('client_id', 'clients.id', 'CASCADE', nullable=False),
        _uuid('user_id', 'users.id', 'CASCADE', nullable=False),
        _uuid('organization_id', 'organizations.id', 'CASCADE', nullable=False),
        _uuid('assigned_by', 'users.id'),
        _ts('created_at'),
    )
    op.create_index('idx_client_users_user_org', 'client_users', ['user_id', 'organization_id'], unique=True)
    op.create_index('idx_client_users_client_id', 'client_users', ['client_id'])

    # --- brands ---
    op.create_table(
        'brands',
        _id(),
        _uuid('organization_id', 'organizations.id', 'CASCADE', nullable=False),
        sa.Column('company_name', sa.String(200), nullable=False),
        sa.Column('domain', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        _uuid('client_id', 'clients.id', 'SET NULL'),
        _uuid('primary_logo_variant_id'),
        _uuid('created_by', 'users.id'),
        *_created_updated(),
    )
    op.create_index('idx_brands_organization_id', 'brands', ['organization_id'])
    op.create_index('idx_brands_client_id', 'brands', ['client_id'])

    op.create_table(
        'logo_variants',
        _id(),
        _uuid('brand_id', 'brands.id', 'CASCADE', nullable=False),
        _uuid('organization_id', 'organizations.id', 'CASCADE', nullable=False),
        sa.Column('logo_url', sa.String(2048), nullable=False),
        sa.Column('logo_type', sa.String(50), nullable=True),
        sa.Column('logo_format', sa.String(20), nullable=True),
        sa.Column('theme', sa.String(20), nullable=True),
        sa.Column('width', sa.Integer(), nullable=True),
        sa.Column('height', sa.Integer(), nullable=True),
        sa.Column('file_size', sa.Integer(), nullable=True),
        sa.Column('background_color', sa.String(20), nullable=True),
        sa.Column('accent_color', sa.String(20), nullable=True),
        sa.Column('is_uploaded', sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts('created_at'),
    )
    op.create_index('idx_logo_variants_brand_id', 'logo_variants', ['brand_id'])

    op.create_table(
        'brand_colors',
        _id(),
        _uuid('brand_id', 'brands.id', 'CASCADE', nullable=False),
        sa.Column('hex', sa.String(9), nullable=False),
        sa.Column('type', sa.String(30), nullable=True),
        sa.Column('brightness', sa.Integer(), nullable=True),
    )
    op.create_index('idx_brand_colors_brand_id', 'brand_colors', ['brand_id'])

    op.create_table(
        'brand_fonts',
        _id(),
        _uuid('brand_id', 'brands.id', 'CASCADE', nullable=False),
        sa.Column('font_name', sa.String(200), nullable=False),
        sa.Column('font_type', sa.String(30), nullable=True),
        sa.Column('origin', sa.String(30), nullable=True),
    )
    op.create_index('idx_brand_fonts_brand_id', 'brand_fonts', ['brand_id'])

    # --- templates ---
    template_types = op.create_table(
        'template_types',
        sa.Column('id', sa.String(50), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('width', sa.Integer(), nullable=False),
        sa.Column('height', sa.Integer(), nullable=False),
        sa.Column('aspect_ratio', sa.Float(), nullable=False),
        sa.Column('category', sa.String(20), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('guide_presets', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        _ts('created_at'),
        sa.CheckConstraint("category in ('physical','digital')", name='ck_template_types_category'),
    )
    op.bulk_insert(template_types, TEMPLATE_TYPES)

    op.create_table(
        'templates',
        _id(),
        _uuid('organization_id', 'organizations.id', 'CASCADE', nullable=False),
        sa.Column('template_name', sa.String(200), nullable=False),
        sa.Column('template_url', sa.String(2048), nullable=False),
        sa.Column('file_type', sa.String(100), nullable=True),
        sa.Column('file_size', sa.Integer(), nullable=True),
        sa.Column('width', sa.Integer(), nullable=True),
        sa.Column('height', sa.Integer(), nullable=True),
        sa.Column('original_width', sa.Integer(), nullable=True),
        sa.Column('original_height', sa.Integer(), nullable=True),
        sa.Column('scale_factor', sa.Float(), nullable=True),
        sa.Column('upload_quality', sa.String(20), nullable=True),
        sa.Column('template_type_id', sa.String(50), sa.ForeignKey('template_types.id'),
                  nullable=False, server_default='prepaid-cr80'),
        sa.Column('tags', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_archived', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('archived_at', sa.TIMESTAMP(timezone=True), nullable=True),
        _uuid('archived_by', 'users.id'),
        _uuid('created_by', 'users.id'),
        _ts('uploaded_date'),
        *_created_updated(),
    )
    op.create_index('idx_templates_organization_id', 'templates', ['organization_id'])
    op.create_index('idx_templates_template_type_id', 'templates', ['template_type_id'])

    op.create_table(
        'folders',
        _id(),
        _uuid('organization_id', 'organizations.id', 'CASCADE', nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        _uuid('parent_folder_id', 'folders.id', 'CASCADE'),
        sa.Column('is_org_shared', sa.Boolean(), nullable=False, server_default=sa.false()),
        _uuid('created_by', 'users.id', nullable=False),
        *_created_updated(),
    )
    op.create_index('idx_folders_org_created_by', 'folders', ['organization_id', 'created_by'])
    op.create_index('idx_folders_parent_folder_id', 'folders', ['parent_folder_id'])

    # --- workflows and projects ---
    op.create_table(
        'workflows',
        _id(),
        _uuid('organization_id', 'organizations.id', 'CASCADE', nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('stages', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('is_default', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_archived', sa.Boolean(), nullable=False, server_default=sa.false()),
        _uuid('created_by', 'users.id'),
        *_created_updated(),
    )
    op.create_index('idx_workflows_organization_id', 'workflows', ['organization_id'])

    op.create_table(
        'projects',
        _id(),
        _uuid('organization_id', 'organizations.id', 'CASCADE', nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('client_name', sa.String(200), nullable=True),
        _uuid('client_id', 'clients.id', 'SET NULL'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('color', sa.String(7), nullable=False, server_default='#3B82F6'),
        _uuid('workflow_id', 'workflows.id', 'SET NULL'),
        _uuid('created_by', 'users.id'),
        *_created_updated(),
        sa.CheckConstraint("status in ('active','completed','archived')", name='ck_projects_status'),
    )
    op.create_index('idx_projects_organization_id', 'projects', ['organization_id'])
    op.create_index('idx_projects_workflow_id', 'projects', ['workflow_id'])
    op.create_index('idx_projects_client_id', 'projects', ['client_id'])

    op.create_table(
        'project_stage_reviewers',
        _id(),
        _uuid('project_id', 'projects.id', 'CASCADE', nullable=False),
        sa.Column('stage_order', sa.Integer(), nullable=False),
        _uuid('user_id', 'users.id', 'CASCADE', nullable=False),
        sa.Column('user_name', sa.String(200), nullable=False),
        sa.Column('user_email', sa.String(320), nullable=True),
        sa.Column('user_image_url', sa.String(2048), nullable=True),
        _uuid('added_by', 'users.id'),
        _ts('created_at'),
    )
    op.create_index(
        'idx_project_stage_reviewers_unique', 'project_stage_reviewers',
        ['project_id', 'stage_order', 'user_id'], unique=True,
    )
    op.create_index('idx_project_stage_reviewers_user_id', 'project_stage_reviewers', ['user_id'])

    # --- mockups (historical table name "assets") ---
    op.create_table(
        'assets',
        _id(),
        _uuid('organization_id', 'organizations.id', 'CASCADE', nullable=False),
        sa.Column('mockup_name', sa.String(200), nullable=False),
        _uuid('logo_id', 'logo_variants.id', 'SET NULL'),
        _uuid('template_id', 'templates.id', 'SET NULL'),
        _uuid('folder_id', 'folders.id', 'SET NULL'),
        _uuid('project_id', 'projects.id', 'SET NULL'),
        sa.Column('logo_x', sa.Float(), nullable=True),
        sa.Column('logo_y', sa.Float(), nullable=True),
        sa.Column('logo_scale', sa.Float(), nullable=True),
        sa.Column('mockup_image_url', sa.String(2048), nullable=True),
        sa.Column('status', sa.String(30), nullable=False, server_default='draft'),
        sa.Column('figma_metadata', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        _uuid('final_approved_by', 'users.id'),
        sa.Column('final_approved_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('final_approval_notes', sa.Text(), nullable=True),
        _uuid('created_by', 'users.id'),
        *_created_updated(),
        sa.CheckConstraint(
            "status in ('draft','pending_review','approved','changes_requested','final_approved')",
            name='ck_assets_status',
        ),
    )
    op.create_index('idx_assets_organization_id', 'assets', ['organization_id'])
    op.create_index('idx_assets_project_id', 'assets', ['project_id'])
    op.create_index('idx_assets_folder_id', 'assets', ['folder_id'])

    op.create_table(
        'mockup_stage_progress',
        _id(),
        _uuid('asset_id', 'assets.id', 'CASCADE', nullable=False),
        _uuid('project_id', 'projects.id', 'CASCADE', nullable=False),
        sa.Column('stage_order', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(30), nullable=False, server_default='pending'),
        _uuid('reviewed_by', 'users.id'),
        sa.Column('reviewed_by_name', sa.String(200), nullable=True),
        sa.Column('reviewed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('notification_sent', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('notification_sent_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('approvals_required', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('approvals_received', sa.Integer(), nullable=False, server_default='0'),
        *_created_updated(),
        sa.CheckConstraint(
            "status in ('pending','in_review','approved','changes_requested','pending_final_approval')",
            name='ck_mockup_stage_progress_status',
        ),
    )
    op.create_index(
        'idx_mockup_stage_progress_unique', 'mockup_stage_progress', ['asset_id', 'stage_order'], unique=True
    )
    op.create_index(
        'idx_mockup_stage_progress_project_status', 'mockup_stage_progress', ['project_id', 'status']
    )

    op.create_table(
        'mockup_stage_user_approvals',
        _id(),
        _uuid('asset_id', 'assets.id', 'CASCADE', nullable=False),
        _uuid('project_id', 'projects.id', 'CASCADE', nullable=False),
        sa.Column('stage_order', sa.Integer(), nullable=False),
        _uuid('user_id', 'users.id', 'CASCADE', nullable=False),
        sa.Column('user_name', sa.String(200), nullable=True),
        sa.Column('user_email', sa.String(320), nullable=True),
        sa.Column('user_image_url', sa.String(2048), nullable=True),
        sa.Column('action', sa.String(20), nullable=False, server_default='approve'),
        sa.Column('notes', sa.Text(), nullable=True),
        _ts('created_at'),
        sa.CheckConstraint("action in ('approve','request_changes')", name='ck_mockup_stage_user_approvals_action'),
    )
    op.create_index(
        'idx_mockup_stage_user_approvals_unique', 'mockup_stage_user_approvals',
        ['asset_id', 'stage_order', 'user_id'], unique=True,
    )

    # --- public sharing ---
    op.create_table(
        'public_share_links',
        _id(),
        _uuid('asset_id', 'assets.id', 'CASCADE', nullable=False),
        _uuid('organization_id', 'organizations.id', 'CASCADE', nullable=False),
        sa.Column('token', sa.String(128), nullable=False, unique=True),
        sa.Column('expires_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('password_hash', sa.Text(), nullable=True),
        sa.Column('permissions', sa.String(20), nullable=False, server_default='view'),
        sa.Column('max_uses', sa.Integer(), nullable=True),
        sa.Column('use_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('identity_required_level', sa.String(20), nullable=False, server_default='none'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        _uuid('created_by', 'users.id'),
        _ts('created_at'),
        sa.CheckConstraint("permissions in ('view','comment','approve')", name='ck_public_share_links_permissions'),
        sa.CheckConstraint(
            "identity_required_level in ('none','comment','approve')",
            name='ck_public_share_links_identity_level',
        ),
    )
    op.create_index('idx_public_share_links_asset_id', 'public_share_links', ['asset_id'])

    op.create_table(
        'public_reviewers',
        _id(),
        _uuid('link_id', 'public_share_links.id', 'CASCADE', nullable=False),
        sa.Column('email', sa.String(320), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('company', sa.String(200), nullable=True),
        sa.Column('verified_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('ip_address', sa.String(64), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('session_token', sa.String(128), nullable=False, unique=True),
        _ts('created_at'),
    )
    op.create_index('idx_public_reviewers_link_email', 'public_reviewers', ['link_id', 'email'])

    op.create_table(
        'public_share_analytics',
        _id(),
        _uuid('link_id', 'public_share_links.id', 'CASCADE', nullable=False),
        _uuid('reviewer_id', 'public_reviewers.id', 'SET NULL'),
        sa.Column('viewer_ip', sa.String(64), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('actions_taken', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('time_spent', sa.Integer(), nullable=True),
        _ts('viewed_at'),
    )
    op.create_index('idx_public_share_analytics_link_id', 'public_share_analytics', ['link_id'])

    op.create_table(
        'public_approvals',
        _id(),
        _uuid('link_id', 'public_share_links.id', 'CASCADE', nullable=False),
        _uuid('asset_id', 'assets.id', 'CASCADE', nullable=False),
        _uuid('reviewer_id', 'public_reviewers.id', 'CASCADE', nullable=False),
        sa.Column('status', sa.String(30), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        _ts('created_at'),
        sa.CheckConstraint("status in ('approved','changes_requested')", name='ck_public_approvals_status'),
    )

    op.create_table(
        'mockup_comments',
        _id(),
        _uuid('asset_id', 'assets.id', 'CASCADE', nullable=False),
        _uuid('organization_id', 'organizations.id', 'CASCADE', nullable=False),
        _uuid('user_id', 'users.id'),
        sa.Column('user_name', sa.String(200), nullable=True),
        sa.Column('user_email', sa.String(320), nullable=True),
        sa.Column('user_image_url', sa.String(2048), nullable=True),
        _uuid('public_reviewer_id', 'public_reviewers.id', 'SET NULL'),
        sa.Column('comment_text', sa.Text(), nullable=False),
        sa.Column('annotation_data', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('position_x', sa.Float(), nullable=True),
        sa.Column('position_y', sa.Float(), nullable=True),
        sa.Column('annotation_type', sa.String(30), nullable=False, server_default='none'),
        sa.Column('annotation_color', sa.String(9), nullable=False, server_default='#FF6B6B'),
        sa.Column('is_resolved', sa.Boolean(), nullable=False, server_default=sa.false()),
        _uuid('resolved_by', 'users.id'),
        sa.Column('resolved_by_name', sa.String(200), nullable=True),
        sa.Column('resolved_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('resolution_note', sa.Text(), nullable=True),
        sa.Column('deleted_at', sa.TIMESTAMP(timezone=True), nullable=True),
        *_created_updated(),
    )
    op.create_index('idx_mockup_comments_asset_id_created_at', 'mockup_comments', ['asset_id', 'created_at'])

    # --- contracts ---
    op.create_table(
        'contracts',
        _id(),
        _uuid('organization_id', 'organizations.id', 'CASCADE', nullable=False),
        _uuid('client_id', 'clients.id', 'CASCADE', nullable=False),
        _uuid('project_id', 'projects.id', 'SET NULL'),
        sa.Column('contract_number', sa.String(50), nullable=False),
        sa.Column('status', sa.String(30), nullable=False, server_default='draft'),
        sa.Column('type', sa.String(20), nullable=False, server_default='new'),
        _uuid('parent_contract_id', 'contracts.id', 'SET NULL'),
        sa.Column('title', sa.String(300), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('signed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        _uuid('created_by', 'users.id'),
        *_created_updated(),
        sa.CheckConstraint(
            "status in ('draft','pending_signature','signed','expired','cancelled')",
            name='ck_contracts_status',
        ),
        sa.CheckConstraint("type in ('new','amendment','renewal')", name='ck_contracts_type'),
    )
    op.create_index('idx_contracts_org_number', 'contracts', ['organization_id', 'contract_number'], unique=True)
    op.create_index('idx_contracts_client_id', 'contracts', ['client_id'])

    op.create_table(
        'contract_documents',
        _id(),
        _uuid('contract_id', 'contracts.id', 'CASCADE', nullable=False),
        sa.Column('version_number', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('file_url', sa.String(2048), nullable=False),
        sa.Column('file_name', sa.String(300), nullable=False),
        sa.Column('file_type', sa.String(100), nullable=True),
        sa.Column('file_size', sa.Integer(), nullable=True),
        sa.Column('docu_sign_envelope_id', sa.String(100), nullable=True, unique=True),
        sa.Column('docu_sign_status', sa.String(30), nullable=True),
        sa.Column('is_current', sa.Boolean(), nullable=False, server_default=sa.true()),
        _uuid('uploaded_by', 'users.id'),
        *_created_updated(),
    )
    op.create_index('idx_contract_documents_contract_id', 'contract_documents', ['contract_id'])

    # --- integrations ---
    op.create_table(
        'integration_credentials',
        _id(),
        sa.Column('integration_type', sa.String(30), nullable=False),
        _uuid('user_id', 'users.id', 'CASCADE', nullable=False),
        _uuid('organization_id', 'organizations.id', 'CASCADE', nullable=False),
        sa.Column('access_token', sa.Text(), nullable=False),
        sa.Column('account_label', sa.String(200), nullable=True),
        *_created_updated(),
    )
    op.create_index(
        'idx_integration_credentials_unique', 'integration_credentials',
        ['integration_type', 'user_id', 'organization_id'], unique=True,
    )

    op.create_table(
        'integration_events',
        _id(),
        sa.Column('integration_type', sa.String(30), nullable=False),
        _uuid('organization_id', 'organizations.id', 'CASCADE'),
        sa.Column('event_type', sa.String(50), nullable=False),
        sa.Column('payload', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='success'),
        sa.Column('error_message', sa.Text(), nullable=True),
        _ts('created_at'),
    )
    op.create_index('idx_integration_events_org_type', 'integration_events', ['organization_id', 'integration_type'])

    # --- notifications ---
    op.create_table(
        'user_notification_preferences',
        _id(),
        _uuid('user_id', 'users.id', 'CASCADE', nullable=False),
        sa.Column('event_type', sa.String(50), nullable=False),
        sa.Column('email_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('in_app_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        _ts('created_at', nullable=False),
        _ts('updated_at', nullable=False),
    )
    op.create_index(
        'idx_user_notification_preferences_unique', 'user_notification_preferences',
        ['user_id', 'event_type'], unique=True,
    )

    op.create_table(
        'notifications',
        _id(),
        _uuid('user_id', 'users.id', 'CASCADE', nullable=False),
        _uuid('organization_id', 'organizations.id', 'CASCADE'),
        sa.Column('event_type', sa.String(50), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('action_url', sa.String(500), nullable=True),
        sa.Column('action_text', sa.String(100), nullable=True),
        _uuid('related_asset_id', 'assets.id', 'CASCADE'),
        _uuid('related_project_id', 'projects.id', 'CASCADE'),
        sa.Column('metadata', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('read_at', sa.TIMESTAMP(timezone=True), nullable=True),
        _ts('created_at', nullable=False),
        sa.Column('expires_at', sa.TIMESTAMP(timezone=True), nullable=True),
    )
    op.create_index('idx_notifications_user_id_created_at', 'notifications', ['user_id', 'created_at'])
    op.create_index('idx_notifications_user_id_is_read', 'notifications', ['user_id', 'is_read'])
    op.create_index('idx_notifications_expires_at', 'notifications', ['expires_at'])

    op.create_table(
        'email_notification_logs',
        _id(),
        _uuid('notification_id', 'notifications.id', 'CASCADE'),
        _uuid('user_id', 'users.id', 'CASCADE'),
        sa.Column('email_address', sa.String(320), nullable=False),
        sa.Column('event_type', sa.String(50), nullable=False),
        sa.Column('subject', sa.String(200), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('provider_message_id', sa.String(255), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('sent_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('delivered_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('bounced_at', sa.TIMESTAMP(timezone=True), nullable=True),
        _ts('created_at', nullable=False),
    )
    op.create_index(
        'idx_email_notification_logs_user_id_created_at', 'email_notification_logs', ['user_id', 'created_at']
    )
    op.create_index('idx_email_notification_logs_status', 'email_notification_logs', ['status'])

    # --- audit ---
    op.create_table(
        'audit_logs',
        _id(),
        _uuid('organization_id', 'organizations.id', 'SET NULL'),
        _uuid('actor_user_id', 'users.id'),
        sa.Column('action_type', sa.Text(), nullable=False),
        sa.Column('target_type', sa.Text(), nullable=True),
        _uuid('target_id'),
        sa.Column('status', sa.Text(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('metadata', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        _ts('created_at', nullable=False),
    )
    op.create_index('ix_audit_logs_organization_id_created_at', 'audit_logs', ['organization_id', 'created_at'])
    op.create_index('ix_audit_logs_action_type', 'audit_logs', ['action_type'])


def downgrade() -> None:
    """Downgrade schema."""
    for table in (
        'audit_logs',
        'email_notification_logs',
        'notifications',
        'user_notification_preferences',
        'integration_events',
        'integration_credentials',
        'contract_documents',
        'contracts',
        'mockup_comments',
        'public_approvals',
        'public_share_analytics',
        'public_reviewers',
        'public_share_links',
        'mockup_stage_user_approvals',
        'mockup_stage_progress',
        'assets',
        'project_stage_reviewers',
        'projects',
        'workflows',
        'folders',
        'templates',
        'template_types',
        'brand_fonts',
        'brand_colors',
        'logo_variants',
        'brands',
        'client_users',
        'clients',
        'organization_memberships',
        'organizations',
        'users',
    ):
        op.drop_table(table)
