import uuid
from sqlalchemy import Column, String, Text, Integer, Float, Boolean, DateTime, ForeignKey, Index, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID, JSONB
from .base import Base, now_utc


class Mockup(Base):
    """A logo composited onto a template; stored in the historical ``assets`` table."""
    __tablename__ = 'assets'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False)
    mockup_name = Column(String(200), nullable=False)
    logo_id = Column(UUID(as_uuid=True), ForeignKey('logo_variants.id', ondelete='SET NULL'), nullable=True)
    template_id = Column(UUID(as_uuid=True), ForeignKey('templates.id', ondelete='SET NULL'), nullable=True)
    folder_id = Column(UUID(as_uuid=True), ForeignKey('folders.id', ondelete='SET NULL'), nullable=True)
    project_id = Column(UUID(as_uuid=True), ForeignKey('projects.id', ondelete='SET NULL'), nullable=True)
    logo_x = Column(Float, nullable=True)
    logo_y = Column(Float, nullable=True)
    logo_scale = Column(Float, nullable=True)
    mockup_image_url = Column(String(2048), nullable=True)
    status = Column(String(30), nullable=False, default='draft')
    figma_metadata = Column(JSONB, nullable=True)
    final_approved_by = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=True)
    final_approved_at = Column(DateTime(timezone=True), nullable=True)
    final_approval_notes = Column(Text, nullable=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        Index('idx_assets_organization_id', 'organization_id'),
        Index('idx_assets_project_id', 'project_id'),
        Index('idx_assets_folder_id', 'folder_id'),
        CheckConstraint(
            "status in ('draft','pending_review','approved','changes_requested','final_approved')",
            name='ck_assets_status',
        ),
    )


class MockupStageProgress(Base):
    __tablename__ = 'mockup_stage_progress'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    asset_id = Column(UUID(as_uuid=True), ForeignKey('assets.id', ondelete='CASCADE'), nullable=False)
    project_id = Column(UUID(as_uuid=True), ForeignKey('projects.id', ondelete='CASCADE'), nullable=False)
    stage_order = Column(Integer, nullable=False)
    status = Column(String(30), nullable=False, default='pending')
    reviewed_by = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=True)
    reviewed_by_name = Column(String(200), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)
    notification_sent = Column(Boolean, nullable=False, default=False)
    notification_sent_at = Column(DateTime(timezone=True), nullable=True)
    approvals_required = Column(Integer, nullable=False, default=0)
    approvals_received = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        Index('idx_mockup_stage_progress_unique', 'asset_id', 'stage_order', unique=True),
        Index('idx_mockup_stage_progress_project_status', 'project_id', 'status'),
        CheckConstraint(
            "status in ('pending','in_review','approved','changes_requested','pending_final_approval')",
            name='ck_mockup_stage_progress_status',
        ),
    )


class MockupStageUserApproval(Base):
    __tablename__ = 'mockup_stage_user_approvals'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    asset_id = Column(UUID(as_uuid=True), ForeignKey('assets.id', ondelete='CASCADE'), nullable=False)
    project_id = Column(UUID(as_uuid=True), ForeignKey('projects.id', ondelete='CASCADE'), nullable=False)
    stage_order = Column(Integer, nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    user_name = Column(String(200), nullable=True)
    user_email = Column(String(320), nullable=True)
    user_image_url = Column(String(2048), nullable=True)
    action = Column(String(20), nullable=False, default='approve')
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)

    __table_args__ = (
        Index('idx_mockup_stage_user_approvals_unique', 'asset_id', 'stage_order', 'user_id', unique=True),
        CheckConstraint("action in ('approve','request_changes')", name='ck_mockup_stage_user_approvals_action'),
    )


class MockupComment(Base):
    __tablename__ = 'mockup_comments'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    asset_id = Column(UUID(as_uuid=True), ForeignKey('assets.id', ondelete='CASCADE'), nullable=False)
    organization_id = Column(UUID(as_uuid=True), ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=True)
    user_name = Column(String(200), nullable=True)
    user_email = Column(String(320), nullable=True)
    user_image_url = Column(String(2048), nullable=True)
    # Set when the comment came in through a public share link
    public_reviewer_id = Column(UUID(as_uuid=True), ForeignKey('public_reviewers.id', ondelete='SET NULL'), nullable=True)
    comment_text = Column(Text, nullable=False)
    annotation_data = Column(JSONB, nullable=True)
    position_x = Column(Float, nullable=True)
    position_y = Column(Float, nullable=True)
    annotation_type = Column(String(30), nullable=False, default='none')
    annotation_color = Column(String(9), nullable=False, default='#FF6B6B')
    is_resolved = Column(Boolean, nullable=False, default=False)
    resolved_by = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=True)
    resolved_by_name = Column(String(200), nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    resolution_note = Column(Text, nullable=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        Index('idx_mockup_comments_asset_id_created_at', 'asset_id', 'created_at'),
    )
