import uuid
from sqlalchemy import Column, String, Text, Integer, Boolean, DateTime, ForeignKey, Index, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID, JSONB
from .base import Base, now_utc


class PublicShareLink(Base):
    __tablename__ = 'public_share_links'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    asset_id = Column(UUID(as_uuid=True), ForeignKey('assets.id', ondelete='CASCADE'), nullable=False)
    organization_id = Column(UUID(as_uuid=True), ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False)
    token = Column(String(128), nullable=False, unique=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    password_hash = Column(Text, nullable=True)
    permissions = Column(String(20), nullable=False, default='view')
    max_uses = Column(Integer, nullable=True)
    use_count = Column(Integer, nullable=False, default=0)
    identity_required_level = Column(String(20), nullable=False, default='none')
    is_active = Column(Boolean, nullable=False, default=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)

    __table_args__ = (
        Index('idx_public_share_links_asset_id', 'asset_id'),
        CheckConstraint("permissions in ('view','comment','approve')", name='ck_public_share_links_permissions'),
        CheckConstraint(
            "identity_required_level in ('none','comment','approve')",
            name='ck_public_share_links_identity_level',
        ),
    )


class PublicReviewer(Base):
    __tablename__ = 'public_reviewers'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    link_id = Column(UUID(as_uuid=True), ForeignKey('public_share_links.id', ondelete='CASCADE'), nullable=False)
    email = Column(String(320), nullable=False)
    name = Column(String(200), nullable=False)
    company = Column(String(200), nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(Text, nullable=True)
    session_token = Column(String(128), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)

    __table_args__ = (
        Index('idx_public_reviewers_link_email', 'link_id', 'email'),
    )


class PublicShareAnalytics(Base):
    __tablename__ = 'public_share_analytics'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    link_id = Column(UUID(as_uuid=True), ForeignKey('public_share_links.id', ondelete='CASCADE'), nullable=False)
    reviewer_id = Column(UUID(as_uuid=True), ForeignKey('public_reviewers.id', ondelete='SET NULL'), nullable=True)
    viewer_ip = Column(String(64), nullable=True)
    user_agent = Column(Text, nullable=True)
    actions_taken = Column(JSONB, nullable=True)
    time_spent = Column(Integer, nullable=True)
    viewed_at = Column(DateTime(timezone=True), default=now_utc)

    __table_args__ = (
        Index('idx_public_share_analytics_link_id', 'link_id'),
    )


class PublicApproval(Base):
    """Decision recorded by an external reviewer through a share link."""
    __tablename__ = 'public_approvals'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    link_id = Column(UUID(as_uuid=True), ForeignKey('public_share_links.id', ondelete='CASCADE'), nullable=False)
    asset_id = Column(UUID(as_uuid=True), ForeignKey('assets.id', ondelete='CASCADE'), nullable=False)
    reviewer_id = Column(UUID(as_uuid=True), ForeignKey('public_reviewers.id', ondelete='CASCADE'), nullable=False)
    status = Column(String(30), nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)

    __table_args__ = (
        CheckConstraint("status in ('approved','changes_requested')", name='ck_public_approvals_status'),
    )
