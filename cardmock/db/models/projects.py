import uuid
from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey, Index, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from .base import Base, now_utc


class Project(Base):
    __tablename__ = 'projects'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False)
    name = Column(String(100), nullable=False)
    client_name = Column(String(200), nullable=True)
    client_id = Column(UUID(as_uuid=True), ForeignKey('clients.id', ondelete='SET NULL'), nullable=True)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default='active')
    color = Column(String(7), nullable=False, default='#3B82F6')
    workflow_id = Column(UUID(as_uuid=True), ForeignKey('workflows.id', ondelete='SET NULL'), nullable=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        Index('idx_projects_organization_id', 'organization_id'),
        Index('idx_projects_workflow_id', 'workflow_id'),
        Index('idx_projects_client_id', 'client_id'),
        CheckConstraint("status in ('active','completed','archived')", name='ck_projects_status'),
    )


class ProjectStageReviewer(Base):
    __tablename__ = 'project_stage_reviewers'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id = Column(UUID(as_uuid=True), ForeignKey('projects.id', ondelete='CASCADE'), nullable=False)
    stage_order = Column(Integer, nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    user_name = Column(String(200), nullable=False)
    user_email = Column(String(320), nullable=True)
    user_image_url = Column(String(2048), nullable=True)
    added_by = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)

    __table_args__ = (
        Index('idx_project_stage_reviewers_unique', 'project_id', 'stage_order', 'user_id', unique=True),
        Index('idx_project_stage_reviewers_user_id', 'user_id'),
    )
