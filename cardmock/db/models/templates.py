import uuid
from sqlalchemy import Column, String, Text, Integer, Float, Boolean, DateTime, ForeignKey, Index, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID, JSONB
from .base import Base, now_utc


class TemplateType(Base):
    __tablename__ = 'template_types'
    id = Column(String(50), primary_key=True)
    name = Column(String(100), nullable=False)
    width = Column(Integer, nullable=False)
    height = Column(Integer, nullable=False)
    aspect_ratio = Column(Float, nullable=False)
    category = Column(String(20), nullable=False)
    description = Column(Text, nullable=True)
    guide_presets = Column(JSONB, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)

    __table_args__ = (
        CheckConstraint("category in ('physical','digital')", name='ck_template_types_category'),
    )


class Template(Base):
    __tablename__ = 'templates'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False)
    template_name = Column(String(200), nullable=False)
    template_url = Column(String(2048), nullable=False)
    file_type = Column(String(100), nullable=True)
    file_size = Column(Integer, nullable=True)
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)
    original_width = Column(Integer, nullable=True)
    original_height = Column(Integer, nullable=True)
    scale_factor = Column(Float, nullable=True)
    upload_quality = Column(String(20), nullable=True)  # excellent|good|fair|poor
    template_type_id = Column(String(50), ForeignKey('template_types.id'), nullable=False, default='prepaid-cr80')
    tags = Column(JSONB, nullable=True)
    description = Column(Text, nullable=True)
    is_archived = Column(Boolean, nullable=False, default=False)
    archived_at = Column(DateTime(timezone=True), nullable=True)
    archived_by = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=True)
    uploaded_date = Column(DateTime(timezone=True), default=now_utc)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        Index('idx_templates_organization_id', 'organization_id'),
        Index('idx_templates_template_type_id', 'template_type_id'),
    )
