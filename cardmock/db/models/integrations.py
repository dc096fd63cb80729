import uuid
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID, JSONB
from .base import Base, now_utc


class IntegrationCredential(Base):
    __tablename__ = 'integration_credentials'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    integration_type = Column(String(30), nullable=False)  # 'figma'
    user_id = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    organization_id = Column(UUID(as_uuid=True), ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False)
    access_token = Column(Text, nullable=False)
    account_label = Column(String(200), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        Index('idx_integration_credentials_unique', 'integration_type', 'user_id', 'organization_id', unique=True),
    )


class IntegrationEvent(Base):
    __tablename__ = 'integration_events'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    integration_type = Column(String(30), nullable=False)
    organization_id = Column(UUID(as_uuid=True), ForeignKey('organizations.id', ondelete='CASCADE'), nullable=True)
    event_type = Column(String(50), nullable=False)
    payload_json = Column('payload', JSONB, nullable=True)
    status = Column(String(20), nullable=False, default='success')
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)

    __table_args__ = (
        Index('idx_integration_events_org_type', 'organization_id', 'integration_type'),
    )
