import uuid
from sqlalchemy import Column, String, Text, Integer, Boolean, Date, DateTime, ForeignKey, Index, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from .base import Base, now_utc


class Contract(Base):
    __tablename__ = 'contracts'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False)
    client_id = Column(UUID(as_uuid=True), ForeignKey('clients.id', ondelete='CASCADE'), nullable=False)
    project_id = Column(UUID(as_uuid=True), ForeignKey('projects.id', ondelete='SET NULL'), nullable=True)
    contract_number = Column(String(50), nullable=False)
    status = Column(String(30), nullable=False, default='draft')
    type = Column(String(20), nullable=False, default='new')
    parent_contract_id = Column(UUID(as_uuid=True), ForeignKey('contracts.id', ondelete='SET NULL'), nullable=True)
    title = Column(String(300), nullable=True)
    description = Column(Text, nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    signed_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        Index('idx_contracts_org_number', 'organization_id', 'contract_number', unique=True),
        Index('idx_contracts_client_id', 'client_id'),
        CheckConstraint(
            "status in ('draft','pending_signature','signed','expired','cancelled')",
            name='ck_contracts_status',
        ),
        CheckConstraint("type in ('new','amendment','renewal')", name='ck_contracts_type'),
    )


class ContractDocument(Base):
    __tablename__ = 'contract_documents'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    contract_id = Column(UUID(as_uuid=True), ForeignKey('contracts.id', ondelete='CASCADE'), nullable=False)
    version_number = Column(Integer, nullable=False, default=1)
    file_url = Column(String(2048), nullable=False)
    file_name = Column(String(300), nullable=False)
    file_type = Column(String(100), nullable=True)
    file_size = Column(Integer, nullable=True)
    docu_sign_envelope_id = Column(String(100), nullable=True, unique=True)
    docu_sign_status = Column(String(30), nullable=True)
    is_current = Column(Boolean, nullable=False, default=True)
    uploaded_by = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        Index('idx_contract_documents_contract_id', 'contract_id'),
    )
