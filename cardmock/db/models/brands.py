import uuid
from sqlalchemy import Column, String, Text, Integer, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from .base import Base, now_utc


class Brand(Base):
    __tablename__ = 'brands'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False)
    company_name = Column(String(200), nullable=False)
    domain = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    client_id = Column(UUID(as_uuid=True), ForeignKey('clients.id', ondelete='SET NULL'), nullable=True)
    primary_logo_variant_id = Column(UUID(as_uuid=True), nullable=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    logo_variants = relationship('LogoVariant', cascade='all, delete-orphan', order_by='LogoVariant.created_at')
    brand_colors = relationship('BrandColor', cascade='all, delete-orphan')
    brand_fonts = relationship('BrandFont', cascade='all, delete-orphan')

    __table_args__ = (
        Index('idx_brands_organization_id', 'organization_id'),
        Index('idx_brands_client_id', 'client_id'),
    )


class LogoVariant(Base):
    __tablename__ = 'logo_variants'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    brand_id = Column(UUID(as_uuid=True), ForeignKey('brands.id', ondelete='CASCADE'), nullable=False)
    organization_id = Column(UUID(as_uuid=True), ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False)
    logo_url = Column(String(2048), nullable=False)
    logo_type = Column(String(50), nullable=True)  # logo|icon|symbol|other
    logo_format = Column(String(20), nullable=True)  # svg|png|jpeg|webp
    theme = Column(String(20), nullable=True)  # light|dark
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)
    file_size = Column(Integer, nullable=True)
    background_color = Column(String(20), nullable=True)
    accent_color = Column(String(20), nullable=True)
    is_uploaded = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=now_utc)

    __table_args__ = (
        Index('idx_logo_variants_brand_id', 'brand_id'),
    )


class BrandColor(Base):
    __tablename__ = 'brand_colors'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    brand_id = Column(UUID(as_uuid=True), ForeignKey('brands.id', ondelete='CASCADE'), nullable=False)
    hex = Column(String(9), nullable=False)
    type = Column(String(30), nullable=True)  # accent|dark|light|brand
    brightness = Column(Integer, nullable=True)

    __table_args__ = (
        Index('idx_brand_colors_brand_id', 'brand_id'),
    )


class BrandFont(Base):
    __tablename__ = 'brand_fonts'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    brand_id = Column(UUID(as_uuid=True), ForeignKey('brands.id', ondelete='CASCADE'), nullable=False)
    font_name = Column(String(200), nullable=False)
    font_type = Column(String(30), nullable=True)  # title|body
    origin = Column(String(30), nullable=True)  # google|custom|system

    __table_args__ = (
        Index('idx_brand_fonts_brand_id', 'brand_id'),
    )
