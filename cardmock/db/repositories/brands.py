"""
Brand repository functions.

Brands own their logo variants, colors and fonts; children are created and
deleted together with the brand.
"""
from __future__ import annotations

import uuid
from typing import Optional
from sqlalchemy.orm import Session, selectinload

from cardmock.db import schemas, models


def _brand_query(db: Session):
    return db.query(models.Brand).options(
        selectinload(models.Brand.logo_variants),
        selectinload(models.Brand.brand_colors),
        selectinload(models.Brand.brand_fonts),
    )


def list_brands(db: Session, organization_id: uuid.UUID, client_id: Optional[uuid.UUID] = None):
    query = _brand_query(db).filter(models.Brand.organization_id == organization_id)
    if client_id:
        query = query.filter(models.Brand.client_id == client_id)
    return query.order_by(models.Brand.created_at.desc()).all()


def get_brand(db: Session, organization_id: uuid.UUID, brand_id: uuid.UUID):
    return (
        _brand_query(db)
        .filter(models.Brand.id == brand_id, models.Brand.organization_id == organization_id)
        .first()
    )


def create_brand(db: Session, organization_id: uuid.UUID, brand: schemas.BrandCreate, user_id: uuid.UUID):
    db_brand = models.Brand(
        organization_id=organization_id,
        company_name=brand.company_name,
        domain=brand.domain,
        description=brand.description,
        client_id=brand.client_id,
        created_by=user_id,
    )
    for variant in brand.logo_variants:
        db_brand.logo_variants.append(
            models.LogoVariant(organization_id=organization_id, is_uploaded=False, **variant.model_dump())
        )
    for color in brand.brand_colors:
        db_brand.brand_colors.append(models.BrandColor(**color.model_dump()))
    for font in brand.brand_fonts:
        db_brand.brand_fonts.append(models.BrandFont(**font.model_dump()))
    db.add(db_brand)
    db.flush()
    if db_brand.logo_variants:
        db_brand.primary_logo_variant_id = db_brand.logo_variants[0].id
    db.commit()
    db.refresh(db_brand)
    return db_brand


def update_brand(db: Session, db_brand: models.Brand, update_data: dict):
    for key, value in update_data.items():
        setattr(db_brand, key, value)
    db.commit()
    db.refresh(db_brand)
    return db_brand


def add_logo_variant(db: Session, db_brand: models.Brand, variant: schemas.LogoVariantCreate):
    db_variant = models.LogoVariant(
        brand_id=db_brand.id,
        organization_id=db_brand.organization_id,
        is_uploaded=True,
        **variant.model_dump(),
    )
    db.add(db_variant)
    db.flush()
    if db_brand.primary_logo_variant_id is None:
        db_brand.primary_logo_variant_id = db_variant.id
    db.commit()
    db.refresh(db_variant)
    return db_variant


def delete_brand(db: Session, db_brand: models.Brand):
    variant_ids = [v.id for v in db_brand.logo_variants]
    if variant_ids:
        db.query(models.Mockup).filter(models.Mockup.logo_id.in_(variant_ids)).update(
            {models.Mockup.logo_id: None}, synchronize_session=False
        )
    db.delete(db_brand)
    db.commit()
