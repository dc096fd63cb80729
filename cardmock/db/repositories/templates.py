"""
Template and template type repository functions.
"""
from __future__ import annotations

import uuid
from typing import Optional
from sqlalchemy.orm import Session

from cardmock.db import schemas, models


def list_template_types(db: Session):
    return db.query(models.TemplateType).order_by(models.TemplateType.category.desc(), models.TemplateType.id).all()


def get_template_type(db: Session, template_type_id: str):
    return db.query(models.TemplateType).filter(models.TemplateType.id == template_type_id).first()


def list_templates(
    db: Session,
    organization_id: uuid.UUID,
    include_archived: bool = False,
    template_type_id: Optional[str] = None,
):
    query = db.query(models.Template).filter(models.Template.organization_id == organization_id)
    if not include_archived:
        query = query.filter(models.Template.is_archived == False)  # noqa: E712
    if template_type_id:
        query = query.filter(models.Template.template_type_id == template_type_id)
    return query.order_by(models.Template.created_at.desc()).all()


def get_template(db: Session, organization_id: uuid.UUID, template_id: uuid.UUID):
    return (
        db.query(models.Template)
        .filter(models.Template.id == template_id, models.Template.organization_id == organization_id)
        .first()
    )


def create_template(db: Session, organization_id: uuid.UUID, template: schemas.TemplateCreate, user_id: uuid.UUID):
    db_template = models.Template(
        organization_id=organization_id,
        created_by=user_id,
        **template.model_dump(),
    )
    db.add(db_template)
    db.commit()
    db.refresh(db_template)
    return db_template


def update_template(db: Session, db_template: models.Template, update_data: dict):
    for key, value in update_data.items():
        setattr(db_template, key, value)
    db.commit()
    db.refresh(db_template)
    return db_template


def delete_template(db: Session, db_template: models.Template):
    db.query(models.Mockup).filter(models.Mockup.template_id == db_template.id).update(
        {models.Mockup.template_id: None}, synchronize_session=False
    )
    db.delete(db_template)
    db.commit()
