"""
Mockup repository functions.
"""
from __future__ import annotations

import uuid
from typing import Optional
from sqlalchemy.orm import Session

from cardmock.db import schemas, models


def list_mockups(
    db: Session,
    organization_id: uuid.UUID,
    project_id: Optional[uuid.UUID] = None,
    folder_id: Optional[uuid.UUID] = None,
    client_id: Optional[uuid.UUID] = None,
):
    query = db.query(models.Mockup).filter(models.Mockup.organization_id == organization_id)
    if project_id:
        query = query.filter(models.Mockup.project_id == project_id)
    if folder_id:
        query = query.filter(models.Mockup.folder_id == folder_id)
    if client_id:
        client_projects = db.query(models.Project.id).filter(models.Project.client_id == client_id)
        query = query.filter(models.Mockup.project_id.in_(client_projects))
    return query.order_by(models.Mockup.created_at.desc()).all()


def get_mockup(db: Session, organization_id: uuid.UUID, mockup_id: uuid.UUID):
    return (
        db.query(models.Mockup)
        .filter(models.Mockup.id == mockup_id, models.Mockup.organization_id == organization_id)
        .first()
    )


def create_mockup(db: Session, organization_id: uuid.UUID, mockup: schemas.MockupCreate, user_id: uuid.UUID, **extra):
    db_mockup = models.Mockup(
        organization_id=organization_id,
        created_by=user_id,
        **mockup.model_dump(),
        **extra,
    )
    db.add(db_mockup)
    db.commit()
    db.refresh(db_mockup)
    return db_mockup


def update_mockup(db: Session, db_mockup: models.Mockup, update_data: dict):
    for key, value in update_data.items():
        setattr(db_mockup, key, value)
    db.commit()
    db.refresh(db_mockup)
    return db_mockup


def duplicate_mockup(db: Session, source: models.Mockup, new_name: str, user_id: uuid.UUID):
    """Copy placement and artwork of ``source``; the copy starts as a draft outside any project."""
    copy = models.Mockup(
        organization_id=source.organization_id,
        mockup_name=new_name,
        logo_id=source.logo_id,
        template_id=source.template_id,
        folder_id=source.folder_id,
        project_id=None,
        logo_x=source.logo_x,
        logo_y=source.logo_y,
        logo_scale=source.logo_scale,
        mockup_image_url=source.mockup_image_url,
        status='draft',
        created_by=user_id,
    )
    db.add(copy)
    db.commit()
    db.refresh(copy)
    return copy


def clear_review_state(db: Session, mockup_id: uuid.UUID):
    """Drop stage progress and per-user approvals for a mockup (no commit)."""
    db.query(models.MockupStageUserApproval).filter(
        models.MockupStageUserApproval.asset_id == mockup_id
    ).delete(synchronize_session=False)
    db.query(models.MockupStageProgress).filter(
        models.MockupStageProgress.asset_id == mockup_id
    ).delete(synchronize_session=False)


def delete_mockup(db: Session, db_mockup: models.Mockup):
    mockup_id = db_mockup.id
    clear_review_state(db, mockup_id)
    db.query(models.MockupComment).filter(models.MockupComment.asset_id == mockup_id).delete(
        synchronize_session=False
    )
    link_ids = [
        r[0] for r in db.query(models.PublicShareLink.id).filter(models.PublicShareLink.asset_id == mockup_id).all()
    ]
    if link_ids:
        db.query(models.PublicApproval).filter(models.PublicApproval.link_id.in_(link_ids)).delete(
            synchronize_session=False
        )
        db.query(models.PublicShareAnalytics).filter(models.PublicShareAnalytics.link_id.in_(link_ids)).delete(
            synchronize_session=False
        )
        db.query(models.PublicReviewer).filter(models.PublicReviewer.link_id.in_(link_ids)).delete(
            synchronize_session=False
        )
        db.query(models.PublicShareLink).filter(models.PublicShareLink.id.in_(link_ids)).delete(
            synchronize_session=False
        )
    db.query(models.Notification).filter(models.Notification.related_asset_id == mockup_id).delete(
        synchronize_session=False
    )
    db.delete(db_mockup)
    db.commit()
