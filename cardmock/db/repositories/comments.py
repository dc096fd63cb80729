"""
Mockup comment repository functions.

Comments are soft-deleted through ``deleted_at`` and never returned afterwards.
"""
from __future__ import annotations

import uuid
from datetime import datetime, UTC
from typing import Optional
from sqlalchemy.orm import Session

from cardmock.db import schemas, models


def list_comments(db: Session, mockup_id: uuid.UUID):
    return (
        db.query(models.MockupComment)
        .filter(models.MockupComment.asset_id == mockup_id, models.MockupComment.deleted_at.is_(None))
        .order_by(models.MockupComment.created_at)
        .all()
    )


def get_comment(db: Session, organization_id: uuid.UUID, comment_id: uuid.UUID):
    return (
        db.query(models.MockupComment)
        .filter(
            models.MockupComment.id == comment_id,
            models.MockupComment.organization_id == organization_id,
            models.MockupComment.deleted_at.is_(None),
        )
        .first()
    )


def create_comment(
    db: Session,
    mockup: models.Mockup,
    comment: schemas.CommentCreate,
    *,
    user_id: Optional[uuid.UUID] = None,
    user_name: Optional[str] = None,
    user_email: Optional[str] = None,
    user_image_url: Optional[str] = None,
    public_reviewer_id: Optional[uuid.UUID] = None,
):
    db_comment = models.MockupComment(
        asset_id=mockup.id,
        organization_id=mockup.organization_id,
        user_id=user_id,
        user_name=user_name,
        user_email=user_email,
        user_image_url=user_image_url,
        public_reviewer_id=public_reviewer_id,
        **comment.model_dump(),
    )
    db.add(db_comment)
    db.commit()
    db.refresh(db_comment)
    return db_comment


def update_comment(db: Session, db_comment: models.MockupComment, update_data: dict):
    for key, value in update_data.items():
        setattr(db_comment, key, value)
    db.commit()
    db.refresh(db_comment)
    return db_comment


def soft_delete_comment(db: Session, db_comment: models.MockupComment):
    db_comment.deleted_at = datetime.now(UTC)
    db.commit()


def resolve_comment(
    db: Session,
    db_comment: models.MockupComment,
    user_id: uuid.UUID,
    user_name: Optional[str],
    resolution_note: Optional[str] = None,
):
    db_comment.is_resolved = True
    db_comment.resolved_by = user_id
    db_comment.resolved_by_name = user_name
    db_comment.resolved_at = datetime.now(UTC)
    db_comment.resolution_note = resolution_note
    db.commit()
    db.refresh(db_comment)
    return db_comment


def unresolve_comment(db: Session, db_comment: models.MockupComment):
    db_comment.is_resolved = False
    db_comment.resolved_by = None
    db_comment.resolved_by_name = None
    db_comment.resolved_at = None
    db_comment.resolution_note = None
    db.commit()
    db.refresh(db_comment)
    return db_comment
