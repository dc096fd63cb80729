"""
Project repository functions, including per-stage reviewer assignments.
"""
from __future__ import annotations

import uuid
from typing import Optional
from sqlalchemy.orm import Session

from cardmock.db import schemas, models


def list_projects(
    db: Session,
    organization_id: uuid.UUID,
    status: Optional[str] = None,
    client_id: Optional[uuid.UUID] = None,
):
    query = db.query(models.Project).filter(models.Project.organization_id == organization_id)
    if status:
        query = query.filter(models.Project.status == status)
    if client_id:
        query = query.filter(models.Project.client_id == client_id)
    return query.order_by(models.Project.created_at.desc()).all()


def get_project(db: Session, organization_id: uuid.UUID, project_id: uuid.UUID):
    return (
        db.query(models.Project)
        .filter(models.Project.id == project_id, models.Project.organization_id == organization_id)
        .first()
    )


def create_project(db: Session, organization_id: uuid.UUID, project: schemas.ProjectCreate, user_id: uuid.UUID):
    db_project = models.Project(
        organization_id=organization_id,
        created_by=user_id,
        **project.model_dump(),
    )
    db.add(db_project)
    db.commit()
    db.refresh(db_project)
    return db_project


IN_REVIEW_STATUSES = ('pending_review', 'approved', 'changes_requested')


def clear_stage_progress(db: Session, project_id: uuid.UUID) -> None:
    db.query(models.MockupStageUserApproval).filter(
        models.MockupStageUserApproval.project_id == project_id
    ).delete(synchronize_session=False)
    db.query(models.MockupStageProgress).filter(
        models.MockupStageProgress.project_id == project_id
    ).delete(synchronize_session=False)


def update_project(db: Session, db_project: models.Project, update_data: dict):
    """Apply updates.

    Changing the workflow drops every stage reviewer of the project together
    with the stage progress of its mockups; mockups still under review go back
    to draft. Final approvals are kept.
    """
    if 'workflow_id' in update_data and update_data['workflow_id'] != db_project.workflow_id:
        clear_reviewers(db, db_project.id, commit=False)
        clear_stage_progress(db, db_project.id)
        db.query(models.Mockup).filter(
            models.Mockup.project_id == db_project.id,
            models.Mockup.status.in_(IN_REVIEW_STATUSES),
        ).update({models.Mockup.status: 'draft'}, synchronize_session=False)
    for key, value in update_data.items():
        setattr(db_project, key, value)
    db.commit()
    db.refresh(db_project)
    return db_project


def delete_project(db: Session, db_project: models.Project) -> int:
    """Delete a project; its mockups are kept and detached. Returns detached count."""
    project_id = db_project.id
    clear_stage_progress(db, project_id)
    clear_reviewers(db, project_id, commit=False)
    detached = db.query(models.Mockup).filter(models.Mockup.project_id == project_id).update(
        {models.Mockup.project_id: None}, synchronize_session=False
    )
    db.query(models.Contract).filter(models.Contract.project_id == project_id).update(
        {models.Contract.project_id: None}, synchronize_session=False
    )
    db.delete(db_project)
    db.commit()
    return detached


def list_project_mockups(db: Session, project_id: uuid.UUID, limit: Optional[int] = None):
    query = (
        db.query(models.Mockup)
        .filter(models.Mockup.project_id == project_id)
        .order_by(models.Mockup.created_at.desc())
    )
    if limit:
        query = query.limit(limit)
    return query.all()


def mockup_count(db: Session, project_id: uuid.UUID) -> int:
    return db.query(models.Mockup).filter(models.Mockup.project_id == project_id).count()


# === Stage reviewers ===

def list_reviewers(db: Session, project_id: uuid.UUID):
    return (
        db.query(models.ProjectStageReviewer)
        .filter(models.ProjectStageReviewer.project_id == project_id)
        .order_by(models.ProjectStageReviewer.stage_order, models.ProjectStageReviewer.created_at)
        .all()
    )


def list_stage_reviewers(db: Session, project_id: uuid.UUID, stage_order: int):
    return (
        db.query(models.ProjectStageReviewer)
        .filter(
            models.ProjectStageReviewer.project_id == project_id,
            models.ProjectStageReviewer.stage_order == stage_order,
        )
        .all()
    )


def get_reviewer(db: Session, project_id: uuid.UUID, reviewer_id: uuid.UUID):
    return (
        db.query(models.ProjectStageReviewer)
        .filter(
            models.ProjectStageReviewer.id == reviewer_id,
            models.ProjectStageReviewer.project_id == project_id,
        )
        .first()
    )


def reviewer_exists(db: Session, project_id: uuid.UUID, stage_order: int, user_id: uuid.UUID) -> bool:
    return (
        db.query(models.ProjectStageReviewer)
        .filter(
            models.ProjectStageReviewer.project_id == project_id,
            models.ProjectStageReviewer.stage_order == stage_order,
            models.ProjectStageReviewer.user_id == user_id,
        )
        .first()
        is not None
    )


def add_reviewer(db: Session, project_id: uuid.UUID, reviewer: schemas.StageReviewerCreate, added_by: uuid.UUID):
    db_reviewer = models.ProjectStageReviewer(
        project_id=project_id,
        added_by=added_by,
        **reviewer.model_dump(),
    )
    db.add(db_reviewer)
    db.commit()
    db.refresh(db_reviewer)
    return db_reviewer


def delete_reviewer(db: Session, db_reviewer: models.ProjectStageReviewer):
    db.delete(db_reviewer)
    db.commit()


def clear_reviewers(db: Session, project_id: uuid.UUID, commit: bool = True) -> int:
    deleted = (
        db.query(models.ProjectStageReviewer)
        .filter(models.ProjectStageReviewer.project_id == project_id)
        .delete(synchronize_session=False)
    )
    if commit:
        db.commit()
    return deleted
