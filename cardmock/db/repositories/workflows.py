"""
Workflow repository functions.

A workflow is an ordered list of review stages. At most one workflow per
organization is the default.
"""
from __future__ import annotations

import uuid
from typing import Optional
from sqlalchemy.orm import Session

from cardmock.db import models


def list_workflows(db: Session, organization_id: uuid.UUID, include_archived: bool = False):
    query = db.query(models.Workflow).filter(models.Workflow.organization_id == organization_id)
    if not include_archived:
        query = query.filter(models.Workflow.is_archived == False)  # noqa: E712
    return query.order_by(models.Workflow.is_default.desc(), models.Workflow.created_at.desc()).all()


def get_workflow(db: Session, organization_id: uuid.UUID, workflow_id: uuid.UUID):
    return (
        db.query(models.Workflow)
        .filter(models.Workflow.id == workflow_id, models.Workflow.organization_id == organization_id)
        .first()
    )


def project_count(db: Session, workflow_id: uuid.UUID) -> int:
    return db.query(models.Project).filter(models.Project.workflow_id == workflow_id).count()


def _clear_default(db: Session, organization_id: uuid.UUID, keep_id: Optional[uuid.UUID] = None):
    query = db.query(models.Workflow).filter(
        models.Workflow.organization_id == organization_id,
        models.Workflow.is_default == True,  # noqa: E712
    )
    if keep_id is not None:
        query = query.filter(models.Workflow.id != keep_id)
    query.update({models.Workflow.is_default: False}, synchronize_session=False)


def create_workflow(
    db: Session,
    organization_id: uuid.UUID,
    *,
    name: str,
    description: Optional[str],
    stages: list,
    is_default: bool,
    user_id: uuid.UUID,
):
    if is_default:
        _clear_default(db, organization_id)
    db_workflow = models.Workflow(
        organization_id=organization_id,
        name=name,
        description=description,
        stages=stages,
        is_default=is_default,
        created_by=user_id,
    )
    db.add(db_workflow)
    db.commit()
    db.refresh(db_workflow)
    return db_workflow


def update_workflow(db: Session, db_workflow: models.Workflow, update_data: dict):
    if update_data.get('is_default'):
        _clear_default(db, db_workflow.organization_id, keep_id=db_workflow.id)
    for key, value in update_data.items():
        setattr(db_workflow, key, value)
    db.commit()
    db.refresh(db_workflow)
    return db_workflow


def delete_workflow(db: Session, db_workflow: models.Workflow):
    db.delete(db_workflow)
    db.commit()
