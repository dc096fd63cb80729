"""
Folder repository functions.

Folders are private to their creator unless ``is_org_shared`` is set.
"""
from __future__ import annotations

import uuid
from typing import Optional
from sqlalchemy import or_
from sqlalchemy.orm import Session

from cardmock.db import schemas, models

MAX_FOLDER_DEPTH = 5


def list_folders(db: Session, organization_id: uuid.UUID, user_id: uuid.UUID):
    return (
        db.query(models.Folder)
        .filter(
            models.Folder.organization_id == organization_id,
            or_(models.Folder.created_by == user_id, models.Folder.is_org_shared == True),  # noqa: E712
        )
        .order_by(models.Folder.name)
        .all()
    )


def get_folder(db: Session, organization_id: uuid.UUID, folder_id: uuid.UUID):
    return (
        db.query(models.Folder)
        .filter(models.Folder.id == folder_id, models.Folder.organization_id == organization_id)
        .first()
    )


def folder_depth(db: Session, folder_id: Optional[uuid.UUID]) -> int:
    """Number of folders from ``folder_id`` up to the root (0 for the root itself)."""
    depth = 0
    current = folder_id
    seen = set()
    while current is not None and current not in seen:
        seen.add(current)
        depth += 1
        row = db.query(models.Folder.parent_folder_id).filter(models.Folder.id == current).first()
        current = row[0] if row else None
    return depth


def is_descendant(db: Session, folder_id: uuid.UUID, candidate_id: uuid.UUID) -> bool:
    """True when ``candidate_id`` is ``folder_id`` or lies beneath it."""
    current = candidate_id
    seen = set()
    while current is not None and current not in seen:
        if current == folder_id:
            return True
        seen.add(current)
        row = db.query(models.Folder.parent_folder_id).filter(models.Folder.id == current).first()
        current = row[0] if row else None
    return False


def name_exists(
    db: Session,
    organization_id: uuid.UUID,
    user_id: uuid.UUID,
    parent_folder_id: Optional[uuid.UUID],
    name: str,
    exclude_id: Optional[uuid.UUID] = None,
) -> bool:
    query = db.query(models.Folder).filter(
        models.Folder.organization_id == organization_id,
        models.Folder.created_by == user_id,
        models.Folder.name == name,
    )
    if parent_folder_id is None:
        query = query.filter(models.Folder.parent_folder_id.is_(None))
    else:
        query = query.filter(models.Folder.parent_folder_id == parent_folder_id)
    if exclude_id is not None:
        query = query.filter(models.Folder.id != exclude_id)
    return db.query(query.exists()).scalar()


def create_folder(db: Session, organization_id: uuid.UUID, folder: schemas.FolderCreate, user_id: uuid.UUID):
    db_folder = models.Folder(
        organization_id=organization_id,
        created_by=user_id,
        **folder.model_dump(),
    )
    db.add(db_folder)
    db.commit()
    db.refresh(db_folder)
    return db_folder


def update_folder(db: Session, db_folder: models.Folder, update_data: dict):
    for key, value in update_data.items():
        setattr(db_folder, key, value)
    db.commit()
    db.refresh(db_folder)
    return db_folder


def _collect_subtree(db: Session, folder_id: uuid.UUID):
    ids = [folder_id]
    frontier = [folder_id]
    while frontier:
        children = [
            r[0]
            for r in db.query(models.Folder.id).filter(models.Folder.parent_folder_id.in_(frontier)).all()
        ]
        children = [c for c in children if c not in ids]
        ids.extend(children)
        frontier = children
    return ids


def delete_folder(db: Session, db_folder: models.Folder) -> int:
    """Delete a folder with its subfolders; mockups inside are moved to the root.

    Returns the number of detached mockups.
    """
    ids = _collect_subtree(db, db_folder.id)
    detached = db.query(models.Mockup).filter(models.Mockup.folder_id.in_(ids)).update(
        {models.Mockup.folder_id: None}, synchronize_session=False
    )
    # Children first so self-referencing FKs stay valid on every backend
    for folder_id in reversed(ids):
        db.query(models.Folder).filter(models.Folder.id == folder_id).delete(synchronize_session=False)
    db.commit()
    return detached
