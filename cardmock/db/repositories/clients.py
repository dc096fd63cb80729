"""
Client repository functions.

Clients are the companies an organization produces mockups for. Client-role
users are attached to exactly one client per organization via ``client_users``.
"""
from __future__ import annotations

import uuid
from typing import Optional
from sqlalchemy import func
from sqlalchemy.orm import Session

from cardmock.db import schemas, models


def list_clients(db: Session, organization_id: uuid.UUID, client_id: Optional[uuid.UUID] = None):
    query = db.query(models.Client).filter(models.Client.organization_id == organization_id)
    if client_id:
        query = query.filter(models.Client.id == client_id)
    return query.order_by(models.Client.name).all()


def get_client(db: Session, organization_id: uuid.UUID, client_id: uuid.UUID):
    return (
        db.query(models.Client)
        .filter(models.Client.id == client_id, models.Client.organization_id == organization_id)
        .first()
    )


def list_children(db: Session, organization_id: uuid.UUID, parent_client_id: uuid.UUID):
    return (
        db.query(models.Client)
        .filter(
            models.Client.organization_id == organization_id,
            models.Client.parent_client_id == parent_client_id,
        )
        .order_by(models.Client.name)
        .all()
    )


def would_create_cycle(db: Session, client_id: uuid.UUID, new_parent_id: uuid.UUID) -> bool:
    """Return True when ``new_parent_id`` is ``client_id`` or one of its descendants."""
    seen = set()
    current = new_parent_id
    while current is not None and current not in seen:
        if current == client_id:
            return True
        seen.add(current)
        row = db.query(models.Client.parent_client_id).filter(models.Client.id == current).first()
        current = row[0] if row else None
    return False


def create_client(db: Session, organization_id: uuid.UUID, client: schemas.ClientCreate, user_id: uuid.UUID):
    db_client = models.Client(
        organization_id=organization_id,
        created_by=user_id,
        **client.model_dump(),
    )
    db.add(db_client)
    db.commit()
    db.refresh(db_client)
    return db_client


def update_client(db: Session, db_client: models.Client, update_data: dict):
    for key, value in update_data.items():
        setattr(db_client, key, value)
    db.commit()
    db.refresh(db_client)
    return db_client


def delete_client(db: Session, db_client: models.Client):
    client_id = db_client.id
    db.query(models.Client).filter(models.Client.parent_client_id == client_id).update(
        {models.Client.parent_client_id: None}, synchronize_session=False
    )
    db.query(models.ClientUser).filter(models.ClientUser.client_id == client_id).delete(synchronize_session=False)
    db.query(models.Brand).filter(models.Brand.client_id == client_id).update(
        {models.Brand.client_id: None}, synchronize_session=False
    )
    db.query(models.Project).filter(models.Project.client_id == client_id).update(
        {models.Project.client_id: None}, synchronize_session=False
    )
    contract_ids = [c.id for c in db.query(models.Contract.id).filter(models.Contract.client_id == client_id).all()]
    if contract_ids:
        db.query(models.ContractDocument).filter(models.ContractDocument.contract_id.in_(contract_ids)).delete(
            synchronize_session=False
        )
        db.query(models.Contract).filter(models.Contract.id.in_(contract_ids)).delete(synchronize_session=False)
    db.delete(db_client)
    db.commit()


# === Client user assignments ===

def get_assignment(db: Session, organization_id: uuid.UUID, user_id: uuid.UUID):
    return (
        db.query(models.ClientUser)
        .filter(models.ClientUser.organization_id == organization_id, models.ClientUser.user_id == user_id)
        .first()
    )


def list_client_users(db: Session, client_id: uuid.UUID):
    return (
        db.query(models.ClientUser, models.User)
        .join(models.User, models.User.id == models.ClientUser.user_id)
        .filter(models.ClientUser.client_id == client_id)
        .order_by(models.User.email)
        .all()
    )


def assign_user(
    db: Session,
    db_client: models.Client,
    user_id: uuid.UUID,
    assigned_by: Optional[uuid.UUID],
    *,
    commit: bool = True,
):
    """Assign ``user_id`` to ``db_client``, replacing any previous assignment in the org."""
    existing = get_assignment(db, db_client.organization_id, user_id)
    if existing:
        existing.client_id = db_client.id
        existing.assigned_by = assigned_by
        assignment = existing
    else:
        assignment = models.ClientUser(
            client_id=db_client.id,
            user_id=user_id,
            organization_id=db_client.organization_id,
            assigned_by=assigned_by,
        )
        db.add(assignment)
    if commit:
        db.commit()
        db.refresh(assignment)
    return assignment


def unassign_user(db: Session, organization_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    deleted = (
        db.query(models.ClientUser)
        .filter(models.ClientUser.organization_id == organization_id, models.ClientUser.user_id == user_id)
        .delete(synchronize_session=False)
    )
    db.commit()
    return bool(deleted)


def find_client_by_email_domain(db: Session, organization_id: uuid.UUID, domain: str):
    """Return the single client whose contact email shares ``domain``; None when ambiguous."""
    if not domain:
        return None
    matches = (
        db.query(models.Client)
        .filter(
            models.Client.organization_id == organization_id,
            func.lower(models.Client.email).like(f"%@{domain.lower()}"),
        )
        .all()
    )
    return matches[0] if len(matches) == 1 else None
