"""
Organization repository functions.

Implements CRUD for organizations and memberships.
"""
from __future__ import annotations

import uuid
from typing import Optional
from sqlalchemy.orm import Session

from cardmock.db import schemas, models
from cardmock.utils.role_permissions import ROLE_ADMIN, get_role_permissions


def create_organization(db: Session, organization: schemas.OrganizationCreate, user_id: uuid.UUID):
    db_organization = models.Organization(
        name=organization.name,
        slug=organization.slug,
        created_by=user_id,
    )
    db.add(db_organization)
    db.flush()
    # Creator becomes admin
    perms = get_role_permissions(ROLE_ADMIN)
    db.add(models.OrganizationMembership(
        organization_id=db_organization.id,
        user_id=user_id,
        role=ROLE_ADMIN,
        **perms,
    ))
    db.commit()
    db.refresh(db_organization)
    return db_organization


def get_organization(db: Session, organization_id: uuid.UUID):
    return db.query(models.Organization).filter(models.Organization.id == organization_id).first()


def get_organization_by_external_id(db: Session, external_id: str):
    return db.query(models.Organization).filter(models.Organization.external_id == external_id).first()


def get_organizations_for_user(db: Session, user_id: uuid.UUID):
    return (
        db.query(models.Organization)
        .join(models.OrganizationMembership, models.OrganizationMembership.organization_id == models.Organization.id)
        .filter(models.OrganizationMembership.user_id == user_id)
        .order_by(models.Organization.name)
        .all()
    )


def update_organization(db: Session, db_organization: models.Organization, organization: schemas.OrganizationUpdate):
    update_data = organization.model_dump(exclude_unset=True)
    for key, value in update_data.items():
        if value is not None or key == 'slug':
            setattr(db_organization, key, value)
    db.commit()
    db.refresh(db_organization)
    return db_organization


def get_membership(db: Session, organization_id: uuid.UUID, user_id: uuid.UUID):
    return (
        db.query(models.OrganizationMembership)
        .filter(
            models.OrganizationMembership.organization_id == organization_id,
            models.OrganizationMembership.user_id == user_id,
        )
        .first()
    )


def get_members_with_users(db: Session, organization_id: uuid.UUID):
    """Return ``(membership, user)`` pairs for an organization ordered by email."""
    return (
        db.query(models.OrganizationMembership, models.User)
        .join(models.User, models.User.id == models.OrganizationMembership.user_id)
        .filter(models.OrganizationMembership.organization_id == organization_id)
        .order_by(models.User.email)
        .all()
    )


def get_user_ids_with_role(db: Session, organization_id: uuid.UUID, role: str):
    rows = (
        db.query(models.OrganizationMembership.user_id)
        .filter(
            models.OrganizationMembership.organization_id == organization_id,
            models.OrganizationMembership.role == role,
        )
        .all()
    )
    return [r[0] for r in rows]


def add_member(db: Session, organization_id: uuid.UUID, user_id: uuid.UUID, role: str):
    perms = get_role_permissions(role)
    db_member = models.OrganizationMembership(
        organization_id=organization_id,
        user_id=user_id,
        role=role,
        **perms,
    )
    db.add(db_member)
    db.commit()
    db.refresh(db_member)
    return db_member


def set_member_role(db: Session, membership: models.OrganizationMembership, role: str):
    perms = get_role_permissions(role)
    membership.role = role
    membership.can_read = perms['can_read']
    membership.can_write = perms['can_write']
    db.commit()
    db.refresh(membership)
    return membership


def count_admins(db: Session, organization_id: uuid.UUID) -> int:
    return (
        db.query(models.OrganizationMembership)
        .filter(
            models.OrganizationMembership.organization_id == organization_id,
            models.OrganizationMembership.role == ROLE_ADMIN,
        )
        .count()
    )


def remove_member(db: Session, membership: models.OrganizationMembership):
    # Client assignment is meaningless once the user leaves the org
    db.query(models.ClientUser).filter(
        models.ClientUser.organization_id == membership.organization_id,
        models.ClientUser.user_id == membership.user_id,
    ).delete(synchronize_session=False)
    db.delete(membership)
    db.commit()


def upsert_membership(db: Session, organization_id: uuid.UUID, user_id: uuid.UUID, role: str, *, commit: bool = True):
    """Create or update a membership; returns ``(membership, created)``."""
    existing = get_membership(db, organization_id, user_id)
    perms = get_role_permissions(role)
    if existing:
        existing.role = role
        existing.can_read = perms['can_read']
        existing.can_write = perms['can_write']
        created = False
        membership = existing
    else:
        membership = models.OrganizationMembership(
            organization_id=organization_id,
            user_id=user_id,
            role=role,
            **perms,
        )
        db.add(membership)
        created = True
    if commit:
        db.commit()
        db.refresh(membership)
    return membership, created
