"""
Organizations API endpoints.

Manage organizations and memberships with admin role enforcement and
audited lifecycle actions.
"""
import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cardmock.db.database import get_db
from cardmock.db import models, schemas
from cardmock.db.repositories import organizations as org_repo
from cardmock.api.deps import get_current_user_context
from cardmock.api.auth import get_or_create_user
from cardmock.api.permissions import can_manage_org, is_member_of_org
from cardmock.audit import log, AuditAction, AuditStatus
from cardmock.utils.role_permissions import ROLE_ADMIN

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/organizations", tags=["organizations"])


def _org_payload(org: models.Organization, role: str = None):
    data = {
        "id": str(org.id),
        "name": org.name,
        "slug": org.slug,
        "is_active": org.is_active,
    }
    if role is not None:
        data["role"] = role
    return data


def _member_payload(membership: models.OrganizationMembership, user: models.User):
    return {
        "user_id": str(user.id),
        "email": user.email,
        "display_name": user.display_name,
        "image_url": user.image_url,
        "role": membership.role,
        "can_read": bool(membership.can_read),
        "can_write": bool(membership.can_write),
    }


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_organization(
    payload: schemas.OrganizationCreate,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, current_user = user_context
    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=422, detail="Organization name is required")
    if payload.slug and db.query(models.Organization).filter(models.Organization.slug == payload.slug).first():
        raise HTTPException(status_code=409, detail="Organization slug already exists")

    try:
        org = org_repo.create_organization(db, schemas.OrganizationCreate(name=name, slug=payload.slug), user.id)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Organization already exists")

    log(
        db,
        action=AuditAction.ORGANIZATION_CREATE,
        status=AuditStatus.SUCCESS,
        target_type="organization",
        target_id=org.id,
        actor_user_id=user.id,
        organization_id=org.id,
    )
    return {"organization": _org_payload(org, role=ROLE_ADMIN)}


@router.get("/")
def list_organizations(
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    """List organizations where the user has membership (for the organization switcher)."""
    user, current_user = user_context
    roles = {m["organization_id"]: m["role"] for m in current_user.get("memberships", [])}
    orgs = org_repo.get_organizations_for_user(db, user.id)
    return {"organizations": [_org_payload(o, role=roles.get(str(o.id))) for o in orgs]}


@router.get("/{org_id}")
def get_organization(
    org_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, current_user = user_context
    if not is_member_of_org(org_id, current_user):
        raise HTTPException(status_code=404, detail="Organization not found")
    org = org_repo.get_organization(db, org_id)
    if not org:
        raise HTTPException(status_code=404, detail="Organization not found")
    membership = current_user.get("memberships_by_org", {}).get(str(org_id))
    return {"organization": _org_payload(org, role=membership["role"] if membership else None)}


@router.put("/{org_id}")
def update_organization(
    org_id: uuid.UUID,
    payload: schemas.OrganizationUpdate,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, current_user = user_context
    if not can_manage_org(org_id, current_user):
        raise HTTPException(status_code=403, detail="Admin access required")
    org = org_repo.get_organization(db, org_id)
    if not org:
        raise HTTPException(status_code=404, detail="Organization not found")
    if payload.name is not None and not payload.name.strip():
        raise HTTPException(status_code=422, detail="Organization name is required")
    if payload.slug and payload.slug != org.slug:
        taken = db.query(models.Organization.id).filter(
            models.Organization.slug == payload.slug,
            models.Organization.id != org_id,
        ).first()
        if taken:
            raise HTTPException(status_code=409, detail="Organization slug already exists")

    before = {"name": org.name, "slug": org.slug, "is_active": org.is_active}
    try:
        org = org_repo.update_organization(db, org, payload)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Organization update conflicts with an existing organization")

    log(
        db,
        action=AuditAction.ORGANIZATION_UPDATE,
        status=AuditStatus.SUCCESS,
        target_type="organization",
        target_id=org.id,
        actor_user_id=user.id,
        organization_id=org.id,
        metadata={"before": before, "after": {"name": org.name, "slug": org.slug, "is_active": org.is_active}},
    )
    return {"organization": _org_payload(org)}


@router.get("/{org_id}/members")
def list_members(
    org_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, current_user = user_context
    if not is_member_of_org(org_id, current_user):
        raise HTTPException(status_code=403, detail="Forbidden")
    members = org_repo.get_members_with_users(db, org_id)
    return {"members": [_member_payload(m, u) for m, u in members]}


@router.post("/{org_id}/members", status_code=status.HTTP_201_CREATED)
def add_member(
    org_id: uuid.UUID,
    payload: schemas.OrganizationMemberCreate,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, current_user = user_context
    if not can_manage_org(org_id, current_user):
        raise HTTPException(status_code=403, detail="Admin access required")
    org = org_repo.get_organization(db, org_id)
    if not org:
        raise HTTPException(status_code=404, detail="Organization not found")

    email = payload.email.strip().lower()
    role = payload.role.value
    if not email:
        raise HTTPException(status_code=422, detail="Email is required")

    member_user = get_or_create_user(db, email=email, display_name=payload.display_name)
    if org_repo.get_membership(db, org_id, member_user.id):
        raise HTTPException(status_code=409, detail="User already a member")

    try:
        membership = org_repo.add_member(db, org_id, member_user.id, role)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="User already a member")

    log(
        db,
        action=AuditAction.MEMBER_ADD,
        status=AuditStatus.SUCCESS,
        target_type="user",
        target_id=member_user.id,
        actor_user_id=user.id,
        organization_id=org_id,
        metadata={"role": role},
    )

    try:
        from cardmock.services.notification_service import NotificationService

        NotificationService(db).notify_membership_added(
            user_id=member_user.id,
            user_email=member_user.email,
            organization_name=org.name,
            role=role,
            added_by_name=(user.display_name or user.email),
            organization_id=org.id,
        )
    except Exception as e:
        logger.error(f"Failed to send membership notification for user {member_user.id}: {str(e)}")

    return {"member": _member_payload(membership, member_user)}


@router.put("/{org_id}/members/{member_user_id}")
def update_member(
    org_id: uuid.UUID,
    member_user_id: uuid.UUID,
    payload: schemas.OrganizationMemberUpdate,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, current_user = user_context
    if not can_manage_org(org_id, current_user):
        raise HTTPException(status_code=403, detail="Admin access required")

    membership = org_repo.get_membership(db, org_id, member_user_id)
    if not membership:
        raise HTTPException(status_code=404, detail="Membership not found")

    role = payload.role.value
    old_role = membership.role
    if old_role == ROLE_ADMIN and role != ROLE_ADMIN and org_repo.count_admins(db, org_id) <= 1:
        raise HTTPException(status_code=400, detail="Organization must have at least one admin")

    membership = org_repo.set_member_role(db, membership, role)
    log(
        db,
        action=AuditAction.MEMBER_ROLE_CHANGE,
        status=AuditStatus.SUCCESS,
        target_type="user",
        target_id=member_user_id,
        actor_user_id=user.id,
        organization_id=org_id,
        metadata={"old_role": old_role, "new_role": role},
    )
    member_user = db.get(models.User, member_user_id)
    return {"member": _member_payload(membership, member_user)}


@router.delete("/{org_id}/members/{member_user_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_member(
    org_id: uuid.UUID,
    member_user_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, current_user = user_context
    if not can_manage_org(org_id, current_user):
        raise HTTPException(status_code=403, detail="Admin access required")

    membership = org_repo.get_membership(db, org_id, member_user_id)
    if not membership:
        raise HTTPException(status_code=404, detail="Membership not found")
    if membership.role == ROLE_ADMIN and org_repo.count_admins(db, org_id) <= 1:
        raise HTTPException(status_code=400, detail="Cannot remove the last admin of an organization")

    org_repo.remove_member(db, membership)
    log(
        db,
        action=AuditAction.MEMBER_REMOVE,
        status=AuditStatus.SUCCESS,
        target_type="user",
        target_id=member_user_id,
        actor_user_id=user.id,
        organization_id=org_id,
    )
    return None
