"""
Users API endpoints.

Self-profile update and per-organization client assignment lookups.
"""
import uuid
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from cardmock.db.database import get_db
from cardmock.api.deps import get_current_user_context, get_org_context, OrgContext
from cardmock.api.permissions import require_admin
from cardmock.db import schemas
from cardmock.db.repositories import clients as client_repo
from cardmock.db.repositories import organizations as org_repo
from cardmock.audit import AuditAction, AuditStatus, log
from cardmock.utils.role_permissions import ROLE_CLIENT

router = APIRouter(prefix="/users", tags=["users"])


@router.patch("/me")
def update_me(
    payload: dict,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, _ctx = user_context
    display_name = (payload.get("display_name") or None)

    if display_name is not None:
        s = str(display_name).strip()
        if len(s) == 0 or len(s) > 80:
            raise HTTPException(status_code=422, detail="display_name must be 1..80 characters")
        user.display_name = s
        db.commit()
        db.refresh(user)

    return {"id": str(user.id), "email": user.email, "display_name": user.display_name}


def _client_payload(db: Session, ctx: OrgContext, user_id: uuid.UUID):
    assignment = client_repo.get_assignment(db, ctx.organization_id, user_id)
    if not assignment:
        return {"user_id": str(user_id), "client": None}
    client = client_repo.get_client(db, ctx.organization_id, assignment.client_id)
    return {
        "user_id": str(user_id),
        "client": schemas.Client.model_validate(client) if client else None,
    }


@router.get("/{user_id}/client")
def get_user_client(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    if user_id != ctx.user_id and not ctx.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return _client_payload(db, ctx, user_id)


@router.patch("/{user_id}/client")
def set_user_client(
    user_id: uuid.UUID,
    payload: schemas.UserClientUpdate,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    """Assign a client-role member to a client; ``client_id: null`` removes the assignment."""
    require_admin(ctx)
    membership = org_repo.get_membership(db, ctx.organization_id, user_id)
    if not membership:
        raise HTTPException(status_code=404, detail="User is not a member of this organization")

    if payload.client_id is None:
        removed = client_repo.unassign_user(db, ctx.organization_id, user_id)
        if removed:
            log(
                db,
                action=AuditAction.CLIENT_USER_UNASSIGN,
                status=AuditStatus.SUCCESS,
                target_type="user",
                target_id=user_id,
                actor_user_id=ctx.user_id,
                organization_id=ctx.organization_id,
            )
        return {"user_id": str(user_id), "client": None}

    if membership.role != ROLE_CLIENT:
        raise HTTPException(status_code=400, detail="Only users with the client role can be assigned to a client")
    client = client_repo.get_client(db, ctx.organization_id, payload.client_id)
    if not client:
        raise HTTPException(status_code=404, detail="Client not found")

    client_repo.assign_user(db, client, user_id, assigned_by=ctx.user_id)
    log(
        db,
        action=AuditAction.CLIENT_USER_ASSIGN,
        status=AuditStatus.SUCCESS,
        target_type="user",
        target_id=user_id,
        actor_user_id=ctx.user_id,
        organization_id=ctx.organization_id,
        metadata={"client_id": str(client.id)},
    )
    return _client_payload(db, ctx, user_id)
