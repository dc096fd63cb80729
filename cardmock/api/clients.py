"""
Clients API endpoints.

Clients form a hierarchy inside an organization (``parent_client_id``).
Client-role users see only the client they are assigned to.
"""
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cardmock.db.database import get_db
from cardmock.db import schemas
from cardmock.db.repositories import clients as client_repo
from cardmock.db.repositories import organizations as org_repo
from cardmock.api.deps import get_org_context, OrgContext
from cardmock.api.permissions import require_admin, client_filter, ensure_client_access
from cardmock.audit import log, AuditAction, AuditStatus
from cardmock.utils.role_permissions import ROLE_CLIENT

router = APIRouter(prefix="/clients", tags=["clients"])


def _get_client_or_404(db: Session, ctx: OrgContext, client_id: uuid.UUID):
    client = client_repo.get_client(db, ctx.organization_id, client_id)
    if not client:
        raise HTTPException(status_code=404, detail="Client not found")
    return client


def _validate_parent(db: Session, ctx: OrgContext, parent_id, client_id=None):
    if parent_id is None:
        return
    if client_id is not None and parent_id == client_id:
        raise HTTPException(status_code=400, detail="A client cannot be its own parent")
    if not client_repo.get_client(db, ctx.organization_id, parent_id):
        raise HTTPException(status_code=400, detail="Parent client not found")
    if client_id is not None and client_repo.would_create_cycle(db, client_id, parent_id):
        raise HTTPException(status_code=400, detail="Parent change would create a circular client hierarchy")


@router.get("/")
def list_clients(
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    restricted, client_id = client_filter(db, ctx)
    if restricted and client_id is None:
        return {"clients": []}
    clients = client_repo.list_clients(db, ctx.organization_id, client_id=client_id)
    return {"clients": [schemas.Client.model_validate(c) for c in clients]}


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_client(
    payload: schemas.ClientCreate,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    require_admin(ctx)
    _validate_parent(db, ctx, payload.parent_client_id)
    try:
        client = client_repo.create_client(db, ctx.organization_id, payload, ctx.user_id)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Client conflicts with an existing record")
    log(
        db,
        action=AuditAction.CLIENT_CREATE,
        status=AuditStatus.SUCCESS,
        target_type="client",
        target_id=client.id,
        actor_user_id=ctx.user_id,
        organization_id=ctx.organization_id,
        metadata={"name": client.name},
    )
    return {"client": schemas.Client.model_validate(client)}


@router.get("/{client_id}")
def get_client(
    client_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    client = _get_client_or_404(db, ctx, client_id)
    ensure_client_access(db, ctx, client.id, "Client")
    return {"client": schemas.Client.model_validate(client)}


@router.patch("/{client_id}")
def update_client(
    client_id: uuid.UUID,
    payload: schemas.ClientUpdate,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    require_admin(ctx)
    client = _get_client_or_404(db, ctx, client_id)
    update_data = payload.model_dump(exclude_unset=True)
    if "name" in update_data:
        name = (update_data["name"] or "").strip()
        if not name:
            raise HTTPException(status_code=400, detail="Client name is required")
        update_data["name"] = name
    if "parent_client_id" in update_data:
        _validate_parent(db, ctx, update_data["parent_client_id"], client_id=client.id)

    try:
        client = client_repo.update_client(db, client, update_data)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Client conflicts with an existing record")
    log(
        db,
        action=AuditAction.CLIENT_UPDATE,
        status=AuditStatus.SUCCESS,
        target_type="client",
        target_id=client.id,
        actor_user_id=ctx.user_id,
        organization_id=ctx.organization_id,
        metadata={"fields": sorted(update_data.keys())},
    )
    return {"client": schemas.Client.model_validate(client)}


@router.delete("/{client_id}")
def delete_client(
    client_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    require_admin(ctx)
    client = _get_client_or_404(db, ctx, client_id)
    name = client.name
    client_repo.delete_client(db, client)
    log(
        db,
        action=AuditAction.CLIENT_DELETE,
        status=AuditStatus.SUCCESS,
        target_type="client",
        target_id=client_id,
        actor_user_id=ctx.user_id,
        organization_id=ctx.organization_id,
        metadata={"name": name},
    )
    return {"success": True}


@router.get("/{client_id}/children")
def list_children(
    client_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    client = _get_client_or_404(db, ctx, client_id)
    ensure_client_access(db, ctx, client.id, "Client")
    children = client_repo.list_children(db, ctx.organization_id, client.id)
    return {"clients": [schemas.Client.model_validate(c) for c in children]}


# === Client users ===

@router.get("/{client_id}/users")
def list_client_users(
    client_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    client = _get_client_or_404(db, ctx, client_id)
    ensure_client_access(db, ctx, client.id, "Client")
    rows = client_repo.list_client_users(db, client.id)
    return {
        "users": [
            {
                **schemas.ClientUser.model_validate(assignment).model_dump(mode="json"),
                "email": user.email,
                "display_name": user.display_name,
                "image_url": user.image_url,
            }
            for assignment, user in rows
        ]
    }


@router.post("/{client_id}/users", status_code=status.HTTP_201_CREATED)
def assign_client_user(
    client_id: uuid.UUID,
    payload: schemas.ClientUserAssign,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    require_admin(ctx)
    client = _get_client_or_404(db, ctx, client_id)
    membership = org_repo.get_membership(db, ctx.organization_id, payload.user_id)
    if not membership:
        raise HTTPException(status_code=404, detail="User is not a member of this organization")
    if membership.role != ROLE_CLIENT:
        raise HTTPException(status_code=400, detail="Only users with the client role can be assigned to a client")

    assignment = client_repo.assign_user(db, client, payload.user_id, assigned_by=ctx.user_id)
    log(
        db,
        action=AuditAction.CLIENT_USER_ASSIGN,
        status=AuditStatus.SUCCESS,
        target_type="user",
        target_id=payload.user_id,
        actor_user_id=ctx.user_id,
        organization_id=ctx.organization_id,
        metadata={"client_id": str(client.id)},
    )
    return {"assignment": schemas.ClientUser.model_validate(assignment)}


@router.delete("/{client_id}/users/{user_id}")
def unassign_client_user(
    client_id: uuid.UUID,
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    require_admin(ctx)
    client = _get_client_or_404(db, ctx, client_id)
    assignment = client_repo.get_assignment(db, ctx.organization_id, user_id)
    if not assignment or assignment.client_id != client.id:
        raise HTTPException(status_code=404, detail="User is not assigned to this client")
    client_repo.unassign_user(db, ctx.organization_id, user_id)
    log(
        db,
        action=AuditAction.CLIENT_USER_UNASSIGN,
        status=AuditStatus.SUCCESS,
        target_type="user",
        target_id=user_id,
        actor_user_id=ctx.user_id,
        organization_id=ctx.organization_id,
        metadata={"client_id": str(client.id)},
    )
    return {"success": True}
