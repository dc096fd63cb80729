"""
Permission checks for organization resources.

Key helpers:
- is_member_of_org(org_id, current_user)
- can_manage_org(org_id, current_user)
- require_admin(ctx)
- get_assigned_client_id(db, ctx)
- client_filter(db, ctx)
- ensure_client_access(db, ctx, resource_client_id, label)
- ensure_creator_or_admin(ctx, created_by, detail)
"""
import uuid
from typing import Any, Dict, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from cardmock.api.deps import OrgContext
from cardmock.db.repositories import clients as client_repo
from cardmock.utils.role_permissions import role_allows_manage, role_allows_write


def _membership(org_id, current_user: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not current_user or org_id is None:
        return None
    return current_user.get("memberships_by_org", {}).get(str(org_id))


def is_member_of_org(org_id, current_user: Optional[Dict[str, Any]]) -> bool:
    """Superadmins count as members of every organization."""
    if current_user and current_user.get("is_superadmin"):
        return True
    return _membership(org_id, current_user) is not None


def can_manage_org(org_id, current_user: Optional[Dict[str, Any]]) -> bool:
    if current_user and current_user.get("is_superadmin"):
        return True
    membership = _membership(org_id, current_user)
    return bool(membership) and role_allows_manage(membership.get("role"))


def require_admin(ctx: OrgContext) -> None:
    if not ctx.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")


def require_write(ctx: OrgContext) -> None:
    if not role_allows_write(ctx.role):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Client users have read-only access")


def get_assigned_client_id(db: Session, ctx: OrgContext) -> Optional[uuid.UUID]:
    """Return the client a client-role user is assigned to, or None."""
    assignment = client_repo.get_assignment(db, ctx.organization_id, ctx.user_id)
    return assignment.client_id if assignment else None


def client_filter(db: Session, ctx: OrgContext) -> Tuple[bool, Optional[uuid.UUID]]:
    """Return ``(restricted, client_id)`` for list endpoints.

    Client-role users are restricted to their assigned client; an unassigned
    client user is restricted to nothing (``client_id`` None).
    """
    if not ctx.is_client:
        return False, None
    return True, get_assigned_client_id(db, ctx)


def ensure_client_access(db: Session, ctx: OrgContext, resource_client_id: Optional[uuid.UUID], label: str) -> None:
    """Raise 403 when a client user touches a resource outside their client."""
    if not ctx.is_client:
        return
    assigned = get_assigned_client_id(db, ctx)
    if assigned is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Client assignment required")
    if resource_client_id != assigned:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Access denied: {label} does not belong to your assigned client",
        )


def ensure_creator_or_admin(ctx: OrgContext, created_by: Optional[uuid.UUID], detail: str) -> None:
    if ctx.is_admin or created_by == ctx.user_id:
        return
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
