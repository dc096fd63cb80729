"""
API dependency helpers.

Provides dependency-resolved user context and the active organization
context for routes.
"""
import uuid
from dataclasses import dataclass
from typing import Optional, Tuple, Dict, Any

from fastapi import Header, HTTPException, status, Depends
from sqlalchemy.orm import Session

from cardmock.db.database import get_db
from cardmock.api.auth import resolve_identity_from_headers, get_or_create_user, get_user_memberships
from cardmock.db import models
from cardmock.utils.role_permissions import ROLE_ADMIN, ROLE_CLIENT, role_allows_manage
from cardmock.utils.runtime import dev_mode_active

# Contract:
# Returns (sqlalchemy User model, current_user_context_dict)
# Raises 401 if identity cannot be resolved.

def get_current_user_context(
    db: Session = Depends(get_db),
    x_auth_request_user: Optional[str] = Header(default=None),
    x_auth_request_email: Optional[str] = Header(default=None),
    x_forwarded_user: Optional[str] = Header(default=None),
    x_forwarded_email: Optional[str] = Header(default=None),
) -> Tuple[Any, Dict[str, Any]]:
    if dev_mode_active():
        email = "dev@localhost"
        name = "Development User"
    else:
        name, email = resolve_identity_from_headers(
            x_auth_request_user=x_auth_request_user,
            x_auth_request_email=x_auth_request_email,
            x_forwarded_user=x_forwarded_user,
            x_forwarded_email=x_forwarded_email,
        )
        if not email:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    user = get_or_create_user(db, email=email, display_name=name)

    memberships = get_user_memberships(db, user.id)
    # Keys are strings to align with permission helpers that cast org_id to str
    memberships_by_org = {str(m["organization_id"]): m for m in memberships}
    current_user = {
        "id": user.id,
        "email": user.email,
        "display_name": user.display_name,
        "image_url": user.image_url,
        "is_superadmin": bool(user.is_superadmin),
        "memberships": memberships,
        "memberships_by_org": memberships_by_org,
    }
    return user, current_user


@dataclass
class OrgContext:
    """The authenticated user acting inside one organization."""
    user: models.User
    current_user: Dict[str, Any]
    organization_id: uuid.UUID
    role: str

    @property
    def user_id(self) -> uuid.UUID:
        return self.user.id

    @property
    def display_name(self) -> str:
        return self.user.display_name or self.user.email

    @property
    def is_admin(self) -> bool:
        return role_allows_manage(self.role)

    @property
    def is_client(self) -> bool:
        return self.role == ROLE_CLIENT


def _no_org() -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Please select an organization")


def get_org_context(
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
    x_organization_id: Optional[str] = Header(default=None, alias="X-Organization-Id"),
) -> OrgContext:
    """Resolve the active organization for the request.

    - `X-Organization-Id` selects the organization; the user must be a member
      (superadmins act as admin in any existing organization).
    - Without the header, a user with exactly one membership uses it.
    """
    user, current_user = user_context
    memberships = current_user.get("memberships", [])

    if x_organization_id:
        try:
            org_id = uuid.UUID(x_organization_id.strip())
        except ValueError:
            raise _no_org()
        membership = current_user.get("memberships_by_org", {}).get(str(org_id))
        if membership:
            return OrgContext(user=user, current_user=current_user, organization_id=org_id, role=membership["role"])
        if current_user.get("is_superadmin"):
            exists = db.query(models.Organization.id).filter(models.Organization.id == org_id).first()
            if exists:
                return OrgContext(user=user, current_user=current_user, organization_id=org_id, role=ROLE_ADMIN)
        raise _no_org()

    if len(memberships) == 1:
        only = memberships[0]
        return OrgContext(
            user=user,
            current_user=current_user,
            organization_id=uuid.UUID(only["organization_id"]),
            role=only["role"],
        )
    raise _no_org()
