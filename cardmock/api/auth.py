"""
Identity resolution for requests arriving through the auth proxy.

The proxy (oauth2-proxy in front of Clerk) forwards the user and email as
headers; users are upserted by email and superadmins come from ADMIN_EMAILS.
"""
import os
from typing import Optional, Dict, Any, List, Tuple
from sqlalchemy.orm import Session

from cardmock.db import models


def normalize_email(email: Optional[str]) -> Optional[str]:
    if not email:
        return None
    return email.strip().lower()


def superadmin_emails() -> set:
    emails = set()
    for entry in os.getenv("ADMIN_EMAILS", "").split(","):
        cleaned = entry.strip().strip("'\"").lower()
        if cleaned:
            emails.add(cleaned)
    return emails


def resolve_identity_from_headers(
    x_auth_request_user: Optional[str],
    x_auth_request_email: Optional[str],
    x_forwarded_user: Optional[str],
    x_forwarded_email: Optional[str],
) -> Tuple[Optional[str], Optional[str]]:
    """Prefer the X-Auth-Request-* pair, fall back to X-Forwarded-*."""
    name = x_auth_request_user or x_forwarded_user
    return name, normalize_email(x_auth_request_email or x_forwarded_email)


def get_or_create_user(db: Session, email: str, display_name: Optional[str] = None) -> models.User:
    email = normalize_email(email)
    promote = email in superadmin_emails()
    user = db.query(models.User).filter(models.User.email == email).first()
    if user is None:
        user = models.User(email=email, display_name=display_name or email.split("@")[0], is_superadmin=promote)
        db.add(user)
    elif promote and not user.is_superadmin:
        # ADMIN_EMAILS may have grown since the user first signed in
        user.is_superadmin = True
    else:
        return user
    db.commit()
    db.refresh(user)
    return user


def get_user_memberships(db: Session, user_id) -> List[Dict[str, Any]]:
    """Memberships of ``user_id`` ordered by organization name.

    Client-role memberships carry the assigned ``client_id`` (or None when the
    user has not been assigned to a client yet).
    """
    rows = (
        db.query(models.OrganizationMembership, models.Organization, models.ClientUser.client_id)
        .join(models.Organization, models.Organization.id == models.OrganizationMembership.organization_id)
        .outerjoin(
            models.ClientUser,
            (models.ClientUser.user_id == models.OrganizationMembership.user_id)
            & (models.ClientUser.organization_id == models.OrganizationMembership.organization_id),
        )
        .filter(models.OrganizationMembership.user_id == user_id)
        .order_by(models.Organization.name)
        .all()
    )
    return [
        {
            "organization_id": str(membership.organization_id),
            "organization_name": org.name,
            "role": membership.role,
            "can_read": bool(membership.can_read),
            "can_write": bool(membership.can_write),
            "client_id": str(client_id) if client_id else None,
        }
        for membership, org, client_id in rows
    ]
