"""
Public share link repository functions.

Covers links, identified public reviewers, view analytics and approvals
recorded through a link.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, UTC
from typing import Any, Dict, Optional
from sqlalchemy.orm import Session

from cardmock.db import models
from cardmock.utils.token_crypto import generate_share_token, generate_session_token, hash_secret


def create_share_link(
    db: Session,
    mockup: models.Mockup,
    *,
    created_by: uuid.UUID,
    permissions: str = 'view',
    expires_in_days: Optional[int] = None,
    password: Optional[str] = None,
    max_uses: Optional[int] = None,
    identity_required_level: str = 'none',
):
    link = models.PublicShareLink(
        asset_id=mockup.id,
        organization_id=mockup.organization_id,
        token=generate_share_token(),
        expires_at=(datetime.now(UTC) + timedelta(days=expires_in_days)) if expires_in_days else None,
        password_hash=hash_secret(password) if password else None,
        permissions=permissions,
        max_uses=max_uses,
        use_count=0,
        identity_required_level=identity_required_level,
        is_active=True,
        created_by=created_by,
    )
    db.add(link)
    db.commit()
    db.refresh(link)
    return link


def get_link_by_token(db: Session, token: str):
    return db.query(models.PublicShareLink).filter(models.PublicShareLink.token == token).first()


def get_link(db: Session, organization_id: uuid.UUID, link_id: uuid.UUID):
    return (
        db.query(models.PublicShareLink)
        .filter(models.PublicShareLink.id == link_id, models.PublicShareLink.organization_id == organization_id)
        .first()
    )


def list_links(db: Session, organization_id: uuid.UUID, mockup_id: Optional[uuid.UUID] = None):
    query = db.query(models.PublicShareLink).filter(models.PublicShareLink.organization_id == organization_id)
    if mockup_id:
        query = query.filter(models.PublicShareLink.asset_id == mockup_id)
    return query.order_by(models.PublicShareLink.created_at.desc()).all()


def deactivate_link(db: Session, link: models.PublicShareLink):
    link.is_active = False
    db.commit()
    db.refresh(link)
    return link


def record_view(
    db: Session,
    link: models.PublicShareLink,
    *,
    viewer_ip: Optional[str],
    user_agent: Optional[str],
    reviewer_id: Optional[uuid.UUID] = None,
):
    """Count a use of the link and store an analytics row in one commit."""
    link.use_count = (link.use_count or 0) + 1
    db.add(models.PublicShareAnalytics(
        link_id=link.id,
        reviewer_id=reviewer_id,
        viewer_ip=viewer_ip,
        user_agent=user_agent,
        actions_taken={'view': True},
    ))
    db.commit()
    db.refresh(link)
    return link


def record_action(
    db: Session,
    link: models.PublicShareLink,
    action: str,
    *,
    viewer_ip: Optional[str],
    user_agent: Optional[str],
    reviewer_id: Optional[uuid.UUID] = None,
    details: Optional[Dict[str, Any]] = None,
):
    actions: Dict[str, Any] = {action: True}
    if details:
        actions.update(details)
    db.add(models.PublicShareAnalytics(
        link_id=link.id,
        reviewer_id=reviewer_id,
        viewer_ip=viewer_ip,
        user_agent=user_agent,
        actions_taken=actions,
    ))
    db.commit()


def create_reviewer(
    db: Session,
    link: models.PublicShareLink,
    *,
    email: str,
    name: str,
    company: Optional[str],
    ip_address: Optional[str],
    user_agent: Optional[str],
):
    reviewer = models.PublicReviewer(
        link_id=link.id,
        email=email.strip().lower(),
        name=name.strip(),
        company=company,
        verified_at=datetime.now(UTC),
        ip_address=ip_address,
        user_agent=user_agent,
        session_token=generate_session_token(),
    )
    db.add(reviewer)
    db.commit()
    db.refresh(reviewer)
    return reviewer


def get_reviewer_by_session(db: Session, link: models.PublicShareLink, session_token: Optional[str]):
    if not session_token:
        return None
    return (
        db.query(models.PublicReviewer)
        .filter(
            models.PublicReviewer.link_id == link.id,
            models.PublicReviewer.session_token == session_token,
        )
        .first()
    )


def create_public_approval(
    db: Session,
    link: models.PublicShareLink,
    reviewer: models.PublicReviewer,
    status: str,
    notes: Optional[str],
):
    approval = models.PublicApproval(
        link_id=link.id,
        asset_id=link.asset_id,
        reviewer_id=reviewer.id,
        status=status,
        notes=notes,
    )
    db.add(approval)
    db.commit()
    db.refresh(approval)
    return approval
