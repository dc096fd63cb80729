"""
Public share links for mockups.

Authenticated members create and deactivate links; the ``/public/share``
routes serve external reviewers without a session. Everything here is
hidden (404) when public sharing is switched off.
"""
import logging
import uuid
from datetime import datetime, UTC
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from cardmock.db.database import get_db
from cardmock.db import models, schemas
from cardmock.db.repositories import sharing as sharing_repo
from cardmock.db.repositories import comments as comment_repo
from cardmock.api.deps import get_org_context, OrgContext
from cardmock.api.mockups import get_mockup_or_404
from cardmock.api.permissions import ensure_creator_or_admin
from cardmock.audit import log, AuditAction, AuditStatus
from cardmock.utils.feature_flags import public_sharing_enabled
from cardmock.utils.token_crypto import verify_secret
from cardmock.utils.urls import build_share_url

logger = logging.getLogger(__name__)

PERMISSIONS = ("view", "comment", "approve")
IDENTITY_LEVELS = ("none", "comment", "approve")
ANONYMOUS_REVIEWER = "Anonymous reviewer"


def require_public_sharing():
    if not public_sharing_enabled():
        raise HTTPException(status_code=404, detail="Not found")


router = APIRouter(tags=["sharing"], dependencies=[Depends(require_public_sharing)])
public_router = APIRouter(prefix="/public/share", tags=["public"], dependencies=[Depends(require_public_sharing)])


def _serialize_link(link: models.PublicShareLink):
    return {
        **schemas.ShareLink.model_validate(link).model_dump(mode="json"),
        "has_password": bool(link.password_hash),
        "url": build_share_url(link.token),
    }


def _positive_int(payload: dict, key: str) -> Optional[int]:
    value = payload.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise HTTPException(status_code=400, detail=f"{key} must be a positive integer")
    return value


def _client_meta(request: Request):
    ip = request.client.host if request.client else None
    return ip, request.headers.get("user-agent")


# === Link management ===

@router.post("/mockups/share", status_code=status.HTTP_201_CREATED)
def create_share_link(
    payload: dict,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    raw_id = payload.get("mockupId")
    if not raw_id:
        raise HTTPException(status_code=400, detail="mockupId is required")
    try:
        mockup_id = uuid.UUID(str(raw_id))
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid mockupId")
    mockup = get_mockup_or_404(db, ctx, mockup_id)
    ensure_creator_or_admin(ctx, mockup.created_by, "Only the mockup creator or an admin can share it")

    permissions = payload.get("permissions") or "view"
    if permissions not in PERMISSIONS:
        raise HTTPException(status_code=400, detail=f"permissions must be one of: {', '.join(PERMISSIONS)}")
    identity_level = payload.get("identityRequiredLevel") or "none"
    if identity_level not in IDENTITY_LEVELS:
        raise HTTPException(
            status_code=400,
            detail=f"identityRequiredLevel must be one of: {', '.join(IDENTITY_LEVELS)}",
        )
    expires_in_days = _positive_int(payload, "expiresInDays")
    max_uses = _positive_int(payload, "maxUses")
    password = payload.get("password") or None
    if password is not None and not isinstance(password, str):
        raise HTTPException(status_code=400, detail="password must be a string")
    message = payload.get("message") or None
    if message is not None and not isinstance(message, str):
        raise HTTPException(status_code=400, detail="message must be a string")
    recipients = payload.get("recipients") or []
    if not isinstance(recipients, list) or not all(isinstance(r, str) for r in recipients):
        raise HTTPException(status_code=400, detail="recipients must be a list of email addresses")

    link = sharing_repo.create_share_link(
        db,
        mockup,
        created_by=ctx.user_id,
        permissions=permissions,
        expires_in_days=expires_in_days,
        password=password,
        max_uses=max_uses,
        identity_required_level=identity_level,
    )
    log(
        db,
        action=AuditAction.SHARE_LINK_CREATE,
        status=AuditStatus.SUCCESS,
        target_type="mockup",
        target_id=mockup.id,
        actor_user_id=ctx.user_id,
        organization_id=ctx.organization_id,
        metadata={
            "link_id": str(link.id),
            "permissions": permissions,
            "recipient_count": len(recipients),
        },
    )

    if recipients:
        try:
            from cardmock.services.notification_service import NotificationService

            NotificationService(db).notify_mockup_shared(
                recipients, mockup, link.token, ctx.display_name, message
            )
        except Exception as e:
            logger.error(f"Failed to send share notifications for mockup {mockup.id}: {str(e)}")

    return {"share_link": _serialize_link(link), "url": build_share_url(link.token)}


@router.get("/share-links")
def list_share_links(
    mockup_id: Optional[uuid.UUID] = Query(default=None),
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    if mockup_id is not None:
        get_mockup_or_404(db, ctx, mockup_id)
    elif ctx.is_client:
        raise HTTPException(status_code=400, detail="mockup_id query parameter is required")
    links = sharing_repo.list_links(db, ctx.organization_id, mockup_id)
    return {"share_links": [_serialize_link(link) for link in links]}


@router.delete("/share-links/{link_id}")
def deactivate_share_link(
    link_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    link = sharing_repo.get_link(db, ctx.organization_id, link_id)
    if not link:
        raise HTTPException(status_code=404, detail="Share link not found")
    ensure_creator_or_admin(ctx, link.created_by, "Only the link creator or an admin can deactivate it")
    link = sharing_repo.deactivate_link(db, link)
    log(
        db,
        action=AuditAction.SHARE_LINK_DEACTIVATE,
        status=AuditStatus.SUCCESS,
        target_type="mockup",
        target_id=link.asset_id,
        actor_user_id=ctx.user_id,
        organization_id=ctx.organization_id,
        metadata={"link_id": str(link.id)},
    )
    return {"share_link": _serialize_link(link)}


# === Public review surface ===

def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def _get_usable_link(db: Session, token: str) -> models.PublicShareLink:
    link = sharing_repo.get_link_by_token(db, token)
    if not link or not link.is_active:
        raise HTTPException(status_code=404, detail="Share link not found")
    if link.expires_at and _as_utc(link.expires_at) <= datetime.now(UTC):
        raise HTTPException(status_code=401, detail="Share link has expired")
    if link.max_uses is not None and (link.use_count or 0) >= link.max_uses:
        raise HTTPException(status_code=401, detail="Share link has reached its maximum number of uses")
    return link


def _password_ok(link: models.PublicShareLink, password: Optional[str]) -> bool:
    if not link.password_hash:
        return True
    return verify_secret(password or "", link.password_hash)


def _require_password(link: models.PublicShareLink, password: Optional[str]) -> None:
    if not _password_ok(link, password):
        raise HTTPException(status_code=401, detail="Password required")


def _get_link_mockup(db: Session, link: models.PublicShareLink) -> models.Mockup:
    mockup = db.get(models.Mockup, link.asset_id)
    if not mockup:
        raise HTTPException(status_code=404, detail="Share link not found")
    return mockup


def _public_mockup(mockup: models.Mockup):
    return {
        "id": str(mockup.id),
        "mockup_name": mockup.mockup_name,
        "mockup_image_url": mockup.mockup_image_url,
        "status": mockup.status,
        "created_at": mockup.created_at.isoformat() if mockup.created_at else None,
    }


@public_router.get("/{token}")
def view_shared_mockup(
    token: str,
    request: Request,
    db: Session = Depends(get_db),
    x_share_password: Optional[str] = Header(default=None, alias="X-Share-Password"),
    x_reviewer_session: Optional[str] = Header(default=None, alias="X-Reviewer-Session"),
):
    link = _get_usable_link(db, token)
    mockup = _get_link_mockup(db, link)
    reviewer = sharing_repo.get_reviewer_by_session(db, link, x_reviewer_session)
    ip, user_agent = _client_meta(request)
    link = sharing_repo.record_view(
        db, link, viewer_ip=ip, user_agent=user_agent, reviewer_id=reviewer.id if reviewer else None
    )

    unlocked = _password_ok(link, x_share_password)
    return {
        "link": {
            "permissions": link.permissions,
            "identity_required_level": link.identity_required_level,
            "expires_at": link.expires_at.isoformat() if link.expires_at else None,
            "has_password": bool(link.password_hash),
        },
        "mockup": _public_mockup(mockup) if unlocked else None,
        "reviewer": schemas.PublicReviewer.model_validate(reviewer) if reviewer else None,
    }


@public_router.post("/{token}/verify")
def verify_share_password(
    token: str,
    payload: dict,
    db: Session = Depends(get_db),
):
    link = _get_usable_link(db, token)
    if not link.password_hash:
        return {"valid": True}
    if not verify_secret(str(payload.get("password") or ""), link.password_hash):
        raise HTTPException(status_code=401, detail="Invalid password")
    return {"valid": True}


@public_router.post("/{token}/reviewer", status_code=status.HTTP_201_CREATED)
def identify_reviewer(
    token: str,
    payload: schemas.PublicReviewerCreate,
    request: Request,
    db: Session = Depends(get_db),
    x_share_password: Optional[str] = Header(default=None, alias="X-Share-Password"),
):
    link = _get_usable_link(db, token)
    _require_password(link, x_share_password)
    ip, user_agent = _client_meta(request)
    reviewer = sharing_repo.create_reviewer(
        db,
        link,
        email=payload.email,
        name=payload.name,
        company=payload.company,
        ip_address=ip,
        user_agent=user_agent,
    )
    return {
        "reviewer": schemas.PublicReviewer.model_validate(reviewer),
        "session_token": reviewer.session_token,
    }


@public_router.post("/{token}/comment", status_code=status.HTTP_201_CREATED)
def add_public_comment(
    token: str,
    payload: schemas.PublicComment,
    request: Request,
    db: Session = Depends(get_db),
    x_share_password: Optional[str] = Header(default=None, alias="X-Share-Password"),
    x_reviewer_session: Optional[str] = Header(default=None, alias="X-Reviewer-Session"),
):
    link = _get_usable_link(db, token)
    _require_password(link, x_share_password)
    if link.permissions not in ("comment", "approve"):
        raise HTTPException(status_code=403, detail="This share link does not allow comments")

    reviewer = sharing_repo.get_reviewer_by_session(db, link, x_reviewer_session)
    if reviewer is None and link.identity_required_level in ("comment", "approve"):
        raise HTTPException(status_code=401, detail="Reviewer identification required")

    text = payload.comment_text.strip()
    if not text:
        raise HTTPException(status_code=400, detail="Comment text is required")

    mockup = _get_link_mockup(db, link)
    comment = comment_repo.create_comment(
        db,
        mockup,
        schemas.CommentCreate(**{**payload.model_dump(), "comment_text": text}),
        user_name=reviewer.name if reviewer else ANONYMOUS_REVIEWER,
        user_email=reviewer.email if reviewer else None,
        public_reviewer_id=reviewer.id if reviewer else None,
    )
    ip, user_agent = _client_meta(request)
    sharing_repo.record_action(
        db,
        link,
        "comment",
        viewer_ip=ip,
        user_agent=user_agent,
        reviewer_id=reviewer.id if reviewer else None,
        details={"comment_id": str(comment.id)},
    )

    if mockup.created_by:
        try:
            from cardmock.services.notification_service import NotificationService

            NotificationService(db).notify_comment(
                mockup.created_by, mockup, reviewer.name if reviewer else ANONYMOUS_REVIEWER, text
            )
        except Exception as e:
            logger.error(f"Failed to send public comment notification for mockup {mockup.id}: {str(e)}")

    return {"comment": schemas.Comment.model_validate(comment)}


@public_router.post("/{token}/approve", status_code=status.HTTP_201_CREATED)
def submit_public_approval(
    token: str,
    payload: schemas.PublicApprovalCreate,
    request: Request,
    db: Session = Depends(get_db),
    x_share_password: Optional[str] = Header(default=None, alias="X-Share-Password"),
    x_reviewer_session: Optional[str] = Header(default=None, alias="X-Reviewer-Session"),
):
    link = _get_usable_link(db, token)
    _require_password(link, x_share_password)
    if link.permissions != "approve":
        raise HTTPException(status_code=403, detail="This share link does not allow approvals")

    reviewer = sharing_repo.get_reviewer_by_session(db, link, x_reviewer_session)
    if reviewer is None or not reviewer.name or not reviewer.email:
        raise HTTPException(status_code=401, detail="Reviewer identification required")

    mockup = _get_link_mockup(db, link)
    approval = sharing_repo.create_public_approval(db, link, reviewer, payload.status, payload.notes)
    ip, user_agent = _client_meta(request)
    sharing_repo.record_action(
        db,
        link,
        "approve",
        viewer_ip=ip,
        user_agent=user_agent,
        reviewer_id=reviewer.id,
        details={"status": payload.status},
    )
    log(
        db,
        action=AuditAction.PUBLIC_APPROVAL,
        status=AuditStatus.SUCCESS,
        target_type="mockup",
        target_id=mockup.id,
        actor_user_id=None,
        organization_id=link.organization_id,
        metadata={
            "link_id": str(link.id),
            "reviewer_email": reviewer.email,
            "decision": payload.status,
        },
    )

    try:
        from cardmock.services.notification_service import NotificationService

        NotificationService(db).notify_public_review(
            mockup, reviewer.name, reviewer.company, payload.status, payload.notes
        )
    except Exception as e:
        logger.error(f"Failed to send public approval notification for mockup {mockup.id}: {str(e)}")

    return {"approval": schemas.PublicApproval.model_validate(approval)}
