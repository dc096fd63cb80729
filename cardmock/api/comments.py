"""
Comment endpoints addressed by comment id.

Listing and creation live under ``/mockups/{id}/comments``.
"""
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from cardmock.db.database import get_db
from cardmock.db import models, schemas
from cardmock.db.repositories import comments as comment_repo
from cardmock.api.deps import get_org_context, OrgContext
from cardmock.api.mockups import get_mockup_or_404

router = APIRouter(prefix="/comments", tags=["comments"])


def _get_comment_or_404(db: Session, ctx: OrgContext, comment_id: uuid.UUID) -> models.MockupComment:
    comment = comment_repo.get_comment(db, ctx.organization_id, comment_id)
    if not comment:
        raise HTTPException(status_code=404, detail="Comment not found")
    # Client users only reach comments on mockups they can see
    get_mockup_or_404(db, ctx, comment.asset_id)
    return comment


@router.patch("/{comment_id}")
def update_comment(
    comment_id: uuid.UUID,
    payload: schemas.CommentUpdate,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    comment = _get_comment_or_404(db, ctx, comment_id)
    if comment.user_id != ctx.user_id:
        raise HTTPException(status_code=403, detail="You can only edit your own comments")
    update_data = payload.model_dump(exclude_unset=True)
    if "comment_text" in update_data:
        text = (update_data["comment_text"] or "").strip()
        if not text:
            raise HTTPException(status_code=400, detail="Comment text is required")
        update_data["comment_text"] = text
    for field in ("annotation_type", "annotation_color"):
        if field in update_data and update_data[field] is None:
            update_data.pop(field)
    comment = comment_repo.update_comment(db, comment, update_data)
    return {"comment": schemas.Comment.model_validate(comment)}


@router.delete("/{comment_id}")
def delete_comment(
    comment_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    comment = _get_comment_or_404(db, ctx, comment_id)
    if comment.user_id != ctx.user_id and not ctx.is_admin:
        raise HTTPException(status_code=403, detail="You can only delete your own comments")
    comment_repo.soft_delete_comment(db, comment)
    return {"success": True}


@router.post("/{comment_id}/resolve")
def resolve_comment(
    comment_id: uuid.UUID,
    payload: Optional[schemas.CommentResolve] = None,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    comment = _get_comment_or_404(db, ctx, comment_id)
    if comment.is_resolved:
        raise HTTPException(status_code=400, detail="Comment is already resolved")
    note = payload.resolution_note if payload else None
    comment = comment_repo.resolve_comment(db, comment, ctx.user_id, ctx.display_name, note)
    return {"comment": schemas.Comment.model_validate(comment)}


@router.post("/{comment_id}/unresolve")
def unresolve_comment(
    comment_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    comment = _get_comment_or_404(db, ctx, comment_id)
    if not comment.is_resolved:
        raise HTTPException(status_code=400, detail="Comment is not resolved")
    comment = comment_repo.unresolve_comment(db, comment)
    return {"comment": schemas.Comment.model_validate(comment)}
