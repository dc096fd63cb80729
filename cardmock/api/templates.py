"""
Template and template type API endpoints.

Template types are seeded reference data (card and wallet formats). Upload
analysis tells the UI whether an image fits a type exactly, can be scaled,
needs cropping, or is unusable.
"""
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from cardmock.db.database import get_db
from cardmock.db import schemas
from cardmock.db.models.base import now_utc
from cardmock.db.repositories import templates as template_repo
from cardmock.api.deps import get_current_user_context, get_org_context, OrgContext
from cardmock.api.permissions import require_admin
from cardmock.audit import log, AuditAction, AuditStatus
from cardmock.services.template_analysis import analyze_upload, upload_prompt

MAX_TEMPLATE_FILE_SIZE = 10 * 1024 * 1024

types_router = APIRouter(prefix="/template-types", tags=["templates"])
router = APIRouter(prefix="/templates", tags=["templates"])


def _get_type_or_404(db: Session, template_type_id: str):
    template_type = template_repo.get_template_type(db, template_type_id)
    if not template_type:
        raise HTTPException(status_code=404, detail="Template type not found")
    return template_type


@types_router.get("/")
def list_template_types(
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    types = template_repo.list_template_types(db)
    return {"template_types": [schemas.TemplateType.model_validate(t) for t in types]}


@types_router.get("/{template_type_id}")
def get_template_type(
    template_type_id: str,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    return {"template_type": schemas.TemplateType.model_validate(_get_type_or_404(db, template_type_id))}


@types_router.post("/{template_type_id}/analyze")
def analyze_template_upload(
    template_type_id: str,
    payload: schemas.UploadAnalysisRequest,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    template_type = _get_type_or_404(db, template_type_id)
    analysis = analyze_upload(payload.width, payload.height, template_type)
    return {
        "analysis": analysis.to_dict(),
        "prompt": upload_prompt(analysis, template_type.name),
    }


def _check_upload(file_type: Optional[str], file_size: Optional[int]):
    if file_type is not None and not file_type.startswith("image/"):
        raise HTTPException(status_code=400, detail="Template file must be an image")
    if file_size is not None and file_size > MAX_TEMPLATE_FILE_SIZE:
        raise HTTPException(status_code=400, detail="Template file must be 10MB or smaller")


def _get_template_or_404(db: Session, ctx: OrgContext, template_id: uuid.UUID):
    template = template_repo.get_template(db, ctx.organization_id, template_id)
    if not template:
        raise HTTPException(status_code=404, detail="Template not found")
    return template


@router.get("/")
def list_templates(
    include_archived: bool = Query(default=False),
    template_type_id: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    templates = template_repo.list_templates(
        db,
        ctx.organization_id,
        include_archived=include_archived,
        template_type_id=template_type_id,
    )
    return {"templates": [schemas.Template.model_validate(t) for t in templates]}


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_template(
    payload: schemas.TemplateCreate,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    require_admin(ctx)
    if not payload.template_name.strip() or not payload.template_url.strip():
        raise HTTPException(status_code=400, detail="Template name and URL are required")
    _check_upload(payload.file_type, payload.file_size)
    template_type = template_repo.get_template_type(db, payload.template_type_id)
    if not template_type:
        raise HTTPException(status_code=400, detail=f"Unknown template type: {payload.template_type_id}")

    # Fill output dimensions and quality from the original upload size when the client did not
    if payload.original_width and payload.original_height and payload.upload_quality is None:
        analysis = analyze_upload(payload.original_width, payload.original_height, template_type)
        payload = payload.model_copy(update={
            "width": payload.width or template_type.width,
            "height": payload.height or template_type.height,
            "scale_factor": analysis.scale_factor,
            "upload_quality": analysis.quality_rating,
        })

    template = template_repo.create_template(db, ctx.organization_id, payload, ctx.user_id)
    log(
        db,
        action=AuditAction.TEMPLATE_CREATE,
        status=AuditStatus.SUCCESS,
        target_type="template",
        target_id=template.id,
        actor_user_id=ctx.user_id,
        organization_id=ctx.organization_id,
        metadata={"template_name": template.template_name, "template_type_id": template.template_type_id},
    )
    return {"template": schemas.Template.model_validate(template)}


@router.get("/{template_id}")
def get_template(
    template_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    return {"template": schemas.Template.model_validate(_get_template_or_404(db, ctx, template_id))}


@router.patch("/{template_id}")
def update_template(
    template_id: uuid.UUID,
    payload: schemas.TemplateUpdate,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    require_admin(ctx)
    template = _get_template_or_404(db, ctx, template_id)
    update_data = payload.model_dump(exclude_unset=True)

    if "template_type_id" in update_data:
        if not update_data["template_type_id"] or not template_repo.get_template_type(db, update_data["template_type_id"]):
            raise HTTPException(status_code=400, detail=f"Unknown template type: {update_data['template_type_id']}")
    if "template_name" in update_data and not (update_data["template_name"] or "").strip():
        raise HTTPException(status_code=400, detail="Template name is required")

    action = AuditAction.TEMPLATE_UPDATE
    if "is_archived" in update_data:
        archived = bool(update_data["is_archived"])
        update_data["is_archived"] = archived
        if archived and not template.is_archived:
            update_data["archived_at"] = now_utc()
            update_data["archived_by"] = ctx.user_id
            action = AuditAction.TEMPLATE_ARCHIVE
        elif not archived:
            update_data["archived_at"] = None
            update_data["archived_by"] = None

    template = template_repo.update_template(db, template, update_data)
    log(
        db,
        action=action,
        status=AuditStatus.SUCCESS,
        target_type="template",
        target_id=template.id,
        actor_user_id=ctx.user_id,
        organization_id=ctx.organization_id,
        metadata={"fields": sorted(k for k in update_data.keys() if k not in ("archived_at", "archived_by"))},
    )
    return {"template": schemas.Template.model_validate(template)}


@router.delete("/{template_id}")
def delete_template(
    template_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    require_admin(ctx)
    template = _get_template_or_404(db, ctx, template_id)
    name = template.template_name
    template_repo.delete_template(db, template)
    log(
        db,
        action=AuditAction.TEMPLATE_DELETE,
        status=AuditStatus.SUCCESS,
        target_type="template",
        target_id=template_id,
        actor_user_id=ctx.user_id,
        organization_id=ctx.organization_id,
        metadata={"template_name": name},
    )
    return {"success": True}
