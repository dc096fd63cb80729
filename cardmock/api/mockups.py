"""
Mockups API endpoints.

Covers mockup CRUD and duplication, the per-mockup approval workflow
(stage progress, approve, request changes, final approval) and the
mockup's comment thread.
"""
import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from cardmock.db.database import get_db
from cardmock.db import models, schemas
from cardmock.db.repositories import mockups as mockup_repo
from cardmock.db.repositories import comments as comment_repo
from cardmock.db.repositories import folders as folder_repo
from cardmock.db.repositories import templates as template_repo
from cardmock.db.repositories import projects as project_repo
from cardmock.api.deps import get_org_context, OrgContext
from cardmock.api.permissions import client_filter, ensure_client_access, require_write
from cardmock.audit import AuditAction, AuditStatus, log_mockup
from cardmock.services import approval_service
from cardmock.services.approval_service import ApprovalError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/mockups", tags=["mockups"])


def _mockup_client_id(db: Session, mockup: models.Mockup) -> Optional[uuid.UUID]:
    if not mockup.project_id:
        return None
    project = db.get(models.Project, mockup.project_id)
    return project.client_id if project else None


def get_mockup_or_404(db: Session, ctx: OrgContext, mockup_id: uuid.UUID) -> models.Mockup:
    mockup = mockup_repo.get_mockup(db, ctx.organization_id, mockup_id)
    if not mockup:
        raise HTTPException(status_code=404, detail="Mockup not found")
    if ctx.is_client:
        ensure_client_access(db, ctx, _mockup_client_id(db, mockup), "Mockup")
    return mockup


def _ensure_creator(ctx: OrgContext, mockup: models.Mockup, action: str):
    if mockup.created_by != ctx.user_id:
        raise HTTPException(status_code=403, detail=f"Only the mockup creator can {action} it")


def _validate_references(db: Session, ctx: OrgContext, data: Dict[str, Any]):
    """Referenced logo, template, folder and project must belong to the organization."""
    if data.get("logo_id") is not None:
        logo = db.get(models.LogoVariant, data["logo_id"])
        if not logo or logo.organization_id != ctx.organization_id:
            raise HTTPException(status_code=400, detail="Logo not found")
    if data.get("template_id") is not None:
        if not template_repo.get_template(db, ctx.organization_id, data["template_id"]):
            raise HTTPException(status_code=400, detail="Template not found")
    if data.get("folder_id") is not None:
        if not folder_repo.get_folder(db, ctx.organization_id, data["folder_id"]):
            raise HTTPException(status_code=400, detail="Folder not found")
    if data.get("project_id") is not None:
        project = project_repo.get_project(db, ctx.organization_id, data["project_id"])
        if not project:
            raise HTTPException(status_code=400, detail="Project not found")
        return project
    return None


def start_workflow(db: Session, mockup: models.Mockup, project: Optional[models.Project]):
    """Initialize stage progress when the mockup joins a project that has a workflow."""
    if project is None or not project.workflow_id:
        return
    workflow = db.get(models.Workflow, project.workflow_id)
    if workflow is None:
        return
    approval_service.initialize_stage_progress(db, mockup, project, workflow)
    db.refresh(mockup)
    approval_service.notify_first_stage(db, mockup, project, workflow)


def _raise_approval_error(e: ApprovalError):
    raise HTTPException(status_code=e.status_code, detail=e.detail)


def _progress_entry(row, stage_name=None, stage_color=None):
    data = schemas.StageProgress.model_validate(row).model_dump(mode="json")
    if stage_name is not None or stage_color is not None:
        data["stage_name"] = stage_name
        data["stage_color"] = stage_color
    return data


# === Mockups ===

@router.get("/")
def list_mockups(
    project_id: Optional[uuid.UUID] = Query(default=None),
    folder_id: Optional[uuid.UUID] = Query(default=None),
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    restricted, client_id = client_filter(db, ctx)
    if restricted and client_id is None:
        return {"mockups": []}
    mockups = mockup_repo.list_mockups(
        db, ctx.organization_id, project_id=project_id, folder_id=folder_id, client_id=client_id
    )
    return {"mockups": [schemas.Mockup.model_validate(m) for m in mockups]}


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_mockup(
    payload: schemas.MockupCreate,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    require_write(ctx)
    project = _validate_references(db, ctx, payload.model_dump())
    mockup = mockup_repo.create_mockup(db, ctx.organization_id, payload, ctx.user_id)
    start_workflow(db, mockup, project)
    log_mockup(
        db,
        actor_user_id=ctx.user_id,
        organization_id=ctx.organization_id,
        mockup_id=mockup.id,
        action=AuditAction.MOCKUP_CREATE,
        metadata={"mockup_name": mockup.mockup_name},
    )
    return {"mockup": schemas.Mockup.model_validate(mockup)}


@router.post("/duplicate", status_code=status.HTTP_201_CREATED)
def duplicate_mockup(
    payload: schemas.MockupDuplicate,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    require_write(ctx)
    raw_id = payload.mockupId.strip()
    new_name = payload.newName.strip()
    if not raw_id or not new_name:
        raise HTTPException(status_code=400, detail="mockupId and newName are required")
    try:
        source_id = uuid.UUID(raw_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid mockupId")
    source = get_mockup_or_404(db, ctx, source_id)
    copy = mockup_repo.duplicate_mockup(db, source, new_name[:200], ctx.user_id)
    log_mockup(
        db,
        actor_user_id=ctx.user_id,
        organization_id=ctx.organization_id,
        mockup_id=copy.id,
        action=AuditAction.MOCKUP_CREATE,
        metadata={"duplicated_from": str(source.id)},
    )
    return {"mockup": schemas.Mockup.model_validate(copy)}


@router.get("/{mockup_id}")
def get_mockup(
    mockup_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    return {"mockup": schemas.Mockup.model_validate(get_mockup_or_404(db, ctx, mockup_id))}


@router.patch("/{mockup_id}")
def update_mockup(
    mockup_id: uuid.UUID,
    payload: schemas.MockupUpdate,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    mockup = get_mockup_or_404(db, ctx, mockup_id)
    _ensure_creator(ctx, mockup, "update")
    update_data = payload.model_dump(exclude_unset=True)
    if "mockup_name" in update_data:
        name = (update_data["mockup_name"] or "").strip()
        if not name:
            raise HTTPException(status_code=400, detail="Mockup name cannot be empty")
        update_data["mockup_name"] = name
    project = _validate_references(db, ctx, update_data)

    project_changed = "project_id" in update_data and update_data["project_id"] != mockup.project_id
    if project_changed:
        mockup_repo.clear_review_state(db, mockup.id)
        if update_data["project_id"] is None:
            update_data["status"] = "draft"
    mockup = mockup_repo.update_mockup(db, mockup, update_data)
    if project_changed:
        start_workflow(db, mockup, project)

    log_mockup(
        db,
        actor_user_id=ctx.user_id,
        organization_id=ctx.organization_id,
        mockup_id=mockup.id,
        action=AuditAction.MOCKUP_UPDATE,
        metadata={"fields": sorted(k for k in update_data.keys() if k != "status")},
    )
    return {"mockup": schemas.Mockup.model_validate(mockup)}


@router.delete("/{mockup_id}")
def delete_mockup(
    mockup_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    mockup = get_mockup_or_404(db, ctx, mockup_id)
    _ensure_creator(ctx, mockup, "delete")
    name = mockup.mockup_name
    mockup_repo.delete_mockup(db, mockup)
    log_mockup(
        db,
        actor_user_id=ctx.user_id,
        organization_id=ctx.organization_id,
        mockup_id=mockup_id,
        action=AuditAction.MOCKUP_DELETE,
        metadata={"mockup_name": name},
    )
    return {"success": True}


# === Approval workflow ===

@router.get("/{mockup_id}/stage-progress")
def get_stage_progress(
    mockup_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    mockup = get_mockup_or_404(db, ctx, mockup_id)
    described = approval_service.describe_progress(db, mockup)
    workflow = described["workflow"]
    return {
        "progress": [_progress_entry(row, name, color) for row, name, color in described["progress"]],
        "workflow": schemas.Workflow.model_validate(workflow) if workflow else None,
    }


@router.post("/{mockup_id}/stage-progress/{stage_order}")
def act_on_stage(
    mockup_id: uuid.UUID,
    stage_order: int,
    payload: schemas.StageAction,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    mockup = get_mockup_or_404(db, ctx, mockup_id)
    action = payload.action
    notes = payload.notes
    try:
        result = approval_service.act_on_stage(db, mockup, stage_order, ctx.user, action, notes)
    except ApprovalError as e:
        _raise_approval_error(e)

    audit_action = (
        AuditAction.STAGE_APPROVE if action == approval_service.ACTION_APPROVE else AuditAction.STAGE_REQUEST_CHANGES
    )
    log_mockup(
        db,
        actor_user_id=ctx.user_id,
        organization_id=ctx.organization_id,
        mockup_id=mockup.id,
        action=audit_action,
        metadata={"stage_order": stage_order},
    )
    if action == approval_service.ACTION_APPROVE:
        return _approval_response(result)
    return {
        "stage_order": result["stage_order"],
        "action": result["action"],
        "progress": [_progress_entry(row) for row in result["progress"]],
        "message": result["message"],
    }


def _approval_response(result: Dict[str, Any]):
    return {
        "approval": schemas.StageUserApproval.model_validate(result["approval"]),
        "stage_complete": result["stage_complete"],
        "advanced_to_next_stage": result["advanced_to_next_stage"],
        "next_stage_name": result["next_stage_name"],
        "updated_progress": _progress_entry(result["updated_progress"]),
        "message": result["message"],
    }


@router.post("/{mockup_id}/approve")
def approve_mockup(
    mockup_id: uuid.UUID,
    payload: Optional[schemas.ReviewNotes] = None,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    mockup = get_mockup_or_404(db, ctx, mockup_id)
    notes = payload.notes if payload else None
    try:
        result = approval_service.approve_current_stage(db, mockup, ctx.user, notes)
    except ApprovalError as e:
        _raise_approval_error(e)
    log_mockup(
        db,
        actor_user_id=ctx.user_id,
        organization_id=ctx.organization_id,
        mockup_id=mockup.id,
        action=AuditAction.STAGE_APPROVE,
        metadata={"stage_order": result["updated_progress"].stage_order},
    )
    return _approval_response(result)


@router.post("/{mockup_id}/final-approve")
def final_approve_mockup(
    mockup_id: uuid.UUID,
    payload: Optional[schemas.ReviewNotes] = None,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    mockup = get_mockup_or_404(db, ctx, mockup_id)
    notes = payload.notes if payload else None
    try:
        result = approval_service.final_approve(db, mockup, ctx.user, ctx.is_admin, notes)
    except ApprovalError as e:
        _raise_approval_error(e)
    log_mockup(
        db,
        actor_user_id=ctx.user_id,
        organization_id=ctx.organization_id,
        mockup_id=mockup.id,
        action=AuditAction.FINAL_APPROVE,
    )
    return {
        "message": result["message"],
        "mockup": schemas.Mockup.model_validate(result["mockup"]),
        "progress": [_progress_entry(row) for row in result["progress"]],
    }


# === Comments ===

@router.get("/{mockup_id}/comments")
def list_comments(
    mockup_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    mockup = get_mockup_or_404(db, ctx, mockup_id)
    comments = comment_repo.list_comments(db, mockup.id)
    return {"comments": [schemas.Comment.model_validate(c) for c in comments]}


@router.post("/{mockup_id}/comments", status_code=status.HTTP_201_CREATED)
def create_comment(
    mockup_id: uuid.UUID,
    payload: schemas.CommentCreate,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    mockup = get_mockup_or_404(db, ctx, mockup_id)
    comment = comment_repo.create_comment(
        db,
        mockup,
        payload,
        user_id=ctx.user_id,
        user_name=ctx.display_name,
        user_email=ctx.user.email,
        user_image_url=ctx.user.image_url,
    )

    if mockup.created_by and mockup.created_by != ctx.user_id:
        try:
            from cardmock.services.notification_service import NotificationService

            NotificationService(db).notify_comment(
                mockup.created_by, mockup, ctx.display_name, comment.comment_text
            )
        except Exception as e:
            logger.error(f"Failed to send comment notification for mockup {mockup.id}: {str(e)}")

    return {"comment": schemas.Comment.model_validate(comment)}
