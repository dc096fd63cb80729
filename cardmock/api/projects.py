"""
Projects API endpoints, including per-stage reviewer assignment.

Projects group mockups for a client and may follow a workflow; reviewers
are assigned per workflow stage.
"""
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from cardmock.db.database import get_db
from cardmock.db import models, schemas
from cardmock.db.repositories import projects as project_repo
from cardmock.db.repositories import clients as client_repo
from cardmock.db.repositories import workflows as workflow_repo
from cardmock.db.repositories import organizations as org_repo
from cardmock.api.deps import get_org_context, OrgContext
from cardmock.api.permissions import (
    client_filter,
    ensure_client_access,
    ensure_creator_or_admin,
    require_write,
)
from cardmock.audit import log, AuditAction, AuditStatus
from cardmock.services.approval_service import pending_review_count

router = APIRouter(prefix="/projects", tags=["projects"])

MOCKUP_PREVIEW_LIMIT = 4


def _get_project_or_404(db: Session, ctx: OrgContext, project_id: uuid.UUID):
    project = project_repo.get_project(db, ctx.organization_id, project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    ensure_client_access(db, ctx, project.client_id, "Project")
    return project


def _resolve_client(db: Session, ctx: OrgContext, client_id: Optional[uuid.UUID]):
    if client_id is None:
        return None
    client = client_repo.get_client(db, ctx.organization_id, client_id)
    if not client:
        raise HTTPException(status_code=400, detail="Client not found or does not belong to this organization")
    return client


def _resolve_workflow(db: Session, ctx: OrgContext, workflow_id: Optional[uuid.UUID]):
    if workflow_id is None:
        return None
    workflow = workflow_repo.get_workflow(db, ctx.organization_id, workflow_id)
    if not workflow:
        raise HTTPException(status_code=404, detail="Workflow not found")
    return workflow


def _workflow_payload(workflow: Optional[models.Workflow]):
    if workflow is None:
        return None
    return {
        "id": str(workflow.id),
        "name": workflow.name,
        "stages": workflow.stages,
        "stage_count": workflow.stage_count,
    }


@router.get("/")
def list_projects(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    restricted, client_id = client_filter(db, ctx)
    if restricted and client_id is None:
        return {"projects": []}
    projects = project_repo.list_projects(db, ctx.organization_id, status=status_filter, client_id=client_id)
    return {
        "projects": [
            {
                **schemas.Project.model_validate(p).model_dump(mode="json"),
                "mockup_count": project_repo.mockup_count(db, p.id),
            }
            for p in projects
        ]
    }


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_project(
    payload: schemas.ProjectCreate,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    require_write(ctx)
    client = _resolve_client(db, ctx, payload.client_id)
    _resolve_workflow(db, ctx, payload.workflow_id)
    if client is not None:
        payload = payload.model_copy(update={"client_name": client.name})

    project = project_repo.create_project(db, ctx.organization_id, payload, ctx.user_id)
    log(
        db,
        action=AuditAction.PROJECT_CREATE,
        status=AuditStatus.SUCCESS,
        target_type="project",
        target_id=project.id,
        actor_user_id=ctx.user_id,
        organization_id=ctx.organization_id,
        metadata={"name": project.name},
    )
    return {"project": schemas.Project.model_validate(project)}


@router.get("/{project_id}")
def get_project(
    project_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    project = _get_project_or_404(db, ctx, project_id)
    workflow = workflow_repo.get_workflow(db, ctx.organization_id, project.workflow_id) if project.workflow_id else None
    previews = project_repo.list_project_mockups(db, project.id, limit=MOCKUP_PREVIEW_LIMIT)
    return {
        "project": {
            **schemas.Project.model_validate(project).model_dump(mode="json"),
            "mockup_count": project_repo.mockup_count(db, project.id),
            "pending_review_count": pending_review_count(db, project.id),
            "mockup_previews": [
                {"id": str(m.id), "mockup_name": m.mockup_name, "mockup_image_url": m.mockup_image_url}
                for m in previews
            ],
            "workflow": _workflow_payload(workflow),
        }
    }


@router.patch("/{project_id}")
def update_project(
    project_id: uuid.UUID,
    payload: schemas.ProjectUpdate,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    project = _get_project_or_404(db, ctx, project_id)
    ensure_creator_or_admin(ctx, project.created_by, "You do not have permission to edit this project")

    update_data = payload.model_dump(exclude_unset=True)
    if "name" in update_data:
        name = (update_data["name"] or "").strip()
        if not name:
            raise HTTPException(status_code=400, detail="Project name cannot be empty")
        update_data["name"] = name
    if "client_id" in update_data:
        client = _resolve_client(db, ctx, update_data["client_id"])
        update_data["client_name"] = client.name if client else None
    if "workflow_id" in update_data:
        _resolve_workflow(db, ctx, update_data["workflow_id"])
    for field in ("status", "color"):
        if field in update_data and update_data[field] is None:
            update_data.pop(field)

    project = project_repo.update_project(db, project, update_data)
    log(
        db,
        action=AuditAction.PROJECT_UPDATE,
        status=AuditStatus.SUCCESS,
        target_type="project",
        target_id=project.id,
        actor_user_id=ctx.user_id,
        organization_id=ctx.organization_id,
        metadata={"fields": sorted(update_data.keys())},
    )
    return {"project": schemas.Project.model_validate(project)}


@router.delete("/{project_id}")
def delete_project(
    project_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    project = _get_project_or_404(db, ctx, project_id)
    ensure_creator_or_admin(ctx, project.created_by, "You do not have permission to delete this project")
    name = project.name
    detached = project_repo.delete_project(db, project)
    log(
        db,
        action=AuditAction.PROJECT_DELETE,
        status=AuditStatus.SUCCESS,
        target_type="project",
        target_id=project_id,
        actor_user_id=ctx.user_id,
        organization_id=ctx.organization_id,
        metadata={"name": name, "detached_mockups": detached},
    )
    return {"success": True, "detached_mockups": detached}


@router.get("/{project_id}/mockups")
def list_project_mockups(
    project_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    project = _get_project_or_404(db, ctx, project_id)
    mockups = project_repo.list_project_mockups(db, project.id)
    return {"mockups": [schemas.Mockup.model_validate(m) for m in mockups]}


# === Stage reviewers ===

@router.get("/{project_id}/reviewers")
def list_reviewers(
    project_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    project = _get_project_or_404(db, ctx, project_id)
    workflow = workflow_repo.get_workflow(db, ctx.organization_id, project.workflow_id) if project.workflow_id else None
    reviewers = project_repo.list_reviewers(db, project.id)

    by_stage = {}
    for reviewer in reviewers:
        by_stage.setdefault(reviewer.stage_order, []).append(schemas.StageReviewer.model_validate(reviewer))
    stages = []
    for stage in (workflow.stages if workflow else []) or []:
        stages.append({
            "stage_order": stage["order"],
            "stage_name": stage.get("name"),
            "stage_color": stage.get("color"),
            "reviewers": by_stage.get(stage["order"], []),
        })
    return {
        "reviewers": [schemas.StageReviewer.model_validate(r) for r in reviewers],
        "stages": stages,
    }


@router.post("/{project_id}/reviewers", status_code=status.HTTP_201_CREATED)
def add_reviewer(
    project_id: uuid.UUID,
    payload: schemas.StageReviewerCreate,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    project = _get_project_or_404(db, ctx, project_id)
    ensure_creator_or_admin(ctx, project.created_by, "You do not have permission to edit this project")
    if not project.workflow_id:
        raise HTTPException(status_code=400, detail="Project does not have a workflow assigned")
    workflow = _resolve_workflow(db, ctx, project.workflow_id)
    if workflow.get_stage(payload.stage_order) is None:
        raise HTTPException(
            status_code=400,
            detail=f"Stage {payload.stage_order} does not exist in this project's workflow",
        )
    if not org_repo.get_membership(db, ctx.organization_id, payload.user_id):
        raise HTTPException(status_code=400, detail="User is not a member of this organization")
    if project_repo.reviewer_exists(db, project.id, payload.stage_order, payload.user_id):
        raise HTTPException(status_code=400, detail="User is already a reviewer for this stage")

    if payload.user_email is None or payload.user_image_url is None:
        member = db.get(models.User, payload.user_id)
        payload = payload.model_copy(update={
            "user_email": payload.user_email or (member.email if member else None),
            "user_image_url": payload.user_image_url or (member.image_url if member else None),
        })

    reviewer = project_repo.add_reviewer(db, project.id, payload, ctx.user_id)
    log(
        db,
        action=AuditAction.REVIEWER_ADD,
        status=AuditStatus.SUCCESS,
        target_type="project",
        target_id=project.id,
        actor_user_id=ctx.user_id,
        organization_id=ctx.organization_id,
        metadata={"user_id": str(payload.user_id), "stage_order": payload.stage_order},
    )
    return {"reviewer": schemas.StageReviewer.model_validate(reviewer)}


@router.delete("/{project_id}/reviewers")
def remove_reviewer(
    project_id: uuid.UUID,
    reviewer_id: Optional[uuid.UUID] = Query(default=None),
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    project = _get_project_or_404(db, ctx, project_id)
    ensure_creator_or_admin(ctx, project.created_by, "You do not have permission to edit this project")
    if reviewer_id is None:
        raise HTTPException(status_code=400, detail="reviewer_id query parameter is required")
    reviewer = project_repo.get_reviewer(db, project.id, reviewer_id)
    if not reviewer:
        raise HTTPException(status_code=404, detail="Reviewer not found")
    metadata = {"user_id": str(reviewer.user_id), "stage_order": reviewer.stage_order}
    project_repo.delete_reviewer(db, reviewer)
    log(
        db,
        action=AuditAction.REVIEWER_REMOVE,
        status=AuditStatus.SUCCESS,
        target_type="project",
        target_id=project.id,
        actor_user_id=ctx.user_id,
        organization_id=ctx.organization_id,
        metadata=metadata,
    )
    return {"success": True}
