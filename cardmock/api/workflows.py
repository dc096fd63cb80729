"""
Workflows API endpoints.

A workflow is an ordered list of review stages shared by the organization's
projects. Only admins create or change workflows.
"""
import uuid
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from cardmock.db.database import get_db
from cardmock.db import models, schemas
from cardmock.db.repositories import workflows as workflow_repo
from cardmock.api.deps import get_org_context, OrgContext
from cardmock.api.permissions import require_admin
from cardmock.audit import log, AuditAction, AuditStatus

router = APIRouter(prefix="/workflows", tags=["workflows"])

STAGE_COLORS = ['yellow', 'green', 'blue', 'purple', 'red', 'orange', 'gray']


def validate_stages(stages: List[schemas.WorkflowStageIn]) -> List[Dict[str, Any]]:
    """Return normalized stages or raise 400 describing the first problem."""
    if not stages:
        raise HTTPException(status_code=400, detail="Workflow must have at least one stage")
    normalized = []
    for i, stage in enumerate(stages):
        if not stage.name.strip():
            raise HTTPException(status_code=400, detail=f"Stage {i + 1} must have a name")
        if stage.order != i + 1:
            raise HTTPException(status_code=400, detail="Stage orders must be sequential starting from 1")
        if stage.color not in STAGE_COLORS:
            raise HTTPException(
                status_code=400,
                detail=f"Stage {i + 1} has invalid color. Must be one of: {', '.join(STAGE_COLORS)}",
            )
        normalized.append({'order': i + 1, 'name': stage.name.strip(), 'color': stage.color})
    return normalized


def _serialize(db: Session, workflow: models.Workflow):
    data = schemas.Workflow.model_validate(workflow).model_dump(mode="json")
    data["project_count"] = workflow_repo.project_count(db, workflow.id)
    return data


def _get_workflow_or_404(db: Session, ctx: OrgContext, workflow_id: uuid.UUID):
    workflow = workflow_repo.get_workflow(db, ctx.organization_id, workflow_id)
    if not workflow:
        raise HTTPException(status_code=404, detail="Workflow not found")
    return workflow


@router.get("/")
def list_workflows(
    include_archived: bool = Query(default=False),
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    workflows = workflow_repo.list_workflows(db, ctx.organization_id, include_archived=include_archived)
    return {"workflows": [_serialize(db, w) for w in workflows]}


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_workflow(
    payload: schemas.WorkflowCreate,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    require_admin(ctx)
    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Workflow name is required")
    stages = validate_stages(payload.stages)

    workflow = workflow_repo.create_workflow(
        db,
        ctx.organization_id,
        name=name,
        description=payload.description or None,
        stages=stages,
        is_default=payload.is_default,
        user_id=ctx.user_id,
    )
    log(
        db,
        action=AuditAction.WORKFLOW_CREATE,
        status=AuditStatus.SUCCESS,
        target_type="workflow",
        target_id=workflow.id,
        actor_user_id=ctx.user_id,
        organization_id=ctx.organization_id,
        metadata={"name": workflow.name, "stage_count": workflow.stage_count},
    )
    return {"workflow": _serialize(db, workflow)}


@router.get("/{workflow_id}")
def get_workflow(
    workflow_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    return {"workflow": _serialize(db, _get_workflow_or_404(db, ctx, workflow_id))}


@router.patch("/{workflow_id}")
def update_workflow(
    workflow_id: uuid.UUID,
    payload: schemas.WorkflowUpdate,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    require_admin(ctx)
    workflow = _get_workflow_or_404(db, ctx, workflow_id)

    update_data: Dict[str, Any] = {}
    fields = payload.model_fields_set
    if "name" in fields:
        name = (payload.name or "").strip()
        if not name:
            raise HTTPException(status_code=400, detail="Workflow name cannot be empty")
        update_data["name"] = name
    if "description" in fields:
        update_data["description"] = payload.description or None
    if "stages" in fields:
        update_data["stages"] = validate_stages(payload.stages or [])
    for flag in ("is_default", "is_archived"):
        if flag in fields:
            update_data[flag] = bool(getattr(payload, flag))

    workflow = workflow_repo.update_workflow(db, workflow, update_data)
    log(
        db,
        action=AuditAction.WORKFLOW_UPDATE,
        status=AuditStatus.SUCCESS,
        target_type="workflow",
        target_id=workflow.id,
        actor_user_id=ctx.user_id,
        organization_id=ctx.organization_id,
        metadata={"fields": sorted(update_data.keys())},
    )
    return {"workflow": _serialize(db, workflow)}


@router.delete("/{workflow_id}")
def delete_workflow(
    workflow_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    require_admin(ctx)
    workflow = _get_workflow_or_404(db, ctx, workflow_id)
    count = workflow_repo.project_count(db, workflow.id)
    if count > 0:
        raise HTTPException(
            status_code=400,
            detail=(
                f"Cannot delete workflow: {count} project(s) are using this workflow. "
                "Please archive it instead or reassign the projects first."
            ),
        )
    name = workflow.name
    workflow_repo.delete_workflow(db, workflow)
    log(
        db,
        action=AuditAction.WORKFLOW_DELETE,
        status=AuditStatus.SUCCESS,
        target_type="workflow",
        target_id=workflow_id,
        actor_user_id=ctx.user_id,
        organization_id=ctx.organization_id,
        metadata={"name": name},
    )
    return {"success": True}
