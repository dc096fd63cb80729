"""
Figma integration endpoints: per-user connection and frame import.

Imported frames become mockups carrying ``figma_metadata`` so they can be
traced back to their source file and node.
"""
import logging
import os
import uuid
from typing import Any, Callable, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from cardmock.db.database import get_db
from cardmock.db import schemas
from cardmock.db.repositories import integrations as integration_repo
from cardmock.db.repositories import folders as folder_repo
from cardmock.db.repositories import mockups as mockup_repo
from cardmock.db.repositories import projects as project_repo
from cardmock.api.deps import get_org_context, OrgContext
from cardmock.api.mockups import start_workflow
from cardmock.api.permissions import ensure_client_access, require_write
from cardmock.audit import log, AuditAction, AuditStatus
from cardmock.services.figma_client import FigmaClient, FigmaError, file_url
from cardmock.utils.feature_flags import figma_import_enabled

logger = logging.getLogger(__name__)

FIGMA = "figma"


def require_figma_import():
    if not figma_import_enabled():
        raise HTTPException(status_code=404, detail="Not found")


def get_figma_client_factory() -> Callable[[str], FigmaClient]:
    return FigmaClient


router = APIRouter(
    prefix="/integrations/figma",
    tags=["integrations"],
    dependencies=[Depends(require_figma_import)],
)


def _resolve_token(db: Session, ctx: OrgContext) -> Optional[str]:
    credential = integration_repo.get_credential(db, FIGMA, ctx.user_id, ctx.organization_id)
    if credential:
        return credential.access_token
    return os.getenv("FIGMA_ACCESS_TOKEN") or None


def _client_for(db: Session, ctx: OrgContext, factory: Callable[[str], FigmaClient]) -> FigmaClient:
    token = _resolve_token(db, ctx)
    if not token:
        raise HTTPException(status_code=400, detail="Figma is not connected")
    return factory(token)


@router.post("/connect")
def connect_figma(
    payload: dict,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    require_write(ctx)
    token = str(payload.get("access_token") or "").strip()
    if not token:
        raise HTTPException(status_code=400, detail="access_token is required")
    label = payload.get("account_label")
    credential = integration_repo.upsert_credential(
        db, FIGMA, ctx.user_id, ctx.organization_id, token, account_label=label
    )
    log(
        db,
        action=AuditAction.FIGMA_CONNECT,
        status=AuditStatus.SUCCESS,
        target_type="integration",
        target_id=credential.id,
        actor_user_id=ctx.user_id,
        organization_id=ctx.organization_id,
    )
    return {"connected": True, "account_label": credential.account_label}


@router.delete("/disconnect")
def disconnect_figma(
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    removed = integration_repo.delete_credential(db, FIGMA, ctx.user_id, ctx.organization_id)
    if removed:
        log(
            db,
            action=AuditAction.FIGMA_DISCONNECT,
            status=AuditStatus.SUCCESS,
            target_type="integration",
            actor_user_id=ctx.user_id,
            organization_id=ctx.organization_id,
        )
    return {"connected": False, "removed": removed}


@router.get("/status")
def figma_status(
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    credential = integration_repo.get_credential(db, FIGMA, ctx.user_id, ctx.organization_id)
    if credential:
        return {
            "connected": True,
            "source": "user",
            "account_label": credential.account_label,
            "connected_at": credential.created_at.isoformat() if credential.created_at else None,
        }
    if os.getenv("FIGMA_ACCESS_TOKEN"):
        return {"connected": True, "source": "environment", "account_label": None, "connected_at": None}
    return {"connected": False, "source": None, "account_label": None, "connected_at": None}


@router.get("/files/{file_key}/frames")
def list_frames(
    file_key: str,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
    figma_factory: Callable[[str], FigmaClient] = Depends(get_figma_client_factory),
):
    client = _client_for(db, ctx, figma_factory)
    try:
        return client.list_frames(file_key)
    except FigmaError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)


def _validate_targets(db: Session, ctx: OrgContext, project_id, folder_id):
    project = None
    if project_id is not None:
        project = project_repo.get_project(db, ctx.organization_id, project_id)
        if not project:
            raise HTTPException(status_code=400, detail="Project not found")
        ensure_client_access(db, ctx, project.client_id, "Project")
    if folder_id is not None and not folder_repo.get_folder(db, ctx.organization_id, folder_id):
        raise HTTPException(status_code=400, detail="Folder not found")
    return project


def _optional_uuid(payload: dict, key: str) -> Optional[uuid.UUID]:
    value = payload.get(key)
    if not value:
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {key}")


@router.post("/import", status_code=status.HTTP_201_CREATED)
def import_frames(
    payload: dict,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
    figma_factory: Callable[[str], FigmaClient] = Depends(get_figma_client_factory),
):
    require_write(ctx)
    file_key = str(payload.get("fileKey") or "").strip()
    node_ids = payload.get("nodeIds") or []
    if not file_key or not isinstance(node_ids, list) or not node_ids:
        raise HTTPException(status_code=400, detail="fileKey and nodeIds are required")
    project_id = _optional_uuid(payload, "projectId")
    folder_id = _optional_uuid(payload, "folderId")
    project = _validate_targets(db, ctx, project_id, folder_id)

    client = _client_for(db, ctx, figma_factory)
    try:
        file_info = client.list_frames(file_key)
    except FigmaError as e:
        integration_repo.record_event(
            db,
            FIGMA,
            "import",
            organization_id=ctx.organization_id,
            payload={"file_key": file_key, "node_ids": node_ids},
            status="failed",
            error_message=e.detail,
        )
        raise HTTPException(status_code=e.status_code, detail=e.detail)

    frame_names = {f["node_id"]: f["name"] for f in file_info.get("frames", [])}
    imported: List[Dict[str, Any]] = []
    errors: List[Dict[str, str]] = []
    for node_id in node_ids:
        node_id = str(node_id)
        try:
            image_url = client.export_frame(file_key, node_id)
            if not image_url:
                raise FigmaError(502, "Figma returned no image for this frame")
        except FigmaError as e:
            logger.warning(f"Figma export of {file_key}:{node_id} failed: {e.detail}")
            errors.append({"node_id": node_id, "error": e.detail})
            continue

        mockup = mockup_repo.create_mockup(
            db,
            ctx.organization_id,
            schemas.MockupCreate(
                mockup_name=(frame_names.get(node_id) or f"Figma frame {node_id}")[:200],
                project_id=project_id,
                folder_id=folder_id,
                mockup_image_url=image_url,
            ),
            ctx.user_id,
            figma_metadata={
                "file_id": file_key,
                "node_ids": [node_id],
                "file_url": file_url(file_key),
                "version_key": file_info.get("version"),
                "last_modified": file_info.get("last_modified"),
            },
        )
        start_workflow(db, mockup, project)
        imported.append(schemas.Mockup.model_validate(mockup).model_dump(mode="json"))

    if not errors:
        outcome = "success"
    elif imported:
        outcome = "partial"
    else:
        outcome = "failed"
    integration_repo.record_event(
        db,
        FIGMA,
        "import",
        organization_id=ctx.organization_id,
        payload={
            "file_key": file_key,
            "node_ids": [str(n) for n in node_ids],
            "imported": len(imported),
            "failed": len(errors),
        },
        status=outcome,
        error_message="; ".join(e["error"] for e in errors) or None,
    )
    log(
        db,
        action=AuditAction.FIGMA_IMPORT,
        status=AuditStatus.SUCCESS if imported else AuditStatus.FAILURE,
        target_type="integration",
        actor_user_id=ctx.user_id,
        organization_id=ctx.organization_id,
        metadata={"file_key": file_key, "imported": len(imported), "failed": len(errors)},
    )
    return {"mockups": imported, "errors": errors, "file_name": file_info.get("name")}
