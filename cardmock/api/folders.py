"""
Folders API endpoints.

Folders are personal unless shared with the organization; nesting is capped
at five levels.
"""
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from cardmock.db.database import get_db
from cardmock.db import schemas
from cardmock.db.repositories import folders as folder_repo
from cardmock.api.deps import get_org_context, OrgContext

router = APIRouter(prefix="/folders", tags=["folders"])

DEPTH_EXCEEDED = f"Maximum folder nesting depth ({folder_repo.MAX_FOLDER_DEPTH} levels) exceeded"
DUPLICATE_NAME = "A folder with this name already exists in this location"


def _get_folder_or_404(db: Session, ctx: OrgContext, folder_id: uuid.UUID):
    folder = folder_repo.get_folder(db, ctx.organization_id, folder_id)
    if not folder:
        raise HTTPException(status_code=404, detail="Folder not found")
    return folder


def _check_parent(db: Session, ctx: OrgContext, parent_id, moving_id=None):
    if parent_id is None:
        return
    parent = folder_repo.get_folder(db, ctx.organization_id, parent_id)
    if not parent or (parent.created_by != ctx.user_id and not parent.is_org_shared):
        raise HTTPException(status_code=400, detail="Parent folder not found")
    if moving_id is not None and folder_repo.is_descendant(db, moving_id, parent_id):
        raise HTTPException(status_code=400, detail="A folder cannot be moved inside itself")
    if folder_repo.folder_depth(db, parent_id) + 1 > folder_repo.MAX_FOLDER_DEPTH:
        raise HTTPException(status_code=400, detail=DEPTH_EXCEEDED)


@router.get("/")
def list_folders(
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    folders = folder_repo.list_folders(db, ctx.organization_id, ctx.user_id)
    return {"folders": [schemas.Folder.model_validate(f) for f in folders]}


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_folder(
    payload: schemas.FolderCreate,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    if payload.is_org_shared and not ctx.is_admin:
        raise HTTPException(status_code=403, detail="Only admins can change folder sharing settings")
    _check_parent(db, ctx, payload.parent_folder_id)
    if folder_repo.name_exists(db, ctx.organization_id, ctx.user_id, payload.parent_folder_id, payload.name):
        raise HTTPException(status_code=400, detail=DUPLICATE_NAME)
    folder = folder_repo.create_folder(db, ctx.organization_id, payload, ctx.user_id)
    return {"folder": schemas.Folder.model_validate(folder)}


@router.patch("/{folder_id}")
def update_folder(
    folder_id: uuid.UUID,
    payload: schemas.FolderUpdate,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    folder = _get_folder_or_404(db, ctx, folder_id)
    if folder.created_by != ctx.user_id and not (ctx.is_admin and folder.is_org_shared):
        raise HTTPException(status_code=403, detail="You do not have permission to edit this folder")

    update_data = payload.model_dump(exclude_unset=True)
    if "is_org_shared" in update_data:
        if not ctx.is_admin:
            raise HTTPException(status_code=403, detail="Only admins can change folder sharing settings")
        update_data["is_org_shared"] = bool(update_data["is_org_shared"])
    if "name" in update_data and update_data["name"] is None:
        raise HTTPException(status_code=400, detail="Folder name is required")

    parent_id = update_data.get("parent_folder_id", folder.parent_folder_id)
    if "parent_folder_id" in update_data:
        _check_parent(db, ctx, parent_id, moving_id=folder.id)
    name = update_data.get("name", folder.name)
    if ("name" in update_data or "parent_folder_id" in update_data) and folder_repo.name_exists(
        db, ctx.organization_id, folder.created_by, parent_id, name, exclude_id=folder.id
    ):
        raise HTTPException(status_code=400, detail=DUPLICATE_NAME)

    folder = folder_repo.update_folder(db, folder, update_data)
    return {"folder": schemas.Folder.model_validate(folder)}


@router.delete("/{folder_id}")
def delete_folder(
    folder_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    folder = _get_folder_or_404(db, ctx, folder_id)
    if folder.created_by != ctx.user_id and not (ctx.is_admin and folder.is_org_shared):
        raise HTTPException(status_code=403, detail="You do not have permission to delete this folder")
    detached = folder_repo.delete_folder(db, folder)
    return {"success": True, "detached_mockups": detached}
