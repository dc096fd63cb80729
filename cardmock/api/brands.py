"""
Brands API endpoints.

Brands carry logo variants, colors and fonts. ``GET /brandfetch`` looks up
brand data for a domain so the UI can prefill a new brand.
"""
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cardmock.db.database import get_db
from cardmock.db import schemas
from cardmock.db.repositories import brands as brand_repo
from cardmock.db.repositories import clients as client_repo
from cardmock.api.deps import get_org_context, get_current_user_context, OrgContext
from cardmock.api.permissions import client_filter, ensure_client_access, get_assigned_client_id
from cardmock.audit import log, AuditAction, AuditStatus
from cardmock.services.brandfetch_client import BrandfetchError, get_brandfetch_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/brands", tags=["brands"])
brandfetch_router = APIRouter(tags=["brands"])


def _get_brand_or_404(db: Session, ctx: OrgContext, brand_id: uuid.UUID):
    brand = brand_repo.get_brand(db, ctx.organization_id, brand_id)
    if not brand:
        raise HTTPException(status_code=404, detail="Brand not found")
    return brand


def _validate_client(db: Session, ctx: OrgContext, client_id: Optional[uuid.UUID]):
    if client_id is not None and not client_repo.get_client(db, ctx.organization_id, client_id):
        raise HTTPException(status_code=400, detail="Client not found")


@router.get("/")
def list_brands(
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    restricted, client_id = client_filter(db, ctx)
    if restricted and client_id is None:
        return {"brands": []}
    brands = brand_repo.list_brands(db, ctx.organization_id, client_id=client_id)
    return {"brands": [schemas.Brand.model_validate(b) for b in brands]}


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_brand(
    payload: schemas.BrandCreate,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    if ctx.is_client:
        assigned = get_assigned_client_id(db, ctx)
        if assigned is None:
            raise HTTPException(status_code=403, detail="Client assignment required")
        if payload.client_id is not None and payload.client_id != assigned:
            raise HTTPException(
                status_code=403,
                detail="Access denied: Brand does not belong to your assigned client",
            )
        payload = payload.model_copy(update={"client_id": assigned})
    _validate_client(db, ctx, payload.client_id)

    try:
        brand = brand_repo.create_brand(db, ctx.organization_id, payload, ctx.user_id)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Brand conflicts with an existing record")

    log(
        db,
        action=AuditAction.BRAND_CREATE,
        status=AuditStatus.SUCCESS,
        target_type="brand",
        target_id=brand.id,
        actor_user_id=ctx.user_id,
        organization_id=ctx.organization_id,
        metadata={"company_name": brand.company_name, "domain": brand.domain},
    )
    return {"brand": schemas.Brand.model_validate(brand)}


@router.get("/{brand_id}")
def get_brand(
    brand_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    brand = _get_brand_or_404(db, ctx, brand_id)
    ensure_client_access(db, ctx, brand.client_id, "Brand")
    return {"brand": schemas.Brand.model_validate(brand)}


@router.patch("/{brand_id}")
def update_brand(
    brand_id: uuid.UUID,
    payload: schemas.BrandUpdate,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    brand = _get_brand_or_404(db, ctx, brand_id)
    ensure_client_access(db, ctx, brand.client_id, "Brand")
    update_data = payload.model_dump(exclude_unset=True)

    if "client_id" in update_data:
        if ctx.is_client and update_data["client_id"] != brand.client_id:
            raise HTTPException(status_code=403, detail="Client users cannot change the brand's client")
        _validate_client(db, ctx, update_data["client_id"])
    for field in ("company_name", "domain"):
        if field in update_data:
            value = (update_data[field] or "").strip()
            if not value:
                raise HTTPException(status_code=400, detail=f"{field} cannot be empty")
            update_data[field] = value
    if update_data.get("primary_logo_variant_id") is not None:
        if update_data["primary_logo_variant_id"] not in {v.id for v in brand.logo_variants}:
            raise HTTPException(status_code=400, detail="Logo variant does not belong to this brand")

    brand = brand_repo.update_brand(db, brand, update_data)
    log(
        db,
        action=AuditAction.BRAND_UPDATE,
        status=AuditStatus.SUCCESS,
        target_type="brand",
        target_id=brand.id,
        actor_user_id=ctx.user_id,
        organization_id=ctx.organization_id,
        metadata={"fields": sorted(update_data.keys())},
    )
    return {"brand": schemas.Brand.model_validate(brand)}


@router.delete("/{brand_id}")
def delete_brand(
    brand_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    brand = _get_brand_or_404(db, ctx, brand_id)
    ensure_client_access(db, ctx, brand.client_id, "Brand")
    company_name = brand.company_name
    brand_repo.delete_brand(db, brand)
    log(
        db,
        action=AuditAction.BRAND_DELETE,
        status=AuditStatus.SUCCESS,
        target_type="brand",
        target_id=brand_id,
        actor_user_id=ctx.user_id,
        organization_id=ctx.organization_id,
        metadata={"company_name": company_name},
    )
    return {"success": True}


@router.post("/{brand_id}/logos", status_code=status.HTTP_201_CREATED)
def add_logo(
    brand_id: uuid.UUID,
    payload: schemas.LogoVariantCreate,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    """Attach an uploaded logo; the first logo of a brand becomes its primary."""
    brand = _get_brand_or_404(db, ctx, brand_id)
    ensure_client_access(db, ctx, brand.client_id, "Brand")
    if not payload.logo_url.strip():
        raise HTTPException(status_code=400, detail="Logo URL is required")
    variant = brand_repo.add_logo_variant(db, brand, payload)
    log(
        db,
        action=AuditAction.BRAND_UPDATE,
        status=AuditStatus.SUCCESS,
        target_type="brand",
        target_id=brand.id,
        actor_user_id=ctx.user_id,
        organization_id=ctx.organization_id,
        metadata={"logo_variant_id": str(variant.id), "uploaded": True},
    )
    return {"logo": schemas.LogoVariant.model_validate(variant)}


@brandfetch_router.get("/brandfetch")
def brandfetch_lookup(
    domain: Optional[str] = Query(default=None),
    user_context = Depends(get_current_user_context),
):
    try:
        return get_brandfetch_client().fetch_brand(domain or "")
    except BrandfetchError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
