"""
Contracts API endpoints.

Contracts belong to a client, carry versioned documents, and can be sent to
DocuSign for signature. Client users only see their own client's contracts.
"""
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cardmock.db.database import get_db
from cardmock.db import models, schemas
from cardmock.db.repositories import contracts as contract_repo
from cardmock.db.repositories import clients as client_repo
from cardmock.db.repositories import projects as project_repo
from cardmock.api.deps import get_org_context, OrgContext
from cardmock.api.permissions import client_filter, ensure_client_access, require_write
from cardmock.audit import log, AuditAction, AuditStatus
from cardmock.services.docusign_service import DocuSignError, DocuSignService, get_docusign_service
from cardmock.utils.feature_flags import contracts_enabled

logger = logging.getLogger(__name__)


def require_contracts():
    if not contracts_enabled():
        raise HTTPException(status_code=404, detail="Not found")


router = APIRouter(prefix="/contracts", tags=["contracts"], dependencies=[Depends(require_contracts)])

NUMBER_ATTEMPTS = 3


def _get_contract_or_404(db: Session, ctx: OrgContext, contract_id: uuid.UUID) -> models.Contract:
    contract = contract_repo.get_contract(db, ctx.organization_id, contract_id)
    if not contract:
        raise HTTPException(status_code=404, detail="Contract not found")
    ensure_client_access(db, ctx, contract.client_id, "Contract")
    return contract


def _validate_dates(start_date, end_date):
    if start_date and end_date and end_date < start_date:
        raise HTTPException(status_code=400, detail="end_date cannot be before start_date")


def _validate_project(db: Session, ctx: OrgContext, project_id: Optional[uuid.UUID]):
    if project_id is not None and not project_repo.get_project(db, ctx.organization_id, project_id):
        raise HTTPException(status_code=400, detail="Project not found")


def _audit(db: Session, ctx: OrgContext, action: AuditAction, contract_id, metadata=None):
    log(
        db,
        action=action,
        status=AuditStatus.SUCCESS,
        target_type="contract",
        target_id=contract_id,
        actor_user_id=ctx.user_id,
        organization_id=ctx.organization_id,
        metadata=metadata,
    )


@router.get("/")
def list_contracts(
    client_id: Optional[uuid.UUID] = Query(default=None),
    status_filter: Optional[str] = Query(default=None, alias="status"),
    contract_type: Optional[str] = Query(default=None, alias="type"),
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    restricted, assigned_client_id = client_filter(db, ctx)
    if restricted:
        if assigned_client_id is None or (client_id is not None and client_id != assigned_client_id):
            return {"contracts": []}
        client_id = assigned_client_id
    contracts = contract_repo.list_contracts(
        db, ctx.organization_id, client_id=client_id, status=status_filter, contract_type=contract_type
    )
    return {"contracts": [schemas.Contract.model_validate(c) for c in contracts]}


def _create_numbered(db: Session, ctx: OrgContext, payload: schemas.ContractCreate) -> models.Contract:
    # A concurrent create can claim the same number between read and insert
    for _ in range(NUMBER_ATTEMPTS):
        number = contract_repo.next_contract_number(db, ctx.organization_id)
        try:
            return contract_repo.create_contract(db, ctx.organization_id, payload, number, ctx.user_id)
        except IntegrityError:
            db.rollback()
            logger.warning(f"Contract number {number} was taken, retrying")
    raise HTTPException(status_code=409, detail="Could not allocate a contract number, please retry")


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_contract(
    payload: schemas.ContractCreate,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    require_write(ctx)
    if payload.client_id is None:
        raise HTTPException(status_code=400, detail="client_id is required")
    if not client_repo.get_client(db, ctx.organization_id, payload.client_id):
        raise HTTPException(status_code=400, detail="Client not found or does not belong to this organization")
    _validate_project(db, ctx, payload.project_id)
    _validate_dates(payload.start_date, payload.end_date)

    if payload.type == "amendment" and payload.parent_contract_id is None:
        raise HTTPException(status_code=400, detail="Amendments require a parent contract")
    if payload.parent_contract_id is not None:
        parent = contract_repo.get_contract(db, ctx.organization_id, payload.parent_contract_id)
        if not parent:
            raise HTTPException(status_code=400, detail="Parent contract not found")
        if parent.client_id != payload.client_id:
            raise HTTPException(status_code=400, detail="Parent contract belongs to a different client")

    number = (payload.contract_number or "").strip()
    if number:
        if contract_repo.number_exists(db, ctx.organization_id, number):
            raise HTTPException(status_code=409, detail=f"Contract number {number} already exists")
        try:
            contract = contract_repo.create_contract(db, ctx.organization_id, payload, number, ctx.user_id)
        except IntegrityError:
            db.rollback()
            raise HTTPException(status_code=409, detail=f"Contract number {number} already exists")
    else:
        contract = _create_numbered(db, ctx, payload)
        number = contract.contract_number

    _audit(db, ctx, AuditAction.CONTRACT_CREATE, contract.id, {"contract_number": number, "type": contract.type})
    return {"contract": schemas.Contract.model_validate(contract)}


@router.get("/{contract_id}")
def get_contract(
    contract_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    contract = _get_contract_or_404(db, ctx, contract_id)
    documents = contract_repo.list_documents(db, contract.id)
    current = next((d for d in documents if d.is_current), None)
    return {
        "contract": {
            **schemas.Contract.model_validate(contract).model_dump(mode="json"),
            "document_count": len(documents),
            "current_document": (
                schemas.ContractDocument.model_validate(current).model_dump(mode="json") if current else None
            ),
        }
    }


@router.patch("/{contract_id}")
def update_contract(
    contract_id: uuid.UUID,
    payload: schemas.ContractUpdate,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    require_write(ctx)
    contract = _get_contract_or_404(db, ctx, contract_id)
    update_data = payload.model_dump(exclude_unset=True)
    if "status" in update_data and update_data["status"] is None:
        update_data.pop("status")
    if "project_id" in update_data:
        _validate_project(db, ctx, update_data["project_id"])
    _validate_dates(
        update_data.get("start_date", contract.start_date),
        update_data.get("end_date", contract.end_date),
    )
    contract = contract_repo.update_contract(db, contract, update_data)
    _audit(db, ctx, AuditAction.CONTRACT_UPDATE, contract.id, {"fields": sorted(update_data.keys())})
    return {"contract": schemas.Contract.model_validate(contract)}


@router.delete("/{contract_id}")
def delete_contract(
    contract_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    require_write(ctx)
    contract = _get_contract_or_404(db, ctx, contract_id)
    number = contract.contract_number
    contract_repo.delete_contract(db, contract)
    _audit(db, ctx, AuditAction.CONTRACT_DELETE, contract_id, {"contract_number": number})
    return {"success": True}


# === Documents ===

@router.get("/{contract_id}/documents")
def list_documents(
    contract_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    contract = _get_contract_or_404(db, ctx, contract_id)
    documents = contract_repo.list_documents(db, contract.id)
    return {"documents": [schemas.ContractDocument.model_validate(d) for d in documents]}


@router.post("/{contract_id}/documents", status_code=status.HTTP_201_CREATED)
def add_document(
    contract_id: uuid.UUID,
    payload: schemas.ContractDocumentCreate,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    require_write(ctx)
    contract = _get_contract_or_404(db, ctx, contract_id)
    document = contract_repo.add_document(db, contract, payload, ctx.user_id)
    _audit(
        db,
        ctx,
        AuditAction.CONTRACT_DOCUMENT_ADD,
        contract.id,
        {"document_id": str(document.id), "version_number": document.version_number},
    )
    return {"document": schemas.ContractDocument.model_validate(document)}


@router.post("/{contract_id}/documents/{document_id}/send-for-signature")
def send_for_signature(
    contract_id: uuid.UUID,
    document_id: uuid.UUID,
    payload: schemas.SendForSignature,
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
    docusign: DocuSignService = Depends(get_docusign_service),
):
    require_write(ctx)
    contract = _get_contract_or_404(db, ctx, contract_id)
    document = contract_repo.get_document(db, contract.id, document_id)
    if not document:
        raise HTTPException(status_code=404, detail="Document not found")
    if document.docu_sign_envelope_id:
        raise HTTPException(status_code=400, detail="Document has already been sent for signature")
    if contract.status in ("signed", "cancelled"):
        raise HTTPException(status_code=400, detail=f"Cannot send a {contract.status} contract for signature")

    try:
        envelope = docusign.create_envelope(
            document_name=document.file_name,
            file_url=document.file_url,
            file_type=document.file_type,
            signers=[s.model_dump() for s in payload.signers],
            email_subject=payload.email_subject,
        )
    except DocuSignError as e:
        log(
            db,
            action=AuditAction.CONTRACT_SEND_FOR_SIGNATURE,
            status=AuditStatus.FAILURE,
            target_type="contract",
            target_id=contract.id,
            actor_user_id=ctx.user_id,
            organization_id=ctx.organization_id,
            metadata={"document_id": str(document.id), "error": e.detail},
        )
        raise HTTPException(status_code=e.status_code, detail=e.detail)

    document.docu_sign_envelope_id = envelope["envelopeId"]
    document.docu_sign_status = "sent"
    contract.status = "pending_signature"
    db.commit()
    db.refresh(document)
    db.refresh(contract)

    _audit(
        db,
        ctx,
        AuditAction.CONTRACT_SEND_FOR_SIGNATURE,
        contract.id,
        {"document_id": str(document.id), "envelope_id": document.docu_sign_envelope_id, "signers": len(payload.signers)},
    )
    return {
        "contract": schemas.Contract.model_validate(contract),
        "document": schemas.ContractDocument.model_validate(document),
        "envelope_id": document.docu_sign_envelope_id,
    }
