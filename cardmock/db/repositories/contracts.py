"""
Contract repository functions, including versioned contract documents.
"""
from __future__ import annotations

import uuid
from typing import Optional
from sqlalchemy import func
from sqlalchemy.orm import Session

from cardmock.db import schemas, models

CONTRACT_PREFIX = "CONTRACT-"


def list_contracts(
    db: Session,
    organization_id: uuid.UUID,
    *,
    client_id: Optional[uuid.UUID] = None,
    status: Optional[str] = None,
    contract_type: Optional[str] = None,
):
    query = db.query(models.Contract).filter(models.Contract.organization_id == organization_id)
    if client_id:
        query = query.filter(models.Contract.client_id == client_id)
    if status:
        query = query.filter(models.Contract.status == status)
    if contract_type:
        query = query.filter(models.Contract.type == contract_type)
    return query.order_by(models.Contract.created_at.desc()).all()


def get_contract(db: Session, organization_id: uuid.UUID, contract_id: uuid.UUID):
    return (
        db.query(models.Contract)
        .filter(models.Contract.id == contract_id, models.Contract.organization_id == organization_id)
        .first()
    )


def next_contract_number(db: Session, organization_id: uuid.UUID) -> str:
    """One past the highest ``CONTRACT-NNNNNN`` number in the organization.

    Manually entered numbers outside the pattern are ignored. Callers insert
    under the unique index and retry when a concurrent create wins the number.
    """
    rows = (
        db.query(models.Contract.contract_number)
        .filter(
            models.Contract.organization_id == organization_id,
            models.Contract.contract_number.like(f"{CONTRACT_PREFIX}%"),
        )
        .all()
    )
    highest = 0
    for (number,) in rows:
        suffix = number[len(CONTRACT_PREFIX):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return f"{CONTRACT_PREFIX}{highest + 1:06d}"


def number_exists(db: Session, organization_id: uuid.UUID, contract_number: str) -> bool:
    return (
        db.query(models.Contract.id)
        .filter(
            models.Contract.organization_id == organization_id,
            models.Contract.contract_number == contract_number,
        )
        .first()
        is not None
    )


def create_contract(
    db: Session,
    organization_id: uuid.UUID,
    contract: schemas.ContractCreate,
    contract_number: str,
    user_id: uuid.UUID,
):
    data = contract.model_dump()
    data['contract_number'] = contract_number
    db_contract = models.Contract(organization_id=organization_id, created_by=user_id, **data)
    db.add(db_contract)
    db.commit()
    db.refresh(db_contract)
    return db_contract


def update_contract(db: Session, db_contract: models.Contract, update_data: dict):
    for key, value in update_data.items():
        setattr(db_contract, key, value)
    db.commit()
    db.refresh(db_contract)
    return db_contract


def delete_contract(db: Session, db_contract: models.Contract):
    db.query(models.ContractDocument).filter(models.ContractDocument.contract_id == db_contract.id).delete(
        synchronize_session=False
    )
    db.query(models.Contract).filter(models.Contract.parent_contract_id == db_contract.id).update(
        {models.Contract.parent_contract_id: None}, synchronize_session=False
    )
    db.delete(db_contract)
    db.commit()


# === Documents ===

def list_documents(db: Session, contract_id: uuid.UUID):
    return (
        db.query(models.ContractDocument)
        .filter(models.ContractDocument.contract_id == contract_id)
        .order_by(models.ContractDocument.version_number.desc())
        .all()
    )


def get_document(db: Session, contract_id: uuid.UUID, document_id: uuid.UUID):
    return (
        db.query(models.ContractDocument)
        .filter(models.ContractDocument.id == document_id, models.ContractDocument.contract_id == contract_id)
        .first()
    )


def get_document_by_envelope(db: Session, envelope_id: str):
    return (
        db.query(models.ContractDocument)
        .filter(models.ContractDocument.docu_sign_envelope_id == envelope_id)
        .first()
    )


def add_document(db: Session, db_contract: models.Contract, document: schemas.ContractDocumentCreate, user_id: uuid.UUID):
    """Store a new document version; earlier versions stop being current."""
    latest = (
        db.query(func.max(models.ContractDocument.version_number))
        .filter(models.ContractDocument.contract_id == db_contract.id)
        .scalar()
    )
    db.query(models.ContractDocument).filter(models.ContractDocument.contract_id == db_contract.id).update(
        {models.ContractDocument.is_current: False}, synchronize_session=False
    )
    db_document = models.ContractDocument(
        contract_id=db_contract.id,
        version_number=(latest or 0) + 1,
        is_current=True,
        uploaded_by=user_id,
        **document.model_dump(),
    )
    db.add(db_document)
    db.commit()
    db.refresh(db_document)
    return db_document
