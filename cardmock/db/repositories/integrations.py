"""
Integration credential and event repository functions.
"""
from __future__ import annotations

import uuid
from typing import Any, Dict, Optional
from sqlalchemy.orm import Session

from cardmock.db import models


def get_credential(db: Session, integration_type: str, user_id: uuid.UUID, organization_id: uuid.UUID):
    return (
        db.query(models.IntegrationCredential)
        .filter(
            models.IntegrationCredential.integration_type == integration_type,
            models.IntegrationCredential.user_id == user_id,
            models.IntegrationCredential.organization_id == organization_id,
        )
        .first()
    )


def upsert_credential(
    db: Session,
    integration_type: str,
    user_id: uuid.UUID,
    organization_id: uuid.UUID,
    access_token: str,
    account_label: Optional[str] = None,
):
    credential = get_credential(db, integration_type, user_id, organization_id)
    if credential:
        credential.access_token = access_token
        credential.account_label = account_label
    else:
        credential = models.IntegrationCredential(
            integration_type=integration_type,
            user_id=user_id,
            organization_id=organization_id,
            access_token=access_token,
            account_label=account_label,
        )
        db.add(credential)
    db.commit()
    db.refresh(credential)
    return credential


def delete_credential(db: Session, integration_type: str, user_id: uuid.UUID, organization_id: uuid.UUID) -> bool:
    deleted = (
        db.query(models.IntegrationCredential)
        .filter(
            models.IntegrationCredential.integration_type == integration_type,
            models.IntegrationCredential.user_id == user_id,
            models.IntegrationCredential.organization_id == organization_id,
        )
        .delete(synchronize_session=False)
    )
    db.commit()
    return bool(deleted)


def record_event(
    db: Session,
    integration_type: str,
    event_type: str,
    *,
    organization_id: Optional[uuid.UUID] = None,
    payload: Optional[Dict[str, Any]] = None,
    status: str = 'success',
    error_message: Optional[str] = None,
):
    event = models.IntegrationEvent(
        integration_type=integration_type,
        organization_id=organization_id,
        event_type=event_type,
        payload_json=payload,
        status=status,
        error_message=error_message,
    )
    db.add(event)
    db.commit()
    db.refresh(event)
    return event
