"""
Inbound webhooks from Clerk (identity sync) and DocuSign Connect.

Both endpoints are unauthenticated; requests are trusted only after
signature verification.
"""
import json
import logging
import os
from datetime import datetime, UTC

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from cardmock.db.database import get_db
from cardmock.db import models
from cardmock.db.repositories import contracts as contract_repo
from cardmock.db.repositories import integrations as integration_repo
from cardmock.audit import log, AuditAction, AuditStatus
from cardmock.services.clerk_webhooks import WebhookVerificationError, dispatch_event, verify_svix_signature
from cardmock.services.docusign_service import status_for_event, verify_connect_signature

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def _parse_json(body: bytes):
    try:
        payload = json.loads(body or b"{}")
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON body")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON body")
    return payload


@router.post("/clerk")
async def clerk_webhook(request: Request, db: Session = Depends(get_db)):
    secret = os.getenv("CLERK_WEBHOOK_SECRET")
    if not secret:
        logger.error("CLERK_WEBHOOK_SECRET is not set; rejecting Clerk webhook")
        raise HTTPException(status_code=500, detail="Webhook secret not configured")

    body = await request.body()
    headers = {name: request.headers.get(name) for name in ("svix-id", "svix-timestamp", "svix-signature")}
    try:
        verify_svix_signature(secret, headers, body)
    except WebhookVerificationError as e:
        logger.warning(f"Rejected Clerk webhook: {e}")
        raise HTTPException(status_code=400, detail=str(e))

    event = _parse_json(body)
    if not isinstance(event.get("type"), (str, type(None))) or not isinstance(event.get("data") or {}, dict):
        raise HTTPException(status_code=400, detail="Malformed event payload")
    result = dispatch_event(db, event)
    integration_repo.record_event(
        db,
        "clerk",
        event.get("type") or "unknown",
        payload={"svix_id": headers["svix-id"], "handled": result.get("handled")},
    )
    return {"received": True, "type": result.get("type"), "handled": result.get("handled")}


@router.post("/docusign")
async def docusign_webhook(request: Request, db: Session = Depends(get_db)):
    body = await request.body()
    secret = os.getenv("DOCUSIGN_CONNECT_SECRET")
    if secret and not verify_connect_signature(body, request.headers.get("X-DocuSign-Signature-1"), secret):
        logger.warning("Rejected DocuSign webhook with invalid signature")
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    payload = _parse_json(body)
    event = payload.get("event")
    if event is not None and not isinstance(event, str):
        raise HTTPException(status_code=400, detail="event must be a string")
    data = payload.get("data") or {}
    if not isinstance(data, dict):
        raise HTTPException(status_code=400, detail="data must be an object")
    envelope_id = data.get("envelope_id") or data.get("envelopeId")
    if not envelope_id:
        raise HTTPException(status_code=400, detail="envelope_id is required")
    if not isinstance(envelope_id, str):
        raise HTTPException(status_code=400, detail="envelope_id must be a string")

    document = contract_repo.get_document_by_envelope(db, envelope_id)
    if not document:
        raise HTTPException(status_code=404, detail="Document not found for envelope")

    new_status = status_for_event(event)
    document.docu_sign_status = new_status
    contract = db.get(models.Contract, document.contract_id)
    if new_status == "signed" and contract is not None:
        contract.status = "signed"
        contract.signed_at = datetime.now(UTC)
    db.commit()

    integration_repo.record_event(
        db,
        "docusign",
        event or "unknown",
        organization_id=contract.organization_id if contract else None,
        payload={"envelope_id": envelope_id, "status": new_status},
    )
    if new_status == "signed" and contract is not None:
        log(
            db,
            action=AuditAction.CONTRACT_SIGNED,
            status=AuditStatus.SUCCESS,
            target_type="contract",
            target_id=contract.id,
            actor_user_id=None,
            organization_id=contract.organization_id,
            metadata={"envelope_id": envelope_id},
        )
    logger.info(f"DocuSign envelope {envelope_id} -> {new_status}")
    return {"message": "Webhook processed", "status": new_status}
