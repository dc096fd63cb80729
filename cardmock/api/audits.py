"""
Audit log API endpoints.

Query audit logs of the active organization; restricted to its admins.
"""
from typing import Optional
import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from cardmock.db.database import get_db
from cardmock.db import schemas
from cardmock.db.repositories import audits as audit_repo
from cardmock.api.deps import get_org_context, OrgContext
from cardmock.api.permissions import require_admin

router = APIRouter(prefix="/audit-logs", tags=["audits"])


@router.get("/")
def list_audit_logs(
    user_id: Optional[uuid.UUID] = None,
    action_type: Optional[str] = None,
    target_type: Optional[str] = None,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
    ctx: OrgContext = Depends(get_org_context),
):
    require_admin(ctx)
    audit_logs = audit_repo.get_audit_logs(
        db,
        organization_id=ctx.organization_id,
        user_id=user_id,
        action_type=action_type,
        target_type=target_type,
        skip=skip,
        limit=limit,
    )
    return {"audit_logs": [schemas.AuditLog.model_validate(entry) for entry in audit_logs]}
