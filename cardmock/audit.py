"""
Audit logging helpers and enums.

Centralized helpers to persist normalized audit records with consistent
schema; includes convenience wrappers per target type.
"""
from __future__ import annotations
import uuid
from enum import Enum
from typing import Any, Optional, Dict
from sqlalchemy.orm import Session

from cardmock.db import schemas
from cardmock.db.repositories import audits as audit_repo


class AuditAction(str, Enum):
    # Organization
    ORGANIZATION_CREATE = "organization_create"
    ORGANIZATION_UPDATE = "organization_update"
    # Membership
    MEMBER_ADD = "member_add"
    MEMBER_REMOVE = "member_remove"
    MEMBER_ROLE_CHANGE = "member_role_change"
    # Clients
    CLIENT_CREATE = "client_create"
    CLIENT_UPDATE = "client_update"
    CLIENT_DELETE = "client_delete"
    CLIENT_USER_ASSIGN = "client_user_assign"
    CLIENT_USER_UNASSIGN = "client_user_unassign"
    # Brands
    BRAND_CREATE = "brand_create"
    BRAND_UPDATE = "brand_update"
    BRAND_DELETE = "brand_delete"
    # Templates
    TEMPLATE_CREATE = "template_create"
    TEMPLATE_UPDATE = "template_update"
    TEMPLATE_ARCHIVE = "template_archive"
    TEMPLATE_DELETE = "template_delete"
    # Workflows / projects
    WORKFLOW_CREATE = "workflow_create"
    WORKFLOW_UPDATE = "workflow_update"
    WORKFLOW_DELETE = "workflow_delete"
    PROJECT_CREATE = "project_create"
    PROJECT_UPDATE = "project_update"
    PROJECT_DELETE = "project_delete"
    REVIEWER_ADD = "reviewer_add"
    REVIEWER_REMOVE = "reviewer_remove"
    # Mockups and approvals
    MOCKUP_CREATE = "mockup_create"
    MOCKUP_UPDATE = "mockup_update"
    MOCKUP_DELETE = "mockup_delete"
    STAGE_APPROVE = "stage_approve"
    STAGE_REQUEST_CHANGES = "stage_request_changes"
    FINAL_APPROVE = "final_approve"
    # Sharing
    SHARE_LINK_CREATE = "share_link_create"
    SHARE_LINK_DEACTIVATE = "share_link_deactivate"
    PUBLIC_APPROVAL = "public_approval"
    # Contracts
    CONTRACT_CREATE = "contract_create"
    CONTRACT_UPDATE = "contract_update"
    CONTRACT_DELETE = "contract_delete"
    CONTRACT_DOCUMENT_ADD = "contract_document_add"
    CONTRACT_SEND_FOR_SIGNATURE = "contract_send_for_signature"
    CONTRACT_SIGNED = "contract_signed"
    # Integrations
    FIGMA_CONNECT = "figma_connect"
    FIGMA_DISCONNECT = "figma_disconnect"
    FIGMA_IMPORT = "figma_import"


class AuditStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


def log(
    db: Session,
    *,
    action: AuditAction | str,
    status: AuditStatus | str = AuditStatus.SUCCESS,
    target_type: str,
    target_id: Optional[uuid.UUID] = None,
    actor_user_id: Optional[uuid.UUID],
    organization_id: Optional[uuid.UUID] = None,
    metadata: Optional[Dict[str, Any]] = None,
):
    """Central audit logging helper.

    Persists plain string values for action/status, never Enum reprs.
    """
    action_value = action.value if isinstance(action, AuditAction) else str(action)
    status_value = status.value if isinstance(status, AuditStatus) else str(status)
    audit_log = schemas.AuditLogCreate(
        action_type=action_value,
        status=status_value,
        target_type=target_type,
        target_id=target_id,
        metadata=metadata or {},
    )
    return audit_repo.create_audit_log(
        db,
        audit_log=audit_log,
        actor_user_id=actor_user_id,
        organization_id=organization_id,
    )


def log_mockup(
    db: Session,
    *,
    actor_user_id: Optional[uuid.UUID],
    organization_id: Optional[uuid.UUID],
    mockup_id: uuid.UUID,
    action: AuditAction,
    status: AuditStatus | str = AuditStatus.SUCCESS,
    metadata: Optional[Dict[str, Any]] = None,
):
    return log(
        db,
        action=action,
        status=status,
        target_type="mockup",
        target_id=mockup_id,
        actor_user_id=actor_user_id,
        organization_id=organization_id,
        metadata=metadata,
    )


__all__ = ["AuditAction", "AuditStatus", "log", "log_mockup"]
