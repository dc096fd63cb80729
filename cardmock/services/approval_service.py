"""
Multi-stage mockup approval workflow.

A mockup attached to a project with a workflow carries one
``mockup_stage_progress`` row per stage. Exactly one stage is ``in_review`` at
a time; reviewers assigned to that stage approve individually and the stage
completes once every assigned reviewer approved (a stage with no reviewers
completes on the first approval). The last stage waits in
``pending_final_approval`` until the project owner (or an admin) signs off.
Requesting changes at any stage resets the mockup to stage 1.

All state changes for one action happen in a single session commit;
notifications are sent after the commit and never fail the action.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from cardmock.db import models
from cardmock.db.models.base import now_utc

logger = logging.getLogger(__name__)

STAGE_PENDING = 'pending'
STAGE_IN_REVIEW = 'in_review'
STAGE_APPROVED = 'approved'
STAGE_CHANGES_REQUESTED = 'changes_requested'
STAGE_PENDING_FINAL = 'pending_final_approval'

ACTION_APPROVE = 'approve'
ACTION_REQUEST_CHANGES = 'request_changes'


class ApprovalError(Exception):
    """Workflow rule violation; ``status_code`` maps onto the HTTP response."""

    def __init__(self, status_code: int, detail: str):
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail


def _notifications(db: Session):
    from cardmock.services.notification_service import get_notification_service
    return get_notification_service(db)


def _reviewer_ids(db: Session, project_id: uuid.UUID, stage_order: int) -> List[uuid.UUID]:
    rows = (
        db.query(models.ProjectStageReviewer.user_id)
        .filter(
            models.ProjectStageReviewer.project_id == project_id,
            models.ProjectStageReviewer.stage_order == stage_order,
        )
        .distinct()
        .all()
    )
    return [r[0] for r in rows]


def _owner_id(mockup: models.Mockup, project: models.Project) -> Optional[uuid.UUID]:
    """Owner-facing updates go to whoever created the mockup."""
    return mockup.created_by or project.created_by


def _stage_name(workflow: Optional[models.Workflow], stage_order: int) -> str:
    stage = workflow.get_stage(stage_order) if workflow else None
    return stage.get('name') if stage else f"Stage {stage_order}"


def _progress_rows(db: Session, mockup_id: uuid.UUID) -> List[models.MockupStageProgress]:
    return (
        db.query(models.MockupStageProgress)
        .filter(models.MockupStageProgress.asset_id == mockup_id)
        .order_by(models.MockupStageProgress.stage_order)
        .all()
    )


def _get_row(db: Session, mockup_id: uuid.UUID, stage_order: int) -> Optional[models.MockupStageProgress]:
    return (
        db.query(models.MockupStageProgress)
        .filter(
            models.MockupStageProgress.asset_id == mockup_id,
            models.MockupStageProgress.stage_order == stage_order,
        )
        .first()
    )


def _project_and_workflow(db: Session, mockup: models.Mockup):
    """Return ``(project, workflow)`` or raise 400 when the mockup has no workflow."""
    project = db.get(models.Project, mockup.project_id) if mockup.project_id else None
    if project is None:
        raise ApprovalError(400, "Mockup must be assigned to a project with a workflow")
    workflow = db.get(models.Workflow, project.workflow_id) if project.workflow_id else None
    if workflow is None:
        raise ApprovalError(400, "Project must have a workflow assigned")
    return project, workflow


def initialize_stage_progress(
    db: Session,
    mockup: models.Mockup,
    project: models.Project,
    workflow: models.Workflow,
    commit: bool = True,
) -> List[models.MockupStageProgress]:
    """(Re)create progress rows: stage 1 in review, every other stage pending."""
    db.query(models.MockupStageUserApproval).filter(
        models.MockupStageUserApproval.asset_id == mockup.id
    ).delete(synchronize_session=False)
    db.query(models.MockupStageProgress).filter(
        models.MockupStageProgress.asset_id == mockup.id
    ).delete(synchronize_session=False)

    rows = []
    for stage in sorted(workflow.stages or [], key=lambda s: s['order']):
        order = stage['order']
        row = models.MockupStageProgress(
            asset_id=mockup.id,
            project_id=project.id,
            stage_order=order,
            status=STAGE_IN_REVIEW if order == 1 else STAGE_PENDING,
            approvals_required=len(_reviewer_ids(db, project.id, order)),
            approvals_received=0,
        )
        db.add(row)
        rows.append(row)
    mockup.status = 'pending_review'
    if commit:
        db.commit()
    else:
        db.flush()
    return rows


def notify_first_stage(db: Session, mockup: models.Mockup, project: models.Project, workflow: models.Workflow) -> None:
    reviewer_ids = _reviewer_ids(db, project.id, 1)
    if reviewer_ids:
        _notifications(db).notify_approval_request(reviewer_ids, mockup, project, _stage_name(workflow, 1))


def describe_progress(db: Session, mockup: models.Mockup) -> Dict[str, Any]:
    """Progress rows joined with their stage definitions.

    Returns ``{"progress": [(row, stage_name, stage_color), ...], "workflow": Workflow | None}``;
    both empty when the mockup has no project workflow.
    """
    if not mockup.project_id:
        return {"progress": [], "workflow": None}
    project = db.get(models.Project, mockup.project_id)
    workflow = db.get(models.Workflow, project.workflow_id) if project and project.workflow_id else None
    if workflow is None:
        return {"progress": [], "workflow": None}
    progress = []
    for row in _progress_rows(db, mockup.id):
        stage = workflow.get_stage(row.stage_order) or {}
        progress.append((row, stage.get('name'), stage.get('color')))
    return {"progress": progress, "workflow": workflow}


def _require_reviewer(db: Session, project_id: uuid.UUID, stage_order: int, user_id: uuid.UUID) -> models.ProjectStageReviewer:
    reviewer = (
        db.query(models.ProjectStageReviewer)
        .filter(
            models.ProjectStageReviewer.project_id == project_id,
            models.ProjectStageReviewer.stage_order == stage_order,
            models.ProjectStageReviewer.user_id == user_id,
        )
        .first()
    )
    if reviewer is None:
        raise ApprovalError(403, "You are not assigned as a reviewer for this stage")
    return reviewer


def _record_approval(
    db: Session,
    mockup: models.Mockup,
    project: models.Project,
    workflow: models.Workflow,
    row: models.MockupStageProgress,
    user: models.User,
    notes: Optional[str],
) -> Dict[str, Any]:
    stage_order = row.stage_order
    reviewer = _require_reviewer(db, project.id, stage_order, user.id)

    already = (
        db.query(models.MockupStageUserApproval.id)
        .filter(
            models.MockupStageUserApproval.asset_id == mockup.id,
            models.MockupStageUserApproval.stage_order == stage_order,
            models.MockupStageUserApproval.user_id == user.id,
        )
        .first()
    )
    if already:
        raise ApprovalError(400, "You have already submitted your review for this stage")

    reviewer_name = reviewer.user_name or user.display_name or user.email
    approval = models.MockupStageUserApproval(
        asset_id=mockup.id,
        project_id=project.id,
        stage_order=stage_order,
        user_id=user.id,
        user_name=reviewer_name,
        user_email=reviewer.user_email or user.email,
        user_image_url=reviewer.user_image_url or user.image_url,
        action=ACTION_APPROVE,
        notes=notes or None,
    )
    db.add(approval)
    row.approvals_received = (row.approvals_received or 0) + 1

    complete = row.approvals_required == 0 or row.approvals_received >= row.approvals_required
    next_row = None
    next_stage_name = None
    if complete:
        now = now_utc()
        row.reviewed_by = user.id
        row.reviewed_by_name = reviewer_name
        row.reviewed_at = now
        row.notes = f"All {row.approvals_required} reviewers approved"
        next_row = (
            db.query(models.MockupStageProgress)
            .filter(
                models.MockupStageProgress.asset_id == mockup.id,
                models.MockupStageProgress.stage_order > stage_order,
            )
            .order_by(models.MockupStageProgress.stage_order)
            .first()
        )
        if next_row is not None:
            row.status = STAGE_APPROVED
            next_row.status = STAGE_IN_REVIEW
            next_row.approvals_required = len(_reviewer_ids(db, project.id, next_row.stage_order))
            next_row.approvals_received = 0
            next_row.notification_sent = True
            next_row.notification_sent_at = now
            next_stage_name = _stage_name(workflow, next_row.stage_order)
        else:
            row.status = STAGE_PENDING_FINAL
            mockup.status = 'approved'

    db.commit()
    db.refresh(approval)
    db.refresh(row)

    notifier = _notifications(db)
    stage_name = _stage_name(workflow, stage_order)
    if complete and next_row is not None:
        reviewer_ids = _reviewer_ids(db, project.id, next_row.stage_order)
        if reviewer_ids:
            notifier.notify_approval_request(reviewer_ids, mockup, project, next_stage_name)
        owner_id = _owner_id(mockup, project)
        if owner_id:
            notifier.notify_stage_progress(owner_id, mockup, project, next_stage_name)
        message = f"Stage complete! Advanced to {next_stage_name}"
    elif complete:
        owner_id = _owner_id(mockup, project)
        if owner_id:
            notifier.notify_final_approval([owner_id], mockup, project, pending=True)
        message = "All stages complete! Pending final approval from project owner"
    else:
        notifier.notify_approval_received(
            mockup, project, stage_name, reviewer_name, row.approvals_received, row.approvals_required
        )
        message = f"Approval recorded. {row.approvals_received} of {row.approvals_required} reviewers approved"

    logger.info(
        "Approval recorded for mockup %s stage %s (complete=%s, advanced=%s)",
        mockup.id, stage_order, complete, next_row is not None,
    )
    return {
        "approval": approval,
        "stage_complete": complete,
        "advanced_to_next_stage": next_row is not None,
        "next_stage_name": next_stage_name,
        "updated_progress": row,
        "message": message,
    }


def approve_current_stage(db: Session, mockup: models.Mockup, user: models.User, notes: Optional[str] = None) -> Dict[str, Any]:
    """Record the user's approval on whichever stage is currently in review."""
    project, workflow = _project_and_workflow(db, mockup)
    row = (
        db.query(models.MockupStageProgress)
        .filter(
            models.MockupStageProgress.asset_id == mockup.id,
            models.MockupStageProgress.status == STAGE_IN_REVIEW,
        )
        .order_by(models.MockupStageProgress.stage_order)
        .first()
    )
    if row is None:
        raise ApprovalError(400, "No stage currently in review for this mockup")
    return _record_approval(db, mockup, project, workflow, row, user, notes)


def reset_to_first_stage(db: Session, mockup: models.Mockup, project: models.Project, commit: bool = True) -> None:
    """Every stage back to pending with review data cleared; stage 1 in review."""
    db.query(models.MockupStageUserApproval).filter(
        models.MockupStageUserApproval.asset_id == mockup.id
    ).delete(synchronize_session=False)
    for row in _progress_rows(db, mockup.id):
        row.status = STAGE_IN_REVIEW if row.stage_order == 1 else STAGE_PENDING
        row.reviewed_by = None
        row.reviewed_by_name = None
        row.reviewed_at = None
        row.notes = None
        row.notification_sent = False
        row.notification_sent_at = None
        row.approvals_received = 0
        if row.stage_order == 1:
            row.approvals_required = len(_reviewer_ids(db, project.id, 1))
    if commit:
        db.commit()


def act_on_stage(
    db: Session,
    mockup: models.Mockup,
    stage_order: int,
    user: models.User,
    action: str,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    """Approve or request changes on a specific stage."""
    if action not in (ACTION_APPROVE, ACTION_REQUEST_CHANGES):
        raise ApprovalError(400, "Action must be 'approve' or 'request_changes'")
    project, workflow = _project_and_workflow(db, mockup)
    row = _get_row(db, mockup.id, stage_order)
    if row is None:
        raise ApprovalError(404, "Stage progress not found")
    if row.status != STAGE_IN_REVIEW:
        raise ApprovalError(400, "This stage is not currently in review")

    if action == ACTION_APPROVE:
        return _record_approval(db, mockup, project, workflow, row, user, notes)

    if not notes or not notes.strip():
        raise ApprovalError(400, "Notes are required when requesting changes")
    reviewer = _require_reviewer(db, project.id, stage_order, user.id)
    reviewer_name = reviewer.user_name or user.display_name or user.email

    # Recorded on the stage before the reset clears it.
    row.status = STAGE_CHANGES_REQUESTED
    row.reviewed_by = user.id
    row.reviewed_by_name = reviewer_name
    row.reviewed_at = now_utc()
    row.notes = notes.strip()
    mockup.status = 'changes_requested'
    db.flush()
    reset_to_first_stage(db, mockup, project, commit=False)
    db.commit()

    stage_name = _stage_name(workflow, stage_order)
    _notifications(db).notify_changes_requested(mockup, project, stage_name, reviewer_name, notes.strip())
    logger.info("Changes requested on mockup %s at stage %s; reset to stage 1", mockup.id, stage_order)
    return {
        "stage_order": stage_order,
        "action": action,
        "progress": _progress_rows(db, mockup.id),
        "message": f"Changes requested at {stage_name}. Workflow reset to {_stage_name(workflow, 1)}",
    }


def final_approve(
    db: Session,
    mockup: models.Mockup,
    user: models.User,
    is_admin: bool,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    project = db.get(models.Project, mockup.project_id) if mockup.project_id else None
    if project is None:
        raise ApprovalError(400, "Mockup must be assigned to a project")
    if project.created_by != user.id and not is_admin:
        raise ApprovalError(403, "Only project creator or organization admin can give final approval")

    last = (
        db.query(models.MockupStageProgress)
        .filter(models.MockupStageProgress.asset_id == mockup.id)
        .order_by(models.MockupStageProgress.stage_order.desc())
        .first()
    )
    if last is None:
        raise ApprovalError(404, "No stage progress found for this mockup")
    if last.status != STAGE_PENDING_FINAL:
        raise ApprovalError(400, f"Cannot give final approval. Current status: {last.status}")

    now = now_utc()
    approver_name = user.display_name or user.email
    mockup.final_approved_by = user.id
    mockup.final_approved_at = now
    mockup.final_approval_notes = notes or None
    mockup.status = 'final_approved'
    last.status = STAGE_APPROVED
    last.reviewed_by = user.id
    last.reviewed_by_name = approver_name
    last.reviewed_at = now
    db.commit()
    db.refresh(mockup)

    recipients: List[uuid.UUID] = []
    owner_id = _owner_id(mockup, project)
    if owner_id and owner_id != user.id:
        recipients.append(owner_id)
    for reviewer_id in (
        r[0] for r in db.query(models.ProjectStageReviewer.user_id)
        .filter(models.ProjectStageReviewer.project_id == project.id)
        .distinct()
        .all()
    ):
        if reviewer_id != user.id and reviewer_id not in recipients:
            recipients.append(reviewer_id)
    if recipients:
        _notifications(db).notify_final_approval(recipients, mockup, project, pending=False, approver_name=approver_name)

    return {
        "message": "Final approval recorded successfully",
        "mockup": mockup,
        "progress": _progress_rows(db, mockup.id),
    }


def my_stage_reviews(db: Session, organization_id: uuid.UUID, user_id: uuid.UUID) -> List[Dict[str, Any]]:
    """Projects where the user reviews a stage that currently has mockups in review.

    Returns ``[{"project": Project, "pending": [(mockup, row, stage_name, stage_color), ...]}]``.
    """
    assignments = (
        db.query(models.ProjectStageReviewer, models.Project)
        .join(models.Project, models.Project.id == models.ProjectStageReviewer.project_id)
        .filter(
            models.ProjectStageReviewer.user_id == user_id,
            models.Project.organization_id == organization_id,
        )
        .all()
    )
    stages_by_project: Dict[uuid.UUID, set] = {}
    projects: Dict[uuid.UUID, models.Project] = {}
    for reviewer, project in assignments:
        stages_by_project.setdefault(project.id, set()).add(reviewer.stage_order)
        projects[project.id] = project

    results = []
    for project_id, stage_orders in stages_by_project.items():
        project = projects[project_id]
        workflow = db.get(models.Workflow, project.workflow_id) if project.workflow_id else None
        rows = (
            db.query(models.MockupStageProgress, models.Mockup)
            .join(models.Mockup, models.Mockup.id == models.MockupStageProgress.asset_id)
            .filter(
                models.MockupStageProgress.project_id == project_id,
                models.MockupStageProgress.status == STAGE_IN_REVIEW,
                models.MockupStageProgress.stage_order.in_(stage_orders),
                models.Mockup.project_id == project_id,
            )
            .order_by(models.Mockup.created_at.desc())
            .all()
        )
        if not rows:
            continue
        pending = []
        for row, mockup in rows:
            stage = (workflow.get_stage(row.stage_order) if workflow else None) or {}
            pending.append((mockup, row, stage.get('name'), stage.get('color')))
        results.append({"project": project, "pending": pending})
    results.sort(key=lambda r: r["project"].name.lower())
    return results


def pending_review_count(db: Session, project_id: uuid.UUID) -> int:
    return (
        db.query(func.count(models.MockupStageProgress.id))
        .filter(
            models.MockupStageProgress.project_id == project_id,
            models.MockupStageProgress.status == STAGE_IN_REVIEW,
        )
        .scalar()
        or 0
    )
