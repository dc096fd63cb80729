"""
Notification service: in-app notifications, preferences, and email dispatch.
Centralizes business logic for consistent handling across the app.
"""

import asyncio
import logging
import threading
import uuid
from datetime import timedelta
from typing import Optional, List, Dict, Any, Iterable

from sqlalchemy import and_, desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from cardmock.db import models
from cardmock.db.models.base import now_utc
from cardmock.db.database import get_db
from cardmock.utils.urls import get_app_base_url, build_mockup_url, build_project_url, build_share_url

logger = logging.getLogger(__name__)

# Event type constants
EVENT_APPROVAL_REQUEST = 'approval_request'
EVENT_APPROVAL_RECEIVED = 'approval_received'
EVENT_COMMENT = 'comment'
EVENT_STAGE_PROGRESS = 'stage_progress'
EVENT_FINAL_APPROVAL = 'final_approval'
EVENT_CHANGES_REQUESTED = 'changes_requested'
EVENT_CLIENT_ASSIGNMENT_REQUIRED = 'client_assignment_required'
EVENT_ORG_MEMBERSHIP_ADDED = 'org_membership_added'
EVENT_MOCKUP_SHARED = 'mockup_shared'

ALL_EVENT_TYPES = (
    EVENT_APPROVAL_REQUEST,
    EVENT_APPROVAL_RECEIVED,
    EVENT_COMMENT,
    EVENT_STAGE_PROGRESS,
    EVENT_FINAL_APPROVAL,
    EVENT_CHANGES_REQUESTED,
    EVENT_CLIENT_ASSIGNMENT_REQUIRED,
    EVENT_ORG_MEMBERSHIP_ADDED,
    EVENT_MOCKUP_SHARED,
)

# Template name constants (match template file names)
TEMPLATE_APPROVAL_REQUEST = 'approval_request'
TEMPLATE_APPROVAL_RECEIVED = 'approval_received'
TEMPLATE_CHANGES_REQUESTED = 'changes_requested'
TEMPLATE_FINAL_APPROVAL = 'final_approval'
TEMPLATE_COMMENT = 'comment'
TEMPLATE_MOCKUP_SHARED = 'mockup_shared'
TEMPLATE_MEMBERSHIP_ADDED = 'membership_added'
TEMPLATE_CLIENT_ASSIGNMENT_REQUIRED = 'client_assignment_required'
TEMPLATE_PUBLIC_REVIEW = 'public_review'


class NotificationService:
    """Service class for handling all notification operations."""

    def __init__(self, db: Session, email_service: Optional[Any] = None):
        self.db = db
        self._session_factory: Optional[sessionmaker] = None
        bind = db.get_bind() if hasattr(db, "get_bind") else getattr(db, "bind", None)
        if bind is not None:
            engine = getattr(bind, "engine", bind)
            self._session_factory = sessionmaker(bind=engine, autoflush=False, autocommit=False)
        # Resolved lazily so tests can patch get_transactional_email_service.
        if email_service is not None:
            self.email_service = email_service
        else:
            from cardmock.services import transactional_email_service
            self.email_service = transactional_email_service.get_transactional_email_service()

    # === User Preference Management ===

    def get_user_preferences(self, user_id: uuid.UUID) -> Dict[str, Dict[str, bool]]:
        """
        Get all notification preferences for a user, filling defaults.

        Returns:
            Dict with event_type as key and {'email_enabled': bool, 'in_app_enabled': bool} as value
        """
        preferences = {
            event_type: {'email_enabled': True, 'in_app_enabled': True}
            for event_type in ALL_EVENT_TYPES
        }
        rows = self.db.query(models.UserNotificationPreference).filter(
            models.UserNotificationPreference.user_id == user_id
        ).all()
        for pref in rows:
            if pref.event_type in preferences:
                preferences[pref.event_type] = {
                    'email_enabled': pref.email_enabled,
                    'in_app_enabled': pref.in_app_enabled,
                }
        return preferences

    def set_user_preference(
        self,
        user_id: uuid.UUID,
        event_type: str,
        email_enabled: bool,
        in_app_enabled: bool
    ) -> models.UserNotificationPreference:
        existing = self.db.query(models.UserNotificationPreference).filter(
            and_(
                models.UserNotificationPreference.user_id == user_id,
                models.UserNotificationPreference.event_type == event_type
            )
        ).first()

        if existing:
            existing.email_enabled = email_enabled
            existing.in_app_enabled = in_app_enabled
            existing.updated_at = now_utc()
        else:
            existing = models.UserNotificationPreference(
                user_id=user_id,
                event_type=event_type,
                email_enabled=email_enabled,
                in_app_enabled=in_app_enabled
            )
            self.db.add(existing)

        self.db.commit()
        self.db.refresh(existing)
        return existing

    # === In-App Notification Management ===

    def create_notification(
        self,
        user_id: uuid.UUID,
        event_type: str,
        title: str,
        message: str,
        action_url: Optional[str] = None,
        action_text: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        expires_days: int = 30,
        organization_id: Optional[uuid.UUID] = None,
        related_asset_id: Optional[uuid.UUID] = None,
        related_project_id: Optional[uuid.UUID] = None,
    ) -> models.Notification:
        """
        Create an in-app notification for a user.

        Args:
            user_id: The recipient user ID
            event_type: One of the EVENT_* constants
            title: Short notification title
            message: Detailed notification message
            action_url: Optional link the notification opens
            metadata: Additional event-specific data
            expires_days: Days until notification expires (default 30)
        """
        notification = models.Notification(
            user_id=user_id,
            organization_id=organization_id,
            event_type=event_type,
            title=title[:200],
            message=message,
            action_url=action_url,
            action_text=action_text,
            related_asset_id=related_asset_id,
            related_project_id=related_project_id,
            metadata_json=metadata or {},
            expires_at=now_utc() + timedelta(days=expires_days),
        )
        self.db.add(notification)
        self.db.commit()
        self.db.refresh(notification)
        return notification

    def get_user_notifications(
        self,
        user_id: uuid.UUID,
        unread_only: bool = False,
        limit: int = 50
    ) -> List[models.Notification]:
        """Non-expired notifications for a user, most recent first."""
        query = self.db.query(models.Notification).filter(
            models.Notification.user_id == user_id,
            models.Notification.expires_at > now_utc(),
        )
        if unread_only:
            query = query.filter(models.Notification.is_read == False)  # noqa: E712
        return query.order_by(desc(models.Notification.created_at)).limit(limit).all()

    def mark_notification_read(self, notification_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        """
        Mark a notification as read for a specific user.
        Returns False if the notification is missing or owned by someone else.
        """
        notification = self.db.query(models.Notification).filter(
            and_(
                models.Notification.id == notification_id,
                models.Notification.user_id == user_id
            )
        ).first()
        if not notification:
            return False
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = now_utc()
            self.db.commit()
        return True

    def mark_all_read(self, user_id: uuid.UUID) -> int:
        unread = self.db.query(models.Notification).filter(
            models.Notification.user_id == user_id,
            models.Notification.is_read == False,  # noqa: E712
        ).all()
        now = now_utc()
        for notification in unread:
            notification.is_read = True
            notification.read_at = now
        self.db.commit()
        return len(unread)

    def get_unread_count(self, user_id: uuid.UUID) -> int:
        return self.db.query(models.Notification).filter(
            and_(
                models.Notification.user_id == user_id,
                models.Notification.is_read == False,  # noqa: E712
                models.Notification.expires_at > now_utc()
            )
        ).count()

    # === Email Notification Management ===

    def create_email_notification_log(
        self,
        notification_id: Optional[uuid.UUID],
        user_id: Optional[uuid.UUID],
        email_address: str,
        event_type: str,
        subject: str,
        status: str = 'pending'
    ) -> models.EmailNotificationLog:
        email_log = models.EmailNotificationLog(
            notification_id=notification_id,
            user_id=user_id,
            email_address=email_address,
            event_type=event_type,
            subject=subject[:200],
            status=status
        )
        self.db.add(email_log)
        self.db.commit()
        self.db.refresh(email_log)
        return email_log

    def update_email_status(
        self,
        email_log_id: uuid.UUID,
        status: str,
        provider_message_id: Optional[str] = None,
        error_message: Optional[str] = None
    ) -> bool:
        """
        Update the status of an email notification.

        Args:
            status: New status ('sent', 'failed', 'bounced', 'delivered')

        Returns:
            True if update successful, False if log not found
        """
        return self._update_email_status_with_session(
            self.db,
            email_log_id,
            status,
            provider_message_id=provider_message_id,
            error_message=error_message,
        )

    def _safe_update_email_status(
        self,
        email_log_id: uuid.UUID,
        status: str,
        provider_message_id: Optional[str] = None,
        error_message: Optional[str] = None
    ) -> bool:
        """Status update from a background thread, on a session of its own."""
        if self._session_factory is None:
            return self.update_email_status(
                email_log_id, status, provider_message_id=provider_message_id, error_message=error_message
            )
        session = self._session_factory()
        try:
            return self._update_email_status_with_session(
                session,
                email_log_id,
                status,
                provider_message_id=provider_message_id,
                error_message=error_message,
            )
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to update email log {email_log_id}: {e}")
            return False
        finally:
            session.close()

    def _update_email_status_with_session(
        self,
        db_session: Session,
        email_log_id: uuid.UUID,
        status: str,
        provider_message_id: Optional[str] = None,
        error_message: Optional[str] = None
    ) -> bool:
        email_log = db_session.query(models.EmailNotificationLog).filter(
            models.EmailNotificationLog.id == email_log_id
        ).first()
        if not email_log:
            return False

        email_log.status = status
        if provider_message_id:
            email_log.provider_message_id = provider_message_id
        if error_message:
            email_log.error_message = error_message

        now = now_utc()
        if status == 'sent':
            email_log.sent_at = now
        elif status == 'delivered':
            email_log.delivered_at = now
        elif status == 'bounced':
            email_log.bounced_at = now

        db_session.commit()
        return True

    def _email_available(self) -> bool:
        if not self.email_service:
            return False
        check = getattr(self.email_service, "is_configured", None)
        return bool(check()) if callable(check) else True

    def _dispatch_email(self, email_log: models.EmailNotificationLog, template_name: str, context: Dict[str, Any]) -> Dict[str, Any]:
        """Render synchronously, then send on a daemon thread so the request isn't blocked."""
        if not self._email_available():
            self.update_email_status(email_log.id, 'failed', error_message='Email service not configured')
            return {'dispatched_in_background': False}

        try:
            html, text = self.email_service.render_template(template_name, context)
        except Exception as e:
            self.update_email_status(email_log.id, 'failed', error_message=f'Template render failed: {str(e)}')
            return {'dispatched_in_background': False}

        log_id = email_log.id
        to_email = email_log.email_address
        subject = email_log.subject

        def _send():
            try:
                send_res = asyncio.run(self.email_service.send_email(
                    to_email=to_email,
                    subject=subject,
                    html_content=html,
                    text_content=text
                ))
            except Exception as e:
                self._safe_update_email_status(log_id, 'failed', error_message=str(e))
                return
            if send_res.get('success'):
                self._safe_update_email_status(log_id, 'sent', provider_message_id=send_res.get('message_id'))
            else:
                self._safe_update_email_status(log_id, 'failed', error_message=send_res.get('error'))

        threading.Thread(target=_send, daemon=True).start()
        return {'dispatched_in_background': True}

    def _notify(
        self,
        *,
        event_type: str,
        template_name: str,
        user_id: Optional[uuid.UUID],
        email: Optional[str],
        title: str,
        message: str,
        subject: str,
        context: Dict[str, Any],
        action_url: Optional[str] = None,
        action_text: Optional[str] = None,
        organization_id: Optional[uuid.UUID] = None,
        related_asset_id: Optional[uuid.UUID] = None,
        related_project_id: Optional[uuid.UUID] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Create the in-app notification and email log for one recipient.

        Recipients without a user id (external share recipients) get email
        only. Failures are logged and never propagate to the caller.
        """
        result: Dict[str, Any] = {}
        try:
            if user_id is not None:
                prefs = self.get_user_preferences(user_id).get(
                    event_type, {'email_enabled': True, 'in_app_enabled': True}
                )
            else:
                prefs = {'email_enabled': True, 'in_app_enabled': False}

            if user_id is not None and prefs['in_app_enabled']:
                result['in_app_notification'] = self.create_notification(
                    user_id=user_id,
                    event_type=event_type,
                    title=title,
                    message=message,
                    action_url=action_url,
                    action_text=action_text,
                    metadata=metadata,
                    organization_id=organization_id,
                    related_asset_id=related_asset_id,
                    related_project_id=related_project_id,
                )

            if email and prefs['email_enabled']:
                notification = result.get('in_app_notification')
                email_log = self.create_email_notification_log(
                    notification_id=notification.id if notification else None,
                    user_id=user_id,
                    email_address=email,
                    event_type=event_type,
                    subject=subject,
                )
                result['email_log'] = email_log
                template_context = {
                    'app_name': 'CardMock',
                    'app_url': get_app_base_url(),
                    'title': title,
                    'message': message,
                    'action_url': action_url,
                    'action_text': action_text,
                    **context,
                }
                result['email_result'] = self._dispatch_email(email_log, template_name, template_context)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create {event_type} notification: {e}")
        return result

    def _users(self, user_ids: Iterable[uuid.UUID]) -> List[models.User]:
        ids = {uid for uid in user_ids if uid is not None}
        if not ids:
            return []
        return self.db.query(models.User).filter(models.User.id.in_(ids)).all()

    @staticmethod
    def _name(user: models.User) -> str:
        return user.display_name or user.email.split('@')[0]

    # === High-Level Notification Methods ===

    def notify_approval_request(
        self,
        reviewer_user_ids: Iterable[uuid.UUID],
        mockup: models.Mockup,
        project: models.Project,
        stage_name: str,
    ) -> List[Dict[str, Any]]:
        """Ask each reviewer of a stage to review a mockup."""
        url = build_mockup_url(mockup.id)
        results = []
        for user in self._users(reviewer_user_ids):
            results.append(self._notify(
                event_type=EVENT_APPROVAL_REQUEST,
                template_name=TEMPLATE_APPROVAL_REQUEST,
                user_id=user.id,
                email=user.email,
                title=f"Review needed: {mockup.mockup_name}",
                message=f'"{mockup.mockup_name}" in {project.name} is ready for your review at the {stage_name} stage.',
                subject=f"Review needed: {mockup.mockup_name}",
                context={
                    'recipient_name': self._name(user),
                    'mockup_name': mockup.mockup_name,
                    'project_name': project.name,
                    'stage_name': stage_name,
                },
                action_url=url,
                action_text="Review mockup",
                organization_id=mockup.organization_id,
                related_asset_id=mockup.id,
                related_project_id=project.id,
                metadata={'stage_name': stage_name},
            ))
        return results

    def notify_approval_received(
        self,
        mockup: models.Mockup,
        project: models.Project,
        stage_name: str,
        approver_name: str,
        approvals_received: int,
        approvals_required: int,
    ) -> Dict[str, Any]:
        """Tell the mockup owner a reviewer approved, while the stage still needs more."""
        owners = self._users([mockup.created_by or project.created_by])
        if not owners:
            return {}
        owner = owners[0]
        return self._notify(
            event_type=EVENT_APPROVAL_RECEIVED,
            template_name=TEMPLATE_APPROVAL_RECEIVED,
            user_id=owner.id,
            email=owner.email,
            title=f"{approver_name} approved {mockup.mockup_name}",
            message=(
                f"{approver_name} approved \"{mockup.mockup_name}\" at the {stage_name} stage "
                f"({approvals_received} of {approvals_required} approvals)."
            ),
            subject=f"Approval received: {mockup.mockup_name}",
            context={
                'recipient_name': self._name(owner),
                'mockup_name': mockup.mockup_name,
                'project_name': project.name,
                'stage_name': stage_name,
                'approver_name': approver_name,
                'approvals_received': approvals_received,
                'approvals_required': approvals_required,
            },
            action_url=build_mockup_url(mockup.id),
            action_text="View progress",
            organization_id=mockup.organization_id,
            related_asset_id=mockup.id,
            related_project_id=project.id,
        )

    def notify_changes_requested(
        self,
        mockup: models.Mockup,
        project: models.Project,
        stage_name: str,
        reviewer_name: str,
        notes: str,
    ) -> Dict[str, Any]:
        recipients = self._users([mockup.created_by or project.created_by])
        if not recipients:
            return {}
        owner = recipients[0]
        return self._notify(
            event_type=EVENT_CHANGES_REQUESTED,
            template_name=TEMPLATE_CHANGES_REQUESTED,
            user_id=owner.id,
            email=owner.email,
            title=f"Changes requested: {mockup.mockup_name}",
            message=f"{reviewer_name} requested changes at the {stage_name} stage: {notes}",
            subject=f"Changes requested: {mockup.mockup_name}",
            context={
                'recipient_name': self._name(owner),
                'mockup_name': mockup.mockup_name,
                'project_name': project.name,
                'stage_name': stage_name,
                'reviewer_name': reviewer_name,
                'notes': notes,
            },
            action_url=build_mockup_url(mockup.id),
            action_text="View feedback",
            organization_id=mockup.organization_id,
            related_asset_id=mockup.id,
            related_project_id=project.id,
            metadata={'stage_name': stage_name, 'notes': notes},
        )

    def notify_final_approval(
        self,
        user_ids: Iterable[uuid.UUID],
        mockup: models.Mockup,
        project: models.Project,
        *,
        pending: bool,
        approver_name: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Final approval events.

        ``pending=True``: every stage passed and the owner must sign off.
        ``pending=False``: the mockup received final approval.
        """
        if pending:
            title = f"Ready for final approval: {mockup.mockup_name}"
            message = f'All review stages are complete for "{mockup.mockup_name}". It is waiting for your final approval.'
        else:
            title = f"Final approval: {mockup.mockup_name}"
            message = f'{approver_name or "The project owner"} gave final approval to "{mockup.mockup_name}".'
        results = []
        for user in self._users(user_ids):
            results.append(self._notify(
                event_type=EVENT_FINAL_APPROVAL,
                template_name=TEMPLATE_FINAL_APPROVAL,
                user_id=user.id,
                email=user.email,
                title=title,
                message=message,
                subject=title,
                context={
                    'recipient_name': self._name(user),
                    'mockup_name': mockup.mockup_name,
                    'project_name': project.name,
                    'pending': pending,
                    'approver_name': approver_name,
                },
                action_url=build_mockup_url(mockup.id),
                action_text="Open mockup",
                organization_id=mockup.organization_id,
                related_asset_id=mockup.id,
                related_project_id=project.id,
                metadata={'pending': pending},
            ))
        return results

    def notify_comment(
        self,
        recipient_user_id: uuid.UUID,
        mockup: models.Mockup,
        commenter_name: str,
        comment_text: str,
    ) -> Dict[str, Any]:
        recipients = self._users([recipient_user_id])
        if not recipients:
            return {}
        user = recipients[0]
        preview = comment_text if len(comment_text) <= 140 else comment_text[:137] + "..."
        return self._notify(
            event_type=EVENT_COMMENT,
            template_name=TEMPLATE_COMMENT,
            user_id=user.id,
            email=user.email,
            title=f"New comment on {mockup.mockup_name}",
            message=f"{commenter_name}: {preview}",
            subject=f"{commenter_name} commented on {mockup.mockup_name}",
            context={
                'recipient_name': self._name(user),
                'mockup_name': mockup.mockup_name,
                'commenter_name': commenter_name,
                'comment_text': comment_text,
            },
            action_url=build_mockup_url(mockup.id),
            action_text="View comment",
            organization_id=mockup.organization_id,
            related_asset_id=mockup.id,
            related_project_id=mockup.project_id,
        )

    def notify_mockup_shared(
        self,
        recipient_emails: Iterable[str],
        mockup: models.Mockup,
        share_token: str,
        shared_by_name: str,
        message: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Email a share link to external recipients."""
        share_url = build_share_url(share_token)
        results = []
        for email in {e.strip().lower() for e in recipient_emails if e and e.strip()}:
            results.append(self._notify(
                event_type=EVENT_MOCKUP_SHARED,
                template_name=TEMPLATE_MOCKUP_SHARED,
                user_id=None,
                email=email,
                title=f"{shared_by_name} shared {mockup.mockup_name}",
                message=message or f'{shared_by_name} shared "{mockup.mockup_name}" with you for review.',
                subject=f"{shared_by_name} shared a mockup with you",
                context={
                    'mockup_name': mockup.mockup_name,
                    'shared_by_name': shared_by_name,
                    'share_url': share_url,
                    'personal_message': message,
                },
                action_url=share_url,
                action_text="View mockup",
            ))
        return results

    def notify_public_review(
        self,
        mockup: models.Mockup,
        reviewer_name: str,
        reviewer_company: Optional[str],
        status: str,
        notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Tell the mockup creator an external reviewer decided through a share link."""
        recipients = self._users([mockup.created_by])
        if not recipients:
            return {}
        owner = recipients[0]
        approved = status == 'approved'
        if approved:
            title = f"{reviewer_name} approved {mockup.mockup_name}"
            subject = f"External approval: {mockup.mockup_name}"
        else:
            title = f"{reviewer_name} requested changes to {mockup.mockup_name}"
            subject = f"Changes requested: {mockup.mockup_name}"
        return self._notify(
            event_type=EVENT_APPROVAL_RECEIVED if approved else EVENT_CHANGES_REQUESTED,
            template_name=TEMPLATE_PUBLIC_REVIEW,
            user_id=owner.id,
            email=owner.email,
            title=title,
            message=notes or title,
            subject=subject,
            context={
                'recipient_name': self._name(owner),
                'mockup_name': mockup.mockup_name,
                'reviewer_name': reviewer_name,
                'reviewer_company': reviewer_company,
                'approved': approved,
                'notes': notes,
            },
            action_url=build_mockup_url(mockup.id),
            action_text="View mockup",
            organization_id=mockup.organization_id,
            related_asset_id=mockup.id,
            related_project_id=mockup.project_id,
            metadata={'public_review_status': status},
        )

    def notify_membership_added(
        self,
        user_id: uuid.UUID,
        user_email: str,
        organization_name: str,
        role: str,
        added_by_name: str,
        organization_id: Optional[uuid.UUID] = None,
    ) -> Dict[str, Any]:
        return self._notify(
            event_type=EVENT_ORG_MEMBERSHIP_ADDED,
            template_name=TEMPLATE_MEMBERSHIP_ADDED,
            user_id=user_id,
            email=user_email,
            title=f"Welcome to {organization_name}!",
            message=f"{added_by_name} added you to the organization {organization_name} as a {role}.",
            subject=f"Welcome to {organization_name}",
            context={
                'user_name': user_email.split('@')[0] if user_email else '',
                'organization_name': organization_name,
                'invited_by': added_by_name,
                'role': role,
                'dashboard_url': f"{get_app_base_url()}/dashboard",
            },
            organization_id=organization_id,
            metadata={'organization_name': organization_name, 'role': role, 'added_by_name': added_by_name},
        )

    def notify_client_assignment_required(
        self,
        admin_user_ids: Iterable[uuid.UUID],
        organization_id: uuid.UUID,
        organization_name: str,
        client_user: models.User,
    ) -> List[Dict[str, Any]]:
        """Ask organization admins to assign a new client-role user to a client."""
        url = f"{get_app_base_url()}/settings/clients"
        results = []
        for admin in self._users(admin_user_ids):
            results.append(self._notify(
                event_type=EVENT_CLIENT_ASSIGNMENT_REQUIRED,
                template_name=TEMPLATE_CLIENT_ASSIGNMENT_REQUIRED,
                user_id=admin.id,
                email=admin.email,
                title="Client assignment required",
                message=f"{client_user.email} joined {organization_name} as a client user and needs to be assigned to a client.",
                subject=f"Assign {client_user.email} to a client",
                context={
                    'recipient_name': self._name(admin),
                    'organization_name': organization_name,
                    'client_user_email': client_user.email,
                    'client_user_name': self._name(client_user),
                },
                action_url=url,
                action_text="Assign client",
                organization_id=organization_id,
                metadata={'client_user_id': str(client_user.id), 'client_user_email': client_user.email},
            ))
        return results

    def notify_stage_progress(
        self,
        user_id: uuid.UUID,
        mockup: models.Mockup,
        project: models.Project,
        stage_name: str,
    ) -> Dict[str, Any]:
        """In-app only: a mockup moved on to a new stage."""
        try:
            if not self.get_user_preferences(user_id)[EVENT_STAGE_PROGRESS]['in_app_enabled']:
                return {}
            notification = self.create_notification(
                user_id=user_id,
                event_type=EVENT_STAGE_PROGRESS,
                title=f"{mockup.mockup_name} moved to {stage_name}",
                message=f'"{mockup.mockup_name}" in {project.name} advanced to the {stage_name} stage.',
                action_url=build_project_url(project.id),
                organization_id=mockup.organization_id,
                related_asset_id=mockup.id,
                related_project_id=project.id,
                metadata={'stage_name': stage_name},
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create stage progress notification: {e}")
            return {}
        return {'in_app_notification': notification}

    # === Cleanup Methods ===

    def cleanup_expired_notifications(self) -> int:
        """Delete notifications past their expiry. Returns the count removed."""
        expired = self.db.query(models.Notification).filter(
            models.Notification.expires_at <= now_utc()
        )
        count = expired.count()
        expired.delete(synchronize_session=False)
        self.db.commit()
        return count


def get_notification_service(db: Session = None) -> NotificationService:
    """
    Get a NotificationService instance with a database session.
    If no session provided, gets one from the dependency.
    """
    if db is None:
        db = next(get_db())
    return NotificationService(db)
