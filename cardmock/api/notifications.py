"""
Notification API Endpoints

Provides REST API for managing notifications and user preferences.
Supports both in-app notifications and email notification preferences.
"""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from cardmock.db.database import get_db
from cardmock.db import schemas
from cardmock.api.deps import get_current_user_context
from cardmock.services.notification_service import NotificationService, ALL_EVENT_TYPES


router = APIRouter(tags=["notifications"])


@router.get("/", response_model=schemas.NotificationListResponse)
def get_notifications(
    unread_only: bool = False,
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context)
):
    """
    Get notifications for the current user.

    - **unread_only**: If true, only return unread notifications
    - **limit**: Maximum number of notifications to return (default 50)
    """
    user, current_user = user_context

    service = NotificationService(db)
    notifications = service.get_user_notifications(
        user_id=user.id,
        unread_only=unread_only,
        limit=limit
    )

    unread_count = service.get_unread_count(user.id)

    return schemas.NotificationListResponse(
        notifications=notifications,
        unread_count=unread_count,
        total_count=len(notifications)
    )


@router.get("/unread-count")
def get_unread_count(
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context)
):
    user, current_user = user_context
    return {"unread_count": NotificationService(db).get_unread_count(user.id)}


@router.post("/read-all")
def mark_all_notifications_read(
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context)
):
    user, current_user = user_context
    count = NotificationService(db).mark_all_read(user.id)
    return {"marked_read": count}


@router.post("/{notification_id}/read", status_code=status.HTTP_204_NO_CONTENT)
def mark_notification_read(
    notification_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context)
):
    """
    Mark a specific notification as read.
    """
    user, current_user = user_context

    service = NotificationService(db)
    success = service.mark_notification_read(notification_id, user.id)

    if not success:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found"
        )


@router.get("/preferences", response_model=schemas.NotificationPreferencesResponse)
def get_notification_preferences(
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context)
):
    """
    Get notification preferences for the current user.
    """
    user, current_user = user_context

    service = NotificationService(db)
    preferences = service.get_user_preferences(user.id)

    return schemas.NotificationPreferencesResponse(preferences=preferences)


@router.put("/preferences/{event_type}", response_model=schemas.UserNotificationPreference)
def update_notification_preference(
    event_type: str,
    preference_update: schemas.UserNotificationPreferenceUpdate,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context)
):
    """
    Update notification preferences for a specific event type.

    Unspecified channels keep their current value.
    """
    user, current_user = user_context

    if event_type not in ALL_EVENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid event type. Must be one of: {', '.join(ALL_EVENT_TYPES)}"
        )

    service = NotificationService(db)

    current_prefs = service.get_user_preferences(user.id)
    current_event_prefs = current_prefs.get(event_type, {'email_enabled': True, 'in_app_enabled': True})

    email_enabled = preference_update.email_enabled
    if email_enabled is None:
        email_enabled = current_event_prefs['email_enabled']

    in_app_enabled = preference_update.in_app_enabled
    if in_app_enabled is None:
        in_app_enabled = current_event_prefs['in_app_enabled']

    return service.set_user_preference(
        user_id=user.id,
        event_type=event_type,
        email_enabled=email_enabled,
        in_app_enabled=in_app_enabled
    )


@router.delete("/cleanup/expired")
def cleanup_expired_notifications(
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context)
):
    """
    Clean up expired notifications.
    This endpoint is for admin/maintenance purposes.
    """
    user, current_user = user_context

    if not user.is_superadmin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )

    service = NotificationService(db)
    count = service.cleanup_expired_notifications()

    return {"message": f"Cleaned up {count} expired notifications"}
