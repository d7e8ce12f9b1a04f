"""
Notifications Router
Lists bill notifications and lets the user mark them read or confirm them
"""
from typing import Dict

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.security import get_current_user_id
from app.db import dynamo

router = APIRouter()


@router.get("/")
def get_notifications(
    unread_only: bool = Query(default=False),
    user_id: str = Depends(get_current_user_id),
) -> Dict:
    notifications = dynamo.list_notifications(user_id, unread_only=unread_only)

    severity_counts = {
        severity: len([n for n in notifications if n.get("severity") == severity])
        for severity in ("error", "warning", "info", "success")
    }

    return {
        "notifications": notifications,
        "count": len(notifications),
        "unread_count": len([n for n in notifications if not n.get("read")]),
        "severity_counts": severity_counts,
    }


@router.post("/read-all")
def mark_all_read(user_id: str = Depends(get_current_user_id)) -> Dict:
    return {"updated": dynamo.mark_all_notifications_read(user_id)}


@router.post("/{notification_id}/read")
def mark_read(notification_id: str, user_id: str = Depends(get_current_user_id)) -> Dict:
    updated = dynamo.update_notification(user_id, notification_id, {"read": True})
    if not updated:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return updated


@router.post("/{notification_id}/confirm")
def confirm(notification_id: str, user_id: str = Depends(get_current_user_id)) -> Dict:
    """Confirm a bill reminder; the related bill is flagged as acknowledged."""
    updated = dynamo.confirm_notification(user_id, notification_id)
    if not updated:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return updated
