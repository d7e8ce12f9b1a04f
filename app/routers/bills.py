"""
Bills Router
Bill bookkeeping plus the on-login notification check
"""
import logging
from typing import Dict

from fastapi import APIRouter, Depends, HTTPException, status

from app.core.security import get_current_user_id
from app.db import dynamo
from app.models.bill import Bill, BillCreate, BillStatusUpdate
from app.utils.bill_notifier import BillNotificationScheduler, CollectingAlertSink
from app.utils.scheduler import get_bill_notifier

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/", response_model=Bill, status_code=status.HTTP_201_CREATED)
def create_bill(bill: BillCreate, user_id: str = Depends(get_current_user_id)):
    bill_db = Bill(user_id=user_id, **bill.model_dump())
    success = dynamo.put_bill(bill_db.model_dump(mode="json"))
    if not success:
        raise HTTPException(status_code=500, detail="Failed to save bill")
    return bill_db


@router.get("/")
def list_unpaid_bills(user_id: str = Depends(get_current_user_id)) -> Dict:
    """Bills that are not paid yet, ordered by due date."""
    bills = dynamo.get_unpaid_bills(user_id)
    return {"bills": bills, "count": len(bills)}


@router.patch("/{bill_id}/status", response_model=Bill)
def update_bill_status(
    bill_id: str,
    update: BillStatusUpdate,
    user_id: str = Depends(get_current_user_id),
):
    updated = dynamo.update_bill(user_id, bill_id, {"status": update.status.value})
    if not updated:
        raise HTTPException(status_code=404, detail="Bill not found")
    return Bill.model_validate(updated)


@router.post("/check")
def check_bill_notifications(
    user_id: str = Depends(get_current_user_id),
    notifier: BillNotificationScheduler = Depends(get_bill_notifier),
) -> Dict:
    """
    Run the bill notification check for the caller. The frontend calls this
    right after sign-in and shows the returned toasts.
    """
    bills = dynamo.get_unpaid_bills(user_id)
    sink = CollectingAlertSink()
    result = notifier.check_all(user_id, bills, alert_sink=sink)
    if result.failed:
        logger.warning(f"Bill check for user {user_id} had {len(result.failed)} failures")

    return {
        "notifications": [n.model_dump(mode="json") for n in result.created],
        "toasts": [
            {
                "notification_id": alert.notification_id,
                "message": alert.message,
                "icon": alert.icon,
                "play_sound": alert.play_sound,
                "duration_ms": alert.duration_ms,
            }
            for alert in sink.alerts
        ],
        "skipped": len(result.skipped),
        "failed": result.failed,
    }
