"""
Scheduler Service
Runs the periodic bill notification check using APScheduler
"""
import logging
from datetime import timedelta

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.core.config import settings
from app.db import dynamo
from app.utils.bill_notifier import BillNotificationScheduler, log_alert

logger = logging.getLogger(__name__)

JOB_ID = "bill_notifications_check"

# Shared by the login-hook endpoint and the periodic job so both go through the same per-user locks
bill_notifier = BillNotificationScheduler(
    dynamo.DynamoNotificationStore(),
    alert_sink=log_alert,
    window=timedelta(hours=settings.BILL_NOTIFICATION_WINDOW_HOURS),
)

scheduler: BackgroundScheduler = None


def get_bill_notifier() -> BillNotificationScheduler:
    return bill_notifier


def check_bill_notifications_job(notifier: BillNotificationScheduler = None) -> dict:
    """Check every user with unpaid bills. One user's failure does not stop the others."""
    notifier = notifier or bill_notifier
    users = dynamo.get_users_with_unpaid_bills()
    logger.info(f"Executing bill notification check for {len(users)} users...")

    summary = {"users": len(users), "created": 0, "failed": 0}
    for user_id in users:
        try:
            bills = dynamo.get_unpaid_bills(user_id)
            result = notifier.check_all(user_id, bills)
        except Exception as e:
            logger.error(f"Bill notification check failed for user {user_id}: {str(e)}", exc_info=True)
            summary["failed"] += 1
            continue
        summary["created"] += len(result.created)
        summary["failed"] += len(result.failed)

    logger.info(f"Bill notification check finished: {summary}")
    return summary


def start_scheduler():
    """Start the background scheduler with the periodic bill check"""
    global scheduler

    if scheduler is not None:
        logger.warning("Scheduler is already running")
        return

    scheduler = BackgroundScheduler()
    scheduler.add_job(
        check_bill_notifications_job,
        trigger=IntervalTrigger(hours=settings.BILL_CHECK_INTERVAL_HOURS),
        id=JOB_ID,
        name="Bill notifications check",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(f"Scheduler started, checking bills every {settings.BILL_CHECK_INTERVAL_HOURS} hours.")


def stop_scheduler():
    """Stop the background scheduler"""
    global scheduler

    if scheduler is not None:
        scheduler.shutdown()
        scheduler = None
        logger.info("Scheduler stopped")


def get_scheduler_status():
    """Get current scheduler status"""
    if scheduler is None:
        return {"running": False}

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run": str(job.next_run_time) if job.next_run_time else None
        })

    return {
        "running": scheduler.running,
        "jobs": jobs
    }
