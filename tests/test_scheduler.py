from datetime import datetime, timezone

from app.db import dynamo
from app.utils import scheduler
from app.utils.bill_notifier import BillNotificationScheduler, CollectingAlertSink, InMemoryDedupStore

NOW = datetime(2026, 10, 18, 10, 0, tzinfo=timezone.utc)

user_bills = {
    "user-1": [{"bill_id": "rent", "title": "Rent", "amount": 900, "due_date": "2026-10-19", "status": "pending"}],
    "user-2": [{"bill_id": "gym", "title": "Gym", "amount": 25, "due_date": "2026-10-10", "status": "overdue"}],
}


def test_periodic_job_checks_every_user(monkeypatch):
    def get_unpaid_bills(user_id):
        if user_id == "broken":
            raise RuntimeError("store down")
        return user_bills[user_id]

    monkeypatch.setattr(dynamo, "get_users_with_unpaid_bills", lambda: ["broken", "user-1", "user-2"])
    monkeypatch.setattr(dynamo, "get_unpaid_bills", get_unpaid_bills)

    store = InMemoryDedupStore()
    sink = CollectingAlertSink()
    notifier = BillNotificationScheduler(store, alert_sink=sink, clock=lambda: NOW)

    summary = scheduler.check_bill_notifications_job(notifier)
    assert summary == {"users": 3, "created": 2, "failed": 1}
    assert store.notifications["user-2"][0].message == "Gym was due 8 days ago"

    # A second run inside the window only hits the dedup markers
    assert scheduler.check_bill_notifications_job(notifier)["created"] == 0
    assert len(sink.alerts) == 2


def test_scheduler_status_when_stopped():
    assert scheduler.get_scheduler_status() == {"running": False}
