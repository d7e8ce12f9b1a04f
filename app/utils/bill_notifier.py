"""
Bill Notification Scheduler
Classifies unpaid bills by urgency and creates at most one notification per
(bill, classification) inside a rolling dedup window.
"""
from __future__ import annotations

import logging
import math
import threading
import weakref
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple, Union

from pydantic import ValidationError

from app.models.bill import Bill, BillStatus, Classification, Notification, Severity, to_utc_datetime

logger = logging.getLogger(__name__)

DEFAULT_DEDUP_WINDOW = timedelta(hours=12)
SECONDS_PER_DAY = 24 * 60 * 60

SEVERITIES: Dict[Classification, Severity] = {
    Classification.DUE_TOMORROW: Severity.WARNING,
    Classification.DUE_TODAY: Severity.ERROR,
    Classification.OVERDUE: Severity.ERROR,
}


class NotificationStoreError(Exception):
    """Raised when the data store cannot check or record a notification."""


class DedupStore(Protocol):
    def has_recent(
        self, user_id: str, bill_id: str, classification: Classification, window_start: datetime
    ) -> bool:
        ...

    def create_if_absent(self, user_id: str, notification: Notification, window_start: datetime) -> bool:
        """
        Atomically write the notification and record its emission time, unless
        one for the same (bill, classification) was recorded at or after
        window_start. Returns False when deduplicated.
        """
        ...


@dataclass
class Alert:
    """Toast + sound signal for the frontend, one per newly created notification."""

    notification_id: str
    message: str
    icon: str
    play_sound: bool = True
    duration_ms: int = 5000


AlertSink = Callable[[Alert], None]


def log_alert(alert: Alert) -> None:
    logger.info(f"Bill alert {alert.notification_id}: {alert.message}")


class CollectingAlertSink:
    def __init__(self) -> None:
        self.alerts: List[Alert] = []

    def __call__(self, alert: Alert) -> None:
        self.alerts.append(alert)


@dataclass
class CheckResult:
    created: List[Notification] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)


class InMemoryDedupStore:
    """Process-local store. Check and write happen under one lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sent: Dict[Tuple[str, str, str], datetime] = {}
        self.notifications: Dict[str, List[Notification]] = defaultdict(list)

    def has_recent(self, user_id, bill_id, classification, window_start) -> bool:
        with self._lock:
            sent_at = self._sent.get((user_id, bill_id, Classification(classification).value))
        return sent_at is not None and sent_at >= window_start

    def create_if_absent(self, user_id, notification, window_start) -> bool:
        key = (user_id, notification.bill_id, Classification(notification.notification_type).value)
        with self._lock:
            sent_at = self._sent.get(key)
            if sent_at is not None and sent_at >= window_start:
                return False
            self.notifications[user_id].append(notification)
            self._sent[key] = notification.created_at
            return True


def days_until_due(bill: Bill, today: Union[datetime, Any]) -> int:
    """Whole days until the due date, partial days rounded up."""
    delta = bill.due_date - to_utc_datetime(today)
    return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)


def classify(bill: Bill, today: Union[datetime, Any]) -> Optional[Classification]:
    if bill.status == BillStatus.PAID:
        return None

    days_diff = days_until_due(bill, today)
    if days_diff == 1:
        return Classification.DUE_TOMORROW
    if days_diff == 0:
        return Classification.DUE_TODAY
    if days_diff < 0:
        return Classification.OVERDUE
    return None


def _format_amount(amount: float) -> str:
    return str(int(amount)) if float(amount).is_integer() else str(float(amount))


def build_notification(bill: Bill, classification: Classification, now: datetime) -> Notification:
    amount = f"{_format_amount(bill.amount)} {bill.currency}"
    if classification == Classification.DUE_TOMORROW:
        title = "Bill Due Tomorrow"
        message = f"{bill.title} is due tomorrow ({amount})"
    elif classification == Classification.DUE_TODAY:
        title = "Bill Due Today"
        message = f"{bill.title} is due today ({amount})"
    else:
        days = abs(days_until_due(bill, now))
        title = "Overdue Bill"
        message = f"{bill.title} was due {days} day{'' if days == 1 else 's'} ago"

    return Notification(
        title=title,
        message=message,
        severity=SEVERITIES[classification],
        read=False,
        created_at=now,
        bill_id=bill.bill_id,
        due_date=bill.due_date,
        requires_confirmation=True,
        notification_type=classification,
    )


def to_alert(notification: Notification) -> Alert:
    icon = "⚠️" if notification.severity == Severity.WARNING else "🚨"
    return Alert(notification_id=notification.notification_id, message=notification.message, icon=icon)


class BillNotificationScheduler:
    """
    Decides which bill notifications to create for a user.

    ``check_all`` may be triggered concurrently (login hook and periodic job).
    A per-user lock serializes runs inside this process and the store's
    ``create_if_absent`` keeps check-and-write atomic across processes.
    """

    def __init__(
        self,
        store: DedupStore,
        alert_sink: Optional[AlertSink] = None,
        clock: Optional[Callable[[], datetime]] = None,
        window: timedelta = DEFAULT_DEDUP_WINDOW,
    ) -> None:
        self._store = store
        self._alert_sink = alert_sink or log_alert
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._window = window
        # Entries drop out once no run for that user holds the lock
        self._locks = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    @property
    def window(self) -> timedelta:
        return self._window

    def _user_lock(self, user_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[user_id] = lock
            return lock

    def _notify(
        self, user_id: str, bill: Bill, classification: Classification, now: datetime, window_start: datetime
    ) -> Optional[Notification]:
        if self._store.has_recent(user_id, bill.bill_id, classification, window_start):
            return None

        notification = build_notification(bill, classification, now)
        if not self._store.create_if_absent(user_id, notification, window_start):
            return None
        return notification

    def check_all(
        self,
        user_id: str,
        bills: Sequence[Union[Bill, Mapping[str, Any]]],
        now: Optional[datetime] = None,
        alert_sink: Optional[AlertSink] = None,
    ) -> CheckResult:
        now = to_utc_datetime(now or self._clock())
        window_start = now - self._window
        sink = alert_sink or self._alert_sink
        result = CheckResult()

        lock = self._user_lock(user_id)
        with lock:
            for raw in bills:
                try:
                    bill = raw if isinstance(raw, Bill) else Bill.model_validate(raw)
                except ValidationError as e:
                    bill_id = raw.get("bill_id", "unknown") if isinstance(raw, Mapping) else "unknown"
                    logger.error(f"Skipping malformed bill {bill_id} for user {user_id}: {e}")
                    result.failed[str(bill_id)] = "invalid bill"
                    continue

                classification = classify(bill, now)
                if classification is None:
                    continue

                try:
                    notification = self._notify(user_id, bill, classification, now, window_start)
                except NotificationStoreError as e:
                    logger.error(f"Bill notification failed for user {user_id}, bill {bill.bill_id}: {e}")
                    result.failed[bill.bill_id] = str(e)
                    continue

                if notification is None:
                    result.skipped.append(bill.bill_id)
                    continue

                result.created.append(notification)
                logger.info(
                    f"Created {classification.value} notification for user {user_id}, bill {bill.bill_id}"
                )
                try:
                    sink(to_alert(notification))
                except Exception as e:
                    logger.error(f"Alert delivery failed for bill {bill.bill_id}: {e}", exc_info=True)

        return result
