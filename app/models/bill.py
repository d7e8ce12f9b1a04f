from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator


class BillStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


class BillFrequency(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"
    ONE_TIME = "one_time"


class Severity(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class Classification(str, Enum):
    """Urgency of an unpaid bill relative to today. Doubles as the dedup key."""

    DUE_TOMORROW = "due-tomorrow"
    DUE_TODAY = "due-today"
    OVERDUE = "overdue"


def to_utc_datetime(value: Any) -> Any:
    """
    Normalize dates and datetimes to aware UTC datetimes.
    Plain dates (and "YYYY-MM-DD" strings) mean midnight UTC; naive datetimes are taken as UTC.
    """
    if isinstance(value, str) and len(value) == 10:
        value = date.fromisoformat(value)
    elif isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    return value


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BillCreate(BaseModel):
    title: str
    amount: float = Field(ge=0)
    currency: str = "USD"
    due_date: datetime
    category: str = "other"
    frequency: BillFrequency = BillFrequency.MONTHLY

    @field_validator("due_date", mode="before")
    @classmethod
    def normalize_due_date(cls, value):
        return to_utc_datetime(value)


class Bill(BaseModel):
    """A stored bill, as read back from the data store."""

    bill_id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: Optional[str] = None
    title: str
    amount: float
    currency: str = "USD"
    due_date: datetime
    status: BillStatus = BillStatus.PENDING
    category: str = "other"
    frequency: BillFrequency = BillFrequency.MONTHLY
    created_at: datetime = Field(default_factory=_utcnow)
    last_notification_acknowledged: bool = False
    last_acknowledged_at: Optional[datetime] = None

    @field_validator("due_date", "created_at", "last_acknowledged_at", mode="before")
    @classmethod
    def normalize_dates(cls, value):
        return to_utc_datetime(value)


class BillStatusUpdate(BaseModel):
    status: BillStatus


class Notification(BaseModel):
    notification_id: str = Field(default_factory=lambda: str(uuid4()))
    title: str
    message: str
    severity: Severity
    read: bool = False
    created_at: datetime = Field(default_factory=_utcnow)
    bill_id: Optional[str] = None
    due_date: Optional[datetime] = None
    requires_confirmation: bool = False
    notification_type: Optional[Classification] = None
    confirmed: bool = False
    confirmed_at: Optional[datetime] = None

    @field_validator("created_at", "due_date", "confirmed_at", mode="before")
    @classmethod
    def normalize_dates(cls, value):
        return to_utc_datetime(value)
