from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from app.models.bill import to_utc_datetime


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TransactionCreate(BaseModel):
    amount: float = Field(ge=0)
    type: TransactionType
    category: str
    date: datetime = Field(default_factory=_utcnow)
    description: Optional[str] = ""
    currency: str = "USD"

    @field_validator("date", mode="before")
    @classmethod
    def normalize_date(cls, value):
        return to_utc_datetime(value)


class TransactionInDB(BaseModel):
    user_id: str
    transaction_id: str = ""
    amount: float
    type: TransactionType
    category: str
    date: datetime
    description: Optional[str] = ""
    currency: str = "USD"

    @field_validator("date", mode="before")
    @classmethod
    def normalize_date(cls, value):
        return to_utc_datetime(value)

    def model_post_init(self, __context) -> None:
        # Sort key starts with the date so a reverse query returns newest first
        if not self.transaction_id:
            self.transaction_id = f"{self.date.isoformat(timespec='microseconds')}#{uuid4().hex[:8]}"


class TransactionPublic(BaseModel):
    transaction_id: str
    amount: float
    type: TransactionType
    category: str
    date: datetime
    description: Optional[str] = ""
    currency: str = "USD"
