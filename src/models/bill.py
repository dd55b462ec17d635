from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from enum import Enum

from src.services.clock import as_naive_utc

# ===== ENUMS =====

class RecurrenceTypeEnum(str, Enum):
    MONTHLY = "monthly"
    WEEKLY = "weekly"
    YEARLY = "yearly"
    CUSTOM = "custom"

# ===== RECURRENCE =====

class BillRecurrence(BaseModel):
    type: RecurrenceTypeEnum = Field(..., description="Recurrence unit")
    interval: int = Field(1, ge=1, description="Number of units between occurrences (days for custom)")
    end_date: Optional[datetime] = Field(None, description="Last date an occurrence may fall on")

    @field_validator('end_date')
    @classmethod
    def normalize_end_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_naive_utc(v)


def _clean_reminder_days(v: Optional[List[int]]) -> Optional[List[int]]:
    if v is None:
        return v
    for day in v:
        if day < 0 or day > 365:
            raise ValueError('reminder_days must be between 0 and 365')
    return sorted(set(v), reverse=True)

# ===== BILL MODELS =====

class BillCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    amount: Decimal = Field(..., ge=0, description="Bill amount")
    due_date: datetime = Field(..., description="Original due date the recurrence is anchored to")
    recurrence: BillRecurrence
    category: str = Field(..., min_length=1, max_length=50)
    is_auto_pay: bool = False
    reminder_days: List[int] = Field(default_factory=list, description="Days before due date to send reminders")

    @field_validator('name', 'category')
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        return round(v, 2)

    @field_validator('due_date')
    @classmethod
    def normalize_due_date(cls, v: datetime) -> datetime:
        return as_naive_utc(v)

    @field_validator('reminder_days')
    @classmethod
    def validate_reminder_days(cls, v: List[int]) -> List[int]:
        return _clean_reminder_days(v)

    @model_validator(mode='after')
    def validate_end_date(self) -> 'BillCreate':
        end_date = self.recurrence.end_date
        if end_date is not None and end_date < self.due_date:
            raise ValueError('recurrence end_date must not be before due_date')
        return self

class BillUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    due_date: Optional[datetime] = None
    recurrence: Optional[BillRecurrence] = None
    category: Optional[str] = Field(None, min_length=1, max_length=50)
    is_auto_pay: Optional[bool] = None
    reminder_days: Optional[List[int]] = None

    @field_validator('name', 'category')
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v

    @field_validator('due_date')
    @classmethod
    def normalize_due_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_naive_utc(v)

    @field_validator('reminder_days')
    @classmethod
    def validate_reminder_days(cls, v: Optional[List[int]]) -> Optional[List[int]]:
        return _clean_reminder_days(v)

class BillAmountUpdate(BaseModel):
    amount: Decimal = Field(..., ge=0)

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        return round(v, 2)

class BillPayment(BaseModel):
    paid_date: Optional[datetime] = Field(None, description="Defaults to the time of the request")

    @field_validator('paid_date')
    @classmethod
    def normalize_paid_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_naive_utc(v)

class BillResponse(BaseModel):
    id: int
    user_id: int
    name: str
    amount: Decimal
    category: str
    due_date: datetime
    recurrence: BillRecurrence
    is_auto_pay: bool
    reminder_days: List[int]
    last_paid_date: Optional[datetime] = None
    next_due_date: datetime
    is_active: bool
    days_until_due: int
    is_overdue: bool
    created_at: datetime
    updated_at: datetime

class UpcomingBill(BaseModel):
    """Lightweight view of a bill for due-soon listings"""
    bill_id: int
    name: str
    amount: Decimal
    due_date: datetime
    days_until_due: int
    is_overdue: bool
    is_auto_pay: bool
    category: str
