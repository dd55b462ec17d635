from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Literal
from datetime import datetime
from decimal import Decimal
from enum import Enum

from src.services.clock import as_naive_utc

# ===== ENUMS =====

class BudgetPeriodEnum(str, Enum):
    MONTHLY = "monthly"
    WEEKLY = "weekly"
    YEARLY = "yearly"

# ===== BUDGET PYDANTIC MODELS =====

class BudgetNotifications(BaseModel):
    at_75_percent: bool = True
    at_90_percent: bool = True
    at_limit: bool = True

class BudgetCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Budget name")
    category: str = Field(..., min_length=1, max_length=50)
    limit: Decimal = Field(..., gt=0, description="Spending limit for the period")
    period: BudgetPeriodEnum
    start_date: datetime = Field(..., description="Budget start date")
    end_date: datetime = Field(..., description="Budget end date")
    notifications: BudgetNotifications = Field(default_factory=BudgetNotifications)

    @field_validator('name', 'category')
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()

    @field_validator('limit')
    @classmethod
    def validate_limit(cls, v: Decimal) -> Decimal:
        return round(v, 2)

    @field_validator('start_date')
    @classmethod
    def normalize_start_date(cls, v: datetime) -> datetime:
        return as_naive_utc(v)

    @field_validator('end_date')
    @classmethod
    def validate_end_date(cls, v: datetime, info) -> datetime:
        v = as_naive_utc(v)
        if 'start_date' in info.data and v <= info.data['start_date']:
            raise ValueError('end_date must be after start_date')
        return v

class BudgetUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    category: Optional[str] = Field(None, min_length=1, max_length=50)
    limit: Optional[Decimal] = Field(None, gt=0)
    period: Optional[BudgetPeriodEnum] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    notifications: Optional[BudgetNotifications] = None

    @field_validator('name', 'category')
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v

    @field_validator('start_date', 'end_date')
    @classmethod
    def normalize_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_naive_utc(v)

class BudgetSpentUpdate(BaseModel):
    """Absolute spent total; negative values clamp to zero"""
    amount: Decimal

class BudgetSpentIncrement(BaseModel):
    delta: Decimal

class BudgetPeriodReset(BaseModel):
    start_date: datetime
    end_date: datetime

    @field_validator('start_date')
    @classmethod
    def normalize_start_date(cls, v: datetime) -> datetime:
        return as_naive_utc(v)

    @field_validator('end_date')
    @classmethod
    def validate_end_date(cls, v: datetime, info) -> datetime:
        v = as_naive_utc(v)
        if 'start_date' in info.data and v <= info.data['start_date']:
            raise ValueError('end_date must be after start_date')
        return v

class BudgetResponse(BaseModel):
    id: int
    user_id: int
    name: str
    category: str
    limit: Decimal
    period: BudgetPeriodEnum
    spent: Decimal
    start_date: datetime
    end_date: datetime
    is_active: bool
    notifications: BudgetNotifications
    remaining: Decimal
    percentage_used: float
    is_over_budget: bool
    days_remaining: int
    created_at: datetime
    updated_at: datetime

class BudgetNotificationCheck(BaseModel):
    budget_id: int
    percentage_used: float
    thresholds: List[str]

class BudgetPerformance(BaseModel):
    budget_id: int
    name: str
    category: str
    budgeted: Decimal
    spent: Decimal
    variance: Decimal
    performance: Literal["under", "on-track", "over"]

class BudgetReport(BaseModel):
    """Planned vs actual spending across the budgets overlapping a window"""
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None
    budgets: List[BudgetPerformance]
    total_budgeted: Decimal
    total_spent: Decimal
    overall_performance: Literal["under", "on-track", "over"]
