from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
from decimal import Decimal
from enum import Enum

from src.services.clock import as_naive_utc

# ===== ENUMS =====

class GoalTypeEnum(str, Enum):
    SAVINGS = "savings"
    DEBT_PAYOFF = "debt_payoff"
    INVESTMENT = "investment"
    EMERGENCY_FUND = "emergency_fund"
    VACATION = "vacation"
    PURCHASE = "purchase"
    OTHER = "other"

class GoalPriorityEnum(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

# ===== GOAL MODELS =====

class GoalCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    target_amount: Decimal = Field(..., gt=0)
    current_amount: Decimal = Field(Decimal("0.00"), ge=0)
    target_date: datetime = Field(..., description="Must be in the future when the goal is created")
    type: GoalTypeEnum
    priority: GoalPriorityEnum = GoalPriorityEnum.MEDIUM

    @field_validator('name')
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()

    @field_validator('target_amount', 'current_amount')
    @classmethod
    def round_amounts(cls, v: Decimal) -> Decimal:
        return round(v, 2)

    @field_validator('target_date')
    @classmethod
    def normalize_target_date(cls, v: datetime) -> datetime:
        return as_naive_utc(v)

class GoalUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    type: Optional[GoalTypeEnum] = None
    priority: Optional[GoalPriorityEnum] = None

    @field_validator('name')
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v

class GoalContribution(BaseModel):
    amount: Decimal = Field(..., gt=0)

class GoalTargetUpdate(BaseModel):
    target_amount: Decimal = Field(..., gt=0)
    target_date: Optional[datetime] = None

    @field_validator('target_date')
    @classmethod
    def normalize_target_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_naive_utc(v)

class GoalResponse(BaseModel):
    id: int
    user_id: int
    name: str
    description: Optional[str] = None
    target_amount: Decimal
    current_amount: Decimal
    target_date: datetime
    type: GoalTypeEnum
    priority: GoalPriorityEnum
    is_active: bool
    is_achieved: bool
    achieved_date: Optional[datetime] = None
    progress_percentage: float
    remaining_amount: Decimal
    days_remaining: int
    monthly_contribution_needed: Decimal
    is_on_track: bool
    created_at: datetime
    updated_at: datetime

class GoalProgress(BaseModel):
    goal_id: int
    name: str
    target_amount: Decimal
    current_amount: Decimal
    progress_percentage: float
    expected_progress: float
    remaining_amount: Decimal
    days_remaining: int
    is_on_track: bool
    projected_completion_date: Optional[datetime] = None
    monthly_contribution_needed: Decimal
