import os
from typing import Optional, List
from sqlalchemy import create_engine, ForeignKey, Index, UniqueConstraint, Boolean, Integer, String, Text, JSON, DECIMAL, DateTime
from sqlalchemy.types import Enum
from sqlalchemy.orm import sessionmaker, DeclarativeBase, Mapped, relationship, mapped_column
from datetime import datetime
from decimal import Decimal
import enum


DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///pocket_planner.db")


class NotFoundError(Exception):
    pass


class Base(DeclarativeBase):
    pass


class RecurrenceType(enum.Enum):
    MONTHLY = "monthly"
    WEEKLY = "weekly"
    YEARLY = "yearly"
    CUSTOM = "custom"


class BudgetPeriod(enum.Enum):
    MONTHLY = "monthly"
    WEEKLY = "weekly"
    YEARLY = "yearly"


class GoalType(enum.Enum):
    SAVINGS = "savings"
    DEBT_PAYOFF = "debt_payoff"
    INVESTMENT = "investment"
    EMERGENCY_FUND = "emergency_fund"
    VACATION = "vacation"
    PURCHASE = "purchase"
    OTHER = "other"


class GoalPriority(enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# Sort weight for "highest priority first" listings
GOAL_PRIORITY_RANK = {
    GoalPriority.HIGH: 3,
    GoalPriority.MEDIUM: 2,
    GoalPriority.LOW: 1,
}


class UserDB(Base):
    __tablename__ = "users"

    __table_args__ = (
        UniqueConstraint("email", name="uq_user_email"),
        UniqueConstraint("username", name="uq_user_username"),
        Index("idx_users_email", "email"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    first_name: Mapped[Optional[str]] = mapped_column(String(100))
    last_name: Mapped[Optional[str]] = mapped_column(String(100))

    # Audit Trail
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    bills = relationship("BillDB", back_populates="user")
    budgets = relationship("BudgetDB", back_populates="user")
    goals = relationship("GoalDB", back_populates="user")


class BillDB(Base):
    __tablename__ = "bills"

    __table_args__ = (
        Index("idx_bills_user_active", "user_id", "is_active"),
        Index("idx_bills_user_next_due", "user_id", "next_due_date"),
        Index("idx_bills_user_category", "user_id", "category"),
        Index("idx_bills_next_due_active", "next_due_date", "is_active"),
    )

    # Primary Key
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Foreign Key
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)

    # Bill Data
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    amount: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    is_auto_pay: Mapped[bool] = mapped_column(Boolean, default=False)
    reminder_days: Mapped[List[int]] = mapped_column(JSON, default=list)

    # Schedule
    due_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)  # anchor for recurrence stepping
    recurrence_type: Mapped[RecurrenceType] = mapped_column(Enum(RecurrenceType), nullable=False)
    recurrence_interval: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    recurrence_end_date: Mapped[Optional[datetime]] = mapped_column(DateTime)
    next_due_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    last_paid_date: Mapped[Optional[datetime]] = mapped_column(DateTime)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Audit Trail
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("UserDB", back_populates="bills")


class BudgetDB(Base):
    __tablename__ = "budgets"

    __table_args__ = (
        Index("idx_budgets_user_active", "user_id", "is_active"),
        Index("idx_budgets_user_category", "user_id", "category"),
        Index("idx_budgets_user_window", "user_id", "start_date", "end_date"),
    )

    # Primary Key
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Foreign Key
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)

    # Budget Data
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    limit: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)
    period: Mapped[BudgetPeriod] = mapped_column(Enum(BudgetPeriod), nullable=False)
    spent: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False, default=Decimal("0.00"))
    start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Notification toggles
    notify_at_75_percent: Mapped[bool] = mapped_column(Boolean, default=True)
    notify_at_90_percent: Mapped[bool] = mapped_column(Boolean, default=True)
    notify_at_limit: Mapped[bool] = mapped_column(Boolean, default=True)

    # Audit Trail
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("UserDB", back_populates="budgets")


class GoalDB(Base):
    __tablename__ = "goals"

    __table_args__ = (
        Index("idx_goals_user_active", "user_id", "is_active"),
        Index("idx_goals_user_type", "user_id", "goal_type"),
        Index("idx_goals_user_priority", "user_id", "priority"),
        Index("idx_goals_user_target_date", "user_id", "target_date"),
        Index("idx_goals_user_achieved", "user_id", "is_achieved"),
    )

    # Primary Key
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Foreign Key
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)

    # Goal Data
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    target_amount: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)
    current_amount: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False, default=Decimal("0.00"))
    target_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    goal_type: Mapped[GoalType] = mapped_column(Enum(GoalType), nullable=False)
    priority: Mapped[GoalPriority] = mapped_column(Enum(GoalPriority), nullable=False, default=GoalPriority.MEDIUM)

    # Status
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    is_achieved: Mapped[bool] = mapped_column(Boolean, default=False)
    achieved_date: Mapped[Optional[datetime]] = mapped_column(DateTime)

    # Audit Trail (created_at is also the contribution-velocity baseline)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("UserDB", back_populates="goals")


engine = create_engine(DATABASE_URL, echo=os.getenv("SQL_ECHO", "false").lower() == "true")
session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Dependency to get the database session
def get_db():
    database = session_local()
    try:
        yield database
    finally:
        database.close()
