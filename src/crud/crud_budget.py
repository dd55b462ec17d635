from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from sqlalchemy import desc
from typing import Optional, List, Set, Tuple
from datetime import datetime
from decimal import Decimal

from src.db.core import BudgetDB, UserDB, BudgetPeriod, NotFoundError
from src.db.store import DocumentStore
from src.logging_config import get_logger
from src.models.budget import (
    BudgetCreate,
    BudgetUpdate,
    BudgetNotifications,
    BudgetResponse,
    BudgetPerformance,
    BudgetReport,
)
from src.services import progress

logger = get_logger(__name__)

NOTIFICATION_FIELDS = {
    'at_75_percent': 'notify_at_75_percent',
    'at_90_percent': 'notify_at_90_percent',
    'at_limit': 'notify_at_limit',
}


# ===== DATABASE OPERATIONS =====

def create_db_budget(db: Session, user_id: int, budget_data: BudgetCreate, now: datetime) -> BudgetDB:
    """Create a new budget with an empty spent total"""

    user = db.query(UserDB).filter(UserDB.id == user_id).first()
    if not user:
        raise NotFoundError(f"User with id {user_id} not found")

    db_budget = BudgetDB(
        user_id=user_id,
        name=budget_data.name,
        category=budget_data.category,
        limit=budget_data.limit,
        period=BudgetPeriod(budget_data.period.value),
        spent=Decimal("0.00"),
        start_date=budget_data.start_date,
        end_date=budget_data.end_date,
        is_active=True,
        notify_at_75_percent=budget_data.notifications.at_75_percent,
        notify_at_90_percent=budget_data.notifications.at_90_percent,
        notify_at_limit=budget_data.notifications.at_limit,
        created_at=now,
        updated_at=now,
    )

    try:
        db_budget = DocumentStore(db, BudgetDB).save(db_budget)
    except IntegrityError:
        raise ValueError("Budget creation failed due to database constraint")

    logger.info(f"Created budget {db_budget.id} '{db_budget.name}' for user {user_id}")
    return db_budget


def read_db_budget(db: Session, budget_id: int, user_id: int) -> Optional[BudgetDB]:
    return DocumentStore(db, BudgetDB).get(budget_id, user_id=user_id)


def read_db_budgets(db: Session, user_id: int, now: datetime, skip: int = 0, limit: int = 100,
                    active_only: bool = False) -> List[BudgetDB]:
    """Read all budgets for a user, newest first.

    With ``active_only`` the list keeps budgets that are flagged active and
    whose window has not closed by ``now``.
    """

    query = db.query(BudgetDB).filter(BudgetDB.user_id == user_id)
    if active_only:
        query = query.filter(BudgetDB.is_active == True, BudgetDB.end_date >= now)

    return query.order_by(desc(BudgetDB.created_at)).offset(skip).limit(limit).all()


def get_current_budgets(db: Session, user_id: int, now: datetime) -> List[BudgetDB]:
    """Active budgets whose window contains ``now``"""

    return db.query(BudgetDB).filter(
        BudgetDB.user_id == user_id,
        BudgetDB.is_active == True,
        BudgetDB.start_date <= now,
        BudgetDB.end_date >= now
    ).order_by(BudgetDB.name).all()


def get_budgets_by_category(db: Session, user_id: int, category: str) -> List[BudgetDB]:
    return db.query(BudgetDB).filter(
        BudgetDB.user_id == user_id,
        BudgetDB.category == category,
        BudgetDB.is_active == True
    ).all()


def _get_owned_budget(db: Session, budget_id: int, user_id: int) -> BudgetDB:
    db_budget = read_db_budget(db, budget_id, user_id)
    if not db_budget:
        raise NotFoundError(f"Budget with id {budget_id} not found")
    return db_budget


def update_db_budget(db: Session, budget_id: int, user_id: int, budget_updates: BudgetUpdate, now: datetime) -> BudgetDB:
    """Update an existing budget"""

    db_budget = _get_owned_budget(db, budget_id, user_id)
    update_data = budget_updates.model_dump(exclude_unset=True)

    # Validate date range against whichever side is not being replaced
    if 'start_date' in update_data and 'end_date' in update_data:
        if update_data['end_date'] <= update_data['start_date']:
            raise ValueError("end_date must be after start_date")
    elif 'start_date' in update_data:
        if update_data['start_date'] >= db_budget.end_date:
            raise ValueError("start_date must be before current end_date")
    elif 'end_date' in update_data:
        if update_data['end_date'] <= db_budget.start_date:
            raise ValueError("end_date must be after current start_date")

    update_data.pop('notifications', None)
    if budget_updates.notifications is not None:
        # Only the flags sent in the request change
        for key, value in budget_updates.notifications.model_dump(exclude_unset=True).items():
            setattr(db_budget, NOTIFICATION_FIELDS[key], value)

    if 'period' in update_data:
        update_data['period'] = BudgetPeriod(budget_updates.period.value)

    for field, value in update_data.items():
        setattr(db_budget, field, value)

    db_budget.updated_at = now

    try:
        return DocumentStore(db, BudgetDB).save(db_budget)
    except IntegrityError:
        raise ValueError("Budget update failed due to database constraint")


def set_db_budget_spent(db: Session, budget_id: int, user_id: int, amount: Decimal, now: datetime) -> BudgetDB:
    """Replace the spent total; negative amounts clamp to zero"""

    db_budget = _get_owned_budget(db, budget_id, user_id)
    progress.update_spent(db_budget, amount)
    db_budget.updated_at = now
    return DocumentStore(db, BudgetDB).save(db_budget)


def add_to_db_budget_spent(db: Session, budget_id: int, user_id: int, delta: Decimal) -> BudgetDB:
    """Add to the spent total with an in-database increment"""

    _get_owned_budget(db, budget_id, user_id)
    db_budget = DocumentStore(db, BudgetDB).atomic_increment(budget_id, 'spent', delta)

    if progress.is_over_budget(db_budget):
        logger.info(f"Budget {budget_id} is over its limit ({db_budget.spent}/{db_budget.limit})")
    return db_budget


def reset_db_budget_period(db: Session, budget_id: int, user_id: int,
                           start_date: datetime, end_date: datetime, now: datetime) -> BudgetDB:
    db_budget = _get_owned_budget(db, budget_id, user_id)
    progress.reset_for_new_period(db_budget, start_date, end_date)
    db_budget.updated_at = now
    db_budget = DocumentStore(db, BudgetDB).save(db_budget)

    logger.info(f"Budget {budget_id} reset for {start_date:%Y-%m-%d} - {end_date:%Y-%m-%d}")
    return db_budget


def deactivate_db_budget(db: Session, budget_id: int, user_id: int, now: datetime) -> BudgetDB:
    db_budget = _get_owned_budget(db, budget_id, user_id)
    progress.deactivate_budget(db_budget)
    db_budget.updated_at = now
    return DocumentStore(db, BudgetDB).save(db_budget)


def check_db_budget_notifications(db: Session, budget_id: int, user_id: int) -> Tuple[BudgetDB, Set[str]]:
    db_budget = _get_owned_budget(db, budget_id, user_id)
    return db_budget, progress.check_notification_threshold(db_budget)


def get_budget_report(db: Session, user_id: int,
                      start_date: Optional[datetime] = None,
                      end_date: Optional[datetime] = None) -> BudgetReport:
    """Planned vs actual spending for active budgets overlapping the given window"""

    query = db.query(BudgetDB).filter(
        BudgetDB.user_id == user_id,
        BudgetDB.is_active == True
    )
    if start_date:
        query = query.filter(BudgetDB.end_date >= start_date)
    if end_date:
        query = query.filter(BudgetDB.start_date <= end_date)

    budgets = query.order_by(BudgetDB.start_date).all()

    performances = []
    total_budgeted = Decimal("0.00")
    total_spent = Decimal("0.00")

    for budget in budgets:
        total_budgeted += budget.limit
        total_spent += budget.spent
        performances.append(BudgetPerformance(
            budget_id=budget.id,
            name=budget.name,
            category=budget.category,
            budgeted=budget.limit,
            spent=budget.spent,
            variance=budget.limit - budget.spent,
            performance=progress.budget_performance(budget.limit, budget.spent),
        ))

    return BudgetReport(
        period_start=start_date,
        period_end=end_date,
        budgets=performances,
        total_budgeted=total_budgeted,
        total_spent=total_spent,
        overall_performance=progress.budget_performance(total_budgeted, total_spent),
    )


# ===== RESPONSE BUILDERS =====

def to_budget_response(budget: BudgetDB, now: datetime) -> BudgetResponse:
    return BudgetResponse(
        id=budget.id,
        user_id=budget.user_id,
        name=budget.name,
        category=budget.category,
        limit=budget.limit,
        period=budget.period.value,
        spent=budget.spent,
        start_date=budget.start_date,
        end_date=budget.end_date,
        is_active=budget.is_active,
        notifications=BudgetNotifications(
            at_75_percent=budget.notify_at_75_percent,
            at_90_percent=budget.notify_at_90_percent,
            at_limit=budget.notify_at_limit,
        ),
        remaining=progress.budget_remaining(budget),
        percentage_used=progress.budget_percentage_used(budget),
        is_over_budget=progress.is_over_budget(budget),
        days_remaining=progress.budget_days_remaining(budget, now),
        created_at=budget.created_at,
        updated_at=budget.updated_at,
    )
