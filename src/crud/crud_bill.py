from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import Optional, List
from datetime import datetime, timedelta
from decimal import Decimal

from src.db.core import BillDB, UserDB, RecurrenceType, NotFoundError
from src.db.store import DocumentStore
from src.logging_config import get_logger
from src.models.bill import BillCreate, BillUpdate, BillRecurrence, BillResponse, UpcomingBill
from src.services import recurrence

logger = get_logger(__name__)


# ===== DATABASE OPERATIONS =====

def create_db_bill(db: Session, user_id: int, bill_data: BillCreate, now: datetime) -> BillDB:
    """Create a bill and compute its first due date"""

    user = db.query(UserDB).filter(UserDB.id == user_id).first()
    if not user:
        raise NotFoundError(f"User with id {user_id} not found")

    db_bill = BillDB(
        user_id=user_id,
        name=bill_data.name,
        amount=bill_data.amount,
        category=bill_data.category,
        is_auto_pay=bill_data.is_auto_pay,
        reminder_days=bill_data.reminder_days,
        due_date=bill_data.due_date,
        recurrence_type=RecurrenceType(bill_data.recurrence.type.value),
        recurrence_interval=bill_data.recurrence.interval,
        recurrence_end_date=bill_data.recurrence.end_date,
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    recurrence.refresh_next_due_date(db_bill, now)

    try:
        db_bill = DocumentStore(db, BillDB).save(db_bill)
    except IntegrityError:
        raise ValueError("Bill creation failed due to database constraint")

    logger.info(f"Created bill {db_bill.id} for user {user_id}, next due {db_bill.next_due_date:%Y-%m-%d}")
    return db_bill


def read_db_bill(db: Session, bill_id: int, user_id: int) -> Optional[BillDB]:
    return DocumentStore(db, BillDB).get(bill_id, user_id=user_id)


def read_db_bills(db: Session, user_id: int, skip: int = 0, limit: int = 100,
                  active_only: bool = True) -> List[BillDB]:
    """Read a user's bills, soonest due first"""

    query = db.query(BillDB).filter(BillDB.user_id == user_id)
    if active_only:
        query = query.filter(BillDB.is_active == True)

    return query.order_by(BillDB.next_due_date).offset(skip).limit(limit).all()


def _get_owned_bill(db: Session, bill_id: int, user_id: int) -> BillDB:
    db_bill = read_db_bill(db, bill_id, user_id)
    if not db_bill:
        raise NotFoundError(f"Bill with id {bill_id} not found")
    return db_bill


def update_db_bill(db: Session, bill_id: int, user_id: int, bill_updates: BillUpdate, now: datetime) -> BillDB:
    """Update a bill; the schedule is recomputed when the due date or recurrence changes"""

    db_bill = _get_owned_bill(db, bill_id, user_id)
    update_data = bill_updates.model_dump(exclude_unset=True)

    update_data.pop('recurrence', None)
    new_rule = bill_updates.recurrence if 'recurrence' in bill_updates.model_fields_set else None
    schedule_changed = 'due_date' in update_data or new_rule is not None

    # An inactive bill has run out its schedule and cannot be rescheduled
    if schedule_changed and not db_bill.is_active:
        raise ValueError(f"Bill {bill_id} is not active")

    for field, value in update_data.items():
        setattr(db_bill, field, value)

    if new_rule is not None:
        db_bill.recurrence_type = RecurrenceType(new_rule.type.value)
        db_bill.recurrence_interval = new_rule.interval
        db_bill.recurrence_end_date = new_rule.end_date

    if db_bill.recurrence_end_date is not None and db_bill.recurrence_end_date < db_bill.due_date:
        db.rollback()
        raise ValueError("recurrence end_date must not be before due_date")

    if schedule_changed:
        recurrence.refresh_next_due_date(db_bill, now)

    db_bill.updated_at = now

    try:
        return DocumentStore(db, BillDB).save(db_bill)
    except IntegrityError:
        raise ValueError("Bill update failed due to database constraint")


def update_db_bill_amount(db: Session, bill_id: int, user_id: int, amount: Decimal, now: datetime) -> BillDB:
    db_bill = _get_owned_bill(db, bill_id, user_id)
    recurrence.update_amount(db_bill, amount)
    db_bill.updated_at = now
    return DocumentStore(db, BillDB).save(db_bill)


def mark_db_bill_paid(db: Session, bill_id: int, user_id: int, now: datetime,
                      paid_date: Optional[datetime] = None) -> BillDB:
    """Record a payment and advance the bill to its next cycle"""

    db_bill = _get_owned_bill(db, bill_id, user_id)
    if not db_bill.is_active:
        raise ValueError(f"Bill {bill_id} is not active")

    recurrence.mark_as_paid(db_bill, now, paid_date)
    db_bill.updated_at = now
    db_bill = DocumentStore(db, BillDB).save(db_bill)

    logger.info(f"Bill {bill_id} marked paid; next due {db_bill.next_due_date:%Y-%m-%d}")
    return db_bill


def deactivate_db_bill(db: Session, bill_id: int, user_id: int, now: datetime) -> BillDB:
    db_bill = _get_owned_bill(db, bill_id, user_id)
    recurrence.deactivate(db_bill)
    db_bill.updated_at = now
    return DocumentStore(db, BillDB).save(db_bill)


# ===== QUERIES =====

def get_upcoming_bills(db: Session, user_id: int, now: datetime, days: int = 30) -> List[BillDB]:
    """Active bills due within the next ``days`` days, overdue ones included"""

    horizon = now + timedelta(days=days)
    return db.query(BillDB).filter(
        BillDB.user_id == user_id,
        BillDB.is_active == True,
        BillDB.next_due_date <= horizon
    ).order_by(BillDB.next_due_date).all()


def get_overdue_bills(db: Session, user_id: int, now: datetime) -> List[BillDB]:
    return db.query(BillDB).filter(
        BillDB.user_id == user_id,
        BillDB.is_active == True,
        BillDB.next_due_date < now
    ).order_by(BillDB.next_due_date).all()


def get_bills_by_category(db: Session, user_id: int, category: str) -> List[BillDB]:
    return db.query(BillDB).filter(
        BillDB.user_id == user_id,
        BillDB.category == category,
        BillDB.is_active == True
    ).order_by(BillDB.next_due_date).all()


def get_bills_due_for_reminder(db: Session, user_id: int, now: datetime) -> List[BillDB]:
    """Active bills with a reminder scheduled for today"""

    bills = read_db_bills(db, user_id, limit=None)
    return [bill for bill in bills if recurrence.should_send_reminder(bill, now)]


# ===== RESPONSE BUILDERS =====

def to_bill_response(bill: BillDB, now: datetime) -> BillResponse:
    return BillResponse(
        id=bill.id,
        user_id=bill.user_id,
        name=bill.name,
        amount=bill.amount,
        category=bill.category,
        due_date=bill.due_date,
        recurrence=BillRecurrence(
            type=bill.recurrence_type.value,
            interval=bill.recurrence_interval,
            end_date=bill.recurrence_end_date,
        ),
        is_auto_pay=bill.is_auto_pay,
        reminder_days=bill.reminder_days or [],
        last_paid_date=bill.last_paid_date,
        next_due_date=bill.next_due_date,
        is_active=bill.is_active,
        days_until_due=recurrence.days_until_due(bill, now),
        is_overdue=recurrence.is_overdue(bill, now),
        created_at=bill.created_at,
        updated_at=bill.updated_at,
    )


def to_upcoming_bill(bill: BillDB, now: datetime) -> UpcomingBill:
    return UpcomingBill(
        bill_id=bill.id,
        name=bill.name,
        amount=bill.amount,
        due_date=bill.next_due_date,
        days_until_due=recurrence.days_until_due(bill, now),
        is_overdue=recurrence.is_overdue(bill, now),
        is_auto_pay=bill.is_auto_pay,
        category=bill.category,
    )
