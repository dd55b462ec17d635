"""
Bill Recurrence Service

Owns a bill's due-date lifecycle: stepping the recurrence rule forward from the
anchor due date, detecting overdue bills, deciding when a reminder fires and
recording payments.

Occurrences form a chain: each one is the previous occurrence advanced by one
recurrence step, starting from the anchor due date. Month and year steps keep
the day of month and let it overflow into the following month when the target
month is too short, so a monthly bill anchored on Jan 31 is next due Mar 2
(in 2024) and then Apr 2.
"""
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from dateutil.relativedelta import relativedelta

from src.db.core import BillDB, RecurrenceType
from src.logging_config import get_logger
from src.services.clock import days_until

logger = get_logger(__name__)


class RecurrenceConfigurationError(RuntimeError):
    """A bill with a malformed recurrence rule reached the engine."""


def _check_rule(bill: BillDB) -> None:
    if not isinstance(bill.recurrence_type, RecurrenceType):
        raise RecurrenceConfigurationError(
            f"Unsupported recurrence type {bill.recurrence_type!r} on bill {bill.id}"
        )
    interval = bill.recurrence_interval
    if not isinstance(interval, int) or isinstance(interval, bool) or interval < 1:
        raise RecurrenceConfigurationError(
            f"Recurrence interval must be a positive integer, got {interval!r} on bill {bill.id}"
        )


def add_months_overflowing(moment: datetime, months: int) -> datetime:
    """
    Move ``moment`` forward by calendar months, keeping its day of month.

    A day past the end of the target month rolls over into the next month
    (Jan 31 + 1 month -> Mar 2 in a leap year) instead of clamping.
    """
    first_of_target = moment.replace(day=1) + relativedelta(months=months)
    return first_of_target + timedelta(days=moment.day - 1)


def advance(bill: BillDB, moment: datetime) -> datetime:
    """Return the occurrence one recurrence step after ``moment``."""
    _check_rule(bill)
    interval = bill.recurrence_interval

    if bill.recurrence_type == RecurrenceType.WEEKLY:
        return moment + timedelta(weeks=interval)
    if bill.recurrence_type == RecurrenceType.MONTHLY:
        return add_months_overflowing(moment, interval)
    if bill.recurrence_type == RecurrenceType.YEARLY:
        return add_months_overflowing(moment, 12 * interval)
    # CUSTOM: the interval counts days
    return moment + timedelta(days=interval)


def _first_occurrence_after(bill: BillDB, reference: datetime) -> datetime:
    candidate = bill.due_date
    while candidate <= reference:
        candidate = advance(bill, candidate)
    return candidate


def _last_occurrence_until(bill: BillDB, limit: datetime) -> datetime:
    last = bill.due_date
    while True:
        candidate = advance(bill, last)
        if candidate > limit:
            return last
        last = candidate


def calculate_next_due_date(bill: BillDB, now: datetime) -> datetime:
    """
    Next occurrence of the bill relative to ``now``.

    While the anchor due date is still in the future it is returned unchanged.
    Otherwise the rule is stepped from the anchor until the occurrence is
    strictly later than ``now``. The recurrence end date is not consulted here;
    see ``refresh_next_due_date``.
    """
    _check_rule(bill)
    if bill.due_date > now:
        return bill.due_date
    return _first_occurrence_after(bill, now)


def _apply_schedule(bill: BillDB, candidate: datetime) -> BillDB:
    end_date = bill.recurrence_end_date
    if end_date is not None and candidate > end_date:
        bill.next_due_date = _last_occurrence_until(bill, end_date)
        if bill.is_active:
            logger.debug(f"Bill {bill.id} recurrence ended on {end_date:%Y-%m-%d}; deactivating")
        bill.is_active = False
    else:
        bill.next_due_date = candidate
    return bill


def refresh_next_due_date(bill: BillDB, now: datetime) -> BillDB:
    """
    Store the next due date on the bill.

    When the recurrence has run past its end date the bill is deactivated and
    keeps the last occurrence on or before the end date as its next due date.
    Call on creation and whenever the due date or recurrence rule changes.
    """
    return _apply_schedule(bill, calculate_next_due_date(bill, now))


def days_until_due(bill: BillDB, now: datetime) -> int:
    """Days until the next due date, rounded up; negative when overdue."""
    return days_until(bill.next_due_date, now)


def is_overdue(bill: BillDB, now: datetime) -> bool:
    return now > bill.next_due_date


def should_send_reminder(bill: BillDB, now: datetime) -> bool:
    """True when today is one of the bill's reminder offsets. Overdue bills never match."""
    days = days_until_due(bill, now)
    return days >= 0 and days in (bill.reminder_days or [])


def mark_as_paid(bill: BillDB, now: datetime, paid_date: Optional[datetime] = None) -> BillDB:
    """
    Record a payment and advance the schedule.

    The new due date is the first occurrence after both the current due date and
    the payment date, so an early payment moves the bill exactly one cycle and a
    late payment catches up past the payment date. Paying twice for the same
    cycle advances twice; callers serialize payments per bill.
    """
    paid_date = paid_date or now
    bill.last_paid_date = paid_date

    current_due = bill.next_due_date or bill.due_date
    candidate = _first_occurrence_after(bill, max(paid_date, current_due))
    logger.debug(f"Bill {bill.id} paid on {paid_date:%Y-%m-%d}; next due {candidate:%Y-%m-%d}")
    return _apply_schedule(bill, candidate)


def update_amount(bill: BillDB, new_amount: Decimal) -> BillDB:
    bill.amount = new_amount
    return bill


def deactivate(bill: BillDB) -> BillDB:
    bill.is_active = False
    return bill
