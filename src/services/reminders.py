"""
Daily Reminder Service

Evaluates every active bill and current budget for one or all users at a given
moment and passes the resulting notifications to a ``Notifier``. Used by
``scripts/reminder_job.py``.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from src.crud import crud_bill, crud_budget
from src.db.core import UserDB
from src.logging_config import get_logger
from src.services import recurrence, progress
from src.services.notifications import Notifier

logger = get_logger(__name__)


@dataclass
class ReminderSummary:
    users_processed: int = 0
    reminders_sent: int = 0
    overdue_notices: int = 0
    budget_alerts: int = 0
    errors: int = 0


def process_user(db: Session, user_id: int, notifier: Notifier, now: datetime, summary: ReminderSummary) -> None:
    for bill in crud_bill.get_bills_due_for_reminder(db, user_id, now):
        notifier.bill_reminder(bill, recurrence.days_until_due(bill, now))
        summary.reminders_sent += 1

    for bill in crud_bill.get_overdue_bills(db, user_id, now):
        notifier.bill_overdue(bill, -recurrence.days_until_due(bill, now))
        summary.overdue_notices += 1

    for budget in crud_budget.get_current_budgets(db, user_id, now):
        thresholds = progress.check_notification_threshold(budget)
        if thresholds:
            notifier.budget_threshold(budget, thresholds, progress.budget_percentage_used(budget))
            summary.budget_alerts += 1


def run_daily_checks(db: Session, notifier: Notifier, now: datetime,
                     user_id: Optional[int] = None) -> ReminderSummary:
    """
    Run bill reminders, overdue notices and budget threshold alerts.

    A failure for one user is logged and counted; the remaining users are
    still processed.
    """
    summary = ReminderSummary()

    query = db.query(UserDB)
    if user_id is not None:
        query = query.filter(UserDB.id == user_id)
    users = query.all()

    if user_id is not None and not users:
        logger.warning(f"User {user_id} not found")
        return summary

    logger.info(f"Running daily checks for {len(users)} user(s) at {now:%Y-%m-%d %H:%M}")

    for user in users:
        try:
            process_user(db, user.id, notifier, now, summary)
            summary.users_processed += 1
        except Exception as e:
            logger.error(f"Daily checks failed for user {user.username} (ID: {user.id}): {e}")
            db.rollback()
            summary.errors += 1

    logger.info(
        f"Daily checks complete: {summary.reminders_sent} reminders, "
        f"{summary.overdue_notices} overdue notices, {summary.budget_alerts} budget alerts, "
        f"{summary.errors} errors"
    )
    return summary
