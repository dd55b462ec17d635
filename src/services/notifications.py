"""
Notification collaborator.

The bill and budget calculations only decide *whether* something is worth
telling the user; delivering it (email, push) happens elsewhere. ``Notifier``
is the interface those decisions are handed to, and ``LoggingNotifier`` is the
default implementation used by the reminder job.
"""
from typing import Protocol, Set

from src.db.core import BillDB, BudgetDB
from src.logging_config import get_logger

logger = get_logger(__name__)


class Notifier(Protocol):
    def bill_reminder(self, bill: BillDB, days_until_due: int) -> None: ...

    def bill_overdue(self, bill: BillDB, days_overdue: int) -> None: ...

    def budget_threshold(self, budget: BudgetDB, thresholds: Set[str], percentage_used: float) -> None: ...


class LoggingNotifier:
    """Writes every notification to the application log."""

    def bill_reminder(self, bill: BillDB, days_until_due: int) -> None:
        logger.info(f"Reminder: bill '{bill.name}' ({bill.amount}) for user {bill.user_id} is due in {days_until_due} day(s)")

    def bill_overdue(self, bill: BillDB, days_overdue: int) -> None:
        logger.warning(f"Overdue: bill '{bill.name}' ({bill.amount}) for user {bill.user_id} is {days_overdue} day(s) late")

    def budget_threshold(self, budget: BudgetDB, thresholds: Set[str], percentage_used: float) -> None:
        tags = ", ".join(sorted(thresholds))
        logger.info(f"Budget '{budget.name}' for user {budget.user_id} at {percentage_used:.1f}% (thresholds: {tags})")

