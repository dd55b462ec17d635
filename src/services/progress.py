"""
Budget & Goal Progress Service

Derived metrics for budgets (spent, remaining, threshold notifications) and
goals (progress, expected progress, on-track status, projected completion).
Everything here is a plain function over a budget or goal plus an explicit
"now"; the CRUD layer calls these immediately before persisting.
"""
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Set

from src.db.core import BudgetDB, GoalDB
from src.logging_config import get_logger
from src.services.clock import days_until, days_since

logger = get_logger(__name__)

ZERO = Decimal("0.00")
CENTS = Decimal("0.01")

# Budget notification tags
THRESHOLD_75 = "75"
THRESHOLD_90 = "90"
THRESHOLD_LIMIT = "limit"

# Share of the limit at which a budget counts as "on-track" in reports
ON_TRACK_USAGE = 80.0

# Goal constants
ON_TRACK_TOLERANCE = 5.0
AVERAGE_DAYS_PER_MONTH = Decimal("30.44")


# ===== BUDGETS =====

def budget_remaining(budget: BudgetDB) -> Decimal:
    return max(ZERO, budget.limit - budget.spent)


def budget_percentage_used(budget: BudgetDB) -> float:
    if budget.limit > 0:
        return float(budget.spent / budget.limit * 100)
    return 0.0


def is_over_budget(budget: BudgetDB) -> bool:
    return budget.spent > budget.limit


def budget_days_remaining(budget: BudgetDB, now: datetime) -> int:
    return max(0, days_until(budget.end_date, now))


def check_notification_threshold(budget: BudgetDB) -> Set[str]:
    """
    Threshold tags whose band the budget currently sits in and whose flag is on.

    The bands [75, 90), [90, 100) and [100, inf) do not overlap, so at most one
    tag is returned.
    """
    percentage = budget_percentage_used(budget)
    thresholds = set()

    if budget.notify_at_75_percent and 75 <= percentage < 90:
        thresholds.add(THRESHOLD_75)
    if budget.notify_at_90_percent and 90 <= percentage < 100:
        thresholds.add(THRESHOLD_90)
    if budget.notify_at_limit and percentage >= 100:
        thresholds.add(THRESHOLD_LIMIT)

    return thresholds


def budget_performance(budgeted: Decimal, spent: Decimal) -> str:
    """Classify spending against an allocation as "under", "on-track" or "over"."""
    if spent > budgeted:
        return "over"
    if budgeted > 0 and float(spent / budgeted * 100) >= ON_TRACK_USAGE:
        return "on-track"
    return "under"


def update_spent(budget: BudgetDB, amount: Decimal) -> BudgetDB:
    """Replace the spent total; negative amounts clamp to zero."""
    budget.spent = max(ZERO, Decimal(amount))
    return budget


def add_to_spent(budget: BudgetDB, delta: Decimal) -> BudgetDB:
    """Add to the spent total without clamping, so a budget can run over its limit."""
    budget.spent = budget.spent + Decimal(delta)
    return budget


def reset_for_new_period(budget: BudgetDB, start_date: datetime, end_date: datetime) -> BudgetDB:
    budget.spent = ZERO
    budget.start_date = start_date
    budget.end_date = end_date
    return budget


def deactivate_budget(budget: BudgetDB) -> BudgetDB:
    budget.is_active = False
    return budget


# ===== GOALS =====

def goal_progress_percentage(goal: GoalDB) -> float:
    if goal.target_amount > 0:
        return min(100.0, float(goal.current_amount / goal.target_amount * 100))
    return 0.0


def goal_remaining_amount(goal: GoalDB) -> Decimal:
    return max(ZERO, goal.target_amount - goal.current_amount)


def goal_days_remaining(goal: GoalDB, now: datetime) -> int:
    return max(0, days_until(goal.target_date, now))


def monthly_contribution_needed(goal: GoalDB, now: datetime) -> Decimal:
    remaining = goal_remaining_amount(goal)
    days_remaining = goal_days_remaining(goal, now)

    if days_remaining <= 0 or remaining <= 0:
        return ZERO

    months_remaining = Decimal(days_remaining) / AVERAGE_DAYS_PER_MONTH
    return (remaining / months_remaining).quantize(CENTS, rounding=ROUND_HALF_UP)


def calculate_expected_progress(goal: GoalDB, now: datetime) -> float:
    """
    Progress a goal should show by ``now`` if saved linearly from creation to target date.

    A goal whose target date is not after its creation is expected to be complete.
    """
    total = (goal.target_date - goal.created_at).total_seconds()
    elapsed = (now - goal.created_at).total_seconds()

    if total <= 0:
        return 100.0
    if elapsed <= 0:
        return 0.0

    return min(100.0, elapsed / total * 100)


def is_on_track(goal: GoalDB, now: datetime) -> bool:
    return goal_progress_percentage(goal) >= calculate_expected_progress(goal, now) - ON_TRACK_TOLERANCE


def calculate_projected_completion_date(goal: GoalDB, now: datetime) -> Optional[datetime]:
    """
    Estimate when the goal will be reached at its current saving pace.

    Returns the achieved date for achieved goals and ``None`` when nothing has
    been saved yet, since no pace can be projected from zero.
    """
    if goal.is_achieved:
        return goal.achieved_date

    remaining = goal_remaining_amount(goal)
    if remaining <= 0:
        return now

    # Average over the goal's whole lifetime, not a trailing window
    days_since_creation = max(1.0, days_since(goal.created_at, now))
    daily_average = float(goal.current_amount) / days_since_creation

    if daily_average <= 0:
        return None

    return now + timedelta(days=float(remaining) / daily_average)


def sync_achievement(goal: GoalDB, now: datetime) -> GoalDB:
    """
    Re-derive ``is_achieved``/``achieved_date`` from the amounts.

    Must run after any change to ``current_amount`` or ``target_amount`` and
    before the goal is persisted. An already-achieved goal keeps its original
    achieved date.
    """
    if goal.current_amount >= goal.target_amount and not goal.is_achieved:
        goal.is_achieved = True
        goal.achieved_date = now
        logger.debug(f"Goal {goal.id} achieved at {goal.current_amount}/{goal.target_amount}")
    elif goal.current_amount < goal.target_amount and goal.is_achieved:
        goal.is_achieved = False
        goal.achieved_date = None
        logger.debug(f"Goal {goal.id} no longer achieved at {goal.current_amount}/{goal.target_amount}")
    return goal


def add_contribution(goal: GoalDB, amount: Decimal, now: datetime) -> GoalDB:
    """Add to the saved amount, capped at the target (the excess is dropped)."""
    goal.current_amount = min(goal.target_amount, goal.current_amount + Decimal(amount))
    return sync_achievement(goal, now)


def update_target(goal: GoalDB, new_target_amount: Decimal, new_target_date: Optional[datetime] = None) -> GoalDB:
    """
    Replace the target amount (and date, when given).

    The achieved state is left alone; callers follow up with ``sync_achievement``
    because a higher target can un-achieve the goal.
    """
    goal.target_amount = Decimal(new_target_amount)
    if new_target_date is not None:
        goal.target_date = new_target_date
    return goal


def deactivate_goal(goal: GoalDB) -> GoalDB:
    goal.is_active = False
    return goal
