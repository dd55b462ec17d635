"""
Tests for budget persistence, spent tracking and reporting.
"""
import pytest
from datetime import datetime
from decimal import Decimal

from src.crud import crud_budget
from src.db.core import NotFoundError, BudgetPeriod
from src.models.budget import BudgetCreate, BudgetUpdate, BudgetNotifications

NOW = datetime(2024, 3, 15, 12, 0, 0)


def budget_data(**overrides) -> BudgetCreate:
    fields = dict(
        name="Groceries March",
        category="Groceries",
        limit=Decimal("500"),
        period="monthly",
        start_date=datetime(2024, 3, 1),
        end_date=datetime(2024, 3, 31, 23, 59, 59),
    )
    fields.update(overrides)
    return BudgetCreate(**fields)


class TestCreateBudget:

    def test_starts_empty(self, db, user):
        budget = crud_budget.create_db_budget(db, user.id, budget_data(), NOW)

        assert budget.id is not None
        assert budget.spent == Decimal("0.00")
        assert budget.period == BudgetPeriod.MONTHLY
        assert budget.is_active is True
        assert budget.notify_at_75_percent is True
        assert budget.notify_at_90_percent is True
        assert budget.notify_at_limit is True

    def test_notification_flags_stored(self, db, user):
        data = budget_data(notifications=BudgetNotifications(at_75_percent=False))
        budget = crud_budget.create_db_budget(db, user.id, data, NOW)
        assert budget.notify_at_75_percent is False
        assert budget.notify_at_limit is True

    def test_unknown_user(self, db):
        with pytest.raises(NotFoundError):
            crud_budget.create_db_budget(db, 99, budget_data(), NOW)


class TestBudgetQueries:

    def test_current_budgets_contain_now(self, db, user):
        march = crud_budget.create_db_budget(db, user.id, budget_data(), NOW)
        crud_budget.create_db_budget(db, user.id, budget_data(
            name="Groceries February",
            start_date=datetime(2024, 2, 1),
            end_date=datetime(2024, 2, 29, 23, 59, 59),
        ), NOW)

        current = crud_budget.get_current_budgets(db, user.id, NOW)
        assert [b.id for b in current] == [march.id]

    def test_by_category(self, db, user):
        crud_budget.create_db_budget(db, user.id, budget_data(), NOW)
        dining = crud_budget.create_db_budget(db, user.id, budget_data(name="Dining", category="Restaurants"), NOW)

        assert [b.id for b in crud_budget.get_budgets_by_category(db, user.id, "Restaurants")] == [dining.id]

    def test_scoped_to_owner(self, db, user, other_user):
        budget = crud_budget.create_db_budget(db, user.id, budget_data(), NOW)
        assert crud_budget.read_db_budget(db, budget.id, other_user.id) is None

    def test_active_only_skips_closed_windows(self, db, user):
        """A budget still flagged active drops out once its end date has passed."""
        march = crud_budget.create_db_budget(db, user.id, budget_data(), NOW)
        february = crud_budget.create_db_budget(db, user.id, budget_data(
            name="Groceries February",
            start_date=datetime(2024, 2, 1),
            end_date=datetime(2024, 2, 29, 23, 59, 59),
        ), NOW)
        april = crud_budget.create_db_budget(db, user.id, budget_data(
            name="Groceries April",
            start_date=datetime(2024, 4, 1),
            end_date=datetime(2024, 4, 30, 23, 59, 59),
        ), NOW)

        active = crud_budget.read_db_budgets(db, user.id, NOW, active_only=True)
        assert {b.id for b in active} == {march.id, april.id}

        everything = crud_budget.read_db_budgets(db, user.id, NOW)
        assert {b.id for b in everything} == {march.id, february.id, april.id}

    def test_active_only_skips_deactivated(self, db, user):
        budget = crud_budget.create_db_budget(db, user.id, budget_data(), NOW)
        budget.is_active = False
        db.commit()

        assert crud_budget.read_db_budgets(db, user.id, NOW, active_only=True) == []


class TestUpdateBudget:

    def test_updates_fields_and_flags(self, db, user):
        budget = crud_budget.create_db_budget(db, user.id, budget_data(), NOW)
        updates = BudgetUpdate(
            limit=Decimal("650"),
            period="weekly",
            notifications=BudgetNotifications(at_90_percent=False),
        )
        updated = crud_budget.update_db_budget(db, budget.id, user.id, updates, NOW)

        assert updated.limit == Decimal("650.00")
        assert updated.period == BudgetPeriod.WEEKLY
        assert updated.notify_at_90_percent is False
        assert updated.notify_at_75_percent is True
        assert updated.notify_at_limit is True

    def test_partial_flags_leave_others_alone(self, db, user):
        data = budget_data(notifications=BudgetNotifications(at_75_percent=False, at_limit=False))
        budget = crud_budget.create_db_budget(db, user.id, data, NOW)

        updates = BudgetUpdate(notifications={"at_90_percent": False})
        updated = crud_budget.update_db_budget(db, budget.id, user.id, updates, NOW)

        assert updated.notify_at_75_percent is False
        assert updated.notify_at_90_percent is False
        assert updated.notify_at_limit is False

    def test_empty_flags_change_nothing(self, db, user):
        budget = crud_budget.create_db_budget(db, user.id, budget_data(), NOW)
        updated = crud_budget.update_db_budget(db, budget.id, user.id, BudgetUpdate(notifications={}), NOW)

        assert updated.notify_at_75_percent is True
        assert updated.notify_at_90_percent is True
        assert updated.notify_at_limit is True

    def test_end_date_before_existing_start_rejected(self, db, user):
        budget = crud_budget.create_db_budget(db, user.id, budget_data(), NOW)
        with pytest.raises(ValueError):
            crud_budget.update_db_budget(db, budget.id, user.id, BudgetUpdate(end_date=datetime(2024, 2, 1)), NOW)

    def test_start_date_after_existing_end_rejected(self, db, user):
        budget = crud_budget.create_db_budget(db, user.id, budget_data(), NOW)
        with pytest.raises(ValueError):
            crud_budget.update_db_budget(db, budget.id, user.id, BudgetUpdate(start_date=datetime(2024, 4, 2)), NOW)


class TestSpent:
    """Absolute and incremental spent updates."""

    def test_set_spent_clamps_negative(self, db, user):
        budget = crud_budget.create_db_budget(db, user.id, budget_data(), NOW)
        updated = crud_budget.set_db_budget_spent(db, budget.id, user.id, Decimal("-50"), NOW)
        assert updated.spent == Decimal("0.00")

    def test_increments_accumulate(self, db, user):
        budget = crud_budget.create_db_budget(db, user.id, budget_data(), NOW)
        crud_budget.add_to_db_budget_spent(db, budget.id, user.id, Decimal("120.25"))
        updated = crud_budget.add_to_db_budget_spent(db, budget.id, user.id, Decimal("79.75"))
        assert updated.spent == Decimal("200.00")

    def test_increment_may_exceed_limit(self, db, user):
        budget = crud_budget.create_db_budget(db, user.id, budget_data(), NOW)
        updated = crud_budget.add_to_db_budget_spent(db, budget.id, user.id, Decimal("620"))
        assert updated.spent == Decimal("620.00")

    def test_increment_other_users_budget(self, db, user, other_user):
        budget = crud_budget.create_db_budget(db, user.id, budget_data(), NOW)
        with pytest.raises(NotFoundError):
            crud_budget.add_to_db_budget_spent(db, budget.id, other_user.id, Decimal("10"))

    def test_reset_period(self, db, user):
        budget = crud_budget.create_db_budget(db, user.id, budget_data(), NOW)
        crud_budget.set_db_budget_spent(db, budget.id, user.id, Decimal("480"), NOW)

        start, end = datetime(2024, 4, 1), datetime(2024, 4, 30, 23, 59, 59)
        reset = crud_budget.reset_db_budget_period(db, budget.id, user.id, start, end, NOW)

        assert reset.spent == Decimal("0.00")
        assert reset.start_date == start
        assert reset.end_date == end


class TestNotificationsAndReport:

    def test_check_notifications(self, db, user):
        budget = crud_budget.create_db_budget(db, user.id, budget_data(), NOW)
        crud_budget.set_db_budget_spent(db, budget.id, user.id, Decimal("460"), NOW)

        _, thresholds = crud_budget.check_db_budget_notifications(db, budget.id, user.id)
        assert thresholds == {"90"}

    def test_report_totals(self, db, user):
        groceries = crud_budget.create_db_budget(db, user.id, budget_data(), NOW)
        dining = crud_budget.create_db_budget(db, user.id, budget_data(
            name="Dining", category="Restaurants", limit=Decimal("200"),
        ), NOW)
        crud_budget.set_db_budget_spent(db, groceries.id, user.id, Decimal("200"), NOW)
        crud_budget.set_db_budget_spent(db, dining.id, user.id, Decimal("250"), NOW)

        report = crud_budget.get_budget_report(db, user.id)

        assert report.total_budgeted == Decimal("700.00")
        assert report.total_spent == Decimal("450.00")
        assert report.overall_performance == "under"
        performance = {p.budget_id: p.performance for p in report.budgets}
        assert performance == {groceries.id: "under", dining.id: "over"}

    def test_report_window_excludes_other_periods(self, db, user):
        crud_budget.create_db_budget(db, user.id, budget_data(), NOW)
        report = crud_budget.get_budget_report(db, user.id, start_date=datetime(2024, 5, 1))
        assert report.budgets == []
        assert report.total_budgeted == Decimal("0.00")

    def test_response_derived_fields(self, db, user):
        budget = crud_budget.create_db_budget(db, user.id, budget_data(), NOW)
        budget = crud_budget.set_db_budget_spent(db, budget.id, user.id, Decimal("125"), NOW)
        response = crud_budget.to_budget_response(budget, NOW)

        assert response.remaining == Decimal("375.00")
        assert response.percentage_used == pytest.approx(25.0)
        assert response.is_over_budget is False
        assert response.days_remaining == 17
