"""
Tests for bill persistence and queries.
"""
import pytest
from datetime import datetime
from decimal import Decimal

from src.crud import crud_bill
from src.db.core import NotFoundError, RecurrenceType
from src.models.bill import BillCreate, BillUpdate, BillRecurrence

NOW = datetime(2024, 3, 15, 12, 0, 0)


def bill_data(**overrides) -> BillCreate:
    fields = dict(
        name="Rent",
        amount=Decimal("1500"),
        due_date=datetime(2024, 1, 1),
        recurrence=BillRecurrence(type="monthly"),
        category="Housing",
        reminder_days=[7, 3, 1],
    )
    fields.update(overrides)
    return BillCreate(**fields)


class TestCreateBill:

    def test_computes_next_due_date(self, db, user):
        bill = crud_bill.create_db_bill(db, user.id, bill_data(), NOW)

        assert bill.id is not None
        assert bill.next_due_date == datetime(2024, 4, 1)
        assert bill.recurrence_type == RecurrenceType.MONTHLY
        assert bill.recurrence_interval == 1
        assert bill.is_active is True
        assert bill.reminder_days == [7, 3, 1]
        assert bill.created_at == NOW

    def test_unknown_user(self, db):
        with pytest.raises(NotFoundError):
            crud_bill.create_db_bill(db, 99, bill_data(), NOW)

    def test_already_expired_recurrence_is_inactive(self, db, user):
        data = bill_data(
            due_date=datetime(2024, 1, 10),
            recurrence=BillRecurrence(type="monthly", end_date=datetime(2024, 2, 15)),
        )
        bill = crud_bill.create_db_bill(db, user.id, data, NOW)
        assert bill.is_active is False
        assert bill.next_due_date == datetime(2024, 2, 10)


class TestReadBills:

    def test_ordered_by_next_due_date(self, db, user):
        later = crud_bill.create_db_bill(db, user.id, bill_data(name="Rent", due_date=datetime(2024, 1, 20)), NOW)
        sooner = crud_bill.create_db_bill(db, user.id, bill_data(name="Phone", due_date=datetime(2024, 1, 17)), NOW)

        bills = crud_bill.read_db_bills(db, user.id)
        assert [b.id for b in bills] == [sooner.id, later.id]

    def test_scoped_to_owner(self, db, user, other_user):
        bill = crud_bill.create_db_bill(db, user.id, bill_data(), NOW)
        assert crud_bill.read_db_bill(db, bill.id, other_user.id) is None
        assert crud_bill.read_db_bills(db, other_user.id) == []

    def test_inactive_hidden_by_default(self, db, user):
        bill = crud_bill.create_db_bill(db, user.id, bill_data(), NOW)
        crud_bill.deactivate_db_bill(db, bill.id, user.id, NOW)

        assert crud_bill.read_db_bills(db, user.id) == []
        assert [b.id for b in crud_bill.read_db_bills(db, user.id, active_only=False)] == [bill.id]

    def test_by_category(self, db, user):
        crud_bill.create_db_bill(db, user.id, bill_data(name="Rent", category="Housing"), NOW)
        electric = crud_bill.create_db_bill(db, user.id, bill_data(name="Electric", category="Utilities"), NOW)

        bills = crud_bill.get_bills_by_category(db, user.id, "Utilities")
        assert [b.id for b in bills] == [electric.id]


class TestUpdateBill:

    def test_due_date_change_recomputes_schedule(self, db, user):
        bill = crud_bill.create_db_bill(db, user.id, bill_data(), NOW)
        updated = crud_bill.update_db_bill(db, bill.id, user.id, BillUpdate(due_date=datetime(2024, 1, 20)), NOW)
        assert updated.next_due_date == datetime(2024, 3, 20)

    def test_recurrence_change_recomputes_schedule(self, db, user):
        bill = crud_bill.create_db_bill(db, user.id, bill_data(), NOW)
        updates = BillUpdate(recurrence=BillRecurrence(type="yearly"))
        updated = crud_bill.update_db_bill(db, bill.id, user.id, updates, NOW)

        assert updated.recurrence_type == RecurrenceType.YEARLY
        assert updated.next_due_date == datetime(2025, 1, 1)

    def test_plain_field_change_keeps_schedule(self, db, user):
        bill = crud_bill.create_db_bill(db, user.id, bill_data(), NOW)
        updated = crud_bill.update_db_bill(db, bill.id, user.id, BillUpdate(name="Apartment"), NOW)

        assert updated.name == "Apartment"
        assert updated.next_due_date == datetime(2024, 4, 1)

    def test_end_date_before_due_date_rejected(self, db, user):
        bill = crud_bill.create_db_bill(db, user.id, bill_data(), NOW)
        updates = BillUpdate(recurrence=BillRecurrence(type="monthly", end_date=datetime(2023, 12, 1)))

        with pytest.raises(ValueError):
            crud_bill.update_db_bill(db, bill.id, user.id, updates, NOW)

        assert crud_bill.read_db_bill(db, bill.id, user.id).recurrence_end_date is None

    def test_schedule_change_on_expired_bill_rejected(self, db, user):
        data = bill_data(
            due_date=datetime(2024, 1, 10),
            recurrence=BillRecurrence(type="monthly", end_date=datetime(2024, 2, 15)),
        )
        bill = crud_bill.create_db_bill(db, user.id, data, NOW)
        updates = BillUpdate(recurrence=BillRecurrence(type="monthly", end_date=datetime(2024, 12, 31)))

        with pytest.raises(ValueError):
            crud_bill.update_db_bill(db, bill.id, user.id, updates, NOW)

        stored = crud_bill.read_db_bill(db, bill.id, user.id)
        assert stored.is_active is False
        assert stored.next_due_date == datetime(2024, 2, 10)
        assert stored.recurrence_end_date == datetime(2024, 2, 15)

    def test_plain_field_change_on_inactive_bill_allowed(self, db, user):
        bill = crud_bill.create_db_bill(db, user.id, bill_data(), NOW)
        crud_bill.deactivate_db_bill(db, bill.id, user.id, NOW)

        updated = crud_bill.update_db_bill(db, bill.id, user.id, BillUpdate(name="Old rent"), NOW)
        assert updated.name == "Old rent"
        assert updated.is_active is False

    def test_missing_bill(self, db, user):
        with pytest.raises(NotFoundError):
            crud_bill.update_db_bill(db, 404, user.id, BillUpdate(name="x"), NOW)

    def test_update_amount(self, db, user):
        bill = crud_bill.create_db_bill(db, user.id, bill_data(), NOW)
        updated = crud_bill.update_db_bill_amount(db, bill.id, user.id, Decimal("1550.25"), NOW)
        assert updated.amount == Decimal("1550.25")


class TestMarkPaid:

    def test_advances_to_next_cycle(self, db, user):
        bill = crud_bill.create_db_bill(db, user.id, bill_data(), NOW)
        paid = crud_bill.mark_db_bill_paid(db, bill.id, user.id, NOW)

        assert paid.last_paid_date == NOW
        assert paid.next_due_date == datetime(2024, 5, 1)

    def test_inactive_bill_rejected(self, db, user):
        bill = crud_bill.create_db_bill(db, user.id, bill_data(), NOW)
        crud_bill.deactivate_db_bill(db, bill.id, user.id, NOW)

        with pytest.raises(ValueError):
            crud_bill.mark_db_bill_paid(db, bill.id, user.id, NOW)


class TestBillQueries:
    """Upcoming, overdue and reminder listings."""

    def test_upcoming_includes_overdue_and_window(self, db, user):
        created = datetime(2024, 3, 1)
        overdue = crud_bill.create_db_bill(db, user.id, bill_data(name="Late", due_date=datetime(2024, 3, 10)), created)
        soon = crud_bill.create_db_bill(db, user.id, bill_data(name="Soon", due_date=datetime(2024, 3, 25)), created)
        crud_bill.create_db_bill(db, user.id, bill_data(name="Far", due_date=datetime(2024, 6, 1)), created)

        upcoming = crud_bill.get_upcoming_bills(db, user.id, NOW, days=30)
        assert [b.id for b in upcoming] == [overdue.id, soon.id]

        overdue_bills = crud_bill.get_overdue_bills(db, user.id, NOW)
        assert [b.id for b in overdue_bills] == [overdue.id]

    def test_due_for_reminder(self, db, user):
        reminded = crud_bill.create_db_bill(
            db, user.id, bill_data(name="Card", due_date=datetime(2024, 3, 18, 12, 0), reminder_days=[3]), NOW
        )
        crud_bill.create_db_bill(
            db, user.id, bill_data(name="Gym", due_date=datetime(2024, 3, 19, 12, 0), reminder_days=[3]), NOW
        )

        bills = crud_bill.get_bills_due_for_reminder(db, user.id, NOW)
        assert [b.id for b in bills] == [reminded.id]


class TestBillResponse:

    def test_includes_derived_fields(self, db, user):
        bill = crud_bill.create_db_bill(db, user.id, bill_data(due_date=datetime(2024, 3, 10)), datetime(2024, 3, 1))
        response = crud_bill.to_bill_response(bill, NOW)

        assert response.is_overdue is True
        assert response.days_until_due == -5
        assert response.recurrence.type.value == "monthly"
        assert response.reminder_days == [7, 3, 1]
