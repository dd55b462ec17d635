"""
Pytest fixtures for the Pocket Planner test suite.

Provides:
- An in-memory SQLite session with the schema created per test
- A seeded user matching the API's placeholder current user (id=1)
- Factories for unsaved bills, budgets and goals
- A FastAPI TestClient with the database and clock dependencies pinned
"""
import pytest
from datetime import datetime
from decimal import Decimal

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from src.db.core import (
    Base,
    get_db,
    UserDB,
    BillDB,
    BudgetDB,
    GoalDB,
    RecurrenceType,
    BudgetPeriod,
    GoalType,
    GoalPriority,
)
from src.main import app
from src.services.clock import get_now

# Fixed evaluation time shared by the whole suite
NOW = datetime(2024, 3, 15, 12, 0, 0)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def user(db) -> UserDB:
    user = UserDB(
        id=1,
        email="casey@example.com",
        username="casey",
        first_name="Casey",
        last_name="Morgan",
        created_at=NOW,
        updated_at=NOW,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def other_user(db) -> UserDB:
    user = UserDB(
        id=2,
        email="jordan@example.com",
        username="jordan",
        created_at=NOW,
        updated_at=NOW,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def make_bill():
    """Build an unsaved bill; keyword arguments override the defaults."""

    def factory(**overrides) -> BillDB:
        fields = dict(
            id=None,
            user_id=1,
            name="Rent",
            amount=Decimal("1500.00"),
            category="Housing",
            is_auto_pay=False,
            reminder_days=[],
            due_date=datetime(2024, 1, 1),
            recurrence_type=RecurrenceType.MONTHLY,
            recurrence_interval=1,
            recurrence_end_date=None,
            next_due_date=None,
            last_paid_date=None,
            is_active=True,
            created_at=NOW,
            updated_at=NOW,
        )
        fields.update(overrides)
        if fields["next_due_date"] is None:
            fields["next_due_date"] = fields["due_date"]
        return BillDB(**fields)

    return factory


@pytest.fixture
def make_budget():
    """Build an unsaved budget; keyword arguments override the defaults."""

    def factory(**overrides) -> BudgetDB:
        fields = dict(
            id=None,
            user_id=1,
            name="Groceries March",
            category="Groceries",
            limit=Decimal("500.00"),
            period=BudgetPeriod.MONTHLY,
            spent=Decimal("0.00"),
            start_date=datetime(2024, 3, 1),
            end_date=datetime(2024, 3, 31, 23, 59, 59),
            is_active=True,
            notify_at_75_percent=True,
            notify_at_90_percent=True,
            notify_at_limit=True,
            created_at=NOW,
            updated_at=NOW,
        )
        fields.update(overrides)
        return BudgetDB(**fields)

    return factory


@pytest.fixture
def make_goal():
    """Build an unsaved goal; keyword arguments override the defaults."""

    def factory(**overrides) -> GoalDB:
        fields = dict(
            id=None,
            user_id=1,
            name="Emergency Fund",
            description=None,
            target_amount=Decimal("1000.00"),
            current_amount=Decimal("0.00"),
            target_date=datetime(2024, 7, 1),
            goal_type=GoalType.EMERGENCY_FUND,
            priority=GoalPriority.MEDIUM,
            is_active=True,
            is_achieved=False,
            achieved_date=None,
            created_at=datetime(2024, 1, 1),
            updated_at=datetime(2024, 1, 1),
        )
        fields.update(overrides)
        return GoalDB(**fields)

    return factory


@pytest.fixture
def client(db, user):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_now] = lambda: NOW
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
