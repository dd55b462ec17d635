import sys
import os
import random
from sqlalchemy.orm import Session
from datetime import timedelta
from decimal import Decimal
from faker import Faker

# Add the project root to the Python path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from src.db.core import Base, engine, session_local, UserDB
from src.crud import crud_bill, crud_budget, crud_goal
from src.models.bill import BillCreate, BillRecurrence, RecurrenceTypeEnum
from src.models.budget import BudgetCreate, BudgetPeriodEnum
from src.models.goal import GoalCreate, GoalTypeEnum, GoalPriorityEnum
from src.services.clock import utc_now

fake = Faker()

BILL_TEMPLATES = [
    ("Rent", "Housing", Decimal("1800"), RecurrenceTypeEnum.MONTHLY, 1),
    ("Electric", "Utilities", Decimal("120"), RecurrenceTypeEnum.MONTHLY, 1),
    ("Internet", "Utilities", Decimal("65"), RecurrenceTypeEnum.MONTHLY, 1),
    ("Streaming", "Entertainment", Decimal("15.99"), RecurrenceTypeEnum.MONTHLY, 1),
    ("Car Insurance", "Insurance", Decimal("640"), RecurrenceTypeEnum.MONTHLY, 6),
    ("Gym", "Health", Decimal("25"), RecurrenceTypeEnum.WEEKLY, 2),
    ("Domain Renewal", "Services", Decimal("18"), RecurrenceTypeEnum.YEARLY, 1),
    ("Water Delivery", "Groceries", Decimal("30"), RecurrenceTypeEnum.CUSTOM, 10),
]

BUDGET_CATEGORIES = {
    "Groceries": Decimal("600"),
    "Restaurants": Decimal("250"),
    "Transportation": Decimal("200"),
    "Entertainment": Decimal("150"),
    "Shopping": Decimal("300"),
}


def seed_database(users: int = 5):
    """
    Fills the database with sample bills, budgets and goals for several users.
    """
    Base.metadata.create_all(bind=engine)
    db: Session = session_local()
    now = utc_now()

    try:
        if db.query(UserDB).count() > 0:
            print("Database appears to be already seeded. Exiting.")
            return

        print("Seeding database with sample data...")

        for i in range(users):
            print(f"--- Seeding user {i+1}/{users} ---")

            user = UserDB(
                email=fake.unique.email(),
                username=fake.unique.user_name(),
                first_name=fake.first_name(),
                last_name=fake.last_name(),
            )
            db.add(user)
            db.commit()

            for name, category, amount, rec_type, interval in BILL_TEMPLATES:
                due_date = now - timedelta(days=random.randint(0, 90))
                crud_bill.create_db_bill(db, user.id, BillCreate(
                    name=name,
                    amount=amount * Decimal(str(round(random.uniform(0.9, 1.1), 2))),
                    due_date=due_date.replace(hour=0, minute=0, second=0, microsecond=0),
                    recurrence=BillRecurrence(type=rec_type, interval=interval),
                    category=category,
                    is_auto_pay=random.random() < 0.4,
                    reminder_days=random.choice([[7, 3, 1], [3, 1], [1, 0], []]),
                ), now)

            period_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
            period_end = (period_start + timedelta(days=32)).replace(day=1) - timedelta(seconds=1)
            for category, limit in BUDGET_CATEGORIES.items():
                budget = crud_budget.create_db_budget(db, user.id, BudgetCreate(
                    name=f"{category} {period_start:%b %Y}",
                    category=category,
                    limit=limit,
                    period=BudgetPeriodEnum.MONTHLY,
                    start_date=period_start,
                    end_date=period_end,
                ), now)
                spent = limit * Decimal(str(round(random.uniform(0.3, 1.2), 2)))
                crud_budget.set_db_budget_spent(db, budget.id, user.id, spent, now)

            for goal_type in random.sample(list(GoalTypeEnum), k=3):
                target = Decimal(random.choice([1000, 2500, 5000, 10000]))
                crud_goal.create_db_goal(db, user.id, GoalCreate(
                    name=f"{fake.word().title()} {goal_type.value.replace('_', ' ')}",
                    description=fake.sentence(),
                    target_amount=target,
                    current_amount=target * Decimal(str(round(random.uniform(0, 0.8), 2))),
                    target_date=now + timedelta(days=random.randint(90, 720)),
                    type=goal_type,
                    priority=random.choice(list(GoalPriorityEnum)),
                ), now)

            print(f"User {user.username} seeded.")

        print("Successfully seeded database.")

    except Exception as e:
        print(f"An error occurred: {e}")
        db.rollback()
        raise
    finally:
        db.close()

if __name__ == "__main__":
    seed_database()
