from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from sqlalchemy import desc
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from src.db.core import GoalDB, UserDB, GoalType, GoalPriority, GOAL_PRIORITY_RANK, NotFoundError
from src.db.store import DocumentStore
from src.logging_config import get_logger
from src.models.goal import GoalCreate, GoalUpdate, GoalResponse, GoalProgress
from src.services import progress

logger = get_logger(__name__)


# ===== DATABASE OPERATIONS =====

def create_db_goal(db: Session, user_id: int, goal_data: GoalCreate, now: datetime) -> GoalDB:
    """Create a savings goal; the target date must lie in the future"""

    user = db.query(UserDB).filter(UserDB.id == user_id).first()
    if not user:
        raise NotFoundError(f"User with id {user_id} not found")

    if goal_data.target_date <= now:
        raise ValueError("target_date must be in the future")

    db_goal = GoalDB(
        user_id=user_id,
        name=goal_data.name,
        description=goal_data.description,
        target_amount=goal_data.target_amount,
        current_amount=min(goal_data.current_amount, goal_data.target_amount),
        target_date=goal_data.target_date,
        goal_type=GoalType(goal_data.type.value),
        priority=GoalPriority(goal_data.priority.value),
        is_active=True,
        is_achieved=False,
        created_at=now,
        updated_at=now,
    )
    progress.sync_achievement(db_goal, now)

    try:
        db_goal = DocumentStore(db, GoalDB).save(db_goal)
    except IntegrityError:
        raise ValueError("Goal creation failed due to database constraint")

    logger.info(f"Created goal {db_goal.id} '{db_goal.name}' for user {user_id}")
    return db_goal


def read_db_goal(db: Session, goal_id: int, user_id: int) -> Optional[GoalDB]:
    return DocumentStore(db, GoalDB).get(goal_id, user_id=user_id)


def read_db_goals(db: Session, user_id: int, active_only: bool = True) -> List[GoalDB]:
    """Read a user's goals, highest priority first, then soonest target date"""

    query = db.query(GoalDB).filter(GoalDB.user_id == user_id)
    if active_only:
        query = query.filter(GoalDB.is_active == True)

    goals = query.order_by(GoalDB.target_date).all()
    # Stable sort keeps target-date order within each priority
    return sorted(goals, key=lambda goal: GOAL_PRIORITY_RANK[goal.priority], reverse=True)


def get_goals_by_type(db: Session, user_id: int, goal_type: GoalType) -> List[GoalDB]:
    return db.query(GoalDB).filter(
        GoalDB.user_id == user_id,
        GoalDB.goal_type == goal_type,
        GoalDB.is_active == True
    ).order_by(GoalDB.target_date).all()


def get_goals_by_priority(db: Session, user_id: int, priority: GoalPriority) -> List[GoalDB]:
    return db.query(GoalDB).filter(
        GoalDB.user_id == user_id,
        GoalDB.priority == priority,
        GoalDB.is_active == True
    ).order_by(GoalDB.target_date).all()


def get_achieved_goals(db: Session, user_id: int) -> List[GoalDB]:
    return db.query(GoalDB).filter(
        GoalDB.user_id == user_id,
        GoalDB.is_achieved == True
    ).order_by(desc(GoalDB.achieved_date)).all()


def get_overdue_goals(db: Session, user_id: int, now: datetime) -> List[GoalDB]:
    """Active, unachieved goals whose target date has passed"""

    return db.query(GoalDB).filter(
        GoalDB.user_id == user_id,
        GoalDB.is_active == True,
        GoalDB.is_achieved == False,
        GoalDB.target_date < now
    ).order_by(GoalDB.target_date).all()


def _get_owned_goal(db: Session, goal_id: int, user_id: int) -> GoalDB:
    db_goal = read_db_goal(db, goal_id, user_id)
    if not db_goal:
        raise NotFoundError(f"Goal with id {goal_id} not found")
    return db_goal


def update_db_goal(db: Session, goal_id: int, user_id: int, goal_updates: GoalUpdate, now: datetime) -> GoalDB:
    """Update descriptive fields of a goal; amounts change through contributions and targets"""

    db_goal = _get_owned_goal(db, goal_id, user_id)
    update_data = goal_updates.model_dump(exclude_unset=True)

    if 'type' in update_data:
        db_goal.goal_type = GoalType(goal_updates.type.value)
        del update_data['type']
    if 'priority' in update_data:
        update_data['priority'] = GoalPriority(goal_updates.priority.value)

    for field, value in update_data.items():
        setattr(db_goal, field, value)

    db_goal.updated_at = now
    return DocumentStore(db, GoalDB).save(db_goal)


def add_db_goal_contribution(db: Session, goal_id: int, user_id: int, amount: Decimal, now: datetime) -> GoalDB:
    """
    Add a contribution with an in-database increment capped at the target,
    then re-derive the achieved state from the stored amounts.
    """
    _get_owned_goal(db, goal_id, user_id)

    store = DocumentStore(db, GoalDB)
    db_goal = store.atomic_increment(goal_id, 'current_amount', amount, ceiling_field='target_amount')

    was_achieved = db_goal.is_achieved
    progress.sync_achievement(db_goal, now)
    db_goal.updated_at = now
    db_goal = store.save(db_goal)

    if db_goal.is_achieved and not was_achieved:
        logger.info(f"Goal {goal_id} achieved")
    return db_goal


def update_db_goal_target(db: Session, goal_id: int, user_id: int, target_amount: Decimal,
                          now: datetime, target_date: Optional[datetime] = None) -> GoalDB:
    """Replace the target and re-check the achieved state, which a higher target can undo"""

    db_goal = _get_owned_goal(db, goal_id, user_id)
    progress.update_target(db_goal, target_amount, target_date)
    progress.sync_achievement(db_goal, now)
    db_goal.updated_at = now
    return DocumentStore(db, GoalDB).save(db_goal)


def deactivate_db_goal(db: Session, goal_id: int, user_id: int, now: datetime) -> GoalDB:
    db_goal = _get_owned_goal(db, goal_id, user_id)
    progress.deactivate_goal(db_goal)
    db_goal.updated_at = now
    return DocumentStore(db, GoalDB).save(db_goal)


# ===== RESPONSE BUILDERS =====

def to_goal_response(goal: GoalDB, now: datetime) -> GoalResponse:
    return GoalResponse(
        id=goal.id,
        user_id=goal.user_id,
        name=goal.name,
        description=goal.description,
        target_amount=goal.target_amount,
        current_amount=goal.current_amount,
        target_date=goal.target_date,
        type=goal.goal_type.value,
        priority=goal.priority.value,
        is_active=goal.is_active,
        is_achieved=goal.is_achieved,
        achieved_date=goal.achieved_date,
        progress_percentage=progress.goal_progress_percentage(goal),
        remaining_amount=progress.goal_remaining_amount(goal),
        days_remaining=progress.goal_days_remaining(goal, now),
        monthly_contribution_needed=progress.monthly_contribution_needed(goal, now),
        is_on_track=progress.is_on_track(goal, now),
        created_at=goal.created_at,
        updated_at=goal.updated_at,
    )


def to_goal_progress(goal: GoalDB, now: datetime) -> GoalProgress:
    return GoalProgress(
        goal_id=goal.id,
        name=goal.name,
        target_amount=goal.target_amount,
        current_amount=goal.current_amount,
        progress_percentage=progress.goal_progress_percentage(goal),
        expected_progress=progress.calculate_expected_progress(goal, now),
        remaining_amount=progress.goal_remaining_amount(goal),
        days_remaining=progress.goal_days_remaining(goal, now),
        is_on_track=progress.is_on_track(goal, now),
        projected_completion_date=progress.calculate_projected_completion_date(goal, now),
        monthly_contribution_needed=progress.monthly_contribution_needed(goal, now),
    )
