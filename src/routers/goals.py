from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime

from src.crud import crud_goal
from src.models import goal as goal_models
from src.db.core import get_db, NotFoundError, GoalType, GoalPriority
from src.services.clock import get_now

router = APIRouter(
    prefix="/goals",
    tags=["goals"],
)

# This is a placeholder for a proper authentication dependency.
def get_current_user_id() -> int:
    return 1

@router.post("/", response_model=goal_models.GoalResponse, status_code=status.HTTP_201_CREATED)
def create_goal(
    goal: goal_models.GoalCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    now: datetime = Depends(get_now)
):
    """
    Create a new financial goal. The target date must be in the future.
    """
    try:
        db_goal = crud_goal.create_db_goal(db=db, user_id=user_id, goal_data=goal, now=now)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return crud_goal.to_goal_response(db_goal, now)

@router.get("/", response_model=List[goal_models.GoalResponse])
def read_goals(
    active_only: bool = True,
    goal_type: Optional[goal_models.GoalTypeEnum] = None,
    priority: Optional[goal_models.GoalPriorityEnum] = None,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    now: datetime = Depends(get_now)
):
    """
    Retrieve the current user's goals, highest priority first.
    """
    if goal_type:
        goals = crud_goal.get_goals_by_type(db=db, user_id=user_id, goal_type=GoalType(goal_type.value))
    elif priority:
        goals = crud_goal.get_goals_by_priority(db=db, user_id=user_id, priority=GoalPriority(priority.value))
    else:
        goals = crud_goal.read_db_goals(db=db, user_id=user_id, active_only=active_only)
    return [crud_goal.to_goal_response(g, now) for g in goals]

@router.get("/achieved", response_model=List[goal_models.GoalResponse])
def read_achieved_goals(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    now: datetime = Depends(get_now)
):
    goals = crud_goal.get_achieved_goals(db=db, user_id=user_id)
    return [crud_goal.to_goal_response(g, now) for g in goals]

@router.get("/overdue", response_model=List[goal_models.GoalResponse])
def read_overdue_goals(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    now: datetime = Depends(get_now)
):
    """
    Active goals that passed their target date without being achieved.
    """
    goals = crud_goal.get_overdue_goals(db=db, user_id=user_id, now=now)
    return [crud_goal.to_goal_response(g, now) for g in goals]

@router.get("/{goal_id}", response_model=goal_models.GoalResponse)
def read_goal(
    goal_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    now: datetime = Depends(get_now)
):
    db_goal = crud_goal.read_db_goal(db=db, goal_id=goal_id, user_id=user_id)
    if db_goal is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Goal not found")
    return crud_goal.to_goal_response(db_goal, now)

@router.get("/{goal_id}/progress", response_model=goal_models.GoalProgress)
def read_goal_progress(
    goal_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    now: datetime = Depends(get_now)
):
    """
    Progress, expected progress and projected completion date for a goal.
    """
    db_goal = crud_goal.read_db_goal(db=db, goal_id=goal_id, user_id=user_id)
    if db_goal is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Goal not found")
    return crud_goal.to_goal_progress(db_goal, now)

@router.put("/{goal_id}", response_model=goal_models.GoalResponse)
def update_goal(
    goal_id: int,
    goal: goal_models.GoalUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    now: datetime = Depends(get_now)
):
    try:
        db_goal = crud_goal.update_db_goal(db=db, goal_id=goal_id, user_id=user_id, goal_updates=goal, now=now)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return crud_goal.to_goal_response(db_goal, now)

@router.post("/{goal_id}/contributions", response_model=goal_models.GoalResponse)
def add_goal_contribution(
    goal_id: int,
    contribution: goal_models.GoalContribution,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    now: datetime = Depends(get_now)
):
    """
    Add a contribution. Amounts beyond the target are not carried over.
    """
    try:
        db_goal = crud_goal.add_db_goal_contribution(db=db, goal_id=goal_id, user_id=user_id, amount=contribution.amount, now=now)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return crud_goal.to_goal_response(db_goal, now)

@router.put("/{goal_id}/target", response_model=goal_models.GoalResponse)
def update_goal_target(
    goal_id: int,
    target: goal_models.GoalTargetUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    now: datetime = Depends(get_now)
):
    """
    Change the target amount and optionally the target date.
    """
    try:
        db_goal = crud_goal.update_db_goal_target(
            db=db, goal_id=goal_id, user_id=user_id,
            target_amount=target.target_amount, now=now, target_date=target.target_date
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return crud_goal.to_goal_response(db_goal, now)

@router.delete("/{goal_id}", status_code=status.HTTP_204_NO_CONTENT)
def deactivate_goal(
    goal_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    now: datetime = Depends(get_now)
):
    try:
        crud_goal.deactivate_db_goal(db=db, goal_id=goal_id, user_id=user_id, now=now)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
