from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime

from src.crud import crud_budget
from src.models import budget as budget_models
from src.db.core import get_db, NotFoundError
from src.services import progress
from src.services.clock import get_now, as_naive_utc

router = APIRouter(
    prefix="/budgets",
    tags=["budgets"],
)

# This is a placeholder for a proper authentication dependency.
def get_current_user_id() -> int:
    return 1

@router.post("/", response_model=budget_models.BudgetResponse, status_code=status.HTTP_201_CREATED)
def create_budget(
    budget: budget_models.BudgetCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    now: datetime = Depends(get_now)
):
    """
    Create a new budget for a category and period.
    """
    try:
        db_budget = crud_budget.create_db_budget(db=db, user_id=user_id, budget_data=budget, now=now)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return crud_budget.to_budget_response(db_budget, now)

@router.get("/", response_model=List[budget_models.BudgetResponse])
def read_budgets(
    skip: int = 0,
    limit: int = 100,
    active_only: bool = False,
    category: Optional[str] = None,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    now: datetime = Depends(get_now)
):
    """
    Retrieve all budgets for the current user.
    """
    if category:
        budgets = crud_budget.get_budgets_by_category(db=db, user_id=user_id, category=category)
    else:
        budgets = crud_budget.read_db_budgets(db=db, user_id=user_id, now=now, skip=skip, limit=limit, active_only=active_only)
    return [crud_budget.to_budget_response(b, now) for b in budgets]

@router.get("/current", response_model=List[budget_models.BudgetResponse])
def read_current_budgets(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    now: datetime = Depends(get_now)
):
    """
    Active budgets whose period contains the current date.
    """
    budgets = crud_budget.get_current_budgets(db=db, user_id=user_id, now=now)
    return [crud_budget.to_budget_response(b, now) for b in budgets]

@router.get("/report", response_model=budget_models.BudgetReport)
def read_budget_report(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    """
    Planned vs actual spending for budgets overlapping the given window.
    """
    return crud_budget.get_budget_report(
        db=db, user_id=user_id,
        start_date=as_naive_utc(start_date),
        end_date=as_naive_utc(end_date)
    )

@router.get("/{budget_id}", response_model=budget_models.BudgetResponse)
def read_budget(
    budget_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    now: datetime = Depends(get_now)
):
    db_budget = crud_budget.read_db_budget(db=db, budget_id=budget_id, user_id=user_id)
    if db_budget is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Budget not found")
    return crud_budget.to_budget_response(db_budget, now)

@router.put("/{budget_id}", response_model=budget_models.BudgetResponse)
def update_budget(
    budget_id: int,
    budget: budget_models.BudgetUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    now: datetime = Depends(get_now)
):
    """
    Update a budget's details, limit, date range or notification flags.
    """
    try:
        db_budget = crud_budget.update_db_budget(db=db, budget_id=budget_id, user_id=user_id, budget_updates=budget, now=now)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return crud_budget.to_budget_response(db_budget, now)

@router.put("/{budget_id}/spent", response_model=budget_models.BudgetResponse)
def set_budget_spent(
    budget_id: int,
    payload: budget_models.BudgetSpentUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    now: datetime = Depends(get_now)
):
    """
    Replace the spent total. Negative amounts are stored as zero.
    """
    try:
        db_budget = crud_budget.set_db_budget_spent(db=db, budget_id=budget_id, user_id=user_id, amount=payload.amount, now=now)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return crud_budget.to_budget_response(db_budget, now)

@router.post("/{budget_id}/spent", response_model=budget_models.BudgetResponse)
def add_budget_spent(
    budget_id: int,
    payload: budget_models.BudgetSpentIncrement,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    now: datetime = Depends(get_now)
):
    """
    Add to the spent total. The budget may go over its limit.
    """
    try:
        db_budget = crud_budget.add_to_db_budget_spent(db=db, budget_id=budget_id, user_id=user_id, delta=payload.delta)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return crud_budget.to_budget_response(db_budget, now)

@router.post("/{budget_id}/reset", response_model=budget_models.BudgetResponse)
def reset_budget_period(
    budget_id: int,
    payload: budget_models.BudgetPeriodReset,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    now: datetime = Depends(get_now)
):
    """
    Start a new period: spent goes back to zero and the date window is replaced.
    """
    try:
        db_budget = crud_budget.reset_db_budget_period(
            db=db, budget_id=budget_id, user_id=user_id,
            start_date=payload.start_date, end_date=payload.end_date, now=now
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return crud_budget.to_budget_response(db_budget, now)

@router.get("/{budget_id}/notifications", response_model=budget_models.BudgetNotificationCheck)
def check_budget_notifications(
    budget_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    """
    Which notification thresholds the budget's usage currently sits in.
    """
    try:
        db_budget, thresholds = crud_budget.check_db_budget_notifications(db=db, budget_id=budget_id, user_id=user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return budget_models.BudgetNotificationCheck(
        budget_id=db_budget.id,
        percentage_used=progress.budget_percentage_used(db_budget),
        thresholds=sorted(thresholds),
    )

@router.delete("/{budget_id}", status_code=status.HTTP_204_NO_CONTENT)
def deactivate_budget(
    budget_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    now: datetime = Depends(get_now)
):
    try:
        crud_budget.deactivate_db_budget(db=db, budget_id=budget_id, user_id=user_id, now=now)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
