import os
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime

from src.crud import crud_bill
from src.models import bill as bill_models
from src.db.core import get_db, NotFoundError
from src.services.clock import get_now

UPCOMING_BILLS_DAYS = int(os.getenv("UPCOMING_BILLS_DAYS", "30"))

router = APIRouter(
    prefix="/bills",
    tags=["bills"],
)

# This is a placeholder for a proper authentication dependency.
def get_current_user_id() -> int:
    return 1

@router.post("/", response_model=bill_models.BillResponse, status_code=status.HTTP_201_CREATED)
def create_bill(
    bill: bill_models.BillCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    now: datetime = Depends(get_now)
):
    """
    Create a recurring bill. Its next due date is computed from the recurrence rule.
    """
    try:
        db_bill = crud_bill.create_db_bill(db=db, user_id=user_id, bill_data=bill, now=now)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return crud_bill.to_bill_response(db_bill, now)

@router.get("/", response_model=List[bill_models.BillResponse])
def read_bills(
    skip: int = 0,
    limit: int = 100,
    active_only: bool = True,
    category: Optional[str] = None,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    now: datetime = Depends(get_now)
):
    """
    Retrieve the current user's bills, soonest due first.
    """
    if category:
        bills = crud_bill.get_bills_by_category(db=db, user_id=user_id, category=category)
    else:
        bills = crud_bill.read_db_bills(db=db, user_id=user_id, skip=skip, limit=limit, active_only=active_only)
    return [crud_bill.to_bill_response(b, now) for b in bills]

@router.get("/upcoming", response_model=List[bill_models.UpcomingBill])
def read_upcoming_bills(
    days: int = UPCOMING_BILLS_DAYS,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    now: datetime = Depends(get_now)
):
    """
    Bills due within the next `days` days, including overdue ones.
    """
    bills = crud_bill.get_upcoming_bills(db=db, user_id=user_id, now=now, days=days)
    return [crud_bill.to_upcoming_bill(b, now) for b in bills]

@router.get("/overdue", response_model=List[bill_models.UpcomingBill])
def read_overdue_bills(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    now: datetime = Depends(get_now)
):
    bills = crud_bill.get_overdue_bills(db=db, user_id=user_id, now=now)
    return [crud_bill.to_upcoming_bill(b, now) for b in bills]

@router.get("/reminders", response_model=List[bill_models.UpcomingBill])
def read_bill_reminders(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    now: datetime = Depends(get_now)
):
    """
    Bills whose reminder schedule fires today.
    """
    bills = crud_bill.get_bills_due_for_reminder(db=db, user_id=user_id, now=now)
    return [crud_bill.to_upcoming_bill(b, now) for b in bills]

@router.get("/{bill_id}", response_model=bill_models.BillResponse)
def read_bill(
    bill_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    now: datetime = Depends(get_now)
):
    db_bill = crud_bill.read_db_bill(db=db, bill_id=bill_id, user_id=user_id)
    if db_bill is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Bill not found")
    return crud_bill.to_bill_response(db_bill, now)

@router.put("/{bill_id}", response_model=bill_models.BillResponse)
def update_bill(
    bill_id: int,
    bill: bill_models.BillUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    now: datetime = Depends(get_now)
):
    """
    Update a bill. Changing the due date or recurrence recomputes the schedule.
    """
    try:
        db_bill = crud_bill.update_db_bill(db=db, bill_id=bill_id, user_id=user_id, bill_updates=bill, now=now)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return crud_bill.to_bill_response(db_bill, now)

@router.put("/{bill_id}/amount", response_model=bill_models.BillResponse)
def update_bill_amount(
    bill_id: int,
    payload: bill_models.BillAmountUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    now: datetime = Depends(get_now)
):
    try:
        db_bill = crud_bill.update_db_bill_amount(db=db, bill_id=bill_id, user_id=user_id, amount=payload.amount, now=now)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return crud_bill.to_bill_response(db_bill, now)

@router.post("/{bill_id}/pay", response_model=bill_models.BillResponse)
def pay_bill(
    bill_id: int,
    payment: Optional[bill_models.BillPayment] = None,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    now: datetime = Depends(get_now)
):
    """
    Mark the bill paid and advance it to its next cycle.
    """
    paid_date = payment.paid_date if payment else None
    try:
        db_bill = crud_bill.mark_db_bill_paid(db=db, bill_id=bill_id, user_id=user_id, now=now, paid_date=paid_date)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return crud_bill.to_bill_response(db_bill, now)

@router.delete("/{bill_id}", status_code=status.HTTP_204_NO_CONTENT)
def deactivate_bill(
    bill_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    now: datetime = Depends(get_now)
):
    """
    Deactivate a bill. Bills are kept for history rather than deleted.
    """
    try:
        crud_bill.deactivate_db_bill(db=db, bill_id=bill_id, user_id=user_id, now=now)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
