"""
Expense management routes.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from splitledger.db.session import get_db
from splitledger.models.user import User
from splitledger.models.expense import Expense
from splitledger.schemas.expense import ExpenseCreate, ExpenseResponse, ExpenseUpdate
from splitledger.services import expense_service
from splitledger.api.dependencies import get_current_user
from splitledger.api.routes.groups import check_group_access

router = APIRouter(prefix="/expenses", tags=["expenses"])


def check_expense_access(expense: Expense, user_id: int) -> None:
    """Payer, creator and participants may read an expense."""
    allowed = (
        expense.paid_by == user_id
        or expense.created_by == user_id
        or any(p.user_id == user_id for p in expense.participants)
    )
    if not allowed:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied"
        )


def check_users_exist(user_ids, db: Session) -> None:
    """Reject payer or participant ids that do not belong to any user."""
    wanted = {uid for uid in user_ids if uid is not None}
    found = {uid for (uid,) in db.query(User.id).filter(User.id.in_(sorted(wanted))).all()}
    missing = sorted(wanted - found)
    if missing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown users: {missing}"
        )


def check_expense_owner(expense: Expense, user_id: int) -> None:
    if expense.created_by != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the creator can modify this expense"
        )


@router.post("", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
def create_expense(
    expense_data: ExpenseCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create an expense and split it among its participants."""
    if expense_data.group_id is not None:
        check_group_access(expense_data.group_id, current_user.id, db)
    check_users_exist([expense_data.paid_by, *(p.user_id for p in expense_data.participants)], db)
    return expense_service.create_expense(db, expense_data, created_by=current_user.id)


@router.get("", response_model=List[ExpenseResponse])
def list_expenses(
    limit: Optional[int] = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    group_id: Optional[int] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List expenses the current user paid for or takes part in."""
    if group_id is not None:
        check_group_access(group_id, current_user.id, db)
    return expense_service.list_user_expenses(db, current_user.id, limit=limit, offset=offset, group_id=group_id)


@router.get("/{expense_id}", response_model=ExpenseResponse)
def get_expense(
    expense_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get one expense with its participants."""
    expense = expense_service.get_expense(db, expense_id)
    check_expense_access(expense, current_user.id)
    return expense


@router.put("/{expense_id}", response_model=ExpenseResponse)
def update_expense(
    expense_id: int,
    expense_data: ExpenseUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update an expense (creator only, while nothing is settled)."""
    check_expense_owner(expense_service.get_expense(db, expense_id), current_user.id)
    check_users_exist([expense_data.paid_by, *(p.user_id for p in expense_data.participants or [])], db)
    return expense_service.update_expense(db, expense_id, expense_data)


@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_expense(
    expense_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete an expense (creator only, while nothing is settled)."""
    check_expense_owner(expense_service.get_expense(db, expense_id), current_user.id)
    expense_service.delete_expense(db, expense_id)
