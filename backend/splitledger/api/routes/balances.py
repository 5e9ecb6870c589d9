"""
Balance routes: the debt report for the current user or a group.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from splitledger.db.session import get_db
from splitledger.models.user import User
from splitledger.schemas.balance import DebtReport, GroupDebtReport
from splitledger.services import debt_service
from splitledger.api.dependencies import get_current_user
from splitledger.api.routes.groups import check_group_access

router = APIRouter(prefix="/balances", tags=["balances"])


@router.get("", response_model=DebtReport)
def get_my_balances(
    recalculate: bool = False,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Balances and debts of the current user, optionally rebuilt from expenses first."""
    return debt_service.get_debt_report(db, current_user.id, recalculate=recalculate)


@router.get("/groups/{group_id}", response_model=GroupDebtReport)
def get_group_balances(
    group_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Directed debts between the members of a group."""
    check_group_access(group_id, current_user.id, db)
    return debt_service.get_group_report(db, group_id)
