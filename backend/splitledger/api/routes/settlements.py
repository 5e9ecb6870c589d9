"""
Settlement routes: record, list and reverse repayments.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from splitledger.db.session import get_db
from splitledger.models.user import User
from splitledger.schemas.settlement import SettlementCreate, SettlementResponse
from splitledger.services import settlement_service
from splitledger.core.utils import format_response
from splitledger.api.dependencies import get_current_user
from splitledger.api.routes.groups import check_group_access

router = APIRouter(prefix="/settlements", tags=["settlements"])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_settlement(
    settlement_data: SettlementCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Record a repayment and update the pair's balance."""
    counterparts = [settlement_data.from_user_id, settlement_data.to_user_id]
    if db.query(User.id).filter(User.id.in_(counterparts)).count() != len(set(counterparts)):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    settlement_id = settlement_service.record_settlement(
        db,
        from_user_id=settlement_data.from_user_id,
        to_user_id=settlement_data.to_user_id,
        amount=settlement_data.amount,
        expense_id=settlement_data.expense_id,
        settlement_date=settlement_data.settlement_date,
        notes=settlement_data.notes,
        created_by=current_user.id,
    )
    return format_response({"settlement_id": settlement_id}, message="Settlement recorded successfully")


@router.get("", response_model=List[SettlementResponse])
def list_settlements(
    group_id: Optional[int] = None,
    limit: Optional[int] = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List the current user's settlements, or a group's."""
    if group_id is not None:
        check_group_access(group_id, current_user.id, db)
        return settlement_service.list_group_settlements(db, group_id, limit=limit, offset=offset)
    return settlement_service.list_user_settlements(db, current_user.id, limit=limit, offset=offset)


@router.delete("/{settlement_id}", response_model=SettlementResponse)
def delete_settlement(
    settlement_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete a settlement and reverse its balance effect."""
    settlement = settlement_service.get_settlement(db, settlement_id)
    if current_user.id not in (settlement.created_by, settlement.from_user_id, settlement.to_user_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied"
        )
    return settlement_service.delete_settlement(db, settlement_id)
