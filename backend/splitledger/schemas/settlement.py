"""
Pydantic schemas for Settlement entity.
"""
from pydantic import BaseModel
from typing import Optional
from datetime import date, datetime
from decimal import Decimal


class SettlementCreate(BaseModel):
    """Schema for recording a repayment."""
    from_user_id: int
    to_user_id: int
    amount: Decimal
    expense_id: Optional[int] = None
    notes: Optional[str] = None
    settlement_date: Optional[date] = None


class SettlementResponse(BaseModel):
    """Schema for settlement response."""
    id: int
    from_user_id: int
    to_user_id: int
    amount: Decimal
    expense_id: Optional[int] = None
    notes: Optional[str] = None
    settlement_date: date
    created_by: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True
