"""
Pydantic schemas for Expense entity and the split calculator.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal
from splitledger.models.expense import SplitMethod


class ParticipantInput(BaseModel):
    """One participant as supplied by the caller."""
    user_id: int
    amount: Optional[Decimal] = None  # exact method
    percentage: Optional[Decimal] = None  # percentage method


class SplitShare(BaseModel):
    """Calculator output: what one participant owes."""
    user_id: int
    amount_owed: Decimal
    percentage: Optional[Decimal] = None


class ExpenseCreate(BaseModel):
    """Schema for expense creation."""
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    total_amount: Decimal
    category: Optional[str] = None
    group_id: Optional[int] = None
    paid_by: int
    split_method: SplitMethod = SplitMethod.EQUAL
    expense_date: date
    participants: List[ParticipantInput]


class ExpenseUpdate(BaseModel):
    """Schema for expense update; omitted fields keep their value."""
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    total_amount: Optional[Decimal] = None
    category: Optional[str] = None
    paid_by: Optional[int] = None
    split_method: Optional[SplitMethod] = None
    expense_date: Optional[date] = None
    participants: Optional[List[ParticipantInput]] = None


class ExpenseParticipantResponse(BaseModel):
    """Schema for expense participant response."""
    user_id: int
    amount_owed: Decimal
    percentage: Optional[Decimal] = None
    is_settled: bool
    settled_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ExpenseResponse(BaseModel):
    """Schema for expense response."""
    id: int
    title: str
    description: Optional[str] = None
    total_amount: Decimal
    category: str
    group_id: Optional[int] = None
    paid_by: int
    split_method: SplitMethod
    expense_date: date
    created_by: int
    participants: List[ExpenseParticipantResponse] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
