"""
Expense model and its per-participant obligations.
"""
import enum
from sqlalchemy import (
    Column, String, Numeric, Date, DateTime, Boolean, ForeignKey, Integer, Text,
    Enum as SQLEnum, UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import relationship
from splitledger.db.base import BaseModel


class SplitMethod(str, enum.Enum):
    """How an expense total is divided among participants."""
    EQUAL = "equal"
    EXACT = "exact"
    PERCENTAGE = "percentage"


class Expense(BaseModel):
    """Expense paid by one user and shared by its participants."""
    __tablename__ = "expenses"

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    total_amount = Column(Numeric(15, 2), nullable=False)
    category = Column(String(50), nullable=False, default="general")
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=True, index=True)
    paid_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    split_method = Column(SQLEnum(SplitMethod), nullable=False, default=SplitMethod.EQUAL)
    expense_date = Column(Date, nullable=False, index=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)

    # Relationships
    group = relationship("Group", back_populates="expenses")
    payer = relationship("User", foreign_keys=[paid_by], back_populates="expenses_paid")
    participants = relationship(
        "ExpenseParticipant",
        back_populates="expense",
        cascade="all, delete-orphan",
        order_by="ExpenseParticipant.user_id",
    )

    @property
    def has_settled_participants(self) -> bool:
        return any(p.is_settled for p in self.participants)


class ExpenseParticipant(BaseModel):
    """What one user owes towards one expense."""
    __tablename__ = "expense_participants"

    expense_id = Column(Integer, ForeignKey("expenses.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount_owed = Column(Numeric(15, 2), nullable=False)
    percentage = Column(Numeric(5, 2), nullable=True)  # only for the percentage method
    is_settled = Column(Boolean, default=False, nullable=False)
    settled_at = Column(DateTime, nullable=True)

    # Relationships
    expense = relationship("Expense", back_populates="participants")
    user = relationship("User", back_populates="expense_participants")

    __table_args__ = (
        UniqueConstraint("expense_id", "user_id", name="uq_expense_participant"),
        CheckConstraint("amount_owed >= 0", name="ck_participant_amount_non_negative"),
    )
