"""
Settlement model: a repayment from one user to another.
"""
from sqlalchemy import Column, Text, Numeric, Date, ForeignKey, Integer, CheckConstraint
from sqlalchemy.orm import relationship
from splitledger.db.base import BaseModel


class Settlement(BaseModel):
    """Payment of `amount` from from_user_id to to_user_id."""
    __tablename__ = "settlements"

    from_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    to_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Numeric(15, 2), nullable=False)
    expense_id = Column(Integer, ForeignKey("expenses.id", ondelete="SET NULL"), nullable=True, index=True)
    notes = Column(Text, nullable=True)
    settlement_date = Column(Date, nullable=False, index=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Relationships
    from_user = relationship("User", foreign_keys=[from_user_id])
    to_user = relationship("User", foreign_keys=[to_user_id])
    expense = relationship("Expense")

    __table_args__ = (
        CheckConstraint("from_user_id <> to_user_id", name="ck_settlement_distinct_users"),
        CheckConstraint("amount > 0", name="ck_settlement_amount_positive"),
    )
