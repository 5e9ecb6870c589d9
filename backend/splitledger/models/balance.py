"""
Balance model: derived pairwise net position.

One row per direction. balance > 0 means user_id owes counterparty_id; the
mirrored row (counterparty_id, user_id) always holds the negated value.
Only splitledger.services.ledger_service writes to this table.
"""
from sqlalchemy import Column, Numeric, ForeignKey, Integer, UniqueConstraint, Index
from splitledger.db.base import BaseModel, BALANCE_PAIR_CONSTRAINT


class Balance(BaseModel):
    """Signed net balance of user_id towards counterparty_id."""
    __tablename__ = "balances"

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    counterparty_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    balance = Column(Numeric(15, 2), nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("user_id", "counterparty_id", name=BALANCE_PAIR_CONSTRAINT),
        Index("ix_balances_user_balance", "user_id", "balance"),
    )
