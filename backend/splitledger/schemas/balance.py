"""
Pydantic schemas for balances and debt reports.
"""
from pydantic import BaseModel
from typing import List, Optional
from decimal import Decimal


class CounterpartyBalance(BaseModel):
    """Net position of a user against one counterparty."""
    counterparty_id: int
    counterparty_name: Optional[str] = None
    owed: Decimal  # counterparty owes the user
    owes: Decimal  # user owes the counterparty
    net: Decimal  # positive = user owes


class Debt(BaseModel):
    """One directed debt read straight from a balance row."""
    from_user_id: int
    from_user_name: Optional[str] = None
    to_user_id: int
    to_user_name: Optional[str] = None
    amount: Decimal


class DebtReport(BaseModel):
    """Everything a user needs to see who owes whom."""
    user_id: int
    balances: List[CounterpartyBalance] = []
    debts: List[Debt] = []
    total_owed_to_me: Decimal
    total_i_owe: Decimal
    net_balance: Decimal  # owed_to_me - i_owe


class GroupDebtReport(BaseModel):
    group_id: int
    debts: List[Debt] = []
