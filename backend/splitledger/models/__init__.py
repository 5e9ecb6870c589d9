"""Models package - Import all models for SQLAlchemy registration."""
from splitledger.models.user import User
from splitledger.models.group import Group, GroupMember
from splitledger.models.expense import Expense, ExpenseParticipant, SplitMethod
from splitledger.models.settlement import Settlement
from splitledger.models.balance import Balance

__all__ = [
    "User",
    "Group",
    "GroupMember",
    "Expense",
    "ExpenseParticipant",
    "SplitMethod",
    "Settlement",
    "Balance",
]
