"""
Debt reporter: read-only views over the balance ledger.
"""
from decimal import Decimal
from sqlalchemy.orm import Session
from splitledger.schemas.balance import DebtReport, GroupDebtReport
from splitledger.services import ledger_service


def get_debt_report(db: Session, user_id: int, recalculate: bool = False) -> DebtReport:
    """
    Per-counterparty balances, directed debts and the two headline totals.

    With recalculate=True the user's rows are first rebuilt from unsettled
    expenses (see ledger_service.recompute for what that does and does not do).
    """
    if recalculate:
        ledger_service.recompute(db, user_id)

    balances = ledger_service.get_balances(db, user_id)
    debts = ledger_service.get_simplified_debts(db, user_id)

    total_owed_to_me = sum((b.owed for b in balances), Decimal(0))
    total_i_owe = sum((b.owes for b in balances), Decimal(0))

    return DebtReport(
        user_id=user_id,
        balances=balances,
        debts=debts,
        total_owed_to_me=total_owed_to_me,
        total_i_owe=total_i_owe,
        net_balance=total_owed_to_me - total_i_owe,
    )


def get_group_report(db: Session, group_id: int) -> GroupDebtReport:
    return GroupDebtReport(group_id=group_id, debts=ledger_service.get_group_debts(db, group_id))
