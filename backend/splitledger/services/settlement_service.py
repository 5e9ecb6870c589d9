"""
Settlement lifecycle: recording repayments and reversing them.

Recording a settlement touches three things: the settlements row, the two
balance rows of the pair, and optionally the payer's participant row on the
linked expense. All three are written in a single transaction.
"""
import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from splitledger.core.config import settings
from splitledger.core.exceptions import InvalidSettlement, NotFound
from splitledger.core.utils import round2
from splitledger.db.session import run_in_transaction
from splitledger.models.expense import Expense, ExpenseParticipant
from splitledger.models.group import GroupMember
from splitledger.models.settlement import Settlement
from splitledger.schemas.settlement import SettlementResponse
from splitledger.services.ledger_service import apply_adjustment

logger = logging.getLogger(__name__)


def _mark_participant_settled(db: Session, expense_id: int, user_id: int) -> bool:
    participant = (
        db.query(ExpenseParticipant)
        .filter(
            ExpenseParticipant.expense_id == expense_id,
            ExpenseParticipant.user_id == user_id,
        )
        .with_for_update()
        .first()
    )
    if participant is None:
        return False
    if not participant.is_settled:
        participant.is_settled = True
        participant.settled_at = datetime.utcnow()
    return True


def record_settlement(
    db: Session,
    from_user_id: int,
    to_user_id: int,
    amount: Decimal,
    expense_id: Optional[int] = None,
    settlement_date: Optional[date] = None,
    notes: Optional[str] = None,
    created_by: Optional[int] = None,
) -> int:
    """
    Record that from_user paid to_user and move their balance accordingly.

    When expense_id is given, from_user's participant row on that expense is
    flagged settled; a payer who is not a participant leaves the expense as is.
    Returns the new settlement id.
    """
    if from_user_id == to_user_id:
        raise InvalidSettlement("Cannot create settlement between same user")
    try:
        amount = round2(amount) if amount is not None else None
    except InvalidOperation:
        raise InvalidSettlement("Settlement amount is not a number", details={"amount": str(amount)})
    if amount is None or amount <= 0:
        raise InvalidSettlement("Settlement amount must be positive", details={"amount": str(amount)})

    def work(session: Session) -> int:
        if expense_id is not None:
            # Locks the expense against concurrent update/delete until commit
            if session.query(Expense.id).filter(Expense.id == expense_id).with_for_update().scalar() is None:
                raise NotFound("Expense not found")

        settlement = Settlement(
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            amount=amount,
            expense_id=expense_id,
            notes=notes,
            settlement_date=settlement_date or date.today(),
            created_by=created_by,
        )
        session.add(settlement)
        session.flush()

        apply_adjustment(session, from_user_id, to_user_id, amount)

        if expense_id is not None and not _mark_participant_settled(session, expense_id, from_user_id):
            logger.debug(f"User {from_user_id} is not a participant of expense {expense_id}")

        return settlement.id

    settlement_id = run_in_transaction(db, work)
    logger.info(
        f"Recorded settlement {settlement_id}: {from_user_id} -> {to_user_id} amount={amount}"
        + (f" for expense {expense_id}" if expense_id is not None else "")
    )
    return settlement_id


def delete_settlement(db: Session, settlement_id: int) -> SettlementResponse:
    """
    Delete a settlement and apply the exact inverse balance adjustment.

    Participant rows flagged settled when it was recorded stay settled.
    Returns a snapshot of the deleted settlement.
    """
    def work(session: Session) -> SettlementResponse:
        settlement = (
            session.query(Settlement)
            .filter(Settlement.id == settlement_id)
            .with_for_update()
            .first()
        )
        if settlement is None:
            raise NotFound("Settlement not found")

        snapshot = SettlementResponse.model_validate(settlement)
        apply_adjustment(session, settlement.to_user_id, settlement.from_user_id, settlement.amount)
        session.delete(settlement)
        session.flush()
        return snapshot

    deleted = run_in_transaction(db, work)
    logger.info(
        f"Deleted settlement {settlement_id}, reversed {deleted.from_user_id} -> "
        f"{deleted.to_user_id} amount={deleted.amount}"
    )
    return deleted


def get_settlement(db: Session, settlement_id: int) -> Settlement:
    settlement = db.query(Settlement).filter(Settlement.id == settlement_id).first()
    if settlement is None:
        raise NotFound("Settlement not found")
    return settlement


def _page(limit: Optional[int], offset: int):
    limit = limit or settings.DEFAULT_PAGE_SIZE
    return min(limit, settings.MAX_PAGE_SIZE), max(offset, 0)


def list_user_settlements(db: Session, user_id: int, limit: Optional[int] = None, offset: int = 0) -> List[Settlement]:
    """Settlements the user paid or received, newest first."""
    limit, offset = _page(limit, offset)
    return (
        db.query(Settlement)
        .filter(or_(Settlement.from_user_id == user_id, Settlement.to_user_id == user_id))
        .order_by(Settlement.settlement_date.desc(), Settlement.created_at.desc(), Settlement.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )


def list_group_settlements(db: Session, group_id: int, limit: Optional[int] = None, offset: int = 0) -> List[Settlement]:
    """Settlements where either party belongs to the group or the linked expense does."""
    limit, offset = _page(limit, offset)
    member_ids = select(GroupMember.user_id).where(GroupMember.group_id == group_id)
    group_expense_ids = select(Expense.id).where(Expense.group_id == group_id)
    return (
        db.query(Settlement)
        .filter(
            or_(
                Settlement.from_user_id.in_(member_ids),
                Settlement.to_user_id.in_(member_ids),
                Settlement.expense_id.in_(group_expense_ids),
            )
        )
        .order_by(Settlement.settlement_date.desc(), Settlement.created_at.desc(), Settlement.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )
