"""
Expense service: the expense store that ledger recompute reads from.
"""
import logging
from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, selectinload

from splitledger.core.config import settings
from splitledger.core.exceptions import ExpenseLocked, NotFound
from splitledger.core.utils import round2
from splitledger.db.session import run_in_transaction
from splitledger.models.expense import Expense, ExpenseParticipant
from splitledger.models.settlement import Settlement
from splitledger.schemas.expense import ExpenseCreate, ExpenseUpdate, ParticipantInput
from splitledger.services.split_service import compute_split, validate_split

logger = logging.getLogger(__name__)


def _build_participants(expense: Expense, participants: List[ParticipantInput]) -> List[ExpenseParticipant]:
    validate_split(expense.total_amount, participants, expense.split_method)
    shares = compute_split(expense.total_amount, participants, expense.split_method)
    return [
        ExpenseParticipant(
            user_id=share.user_id,
            amount_owed=round2(share.amount_owed),
            percentage=share.percentage,
        )
        for share in shares
    ]


def _load_expense(db: Session, expense_id: int, lock: bool = False) -> Expense:
    query = (
        db.query(Expense)
        .options(selectinload(Expense.participants))
        .filter(Expense.id == expense_id)
    )
    if lock:
        query = query.with_for_update()
    expense = query.first()
    if expense is None:
        raise NotFound("Expense not found")
    return expense


def create_expense(db: Session, data: ExpenseCreate, created_by: int) -> Expense:
    """Create an expense and all its participant rows in one transaction."""
    def work(session: Session) -> int:
        expense = Expense(
            title=data.title,
            description=data.description,
            total_amount=round2(data.total_amount),
            category=(data.category or "general").lower(),
            group_id=data.group_id,
            paid_by=data.paid_by,
            split_method=data.split_method,
            expense_date=data.expense_date,
            created_by=created_by,
        )
        expense.participants = _build_participants(expense, data.participants)
        session.add(expense)
        session.flush()
        return expense.id

    expense_id = run_in_transaction(db, work)
    logger.info(
        f"Created expense {expense_id} ({data.split_method.value}) total={data.total_amount} "
        f"paid_by={data.paid_by} participants={len(data.participants)}"
    )
    return get_expense(db, expense_id)


def get_expense(db: Session, expense_id: int) -> Expense:
    return _load_expense(db, expense_id)


def list_user_expenses(
    db: Session,
    user_id: int,
    limit: Optional[int] = None,
    offset: int = 0,
    group_id: Optional[int] = None,
) -> List[Expense]:
    """Expenses the user paid for or takes part in, newest first."""
    limit = min(limit or settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)
    involved = select(ExpenseParticipant.expense_id).where(ExpenseParticipant.user_id == user_id)

    query = (
        db.query(Expense)
        .options(selectinload(Expense.participants))
        .filter(or_(Expense.paid_by == user_id, Expense.id.in_(involved)))
    )
    if group_id is not None:
        query = query.filter(Expense.group_id == group_id)

    return (
        query.order_by(Expense.expense_date.desc(), Expense.created_at.desc(), Expense.id.desc())
        .limit(limit)
        .offset(max(offset, 0))
        .all()
    )


def update_expense(db: Session, expense_id: int, data: ExpenseUpdate) -> Expense:
    """
    Update an expense that has no settled participants.

    Changing the total, the split method or the participant list recomputes
    every participant's share.
    """
    def work(session: Session) -> None:
        expense = _load_expense(session, expense_id, lock=True)
        if expense.has_settled_participants:
            raise ExpenseLocked("Expense has settled participants and cannot be changed")

        changes = data.model_dump(exclude_unset=True, exclude={"participants"})
        resplit = any(key in changes for key in ("total_amount", "split_method")) or data.participants is not None

        for field, value in changes.items():
            if value is None:
                continue
            if field == "total_amount":
                value = round2(value)
            elif field == "category":
                value = value.lower()
            setattr(expense, field, value)

        if resplit:
            participants = data.participants
            if participants is None:
                participants = [
                    ParticipantInput(user_id=p.user_id, amount=p.amount_owed, percentage=p.percentage)
                    for p in expense.participants
                ]
            new_rows = _build_participants(expense, participants)
            expense.participants.clear()
            session.flush()
            expense.participants.extend(new_rows)
        session.flush()

    run_in_transaction(db, work)
    logger.info(f"Updated expense {expense_id}")
    return get_expense(db, expense_id)


def delete_expense(db: Session, expense_id: int) -> None:
    """Delete an expense with no settled participants and unlink its settlements."""
    def work(session: Session) -> None:
        expense = _load_expense(session, expense_id, lock=True)
        if expense.has_settled_participants:
            raise ExpenseLocked("Expense has settled participants and cannot be deleted")

        session.query(Settlement).filter(Settlement.expense_id == expense_id).update(
            {Settlement.expense_id: None}, synchronize_session=False
        )
        session.delete(expense)
        session.flush()

    run_in_transaction(db, work)
    logger.info(f"Deleted expense {expense_id}")
