"""
Balance ledger: the pairwise net-balance table and every write to it.

Sign convention: balance(A, B) > 0 means A owes B. Every mutation writes the
(A, B) and (B, A) rows in the same transaction so that
balance(A, B) == -balance(B, A) holds after each commit. Rows that net to
zero are deleted and read back as zero.

Two independent writers exist and are not reconciled with each other:
adjust() is driven by settlements, recompute() replays unsettled expense
participants for one user and ignores settlements entirely.
"""
import logging
from collections import defaultdict
from decimal import Decimal
from typing import Dict, List, Tuple

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session, aliased

from splitledger.core.exceptions import InvalidSettlement, NotFound
from splitledger.core.utils import round2
from splitledger.db.session import run_in_transaction
from splitledger.models.balance import Balance
from splitledger.models.expense import Expense, ExpenseParticipant
from splitledger.models.group import Group, GroupMember
from splitledger.models.user import User
from splitledger.schemas.balance import CounterpartyBalance, Debt

logger = logging.getLogger(__name__)

ZERO = Decimal(0)


def _lock_pair(db: Session, user_a: int, user_b: int) -> Tuple[Balance, Balance]:
    """
    Lock both directions of a pair and return (row(a, b), row(b, a)).

    Rows are locked in ascending owner order so two writers on the same pair
    cannot deadlock each other. Missing rows are created at zero and flushed;
    a concurrent creator surfaces as a duplicate key, which the transaction
    runner retries.
    """
    rows = (
        db.query(Balance)
        .filter(
            or_(
                and_(Balance.user_id == user_a, Balance.counterparty_id == user_b),
                and_(Balance.user_id == user_b, Balance.counterparty_id == user_a),
            )
        )
        .order_by(Balance.user_id)
        .with_for_update()
        .all()
    )
    by_owner = {row.user_id: row for row in rows}

    created = False
    for owner, counterparty in ((user_a, user_b), (user_b, user_a)):
        if owner not in by_owner:
            row = Balance(user_id=owner, counterparty_id=counterparty, balance=ZERO)
            db.add(row)
            by_owner[owner] = row
            created = True
    if created:
        db.flush()

    return by_owner[user_a], by_owner[user_b]


def apply_adjustment(db: Session, from_user_id: int, to_user_id: int, amount: Decimal) -> Tuple[Decimal, Decimal]:
    """
    balance(from, to) -= amount; balance(to, from) += amount.

    Does not commit: callers compose this into a larger unit of work and run
    it through run_in_transaction. Returns the two new balances.
    """
    if from_user_id == to_user_id:
        raise InvalidSettlement("Cannot adjust a balance between the same user")

    amount = round2(amount)
    forward, reverse = _lock_pair(db, from_user_id, to_user_id)

    forward.balance = round2(forward.balance) - amount
    reverse.balance = round2(reverse.balance) + amount

    new_forward, new_reverse = forward.balance, reverse.balance
    for row in (forward, reverse):
        if row.balance == ZERO:
            db.delete(row)
    db.flush()

    logger.debug(
        f"Adjusted balance {from_user_id}->{to_user_id} by -{amount}: "
        f"now {new_forward} / {new_reverse}"
    )
    return new_forward, new_reverse


def adjust(db: Session, from_user_id: int, to_user_id: int, amount: Decimal) -> Tuple[Decimal, Decimal]:
    """Apply one adjustment as its own atomic transaction."""
    result = run_in_transaction(
        db, lambda session: apply_adjustment(session, from_user_id, to_user_id, amount)
    )
    logger.info(f"Balance adjusted: {from_user_id} -> {to_user_id} amount={round2(amount)}")
    return result


def recompute(db: Session, user_id: int) -> Dict[int, Decimal]:
    """
    Rebuild every balance row owned by user_id from unsettled expense participants.

    Only the user's own rows are rewritten; the counterparties' mirrored rows
    stay as they were. Settlement history is not replayed. Returns the
    persisted {counterparty_id: net} map.
    """
    def work(session: Session) -> Dict[int, Decimal]:
        existing = (
            session.query(Balance)
            .filter(Balance.user_id == user_id)
            .with_for_update()
            .all()
        )
        for row in existing:
            session.delete(row)
        session.flush()

        records = (
            session.query(Expense.paid_by, ExpenseParticipant.user_id, ExpenseParticipant.amount_owed)
            .join(ExpenseParticipant, ExpenseParticipant.expense_id == Expense.id)
            .filter(
                or_(Expense.paid_by == user_id, ExpenseParticipant.user_id == user_id),
                Expense.paid_by != ExpenseParticipant.user_id,
                ExpenseParticipant.is_settled.is_(False),
            )
            .all()
        )

        net: Dict[int, Decimal] = defaultdict(Decimal)
        for paid_by, participant_id, amount_owed in records:
            if paid_by == user_id:
                # Counterparty owes the user
                net[participant_id] -= round2(amount_owed)
            else:
                net[paid_by] += round2(amount_owed)

        persisted = {}
        for counterparty_id in sorted(net):
            value = round2(net[counterparty_id])
            if value == ZERO:
                continue
            session.add(Balance(user_id=user_id, counterparty_id=counterparty_id, balance=value))
            persisted[counterparty_id] = value
        session.flush()
        return persisted

    persisted = run_in_transaction(db, work)
    logger.info(f"Recomputed balances for user {user_id}: {len(persisted)} counterparties")
    return persisted


def get_balance(db: Session, user_id: int, counterparty_id: int) -> Decimal:
    """Current balance(user, counterparty); an absent row is zero."""
    value = (
        db.query(Balance.balance)
        .filter(Balance.user_id == user_id, Balance.counterparty_id == counterparty_id)
        .scalar()
    )
    return round2(value) if value is not None else ZERO


def get_balances(db: Session, user_id: int) -> List[CounterpartyBalance]:
    """Every non-zero balance owned by the user, largest magnitude first."""
    rows = (
        db.query(Balance.counterparty_id, Balance.balance, User.name)
        .outerjoin(User, User.id == Balance.counterparty_id)
        .filter(Balance.user_id == user_id, Balance.balance != 0)
        .order_by(func.abs(Balance.balance).desc(), Balance.counterparty_id)
        .all()
    )

    result = []
    for counterparty_id, balance, name in rows:
        net = round2(balance)
        result.append(CounterpartyBalance(
            counterparty_id=counterparty_id,
            counterparty_name=name,
            owed=max(-net, ZERO),
            owes=max(net, ZERO),
            net=net,
        ))
    return result


def _debts_query(db: Session):
    debtor = aliased(User)
    creditor = aliased(User)
    return (
        db.query(Balance.user_id, debtor.name, Balance.counterparty_id, creditor.name, Balance.balance)
        .outerjoin(debtor, debtor.id == Balance.user_id)
        .outerjoin(creditor, creditor.id == Balance.counterparty_id)
        .filter(Balance.balance > 0)
    )


def _to_debts(rows) -> List[Debt]:
    return [
        Debt(
            from_user_id=from_id,
            from_user_name=from_name,
            to_user_id=to_id,
            to_user_name=to_name,
            amount=round2(amount),
        )
        for from_id, from_name, to_id, to_name, amount in rows
    ]


def get_simplified_debts(db: Session, user_id: int) -> List[Debt]:
    """
    Directed debts touching the user, read row by row.

    No netting across third parties is attempted: A->B, B->C, C->A stay three
    separate debts even though they cancel out.
    """
    rows = (
        _debts_query(db)
        .filter(or_(Balance.user_id == user_id, Balance.counterparty_id == user_id))
        .order_by(Balance.balance.desc(), Balance.user_id, Balance.counterparty_id)
        .all()
    )
    return _to_debts(rows)


def get_group_debts(db: Session, group_id: int) -> List[Debt]:
    """Directed debts between members of a group, unsimplified."""
    if db.query(Group.id).filter(Group.id == group_id).scalar() is None:
        raise NotFound("Group not found")

    member_ids = [
        user_id for (user_id,) in
        db.query(GroupMember.user_id).filter(GroupMember.group_id == group_id).all()
    ]
    if not member_ids:
        return []

    rows = (
        _debts_query(db)
        .filter(Balance.user_id.in_(member_ids), Balance.counterparty_id.in_(member_ids))
        .order_by(Balance.balance.desc(), Balance.user_id, Balance.counterparty_id)
        .all()
    )
    return _to_debts(rows)
