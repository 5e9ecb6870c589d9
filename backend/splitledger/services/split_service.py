"""
Split calculator: divides an expense total into per-participant obligations.

compute_split is pure. validate_split holds the cross-participant checks the
calculator deliberately skips; the expense store runs it before persisting.
"""
from decimal import Decimal
from typing import List, Sequence, Union

from splitledger.core.exceptions import EmptyParticipantSet, InvalidExpense, InvalidSplitMethod
from splitledger.core.utils import round2, to_decimal
from splitledger.models.expense import SplitMethod
from splitledger.schemas.expense import ParticipantInput, SplitShare

SPLIT_TOLERANCE = Decimal("0.01")
HUNDRED = Decimal(100)


def _coerce_method(method: Union[SplitMethod, str]) -> SplitMethod:
    if isinstance(method, SplitMethod):
        return method
    try:
        return SplitMethod(str(method).lower())
    except ValueError:
        raise InvalidSplitMethod(f"Invalid split method: {method}")


def compute_split(
    total_amount: Decimal,
    participants: Sequence[ParticipantInput],
    method: Union[SplitMethod, str],
) -> List[SplitShare]:
    """
    Return what each participant owes.

    equal: total / count rounded to cents; the remainder is not redistributed,
    so the shares may sum to total +/- count * 0.005.
    exact: the given amounts, unchecked.
    percentage: total * percentage / 100 rounded to cents.
    """
    method = _coerce_method(method)
    total = to_decimal(total_amount)

    if method == SplitMethod.EQUAL:
        if not participants:
            raise EmptyParticipantSet("Equal split needs at least one participant")
        share = round2(total / len(participants))
        return [SplitShare(user_id=p.user_id, amount_owed=share) for p in participants]

    if method == SplitMethod.EXACT:
        return [
            SplitShare(user_id=p.user_id, amount_owed=to_decimal(p.amount))
            for p in participants
        ]

    return [
        SplitShare(
            user_id=p.user_id,
            amount_owed=round2(total * to_decimal(p.percentage) / HUNDRED),
            percentage=p.percentage,
        )
        for p in participants
    ]


def validate_split(
    total_amount: Decimal,
    participants: Sequence[ParticipantInput],
    method: Union[SplitMethod, str],
) -> None:
    """Reject participant lists that compute_split would accept but the ledger must not store."""
    method = _coerce_method(method)
    total = to_decimal(total_amount)

    if total <= 0:
        raise InvalidExpense("Total amount must be positive")
    if not participants:
        raise EmptyParticipantSet("An expense needs at least one participant")

    user_ids = [p.user_id for p in participants]
    if len(set(user_ids)) != len(user_ids):
        raise InvalidExpense("Each participant may appear only once", details={"user_ids": user_ids})

    if method == SplitMethod.EXACT:
        if any(p.amount is None or to_decimal(p.amount) < 0 for p in participants):
            raise InvalidExpense("Exact split needs a non-negative amount for every participant")
        assigned = sum((to_decimal(p.amount) for p in participants), Decimal(0))
        if abs(assigned - total) > SPLIT_TOLERANCE:
            raise InvalidExpense(
                "Exact amounts must add up to the total",
                details={"total_amount": str(total), "assigned": str(assigned)},
            )

    elif method == SplitMethod.PERCENTAGE:
        if any(p.percentage is None or to_decimal(p.percentage) < 0 for p in participants):
            raise InvalidExpense("Percentage split needs a non-negative percentage for every participant")
        assigned = sum((to_decimal(p.percentage) for p in participants), Decimal(0))
        if abs(assigned - HUNDRED) > SPLIT_TOLERANCE:
            raise InvalidExpense(
                "Percentages must add up to 100",
                details={"assigned": str(assigned)},
            )
