"""
Tests for the balance ledger: adjust, recompute and the read views.
"""
import pytest
from decimal import Decimal
from splitledger.core.exceptions import InvalidSettlement
from splitledger.models.balance import Balance
from splitledger.services import ledger_service
from conftest import add_expense


def rows(db):
    return {
        (b.user_id, b.counterparty_id): Decimal(b.balance)
        for b in db.query(Balance).all()
    }


def test_adjust_creates_both_rows(db, users):
    alice, bob, _ = users
    ledger_service.adjust(db, bob.id, alice.id, Decimal("25.00"))

    assert ledger_service.get_balance(db, bob.id, alice.id) == Decimal("-25.00")
    assert ledger_service.get_balance(db, alice.id, bob.id) == Decimal("25.00")
    assert len(rows(db)) == 2


def test_adjust_keeps_pair_antisymmetric(db, users):
    alice, bob, _ = users
    for amount in ("10.00", "2.35", "7.65"):
        ledger_service.adjust(db, alice.id, bob.id, Decimal(amount))
    ledger_service.adjust(db, bob.id, alice.id, Decimal("5.00"))

    forward = ledger_service.get_balance(db, alice.id, bob.id)
    reverse = ledger_service.get_balance(db, bob.id, alice.id)
    assert forward == Decimal("-15.00")
    assert forward == -reverse


def test_adjust_to_zero_prunes_rows(db, users):
    alice, bob, _ = users
    ledger_service.adjust(db, alice.id, bob.id, Decimal("-50"))
    ledger_service.adjust(db, alice.id, bob.id, Decimal("50"))

    assert rows(db) == {}
    assert ledger_service.get_balance(db, alice.id, bob.id) == Decimal(0)
    assert ledger_service.get_balances(db, alice.id) == []


def test_adjust_same_user_rejected(db, users):
    with pytest.raises(InvalidSettlement):
        ledger_service.adjust(db, users[0].id, users[0].id, Decimal("1"))


def test_adjust_rounds_to_cents(db, users):
    alice, bob, _ = users
    ledger_service.adjust(db, alice.id, bob.id, Decimal("-3.335"))
    assert ledger_service.get_balance(db, alice.id, bob.id) == Decimal("3.34")


def test_recompute_equal_split_from_payer_side(db, users):
    """300 split three ways: the two others each owe the payer 100."""
    alice, bob, carol = users
    add_expense(db, alice.id, {alice.id: "100.00", bob.id: "100.00", carol.id: "100.00"})

    result = ledger_service.recompute(db, alice.id)

    assert result == {bob.id: Decimal("-100.00"), carol.id: Decimal("-100.00")}
    balances = ledger_service.get_balances(db, alice.id)
    assert [b.owed for b in balances] == [Decimal("100.00"), Decimal("100.00")]
    assert all(b.owes == Decimal(0) for b in balances)
    # the payer's own share never becomes a row
    assert ledger_service.get_balance(db, alice.id, alice.id) == Decimal(0)


def test_recompute_is_one_sided(db, users):
    alice, bob, _ = users
    add_expense(db, alice.id, {bob.id: "40.00"})

    ledger_service.recompute(db, alice.id)

    assert ledger_service.get_balance(db, alice.id, bob.id) == Decimal("-40.00")
    # bob's mirrored row is not touched until bob recomputes
    assert ledger_service.get_balance(db, bob.id, alice.id) == Decimal(0)

    ledger_service.recompute(db, bob.id)
    assert ledger_service.get_balance(db, bob.id, alice.id) == Decimal("40.00")


def test_recompute_nets_both_directions(db, users):
    alice, bob, _ = users
    add_expense(db, alice.id, {bob.id: "30.00"})
    add_expense(db, bob.id, {alice.id: "12.50"})

    assert ledger_service.recompute(db, alice.id) == {bob.id: Decimal("-17.50")}


def test_recompute_skips_settled_participants(db, users):
    alice, bob, carol = users
    add_expense(db, alice.id, {bob.id: "20.00", carol.id: "20.00"}, settled={bob.id})

    assert ledger_service.recompute(db, alice.id) == {carol.id: Decimal("-20.00")}


def test_recompute_ignores_settlement_adjustments(db, users):
    alice, bob, _ = users
    add_expense(db, alice.id, {bob.id: "60.00"})
    ledger_service.recompute(db, alice.id)
    ledger_service.recompute(db, bob.id)

    # bob pays alice back without linking the expense
    ledger_service.adjust(db, bob.id, alice.id, Decimal("60"))
    assert ledger_service.get_balance(db, alice.id, bob.id) == Decimal(0)

    ledger_service.recompute(db, alice.id)
    assert ledger_service.get_balance(db, alice.id, bob.id) == Decimal("-60.00")



def test_recompute_is_stable(db, users):
    alice, bob, carol = users
    add_expense(db, alice.id, {bob.id: "10.00", carol.id: "5.00"})
    add_expense(db, carol.id, {alice.id: "7.25"})

    first = ledger_service.recompute(db, alice.id)
    snapshot = rows(db)
    second = ledger_service.recompute(db, alice.id)

    assert first == second
    assert rows(db) == snapshot


def test_recompute_drops_zero_nets(db, users):
    alice, bob, _ = users
    add_expense(db, alice.id, {bob.id: "15.00"})
    add_expense(db, bob.id, {alice.id: "15.00"})

    assert ledger_service.recompute(db, alice.id) == {}
    assert rows(db) == {}


def test_get_balances_ordering_and_names(db, users):
    alice, bob, carol = users
    ledger_service.adjust(db, alice.id, bob.id, Decimal("-5"))
    ledger_service.adjust(db, alice.id, carol.id, Decimal("20"))

    balances = ledger_service.get_balances(db, alice.id)

    assert [b.counterparty_id for b in balances] == [carol.id, bob.id]
    assert balances[0].counterparty_name == "Carol"
    assert balances[0].owed == Decimal("20.00") and balances[0].net == Decimal("-20.00")
    assert balances[1].owes == Decimal("5.00") and balances[1].net == Decimal("5.00")


def test_simplified_debts_are_directed_and_positive(db, users):
    alice, bob, carol = users
    ledger_service.adjust(db, bob.id, alice.id, Decimal("-30"))  # bob owes alice 30
    ledger_service.adjust(db, carol.id, bob.id, Decimal("-8"))   # carol owes bob 8

    debts = ledger_service.get_simplified_debts(db, bob.id)

    assert [(d.from_user_id, d.to_user_id, d.amount) for d in debts] == [
        (bob.id, alice.id, Decimal("30.00")),
        (carol.id, bob.id, Decimal("8.00")),
    ]
    assert debts[0].from_user_name == "Bob"
    assert debts[0].to_user_name == "Alice"


def test_seeded_expense_total_defaults_to_share_sum(db, users):
    alice, bob, carol = users
    expense = add_expense(db, alice.id, {bob.id: "12.50", carol.id: "7.25"})

    assert expense.total_amount == Decimal("19.75")
    assert [p.amount_owed for p in expense.participants] == [Decimal("12.50"), Decimal("7.25")]
