from decimal import Decimal

from splitbook.schemas.ledger import (
    ExpenseRecord,
    Member,
    NetBalance,
    SettlementRecord,
    SplitRecord,
)
from splitbook.services.balance_engine import (
    EPSILON,
    balance_drift,
    compute_net_balances,
    is_group_settled,
    simplify_debts,
)

D = Decimal


def members(*ids):
    return [Member(id=i, display_name=i.upper()) for i in ids]


def expense(expense_id, paid_by, amount, shares):
    exp = ExpenseRecord(id=expense_id, paid_by_member_id=paid_by, amount=D(amount))
    splits = [
        SplitRecord(expense_id=expense_id, member_id=m, amount=D(a)) for m, a in shares.items()
    ]
    return exp, splits


def settlement(from_id, to_id, amount):
    return SettlementRecord(group_id="g1", from_member_id=from_id, to_member_id=to_id, amount=D(amount))


def as_map(report):
    return {b.member_id: b.amount for b in report.balances}


def plan(transfers):
    return [(t.from_member_id, t.to_member_id, t.amount) for t in transfers]


def apply(balances, transfers):
    after = {b.member_id: b.amount for b in balances}
    for t in transfers:
        after[t.from_member_id] += t.amount
        after[t.to_member_id] -= t.amount
    return after


def test_equal_split_three_members():
    exp, splits = expense("e1", "a", "90", {"a": "30", "b": "30", "c": "30"})

    report = compute_net_balances(members("a", "b", "c"), [exp], splits, [])

    assert as_map(report) == {"a": D("60"), "b": D("-30"), "c": D("-30")}
    assert report.issues == []
    assert plan(simplify_debts(report.balances)) == [
        ("b", "a", D("30")),
        ("c", "a", D("30")),
    ]


def test_exact_split():
    exp, splits = expense("e1", "a", "100", {"a": "70", "b": "30"})

    report = compute_net_balances(members("a", "b"), [exp], splits, [])

    assert as_map(report) == {"a": D("30"), "b": D("-30")}
    assert plan(simplify_debts(report.balances)) == [("b", "a", D("30"))]


def test_percentage_split():
    # 200 at 60% / 40%
    exp, splits = expense("e1", "a", "200", {"a": "120", "b": "80"})

    report = compute_net_balances(members("a", "b"), [exp], splits, [])

    assert as_map(report) == {"a": D("80"), "b": D("-80")}
    assert plan(simplify_debts(report.balances)) == [("b", "a", D("80"))]


def test_recorded_settlement_reduces_debt():
    exp, splits = expense("e1", "a", "60", {"a": "20", "b": "20", "c": "20"})

    report = compute_net_balances(
        members("a", "b", "c"), [exp], splits, [settlement("b", "a", "20")]
    )

    assert as_map(report) == {"a": D("20"), "b": D("0"), "c": D("-20")}
    assert plan(simplify_debts(report.balances)) == [("c", "a", D("20"))]


def test_settlement_only_touches_its_two_members():
    exp, splits = expense("e1", "a", "90", {"a": "30", "b": "30", "c": "30"})
    group = members("a", "b", "c")

    before = as_map(compute_net_balances(group, [exp], splits, []))
    after = as_map(compute_net_balances(group, [exp], splits, [settlement("c", "b", "12.50")]))

    assert after["c"] == before["c"] + D("12.50")
    assert after["b"] == before["b"] - D("12.50")
    assert after["a"] == before["a"]


def test_balances_follow_member_order():
    exp, splits = expense("e1", "b", "40", {"a": "20", "b": "20"})

    report = compute_net_balances(members("c", "b", "a"), [exp], splits, [])

    assert [b.member_id for b in report.balances] == ["c", "b", "a"]
    assert report.balances[0].amount == D("0")


def test_ledger_sums_to_zero():
    group = members("a", "b", "c", "d")
    e1, s1 = expense("e1", "a", "100", {"a": "25", "b": "25", "c": "25", "d": "25"})
    e2, s2 = expense("e2", "c", "33.33", {"a": "11.11", "b": "11.11", "d": "11.11"})
    e3, s3 = expense("e3", "d", "10", {"b": "10"})

    report = compute_net_balances(
        group, [e1, e2, e3], s1 + s2 + s3, [settlement("b", "a", "5")]
    )

    assert abs(balance_drift(report.balances)) <= EPSILON


def test_unknown_members_are_reported_not_counted():
    exp, splits = expense("e1", "a", "30", {"a": "15", "ghost": "15"})
    stray, _ = expense("e2", "ghost", "10", {})

    report = compute_net_balances(
        members("a", "b"),
        [exp, stray],
        splits,
        [settlement("b", "ghost", "5")],
    )

    assert as_map(report) == {"a": D("15"), "b": D("0")}
    assert [(i.kind, i.source, i.record_id) for i in report.issues] == [
        ("invalid_reference", "expense", "e2"),
        ("invalid_reference", "split", "e1"),
        ("invalid_reference", "settlement", None),
    ]
    assert "ghost" in report.issues[0].detail


def test_no_members_gives_empty_result():
    report = compute_net_balances([], [], [], [])

    assert report.balances == []
    assert report.issues == []
    assert simplify_debts(report.balances) == []


def test_duplicate_members_collapse():
    report = compute_net_balances(members("a", "a", "b"), [], [], [])

    assert [b.member_id for b in report.balances] == ["a", "b"]


def test_recomputation_is_idempotent():
    group = members("a", "b", "c")
    exp, splits = expense("e1", "a", "90", {"a": "30", "b": "30", "c": "30"})
    settlements = [settlement("b", "a", "10")]

    first = compute_net_balances(group, [exp], splits, settlements)
    second = compute_net_balances(group, [exp], splits, settlements)

    assert first == second


def test_debtors_and_creditors_keep_input_order():
    # largest-first would need two transfers here, input order takes three
    balances = [
        NetBalance(member_id="a", amount=D("10")),
        NetBalance(member_id="b", amount=D("50")),
        NetBalance(member_id="c", amount=D("-50")),
        NetBalance(member_id="d", amount=D("-10")),
    ]

    assert plan(simplify_debts(balances)) == [
        ("c", "a", D("10")),
        ("c", "b", D("40")),
        ("d", "b", D("10")),
    ]


def test_simplified_plan_settles_everyone():
    balances = [
        NetBalance(member_id="a", amount=D("-25.40")),
        NetBalance(member_id="b", amount=D("70.10")),
        NetBalance(member_id="c", amount=D("-44.70")),
        NetBalance(member_id="d", amount=D("12.00")),
        NetBalance(member_id="e", amount=D("-12.00")),
    ]

    transfers = simplify_debts(balances)

    assert all(abs(v) < EPSILON for v in apply(balances, transfers).values())
    assert all(t.amount > 0 for t in transfers)
    assert all(t.from_member_id != t.to_member_id for t in transfers)


def test_creditors_receive_exactly_their_balance():
    balances = [
        NetBalance(member_id="a", amount=D("-30")),
        NetBalance(member_id="b", amount=D("45")),
        NetBalance(member_id="c", amount=D("-40")),
        NetBalance(member_id="d", amount=D("25")),
    ]

    transfers = simplify_debts(balances)

    received = {}
    sent = {}
    for t in transfers:
        received[t.to_member_id] = received.get(t.to_member_id, D("0")) + t.amount
        sent[t.from_member_id] = sent.get(t.from_member_id, D("0")) + t.amount

    assert received == {"b": D("45"), "d": D("25")}
    assert sent == {"a": D("30"), "c": D("40")}


def test_simplify_is_deterministic():
    balances = [
        NetBalance(member_id="x", amount=D("-7.25")),
        NetBalance(member_id="y", amount=D("3.00")),
        NetBalance(member_id="z", amount=D("4.25")),
    ]

    assert simplify_debts(balances) == simplify_debts(list(balances))


def test_residual_under_epsilon_is_dropped():
    balances = [
        NetBalance(member_id="a", amount=D("10.005")),
        NetBalance(member_id="b", amount=D("-10.00")),
    ]

    assert plan(simplify_debts(balances)) == [("b", "a", D("10.00"))]


def test_balances_within_epsilon_need_no_transfers():
    balances = [
        NetBalance(member_id="a", amount=D("0.005")),
        NetBalance(member_id="b", amount=D("-0.005")),
        NetBalance(member_id="c", amount=D("0")),
    ]

    assert simplify_debts(balances) == []
    assert is_group_settled(balances)


def test_group_with_open_debt_is_not_settled():
    balances = [
        NetBalance(member_id="a", amount=D("5")),
        NetBalance(member_id="b", amount=D("-5")),
    ]

    assert not is_group_settled(balances)
