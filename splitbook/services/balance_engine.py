"""
Net balance computation and debt simplification for one group.

Both functions are pure: they take already-validated ledger records and
return fresh values, so callers recompute from the store after every
mutation instead of patching previous results.

Sign convention:
    positive balance -> the group owes this member
    negative balance -> this member owes the group
"""
import logging
from decimal import Decimal
from typing import Iterable, Sequence

from splitbook.core.utils import ZERO
from splitbook.schemas.ledger import (
    BalanceReport,
    ExpenseRecord,
    LedgerIssue,
    Member,
    NetBalance,
    SettlementRecord,
    SplitRecord,
    Transfer,
)

logger = logging.getLogger(__name__)

EPSILON = Decimal("0.01")


def _unknown(source: str, record_id, member_id) -> LedgerIssue:
    return LedgerIssue(
        kind="invalid_reference",
        source=source,
        record_id=record_id,
        detail=f"member {member_id} is not part of the group",
    )


def compute_net_balances(
    members: Iterable[Member],
    expenses: Iterable[ExpenseRecord],
    splits: Iterable[SplitRecord],
    settlements: Iterable[SettlementRecord],
) -> BalanceReport:
    """
    Returns one NetBalance per member, in the order members were given.

    net_balance = paid - owed + settled_out - settled_in

    Records pointing at a member outside ``members`` are skipped and
    reported in ``BalanceReport.issues``; the rest still count.
    """
    balances: dict[str, Decimal] = {}
    for member in members:
        balances.setdefault(member.id, ZERO)

    issues: list[LedgerIssue] = []

    for exp in expenses:
        if exp.paid_by_member_id not in balances:
            issues.append(_unknown("expense", exp.id, exp.paid_by_member_id))
            continue
        balances[exp.paid_by_member_id] += exp.amount

    for s in splits:
        if s.member_id not in balances:
            issues.append(_unknown("split", s.expense_id, s.member_id))
            continue
        balances[s.member_id] -= s.amount

    for st in settlements:
        # both legs or neither, a half-applied settlement breaks the zero sum
        missing = [
            m for m in (st.from_member_id, st.to_member_id) if m not in balances
        ]
        if missing:
            issues.extend(_unknown("settlement", st.id, m) for m in missing)
            continue
        balances[st.from_member_id] += st.amount
        balances[st.to_member_id] -= st.amount

    if issues:
        logger.warning("Skipped %d ledger record(s) with unknown members", len(issues))

    return BalanceReport(
        balances=[NetBalance(member_id=mid, amount=amt) for mid, amt in balances.items()],
        issues=issues,
    )


def simplify_debts(
    balances: Sequence[NetBalance],
    epsilon: Decimal = EPSILON,
) -> list[Transfer]:
    """
    Greedy two-pointer matching of debtors against creditors.

    Debtors and creditors keep their input order (no sorting by size), so
    the plan is stable for a given member order. Residuals smaller than
    ``epsilon`` are treated as settled and never emitted.
    """
    debtors = [[b.member_id, b.amount] for b in balances if b.amount < -epsilon]
    creditors = [[b.member_id, b.amount] for b in balances if b.amount > epsilon]

    transfers: list[Transfer] = []
    i = 0
    j = 0

    while i < len(debtors) and j < len(creditors):
        debtor = debtors[i]
        creditor = creditors[j]

        amount = min(abs(debtor[1]), creditor[1])

        transfers.append(Transfer(
            from_member_id=debtor[0],
            to_member_id=creditor[0],
            amount=amount,
        ))

        debtor[1] += amount
        creditor[1] -= amount

        if abs(debtor[1]) < epsilon:
            i += 1
        if creditor[1] < epsilon:
            j += 1

    return transfers


def is_group_settled(balances: Iterable[NetBalance], tolerance: Decimal = EPSILON) -> bool:
    """
    A group is settled if:
        abs(net_balance) <= tolerance
        for every member
    """
    for b in balances:
        if abs(b.amount) > tolerance:
            return False

    return True


def balance_drift(balances: Iterable[NetBalance]) -> Decimal:
    # zero for a consistent ledger
    return sum((b.amount for b in balances), ZERO)
