import logging
from decimal import Decimal

from fastapi import HTTPException

from splitbook.core.config import settings
from splitbook.core.errors import StoreError
from splitbook.core.utils import qround
from splitbook.schemas.balances import GroupBalanceOut, MemberBalance, SettlementSuggestion
from splitbook.schemas.ledger import SettlementRecord
from splitbook.schemas.settlements import SettlementCreate
from splitbook.services.balance_engine import (
    balance_drift,
    compute_net_balances,
    is_group_settled,
    simplify_debts,
)
from splitbook.services.refresh import GroupRefreshed, RefreshHub, RefreshReason
from splitbook.store.base import LedgerStore

logger = logging.getLogger(__name__)


async def get_group_balances(
    store: LedgerStore,
    group_id: str,
    epsilon: Decimal | None = None,
) -> GroupBalanceOut:
    eps = settings.BALANCE_EPSILON if epsilon is None else epsilon

    # Step 1: Fetch the group's ledger, each read on its own
    members, member_issues = await store.fetch_members(group_id)
    expenses, expense_issues = await store.fetch_expenses(group_id)
    splits, split_issues = await store.fetch_splits([e.id for e in expenses])
    settlements, settlement_issues = await store.fetch_settlements(group_id)

    # Step 2: Net balance per member
    report = compute_net_balances(members, expenses, splits, settlements)

    drift = balance_drift(report.balances)
    if abs(drift) > eps:
        logger.warning("Group %s balances sum to %s instead of 0", group_id, drift)

    # Step 3: Settlement plan
    transfers = simplify_debts(report.balances, eps)

    names = {m.id: m.display_name for m in members}

    return GroupBalanceOut(
        group_id=group_id,
        balances=[
            MemberBalance(member_id=b.member_id, name=names.get(b.member_id), amount=qround(b.amount))
            for b in report.balances
        ],
        settlements=[
            SettlementSuggestion(
                from_id=t.from_member_id,
                from_name=names.get(t.from_member_id),
                to_id=t.to_member_id,
                to_name=names.get(t.to_member_id),
                amount=qround(t.amount),
            )
            for t in transfers
        ],
        issues=member_issues + expense_issues + split_issues + settlement_issues + report.issues,
        settled=is_group_settled(report.balances, eps),
    )


async def get_settlement_history(store: LedgerStore, group_id: str) -> list[SettlementRecord]:
    settlements, issues = await store.fetch_settlements(group_id)
    if issues:
        logger.warning("Group %s has %d unreadable settlement row(s)", group_id, len(issues))
    return settlements


async def refresh_group(
    store: LedgerStore,
    hub: RefreshHub,
    group_id: str,
    reason: RefreshReason,
) -> GroupBalanceOut:
    report = await get_group_balances(store, group_id)
    await hub.notify(GroupRefreshed(group_id=group_id, reason=reason, report=report))
    return report


async def record_settlement(
    store: LedgerStore,
    hub: RefreshHub,
    group_id: str,
    data: SettlementCreate,
) -> SettlementRecord:
    if data.from_member_id == data.to_member_id:
        raise HTTPException(400, "A member cannot settle with themselves")

    members, _ = await store.fetch_members(group_id)
    member_ids = {m.id for m in members}

    # Both sides must be part of group
    if data.from_member_id not in member_ids:
        raise HTTPException(400, "Payer is not in this group")
    if data.to_member_id not in member_ids:
        raise HTTPException(400, "Receiver is not in this group")

    settlement = await store.insert_settlement(
        group_id,
        data.from_member_id,
        data.to_member_id,
        data.amount,
    )
    logger.info(
        "Recorded settlement %s in group %s: %s -> %s (%s)",
        settlement.id, group_id, data.from_member_id, data.to_member_id, data.amount,
    )

    # no incremental update, balances are rebuilt from the records
    try:
        await refresh_group(store, hub, group_id, "settlement")
    except StoreError as e:
        # the insert is committed, the next refresh will pick it up
        logger.warning("Refresh after settlement in group %s failed: %s", group_id, e)

    return settlement
