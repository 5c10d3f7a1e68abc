from fastapi import APIRouter, Depends
from splitbook.core.dependencies import get_hub, get_store
from splitbook.schemas.balances import GroupBalanceOut
from splitbook.schemas.settlements import RefreshRequest, SettlementCreate, SettlementOut
from splitbook.services.balance_service import (
    get_group_balances,
    get_settlement_history,
    record_settlement,
    refresh_group,
)
from splitbook.services.refresh import RefreshHub
from splitbook.store.base import LedgerStore

router = APIRouter()


@router.get("/{group_id}/balances", response_model=GroupBalanceOut)
async def group_balances(group_id: str, store: LedgerStore = Depends(get_store)):
    return await get_group_balances(store, group_id)


@router.get("/{group_id}/settlements", response_model=list[SettlementOut])
async def settlement_history(group_id: str, store: LedgerStore = Depends(get_store)):
    return await get_settlement_history(store, group_id)


@router.post("/{group_id}/settlements", response_model=SettlementOut, status_code=201)
async def settle(
    group_id: str,
    data: SettlementCreate,
    store: LedgerStore = Depends(get_store),
    hub: RefreshHub = Depends(get_hub),
):
    return await record_settlement(store, hub, group_id, data)


# called by the store's webhooks after expense or membership changes
@router.post("/{group_id}/refresh", response_model=GroupBalanceOut)
async def refresh(
    group_id: str,
    data: RefreshRequest,
    store: LedgerStore = Depends(get_store),
    hub: RefreshHub = Depends(get_hub),
):
    return await refresh_group(store, hub, group_id, data.reason)
