from splitbook.store.base import LedgerStore

async def check_store_service(store: LedgerStore):
    if await store.ping():
        return {"store": True, "message": "Ledger store is reachable"}
    return {"store": False, "message": "Ledger store is unreachable"}

async def system_health():
    return {
        "status": "ok"
    }
