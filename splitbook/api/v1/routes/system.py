from fastapi import APIRouter, Depends
from splitbook.core.dependencies import get_store
from splitbook.services.system_services import check_store_service, system_health
from splitbook.store.base import LedgerStore

router = APIRouter()

@router.get("/health/store")
async def check_store(store: LedgerStore = Depends(get_store)):
    return await check_store_service(store)

@router.get("/health")
async def health():
    return await system_health()
