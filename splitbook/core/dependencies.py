from fastapi import Request
from splitbook.services.refresh import RefreshHub
from splitbook.store.base import LedgerStore

def get_store(request: Request) -> LedgerStore:
    return request.app.state.store

def get_hub(request: Request) -> RefreshHub:
    return request.app.state.hub
