import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from splitbook.api.v1.routes.settlement import router as settlement_router
from splitbook.api.v1.routes.system import router as system_router
from splitbook.core.config import settings
from splitbook.core.errors import StoreError
from splitbook.core.log_config import configure_logging
from splitbook.services.refresh import RefreshHub, log_refresh
from splitbook.store.base import LedgerStore

logger = logging.getLogger(__name__)


async def build_store() -> LedgerStore:
    if settings.STORE_BACKEND == "rest":
        from splitbook.store.rest import RestLedgerStore

        return RestLedgerStore.from_settings(
            settings.STORE_REST_URL,
            settings.STORE_API_KEY,
            settings.STORE_TIMEOUT,
        )

    from splitbook.core.db_check import wait_for_db
    from splitbook.db.session import async_session, engine
    from splitbook.store.sql import SqlLedgerStore

    await wait_for_db(engine)
    return SqlLedgerStore(async_session)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.LOG_LEVEL)

    app.state.store = await build_store()
    app.state.hub = RefreshHub()
    app.state.hub.subscribe(log_refresh)
    logger.info("Splitbook started with %s store", settings.STORE_BACKEND)

    yield

    await app.state.store.close()


app = FastAPI(title="Splitbook Balances", lifespan=lifespan)


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error("Store error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=502, content={"detail": str(exc)})


@app.get("/")
async def root():
    return {"message": "Splitbook Balances is live"}

app.include_router(system_router, prefix="/api/v1/system")
app.include_router(settlement_router, prefix="/api/v1/groups")
