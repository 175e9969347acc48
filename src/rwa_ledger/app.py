"""FastAPI application factory for RWA Ledger."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from rwa_ledger.common.config import get_settings
from rwa_ledger.common.exceptions import LedgerError
from rwa_ledger.common.logging import setup_logging
from rwa_ledger.common.schemas import ErrorResponse, HealthResponse

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        from rwa_ledger.deps import get_db, get_dispatcher, get_webhook_service
        db = get_db()
        await db.init()
        await db.create_all()
        yield
        # Shutdown
        await get_dispatcher().drain()
        await get_webhook_service().close()
        await db.close()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError):
        if exc.status_code >= 500:
            logger.error("Ledger invariant failure on %s: %s", request.url.path, exc.message)
        body = ErrorResponse(error=type(exc).__name__, code=exc.code, detail=exc.message)
        return JSONResponse(status_code=exc.status_code, content=body.model_dump())

    @app.get("/health", response_model=HealthResponse)
    async def health():
        return HealthResponse(version=settings.api_version)

    # Mount routers
    from rwa_ledger.assets.router import router as assets_router
    from rwa_ledger.ledger.router import router as ledger_router
    from rwa_ledger.orders.router import router as orders_router
    from rwa_ledger.users.router import router as users_router
    from rwa_ledger.transfers.router import router as transfers_router
    from rwa_ledger.valuation.router import router as analytics_router
    from rwa_ledger.notifications.router import router as notifications_router
    from rwa_ledger.notifications.webhook_router import router as webhooks_router

    prefix = settings.api_prefix
    app.include_router(assets_router, prefix=prefix, tags=["assets"])
    app.include_router(ledger_router, prefix=prefix, tags=["ledger"])
    app.include_router(orders_router, prefix=prefix, tags=["orders"])
    app.include_router(users_router, prefix=prefix, tags=["users"])
    app.include_router(transfers_router, prefix=prefix, tags=["transfers"])
    app.include_router(analytics_router, prefix=prefix, tags=["analytics"])
    app.include_router(notifications_router, prefix=prefix, tags=["notifications"])
    app.include_router(webhooks_router, prefix=prefix, tags=["webhooks"])

    return app
