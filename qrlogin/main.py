# FastAPI application entry point that wires the QR login components
# together and registers API routes.

import asyncio
import contextlib
import logging
import time
from contextlib import asynccontextmanager
from typing import Callable

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from qrlogin.core.config import Settings, settings as default_settings
from qrlogin.core.security import SessionService
from qrlogin.db import InMemoryDB
from qrlogin.routes.qr_login import router as qr_login_router
from qrlogin.services.audit import AuditLog
from qrlogin.services.confirmation import ConfirmationAuthority
from qrlogin.services.errors import QRLoginError
from qrlogin.services.limiter import RateLimiter
from qrlogin.services.polling import PollingGateway
from qrlogin.services.sweeper import ExpirySweeper
from qrlogin.services.token_store import TokenStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = app.state.settings
    task = None
    if settings.SWEEPER_ENABLED:
        task = asyncio.create_task(app.state.sweeper.run(settings.SWEEP_INTERVAL_SECONDS))

    logger.info(f"{settings.APP_NAME} started: ttl={settings.QR_LOGIN_TTL_SECONDS}s")
    yield

    if task is not None:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


def create_app(settings: Settings | None = None, db: InMemoryDB | None = None, clock: Callable[[], float] = time.time) -> FastAPI:
    settings = settings or default_settings
    logging.basicConfig(level=settings.LOG_LEVEL)

    db = db or InMemoryDB()
    store = TokenStore(
        ttl_seconds=settings.QR_LOGIN_TTL_SECONDS,
        max_outstanding=settings.MAX_OUTSTANDING_TOKENS,
        token_bytes=settings.QR_LOGIN_TOKEN_BYTES,
        clock=clock,
    )

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.state.settings = settings
    app.state.db = db
    app.state.store = store
    app.state.sessions = SessionService(settings, db)
    app.state.polling = PollingGateway(store)
    app.state.authority = ConfirmationAuthority(store, db, AuditLog(settings.AUDIT_LOG_FILE))
    app.state.sweeper = ExpirySweeper(store, grace_seconds=settings.PURGE_GRACE_SECONDS)
    app.state.init_limiter = RateLimiter(settings.RATE_LIMIT_MAX_REQUESTS, settings.RATE_LIMIT_WINDOW_SECONDS, enabled=settings.RATE_LIMIT_ENABLED)
    app.state.exchange_limiter = RateLimiter(settings.RATE_LIMIT_MAX_REQUESTS, settings.RATE_LIMIT_WINDOW_SECONDS, enabled=settings.RATE_LIMIT_ENABLED)

    @app.exception_handler(QRLoginError)
    async def qr_login_error_handler(request: Request, exc: QRLoginError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.get("/health")
    def health():
        return {"ok": True}

    app.include_router(qr_login_router)
    return app


app = create_app()
