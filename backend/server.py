"""
LeadDesk - Main Server
CNPJ lead intake, lead follow-up and PagBank rate proposals.

Run: uvicorn server:app --app-dir backend
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import (
    DATA_DIR,
    CORS_ORIGINS,
    LOG_LEVEL,
    DEFAULT_ADMIN_USERNAME,
    DEFAULT_ADMIN_PASSWORD,
    DEFAULT_ADMIN_NAME,
    DEFAULT_ADMIN_EMAIL,
)
from routes import auth, leads, proposals, public, settings
from services.durable_log import DurableLog
from services.errors import LeadDeskError, InputValidationError
from services.registry_client import RegistryClient
from services.sessions import SessionRegistry
from services.store import Store

# Logging configuration
logging.basicConfig(
    level=LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("server")


def create_app(
    data_dir: Optional[Path] = None,
    registry_client: Optional[RegistryClient] = None,
) -> FastAPI:
    """
    Build the application. One store, one registry client and one session
    registry per app; the logs are replayed when the app starts.
    """
    log = DurableLog(data_dir or DATA_DIR)
    store = Store(log)
    registry = registry_client or RegistryClient()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log.ensure_dir()
        await store.load()
        await store.ensure_default_admin(
            DEFAULT_ADMIN_USERNAME,
            DEFAULT_ADMIN_PASSWORD,
            DEFAULT_ADMIN_NAME,
            DEFAULT_ADMIN_EMAIL,
        )
        logger.info(f"LeadDesk started (data dir {log.data_dir})")
        yield
        await registry.aclose()
        logger.info("LeadDesk stopped")

    app = FastAPI(
        title="LeadDesk API",
        description="CNPJ lead intake and rate proposals",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.store = store
    app.state.registry = registry
    app.state.sessions = SessionRegistry()

    # ==================== MIDDLEWARE ====================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ==================== ERRORS ====================

    @app.exception_handler(LeadDeskError)
    async def leaddesk_error_handler(request: Request, exc: LeadDeskError):
        content = {"detail": exc.message}
        if isinstance(exc, InputValidationError) and exc.errors:
            content["errors"] = exc.errors
        if exc.status_code >= 500:
            logger.error(f"[API] {request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=content)

    # ==================== ROUTERS ====================

    app.include_router(auth.router, prefix="/api")
    app.include_router(auth.users_router, prefix="/api")
    app.include_router(public.router, prefix="/api")
    app.include_router(leads.router, prefix="/api")
    app.include_router(proposals.router, prefix="/api")
    app.include_router(proposals.messages_router, prefix="/api")
    app.include_router(settings.router, prefix="/api")

    @app.get("/")
    async def root():
        return {"name": "LeadDesk API", "version": "1.0.0", "status": "running"}

    return app


app = create_app()
