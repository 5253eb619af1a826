"""
Unified REST API Server
=======================
FastAPI application factory. The lifespan starts the background scheduler
and tears down the container on shutdown.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..core.exceptions import (
    ExpiredError, NotFoundError, ValidationError, VolumeCrossError
)
from ..core.logger import get_logger
from ..infrastructure.config.config_loader import get_settings_from_working_directory
from ..infrastructure.container import Container
from .notification_routes import router as notification_router
from .trade_routes import router as trade_router

logger = get_logger(__name__)


def status_code_for(exc: VolumeCrossError) -> int:
    """HTTP status for a domain error"""
    if isinstance(exc, (NotFoundError, ExpiredError)):
        return 404
    if isinstance(exc, ValidationError):
        return 400
    return 500


def create_app(container: Optional[Container] = None, start_background_jobs: bool = True) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        container: Prebuilt container; built from working-directory settings when omitted
        start_background_jobs: Run the scheduler (polling, cleanup, sweep) during the lifespan
    """
    if container is None:
        container = Container(get_settings_from_working_directory())
    settings = container.settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("unified_server.starting", {
            "app": settings.app_name,
            "exchange": settings.exchange.name,
            "testnet": settings.exchange.testnet,
            "auto_trade_enabled": settings.trading.auto_trade_enabled,
            "background_jobs": start_background_jobs
        })
        if start_background_jobs:
            await container.scheduler.start()
        try:
            yield
        finally:
            await container.shutdown()
            logger.info("unified_server.stopped", {})

    app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(VolumeCrossError)
    async def domain_error_handler(request: Request, exc: VolumeCrossError):
        status_code = status_code_for(exc)
        log = logger.error if status_code >= 500 else logger.warning
        log("unified_server.request_failed", {
            "path": request.url.path,
            "status": status_code,
            "error": str(exc),
            "error_type": type(exc).__name__
        })
        return JSONResponse(status_code=status_code, content={"success": False, "error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={
            "success": False,
            "error": "Invalid request",
            "details": jsonable_errors(exc)
        })

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"success": False, "error": str(exc.detail)})

    app.include_router(trade_router)
    app.include_router(notification_router)

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "exchange": settings.exchange.name,
            "auto_trade_enabled": settings.trading.auto_trade_enabled,
            "active_orders": len(container.order_executor.list_active()),
            "pending_recommendations": len(container.recommendation_store),
            "notifications": container.notification_ledger.stats().model_dump(by_alias=True),
            "jobs": container.scheduler.get_stats() if start_background_jobs else []
        }

    return app


def jsonable_errors(exc: RequestValidationError):
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
        for error in exc.errors()
    ]
