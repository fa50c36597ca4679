"""
FastAPI application entry point.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from phonetree_scout.calls.registry import CallRegistry, get_call_registry
from phonetree_scout.calls.router import router as calls_router
from phonetree_scout.config import get_settings
from phonetree_scout.crm.client import get_hubspot_client
from phonetree_scout.crm.router import router as hubspot_router
from phonetree_scout.dashboard.router import router as dashboard_router
from phonetree_scout.shared.correlation import CorrelationIdMiddleware
from phonetree_scout.shared.exceptions import CallNotFoundError, ValidationError
from phonetree_scout.shared.logging import get_logger, setup_logging
from phonetree_scout.telephony.factory import close_telephony_provider
from phonetree_scout.telephony.webhooks.router import router as twilio_router

logger = get_logger(__name__)


async def _retention_sweeper(registry: CallRegistry, ttl: timedelta, interval_seconds: int) -> None:
    """Periodically evict idle, unobserved calls from the registry."""
    logger.info(
        "Retention sweeper starting",
        extra={"ttl_seconds": int(ttl.total_seconds()), "interval_seconds": interval_seconds},
    )
    while True:
        try:
            await registry.sweep_expired(ttl)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Retention sweep failed")
        await asyncio.sleep(interval_seconds)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    setup_logging()
    settings = get_settings()

    logger.info(
        "Application starting",
        extra={"env": settings.app_env, "base_url": settings.base_url},
    )

    sweeper_task = asyncio.create_task(
        _retention_sweeper(
            get_call_registry(),
            timedelta(seconds=settings.session_ttl_seconds),
            settings.sweep_interval_seconds,
        )
    )
    app.state.sweeper_task = sweeper_task

    yield

    logger.info("Shutting down application")

    sweeper_task.cancel()
    try:
        await sweeper_task
    except asyncio.CancelledError:
        pass

    await get_hubspot_client().aclose()
    close_telephony_provider()
    logger.info("Application shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Phone Tree Scout",
        description="Live phone tree mapping calls with HubSpot archival",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    # Map domain exceptions to HTTP responses
    @app.exception_handler(CallNotFoundError)
    async def _not_found(_: Request, exc: CallNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"error": exc.message, "code": exc.code})

    @app.exception_handler(ValidationError)
    async def _validation(_: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": exc.message, "code": exc.code})

    # Request validation (FastAPI/Pydantic) -> consistent 422 payload
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        errors = []
        for error in exc.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            errors.append(
                {
                    "field": field,
                    "message": error["msg"],
                    "type": error["type"],
                }
            )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "detail": {
                    "code": "VALIDATION_ERROR",
                    "message": "Request validation failed",
                    "errors": errors,
                }
            },
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    app.include_router(twilio_router)
    app.include_router(hubspot_router)
    app.include_router(dashboard_router)
    app.include_router(calls_router)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import os

    import uvicorn

    uvicorn.run(
        "phonetree_scout.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "3000")),
    )
