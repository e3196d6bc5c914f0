from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from config import Settings, get_settings
from core.logging_config import setup_logging
from core.sentry_config import init_sentry
from middleware.error_handler import add_exception_handlers, request_id_middleware
from monitoring.handle import MonitoringHandle
from routes.health import router as health_router

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Application Lifecycle
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    monitoring: MonitoringHandle = app.state.monitoring
    logger.info(
        "Sentinel API starting",
        extra={
            "environment": settings.api_env,
            "version": settings.api_version,
            "monitoring": "active" if monitoring.active else "disabled",
        },
    )
    app.state.ready = True
    yield
    app.state.ready = False
    logger.info("Sentinel API shutting down")
    monitoring.flush()


# ---------------------------------------------------------------------------
# Application Factory
# ---------------------------------------------------------------------------


def create_app(
    settings: Settings | None = None,
    monitoring: MonitoringHandle | None = None,
) -> FastAPI:
    """
    Build the application.

    Logging is configured first, then monitoring is initialized exactly once
    before any route is registered. Pass `monitoring` to skip the Sentry
    bootstrap (tests inject `MonitoringHandle.disabled(...)`).
    """
    settings = settings or get_settings()

    setup_logging(
        level=settings.log_level,
        json_output=settings.log_json,
        log_file=settings.log_file,
    )

    if monitoring is None:
        monitoring = init_sentry(settings)

    production = settings.api_env == "production"
    application = FastAPI(
        title="Sentinel API",
        version=settings.api_version,
        docs_url=None if production else "/docs",
        redoc_url=None if production else "/redoc",
        lifespan=lifespan,
    )
    application.state.settings = settings
    application.state.monitoring = monitoring
    application.state.ready = False

    # -------------------------------------------------------------------
    # Middleware  (outermost → innermost)
    # -------------------------------------------------------------------

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.origins,
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["Authorization", "Content-Type"],
    )

    @application.middleware("http")
    async def request_timing_middleware(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1_000
        response.headers["X-Response-Time-Ms"] = f"{duration_ms:.2f}"
        logger.debug(
            "Request completed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
        return response

    application.middleware("http")(request_id_middleware)

    add_exception_handlers(application)

    # -------------------------------------------------------------------
    # Routers
    # -------------------------------------------------------------------

    application.include_router(health_router)

    @application.get("/", tags=["System"], summary="Root liveness check")
    def root() -> dict[str, str]:
        return {"status": "Sentinel API running"}

    return application


app = create_app()


if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.api_env == "development",
        log_level=settings.log_level.lower(),
        access_log=True,
    )
