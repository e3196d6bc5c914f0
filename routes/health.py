import time
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from config import Settings
from dependencies.monitoring import get_app_settings, get_monitoring
from middleware.error_handler import ServiceUnavailableException
from monitoring.handle import MonitoringHandle

router = APIRouter(prefix="/health", tags=["Health"])

_START_TIME = time.time()


# ── Schemas ──────────────────────────────────────────────────────────────────

class ComponentHealth(BaseModel):
    status: str  # "healthy" | "disabled"
    detail: Optional[dict[str, Any]] = None


class HealthResponse(BaseModel):
    status: str
    version: str
    environment: str
    uptime_seconds: float
    timestamp: str
    components: dict[str, ComponentHealth]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def monitoring_component(handle: MonitoringHandle) -> ComponentHealth:
    # Disabled monitoring is an expected state (test env, no DSN), not a failure.
    return ComponentHealth(
        status="healthy" if handle.active else "disabled",
        detail=handle.describe(),
    )


# ── Endpoints ────────────────────────────────────────────────────────────────

@router.get("", summary="Service health", response_model=HealthResponse)
async def health_check(
    settings: Settings = Depends(get_app_settings),
    monitoring: MonitoringHandle = Depends(get_monitoring),
) -> HealthResponse:
    return HealthResponse(
        status="healthy",
        version=settings.api_version,
        environment=settings.api_env,
        uptime_seconds=round(time.time() - _START_TIME, 2),
        timestamp=_now(),
        components={"monitoring": monitoring_component(monitoring)},
    )


@router.get("/live", summary="Liveness probe")
async def liveness() -> dict:
    return {"status": "alive", "timestamp": _now()}


@router.get(
    "/ready",
    summary="Readiness probe",
    responses={503: {"description": "Startup has not completed"}},
)
async def readiness(request: Request) -> dict:
    if not getattr(request.app.state, "ready", False):
        raise ServiceUnavailableException("Application startup has not completed.")
    return {"status": "ready", "timestamp": _now()}
