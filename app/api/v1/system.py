from __future__ import annotations

import os
import time

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy import text

from app.api.deps import get_system_state
from app.core.cache import get_cache
from app.core.logging import get_logger
from app.core.metrics import get_metrics_store, get_uptime_seconds, increment_db_errors_total
from app.core.state import SystemState
from app.middleware.rate_limit import limiter
from app.schemas.api_responses import HealthResponse, SystemStatusResponse

APP_VERSION = "1.0.0"

logger = get_logger(__name__)

router = APIRouter(tags=["system"])


@router.get(
    "/system/status",
    response_model=SystemStatusResponse,
    summary="Estado do sistema",
    description="Modo de operacao atual, monitor de conexao e origem dos dados.",
)
def system_status(request: Request, state: SystemState = Depends(get_system_state)) -> SystemStatusResponse:
    monitor = getattr(request.app.state, "monitor", None)
    online = state.is_online
    return SystemStatusResponse(
        mode=state.mode.value,
        uptime_seconds=round(state.uptime_seconds(), 3),
        pid=os.getpid(),
        monitor=monitor.get_status() if monitor is not None else None,
        features={
            "companies": "REAL_DATA" if online else "SAMPLE_DATA",
            "filters": "REAL_DATA" if online else "STATIC_DATA",
            "auth": "DATABASE" if online else "STATIC_USERS",
            "crm": "ENABLED" if online else "DISABLED",
        },
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Verifica disponibilidade de banco, cache e estado geral da API.",
)
@limiter.limit("120/minute")
def health(
    request: Request,
    response: Response,
    state: SystemState = Depends(get_system_state),
) -> HealthResponse:
    cache_status = get_cache().status
    engine = state.engine

    if not state.is_online or engine is None:
        return HealthResponse(
            status="degraded",
            mode=state.mode.value,
            database="offline",
            cache=cache_status,
            version=APP_VERSION,
            uptime_seconds=get_uptime_seconds(),
        )

    db_started = time.perf_counter()
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except Exception:
        increment_db_errors_total()
        logger.exception("health.database_failed")
        response.status_code = 503
        return HealthResponse(
            status="unhealthy",
            mode=state.mode.value,
            database="unavailable",
            cache=cache_status,
            version=APP_VERSION,
            uptime_seconds=get_uptime_seconds(),
        )

    db_duration = time.perf_counter() - db_started
    return HealthResponse(
        status="degraded" if db_duration > 0.2 else "ok",
        mode=state.mode.value,
        database="ok",
        cache=cache_status,
        version=APP_VERSION,
        uptime_seconds=get_uptime_seconds(),
    )


@router.get("/metrics", summary="Metricas basicas", description="Retorna contadores em memoria da API.")
def get_metrics() -> dict[str, float | int]:
    return get_metrics_store().snapshot(get_uptime_seconds())
