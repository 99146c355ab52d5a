from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1.apify import router as apify_router
from app.api.v1.auth import router as auth_router
from app.api.v1.billing import router as billing_router
from app.api.v1.companies import router as companies_router
from app.api.v1.crm import router as crm_router
from app.api.v1.filters import router as filters_router
from app.api.v1.system import APP_VERSION
from app.api.v1.system import router as system_router
from app.config import settings
from app.core.cache import get_cache
from app.core.exceptions import AppError
from app.core.logging import get_logger, setup_logging
from app.core.metrics import increment_db_errors_total, set_startup_time
from app.core.monitor import ConnectionMonitor, DatabaseProbe
from app.core.state import SystemState
from app.middleware.rate_limit import limiter, rate_limit_exceeded_handler
from app.middleware.request_id import RequestIDMiddleware
from app.middleware.request_logging import RequestLoggingMiddleware
from app.schemas.api_responses import ErrorResponse

logger = get_logger(__name__)

_HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


def _get_request_id(request: Request) -> str | None:
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        return request_id
    return request.headers.get("X-Request-ID")


def _error_response(request: Request, status_code: int, message: str, code: str) -> JSONResponse:
    payload = ErrorResponse(message=message, error=code, request_id=_get_request_id(request))
    return JSONResponse(status_code=status_code, content=payload.model_dump())


def build_connection_monitor(state: SystemState) -> ConnectionMonitor:
    async def restore_connection() -> None:
        await asyncio.to_thread(state.connect)

    return ConnectionMonitor(
        DatabaseProbe(state.database_url, timeout_seconds=settings.MONITOR_PROBE_TIMEOUT_SECONDS),
        restore_connection,
        interval_seconds=settings.MONITOR_INTERVAL_SECONDS,
        backoff_interval_seconds=settings.MONITOR_BACKOFF_INTERVAL_SECONDS,
        max_retries=settings.MONITOR_MAX_RETRIES,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    set_startup_time()
    get_cache()
    state: SystemState = app.state.system
    logger.info("api.startup", version=APP_VERSION, environment=settings.ENVIRONMENT, mode=state.mode.value)

    monitor: ConnectionMonitor | None = None
    if state.has_database_url and settings.MONITOR_ENABLED and not state.is_online:
        monitor = build_connection_monitor(state)
        monitor.start_monitoring()
    elif not state.has_database_url:
        logger.warning("api.database_not_configured", mode=state.mode.value)
    app.state.monitor = monitor

    yield

    if monitor is not None:
        monitor.shutdown()
    state.disconnect()
    logger.info("api.shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    description="API de prospeccao de empresas brasileiras: busca no cadastro CNPJ, CRM, scraping e pagamentos",
    version=APP_VERSION,
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None,
    openapi_tags=[
        {"name": "companies", "description": "Busca, contagem e exportacao de empresas"},
        {"name": "filters", "description": "Opcoes de filtro da busca"},
        {"name": "auth", "description": "Login e gestao de senha"},
        {"name": "crm", "description": "Leads, kanban e funil"},
        {"name": "scraping", "description": "Google Maps e Instagram via Apify"},
        {"name": "billing", "description": "Assinaturas via Stripe"},
        {"name": "system", "description": "Estado, saude e metricas"},
    ],
    lifespan=lifespan,
)

app.state.system = SystemState()
app.state.monitor = None
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "X-Request-ID"],
)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(RequestIDMiddleware)

for router in (
    system_router,
    filters_router,
    companies_router,
    auth_router,
    crm_router,
    apify_router,
    billing_router,
):
    app.include_router(router, prefix=settings.API_PREFIX)


@app.exception_handler(AppError)
def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning("api.app_error", code=exc.code, status_code=exc.status_code, path=request.url.path)
    return _error_response(request, exc.status_code, exc.message, exc.code)


@app.exception_handler(RequestValidationError)
def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = "Dados de requisicao invalidos"
    if errors:
        location = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
        detail = errors[0].get("msg", message)
        message = f"{location}: {detail}" if location else detail
    return _error_response(request, 400, message, "VALIDATION_ERROR")


@app.exception_handler(StarletteHTTPException)
def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
    response = _error_response(request, exc.status_code, str(exc.detail), code)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(Exception)
def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    if isinstance(exc, SQLAlchemyError):
        increment_db_errors_total()

    logger.exception("api.unhandled_exception", path=request.url.path)
    return _error_response(request, 500, "Erro interno", "INTERNAL_ERROR")


def mount_frontend(application: FastAPI, dist_path: str) -> bool:
    dist = Path(dist_path)
    index = dist / "index.html"
    if not index.is_file():
        logger.info("frontend.not_found", path=str(dist))
        return False

    assets = dist / "assets"
    if assets.is_dir():
        application.mount("/assets", StaticFiles(directory=assets), name="assets")

    api_prefix = settings.API_PREFIX.strip("/")

    @application.get("/{full_path:path}", include_in_schema=False)
    def spa_fallback(full_path: str) -> FileResponse:
        if api_prefix and (full_path == api_prefix or full_path.startswith(f"{api_prefix}/")):
            raise StarletteHTTPException(status_code=404, detail="Rota nao encontrada")
        candidate = (dist / full_path).resolve()
        if full_path and candidate.is_file() and candidate.is_relative_to(dist.resolve()):
            return FileResponse(candidate)
        return FileResponse(index)

    logger.info("frontend.mounted", path=str(dist))
    return True


mount_frontend(app, settings.FRONTEND_DIST_PATH)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=settings.PORT)
