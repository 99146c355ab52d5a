from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.deps import get_optional_db
from app.core.cache import CacheBackend, get_cache
from app.core.logging import get_logger
from app.core.metrics import increment_db_errors_total
from app.middleware.rate_limit import limiter
from app.schemas.api_responses import FilterOptionsResponse
from app.services.reference_data import build_filter_response, static_filter_response

logger = get_logger(__name__)

router = APIRouter(prefix="/filters", tags=["filters"])

_LOOKUP_QUERIES = {
    "motivo": "SELECT codigo AS code, descricao AS description FROM motivo ORDER BY codigo",
    "qualificacao_socio": "SELECT codigo AS code, descricao AS description FROM qualificacao_socio ORDER BY codigo",
    "natureza_juridica": "SELECT codigo AS code, descricao AS description FROM natureza_juridica ORDER BY codigo",
}


def _load_lookup(db: Session, table: str) -> list[dict[str, str]]:
    rows = db.execute(text(_LOOKUP_QUERIES[table])).mappings().all()
    return [{"code": str(row["code"]), "description": row["description"]} for row in rows]


def load_database_filters(db: Session) -> dict:
    cache = get_cache()
    cache_key = CacheBackend.key("filters:options")
    cached = cache.get_json(cache_key)
    if cached is not None:
        return cached

    try:
        data = build_filter_response(
            _load_lookup(db, "motivo"),
            _load_lookup(db, "qualificacao_socio"),
            _load_lookup(db, "natureza_juridica"),
        )
    finally:
        db.rollback()
    cache.set_json(cache_key, data)
    return data


@router.get(
    "/options",
    response_model=FilterOptionsResponse,
    summary="Opcoes de filtro",
    description="Segmentos, UFs, situacoes e vocabularios do cadastro para os filtros da busca.",
)
@limiter.limit("60/minute")
def get_filter_options(
    request: Request,
    response: Response,
    db: Session | None = Depends(get_optional_db),
) -> FilterOptionsResponse:
    response.headers["Cache-Control"] = "public, max-age=300"

    if db is not None:
        try:
            return FilterOptionsResponse(data=load_database_filters(db), source="RAILWAY_DATABASE")
        except SQLAlchemyError:
            increment_db_errors_total()
            logger.exception("filters.database_failed")

    return FilterOptionsResponse(data=static_filter_response(), source="STATIC_DATA")
