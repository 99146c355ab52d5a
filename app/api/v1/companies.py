from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.orm import Session

from app.api.deps import get_optional_db
from app.core.cache import CacheBackend, get_cache
from app.core.exceptions import ValidationError
from app.core.logging import get_logger
from app.core.metrics import increment_offline_responses_total
from app.middleware.rate_limit import limiter
from app.schemas.api_responses import CompanyCountResponse, CompanySearchResponse
from app.schemas.company import CompanyFilters
from app.services import company_search, offline_data
from app.services.export import MEDIA_TYPES, export_filename, render_export

logger = get_logger(__name__)

router = APIRouter(prefix="/companies", tags=["companies"])


@router.post(
    "/filtered",
    response_model=CompanySearchResponse,
    summary="Buscar empresas",
    description=(
        "Busca paginada (1000 por pagina) no cadastro de estabelecimentos. "
        "Sem banco disponivel retorna dados de exemplo marcados como offline."
    ),
)
@limiter.limit("30/minute")
def search_companies(
    request: Request,
    filters: CompanyFilters,
    db: Session | None = Depends(get_optional_db),
) -> CompanySearchResponse:
    result = company_search.search_page(db, filters)
    if result.offline:
        increment_offline_responses_total()

    return CompanySearchResponse(
        data=result.companies,
        pagination=result.pagination,
        performance=result.performance,
        offline=result.offline,
        message=result.message,
        source=result.source,
    )


@router.post(
    "/count",
    response_model=CompanyCountResponse,
    summary="Contar empresas",
    description="Total de estabelecimentos que atendem aos filtros.",
)
@limiter.limit("30/minute")
def count_companies(
    request: Request,
    filters: CompanyFilters,
    db: Session | None = Depends(get_optional_db),
) -> CompanyCountResponse:
    if db is None:
        company_search.resolve_company_limit(filters)
        increment_offline_responses_total()
        return CompanyCountResponse(total=offline_data.sample_total(filters), offline=True, source="SAMPLE_DATA")

    cache = get_cache()
    cache_key = CacheBackend.key("companies:count", filters.active_filters())
    cached = cache.get_json(cache_key)
    if cached is not None:
        return CompanyCountResponse(total=int(cached), cached=True, source="RAILWAY_DATABASE")

    total = company_search.count_companies(db, filters)
    cache.set_json(cache_key, total)
    return CompanyCountResponse(total=total, source="RAILWAY_DATABASE")


@router.post(
    "/export",
    summary="Exportar empresas",
    description="Gera planilha CSV (separada por ';') ou XLSX com todas as empresas ate o limite solicitado.",
    response_class=Response,
)
@limiter.limit("5/minute")
def export_companies(
    request: Request,
    filters: CompanyFilters,
    format: Literal["csv", "xlsx"] = Query("csv", description="Formato do arquivo"),
    db: Session | None = Depends(get_optional_db),
) -> Response:
    if not (filters.uf or filters.segmento_negocio or filters.cnpj):
        raise ValidationError("Defina pelo menos um filtro antes de exportar")

    companies = list(company_search.iter_companies(db, filters))
    content = render_export(companies, format)
    logger.info("companies.export", format=format, rows=len(companies), offline=db is None)

    return Response(
        content=content,
        media_type=MEDIA_TYPES[format],
        headers={"Content-Disposition": f'attachment; filename="{export_filename(format)}"'},
    )
