from __future__ import annotations

import math
import re
import time
from collections import defaultdict
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from psycopg2 import errors as pg_errors
from sqlalchemy import bindparam, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.config import settings
from app.core.exceptions import QueryTimeoutError, ValidationError
from app.core.logging import get_logger
from app.schemas.company import CompanyFilters, CompanySchema, PaginationSchema, PerformanceSchema, SearchMode
from app.services import offline_data
from app.services.reference_data import MATRIZ_FILIAL, PORTE_DESCRICAO, SITUACAO_DESCRICAO, get_segment

logger = get_logger(__name__)

PER_PAGE = 1000
MIN_COMPANY_LIMIT = 1000
MAX_COMPANY_LIMIT = 50000
LARGE_QUERY_THRESHOLD = 25000

_ADDRESS_PREFIX = re.compile(r"^(RUA|AVENIDA|ALAMEDA|ESTRADA|RODOVIA|TRAVESSA|QUADRA|LOTE)\b")
_ADDRESS_PATTERNS = (
    re.compile(r"\bN\d+\b"),
    re.compile(r"\b\d+\s*(KM|QUILOMETRO)"),
    re.compile(r"\bCEP\s*\d"),
    re.compile(r"\b\d{5}-?\d{3}\b"),
    re.compile(r"\bSALA\s*\d+"),
    re.compile(r"\bANDAR\s*\d+"),
    re.compile(r"\bBLOCO\s*[A-Z]\b"),
)

_SELECT_COLUMNS = """
    est.cnpj_basico || est.cnpj_ordem || est.cnpj_dv AS cnpj,
    est.cnpj_basico,
    est.cnpj_ordem,
    est.cnpj_dv,
    emp.razao_social,
    est.nome_fantasia,
    est.identificador_matriz_filial AS matriz_filial,
    est.situacao_cadastral,
    est.data_situacao_cadastral AS data_situacao,
    est.motivo_situacao_cadastral AS motivo_situacao,
    est.data_inicio_atividade AS data_inicio_atividades,
    est.cnae_fiscal_principal AS cnae_principal,
    cnae.descricao AS cnae_descricao,
    est.cnae_fiscal_secundaria AS cnae_secundaria,
    est.tipo_logradouro,
    est.logradouro,
    est.numero,
    est.complemento,
    est.bairro,
    est.cep,
    est.uf,
    est.municipio,
    mun.descricao AS municipio_descricao,
    est.ddd_1 AS ddd1,
    est.telefone_1 AS telefone1,
    est.ddd_2 AS ddd2,
    est.telefone_2 AS telefone2,
    est.ddd_fax,
    est.fax,
    est.correio_eletronico AS email,
    est.situacao_especial,
    est.data_situacao_especial,
    emp.natureza_juridica,
    nat.descricao AS natureza_juridica_descricao,
    emp.qualificacao_responsavel,
    qr.descricao AS qualificacao_responsavel_descricao,
    emp.porte_empresa,
    emp.ente_federativo_responsavel,
    emp.capital_social,
    sim.opcao_pelo_simples AS opcao_simples,
    sim.data_opcao_simples,
    sim.data_exclusao_simples,
    sim.opcao_mei,
    sim.data_opcao_mei,
    sim.data_exclusao_mei
"""

_FROM_CLAUSE = """
    FROM estabelecimento est
    LEFT JOIN empresas emp ON emp.cnpj_basico = est.cnpj_basico
    LEFT JOIN simples sim ON sim.cnpj_basico = est.cnpj_basico
    LEFT JOIN cnae ON cnae.codigo = est.cnae_fiscal_principal
    LEFT JOIN municipio mun ON mun.codigo = est.municipio
    LEFT JOIN natureza_juridica nat ON nat.codigo = emp.natureza_juridica
    LEFT JOIN qualificacao_socio qr ON qr.codigo = emp.qualificacao_responsavel
"""

_SOCIOS_SQL = """
    SELECT * FROM (
        SELECT
            s.cnpj_basico,
            s.identificador_de_socio AS identificador,
            s.nome_socio AS nome,
            s.cnpj_cpf_do_socio AS cpf_cnpj,
            s.qualificacao_socio AS qualificacao,
            q.descricao AS qualificacao_descricao,
            s.data_entrada_sociedade AS data_entrada,
            s.pais,
            s.representante_legal AS representante_legal_cpf,
            s.nome_do_representante AS representante_legal_nome,
            s.qualificacao_representante_legal AS representante_legal_qualificacao,
            s.faixa_etaria,
            ROW_NUMBER() OVER (PARTITION BY s.cnpj_basico ORDER BY s.nome_socio) AS posicao,
            COUNT(*) OVER (PARTITION BY s.cnpj_basico) AS total_socios
        FROM socios s
        LEFT JOIN qualificacao_socio q ON q.codigo = s.qualificacao_socio
        WHERE s.cnpj_basico IN :basicos
    ) ranked
    WHERE ranked.posicao <= :socio_cap
    ORDER BY ranked.cnpj_basico, ranked.posicao
"""

_ORDER_BY = {
    SearchMode.NORMAL: "cnpj ASC",
    SearchMode.RANDOM: "RANDOM()",
    SearchMode.ALPHABETIC: "emp.razao_social ASC, cnpj ASC",
    SearchMode.ALPHABETIC_DESC: "emp.razao_social DESC, cnpj ASC",
    SearchMode.NEWEST: "est.data_inicio_atividade DESC, cnpj ASC",
    SearchMode.LARGEST: "emp.capital_social DESC NULLS LAST, cnpj ASC",
    SearchMode.REVERSE: "cnpj DESC",
}

_HAS_PHONE = "COALESCE(est.telefone_1, '') <> ''"
_HAS_EMAIL = "COALESCE(est.correio_eletronico, '') <> ''"


@dataclass
class SearchQuery:
    where: list[str] = field(default_factory=list)
    params: dict[str, Any] = field(default_factory=dict)
    expanding: set[str] = field(default_factory=set)

    @property
    def where_sql(self) -> str:
        if not self.where:
            return ""
        return "WHERE " + "\n  AND ".join(self.where)

    def statement(self, sql: str):
        statement = text(sql)
        if self.expanding:
            statement = statement.bindparams(*(bindparam(name, expanding=True) for name in self.expanding))
        return statement


@dataclass
class SearchPage:
    companies: list[CompanySchema]
    pagination: PaginationSchema
    performance: PerformanceSchema
    offline: bool
    message: str | None
    source: str


def resolve_company_limit(filters: CompanyFilters) -> int:
    if filters.cnpj:
        if not filters.cnpj.isdigit() or len(filters.cnpj) not in (8, 14):
            raise ValidationError("CNPJ deve ter 8 ou 14 digitos")
        return 1

    if not MIN_COMPANY_LIMIT <= filters.company_limit <= MAX_COMPANY_LIMIT:
        raise ValidationError(
            f"Limite de empresas deve estar entre {MIN_COMPANY_LIMIT} e {MAX_COMPANY_LIMIT}"
        )
    return filters.company_limit


def page_window(page: int, company_limit: int) -> tuple[int, int]:
    offset = (page - 1) * PER_PAGE
    return offset, max(0, min(PER_PAGE, company_limit - offset))


def socio_cap(company_limit: int) -> int:
    if company_limit <= 1000:
        return 5
    if company_limit <= 10000:
        return 3
    if company_limit <= 25000:
        return 2
    return 1


def statement_timeout_seconds(company_limit: int) -> int:
    if company_limit >= LARGE_QUERY_THRESHOLD:
        return settings.LARGE_QUERY_TIMEOUT_SECONDS
    return settings.QUERY_TIMEOUT_SECONDS


def clean_nome_fantasia(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = value.strip()
    if not cleaned or len(cleaned) > 100:
        return None
    upper = cleaned.upper()
    if _ADDRESS_PREFIX.match(upper):
        return None
    if any(pattern.search(upper) for pattern in _ADDRESS_PATTERNS):
        return None
    return cleaned


def _like_operator(dialect_name: str) -> str:
    return "ILIKE" if dialect_name == "postgresql" else "LIKE"


def build_search_query(filters: CompanyFilters, dialect_name: str = "postgresql") -> SearchQuery:
    query = SearchQuery()
    like = _like_operator(dialect_name)

    if filters.segmento_negocio is not None:
        segment = get_segment(filters.segmento_negocio)
        if segment is None:
            raise ValidationError("Segmento de negocio invalido")
        query.where.append("est.cnae_fiscal_principal IN :segment_cnaes")
        query.params["segment_cnaes"] = list(segment["cnaes"])
        query.expanding.add("segment_cnaes")

    equals = (
        ("uf", "est.uf"),
        ("situacao_cadastral", "est.situacao_cadastral"),
        ("motivo_situacao", "est.motivo_situacao_cadastral"),
        ("natureza_juridica", "emp.natureza_juridica"),
        ("cnae_principal", "est.cnae_fiscal_principal"),
        ("matriz_filial", "est.identificador_matriz_filial"),
        ("porte_empresa", "emp.porte_empresa"),
    )
    for name, column in equals:
        value = getattr(filters, name)
        if value is not None:
            query.where.append(f"{column} = :{name}")
            query.params[name] = value

    if filters.cnpj:
        query.where.append("est.cnpj_basico = :cnpj_basico")
        query.params["cnpj_basico"] = filters.cnpj[:8]
        if len(filters.cnpj) == 14:
            query.where.append("est.cnpj_ordem = :cnpj_ordem")
            query.where.append("est.cnpj_dv = :cnpj_dv")
            query.params["cnpj_ordem"] = filters.cnpj[8:12]
            query.params["cnpj_dv"] = filters.cnpj[12:]

    if filters.razao_social:
        query.where.append(f"emp.razao_social {like} :razao_social")
        query.params["razao_social"] = f"%{filters.razao_social}%"

    if filters.qualificacao_socio:
        query.where.append(
            "EXISTS (SELECT 1 FROM socios sq WHERE sq.cnpj_basico = est.cnpj_basico "
            "AND sq.qualificacao_socio = :qualificacao_socio)"
        )
        query.params["qualificacao_socio"] = filters.qualificacao_socio

    if filters.nome_socio:
        query.where.append(
            "EXISTS (SELECT 1 FROM socios sn WHERE sn.cnpj_basico = est.cnpj_basico "
            f"AND sn.nome_socio {like} :nome_socio)"
        )
        query.params["nome_socio"] = f"%{filters.nome_socio}%"

    if filters.tem_contato == "sim":
        query.where.append(f"({_HAS_PHONE} OR {_HAS_EMAIL})")
    elif filters.tem_contato == "nao":
        query.where.append(f"NOT ({_HAS_PHONE} OR {_HAS_EMAIL})")

    if filters.capital_social is not None:
        query.where.append("emp.capital_social >= :capital_social")
        query.params["capital_social"] = filters.capital_social

    return query


def build_select_sql(query: SearchQuery, mode: SearchMode) -> str:
    return f"""
        SELECT {_SELECT_COLUMNS}
        {_FROM_CLAUSE}
        {query.where_sql}
        ORDER BY {_ORDER_BY[mode]}
        LIMIT :limit OFFSET :offset
    """


def build_count_sql(query: SearchQuery) -> str:
    return f"""
        SELECT COUNT(*) AS total
        FROM estabelecimento est
        LEFT JOIN empresas emp ON emp.cnpj_basico = est.cnpj_basico
        {query.where_sql}
    """


def _dialect_name(db: Session) -> str:
    return db.get_bind().dialect.name


def _apply_statement_timeout(db: Session, seconds: int) -> None:
    # SET LOCAL only lasts until the end of the current transaction.
    if _dialect_name(db) == "postgresql":
        db.execute(text(f"SET LOCAL statement_timeout = {int(seconds) * 1000}"))


def _is_query_canceled(exc: OperationalError) -> bool:
    return isinstance(getattr(exc, "orig", None), pg_errors.QueryCanceled)


def _fetch_socios(db: Session, basicos: list[str], cap: int) -> dict[str, tuple[list[dict[str, Any]], int]]:
    if not basicos:
        return {}
    statement = text(_SOCIOS_SQL).bindparams(bindparam("basicos", expanding=True))
    rows = db.execute(statement, {"basicos": basicos, "socio_cap": cap}).mappings().all()

    grouped: dict[str, list[dict[str, Any]]] = defaultdict(list)
    totals: dict[str, int] = {}
    for row in rows:
        data = dict(row)
        basico = data.pop("cnpj_basico")
        data.pop("posicao", None)
        totals[basico] = int(data.pop("total_socios") or 0)
        grouped[basico].append(data)
    return {basico: (socios, totals[basico]) for basico, socios in grouped.items()}


def _to_company(row: dict[str, Any], socios: list[dict[str, Any]], total_socios: int) -> CompanySchema:
    data = dict(row)
    matriz_code = data.get("matriz_filial")
    data["matriz_filial"] = MATRIZ_FILIAL.get(str(matriz_code), matriz_code) if matriz_code is not None else None
    data["situacao_descricao"] = SITUACAO_DESCRICAO.get(str(data.get("situacao_cadastral")))
    data["porte_descricao"] = PORTE_DESCRICAO.get(str(data.get("porte_empresa")))
    data["nome_fantasia"] = clean_nome_fantasia(data.get("nome_fantasia"))
    if data.get("capital_social") is not None:
        data["capital_social"] = float(data["capital_social"])
    return CompanySchema(**data, socios=socios, quantidade_socios=total_socios)


def fetch_companies(
    db: Session,
    filters: CompanyFilters,
    company_limit: int,
    offset: int,
    count: int,
) -> list[CompanySchema]:
    if count <= 0:
        return []

    query = build_search_query(filters, _dialect_name(db))
    params = {**query.params, "limit": count, "offset": offset}
    try:
        _apply_statement_timeout(db, statement_timeout_seconds(company_limit))
        rows = db.execute(query.statement(build_select_sql(query, filters.search_mode)), params).mappings().all()
        basicos = sorted({row["cnpj_basico"] for row in rows})
        socios = _fetch_socios(db, basicos, socio_cap(company_limit))
    except OperationalError as exc:
        if _is_query_canceled(exc):
            logger.warning("companies.query_timeout", company_limit=company_limit, offset=offset)
            raise QueryTimeoutError() from exc
        raise
    finally:
        db.rollback()

    return [
        _to_company(row, *socios.get(row["cnpj_basico"], ([], 0)))
        for row in rows
    ]


def count_companies(db: Session, filters: CompanyFilters) -> int:
    resolve_company_limit(filters)
    query = build_search_query(filters, _dialect_name(db))
    try:
        _apply_statement_timeout(db, settings.QUERY_TIMEOUT_SECONDS)
        total = db.execute(query.statement(build_count_sql(query)), query.params).scalar()
    except OperationalError as exc:
        if _is_query_canceled(exc):
            logger.warning("companies.count_timeout")
            raise QueryTimeoutError() from exc
        raise
    finally:
        db.rollback()
    return int(total or 0)


def _pagination(
    page: int,
    company_limit: int,
    total_companies: int,
    total_available: int | None,
    results_count: int,
    page_size: int,
) -> PaginationSchema:
    total_pages = math.ceil(total_companies / PER_PAGE) if total_companies > 0 else 0
    return PaginationSchema(
        current_page=page,
        total_companies=total_companies,
        total_available=total_available,
        total_pages=total_pages,
        companies_per_page=PER_PAGE,
        requested_limit=company_limit,
        has_next_page=page < total_pages and results_count == page_size,
        has_previous_page=page > 1,
    )


def search_page(db: Session | None, filters: CompanyFilters) -> SearchPage:
    """Run one page of a company search, against the database or the sample set.

    ``db`` is ``None`` while the process is offline.
    """
    started = time.perf_counter()
    company_limit = resolve_company_limit(filters)
    offset, page_size = page_window(filters.page, company_limit)

    if db is None:
        available = offline_data.sample_total(filters)
        rows = offline_data.sample_page(filters, offset, page_size)
        companies = [CompanySchema(**row) for row in rows]
        total_companies = min(company_limit, available)
        offline = True
        message: str | None = offline_data.OFFLINE_MESSAGE
        source = "SAMPLE_DATA"
        total_available: int | None = available
    else:
        companies = fetch_companies(db, filters, company_limit, offset, page_size)
        if len(companies) < page_size:
            total_companies = offset + len(companies)
        else:
            total_companies = company_limit
        offline = False
        message = None
        source = "RAILWAY_DATABASE"
        total_available = None

    query_time_ms = int((time.perf_counter() - started) * 1000)
    logger.info(
        "companies.search",
        page=filters.page,
        company_limit=company_limit,
        search_mode=filters.search_mode.value,
        results=len(companies),
        offline=offline,
        query_time_ms=query_time_ms,
    )
    return SearchPage(
        companies=companies,
        pagination=_pagination(
            filters.page, company_limit, total_companies, total_available, len(companies), page_size
        ),
        performance=PerformanceSchema(query_time_ms=query_time_ms, results_count=len(companies)),
        offline=offline,
        message=message,
        source=source,
    )


def iter_companies(db: Session | None, filters: CompanyFilters) -> Iterator[CompanySchema]:
    """Yield every company up to the requested limit, one page at a time."""
    company_limit = resolve_company_limit(filters)
    page = 1
    while True:
        offset, page_size = page_window(page, company_limit)
        if page_size <= 0:
            return
        if db is None:
            batch = [CompanySchema(**row) for row in offline_data.sample_page(filters, offset, page_size)]
        else:
            batch = fetch_companies(db, filters, company_limit, offset, page_size)
        yield from batch
        if len(batch) < page_size:
            return
        page += 1
