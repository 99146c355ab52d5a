from __future__ import annotations

from datetime import date, timedelta
from typing import Any

from app.schemas.company import CompanyFilters
from app.services.reference_data import (
    MATRIZ_FILIAL,
    PORTE_DESCRICAO,
    SITUACAO_DESCRICAO,
    get_segment,
)

OFFLINE_SAMPLE_SIZE = 1000
OFFLINE_MESSAGE = "MODO OFFLINE: Dados de exemplo (Railway indisponível)"

_DEFAULT_CNAE = "4781400"
_DEFAULT_CNAE_DESCRICAO = "Comércio varejista de artigos do vestuário e acessórios"

# Sample rows are built so that index order is also name order, newest-first
# opening date and smallest-first capital.
_NEWEST_OPENING = date(2024, 12, 31)
_DESCENDING_MODES = {"reverse", "alphabetic_desc", "largest"}


def _cnae_for(filters: CompanyFilters) -> tuple[str, str]:
    if filters.cnae_principal:
        return filters.cnae_principal, "Atividade informada no filtro"
    segment = get_segment(filters.segmento_negocio)
    if segment:
        return segment["cnaes"][0], segment["cnaeDescriptions"][0]
    return _DEFAULT_CNAE, _DEFAULT_CNAE_DESCRICAO


def sample_company(index: int, filters: CompanyFilters) -> dict[str, Any]:
    """Build the sample row at ``index``, echoing the requested filter values."""
    basico = str(index).zfill(8)
    matriz_code = filters.matriz_filial or ("2" if index % 5 == 0 else "1")
    situacao = filters.situacao_cadastral or "02"
    porte = filters.porte_empresa or "01"
    cnae, cnae_descricao = _cnae_for(filters)
    capital = 10000 + index * 1000
    if filters.capital_social is not None:
        capital = max(capital, filters.capital_social)

    has_contact = filters.tem_contato != "nao"
    has_socio = index % 2 == 0 or filters.nome_socio is not None or filters.qualificacao_socio is not None
    socios: list[dict[str, Any]] = []
    if has_socio:
        socios.append(
            {
                "identificador": 1,
                "nome": (filters.nome_socio or f"SÓCIO EXEMPLO {index + 1}").upper(),
                "cpf_cnpj": None,
                "qualificacao": filters.qualificacao_socio or "49",
                "data_entrada": "20200101",
                "pais": "BRASIL",
                "representante_legal_cpf": None,
                "representante_legal_nome": None,
                "representante_legal_qualificacao": None,
                "faixa_etaria": "4",
            }
        )

    number = str(index + 1).zfill(4)
    razao_social = f"EMPRESA EXEMPLO {number} LTDA"
    if filters.razao_social:
        razao_social = f"{filters.razao_social.upper()} EXEMPLO {number} LTDA"

    return {
        "cnpj": f"{basico}000100",
        "cnpj_basico": basico,
        "cnpj_ordem": "0001",
        "cnpj_dv": "00",
        "razao_social": razao_social,
        "nome_fantasia": f"Exemplo {number}",
        "matriz_filial": MATRIZ_FILIAL[matriz_code],
        "situacao_cadastral": situacao,
        "situacao_descricao": SITUACAO_DESCRICAO.get(situacao),
        "data_situacao": "20230101",
        "motivo_situacao": filters.motivo_situacao or "00",
        "data_inicio_atividades": (_NEWEST_OPENING - timedelta(days=index)).strftime("%Y%m%d"),
        "cnae_principal": cnae,
        "cnae_descricao": cnae_descricao,
        "cnae_secundaria": None,
        "tipo_logradouro": "RUA",
        "logradouro": f"EXEMPLO {index + 1}",
        "numero": str((index % 999) + 1),
        "complemento": None,
        "bairro": "CENTRO",
        "cep": f"{str(index % 99999).zfill(5)}000",
        "uf": filters.uf or "SP",
        "municipio": "7107",
        "municipio_descricao": "SAO PAULO",
        "ddd1": "11" if has_contact else None,
        "telefone1": f"{str(index % 9999).zfill(4)}{str(index % 9999).zfill(4)}" if has_contact else None,
        "ddd2": None,
        "telefone2": None,
        "ddd_fax": None,
        "fax": None,
        "email": f"empresa{index}@exemplo.com.br" if has_contact and index % 3 == 0 else None,
        "situacao_especial": None,
        "data_situacao_especial": None,
        "natureza_juridica": filters.natureza_juridica or "2062",
        "natureza_juridica_descricao": "Sociedade Empresária Limitada",
        "qualificacao_responsavel": "49",
        "qualificacao_responsavel_descricao": "Sócio-Administrador",
        "porte_empresa": porte,
        "porte_descricao": PORTE_DESCRICAO.get(porte),
        "ente_federativo_responsavel": None,
        "capital_social": capital,
        "opcao_simples": "S" if index % 2 == 0 else "N",
        "data_opcao_simples": "20200701" if index % 2 == 0 else None,
        "data_exclusao_simples": None,
        "opcao_mei": "N",
        "data_opcao_mei": None,
        "data_exclusao_mei": None,
        "socios": socios,
        "quantidade_socios": len(socios),
    }


def _cnpj_sample_index(cnpj: str) -> int | None:
    basico = cnpj[:8]
    if len(cnpj) == 14 and cnpj[8:] != "000100":
        return None
    index = int(basico)
    return index if index < OFFLINE_SAMPLE_SIZE else None


def sample_total(filters: CompanyFilters) -> int:
    if filters.cnpj:
        return 0 if _cnpj_sample_index(filters.cnpj) is None else 1
    return OFFLINE_SAMPLE_SIZE


def sample_page(filters: CompanyFilters, offset: int, count: int) -> list[dict[str, Any]]:
    if filters.cnpj:
        index = _cnpj_sample_index(filters.cnpj)
        if index is None or offset > 0 or count < 1:
            return []
        return [sample_company(index, filters)]

    stop = min(offset + count, OFFLINE_SAMPLE_SIZE)
    indexes = range(offset, stop)
    if filters.search_mode.value in _DESCENDING_MODES:
        indexes = range(OFFLINE_SAMPLE_SIZE - 1 - offset, OFFLINE_SAMPLE_SIZE - 1 - stop, -1)
    return [sample_company(index, filters) for index in indexes]
