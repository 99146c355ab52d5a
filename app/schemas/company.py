from __future__ import annotations

import enum
from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from app.schemas.socio import SocioSchema


class SearchMode(str, enum.Enum):
    NORMAL = "normal"
    RANDOM = "random"
    ALPHABETIC = "alphabetic"
    ALPHABETIC_DESC = "alphabetic_desc"
    NEWEST = "newest"
    LARGEST = "largest"
    REVERSE = "reverse"


class CompanyFilters(BaseModel):
    segmento_negocio: int | None = None
    uf: str | None = Field(default=None, max_length=2)
    situacao_cadastral: str | None = None
    motivo_situacao: str | None = None
    qualificacao_socio: str | None = None
    natureza_juridica: str | None = None
    cnpj: str | None = None
    razao_social: str | None = Field(default=None, max_length=200)
    nome_socio: str | None = Field(default=None, max_length=200)
    cnae_principal: str | None = None
    matriz_filial: Literal["1", "2"] | None = None
    tem_contato: Literal["sim", "nao"] | None = None
    porte_empresa: str | None = None
    capital_social: float | None = Field(default=None, ge=0)
    company_limit: int = 1000
    page: int = Field(default=1, ge=1)
    search_mode: SearchMode = SearchMode.NORMAL

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        coerce_numbers_to_str=True,
    )

    @model_validator(mode="before")
    @classmethod
    def drop_blank_values(cls, data: Any) -> Any:
        # The dashboard posts every filter, unused ones as empty strings.
        if not isinstance(data, dict):
            return data
        cleaned: dict[str, Any] = {}
        for key, value in data.items():
            if value is None:
                continue
            if isinstance(value, str):
                value = value.strip()
                if not value:
                    continue
            cleaned[key] = value
        return cleaned

    @field_validator("uf")
    @classmethod
    def upper_uf(cls, value: str | None) -> str | None:
        return value.upper() if value else value

    @field_validator("tem_contato", mode="before")
    @classmethod
    def lower_tem_contato(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value

    @field_validator("cnpj", "cnae_principal")
    @classmethod
    def only_digits(cls, value: str | None) -> str | None:
        if value is None:
            return None
        digits = "".join(char for char in value if char.isdigit())
        return digits or value

    def active_filters(self) -> dict[str, Any]:
        return self.model_dump(
            exclude_none=True,
            exclude={"company_limit", "page", "search_mode"},
        )


class CompanySchema(BaseModel):
    cnpj: str
    cnpj_basico: str
    cnpj_ordem: str | None = None
    cnpj_dv: str | None = None
    razao_social: str | None = None
    nome_fantasia: str | None = None
    matriz_filial: str | None = None
    situacao_cadastral: str | None = None
    situacao_descricao: str | None = None
    data_situacao: str | None = None
    motivo_situacao: str | None = None
    data_inicio_atividades: str | None = None
    cnae_principal: str | None = None
    cnae_descricao: str | None = None
    cnae_secundaria: str | None = None
    tipo_logradouro: str | None = None
    logradouro: str | None = None
    numero: str | None = None
    complemento: str | None = None
    bairro: str | None = None
    cep: str | None = None
    uf: str | None = None
    municipio: str | None = None
    municipio_descricao: str | None = None
    ddd1: str | None = None
    telefone1: str | None = None
    ddd2: str | None = None
    telefone2: str | None = None
    ddd_fax: str | None = None
    fax: str | None = None
    email: str | None = None
    situacao_especial: str | None = None
    data_situacao_especial: str | None = None
    natureza_juridica: str | None = None
    natureza_juridica_descricao: str | None = None
    qualificacao_responsavel: str | None = None
    qualificacao_responsavel_descricao: str | None = None
    porte_empresa: str | None = None
    porte_descricao: str | None = None
    ente_federativo_responsavel: str | None = None
    capital_social: float | None = None
    opcao_simples: str | None = None
    data_opcao_simples: str | None = None
    data_exclusao_simples: str | None = None
    opcao_mei: str | None = None
    data_opcao_mei: str | None = None
    data_exclusao_mei: str | None = None
    socios: list[SocioSchema] = Field(default_factory=list)
    quantidade_socios: int = 0

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    @field_validator(
        "data_situacao",
        "data_inicio_atividades",
        "data_situacao_especial",
        "data_opcao_simples",
        "data_exclusao_simples",
        "data_opcao_mei",
        "data_exclusao_mei",
        mode="before",
    )
    @classmethod
    def format_registry_date(cls, value: Any) -> Any:
        if isinstance(value, (date, datetime)):
            return value.strftime("%Y%m%d")
        return value


class PaginationSchema(BaseModel):
    current_page: int
    total_companies: int
    total_available: int | None = None
    total_pages: int
    companies_per_page: int
    requested_limit: int
    has_next_page: bool
    has_previous_page: bool

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PerformanceSchema(BaseModel):
    query_time_ms: int
    results_count: int

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
