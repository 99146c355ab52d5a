from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator


class SocioSchema(BaseModel):
    identificador: int | None = None
    nome: str | None = None
    cpf_cnpj: str | None = None
    qualificacao: str | None = None
    qualificacao_descricao: str | None = None
    data_entrada: str | None = None
    pais: str | None = None
    representante_legal_cpf: str | None = None
    representante_legal_nome: str | None = None
    representante_legal_qualificacao: str | None = None
    faixa_etaria: str | None = None

    @field_validator("cpf_cnpj", "representante_legal_cpf", mode="before")
    @classmethod
    def mask_cpf(cls, v: Any) -> Any:
        if v and len(str(v)) == 11 and str(v).isdigit():
            v = str(v)
            return f"***{v[3:9]}**"
        return v

    @field_validator("data_entrada", mode="before")
    @classmethod
    def format_date(cls, v: Any) -> Any:
        if isinstance(v, date):
            return v.strftime("%Y%m%d")
        return v

    model_config = ConfigDict(from_attributes=True, coerce_numbers_to_str=True)
