from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models import LEAD_STAGES


def _check_stage(value: str | None) -> str | None:
    if value is not None and value not in LEAD_STAGES:
        raise ValueError(f"Etapa invalida. Use uma de: {', '.join(LEAD_STAGES)}")
    return value


class LeadCreate(BaseModel):
    nome: str = Field(min_length=1, max_length=255)
    empresa: str | None = Field(default=None, max_length=255)
    telefone: str | None = Field(default=None, max_length=50)
    email: str | None = Field(default=None, max_length=255)
    endereco: str | None = None
    cnpj: str | None = None
    website: str | None = Field(default=None, max_length=500)
    categoria: str | None = Field(default=None, max_length=255)
    rating: float | None = None
    reviews_count: int | None = None
    fonte: str | None = Field(default=None, max_length=100)
    etapa: str = "novo"
    notas: str | None = None
    dados_originais: dict[str, Any] | None = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("etapa")
    @classmethod
    def validate_stage(cls, value: str) -> str:
        return _check_stage(value) or "novo"

    @field_validator("cnpj")
    @classmethod
    def cnpj_digits(cls, value: str | None) -> str | None:
        if value is None:
            return None
        digits = "".join(char for char in value if char.isdigit())
        return digits or None


class LeadUpdate(BaseModel):
    etapa: str | None = None
    notas: str | None = None

    @field_validator("etapa")
    @classmethod
    def validate_stage(cls, value: str | None) -> str | None:
        return _check_stage(value)


class LeadRead(BaseModel):
    id: int
    nome: str
    empresa: str | None = None
    telefone: str | None = None
    email: str | None = None
    endereco: str | None = None
    cnpj: str | None = None
    website: str | None = None
    categoria: str | None = None
    rating: float | None = None
    reviews_count: int | None = None
    fonte: str | None = None
    etapa: str
    notas: str | None = None
    dados_originais: dict[str, Any] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class LeadIdentity(BaseModel):
    nome: str | None = None
    empresa: str | None = None
    telefone: str | None = None
    email: str | None = None

    model_config = ConfigDict(extra="ignore")


class DuplicateCheckRequest(BaseModel):
    leads: list[LeadIdentity] = Field(default_factory=list, max_length=5000)


class FunnelStage(BaseModel):
    etapa: str
    total: int
    percentual: float


class FunnelResponse(BaseModel):
    success: bool = True
    total: int
    stages: list[FunnelStage]
    conversion_rate: float
