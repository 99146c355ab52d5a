from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.schemas.company import CompanySchema, PaginationSchema, PerformanceSchema


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    error: str
    request_id: str | None = None


class HealthResponse(BaseModel):
    status: str
    mode: str
    database: str
    cache: str
    version: str
    uptime_seconds: float


class CompanySearchResponse(BaseModel):
    success: bool = True
    data: list[CompanySchema] = Field(default_factory=list)
    pagination: PaginationSchema
    performance: PerformanceSchema
    offline: bool = False
    message: str | None = None
    source: str

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CompanyCountResponse(BaseModel):
    success: bool = True
    total: int
    offline: bool = False
    cached: bool = False
    source: str


class FilterOptionsResponse(BaseModel):
    success: bool = True
    data: dict[str, Any]
    source: str


class SystemStatusResponse(BaseModel):
    success: bool = True
    mode: str
    uptime_seconds: float
    pid: int
    monitor: dict[str, Any] | None = None
    features: dict[str, str]
