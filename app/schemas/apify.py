from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ApifyRunResponse(BaseModel):
    success: bool = True
    runId: str | None = None
    status: str | None = None
    datasetId: str | None = None


class ApifyRunStatusResponse(BaseModel):
    success: bool = True
    status: str | None = None
    startedAt: str | None = None
    finishedAt: str | None = None
    datasetId: str | None = None
    results: list[dict[str, Any]] | None = None


class InstagramScrapeRequest(BaseModel):
    keyword: str = Field(min_length=1, max_length=200)
    limit: int | None = Field(default=None, ge=1, le=500)


class InstagramProgressResponse(BaseModel):
    success: bool = True
    status: str | None = None
    total: int = 0
    results: list[dict[str, Any]] = Field(default_factory=list)


class GoogleMapsScrapeRequest(BaseModel):
    searchTerms: str = Field(min_length=1, max_length=200)
    locationQuery: str = Field(min_length=1, max_length=200)
    maxResults: int = Field(default=100, ge=1, le=1000)
