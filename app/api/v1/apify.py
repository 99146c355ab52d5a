from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Query, Request

from app.api.deps import get_apify_client
from app.config import settings
from app.core.exceptions import ForbiddenError
from app.integrations.apify import (
    ApifyClient,
    google_maps_run_input,
    instagram_run_input,
    profiles_with_email,
)
from app.middleware.rate_limit import limiter
from app.schemas.apify import (
    ApifyRunResponse,
    ApifyRunStatusResponse,
    GoogleMapsScrapeRequest,
    InstagramProgressResponse,
    InstagramScrapeRequest,
)

router = APIRouter(tags=["scraping"])


def _run_response(run: dict[str, Any]) -> ApifyRunResponse:
    return ApifyRunResponse(
        runId=run.get("id"),
        status=run.get("status"),
        datasetId=run.get("defaultDatasetId"),
    )


@router.post("/apify/run/{actor_id}", response_model=ApifyRunResponse, summary="Iniciar actor Apify")
@limiter.limit("10/minute")
async def start_actor_run(
    request: Request,
    actor_id: str,
    run_input: dict[str, Any] | None = Body(None),
    client: ApifyClient = Depends(get_apify_client),
) -> ApifyRunResponse:
    if actor_id not in settings.allowed_actor_ids:
        raise ForbiddenError(f"Actor nao permitido: {actor_id}")
    run = await client.start_run(actor_id, run_input or {})
    return _run_response(run)


@router.get("/apify/runs/{run_id}", response_model=ApifyRunStatusResponse, summary="Status da execucao")
async def get_actor_run(run_id: str, client: ApifyClient = Depends(get_apify_client)) -> ApifyRunStatusResponse:
    run = await client.get_run(run_id)
    dataset_id = run.get("defaultDatasetId")
    results = None
    if run.get("status") == "SUCCEEDED" and dataset_id:
        results = await client.get_dataset_items(dataset_id)

    return ApifyRunStatusResponse(
        status=run.get("status"),
        startedAt=run.get("startedAt"),
        finishedAt=run.get("finishedAt"),
        datasetId=dataset_id,
        results=results,
    )


@router.get("/apify/datasets/{dataset_id}/items", summary="Itens do dataset")
async def get_dataset_items(
    dataset_id: str,
    limit: int | None = Query(None, ge=1, le=10000),
    client: ApifyClient = Depends(get_apify_client),
) -> dict[str, Any]:
    items = await client.get_dataset_items(dataset_id, limit=limit)
    return {"success": True, "items": items, "total": len(items)}


@router.post("/google-maps/scrape", response_model=ApifyRunResponse, summary="Buscar empresas no Google Maps")
@limiter.limit("10/minute")
async def start_google_maps_scrape(
    request: Request,
    body: GoogleMapsScrapeRequest,
    client: ApifyClient = Depends(get_apify_client),
) -> ApifyRunResponse:
    run_input = google_maps_run_input(body.searchTerms.strip(), body.locationQuery.strip(), body.maxResults)
    run = await client.start_run(settings.GOOGLE_MAPS_ACTOR_ID, run_input)
    return _run_response(run)


@router.post("/instagram/scrape", response_model=ApifyRunResponse, summary="Buscar emails no Instagram")
@limiter.limit("10/minute")
async def start_instagram_scrape(
    request: Request,
    body: InstagramScrapeRequest,
    client: ApifyClient = Depends(get_apify_client),
) -> ApifyRunResponse:
    limit = body.limit or settings.INSTAGRAM_RESULTS_LIMIT
    run = await client.start_run(settings.INSTAGRAM_ACTOR_ID, instagram_run_input(body.keyword.strip(), limit))
    return _run_response(run)


@router.get(
    "/instagram/progress/{run_id}",
    response_model=InstagramProgressResponse,
    summary="Progresso da busca no Instagram",
)
async def instagram_progress(run_id: str, client: ApifyClient = Depends(get_apify_client)) -> InstagramProgressResponse:
    run = await client.get_run(run_id)
    status = run.get("status")
    dataset_id = run.get("defaultDatasetId")
    if status != "SUCCEEDED" or not dataset_id:
        return InstagramProgressResponse(status=status)

    profiles = profiles_with_email(await client.get_dataset_items(dataset_id))
    return InstagramProgressResponse(status=status, total=len(profiles), results=profiles)
