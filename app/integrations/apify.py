from __future__ import annotations

import re
from typing import Any

import httpx

from app.config import settings
from app.core.exceptions import QueryTimeoutError, ServiceUnavailableError, UpstreamError
from app.core.logging import get_logger

logger = get_logger(__name__)

_EMAIL_PATTERN = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")

TERMINAL_STATUSES = {"SUCCEEDED", "FAILED", "ABORTED", "TIMED-OUT"}


class ApifyClient:
    """Thin async wrapper over the Apify v2 REST API."""

    def __init__(
        self,
        token: str,
        base_url: str = "https://api.apify.com/v2",
        timeout: float = 30,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not token.strip():
            raise ServiceUnavailableError("Integracao Apify nao configurada", code="APIFY_NOT_CONFIGURED")
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
                headers={"Authorization": f"Bearer {self._token}"},
            ) as client:
                response = await client.request(method, path, **kwargs)
                response.raise_for_status()
                return response.json()
        except httpx.TimeoutException as exc:
            logger.warning("apify.timeout", path=path)
            raise QueryTimeoutError("Apify nao respondeu a tempo") from exc
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "apify.http_error",
                path=path,
                status_code=exc.response.status_code,
                body=exc.response.text[:200],
            )
            raise UpstreamError(f"Apify retornou HTTP {exc.response.status_code}", code="APIFY_ERROR") from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("apify.request_failed", path=path, error=str(exc))
            raise UpstreamError("Falha na comunicacao com a Apify", code="APIFY_ERROR") from exc

    async def start_run(self, actor_id: str, run_input: dict[str, Any]) -> dict[str, Any]:
        body = await self._request("POST", f"/acts/{actor_id}/runs", json=run_input)
        run = body.get("data") or {}
        logger.info("apify.run_started", actor_id=actor_id, run_id=run.get("id"))
        return run

    async def get_run(self, run_id: str) -> dict[str, Any]:
        body = await self._request("GET", f"/actor-runs/{run_id}")
        return body.get("data") or {}

    async def get_dataset_items(self, dataset_id: str, limit: int | None = None) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"clean": "true", "format": "json"}
        if limit is not None:
            params["limit"] = limit
        items = await self._request("GET", f"/datasets/{dataset_id}/items", params=params)
        return items if isinstance(items, list) else []


def build_apify_client() -> ApifyClient:
    return ApifyClient(
        settings.APIFY_API_KEY,
        base_url=settings.APIFY_BASE_URL,
        timeout=settings.APIFY_TIMEOUT_SECONDS,
    )


def instagram_run_input(keyword: str, limit: int) -> dict[str, Any]:
    return {
        "search": keyword,
        "searchType": "user",
        "searchLimit": limit,
        "resultsType": "details",
        "resultsLimit": limit,
    }


def extract_email(profile: dict[str, Any]) -> str | None:
    for key in ("email", "businessEmail", "publicEmail"):
        value = profile.get(key)
        if isinstance(value, str) and _EMAIL_PATTERN.fullmatch(value.strip()):
            return value.strip().lower()

    match = _EMAIL_PATTERN.search(profile.get("biography") or "")
    return match.group(0).lower() if match else None


def profiles_with_email(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    profiles: list[dict[str, Any]] = []
    seen: set[str] = set()
    for item in items:
        email = extract_email(item)
        if email is None or email in seen:
            continue
        seen.add(email)
        profiles.append(
            {
                "username": item.get("username"),
                "fullName": item.get("fullName"),
                "email": email,
                "biography": item.get("biography"),
                "externalUrl": item.get("externalUrl"),
                "followersCount": item.get("followersCount"),
                "followingCount": item.get("followsCount", item.get("followingCount")),
                "url": item.get("url"),
            }
        )
    return profiles


def google_maps_run_input(search_terms: str, location: str, limit: int) -> dict[str, Any]:
    return {
        "searchStringsArray": [search_terms],
        "locationQuery": location,
        "maxCrawledPlacesPerSearch": limit,
        "language": "pt-BR",
        "includeWebResults": False,
        "maxImages": 0,
        "scrapeContacts": False,
        "scrapePlaceDetailPage": False,
        "skipClosedPlaces": False,
    }
