from __future__ import annotations

import hashlib
import json
from threading import Lock
from typing import Any

import redis

from app.config import settings
from app.core.logging import get_logger
from app.core.metrics import increment_cache_hits_total, increment_cache_misses_total

logger = get_logger(__name__)


class CacheBackend:
    def __init__(self, redis_url: str | None = None, client: Any | None = None) -> None:
        self.redis_url = (settings.REDIS_URL if redis_url is None else redis_url).strip()
        self.client = client
        self.enabled = client is not None

        if self.client is not None:
            logger.info("cache.enabled", source="injected_client")
            return

        if not self.redis_url:
            logger.info("cache.disabled", reason="empty_redis_url")
            return

        try:
            self.client = redis.Redis.from_url(self.redis_url, decode_responses=True)
            self.client.ping()
        except Exception:
            logger.exception("cache.disabled", reason="redis_connection_failed")
            self.client = None
            self.enabled = False
            return

        self.enabled = True
        logger.info("cache.enabled")

    def get_json(self, key: str) -> Any | None:
        if not self.enabled or self.client is None:
            return None
        try:
            value = self.client.get(key)
        except Exception:
            logger.exception("cache.get_failed", key=key)
            return None

        if value is None:
            increment_cache_misses_total()
            return None

        increment_cache_hits_total()
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            logger.warning("cache.invalid_payload", key=key)
            return None

    def set_json(self, key: str, value: Any, ttl: int | None = None) -> None:
        if not self.enabled or self.client is None:
            return
        try:
            self.client.setex(key, ttl or settings.CACHE_TTL_SECONDS, json.dumps(value, ensure_ascii=True, default=str))
        except Exception:
            logger.exception("cache.set_failed", key=key)

    @property
    def status(self) -> str:
        if self.client is None and not self.redis_url:
            return "disabled"
        return "ok" if self.enabled else "unavailable"

    @staticmethod
    def key(namespace: str, payload: dict[str, Any] | None = None) -> str:
        if not payload:
            return f"dataatlas:{namespace}"
        digest = hashlib.sha256(
            json.dumps(payload, sort_keys=True, ensure_ascii=True, default=str).encode("utf-8")
        ).hexdigest()[:32]
        return f"dataatlas:{namespace}:{digest}"


_CACHE_SINGLETON: CacheBackend | None = None
_CACHE_LOCK = Lock()


def get_cache() -> CacheBackend:
    global _CACHE_SINGLETON
    if _CACHE_SINGLETON is None:
        with _CACHE_LOCK:
            if _CACHE_SINGLETON is None:
                _CACHE_SINGLETON = CacheBackend()
    return _CACHE_SINGLETON


def set_cache(cache: CacheBackend | None) -> None:
    global _CACHE_SINGLETON
    with _CACHE_LOCK:
        _CACHE_SINGLETON = cache
