from __future__ import annotations

from typing import Any

from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from app.config import settings


class Base(DeclarativeBase):
    pass


def normalize_database_url(url: str) -> str:
    # Hosted providers hand out postgres:// URLs, which SQLAlchemy no longer accepts.
    if url.startswith("postgres://"):
        return "postgresql://" + url[len("postgres://"):]
    return url


def _connect_args(url: str, connect_timeout: int, statement_timeout_ms: int | None = None) -> dict[str, Any]:
    if not make_url(url).get_backend_name().startswith("postgresql"):
        return {}

    args: dict[str, Any] = {
        "connect_timeout": connect_timeout,
        "sslmode": settings.DB_SSLMODE,
        "application_name": "dataatlas-api",
    }
    if statement_timeout_ms is not None:
        args["options"] = f"-c statement_timeout={statement_timeout_ms}"
    return args


def build_engine(url: str | None = None) -> Engine:
    database_url = normalize_database_url(url or settings.DATABASE_URL)
    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        connect_args=_connect_args(database_url, settings.DB_CONNECT_TIMEOUT),
    )


def build_probe_engine(url: str, timeout_seconds: int) -> Engine:
    """Engine for one-off reachability checks.

    Both the connection attempt and the statement are bounded on the driver and
    server side, so a timed-out probe never leaves a query running.
    """
    database_url = normalize_database_url(url)
    return create_engine(
        database_url,
        poolclass=NullPool,
        connect_args=_connect_args(database_url, timeout_seconds, statement_timeout_ms=timeout_seconds * 1000),
    )
