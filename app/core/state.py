from __future__ import annotations

import enum
import threading
import time
from collections.abc import Callable

from sqlalchemy import Engine, text
from sqlalchemy.orm import Session, sessionmaker

from app import models  # noqa: F401
from app.config import settings
from app.core.logging import get_logger
from app.database import Base, build_engine

logger = get_logger(__name__)


class SystemMode(str, enum.Enum):
    OFFLINE = "OFFLINE"
    RAILWAY = "RAILWAY"


class SystemState:
    """Process mode plus the live database handle, shared with request handlers.

    Only the connection monitor's recovery callback swaps the engine in; handlers
    read through :meth:`open_session`, which returns ``None`` while offline.
    """

    def __init__(
        self,
        database_url: str | None = None,
        engine_factory: Callable[[str], Engine] = build_engine,
    ) -> None:
        self.database_url = (settings.DATABASE_URL if database_url is None else database_url).strip()
        self._engine_factory = engine_factory
        self._lock = threading.Lock()
        self._mode = SystemMode.OFFLINE
        self._engine: Engine | None = None
        self._session_factory: sessionmaker[Session] | None = None
        self.started_at = time.time()

    @property
    def mode(self) -> SystemMode:
        return self._mode

    @property
    def is_online(self) -> bool:
        return self._mode is SystemMode.RAILWAY and self._engine is not None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @property
    def has_database_url(self) -> bool:
        return bool(self.database_url)

    def connect(self) -> None:
        if not self.database_url:
            raise RuntimeError("DATABASE_URL nao configurada")

        logger.info("state.connecting")
        engine = self._engine_factory(self.database_url)
        try:
            with engine.connect() as connection:
                connection.execute(text("SELECT 1 FROM estabelecimento LIMIT 1"))
            if settings.AUTO_CREATE_TABLES:
                Base.metadata.create_all(engine)
        except Exception:
            logger.exception("state.connect_failed")
            engine.dispose()
            with self._lock:
                self._mode = SystemMode.OFFLINE
            raise

        self.attach_engine(engine)

    def attach_engine(self, engine: Engine) -> None:
        with self._lock:
            previous = self._engine
            self._engine = engine
            self._session_factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
            self._mode = SystemMode.RAILWAY

        if previous is not None and previous is not engine:
            previous.dispose()
        logger.info("state.mode_changed", mode=SystemMode.RAILWAY.value)

    def disconnect(self) -> None:
        with self._lock:
            engine = self._engine
            self._engine = None
            self._session_factory = None
            self._mode = SystemMode.OFFLINE

        if engine is not None:
            engine.dispose()
        logger.info("state.mode_changed", mode=SystemMode.OFFLINE.value)

    def open_session(self) -> Session | None:
        factory = self._session_factory
        if self._mode is not SystemMode.RAILWAY or factory is None:
            return None
        return factory()

    def uptime_seconds(self) -> float:
        return time.time() - self.started_at
