from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy import text

from app.core.logging import get_logger
from app.core.metrics import increment_monitor_checks_total
from app.database import build_probe_engine

logger = get_logger(__name__)

JOB_ID = "database-connection-monitor"


@dataclass
class ProbeResult:
    success: bool
    data: dict[str, Any] = field(default_factory=dict)
    error: str | None = None


class DatabaseProbe:
    def __init__(self, database_url: str, timeout_seconds: int = 5) -> None:
        self.database_url = database_url
        self.timeout_seconds = timeout_seconds

    def _run(self) -> ProbeResult:
        engine = build_probe_engine(self.database_url, self.timeout_seconds)
        try:
            with engine.connect() as connection:
                row = connection.execute(
                    text("SELECT NOW() AS server_time, 'database reachable' AS status")
                ).mappings().first()
            return ProbeResult(success=True, data={key: str(value) for key, value in dict(row or {}).items()})
        except Exception as exc:
            return ProbeResult(success=False, error=str(exc).strip() or exc.__class__.__name__)
        finally:
            engine.dispose()

    async def __call__(self) -> ProbeResult:
        try:
            return await asyncio.to_thread(self._run)
        except Exception as exc:
            return ProbeResult(success=False, error=str(exc) or exc.__class__.__name__)


class ConnectionMonitor:
    """Polls the database until it answers, then hands over to the recovery callback.

    The switch is one-shot: after a successful recovery the polling job is removed
    and only an explicit :meth:`start_monitoring` arms it again. A recovery
    callback that raises is treated as a failed attempt and polling continues.
    """

    def __init__(
        self,
        probe: Callable[[], Awaitable[ProbeResult]],
        on_connection_restored: Callable[[], Awaitable[None]] | None = None,
        *,
        interval_seconds: int = 30,
        backoff_interval_seconds: int = 120,
        max_retries: int = 5,
    ) -> None:
        self._probe = probe
        self._on_connection_restored = on_connection_restored
        self.interval_seconds = interval_seconds
        self.backoff_interval_seconds = backoff_interval_seconds
        self.max_retries = max_retries
        self.current_interval_seconds = interval_seconds
        self.is_connected = False
        self.retry_count = 0
        self.last_error: str | None = None
        self._scheduler: AsyncIOScheduler | None = None

    @property
    def is_monitoring(self) -> bool:
        return self._scheduler is not None and self._scheduler.get_job(JOB_ID) is not None

    async def test_connection(self) -> ProbeResult:
        try:
            return await self._probe()
        except Exception as exc:
            return ProbeResult(success=False, error=str(exc) or exc.__class__.__name__)

    async def check_connection(self) -> ProbeResult:
        logger.info(
            "monitor.check",
            attempt=self.retry_count + 1,
            max_retries=self.max_retries,
            interval_seconds=self.current_interval_seconds,
        )
        result = await self.test_connection()
        increment_monitor_checks_total(failed=not result.success)

        if not result.success:
            self._register_failure(result.error)
            return result

        logger.info("monitor.database_online", probe=result.data)
        if self.is_connected:
            self.stop_monitoring()
            return result

        self.is_connected = True
        self.retry_count = 0
        self.last_error = None
        logger.info("monitor.switching_to_database")

        if self._on_connection_restored is not None:
            try:
                await self._on_connection_restored()
            except Exception as exc:
                logger.exception("monitor.recovery_failed")
                self.is_connected = False
                self._register_failure(f"recovery callback failed: {exc}")
                return ProbeResult(success=False, data=result.data, error=self.last_error)

        logger.info("monitor.switched_to_database")
        self.stop_monitoring()
        return result

    def _register_failure(self, error: str | None) -> None:
        self.retry_count += 1
        self.last_error = error
        logger.warning("monitor.database_unavailable", error=error, retry_count=self.retry_count)

        if self.retry_count >= self.max_retries:
            logger.warning(
                "monitor.backing_off",
                max_retries=self.max_retries,
                interval_seconds=self.backoff_interval_seconds,
            )
            self.retry_count = 0
            self._set_interval(self.backoff_interval_seconds)

    def _set_interval(self, seconds: int) -> None:
        if seconds == self.current_interval_seconds:
            return
        self.current_interval_seconds = seconds
        if self.is_monitoring:
            self._scheduler.reschedule_job(JOB_ID, trigger=IntervalTrigger(seconds=seconds))

    def start_monitoring(self) -> None:
        if self._scheduler is None:
            self._scheduler = AsyncIOScheduler(event_loop=asyncio.get_running_loop())
            self._scheduler.start()

        self.current_interval_seconds = self.interval_seconds
        self._scheduler.add_job(
            self.check_connection,
            IntervalTrigger(seconds=self.interval_seconds),
            id=JOB_ID,
            name="Database connection monitor",
            next_run_time=datetime.now(timezone.utc),
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        logger.info("monitor.started", interval_seconds=self.interval_seconds)

    def stop_monitoring(self) -> None:
        if self._scheduler is not None and self._scheduler.get_job(JOB_ID) is not None:
            self._scheduler.remove_job(JOB_ID)
        logger.info("monitor.stopped")

    def shutdown(self) -> None:
        if self._scheduler is None:
            return
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self._scheduler = None

    def get_status(self) -> dict[str, Any]:
        return {
            "isConnected": self.is_connected,
            "isMonitoring": self.is_monitoring,
            "retryCount": self.retry_count,
            "intervalSeconds": self.current_interval_seconds,
            "lastError": self.last_error,
        }
