"""
Periodic job scheduler.

Runs on an APScheduler BackgroundScheduler inside the API process:
  - covenant_sweep:  daily sweep of every due covenant
  - urgent_sweep:    business-hours sweep reporting new breaches / warnings
  - session_cleanup: hourly removal of expired user sessions

Cron expressions and the timezone come from settings. Only one instance of a
given job runs at a time, whether fired by its trigger or by ``run_now``.
Running two API processes with the scheduler enabled double-fires every job.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.orm import Session

from app.core.config import Settings, settings as default_settings
from app.core.middleware.audit import get_logger
from app.core.security.sessions import cleanup_expired_sessions
from app.domain.monitoring.services.covenant_monitor import run_covenant_checks, run_urgent_checks

logger = get_logger(__name__)

SessionFactory = Callable[[], Session]


def covenant_sweep(session_factory: SessionFactory) -> dict[str, Any]:
    db = session_factory()
    try:
        report = run_covenant_checks(db, mode="due")
        return {
            "total_checked": report.total_checked,
            "breaches_detected": report.breaches_detected,
            "failed": len(report.failures),
        }
    finally:
        db.close()


def urgent_sweep(session_factory: SessionFactory) -> dict[str, Any]:
    db = session_factory()
    try:
        report = run_urgent_checks(db)
        return {
            "total_checked": report.total_checked,
            "urgent": len(report.results),
            "failed": len(report.failures),
        }
    finally:
        db.close()


def session_cleanup(session_factory: SessionFactory) -> dict[str, Any]:
    db = session_factory()
    try:
        return {"removed": cleanup_expired_sessions(db)}
    finally:
        db.close()


JOBS: dict[str, Callable[[SessionFactory], dict[str, Any]]] = {
    "covenant_sweep": covenant_sweep,
    "urgent_sweep": urgent_sweep,
    "session_cleanup": session_cleanup,
}


class Scheduler:
    def __init__(self, session_factory: SessionFactory, config: Settings | None = None) -> None:
        self._config = config or default_settings
        self._session_factory = session_factory
        self._scheduler = BackgroundScheduler(timezone=self._config.scheduler_timezone)
        self._executor: ThreadPoolExecutor | None = None
        self._locks = {name: threading.Lock() for name in JOBS}
        self._crons = {
            "covenant_sweep": self._config.covenant_sweep_cron,
            "urgent_sweep": self._config.urgent_sweep_cron,
            "session_cleanup": self._config.maintenance_cron,
        }

    @property
    def job_ids(self) -> list[str]:
        return list(JOBS)

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def _execute(self, name: str) -> dict[str, Any] | None:
        lock = self._locks[name]
        if not lock.acquire(blocking=False):
            logger.warning(f"scheduler.{name}.skipped", reason="already running")
            return None
        try:
            logger.info(f"scheduler.{name}.start")
            stats = JOBS[name](self._session_factory)
            logger.info(f"scheduler.{name}.done", **stats)
            return stats
        except Exception as exc:
            # Job boundary: the next tick must still run.
            logger.error(f"scheduler.{name}.error", error=str(exc))
            return None
        finally:
            lock.release()

    def start(self) -> None:
        """Register jobs and start the scheduler."""
        if self._scheduler.running:
            return
        for name, expr in self._crons.items():
            self._scheduler.add_job(
                self._execute,
                CronTrigger.from_crontab(expr, timezone=self._config.scheduler_timezone),
                args=[name],
                id=name,
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )
        self._scheduler.start()
        logger.info("scheduler.started", jobs=self.job_ids, timezone=self._config.scheduler_timezone)

    def stop(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("scheduler.stopped")
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def run_now(self, name: str) -> Future:
        """Submit one out-of-schedule run; the future resolves to the job's stats (None if skipped or failed)."""
        if name not in JOBS:
            raise KeyError(f"Unknown job: {name}")
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self._config.scheduler_max_workers,
                thread_name_prefix="scheduler-run-now",
            )
        return self._executor.submit(self._execute, name)
