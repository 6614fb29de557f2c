"""
Pipeline Scheduler

Runs the fixture sync and match results pipelines on fixed intervals
inside the API process, using APScheduler's asyncio scheduler.

Each pipeline is single-flight: a scheduled tick or a manual trigger that
arrives while the same pipeline is still running is skipped, not queued.
"""

import asyncio
from datetime import timedelta
from typing import Awaitable, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from core.logging import get_logger
from core.settings import settings
from schemas.pipeline import PipelineResult
from utils.time_helpers import utcnow

log = get_logger("scheduler")

PipelineRunner = Callable[[str, str], Awaitable[PipelineResult]]


async def _run_registered_pipeline(name: str, trigger: str) -> PipelineResult:
    from pipelines.registry import run_pipeline

    return await run_pipeline(name, trigger=trigger)


class PipelineScheduler:
    """
    Interval scheduler with per-pipeline single-flight locks.

    Args:
        runner: Coroutine taking (pipeline_name, trigger) and returning a
            PipelineResult; defaults to the pipeline registry
        fixture_sync_minutes: Interval of the full fixture sync
        match_results_minutes: Interval of the results and scoring run
        initial_delay_seconds: Delay before the first fixture sync after start
    """

    def __init__(
        self,
        runner: Optional[PipelineRunner] = None,
        fixture_sync_minutes: int = 360,
        match_results_minutes: int = 60,
        initial_delay_seconds: float = 5.0,
    ):
        self.runner = runner or _run_registered_pipeline
        self.intervals = {
            "fixture_sync": fixture_sync_minutes,
            "match_results": match_results_minutes,
        }
        self.initial_delay_seconds = initial_delay_seconds
        self._locks: dict[str, asyncio.Lock] = {}
        self._scheduler: Optional[AsyncIOScheduler] = None

    @classmethod
    def from_settings(cls, app_settings=None) -> "PipelineScheduler":
        s = app_settings or settings
        return cls(
            fixture_sync_minutes=s.fixture_sync_interval_minutes,
            match_results_minutes=s.match_results_interval_minutes,
            initial_delay_seconds=s.initial_sync_delay_seconds,
        )

    def _lock(self, name: str) -> asyncio.Lock:
        if name not in self._locks:
            self._locks[name] = asyncio.Lock()
        return self._locks[name]

    def is_running(self, name: str) -> bool:
        """Whether a run of the pipeline is in flight."""
        return self._lock(name).locked()

    async def trigger(self, name: str, trigger: str = "scheduler") -> Optional[PipelineResult]:
        """
        Run a pipeline now unless a run of it is already in flight.

        Errors are logged, never raised, so a failing run cannot stop the
        schedule.

        Returns:
            The run's result, or None when skipped or crashed
        """
        lock = self._lock(name)
        if lock.locked():
            log.info("pipeline_skipped_already_running", pipeline=name, trigger=trigger)
            return None

        async with lock:
            try:
                result = await self.runner(name, trigger)
            except Exception as e:
                log.error(
                    "scheduled_pipeline_crashed",
                    pipeline=name,
                    trigger=trigger,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                return None

        log.info(
            "scheduled_pipeline_finished",
            pipeline=name,
            trigger=trigger,
            status=result.status,
            records_processed=result.records_processed,
        )
        return result

    def start(self) -> None:
        """Register the interval jobs and start the scheduler on the running loop."""
        if self._scheduler is not None and self._scheduler.running:
            log.warning("scheduler_already_started")
            return

        scheduler = AsyncIOScheduler(timezone="UTC")
        first_sync = utcnow() + timedelta(seconds=self.initial_delay_seconds)

        for name, minutes in self.intervals.items():
            # next_run_time=None would add the job paused
            extra = {"next_run_time": first_sync} if name == "fixture_sync" else {}
            scheduler.add_job(
                self.trigger,
                trigger=IntervalTrigger(minutes=minutes),
                args=[name],
                id=name,
                name=f"{name} (every {minutes}min)",
                replace_existing=True,
                max_instances=1,
                coalesce=True,
                **extra,
            )

        scheduler.start()
        self._scheduler = scheduler
        log.info("scheduler_started", intervals_minutes=self.intervals)

    def stop(self) -> None:
        """Stop scheduling new runs; in-flight runs finish in their threads."""
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            log.info("scheduler_stopped")
        self._scheduler = None

    def jobs(self) -> list[dict]:
        """Registered jobs with their next run time, for status endpoints."""
        if self._scheduler is None:
            return []
        return [
            {
                "id": job.id,
                "name": job.name,
                "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
                "running": self.is_running(job.id),
            }
            for job in self._scheduler.get_jobs()
        ]


_scheduler: Optional[PipelineScheduler] = None


def get_scheduler() -> PipelineScheduler:
    """Get the process-wide scheduler, creating it from settings on first use."""
    global _scheduler
    if _scheduler is None:
        _scheduler = PipelineScheduler.from_settings()
    return _scheduler
