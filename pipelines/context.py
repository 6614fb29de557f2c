"""
Pipeline Context

State of one pipeline run: its PipelineRun row, timing, the number of rows
it touched, a per-competition summary and the competitions that failed.
"""

from __future__ import annotations

import traceback
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from core.exceptions import ProviderError
from core.logging import get_logger
from db.models.pipeline_run import PipelineRun
from schemas.common import ApiStatus
from schemas.pipeline import PipelineResult
from utils.time_helpers import isoformat_utc, utcnow


@dataclass
class PipelineContext:
    """
    Run state handed to BasePipeline.execute().

    A run covers several competitions. A competition that fails is recorded
    with record_failure() and the run carries on with the next one;
    raise_for_failures() at the end turns any recorded failure into a
    failed run while keeping the work of the competitions that succeeded.

    Usage:
        ctx = PipelineContext("match_results", trigger="api")
        ctx.start_tracking()
        for competition in SUPPORTED_COMPETITIONS:
            try:
                ctx.increment_records(sync.update_match_results(competition))
            except ProviderError as e:
                ctx.record_failure(competition, e)
        ctx.raise_for_failures("Results update")
    """

    pipeline_name: str
    trigger: str = "scheduler"
    run_id: uuid.UUID = field(default_factory=uuid.uuid4)
    started_at: datetime = field(default_factory=utcnow)
    records_processed: int = 0
    details: dict[str, Any] = field(default_factory=dict)
    failures: dict[str, str] = field(default_factory=dict)

    _db_run: Optional[PipelineRun] = field(default=None, repr=False)
    _log: Any = field(default=None, repr=False)

    def __post_init__(self):
        self._log = get_logger("pipeline").bind(pipeline=self.pipeline_name)

    @property
    def log(self):
        return self._log

    def start_tracking(self) -> None:
        """Insert the PipelineRun row; its id becomes the run id."""
        self._db_run = PipelineRun.start_run(
            self.pipeline_name, trigger=self.trigger, started_at=self.started_at
        )
        self.run_id = self._db_run.id
        self._log.info("pipeline_started", run_id=str(self.run_id), trigger=self.trigger)

    def increment_records(self, count: int = 1) -> None:
        self.records_processed += count

    def record_failure(self, competition: str, error: Exception) -> None:
        """Remember a competition that failed; the run continues."""
        message = f"{type(error).__name__}: {error}"
        self.failures[competition] = message
        self._log.error(
            "competition_failed",
            competition=competition,
            error=str(error),
            error_type=type(error).__name__,
        )

    def raise_for_failures(self, action: str) -> None:
        """
        Fail the run if any competition failed.

        Raises:
            ProviderError: Naming the failed competitions
        """
        if self.failures:
            raise ProviderError(
                f"{action} failed for {', '.join(sorted(self.failures))}",
                details=dict(self.failures),
            )

    def _result(self, status: ApiStatus, message: str, error: Optional[str] = None) -> PipelineResult:
        completed_at = utcnow()
        details = dict(self.details)
        if self.failures:
            details["failures"] = dict(self.failures)
        return PipelineResult(
            status=status,
            message=message,
            started_at=isoformat_utc(self.started_at),
            completed_at=isoformat_utc(completed_at),
            duration_seconds=(completed_at - self.started_at).total_seconds(),
            records_processed=self.records_processed,
            error=error,
            details=details or None,
        )

    def mark_success(self, message: Optional[str] = None) -> PipelineResult:
        if self._db_run:
            self._db_run.finish(records_processed=self.records_processed)

        result = self._result(
            ApiStatus.SUCCESS, message or f"{self.pipeline_name} completed successfully"
        )
        self._log.info(
            "pipeline_completed",
            records_processed=self.records_processed,
            duration_seconds=result.duration_seconds,
        )
        return result

    def mark_failed(self, error: Exception) -> PipelineResult:
        """
        Close the run as failed.

        Rows written before the failure stay committed and are counted.
        """
        error_msg = f"{type(error).__name__}: {error}"
        if self._db_run:
            self._db_run.finish(records_processed=self.records_processed, error=error_msg)

        result = self._result(ApiStatus.ERROR, f"{self.pipeline_name} failed", error=error_msg)
        self._log.error(
            "pipeline_failed",
            error=error_msg,
            records_processed=self.records_processed,
            duration_seconds=result.duration_seconds,
            traceback=traceback.format_exc(),
        )
        return result
