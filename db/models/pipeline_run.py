"""
Pipeline Run Model

Audit trail of fixture sync and results jobs. Every run, scheduled or
triggered by an operator, leaves one row with timing, outcome and the
number of rows it touched.
"""

import uuid
from datetime import datetime
from typing import Optional

from peewee import (
    CharField,
    DateTimeField,
    IntegerField,
    TextField,
    UUIDField,
)

from db.base import BaseModel
from utils.time_helpers import utcnow

RUN_RUNNING = "running"
RUN_SUCCESS = "success"
RUN_FAILED = "failed"


class PipelineRun(BaseModel):
    """
    One execution of a pipeline.

    Attributes:
        id: Run id, also bound to the run's log lines
        pipeline_name: e.g. "fixture_sync", "match_results"
        trigger: "scheduler", "api" or "script"
        started_at / completed_at: Run timing (completed_at null while running)
        status: running, success, failed
        records_processed: Rows written by the run
        error_message: Failure description
    """

    id = UUIDField(primary_key=True, default=uuid.uuid4)
    pipeline_name = CharField(max_length=50, index=True)
    trigger = CharField(max_length=20, default="scheduler")
    started_at = DateTimeField()
    completed_at = DateTimeField(null=True)
    status = CharField(max_length=20, index=True)
    records_processed = IntegerField(default=0)
    error_message = TextField(null=True)

    class Meta:
        table_name = "pipeline_run"

    def __repr__(self) -> str:
        return (
            f"<PipelineRun(id={self.id}, pipeline={self.pipeline_name}, "
            f"status={self.status})>"
        )

    @classmethod
    def start_run(
        cls,
        pipeline_name: str,
        trigger: str = "scheduler",
        started_at: Optional[datetime] = None,
    ) -> "PipelineRun":
        return cls.create(
            id=uuid.uuid4(),
            pipeline_name=pipeline_name,
            trigger=trigger,
            started_at=started_at or utcnow(),
            status=RUN_RUNNING,
        )

    def finish(self, records_processed: int = 0, error: Optional[str] = None) -> None:
        """
        Close the run.

        Args:
            records_processed: Rows written by the run
            error: Failure description; marks the run failed when given
        """
        self.completed_at = utcnow()
        self.records_processed = records_processed
        if error is None:
            self.status = RUN_SUCCESS
        else:
            self.status = RUN_FAILED
            self.error_message = error
        self.save()

    @property
    def duration_seconds(self) -> float | None:
        if self.completed_at and self.started_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    @classmethod
    def recent(cls, pipeline_name: Optional[str] = None, limit: int = 20) -> list["PipelineRun"]:
        """Latest runs first, optionally for one pipeline."""
        query = cls.select()
        if pipeline_name:
            query = query.where(cls.pipeline_name == pipeline_name)
        return list(query.order_by(cls.started_at.desc()).limit(limit))
