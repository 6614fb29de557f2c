"""Response models for the pipeline admin API."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from .common import ApiStatus


class PipelineResult(BaseModel):
    """
    Outcome of one fixture sync or match results run.

    details holds the per-competition counters the run reported and, when a
    competition failed, a "failures" map of competition to error.
    """

    model_config = ConfigDict(use_enum_values=True)

    status: ApiStatus
    message: str
    started_at: str
    completed_at: Optional[str] = None
    duration_seconds: Optional[float] = None
    records_processed: Optional[int] = None
    error: Optional[str] = None
    details: Optional[dict[str, Any]] = None


class PipelineResponse(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    status: ApiStatus
    message: str
    data: Optional[PipelineResult] = None


class AllPipelinesResponse(BaseModel):
    """Fixture sync then match results, keyed by pipeline name."""

    model_config = ConfigDict(use_enum_values=True)

    status: ApiStatus
    message: str
    data: Optional[dict[str, PipelineResult]] = None


class PipelineRunView(BaseModel):
    """A PipelineRun row as the runs endpoint lists it."""

    id: str
    pipeline_name: str
    trigger: str
    status: str
    started_at: str
    completed_at: Optional[str] = None
    duration_seconds: Optional[float] = None
    records_processed: int = 0
    error_message: Optional[str] = None
