"""
Pipeline API Routes

Operator endpoints for triggering syncs and scoring, and for inspecting
run history. Uses bearer-token authentication, not end-user identity, so
cron jobs and operators can call them.

Triggers share the scheduler's single-flight guard: a trigger for a
pipeline that is already running returns 409 instead of starting a second
run against the same rows.
"""

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Security, Query
from fastapi.responses import JSONResponse

from core.logging import get_logger
from core.pipeline_auth import verify_pipeline_token
from core.scheduler import get_scheduler
from core.settings import settings
from db.base import get_store, run_in_store
from db.models.pipeline_run import PipelineRun
from pipelines.extractors import FootballDataExtractor
from pipelines.registry import PIPELINE_REGISTRY, list_pipelines
from schemas.common import ApiStatus, error_response, success_response
from schemas.pipeline import PipelineResponse, AllPipelinesResponse, PipelineRunView
from services.fixtures import FixtureService
from services.leaderboard import LeaderboardService
from services.scoring import ScoringService
from services.sync_service import SyncService
from utils.time_helpers import isoformat_utc

router = APIRouter(prefix="/pipelines", tags=["pipelines"])
log = get_logger("pipeline_api")


def _already_running(name: str) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content=error_response(
            message=f"{name} is already running",
            status=ApiStatus.CONFLICT,
            error_code="PIPELINE_RUNNING",
        ),
    )


async def _trigger(name: str):
    result = await get_scheduler().trigger(name, trigger="api")
    if result is None:
        return _already_running(name)
    return PipelineResponse(status=result.status, message=result.message, data=result)


@router.get("/")
async def get_available_pipelines(
    _: str = Security(verify_pipeline_token),
) -> dict:
    """
    List all available pipelines.

    Returns pipeline names, descriptions, and target tables.
    """
    return {"pipelines": list_pipelines()}


@router.post("/fixture-sync", response_model=PipelineResponse)
async def trigger_fixture_sync(
    _: str = Security(verify_pipeline_token),
):
    """
    Trigger a full sync of every supported competition.

    Upserts teams, the current season, gameweeks, matchdays and matches.
    """
    return await _trigger("fixture_sync")


@router.post("/fixture-sync/{competition}")
async def trigger_competition_sync(
    competition: str,
    _: str = Security(verify_pipeline_token),
) -> dict:
    """Sync a single competition without recording a pipeline run."""
    service = SyncService.from_settings(get_store(), FootballDataExtractor(), settings)
    result = await run_in_store(service.sync_competition, competition)
    return success_response(message=f"{competition} synced", data=result.to_dict())


@router.post("/match-results", response_model=PipelineResponse)
async def trigger_match_results(
    _: str = Security(verify_pipeline_token),
):
    """
    Trigger the results update and scoring run.

    Updates live and recently finished matches, then scores every finished
    match that still has unscored predictions.
    """
    return await _trigger("match_results")


@router.post("/all", response_model=AllPipelinesResponse)
async def trigger_all_pipelines(
    _: str = Security(verify_pipeline_token),
) -> AllPipelinesResponse:
    """
    Run every pipeline in sequence: fixture_sync, then match_results.

    A pipeline that is already running is skipped and left out of the data.
    """
    results = {}
    for name in PIPELINE_REGISTRY:
        result = await get_scheduler().trigger(name, trigger="api")
        if result is not None:
            results[name] = result

    failed = [name for name, r in results.items() if r.status != ApiStatus.SUCCESS.value]
    return AllPipelinesResponse(
        status=ApiStatus.ERROR if failed else ApiStatus.SUCCESS,
        message=f"{len(results) - len(failed)}/{len(PIPELINE_REGISTRY)} pipelines succeeded",
        data=results,
    )


@router.post("/matches/{match_id}/score")
async def score_match(
    match_id: str,
    _: str = Security(verify_pipeline_token),
) -> dict:
    """Score one match now. A match that is not finished is left unscored."""
    result = await run_in_store(ScoringService(get_store()).score_predictions_for_match, match_id)
    if result is None:
        return success_response(message=f"{match_id} is not ready to score", data=None)
    return success_response(message=f"{match_id} scored", data=asdict(result))


@router.post("/leagues/{league_id}/verify")
async def verify_league(
    league_id: str,
    _: str = Security(verify_pipeline_token),
) -> dict:
    """Check cached standings against raw prediction points (500 on mismatch)."""
    checked = await run_in_store(LeaderboardService(get_store()).verify_league, league_id)
    return success_response(
        message="Leaderboard consistent",
        data={"league_id": league_id, "standings_checked": checked},
    )


@router.get("/status")
async def get_status(
    _: str = Security(verify_pipeline_token),
) -> dict:
    """Row counts per competition and the scheduler's jobs."""
    sync_status = await run_in_store(FixtureService(get_store()).get_sync_status)
    return success_response(
        message="Sync status retrieved",
        data={
            "competitions": {c: s.model_dump() for c, s in sync_status.items()},
            "jobs": get_scheduler().jobs(),
        },
    )


@router.get("/runs")
async def get_recent_runs(
    _: str = Security(verify_pipeline_token),
    pipeline: Optional[str] = Query(None, description="Filter by pipeline name"),
    limit: int = Query(20, ge=1, le=100),
) -> dict:
    """Latest pipeline runs first."""
    recent = await run_in_store(PipelineRun.recent, pipeline, limit)
    runs = [
        PipelineRunView(
            id=str(run.id),
            pipeline_name=run.pipeline_name,
            trigger=run.trigger,
            status=run.status,
            started_at=isoformat_utc(run.started_at),
            completed_at=isoformat_utc(run.completed_at),
            duration_seconds=run.duration_seconds,
            records_processed=run.records_processed,
            error_message=run.error_message,
        ).model_dump()
        for run in recent
    ]
    return success_response(message=f"{len(runs)} runs", data=runs)
