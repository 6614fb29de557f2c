"""
Fixture Routes

Read-only endpoints over synced seasons, gameweeks, matches and teams.
No league membership is needed; competition data is shared by every league.
"""

from fastapi import APIRouter

from core.logging import get_logger
from db.base import get_store, run_in_store
from schemas.common import success_response
from services.fixtures import FixtureService

router = APIRouter(prefix="/fixtures", tags=["Fixtures"])
log = get_logger("fixtures_api")


def _service() -> FixtureService:
    return FixtureService(get_store())


@router.get("/teams")
async def get_all_teams() -> dict:
    """Every club once, for pickers that span competitions."""
    teams = await run_in_store(_service().get_all_teams)
    return success_response(
        message=f"{len(teams)} teams",
        data=[t.model_dump() for t in teams],
    )


@router.get("/gameweeks/{gameweek_id}")
async def get_gameweek(gameweek_id: str) -> dict:
    """A gameweek with its matchdays and matches."""
    gameweek = await run_in_store(_service().get_gameweek, gameweek_id)
    return success_response(message="Gameweek retrieved", data=gameweek.model_dump())


@router.get("/seasons/{season_id}/gameweeks")
async def get_season_gameweeks(season_id: str) -> dict:
    gameweeks = await run_in_store(_service().get_season_gameweeks, season_id)
    return success_response(
        message=f"{len(gameweeks)} gameweeks",
        data=[gw.model_dump() for gw in gameweeks],
    )


@router.get("/{competition}/season")
async def get_current_season(competition: str) -> dict:
    season = await run_in_store(_service().get_current_season, competition)
    return success_response(message="Current season retrieved", data=season.model_dump())


@router.get("/{competition}/season/status")
async def get_season_status(competition: str) -> dict:
    """Gameweek completion counts for the current season."""
    status = await run_in_store(_service().get_season_status, competition)
    return success_response(message="Season status retrieved", data=status.model_dump())


@router.get("/{competition}/gameweeks/current")
async def get_current_gameweek(competition: str) -> dict:
    """The gameweek users should be predicting now."""
    gameweek = await run_in_store(_service().get_current_gameweek, competition)
    log.debug("current_gameweek_request", competition=competition, gameweek_id=gameweek.id)
    return success_response(message="Current gameweek retrieved", data=gameweek.model_dump())


@router.get("/{competition}/teams")
async def get_teams(competition: str) -> dict:
    teams = await run_in_store(_service().get_teams, competition)
    return success_response(
        message=f"{len(teams)} teams",
        data=[t.model_dump() for t in teams],
    )
