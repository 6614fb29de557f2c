"""
League Routes

Prediction submission and reads, and league leaderboards. Every endpoint
acts for the user in the X-User-Id header and requires membership of the
league in the path.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from core.logging import get_logger
from core.user_auth import get_current_user_id
from db.base import get_store, run_in_store
from schemas.common import success_response
from schemas.predictions import PredictionSubmitRequest, SubmitResult
from services.leaderboard import LeaderboardService
from services.predictions import PredictionService

router = APIRouter(prefix="/leagues", tags=["Leagues"])
log = get_logger("leagues_api")


# ------------------------------- Predictions ------------------------------- #

@router.post("/{league_id}/predictions")
async def submit_predictions(
    league_id: str,
    request: PredictionSubmitRequest,
    user_id: str = Depends(get_current_user_id),
) -> dict:
    """
    Save the caller's predictions for one gameweek.

    The whole batch is rejected if any entry is invalid or the gameweek
    deadline has passed.
    """
    saved = await run_in_store(
        PredictionService(get_store()).submit_predictions,
        user_id,
        league_id,
        request.gameweek_id,
        request.predictions,
    )
    return success_response(
        message=f"{saved} predictions saved",
        data=SubmitResult(saved=saved, gameweek_id=request.gameweek_id).model_dump(),
    )


@router.get("/{league_id}/gameweeks/{gameweek_id}/predictions")
async def get_my_predictions(
    league_id: str,
    gameweek_id: str,
    user_id: str = Depends(get_current_user_id),
) -> dict:
    predictions = await run_in_store(
        PredictionService(get_store()).get_user_predictions, user_id, league_id, gameweek_id
    )
    return success_response(
        message=f"{len(predictions)} predictions",
        data=[p.model_dump() for p in predictions],
    )


# ------------------------------- Leaderboards ------------------------------- #

@router.get("/{league_id}/leaderboard")
async def get_league_leaderboard(
    league_id: str,
    user_id: str = Depends(get_current_user_id),
) -> dict:
    """Season standings, with the champion once every gameweek is completed."""
    leaderboard = await run_in_store(
        LeaderboardService(get_store()).get_league_leaderboard, league_id, user_id
    )
    return success_response(message="Leaderboard retrieved", data=leaderboard.model_dump())


@router.get("/{league_id}/gameweeks/{gameweek_id}/leaderboard")
async def get_gameweek_leaderboard(
    league_id: str,
    gameweek_id: str,
    user_id: str = Depends(get_current_user_id),
) -> dict:
    leaderboard = await run_in_store(
        LeaderboardService(get_store()).get_gameweek_leaderboard, league_id, gameweek_id, user_id
    )
    return success_response(
        message="Gameweek leaderboard retrieved", data=leaderboard.model_dump()
    )


@router.get("/{league_id}/rank")
async def get_user_rank(
    league_id: str,
    member_id: Optional[str] = Query(None, description="Member to look up. Omit for yourself."),
    user_id: str = Depends(get_current_user_id),
) -> dict:
    rank = await run_in_store(
        LeaderboardService(get_store()).get_user_rank, league_id, member_id or user_id, user_id
    )
    return success_response(message="Rank retrieved", data=rank.model_dump())
