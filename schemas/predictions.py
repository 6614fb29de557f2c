from pydantic import BaseModel
from typing import Any, Optional

from .fixtures import MatchView


# ------------------------------- Requests ------------------------------- #

class PredictionEntry(BaseModel):
    """A validated prediction for one match."""
    match_id: str
    home_score: int
    away_score: int


class PredictionSubmitRequest(BaseModel):
    """
    Batch of predictions for one gameweek.

    Entries are validated by the prediction service after the membership
    check, so they are accepted here as loose objects.
    """
    gameweek_id: str
    predictions: list[Any] = []


# ------------------------------- Reads ------------------------------- #

class PredictionView(BaseModel):
    id: str
    match: MatchView
    home_score: int
    away_score: int
    points: Optional[int] = None
    updated_at: str


class SubmitResult(BaseModel):
    saved: int
    gameweek_id: str
