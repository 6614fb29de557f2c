"""
Prediction Service

The prediction write and read path.

A submission is checked in this order, and the whole batch is rejected on
the first failure before anything is written:

1. membership (AuthorizationError)
2. payload shape and score range (ValidationError)
3. gameweek exists (NotFoundError)
4. deadline not passed, against the wall clock (DeadlineExpiredError)
5. every match belongs to the gameweek (ValidationError)

Accepted entries are upserted in one transaction; the last write for a
(user, match, league) wins.
"""

from typing import Any

from core.exceptions import NotFoundError, ValidationError
from core.logging import get_logger
from db.base import Store
from db.models.football.gameweeks import Gameweek, Matchday
from db.models.football.matches import Match
from db.models.league.predictions import Prediction
from schemas.predictions import PredictionEntry, PredictionView
from services.deadline_gate import ensure_prediction_window_open
from services.fixtures import match_view, matches_with_teams
from services.membership import require_membership
from utils.constants import MAX_PREDICTED_SCORE, MIN_PREDICTED_SCORE
from utils.time_helpers import isoformat_utc


def _validate_score(value: Any, field_name: str, index: int) -> int:
    # bool is an int subclass; True is not a score
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(
            f"{field_name} must be an integer",
            details={"index": index, "field": field_name, "value": value},
        )
    if not MIN_PREDICTED_SCORE <= value <= MAX_PREDICTED_SCORE:
        raise ValidationError(
            f"{field_name} must be between {MIN_PREDICTED_SCORE} and {MAX_PREDICTED_SCORE}",
            details={"index": index, "field": field_name, "value": value},
        )
    return value


def validate_entries(entries: Any) -> list[PredictionEntry]:
    """
    Validate a raw prediction batch.

    Args:
        entries: List of mappings with match_id, home_score and away_score

    Returns:
        Typed entries in submission order

    Raises:
        ValidationError: On an empty batch or any malformed entry
    """
    if not isinstance(entries, (list, tuple)) or not entries:
        raise ValidationError("Predictions must be a non-empty list")

    validated = []
    for index, entry in enumerate(entries):
        if isinstance(entry, PredictionEntry):
            entry = entry.model_dump()
        if not isinstance(entry, dict):
            raise ValidationError("Each prediction must be an object", details={"index": index})

        match_id = entry.get("match_id")
        if not isinstance(match_id, str) or not match_id:
            raise ValidationError("match_id is required", details={"index": index})

        validated.append(
            PredictionEntry(
                match_id=match_id,
                home_score=_validate_score(entry.get("home_score"), "home_score", index),
                away_score=_validate_score(entry.get("away_score"), "away_score", index),
            )
        )
    return validated


class PredictionService:
    """Validated prediction writes and per-user reads."""

    def __init__(self, store: Store):
        self.store = store
        self.log = get_logger("predictions")

    def submit_predictions(
        self,
        user_id: str,
        league_id: str,
        gameweek_id: str,
        entries: Any,
    ) -> int:
        """
        Save a batch of predictions for one gameweek.

        Returns:
            Number of predictions saved

        Raises:
            AuthorizationError: Caller is not a member of the league
            ValidationError: Malformed entry, or a match outside the gameweek
            NotFoundError: Unknown gameweek
            DeadlineExpiredError: The gameweek deadline has passed
        """
        require_membership(league_id, user_id)
        validated = validate_entries(entries)

        gameweek = Gameweek.get_or_none(Gameweek.id == gameweek_id)
        if gameweek is None:
            raise NotFoundError("Gameweek not found", details={"gameweek_id": gameweek_id})

        ensure_prediction_window_open(gameweek.id, gameweek.deadline)

        match_ids = {e.match_id for e in validated}
        in_gameweek = {
            m.id
            for m in Match.in_gameweek(gameweek_id).where(Match.id.in_(list(match_ids)))
        }
        outside = sorted(match_ids - in_gameweek)
        if outside:
            raise ValidationError(
                "Some matches do not belong to this gameweek",
                details={"gameweek_id": gameweek_id, "match_ids": outside},
            )

        with self.store.transaction():
            for entry in validated:
                Prediction.upsert_prediction(
                    user_id=user_id,
                    match_id=entry.match_id,
                    league_id=league_id,
                    home_score=entry.home_score,
                    away_score=entry.away_score,
                )

        self.log.info(
            "predictions_saved",
            user_id=user_id,
            league_id=league_id,
            gameweek_id=gameweek_id,
            count=len(validated),
        )
        return len(validated)

    def get_user_predictions(
        self, user_id: str, league_id: str, gameweek_id: str
    ) -> list[PredictionView]:
        """The caller's predictions for a gameweek, with match details, by kickoff."""
        require_membership(league_id, user_id)

        matches = {
            m.id: m
            for m in matches_with_teams()
            .join(Matchday)
            .where(Matchday.gameweek == gameweek_id)
        }
        if not matches:
            return []

        predictions = (
            Prediction.select()
            .where(
                (Prediction.user_id == user_id)
                & (Prediction.league == league_id)
                & (Prediction.match.in_(list(matches)))
            )
        )
        views = [
            PredictionView(
                id=str(p.id),
                match=match_view(matches[p.match_id]),
                home_score=p.home_score,
                away_score=p.away_score,
                points=p.points,
                updated_at=isoformat_utc(p.updated_at),
            )
            for p in predictions
        ]
        return sorted(views, key=lambda v: (v.match.kickoff_time, v.match.id))
