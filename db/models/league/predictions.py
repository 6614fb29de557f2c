"""
Predictions Table

One predicted score per (user, match, league). Score fields are written by
the prediction write path; points only by the scoring engine.
"""

import uuid

from peewee import (
    Check,
    CharField,
    DateTimeField,
    ForeignKeyField,
    IntegerField,
    UUIDField,
)

from db.base import BaseModel
from db.models.football.matches import Match
from db.models.league.leagues import League
from utils.constants import MAX_PREDICTED_SCORE, MIN_PREDICTED_SCORE
from utils.time_helpers import utcnow

_SCORE_RANGE = f"BETWEEN {MIN_PREDICTED_SCORE} AND {MAX_PREDICTED_SCORE}"


class Prediction(BaseModel):
    """
    A user's predicted score for a match, scoped to one league.

    Attributes:
        id: Row id
        user_id: Opaque authenticated user id
        match: Predicted match
        league: League the prediction counts toward
        home_score: Predicted home goals (0..20)
        away_score: Predicted away goals (0..20)
        points: 3, 1 or 0 once the match is scored, null before
    """

    id = UUIDField(primary_key=True, default=uuid.uuid4)
    user_id = CharField(max_length=64, index=True)
    match = ForeignKeyField(
        Match,
        backref="predictions",
        on_delete="CASCADE",
        column_name="match_id",
    )
    league = ForeignKeyField(
        League,
        backref="predictions",
        on_delete="CASCADE",
        column_name="league_id",
    )
    home_score = IntegerField(constraints=[Check(f"home_score {_SCORE_RANGE}")])
    away_score = IntegerField(constraints=[Check(f"away_score {_SCORE_RANGE}")])
    points = IntegerField(null=True)
    created_at = DateTimeField(default=utcnow)
    updated_at = DateTimeField(default=utcnow)

    class Meta:
        table_name = "prediction"
        indexes = (
            (("user_id", "match", "league"), True),
        )

    def __repr__(self) -> str:
        return (
            f"<Prediction(user='{self.user_id}', match='{self.match_id}', "
            f"{self.home_score}-{self.away_score}, points={self.points})>"
        )

    @classmethod
    def upsert_prediction(
        cls,
        user_id: str,
        match_id: str,
        league_id: str,
        home_score: int,
        away_score: int,
    ) -> None:
        """
        Insert a prediction or replace the predicted scores of the existing row.

        Points are left untouched; the scoring engine recomputes them.
        """
        now = utcnow()
        (
            cls.insert(
                id=uuid.uuid4(),
                user_id=user_id,
                match=match_id,
                league=league_id,
                home_score=home_score,
                away_score=away_score,
                created_at=now,
                updated_at=now,
            )
            .on_conflict(
                conflict_target=[cls.user_id, cls.match, cls.league],
                update={
                    cls.home_score: home_score,
                    cls.away_score: away_score,
                    cls.updated_at: now,
                },
            )
            .execute()
        )
