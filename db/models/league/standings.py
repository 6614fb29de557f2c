"""
Leaderboard Cache Tables

Per-gameweek and per-league aggregates of scored predictions. Written only
by the leaderboard aggregator so leaderboard reads never sum raw
predictions.
"""

from peewee import (
    CharField,
    DateTimeField,
    ForeignKeyField,
    IntegerField,
)

from db.base import BaseModel
from db.models.football.gameweeks import Gameweek
from db.models.league.leagues import League
from utils.time_helpers import utcnow


class UserGameweekScore(BaseModel):
    """
    A user's points for one gameweek in one league.

    Attributes:
        total_points: Sum of points over the user's scored predictions
        exact_scores: Predictions worth 3 points
        correct_results: Predictions worth 1 point
        predicted_matches: Predictions made in the gameweek
        scored_matches: Predictions with points assigned
    """

    user_id = CharField(max_length=64, index=True)
    gameweek = ForeignKeyField(
        Gameweek,
        backref="user_scores",
        on_delete="CASCADE",
        column_name="gameweek_id",
    )
    league = ForeignKeyField(
        League,
        backref="gameweek_scores",
        on_delete="CASCADE",
        column_name="league_id",
    )
    total_points = IntegerField(default=0)
    exact_scores = IntegerField(default=0)
    correct_results = IntegerField(default=0)
    predicted_matches = IntegerField(default=0)
    scored_matches = IntegerField(default=0)
    created_at = DateTimeField(default=utcnow)
    updated_at = DateTimeField(default=utcnow)

    class Meta:
        table_name = "user_gameweek_score"
        indexes = (
            (("user_id", "gameweek", "league"), True),
        )

    def __repr__(self) -> str:
        return (
            f"<UserGameweekScore(user='{self.user_id}', "
            f"gameweek='{self.gameweek_id}', points={self.total_points})>"
        )


class UserLeagueStanding(BaseModel):
    """
    A user's cumulative standing in a league.

    Attributes:
        total_points: Sum of the user's gameweek totals in the league
        gameweeks_played: Gameweeks with at least one scored prediction
        exact_scores: Sum of gameweek exact scores
        correct_results: Sum of gameweek correct results
        current_rank: 1-based rank after the latest recomputation
        previous_rank: Rank before the latest recomputation
    """

    user_id = CharField(max_length=64, index=True)
    league = ForeignKeyField(
        League,
        backref="standings",
        on_delete="CASCADE",
        column_name="league_id",
    )
    total_points = IntegerField(default=0)
    gameweeks_played = IntegerField(default=0)
    exact_scores = IntegerField(default=0)
    correct_results = IntegerField(default=0)
    current_rank = IntegerField(null=True)
    previous_rank = IntegerField(null=True)
    created_at = DateTimeField(default=utcnow)
    updated_at = DateTimeField(default=utcnow)

    class Meta:
        table_name = "user_league_standing"
        indexes = (
            (("user_id", "league"), True),
        )

    def __repr__(self) -> str:
        return (
            f"<UserLeagueStanding(user='{self.user_id}', league='{self.league_id}', "
            f"points={self.total_points}, rank={self.current_rank})>"
        )

    @property
    def rank_change(self) -> int | None:
        """Positive when the user moved up since the previous recomputation."""
        if self.current_rank is None or self.previous_rank is None:
            return None
        return self.previous_rank - self.current_rank
