"""
Matches Table

Single fixtures between two teams with lifecycle status and final score.
"""

from peewee import (
    CharField,
    DateTimeField,
    ForeignKeyField,
    IntegerField,
)

from db.base import BaseModel
from db.models.football.gameweeks import Matchday
from db.models.football.teams import Team
from utils.constants import MATCH_FINISHED, MATCH_SCHEDULED
from utils.time_helpers import utcnow


class Match(BaseModel):
    """
    Fixture and result.

    Attributes:
        id: '{competition}-match-{external_id}'
        external_id: Provider fixture id
        matchday: Owning matchday
        home_team: Home team
        away_team: Away team
        kickoff_time: Kickoff (naive UTC)
        home_score: Full-time home goals (null until known)
        away_score: Full-time away goals (null until known)
        status: scheduled, live, finished, postponed, cancelled
        venue: Stadium name
        home_red_cards / away_red_cards: Counted from provider bookings
    """

    id = CharField(max_length=64, primary_key=True)
    external_id = IntegerField(index=True)
    matchday = ForeignKeyField(
        Matchday,
        backref="matches",
        on_delete="CASCADE",
        column_name="matchday_id",
    )
    home_team = ForeignKeyField(
        Team,
        backref="home_matches",
        column_name="home_team_id",
    )
    away_team = ForeignKeyField(
        Team,
        backref="away_matches",
        column_name="away_team_id",
    )
    kickoff_time = DateTimeField(index=True)
    home_score = IntegerField(null=True)
    away_score = IntegerField(null=True)
    status = CharField(max_length=20, default=MATCH_SCHEDULED, index=True)
    venue = CharField(max_length=200, null=True)
    home_red_cards = IntegerField(default=0)
    away_red_cards = IntegerField(default=0)
    created_at = DateTimeField(default=utcnow)
    updated_at = DateTimeField(default=utcnow)

    class Meta:
        table_name = "match"

    def __repr__(self) -> str:
        return (
            f"<Match(id='{self.id}', "
            f"{self.home_team_id} v {self.away_team_id}, status={self.status})>"
        )

    @staticmethod
    def make_id(competition: str, external_id: int) -> str:
        return f"{competition}-match-{external_id}"

    @property
    def is_scoreable(self) -> bool:
        """Finished with both scores known."""
        return (
            self.status == MATCH_FINISHED
            and self.home_score is not None
            and self.away_score is not None
        )

    @classmethod
    def in_gameweek(cls, gameweek_id: str):
        """Query for the matches of a gameweek."""
        return (
            cls.select()
            .join(Matchday)
            .where(Matchday.gameweek == gameweek_id)
        )

    @classmethod
    def gameweek_id_for(cls, match_id: str) -> "str | None":
        row = (
            Matchday.select(Matchday.gameweek)
            .join(cls)
            .where(cls.id == match_id)
            .first()
        )
        return row.gameweek_id if row else None
