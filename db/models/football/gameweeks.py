"""
Gameweek and Matchday Tables

A gameweek is a scored round of fixtures with a prediction deadline and a
completion window. A matchday is one calendar day of a gameweek.
"""

from datetime import datetime
from typing import Optional

from peewee import (
    CharField,
    DateField,
    DateTimeField,
    ForeignKeyField,
    IntegerField,
)

from db.base import BaseModel
from db.models.football.seasons import Season
from services.deadline_gate import gameweek_status
from utils.time_helpers import utcnow


class Gameweek(BaseModel):
    """
    Scored round of fixtures within a season.

    Status is derived from the clock on every read and never stored, so it
    cannot drift from time. number is not unique: the provider may renumber
    rounds (Champions League knockout legs).

    Attributes:
        id: '{season}-gw{n}' (PL) or '{season}-{stage}-gw{n}' (CL)
        season: Owning season
        number: Sequential round number used for ordering
        name: Display name, e.g. 'Gameweek 7' or 'Round of 16 - Leg 1'
        stage: Champions League stage (null for the Premier League)
        deadline: Predictions are accepted strictly before this instant
        starts_at: Kickoff of the first match
        ends_at: End of the completion window
    """

    id = CharField(max_length=128, primary_key=True)
    season = ForeignKeyField(
        Season,
        backref="gameweeks",
        on_delete="CASCADE",
        column_name="season_id",
    )
    number = IntegerField()
    name = CharField(max_length=100, null=True)
    stage = CharField(max_length=32, null=True)
    deadline = DateTimeField()
    starts_at = DateTimeField()
    ends_at = DateTimeField()
    created_at = DateTimeField(default=utcnow)
    updated_at = DateTimeField(default=utcnow)

    class Meta:
        table_name = "gameweek"
        indexes = (
            (("season", "number"), False),
        )

    def __repr__(self) -> str:
        return f"<Gameweek(id='{self.id}', number={self.number})>"

    def status_at(self, now: Optional[datetime] = None) -> str:
        """Lifecycle status (upcoming, active, completed) at `now`."""
        return gameweek_status(self.deadline, self.ends_at, now or utcnow())

    @classmethod
    def for_season(cls, season_id: str) -> list["Gameweek"]:
        return list(
            cls.select().where(cls.season == season_id).order_by(cls.number, cls.id)
        )


class Matchday(BaseModel):
    """
    One calendar day of matches inside a gameweek.

    Attributes:
        id: '{gameweek}-day{n}'
        gameweek: Owning gameweek
        date: UTC calendar date of the matches
        day_number: 1-based position within the gameweek, ordered by date
    """

    id = CharField(max_length=160, primary_key=True)
    gameweek = ForeignKeyField(
        Gameweek,
        backref="matchdays",
        on_delete="CASCADE",
        column_name="gameweek_id",
    )
    date = DateField()
    day_number = IntegerField()
    created_at = DateTimeField(default=utcnow)
    updated_at = DateTimeField(default=utcnow)

    class Meta:
        table_name = "matchday"
        indexes = (
            (("gameweek", "day_number"), True),
        )

    def __repr__(self) -> str:
        return f"<Matchday(id='{self.id}', date={self.date})>"
