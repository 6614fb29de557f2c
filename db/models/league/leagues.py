"""
League and LeagueMember Tables

Leagues and their memberships are written by the account service. The
engine only reads them to authorize league-scoped reads and writes and to
break ranking ties by join time.
"""

from peewee import (
    CharField,
    DateTimeField,
    ForeignKeyField,
)

from db.base import BaseModel
from utils.time_helpers import utcnow


class League(BaseModel):
    """
    Private prediction league.

    Attributes:
        id: League id (opaque, assigned by the account service)
        name: Display name
        competition: premier_league or champions_league
        invite_code: Join code
        created_by: User id of the creator
    """

    id = CharField(max_length=64, primary_key=True)
    name = CharField(max_length=100)
    competition = CharField(max_length=32, index=True)
    invite_code = CharField(max_length=32, unique=True)
    created_by = CharField(max_length=64)
    created_at = DateTimeField(default=utcnow)

    class Meta:
        table_name = "league"

    def __repr__(self) -> str:
        return f"<League(id='{self.id}', name='{self.name}')>"


class LeagueMember(BaseModel):
    """
    A user's membership of a league.

    Attributes:
        league: League
        user_id: Opaque authenticated user id
        role: admin or member
        joined_at: Used as the final stable ranking tie-break
    """

    league = ForeignKeyField(
        League,
        backref="members",
        on_delete="CASCADE",
        column_name="league_id",
    )
    user_id = CharField(max_length=64, index=True)
    role = CharField(max_length=16, default="member")
    joined_at = DateTimeField(default=utcnow)

    class Meta:
        table_name = "league_member"
        indexes = (
            (("league", "user_id"), True),
        )

    def __repr__(self) -> str:
        return f"<LeagueMember(league='{self.league_id}', user='{self.user_id}')>"
