"""
Team Dimension Table

Clubs of each supported competition, keyed by the provider's team id.
"""

from peewee import (
    CharField,
    DateTimeField,
    IntegerField,
    TextField,
)

from db.base import BaseModel
from utils.constants import PREMIER_LEAGUE
from utils.time_helpers import utcnow


class Team(BaseModel):
    """
    Club master data.

    A club that plays in both competitions has one row per competition;
    the id embeds the competition so the same provider id never collides.

    Attributes:
        id: "{competition}-{external_id}" (e.g. 'premier_league-57')
        external_id: Provider team id
        name: Full club name
        short_name: Short display name (falls back to name)
        code: Three-letter code (e.g. 'ARS')
        logo: Crest URL
        competition: premier_league or champions_league
    """

    id = CharField(max_length=64, primary_key=True)
    external_id = IntegerField(index=True)
    name = CharField(max_length=100)
    short_name = CharField(max_length=100)
    code = CharField(max_length=10)
    logo = TextField(null=True)
    competition = CharField(max_length=32, index=True)
    created_at = DateTimeField(default=utcnow)
    updated_at = DateTimeField(default=utcnow)

    class Meta:
        table_name = "team"

    def __repr__(self) -> str:
        return f"<Team(id='{self.id}', name='{self.name}')>"

    @staticmethod
    def make_id(competition: str, external_id: int) -> str:
        return f"{competition}-{external_id}"

    @classmethod
    def upsert_team(cls, team_id: str, team_data: dict, refresh: bool = True) -> None:
        """
        Insert a team, or refresh its descriptive fields when it exists.

        Args:
            team_id: Team primary key
            team_data: Column values (without id)
            refresh: If False an existing row is left untouched
        """
        now = utcnow()
        row = {"id": team_id, **team_data, "created_at": now, "updated_at": now}
        query = cls.insert(row)
        if refresh:
            query = query.on_conflict(
                conflict_target=[cls.id],
                update={
                    cls.name: team_data["name"],
                    cls.short_name: team_data["short_name"],
                    cls.code: team_data["code"],
                    cls.logo: team_data.get("logo"),
                    cls.updated_at: now,
                },
            )
        else:
            query = query.on_conflict_ignore()
        query.execute()

    @classmethod
    def for_competition(cls, competition: str) -> list["Team"]:
        return list(
            cls.select().where(cls.competition == competition).order_by(cls.name)
        )

    @classmethod
    def deduplicated(cls) -> list["Team"]:
        """
        All teams, one row per club name.

        Clubs that appear in both competitions keep their premier_league row.
        """
        by_name: dict[str, Team] = {}
        for team in cls.select().order_by(cls.name, cls.id):
            existing = by_name.get(team.name)
            if existing is None or (
                team.competition == PREMIER_LEAGUE
                and existing.competition != PREMIER_LEAGUE
            ):
                by_name[team.name] = team
        return sorted(by_name.values(), key=lambda t: t.name)
