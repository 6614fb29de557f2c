"""
Seasons Table

One row per provider season per competition. Exactly one season of a
competition carries is_current = true.
"""

from peewee import (
    BooleanField,
    CharField,
    DateField,
    DateTimeField,
    IntegerField,
)

from db.base import BaseModel
from utils.time_helpers import utcnow


class Season(BaseModel):
    """
    Competition season.

    Attributes:
        id: "{competition}-{provider season id}"
        name: Display name, e.g. '2025-26'
        competition: premier_league or champions_league
        start_date: First day of the season
        end_date: Last day of the season
        is_current: Whether this is the competition's current season
        current_matchday: Provider's current matchday (reference only)
    """

    id = CharField(max_length=64, primary_key=True)
    name = CharField(max_length=20)
    competition = CharField(max_length=32, index=True)
    start_date = DateField()
    end_date = DateField()
    is_current = BooleanField(default=False, index=True)
    current_matchday = IntegerField(null=True)
    created_at = DateTimeField(default=utcnow)
    updated_at = DateTimeField(default=utcnow)

    class Meta:
        table_name = "season"

    def __repr__(self) -> str:
        return (
            f"<Season(id='{self.id}', name='{self.name}', "
            f"current={self.is_current})>"
        )

    @staticmethod
    def make_id(competition: str, external_id: int) -> str:
        return f"{competition}-{external_id}"

    @staticmethod
    def display_name(start_year: int, end_year: int) -> str:
        """Format a season name, e.g. (2025, 2026) -> '2025-26'."""
        return f"{start_year}-{str(end_year)[-2:]}"

    @classmethod
    def get_current(cls, competition: str) -> "Season | None":
        return (
            cls.select()
            .where((cls.competition == competition) & (cls.is_current == True))  # noqa: E712
            .first()
        )
