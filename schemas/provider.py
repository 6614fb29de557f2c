"""
Provider Records

Typed records for the football-data.org v4 payloads the sync layer
consumes. The extractor validates raw JSON into these models, so nothing
downstream handles loosely shaped dicts.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from utils.time_helpers import to_utc_naive


class ProviderRecord(BaseModel):
    """Base for provider records: camelCase aliases, unknown fields ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# ------------------------------- Teams ------------------------------- #

class ProviderTeam(ProviderRecord):
    """A team as reported by the provider. Undrawn knockout slots have no id or name."""

    id: Optional[int] = None
    name: Optional[str] = None
    short_name: Optional[str] = Field(default=None, alias="shortName")
    tla: Optional[str] = None
    crest: Optional[str] = None

    @property
    def is_known(self) -> bool:
        return self.id is not None and bool(self.name)


class ProviderTeams(ProviderRecord):
    teams: list[ProviderTeam] = []


# ------------------------------- Competition ------------------------------- #

class ProviderSeason(ProviderRecord):
    id: int
    start_date: date = Field(alias="startDate")
    end_date: date = Field(alias="endDate")
    current_matchday: Optional[int] = Field(default=None, alias="currentMatchday")


class ProviderCompetition(ProviderRecord):
    id: int
    name: str
    code: Optional[str] = None
    current_season: ProviderSeason = Field(alias="currentSeason")


# ------------------------------- Fixtures ------------------------------- #

class ProviderScoreLine(ProviderRecord):
    home: Optional[int] = None
    away: Optional[int] = None


class ProviderScore(ProviderRecord):
    full_time: ProviderScoreLine = Field(default_factory=ProviderScoreLine, alias="fullTime")


class ProviderBookingTeam(ProviderRecord):
    id: Optional[int] = None


class ProviderBooking(ProviderRecord):
    minute: Optional[int] = None
    team: ProviderBookingTeam = Field(default_factory=ProviderBookingTeam)
    card: str


class ProviderFixture(ProviderRecord):
    """A single fixture with its current status and, once known, its score."""

    id: int
    utc_date: datetime = Field(alias="utcDate")
    status: str
    matchday: Optional[int] = None
    stage: Optional[str] = None
    home_team: ProviderTeam = Field(default_factory=ProviderTeam, alias="homeTeam")
    away_team: ProviderTeam = Field(default_factory=ProviderTeam, alias="awayTeam")
    score: ProviderScore = Field(default_factory=ProviderScore)
    venue: Optional[str] = None
    bookings: Optional[list[ProviderBooking]] = None

    @field_validator("utc_date")
    @classmethod
    def normalize_utc_date(cls, v: datetime) -> datetime:
        """Store kickoff times as naive UTC."""
        return to_utc_naive(v)

    @property
    def home_score(self) -> Optional[int]:
        return self.score.full_time.home

    @property
    def away_score(self) -> Optional[int]:
        return self.score.full_time.away

    @property
    def has_teams(self) -> bool:
        """Both sides are drawn (knockout fixtures start out as TBD)."""
        return self.home_team.is_known and self.away_team.is_known

    def red_cards(self) -> tuple[int, int]:
        """(home, away) red cards counted from bookings; (0, 0) when absent."""
        home = away = 0
        for booking in self.bookings or []:
            if booking.card != "RED":
                continue
            if booking.team.id == self.home_team.id:
                home += 1
            elif booking.team.id == self.away_team.id:
                away += 1
        return home, away


class ProviderFixtures(ProviderRecord):
    matches: list[ProviderFixture] = []
