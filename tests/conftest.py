"""Shared fixtures: in-memory store, fake provider and seed data builders."""

from datetime import date, datetime, timedelta
from typing import Optional, Sequence

import pytest

from db.base import Store
from db.models.football.gameweeks import Gameweek, Matchday
from db.models.football.matches import Match
from db.models.football.seasons import Season
from db.models.football.teams import Team
from db.models.league.leagues import League, LeagueMember
from pipelines.extractors.base import FixtureProvider
from schemas.provider import ProviderCompetition, ProviderFixture, ProviderTeam
from utils.constants import MATCH_SCHEDULED, PREMIER_LEAGUE
from utils.time_helpers import utcnow


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

@pytest.fixture
def store():
    s = Store.in_memory()
    s.create_tables()
    yield s
    s.close()


# ---------------------------------------------------------------------------
# Provider records
# ---------------------------------------------------------------------------

def provider_team(team_id: Optional[int], name: Optional[str] = None, tla: Optional[str] = None) -> dict:
    if team_id is None:
        return {"id": None, "name": None}
    name = name or f"Team {team_id}"
    return {"id": team_id, "name": name, "shortName": name, "tla": tla or f"T{team_id:02d}"[:3]}


def provider_fixture(
    fixture_id: int,
    kickoff: datetime,
    matchday: Optional[int] = 1,
    home: Optional[int] = 1,
    away: Optional[int] = 2,
    status: str = "TIMED",
    stage: Optional[str] = "REGULAR_SEASON",
    score: Optional[tuple[int, int]] = None,
    bookings: Optional[list[dict]] = None,
) -> ProviderFixture:
    payload = {
        "id": fixture_id,
        "utcDate": kickoff.strftime("%Y-%m-%dT%H:%M:%SZ"),
        "status": status,
        "matchday": matchday,
        "stage": stage,
        "homeTeam": provider_team(home),
        "awayTeam": provider_team(away),
        "score": {"fullTime": {"home": score[0], "away": score[1]} if score else {}},
        "venue": "Stadium",
    }
    if bookings is not None:
        payload["bookings"] = bookings
    return ProviderFixture.model_validate(payload)


def competition(season_id: int = 2025, start: date = date(2025, 8, 15), end: date = date(2026, 5, 24)) -> ProviderCompetition:
    return ProviderCompetition.model_validate(
        {
            "id": 2021,
            "name": "Premier League",
            "code": "PL",
            "currentSeason": {
                "id": season_id,
                "startDate": start.isoformat(),
                "endDate": end.isoformat(),
                "currentMatchday": 1,
            },
        }
    )


class FakeProvider(FixtureProvider):
    """In-memory provider. Map a competition in .fail to an exception to make its calls raise."""

    def __init__(self, teams=None, competitions=None, fixtures=None):
        super().__init__("fake")
        self.teams = teams or {}
        self.competitions = competitions or {}
        self.fixtures = fixtures or {}
        self.fail: dict[str, Exception] = {}
        self.calls: list[tuple] = []

    def _maybe_fail(self, competition_key: str) -> None:
        if competition_key in self.fail:
            raise self.fail[competition_key]

    def get_teams(self, competition_key: str) -> list[ProviderTeam]:
        self.calls.append(("teams", competition_key))
        self._maybe_fail(competition_key)
        return [ProviderTeam.model_validate(t) for t in self.teams.get(competition_key, [])]

    def get_competition(self, competition_key: str) -> ProviderCompetition:
        self.calls.append(("competition", competition_key))
        self._maybe_fail(competition_key)
        return self.competitions[competition_key]

    def get_fixtures(
        self,
        competition_key: str,
        statuses: Optional[Sequence[str]] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[ProviderFixture]:
        self.calls.append(("fixtures", competition_key, tuple(statuses or ()), date_from, date_to))
        self._maybe_fail(competition_key)
        result = self.fixtures.get(competition_key, [])
        if statuses:
            result = [f for f in result if f.status in statuses]
        return list(result)


@pytest.fixture
def fake_provider():
    return FakeProvider()


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------

def make_team(team_id: int, competition_key: str = PREMIER_LEAGUE) -> Team:
    return Team.create(
        id=Team.make_id(competition_key, team_id),
        external_id=team_id,
        name=f"Team {team_id}",
        short_name=f"Team {team_id}",
        code=f"T{team_id}",
        competition=competition_key,
    )


def make_season(competition_key: str = PREMIER_LEAGUE, season_id: int = 2025, current: bool = True) -> Season:
    return Season.create(
        id=Season.make_id(competition_key, season_id),
        name="2025-26",
        competition=competition_key,
        start_date=date(2025, 8, 15),
        end_date=date(2026, 5, 24),
        is_current=current,
    )


def make_gameweek(
    season: Season,
    number: int,
    first_kickoff: datetime,
    last_kickoff: Optional[datetime] = None,
) -> Gameweek:
    last_kickoff = last_kickoff or first_kickoff
    gameweek = Gameweek.create(
        id=f"{season.id}-gw{number}",
        season=season,
        number=number,
        name=f"Gameweek {number}",
        deadline=first_kickoff - timedelta(minutes=60),
        starts_at=first_kickoff,
        ends_at=last_kickoff + timedelta(minutes=120),
    )
    Matchday.create(
        id=f"{gameweek.id}-day1",
        gameweek=gameweek,
        date=first_kickoff.date(),
        day_number=1,
    )
    return gameweek


def make_match(
    gameweek: Gameweek,
    external_id: int,
    home: Team,
    away: Team,
    kickoff: Optional[datetime] = None,
    status: str = MATCH_SCHEDULED,
    score: Optional[tuple[int, int]] = None,
) -> Match:
    matchday = Matchday.get(Matchday.gameweek == gameweek.id)
    return Match.create(
        id=Match.make_id(PREMIER_LEAGUE, external_id),
        external_id=external_id,
        matchday=matchday,
        home_team=home,
        away_team=away,
        kickoff_time=kickoff or gameweek.starts_at,
        status=status,
        home_score=score[0] if score else None,
        away_score=score[1] if score else None,
    )


def make_league(league_id: str = "league-1", members: Sequence[str] = ("alice", "bob")) -> League:
    league = League.create(
        id=league_id,
        name=f"League {league_id}",
        competition=PREMIER_LEAGUE,
        invite_code=f"code-{league_id}",
        created_by=members[0] if members else "admin",
    )
    joined = datetime(2025, 8, 1)
    for i, user_id in enumerate(members):
        LeagueMember.create(
            league=league,
            user_id=user_id,
            role="admin" if i == 0 else "member",
            joined_at=joined + timedelta(minutes=i),
        )
    return league


def seed_open_gameweek() -> dict:
    """A PL gameweek three days out with two matches, and a two-member league."""
    season = make_season()
    teams = [make_team(i) for i in range(1, 5)]
    kickoff = (utcnow() + timedelta(days=3)).replace(microsecond=0)
    gameweek = make_gameweek(season, 1, kickoff, kickoff + timedelta(hours=2))
    matches = [
        make_match(gameweek, 101, teams[0], teams[1], kickoff),
        make_match(gameweek, 102, teams[2], teams[3], kickoff + timedelta(hours=2)),
    ]
    league = make_league()
    return {"season": season, "teams": teams, "gameweek": gameweek, "matches": matches, "league": league}


@pytest.fixture
def open_gameweek(store):
    return seed_open_gameweek()
