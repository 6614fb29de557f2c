"""
Fixture Service

Read APIs over the synced competition data: current season and gameweek,
gameweeks with their matches, season completion and teams. Gameweek status
is derived from the clock on every read.
"""

from datetime import datetime
from typing import Optional

from peewee import JOIN, fn

from core.exceptions import NotFoundError, ValidationError
from db.base import Store
from db.models.football.gameweeks import Gameweek, Matchday
from db.models.football.matches import Match
from db.models.football.seasons import Season
from db.models.football.teams import Team
from schemas.fixtures import (
    CompetitionSyncStatus,
    GameweekDetail,
    GameweekSummary,
    GameweekView,
    MatchdayView,
    MatchView,
    SeasonStatus,
    SeasonView,
    TeamView,
)
from services.deadline_gate import is_prediction_window_open
from utils.constants import GAMEWEEK_ACTIVE, GAMEWEEK_COMPLETED, SUPPORTED_COMPETITIONS
from utils.time_helpers import isoformat_utc, utcnow


# ------------------------------- Mapping ------------------------------- #

def team_view(team: Team) -> TeamView:
    return TeamView(
        id=team.id,
        name=team.name,
        short_name=team.short_name,
        code=team.code,
        logo=team.logo,
        competition=team.competition,
    )


def match_view(match: Match) -> MatchView:
    return MatchView(
        id=match.id,
        kickoff_time=isoformat_utc(match.kickoff_time),
        status=match.status,
        home_team=team_view(match.home_team),
        away_team=team_view(match.away_team),
        home_score=match.home_score,
        away_score=match.away_score,
        venue=match.venue,
        home_red_cards=match.home_red_cards,
        away_red_cards=match.away_red_cards,
    )


def gameweek_fields(gameweek: Gameweek, now: datetime) -> dict:
    return {
        "id": gameweek.id,
        "season_id": gameweek.season_id,
        "number": gameweek.number,
        "name": gameweek.name,
        "stage": gameweek.stage,
        "deadline": isoformat_utc(gameweek.deadline),
        "starts_at": isoformat_utc(gameweek.starts_at),
        "ends_at": isoformat_utc(gameweek.ends_at),
        "status": gameweek.status_at(now),
        "is_open": is_prediction_window_open(gameweek.deadline, now),
    }


def season_view(season: Season) -> SeasonView:
    return SeasonView(
        id=season.id,
        name=season.name,
        competition=season.competition,
        start_date=isoformat_utc(season.start_date),
        end_date=isoformat_utc(season.end_date),
        is_current=season.is_current,
        current_matchday=season.current_matchday,
    )


def matches_with_teams():
    """Match query with both teams joined, ordered by kickoff."""
    HomeTeam = Team.alias()
    AwayTeam = Team.alias()
    return (
        Match.select(Match, HomeTeam, AwayTeam)
        .join(HomeTeam, on=(Match.home_team == HomeTeam.id), attr="home_team")
        .switch(Match)
        .join(AwayTeam, on=(Match.away_team == AwayTeam.id), attr="away_team")
        .switch(Match)
        .order_by(Match.kickoff_time, Match.id)
    )


class FixtureService:
    """Read-only views of seasons, gameweeks, matches and teams."""

    def __init__(self, store: Store):
        self.store = store

    @staticmethod
    def _check_competition(competition: str) -> None:
        if competition not in SUPPORTED_COMPETITIONS:
            raise ValidationError(
                "Invalid competition type",
                details={"competition": competition},
            )

    def _current_season(self, competition: str) -> Season:
        self._check_competition(competition)
        season = Season.get_current(competition)
        if season is None:
            raise NotFoundError("No active season found", details={"competition": competition})
        return season

    # ------------------------------- Seasons ------------------------------- #

    def get_current_season(self, competition: str) -> SeasonView:
        return season_view(self._current_season(competition))

    def get_season_status(self, competition: str) -> SeasonStatus:
        """Current season with gameweek completion counts."""
        season = self._current_season(competition)
        now = utcnow()
        gameweeks = Gameweek.for_season(season.id)
        completed = sum(1 for gw in gameweeks if gw.status_at(now) == GAMEWEEK_COMPLETED)
        current = self._pick_current_gameweek(gameweeks, now)
        return SeasonStatus(
            season=season_view(season),
            total_gameweeks=len(gameweeks),
            completed_gameweeks=completed,
            is_complete=bool(gameweeks) and completed == len(gameweeks),
            current_gameweek=GameweekView(**gameweek_fields(current, now)) if current else None,
        )

    # ------------------------------- Gameweeks ------------------------------- #

    @staticmethod
    def _pick_current_gameweek(gameweeks: list[Gameweek], now: datetime) -> Optional[Gameweek]:
        """The open gameweek with the lowest number, else the highest-numbered active one."""
        open_gameweeks = [gw for gw in gameweeks if is_prediction_window_open(gw.deadline, now)]
        if open_gameweeks:
            return min(open_gameweeks, key=lambda gw: (gw.number, gw.deadline))
        active = [gw for gw in gameweeks if gw.status_at(now) == GAMEWEEK_ACTIVE]
        if active:
            return max(active, key=lambda gw: (gw.number, gw.deadline))
        return None

    def get_current_gameweek(self, competition: str) -> GameweekView:
        season = self._current_season(competition)
        now = utcnow()
        gameweek = self._pick_current_gameweek(Gameweek.for_season(season.id), now)
        if gameweek is None:
            raise NotFoundError("No upcoming gameweek found", details={"competition": competition})
        return GameweekView(**gameweek_fields(gameweek, now))

    def get_gameweek(self, gameweek_id: str) -> GameweekDetail:
        """A gameweek with its matchdays and their matches in kickoff order."""
        gameweek = Gameweek.get_or_none(Gameweek.id == gameweek_id)
        if gameweek is None:
            raise NotFoundError("Gameweek not found", details={"gameweek_id": gameweek_id})

        matchdays = list(
            Matchday.select()
            .where(Matchday.gameweek == gameweek_id)
            .order_by(Matchday.day_number)
        )
        by_matchday: dict[str, list[MatchView]] = {md.id: [] for md in matchdays}
        matches = matches_with_teams().where(Match.matchday.in_(list(by_matchday)))
        for match in matches:
            by_matchday[match.matchday_id].append(match_view(match))

        return GameweekDetail(
            **gameweek_fields(gameweek, utcnow()),
            matchdays=[
                MatchdayView(
                    id=md.id,
                    date=isoformat_utc(md.date),
                    day_number=md.day_number,
                    matches=by_matchday[md.id],
                )
                for md in matchdays
            ],
        )

    def get_season_gameweeks(self, season_id: str) -> list[GameweekSummary]:
        """Every gameweek of a season with its match count, in number order."""
        match_count = fn.COUNT(Match.id)
        rows = (
            Gameweek.select(Gameweek, match_count.alias("match_count"))
            .join(Matchday, JOIN.LEFT_OUTER)
            .join(Match, JOIN.LEFT_OUTER)
            .where(Gameweek.season == season_id)
            .group_by(Gameweek)
            .order_by(Gameweek.number, Gameweek.id)
        )
        now = utcnow()
        return [
            GameweekSummary(**gameweek_fields(gw, now), match_count=gw.match_count)
            for gw in rows
        ]

    # ------------------------------- Teams ------------------------------- #

    def get_teams(self, competition: str) -> list[TeamView]:
        self._check_competition(competition)
        return [team_view(t) for t in Team.for_competition(competition)]

    def get_all_teams(self) -> list[TeamView]:
        """All clubs once each, preferring the Premier League row."""
        return [team_view(t) for t in Team.deduplicated()]

    # ------------------------------- Operations ------------------------------- #

    def get_sync_status(self) -> dict[str, CompetitionSyncStatus]:
        """Row counts per competition, for operators checking a sync."""
        status = {}
        for competition in SUPPORTED_COMPETITIONS:
            current = Gameweek.select().join(Season).where(
                (Season.competition == competition) & (Season.is_current == True)  # noqa: E712
            )
            status[competition] = CompetitionSyncStatus(
                teams=Team.select().where(Team.competition == competition).count(),
                seasons=Season.select().where(Season.competition == competition).count(),
                gameweeks=current.count(),
                matches=(
                    Match.select()
                    .join(Matchday)
                    .join(Gameweek)
                    .join(Season)
                    .where((Season.competition == competition) & (Season.is_current == True))  # noqa: E712
                    .count()
                ),
            )
        return status
