"""
Sync Service

Reconciles provider data (teams, seasons, fixtures, results) into the
store. Every row is keyed by a provider-derived id, so re-running a sync on
an unchanged payload updates rows in place and never duplicates them.

Each step commits its own transaction: a failure in a later step leaves the
earlier steps' upserts in place.
"""

import time
from dataclasses import asdict, dataclass, field
from datetime import timedelta
from typing import Callable, Optional

from core.exceptions import ValidationError
from core.logging import get_logger
from db.base import Store
from db.models.football.gameweeks import Gameweek, Matchday
from db.models.football.matches import Match
from db.models.football.seasons import Season
from db.models.football.teams import Team
from pipelines.extractors.base import FixtureProvider
from pipelines.transformers.fixtures import (
    FixtureGroup,
    GameweekWindowPolicy,
    group_fixtures,
    team_code,
)
from schemas.provider import ProviderFixture, ProviderTeam
from utils.constants import (
    MATCH_FINISHED,
    MATCH_SCHEDULED,
    PROVIDER_STATUS_MAP,
    RESULT_PROVIDER_STATUSES,
    SUPPORTED_COMPETITIONS,
)
from utils.time_helpers import utcnow


@dataclass
class SyncResult:
    """Outcome of syncing one competition."""

    teams: int = 0
    season_id: Optional[str] = None
    matches: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ResultsUpdate:
    """Matches changed by one results update."""

    changed: int = 0
    finished: list[str] = field(default_factory=list)


def map_match_status(provider_status: str) -> str:
    """Provider status to stored status; unknown statuses count as scheduled."""
    return PROVIDER_STATUS_MAP.get(provider_status, MATCH_SCHEDULED)


class SyncService:
    """
    Sync orchestrator for all supported competitions.

    Args:
        store: Storage context
        provider: Fixture provider (football-data.org in production)
        policy: Gameweek deadline / window end derivation
        pause_seconds: Pause between competitions in sync_all()
        lookback_days: How far back update_match_results() looks
        sleep: Sleep function, replaced in tests
    """

    def __init__(
        self,
        store: Store,
        provider: FixtureProvider,
        policy: Optional[GameweekWindowPolicy] = None,
        pause_seconds: float = 1.0,
        lookback_days: int = 7,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.provider = provider
        self.policy = policy or GameweekWindowPolicy()
        self.pause_seconds = pause_seconds
        self.lookback_days = lookback_days
        self.sleep = sleep
        self.log = get_logger("sync")

    @classmethod
    def from_settings(cls, store: Store, provider: FixtureProvider, settings) -> "SyncService":
        return cls(
            store,
            provider,
            policy=GameweekWindowPolicy.from_settings(settings),
            pause_seconds=settings.competition_sync_pause_seconds,
            lookback_days=settings.results_lookback_days,
        )

    @staticmethod
    def _check_competition(competition: str) -> None:
        if competition not in SUPPORTED_COMPETITIONS:
            raise ValidationError(
                f"Unsupported competition: {competition}",
                details={"supported": list(SUPPORTED_COMPETITIONS)},
            )

    # ------------------------------------------------------------------ #
    # Teams
    # ------------------------------------------------------------------ #

    @staticmethod
    def _team_data(team: ProviderTeam, competition: str) -> dict:
        return {
            "external_id": team.id,
            "name": team.name,
            "short_name": team.short_name or team.name,
            "code": team_code(team),
            "logo": team.crest,
            "competition": competition,
        }

    def sync_teams(self, competition: str) -> int:
        """
        Upsert every team of a competition.

        Returns:
            Number of teams written
        """
        self._check_competition(competition)
        teams = [t for t in self.provider.get_teams(competition) if t.is_known]

        with self.store.transaction():
            for team in teams:
                Team.upsert_team(
                    Team.make_id(competition, team.id),
                    self._team_data(team, competition),
                )

        self.log.info("teams_synced", competition=competition, count=len(teams))
        return len(teams)

    # ------------------------------------------------------------------ #
    # Season
    # ------------------------------------------------------------------ #

    def sync_season(self, competition: str) -> str:
        """
        Make the provider's current season the competition's only current season.

        Returns:
            Season id
        """
        self._check_competition(competition)
        info = self.provider.get_competition(competition)
        season = info.current_season
        season_id = Season.make_id(competition, season.id)
        name = Season.display_name(season.start_date.year, season.end_date.year)
        now = utcnow()

        with self.store.transaction():
            (
                Season.update(is_current=False, updated_at=now)
                .where((Season.competition == competition) & (Season.id != season_id))
                .execute()
            )
            (
                Season.insert(
                    id=season_id,
                    name=name,
                    competition=competition,
                    start_date=season.start_date,
                    end_date=season.end_date,
                    is_current=True,
                    current_matchday=season.current_matchday,
                    created_at=now,
                    updated_at=now,
                )
                .on_conflict(
                    conflict_target=[Season.id],
                    preserve=[
                        Season.name,
                        Season.start_date,
                        Season.end_date,
                        Season.is_current,
                        Season.current_matchday,
                        Season.updated_at,
                    ],
                )
                .execute()
            )

        self.log.info("season_synced", competition=competition, season_id=season_id, name=name)
        return season_id

    # ------------------------------------------------------------------ #
    # Fixtures
    # ------------------------------------------------------------------ #

    def _upsert_gameweek(self, season_id: str, group: FixtureGroup, now) -> None:
        (
            Gameweek.insert(
                id=group.id,
                season=season_id,
                number=group.number,
                name=group.name,
                stage=group.stage,
                deadline=group.deadline,
                starts_at=group.starts_at,
                ends_at=group.ends_at,
                created_at=now,
                updated_at=now,
            )
            .on_conflict(
                conflict_target=[Gameweek.id],
                preserve=[
                    Gameweek.number,
                    Gameweek.name,
                    Gameweek.stage,
                    Gameweek.deadline,
                    Gameweek.starts_at,
                    Gameweek.ends_at,
                    Gameweek.updated_at,
                ],
            )
            .execute()
        )

    def _upsert_matchday(self, gameweek_id: str, matchday_id: str, day, day_number: int, now) -> None:
        (
            Matchday.insert(
                id=matchday_id,
                gameweek=gameweek_id,
                date=day,
                day_number=day_number,
                created_at=now,
                updated_at=now,
            )
            .on_conflict(
                conflict_target=[Matchday.id],
                preserve=[Matchday.date, Matchday.day_number, Matchday.updated_at],
            )
            .execute()
        )

    def _ensure_fixture_teams(self, competition: str, fixture: ProviderFixture) -> None:
        """Insert teams seen only in fixtures; existing rows are never overwritten."""
        for team in (fixture.home_team, fixture.away_team):
            Team.upsert_team(
                Team.make_id(competition, team.id),
                self._team_data(team, competition),
                refresh=False,
            )

    def _upsert_match(self, competition: str, matchday_id: str, fixture: ProviderFixture, now) -> None:
        home_red, away_red = fixture.red_cards()
        (
            Match.insert(
                id=Match.make_id(competition, fixture.id),
                external_id=fixture.id,
                matchday=matchday_id,
                home_team=Team.make_id(competition, fixture.home_team.id),
                away_team=Team.make_id(competition, fixture.away_team.id),
                kickoff_time=fixture.utc_date,
                home_score=fixture.home_score,
                away_score=fixture.away_score,
                status=map_match_status(fixture.status),
                venue=fixture.venue,
                home_red_cards=home_red,
                away_red_cards=away_red,
                created_at=now,
                updated_at=now,
            )
            .on_conflict(
                conflict_target=[Match.id],
                preserve=[
                    Match.matchday,
                    Match.home_team,
                    Match.away_team,
                    Match.kickoff_time,
                    Match.home_score,
                    Match.away_score,
                    Match.status,
                    Match.venue,
                    Match.home_red_cards,
                    Match.away_red_cards,
                    Match.updated_at,
                ],
            )
            .execute()
        )

    def _prune_empty_matchdays(self, group: FixtureGroup) -> None:
        """Drop matchdays left over from an earlier layout of the gameweek."""
        current_ids = [md.id for md in group.matchdays]
        stale = (
            Matchday.select(Matchday.id)
            .where((Matchday.gameweek == group.id) & (Matchday.id.not_in(current_ids)))
        )
        for matchday in stale:
            if not Match.select().where(Match.matchday == matchday.id).exists():
                Matchday.delete_by_id(matchday.id)

    def sync_matches(self, competition: str, season_id: str) -> int:
        """
        Write gameweeks, matchdays and matches for a season.

        Args:
            competition: premier_league or champions_league
            season_id: Season the fixtures belong to

        Returns:
            Number of matches written
        """
        self._check_competition(competition)
        fixtures = self.provider.get_fixtures(competition)
        groups, unplaced = group_fixtures(competition, season_id, fixtures, self.policy)

        for fixture in unplaced:
            self.log.debug("fixture_skipped_no_matchday", competition=competition, fixture_id=fixture.id)

        written = 0
        now = utcnow()
        with self.store.transaction():
            for group in groups:
                self._upsert_gameweek(season_id, group, now)
                for matchday in group.matchdays:
                    self._upsert_matchday(group.id, matchday.id, matchday.date, matchday.day_number, now)
                    for fixture in matchday.fixtures:
                        if not fixture.has_teams:
                            self.log.debug("fixture_skipped_tbd", competition=competition, fixture_id=fixture.id)
                            continue
                        self._ensure_fixture_teams(competition, fixture)
                        self._upsert_match(competition, matchday.id, fixture, now)
                        written += 1
                self._prune_empty_matchdays(group)

        self.log.info(
            "matches_synced",
            competition=competition,
            season_id=season_id,
            gameweeks=len(groups),
            matches=written,
            skipped=len(unplaced),
        )
        return written

    # ------------------------------------------------------------------ #
    # Orchestration
    # ------------------------------------------------------------------ #

    def sync_competition(self, competition: str) -> SyncResult:
        """
        Full sync of one competition: teams, then season, then fixtures.

        Raises:
            ProviderError: If the provider fails; earlier steps stay committed
        """
        self.log.info("competition_sync_started", competition=competition)

        result = SyncResult()
        result.teams = self.sync_teams(competition)
        result.season_id = self.sync_season(competition)
        result.matches = self.sync_matches(competition, result.season_id)

        self.log.info(
            "competition_sync_completed",
            competition=competition,
            teams=result.teams,
            matches=result.matches,
        )
        return result

    def sync_all(self) -> dict[str, SyncResult]:
        """
        Sync every supported competition in turn.

        A failing competition is logged and recorded in its result's error
        field; the remaining competitions still run.
        """
        results: dict[str, SyncResult] = {}
        for i, competition in enumerate(SUPPORTED_COMPETITIONS):
            if i > 0 and self.pause_seconds > 0:
                self.sleep(self.pause_seconds)
            try:
                results[competition] = self.sync_competition(competition)
            except Exception as e:
                self.log.error(
                    "competition_sync_failed",
                    competition=competition,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                results[competition] = SyncResult(error=f"{type(e).__name__}: {e}")

        self.log.info(
            "sync_all_completed",
            succeeded=sum(1 for r in results.values() if r.ok),
            total=len(results),
        )
        return results

    # ------------------------------------------------------------------ #
    # Results
    # ------------------------------------------------------------------ #

    def update_match_results(self, competition: str) -> int:
        """
        Refresh status and scores of in-play and recently finished matches.

        Only rows whose status or score actually differ are written, so
        re-applying the same payload changes nothing.

        Returns:
            Number of matches changed
        """
        return self.apply_match_results(competition).changed

    def apply_match_results(self, competition: str) -> ResultsUpdate:
        """
        update_match_results(), also reporting the finished matches it
        wrote. Those include finished matches whose score was corrected,
        which must be rescored even though their predictions have points.
        """
        self._check_competition(competition)
        today = utcnow().date()
        fixtures = self.provider.get_fixtures(
            competition,
            statuses=RESULT_PROVIDER_STATUSES,
            date_from=today - timedelta(days=self.lookback_days),
            date_to=today,
        )

        update = ResultsUpdate()
        with self.store.transaction():
            for fixture in fixtures:
                match = Match.get_or_none(Match.id == Match.make_id(competition, fixture.id))
                if match is None:
                    continue

                updates = {}
                status = map_match_status(fixture.status)
                if match.status != status:
                    updates["status"] = status
                if status == MATCH_FINISHED:
                    if match.home_score != fixture.home_score:
                        updates["home_score"] = fixture.home_score
                    if match.away_score != fixture.away_score:
                        updates["away_score"] = fixture.away_score
                    if fixture.bookings is not None:
                        home_red, away_red = fixture.red_cards()
                        if (match.home_red_cards, match.away_red_cards) != (home_red, away_red):
                            updates["home_red_cards"] = home_red
                            updates["away_red_cards"] = away_red

                if not updates:
                    continue

                updates["updated_at"] = utcnow()
                Match.update(**updates).where(Match.id == match.id).execute()
                update.changed += 1
                if status == MATCH_FINISHED:
                    update.finished.append(match.id)

        self.log.info(
            "match_results_updated",
            competition=competition,
            fetched=len(fixtures),
            changed=update.changed,
            finished=update.finished,
        )
        return update
