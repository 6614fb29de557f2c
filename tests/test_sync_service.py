"""Tests for provider sync: teams, season, fixtures and result updates."""

from datetime import date, datetime, timedelta
from unittest.mock import Mock, patch

import pytest

from conftest import FakeProvider, competition, provider_fixture, provider_team
from core.exceptions import ProviderError, ValidationError
from db.models.football.gameweeks import Gameweek, Matchday
from db.models.football.matches import Match
from db.models.football.seasons import Season
from db.models.football.teams import Team
from services.sync_service import SyncService, map_match_status
from utils.constants import CHAMPIONS_LEAGUE, PREMIER_LEAGUE

SAT = datetime(2025, 8, 16, 14, 0)


def pl_provider() -> FakeProvider:
    return FakeProvider(
        teams={
            PREMIER_LEAGUE: [
                provider_team(1, "Arsenal FC", "ARS"),
                provider_team(2, "Chelsea FC", "CHE"),
                provider_team(3, "Liverpool FC", "LIV"),
                provider_team(4, "Everton FC", "EVE"),
            ]
        },
        competitions={PREMIER_LEAGUE: competition()},
        fixtures={
            PREMIER_LEAGUE: [
                provider_fixture(1001, SAT, matchday=1, home=1, away=2),
                provider_fixture(1002, SAT + timedelta(days=1), matchday=1, home=3, away=4),
                provider_fixture(1003, SAT + timedelta(days=7), matchday=2, home=2, away=3),
            ]
        },
    )


def service(store, provider) -> SyncService:
    return SyncService(store, provider, pause_seconds=0, sleep=Mock())


class TestSyncCompetition:

    def test_writes_teams_season_and_fixtures(self, store):
        result = service(store, pl_provider()).sync_competition(PREMIER_LEAGUE)

        assert result.ok
        assert result.teams == 4
        assert result.matches == 3
        assert result.season_id == "premier_league-2025"
        assert Gameweek.select().count() == 2
        assert Matchday.select().count() == 3

        match = Match.get_by_id("premier_league-match-1001")
        assert match.home_team_id == "premier_league-1"
        assert match.status == "scheduled"
        assert match.kickoff_time == SAT

    def test_sync_is_idempotent(self, store):
        sync = service(store, pl_provider())
        first = sync.sync_competition(PREMIER_LEAGUE)
        counts = (Team.select().count(), Gameweek.select().count(), Matchday.select().count(), Match.select().count())

        second = sync.sync_competition(PREMIER_LEAGUE)

        assert (first.teams, first.matches) == (second.teams, second.matches)
        assert counts == (
            Team.select().count(),
            Gameweek.select().count(),
            Matchday.select().count(),
            Match.select().count(),
        )

    def test_resync_updates_rows_in_place(self, store):
        provider = pl_provider()
        sync = service(store, provider)
        sync.sync_competition(PREMIER_LEAGUE)

        moved = SAT + timedelta(hours=3)
        provider.fixtures[PREMIER_LEAGUE][0] = provider_fixture(1001, moved, matchday=1, home=1, away=2)
        sync.sync_competition(PREMIER_LEAGUE)

        assert Match.select().count() == 3
        assert Match.get_by_id("premier_league-match-1001").kickoff_time == moved
        gameweek = Gameweek.get_by_id("premier_league-2025-gw1")
        assert gameweek.deadline == moved - timedelta(minutes=60)

    def test_team_refresh_on_resync(self, store):
        provider = pl_provider()
        sync = service(store, provider)
        sync.sync_competition(PREMIER_LEAGUE)

        provider.teams[PREMIER_LEAGUE][0] = provider_team(1, "Arsenal", "AFC")
        sync.sync_teams(PREMIER_LEAGUE)

        team = Team.get_by_id("premier_league-1")
        assert team.name == "Arsenal"
        assert team.code == "AFC"

    def test_exactly_one_current_season(self, store):
        provider = pl_provider()
        sync = service(store, provider)
        sync.sync_season(PREMIER_LEAGUE)

        provider.competitions[PREMIER_LEAGUE] = competition(season_id=2026, start=date(2026, 8, 14), end=date(2027, 5, 23))
        sync.sync_season(PREMIER_LEAGUE)

        current = list(Season.select().where(Season.is_current == True))  # noqa: E712
        assert [s.id for s in current] == ["premier_league-2026"]
        assert current[0].name == "2026-27"
        assert Season.get_by_id("premier_league-2025").is_current is False

    def test_fixture_only_teams_are_created(self, store):
        provider = pl_provider()
        provider.fixtures[PREMIER_LEAGUE].append(provider_fixture(1004, SAT, matchday=1, home=9, away=1))
        service(store, provider).sync_competition(PREMIER_LEAGUE)

        assert Team.get_by_id("premier_league-9").name == "Team 9"

    def test_tbd_fixtures_are_not_written(self, store):
        provider = FakeProvider(
            teams={CHAMPIONS_LEAGUE: [provider_team(1), provider_team(2)]},
            competitions={CHAMPIONS_LEAGUE: competition()},
            fixtures={
                CHAMPIONS_LEAGUE: [
                    provider_fixture(1, SAT, matchday=1, stage="LAST_16", home=1, away=2),
                    provider_fixture(2, SAT, matchday=1, stage="LAST_16", home=None, away=None),
                    provider_fixture(3, SAT, matchday=1, stage="QUARTER_FINALS", home=None, away=None),
                ]
            },
        )
        result = service(store, provider).sync_competition(CHAMPIONS_LEAGUE)

        assert result.matches == 1
        assert [g.id for g in Gameweek.select()] == ["champions_league-2025-LAST_16-gw1"]

    def test_unsupported_competition(self, store):
        with pytest.raises(ValidationError):
            service(store, pl_provider()).sync_competition("la_liga")

    def test_later_step_failure_keeps_earlier_upserts(self, store):
        provider = pl_provider()
        provider.get_fixtures = Mock(side_effect=ProviderError("down"))

        with pytest.raises(ProviderError):
            service(store, provider).sync_competition(PREMIER_LEAGUE)

        assert Team.select().count() == 4
        assert Season.get_current(PREMIER_LEAGUE) is not None


class TestSyncAll:

    def test_failure_in_one_competition_does_not_stop_others(self, store):
        provider = pl_provider()
        provider.fail[CHAMPIONS_LEAGUE] = ProviderError("rate limited")
        sleep = Mock()

        results = SyncService(store, provider, pause_seconds=1.5, sleep=sleep).sync_all()

        assert results[PREMIER_LEAGUE].ok
        assert results[PREMIER_LEAGUE].matches == 3
        assert not results[CHAMPIONS_LEAGUE].ok
        assert "rate limited" in results[CHAMPIONS_LEAGUE].error
        sleep.assert_called_once_with(1.5)


class TestUpdateMatchResults:

    def _synced(self, store):
        provider = pl_provider()
        sync = service(store, provider)
        sync.sync_competition(PREMIER_LEAGUE)
        return provider, sync

    def test_finished_match_gets_score(self, store):
        provider, sync = self._synced(store)
        provider.fixtures[PREMIER_LEAGUE][0] = provider_fixture(
            1001, SAT, matchday=1, home=1, away=2, status="FINISHED", score=(2, 1),
            bookings=[{"minute": 80, "team": {"id": 2}, "card": "RED"}],
        )

        with patch("services.sync_service.utcnow", return_value=SAT + timedelta(days=1)):
            changed = sync.update_match_results(PREMIER_LEAGUE)

        match = Match.get_by_id("premier_league-match-1001")
        assert changed == 1
        assert match.status == "finished"
        assert (match.home_score, match.away_score) == (2, 1)
        assert (match.home_red_cards, match.away_red_cards) == (0, 1)

    def test_reapplying_same_payload_is_noop(self, store):
        provider, sync = self._synced(store)
        provider.fixtures[PREMIER_LEAGUE][0] = provider_fixture(
            1001, SAT, matchday=1, home=1, away=2, status="FINISHED", score=(0, 0)
        )

        with patch("services.sync_service.utcnow", return_value=SAT + timedelta(days=1)):
            assert sync.update_match_results(PREMIER_LEAGUE) == 1
            updated_at = Match.get_by_id("premier_league-match-1001").updated_at
            assert sync.update_match_results(PREMIER_LEAGUE) == 0

        assert Match.get_by_id("premier_league-match-1001").updated_at == updated_at

    def test_live_match_status_without_final_score(self, store):
        provider, sync = self._synced(store)
        provider.fixtures[PREMIER_LEAGUE][0] = provider_fixture(
            1001, SAT, matchday=1, home=1, away=2, status="IN_PLAY", score=(1, 0)
        )

        sync.update_match_results(PREMIER_LEAGUE)

        match = Match.get_by_id("premier_league-match-1001")
        assert match.status == "live"
        assert match.home_score is None

    def test_requests_result_statuses_in_lookback_window(self, store):
        provider, sync = self._synced(store)
        provider.calls.clear()

        with patch("services.sync_service.utcnow", return_value=datetime(2025, 9, 10, 12)):
            sync.update_match_results(PREMIER_LEAGUE)

        _, _, statuses, date_from, date_to = provider.calls[0]
        assert statuses == ("IN_PLAY", "PAUSED", "FINISHED")
        assert date_from == date(2025, 9, 3)
        assert date_to == date(2025, 9, 10)

    def test_unknown_matches_are_ignored(self, store):
        provider, sync = self._synced(store)
        provider.fixtures[PREMIER_LEAGUE].append(
            provider_fixture(9999, SAT, matchday=1, status="FINISHED", score=(1, 1))
        )
        assert sync.update_match_results(PREMIER_LEAGUE) == 0


class TestMapMatchStatus:

    def test_known_and_unknown_statuses(self):
        assert map_match_status("TIMED") == "scheduled"
        assert map_match_status("PAUSED") == "live"
        assert map_match_status("FINISHED") == "finished"
        assert map_match_status("SUSPENDED") == "cancelled"
        assert map_match_status("AWARDED") == "scheduled"
