"""Tests for match scoring, cache aggregation, ranking and leaderboard reads."""

from datetime import datetime, timedelta

import pytest

from conftest import make_gameweek, make_match
from core.exceptions import AuthorizationError, ConsistencyError, NotFoundError
from db.models.football.matches import Match
from db.models.league.leagues import LeagueMember
from db.models.league.predictions import Prediction
from db.models.league.standings import UserGameweekScore, UserLeagueStanding
from services.leaderboard import LeaderboardService
from services.predictions import PredictionService
from services.scoring import ScoringService
from utils.constants import MATCH_FINISHED, MATCH_LIVE


def predict(store, user_id, gameweek, *rows, league_id="league-1"):
    PredictionService(store).submit_predictions(
        user_id,
        league_id,
        gameweek.id,
        [{"match_id": m.id, "home_score": h, "away_score": a} for m, h, a in rows],
    )


def finish(match, home, away, status=MATCH_FINISHED):
    Match.update(status=status, home_score=home, away_score=away).where(Match.id == match.id).execute()


def standing(user_id, league_id="league-1"):
    return UserLeagueStanding.get(
        (UserLeagueStanding.user_id == user_id) & (UserLeagueStanding.league == league_id)
    )


class TestScorePredictionsForMatch:

    def test_scores_every_prediction(self, store, open_gameweek):
        gw = open_gameweek["gameweek"]
        m1, _ = open_gameweek["matches"]
        predict(store, "alice", gw, (m1, 2, 1))
        predict(store, "bob", gw, (m1, 1, 0))
        finish(m1, 2, 1)

        result = ScoringService(store).score_predictions_for_match(m1.id)

        assert result.predictions_scored == 2
        assert result.exact_scores == 1
        assert result.correct_results == 1
        assert result.leagues_refreshed == ["league-1"]
        points = {p.user_id: p.points for p in Prediction.select()}
        assert points == {"alice": 3, "bob": 1}

    def test_not_finished_is_noop(self, store, open_gameweek):
        gw = open_gameweek["gameweek"]
        m1, _ = open_gameweek["matches"]
        predict(store, "alice", gw, (m1, 2, 1))
        finish(m1, 2, 1, status=MATCH_LIVE)

        assert ScoringService(store).score_predictions_for_match(m1.id) is None
        assert Prediction.get().points is None
        assert UserLeagueStanding.select().count() == 0

    def test_unknown_match_is_noop(self, store):
        assert ScoringService(store).score_predictions_for_match("nope") is None

    def test_rescoring_is_idempotent(self, store, open_gameweek):
        gw = open_gameweek["gameweek"]
        m1, _ = open_gameweek["matches"]
        predict(store, "alice", gw, (m1, 2, 1))
        finish(m1, 2, 1)
        scoring = ScoringService(store)

        scoring.score_predictions_for_match(m1.id)
        scoring.score_predictions_for_match(m1.id)

        assert standing("alice").total_points == 3
        assert UserGameweekScore.get().total_points == 3

    def test_corrected_result_rescores(self, store, open_gameweek):
        gw = open_gameweek["gameweek"]
        m1, _ = open_gameweek["matches"]
        predict(store, "alice", gw, (m1, 2, 1))
        scoring = ScoringService(store)

        finish(m1, 2, 1)
        scoring.score_predictions_for_match(m1.id)
        finish(m1, 0, 1)
        scoring.score_predictions_for_match(m1.id)

        assert Prediction.get().points == 0
        assert standing("alice").total_points == 0

    def test_match_is_read_inside_the_scoring_transaction(self, store, open_gameweek, monkeypatch):
        gw = open_gameweek["gameweek"]
        m1, _ = open_gameweek["matches"]
        predict(store, "alice", gw, (m1, 2, 1))
        finish(m1, 2, 1)
        scoring = ScoringService(store)
        read = scoring._read_match
        in_transaction = []

        def tracking_read(match_id):
            in_transaction.append(store.database.in_transaction())
            return read(match_id)

        monkeypatch.setattr(scoring, "_read_match", tracking_read)
        scoring.score_predictions_for_match(m1.id)

        assert in_transaction == [True]

    def test_failed_refresh_leaves_points_committed(self, store, open_gameweek):
        gw = open_gameweek["gameweek"]
        m1, _ = open_gameweek["matches"]
        predict(store, "alice", gw, (m1, 1, 1))
        finish(m1, 0, 0)

        class BrokenLeaderboard(LeaderboardService):
            def refresh_for_match(self, match_id):
                raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            ScoringService(store, leaderboard=BrokenLeaderboard(store)).score_predictions_for_match(m1.id)

        assert Prediction.get().points == 1


class TestAggregation:

    def test_caches_match_raw_points(self, store, open_gameweek):
        gw = open_gameweek["gameweek"]
        m1, m2 = open_gameweek["matches"]
        predict(store, "alice", gw, (m1, 2, 1), (m2, 0, 0))
        predict(store, "bob", gw, (m1, 0, 3), (m2, 1, 1))
        finish(m1, 2, 1)
        finish(m2, 2, 2)

        scoring = ScoringService(store)
        scoring.score_predictions_for_match(m1.id)
        scoring.score_predictions_for_match(m2.id)

        alice = standing("alice")
        assert alice.total_points == 4
        assert alice.exact_scores == 1
        assert alice.correct_results == 1
        assert alice.gameweeks_played == 1
        assert standing("bob").total_points == 1

        gw_score = UserGameweekScore.get(UserGameweekScore.user_id == "alice")
        assert gw_score.predicted_matches == 2
        assert gw_score.scored_matches == 2

        assert LeaderboardService(store).verify_league("league-1") == 2

    def test_partially_scored_gameweek(self, store, open_gameweek):
        gw = open_gameweek["gameweek"]
        m1, m2 = open_gameweek["matches"]
        predict(store, "alice", gw, (m1, 2, 1), (m2, 0, 0))
        finish(m1, 2, 1)

        ScoringService(store).score_predictions_for_match(m1.id)

        gw_score = UserGameweekScore.get(UserGameweekScore.user_id == "alice")
        assert gw_score.predicted_matches == 2
        assert gw_score.scored_matches == 1

    def test_leagues_are_aggregated_separately(self, store, open_gameweek):
        from conftest import make_league

        gw = open_gameweek["gameweek"]
        m1, _ = open_gameweek["matches"]
        make_league("league-2", members=("alice",))
        predict(store, "alice", gw, (m1, 2, 1))
        predict(store, "alice", gw, (m1, 0, 0), league_id="league-2")
        finish(m1, 2, 1)

        result = ScoringService(store).score_predictions_for_match(m1.id)

        assert sorted(result.leagues_refreshed) == ["league-1", "league-2"]
        assert standing("alice").total_points == 3
        assert standing("alice", "league-2").total_points == 0


class TestRanking:

    def test_tie_breaks(self, store, open_gameweek):
        gw = open_gameweek["gameweek"]
        m1, m2 = open_gameweek["matches"]
        # alice: one exact, 3 points; bob: two results, 2 points
        predict(store, "alice", gw, (m1, 1, 0), (m2, 3, 0))
        predict(store, "bob", gw, (m1, 2, 0), (m2, 0, 1))
        finish(m1, 1, 0)
        finish(m2, 0, 2)
        scoring = ScoringService(store)
        scoring.score_predictions_for_match(m1.id)
        scoring.score_predictions_for_match(m2.id)

        assert standing("alice").total_points == 3
        assert standing("bob").total_points == 2
        assert standing("alice").current_rank == 1
        assert standing("bob").current_rank == 2

    def test_equal_points_broken_by_exact_scores(self, store, open_gameweek):
        gw = open_gameweek["gameweek"]
        m1, m2 = open_gameweek["matches"]
        teams = open_gameweek["teams"]
        m3 = make_match(gw, 103, teams[0], teams[3], m2.kickoff_time)
        # carol joined first but has no exact score
        LeagueMember.create(league="league-1", user_id="carol", joined_at=datetime(2025, 1, 1))
        predict(store, "alice", gw, (m1, 1, 0), (m2, 5, 0), (m3, 5, 0))
        predict(store, "carol", gw, (m1, 2, 0), (m2, 0, 3), (m3, 0, 3))
        for match, score in ((m1, (1, 0)), (m2, (0, 1)), (m3, (0, 1))):
            finish(match, *score)
            ScoringService(store).score_predictions_for_match(match.id)

        assert standing("alice").total_points == standing("carol").total_points == 3
        assert standing("alice").current_rank == 1
        assert standing("carol").current_rank == 2

    def test_full_tie_broken_by_join_time(self, store, open_gameweek):
        gw = open_gameweek["gameweek"]
        m1, _ = open_gameweek["matches"]
        predict(store, "bob", gw, (m1, 1, 0))
        predict(store, "alice", gw, (m1, 1, 0))
        finish(m1, 1, 0)

        ScoringService(store).score_predictions_for_match(m1.id)

        assert standing("alice").current_rank == 1
        assert standing("bob").current_rank == 2

    def test_previous_rank_receives_prior_rank(self, store, open_gameweek):
        gw = open_gameweek["gameweek"]
        m1, m2 = open_gameweek["matches"]
        predict(store, "alice", gw, (m1, 0, 0), (m2, 1, 0))
        predict(store, "bob", gw, (m1, 1, 0), (m2, 0, 3))
        scoring = ScoringService(store)

        finish(m1, 1, 0)
        scoring.score_predictions_for_match(m1.id)
        assert (standing("bob").current_rank, standing("bob").previous_rank) == (1, None)
        assert (standing("alice").current_rank, standing("alice").previous_rank) == (2, None)

        finish(m2, 2, 0)
        scoring.score_predictions_for_match(m2.id)
        bob = standing("bob")
        alice = standing("alice")
        # bob 3, alice 1: order unchanged, previous_rank still copied
        assert (bob.current_rank, bob.previous_rank) == (1, 1)
        assert (alice.current_rank, alice.previous_rank) == (2, 2)
        assert alice.rank_change == 0

    def test_overtake_sets_rank_change(self, store, open_gameweek):
        gw = open_gameweek["gameweek"]
        m1, m2 = open_gameweek["matches"]
        predict(store, "alice", gw, (m1, 0, 0), (m2, 2, 0))
        predict(store, "bob", gw, (m1, 1, 0), (m2, 0, 3))
        scoring = ScoringService(store)

        finish(m1, 1, 0)
        scoring.score_predictions_for_match(m1.id)
        finish(m2, 2, 0)
        scoring.score_predictions_for_match(m2.id)

        alice = standing("alice")
        assert (alice.current_rank, alice.previous_rank) == (1, 2)
        assert alice.rank_change == 1
        assert standing("bob").rank_change == -1


class TestVerifyLeague:

    def test_detects_tampered_cache(self, store, open_gameweek):
        gw = open_gameweek["gameweek"]
        m1, _ = open_gameweek["matches"]
        predict(store, "alice", gw, (m1, 2, 1))
        finish(m1, 2, 1)
        ScoringService(store).score_predictions_for_match(m1.id)

        UserLeagueStanding.update(total_points=99).where(UserLeagueStanding.user_id == "alice").execute()

        with pytest.raises(ConsistencyError) as exc_info:
            LeaderboardService(store).verify_league("league-1")

        assert exc_info.value.details["mismatches"] == [
            {"user_id": "alice", "cached": 99, "expected": 3}
        ]
        assert standing("alice").total_points == 99

    def test_missing_standing_row_is_a_mismatch(self, store, open_gameweek):
        gw = open_gameweek["gameweek"]
        m1, _ = open_gameweek["matches"]
        predict(store, "alice", gw, (m1, 2, 1))
        Prediction.update(points=3).execute()

        with pytest.raises(ConsistencyError):
            LeaderboardService(store).verify_league("league-1")

    def test_empty_league_is_consistent(self, store, open_gameweek):
        assert LeaderboardService(store).verify_league("league-1") == 0


class TestScorePendingMatches:

    def test_scores_only_finished_matches_with_unscored_predictions(self, store, open_gameweek):
        gw = open_gameweek["gameweek"]
        m1, m2 = open_gameweek["matches"]
        predict(store, "alice", gw, (m1, 2, 1), (m2, 0, 0))
        finish(m1, 2, 1)
        finish(m2, 1, 0, status=MATCH_LIVE)
        scoring = ScoringService(store)

        assert scoring.pending_match_ids() == [m1.id]
        assert scoring.score_pending_matches() == 1
        assert scoring.pending_match_ids() == []
        assert scoring.score_pending_matches() == 0

    def test_competition_filter(self, store, open_gameweek):
        gw = open_gameweek["gameweek"]
        m1, _ = open_gameweek["matches"]
        predict(store, "alice", gw, (m1, 2, 1))
        finish(m1, 2, 1)
        scoring = ScoringService(store)

        assert scoring.pending_match_ids("champions_league") == []
        assert scoring.pending_match_ids("premier_league") == [m1.id]

    def test_repairs_cache_left_stale_by_failed_refresh(self, store, open_gameweek):
        gw = open_gameweek["gameweek"]
        m1, _ = open_gameweek["matches"]
        predict(store, "alice", gw, (m1, 1, 1))
        finish(m1, 0, 0)

        class BrokenLeaderboard(LeaderboardService):
            def refresh_for_match(self, match_id):
                raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            ScoringService(store, leaderboard=BrokenLeaderboard(store)).score_predictions_for_match(m1.id)
        with pytest.raises(ConsistencyError):
            LeaderboardService(store).verify_league("league-1")

        scoring = ScoringService(store)
        assert scoring.pending_match_ids() == []
        assert scoring.stale_cache_match_ids() == [m1.id]

        assert scoring.score_pending_matches() == 0

        assert standing("alice").total_points == 1
        assert LeaderboardService(store).verify_league("league-1") == 1
        assert scoring.stale_cache_match_ids() == []

    def test_cache_older_than_rescored_prediction_is_stale(self, store, open_gameweek):
        gw = open_gameweek["gameweek"]
        m1, _ = open_gameweek["matches"]
        predict(store, "alice", gw, (m1, 2, 1))
        finish(m1, 2, 1)
        scoring = ScoringService(store)
        scoring.score_predictions_for_match(m1.id)
        assert scoring.stale_cache_match_ids() == []

        UserGameweekScore.update(updated_at=datetime(2020, 1, 1)).execute()

        assert scoring.stale_cache_match_ids() == [m1.id]
        assert scoring.stale_cache_match_ids("champions_league") == []

    def test_rescore_skips_matches_without_predictions(self, store, open_gameweek):
        gw = open_gameweek["gameweek"]
        m1, m2 = open_gameweek["matches"]
        predict(store, "alice", gw, (m1, 2, 1))
        finish(m1, 0, 1)
        finish(m2, 1, 1)

        assert ScoringService(store).rescore_matches([m1.id, m2.id]) == 1
        assert ScoringService(store).rescore_matches([]) == 0
        assert Prediction.get().points == 0


class TestLeaderboardReads:

    def _scored(self, store, open_gameweek):
        gw = open_gameweek["gameweek"]
        m1, _ = open_gameweek["matches"]
        predict(store, "bob", gw, (m1, 2, 1))
        finish(m1, 2, 1)
        ScoringService(store).score_predictions_for_match(m1.id)
        return gw

    def test_league_leaderboard_lists_unranked_members_last(self, store, open_gameweek):
        self._scored(store, open_gameweek)

        board = LeaderboardService(store).get_league_leaderboard("league-1", "alice")

        assert [(e.user_id, e.rank, e.total_points) for e in board.entries] == [
            ("bob", 1, 3),
            ("alice", None, 0),
        ]
        assert board.is_season_complete is False
        assert board.champion is None

    def test_gameweek_leaderboard_shares_ranks(self, store, open_gameweek):
        gw = self._scored(store, open_gameweek)
        LeagueMember.create(league="league-1", user_id="carol", joined_at=datetime(2026, 1, 1))

        board = LeaderboardService(store).get_gameweek_leaderboard("league-1", gw.id, "alice")

        assert [(e.user_id, e.rank, e.total_points) for e in board.entries] == [
            ("bob", 1, 3),
            ("alice", 2, 0),
            ("carol", 2, 0),
        ]

    def test_gameweek_leaderboard_unknown_gameweek(self, store, open_gameweek):
        with pytest.raises(NotFoundError):
            LeaderboardService(store).get_gameweek_leaderboard("league-1", "nope", "alice")

    def test_user_rank(self, store, open_gameweek):
        self._scored(store, open_gameweek)
        service = LeaderboardService(store)

        bob = service.get_user_rank("league-1", "bob", "alice")
        assert (bob.rank, bob.total_points, bob.total_members) == (1, 3, 2)
        assert service.get_user_rank("league-1", "alice", "alice").rank is None

        with pytest.raises(NotFoundError):
            service.get_user_rank("league-1", "mallory", "alice")

    @pytest.mark.parametrize("league_id", ["league-1", "no-such-league"])
    def test_non_member_reads_rejected(self, store, open_gameweek, league_id):
        service = LeaderboardService(store)
        gw = open_gameweek["gameweek"]
        with pytest.raises(AuthorizationError):
            service.get_league_leaderboard(league_id, "mallory")
        with pytest.raises(AuthorizationError):
            service.get_gameweek_leaderboard(league_id, gw.id, "mallory")
        with pytest.raises(AuthorizationError):
            service.get_user_rank(league_id, "alice", "mallory")

    def test_champion_when_every_gameweek_completed(self, store, open_gameweek):
        season = open_gameweek["season"]
        teams = open_gameweek["teams"]
        # move the only gameweek into the past
        past_gw = make_gameweek(season, 2, open_gameweek["gameweek"].starts_at - timedelta(days=30))
        past_match = make_match(past_gw, 301, teams[0], teams[1])
        open_gameweek["gameweek"].delete_instance(recursive=True)
        Prediction.create(user_id="bob", match=past_match, league="league-1", home_score=1, away_score=0)
        finish(past_match, 1, 0)
        ScoringService(store).score_predictions_for_match(past_match.id)

        board = LeaderboardService(store).get_league_leaderboard("league-1", "alice")

        assert board.is_season_complete is True
        assert board.champion.user_id == "bob"
