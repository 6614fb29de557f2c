"""Tests for the prediction write and read path."""

from datetime import timedelta
from unittest.mock import patch

import pytest

from conftest import make_gameweek, make_league, make_match
from core.exceptions import (
    AuthorizationError,
    DeadlineExpiredError,
    NotFoundError,
    ValidationError,
)
from db.models.league.predictions import Prediction
from services.predictions import PredictionService, validate_entries
from utils.time_helpers import utcnow


def entries(*rows):
    return [{"match_id": m, "home_score": h, "away_score": a} for m, h, a in rows]


class TestValidateEntries:

    @pytest.mark.parametrize("bad", [-1, 21, 1.5, "2", None, True])
    def test_rejects_bad_scores(self, bad):
        with pytest.raises(ValidationError):
            validate_entries(entries(("m1", bad, 0)))

    def test_rejects_empty_batch(self):
        with pytest.raises(ValidationError):
            validate_entries([])

    def test_rejects_missing_match_id(self):
        with pytest.raises(ValidationError):
            validate_entries([{"home_score": 1, "away_score": 0}])

    def test_accepts_bounds(self):
        validated = validate_entries(entries(("m1", 0, 20)))
        assert (validated[0].home_score, validated[0].away_score) == (0, 20)


class TestSubmitPredictions:

    def test_saves_batch(self, store, open_gameweek):
        gw = open_gameweek["gameweek"]
        m1, m2 = open_gameweek["matches"]

        saved = PredictionService(store).submit_predictions(
            "alice", "league-1", gw.id, entries((m1.id, 2, 1), (m2.id, 0, 0))
        )

        assert saved == 2
        assert Prediction.select().where(Prediction.user_id == "alice").count() == 2

    def test_last_write_wins(self, store, open_gameweek):
        gw = open_gameweek["gameweek"]
        m1, _ = open_gameweek["matches"]
        service = PredictionService(store)

        service.submit_predictions("alice", "league-1", gw.id, entries((m1.id, 2, 1)))
        service.submit_predictions("alice", "league-1", gw.id, entries((m1.id, 3, 3)))

        rows = list(Prediction.select())
        assert len(rows) == 1
        assert (rows[0].home_score, rows[0].away_score) == (3, 3)

    def test_non_member_rejected_before_anything_else(self, store, open_gameweek):
        with pytest.raises(AuthorizationError):
            PredictionService(store).submit_predictions("mallory", "league-1", "no-such-gw", [])
        with pytest.raises(AuthorizationError):
            PredictionService(store).submit_predictions("alice", "no-such-league", "no-such-gw", [])

    def test_unknown_gameweek(self, store, open_gameweek):
        m1, _ = open_gameweek["matches"]
        with pytest.raises(NotFoundError):
            PredictionService(store).submit_predictions(
                "alice", "league-1", "no-such-gw", entries((m1.id, 1, 0))
            )

    def test_invalid_entry_rejects_whole_batch(self, store, open_gameweek):
        gw = open_gameweek["gameweek"]
        m1, m2 = open_gameweek["matches"]

        with pytest.raises(ValidationError):
            PredictionService(store).submit_predictions(
                "alice", "league-1", gw.id, entries((m1.id, 1, 0), (m2.id, 21, 0))
            )
        assert Prediction.select().count() == 0

    def test_match_outside_gameweek(self, store, open_gameweek):
        gw = open_gameweek["gameweek"]
        m1, _ = open_gameweek["matches"]
        teams = open_gameweek["teams"]
        other_gw = make_gameweek(open_gameweek["season"], 2, gw.starts_at + timedelta(days=7))
        other = make_match(other_gw, 201, teams[0], teams[2])

        with pytest.raises(ValidationError) as exc_info:
            PredictionService(store).submit_predictions(
                "alice", "league-1", gw.id, entries((m1.id, 1, 0), (other.id, 1, 1))
            )
        assert exc_info.value.details["match_ids"] == [other.id]
        assert Prediction.select().count() == 0

    def test_after_deadline_rejected(self, store, open_gameweek):
        gw = open_gameweek["gameweek"]
        m1, m2 = open_gameweek["matches"]

        with patch("services.deadline_gate.utcnow", return_value=gw.deadline):
            with pytest.raises(DeadlineExpiredError):
                PredictionService(store).submit_predictions(
                    "alice", "league-1", gw.id, entries((m1.id, 1, 0), (m2.id, 2, 2))
                )
        assert Prediction.select().count() == 0

    def test_just_before_deadline_accepted(self, store, open_gameweek):
        gw = open_gameweek["gameweek"]
        m1, _ = open_gameweek["matches"]

        with patch("services.deadline_gate.utcnow", return_value=gw.deadline - timedelta(seconds=1)):
            saved = PredictionService(store).submit_predictions(
                "alice", "league-1", gw.id, entries((m1.id, 1, 0))
            )
        assert saved == 1

    def test_predictions_are_scoped_per_league(self, store, open_gameweek):
        gw = open_gameweek["gameweek"]
        m1, _ = open_gameweek["matches"]
        make_league("league-2", members=("alice",))
        service = PredictionService(store)

        service.submit_predictions("alice", "league-1", gw.id, entries((m1.id, 1, 0)))
        service.submit_predictions("alice", "league-2", gw.id, entries((m1.id, 0, 1)))

        assert Prediction.select().count() == 2


class TestGetUserPredictions:

    def test_returns_own_predictions_by_kickoff(self, store, open_gameweek):
        gw = open_gameweek["gameweek"]
        m1, m2 = open_gameweek["matches"]
        service = PredictionService(store)
        service.submit_predictions("alice", "league-1", gw.id, entries((m2.id, 0, 0), (m1.id, 2, 1)))
        service.submit_predictions("bob", "league-1", gw.id, entries((m1.id, 5, 5)))

        views = service.get_user_predictions("alice", "league-1", gw.id)

        assert [v.match.id for v in views] == [m1.id, m2.id]
        assert views[0].home_score == 2
        assert views[0].match.home_team.id == m1.home_team_id
        assert views[0].points is None

    def test_non_member_rejected(self, store, open_gameweek):
        with pytest.raises(AuthorizationError):
            PredictionService(store).get_user_predictions(
                "mallory", "league-1", open_gameweek["gameweek"].id
            )

    def test_empty_gameweek(self, store, open_gameweek):
        assert PredictionService(store).get_user_predictions("alice", "league-1", "no-such-gw") == []


def test_deadline_is_read_at_request_time(store, open_gameweek):
    """A status computed earlier never authorizes a later write."""
    gw = open_gameweek["gameweek"]
    m1, _ = open_gameweek["matches"]
    assert gw.status_at(utcnow()) == "upcoming"

    with patch("services.deadline_gate.utcnow", return_value=gw.deadline + timedelta(minutes=1)):
        with pytest.raises(DeadlineExpiredError):
            PredictionService(store).submit_predictions("alice", "league-1", gw.id, entries((m1.id, 1, 0)))
