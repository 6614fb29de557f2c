"""
Scoring Service

Assigns points to predictions once a match result is final.

All predictions of a match are scored in one transaction, so the
leaderboard never observes a half-scored match. The leaderboard refresh
runs only after that transaction commits. Scoring is a deterministic
function of four integers, so re-scoring after a corrected result is safe.
"""

from dataclasses import dataclass, field
from typing import Optional

from peewee import JOIN

from core.logging import get_logger
from db.base import Store
from db.models.football.gameweeks import Gameweek, Matchday
from db.models.football.matches import Match
from db.models.football.seasons import Season
from db.models.league.predictions import Prediction
from db.models.league.standings import UserGameweekScore
from pipelines.transformers.prediction_points import (
    EXACT,
    RESULT,
    calculate_prediction_points,
)
from services.leaderboard import LeaderboardService
from utils.constants import MATCH_FINISHED
from utils.time_helpers import utcnow


@dataclass
class MatchScoringResult:
    """Outcome of scoring one match."""

    match_id: str
    predictions_scored: int = 0
    exact_scores: int = 0
    correct_results: int = 0
    leagues_refreshed: list[str] = field(default_factory=list)


class ScoringService:
    """
    Scoring engine.

    Args:
        store: Storage context
        leaderboard: Aggregator refreshed after every scored match
    """

    def __init__(self, store: Store, leaderboard: Optional[LeaderboardService] = None):
        self.store = store
        self.leaderboard = leaderboard or LeaderboardService(store)
        self.log = get_logger("scoring")

    def _read_match(self, match_id: str) -> Optional[Match]:
        """Read a match inside the caller's transaction, row-locked where supported."""
        query = Match.select().where(Match.id == match_id)
        if self.store.database.for_update:
            query = query.for_update()
        return query.first()

    def score_predictions_for_match(self, match_id: str) -> Optional[MatchScoringResult]:
        """
        Score every prediction on a match.

        A match that is unknown, not finished, or missing a score is left
        alone and None is returned, so callers may invoke this speculatively.
        The match is read in the same transaction as the writes, so a result
        correction landing meanwhile is never scored against the old score.
        """
        result = MatchScoringResult(match_id=match_id)
        now = utcnow()
        with self.store.transaction():
            match = self._read_match(match_id)
            if match is None or not match.is_scoreable:
                self.log.debug(
                    "match_not_scoreable",
                    match_id=match_id,
                    status=match.status if match else None,
                )
                return None

            predictions = list(Prediction.select().where(Prediction.match == match_id))
            for prediction in predictions:
                score = calculate_prediction_points(
                    prediction.home_score,
                    prediction.away_score,
                    match.home_score,
                    match.away_score,
                )
                (
                    Prediction.update(points=score.points, updated_at=now)
                    .where(Prediction.id == prediction.id)
                    .execute()
                )
                result.predictions_scored += 1
                if score.type == EXACT:
                    result.exact_scores += 1
                elif score.type == RESULT:
                    result.correct_results += 1

        if result.predictions_scored:
            result.leagues_refreshed = self.leaderboard.refresh_for_match(match_id)

        self.log.info(
            "match_scored",
            match_id=match_id,
            score=f"{match.home_score}-{match.away_score}",
            predictions=result.predictions_scored,
            exact=result.exact_scores,
            correct=result.correct_results,
        )
        return result

    def _finished_matches(self, competition: Optional[str] = None):
        """Finished matches with a final score and at least one prediction."""
        query = (
            Match.select(Match.id)
            .join(Prediction)
            .switch(Match)
            .join(Matchday)
            .where(
                (Match.status == MATCH_FINISHED)
                & Match.home_score.is_null(False)
                & Match.away_score.is_null(False)
            )
        )
        if competition:
            query = (
                query.join(Gameweek)
                .join(Season)
                .where(Season.competition == competition)
                .switch(Matchday)
            )
        return query

    def pending_match_ids(self, competition: Optional[str] = None) -> list[str]:
        """Finished matches that still have at least one unscored prediction."""
        query = self._finished_matches(competition).where(Prediction.points.is_null())
        return [m.id for m in query.distinct().order_by(Match.id)]

    def stale_cache_match_ids(self, competition: Optional[str] = None) -> list[str]:
        """
        Scored matches whose leaderboard cache missed the scoring.

        A scored prediction is stale when its (user, gameweek, league) has
        no UserGameweekScore row, or one last written before the prediction
        was scored. This happens when the refresh after scoring failed.
        """
        query = (
            self._finished_matches(competition)
            .join(
                UserGameweekScore,
                JOIN.LEFT_OUTER,
                on=(
                    (UserGameweekScore.gameweek == Matchday.gameweek)
                    & (UserGameweekScore.user_id == Prediction.user_id)
                    & (UserGameweekScore.league == Prediction.league)
                ),
            )
            .where(
                Prediction.points.is_null(False)
                & (
                    UserGameweekScore.id.is_null()
                    | (UserGameweekScore.updated_at < Prediction.updated_at)
                )
            )
        )
        return [m.id for m in query.distinct().order_by(Match.id)]

    def _run_each(self, event: str, match_ids: list[str], func) -> int:
        """Apply func to each match; a failure is logged and the rest still run."""
        done = 0
        for match_id in match_ids:
            try:
                if func(match_id) is not None:
                    done += 1
            except Exception as e:
                self.log.error(
                    event,
                    match_id=match_id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
        return done

    def rescore_matches(self, match_ids: list[str]) -> int:
        """
        Score the given matches whether or not their predictions have points.

        Used for matches whose result was just written, so a corrected
        final score replaces the points awarded for the old one.

        Returns:
            Number of matches scored
        """
        if not match_ids:
            return 0
        predicted = [
            m.id
            for m in Match.select(Match.id)
            .join(Prediction)
            .where(Match.id.in_(match_ids))
            .distinct()
            .order_by(Match.id)
        ]
        scored = self._run_each("match_scoring_failed", predicted, self.score_predictions_for_match)
        self.log.info("matches_rescored", requested=len(match_ids), scored=scored)
        return scored

    def score_pending_matches(self, competition: Optional[str] = None) -> int:
        """
        Score every finished match that still has unscored predictions, then
        refresh the leaderboard for scored matches whose cache is stale.

        A failure on one match is logged and the remaining matches still run.

        Returns:
            Number of matches scored
        """
        pending = self.pending_match_ids(competition)
        scored = self._run_each("match_scoring_failed", pending, self.score_predictions_for_match)

        stale = self.stale_cache_match_ids(competition)
        repaired = self._run_each("cache_repair_failed", stale, self.leaderboard.refresh_for_match)

        self.log.info(
            "pending_matches_scored",
            competition=competition,
            scored=scored,
            failed=len(pending) - scored,
            caches_repaired=repaired,
        )
        return scored
