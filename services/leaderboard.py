"""
Leaderboard Service

Maintains the per-gameweek and per-league score caches and serves ranked
standings from them.

After a match is scored, refresh_for_match() recomputes only the rows the
match can affect: one UserGameweekScore and one UserLeagueStanding per
(user, league) that predicted it, then the ranks of each affected league.
Reads never aggregate raw predictions; verify_league() is the only place
that does, to check the caches.
"""

from collections import defaultdict
from typing import Optional

from peewee import Case, fn

from core.exceptions import ConsistencyError, NotFoundError
from core.logging import get_logger
from db.base import Store
from db.models.football.gameweeks import Gameweek, Matchday
from db.models.football.matches import Match
from db.models.football.seasons import Season
from db.models.league.leagues import League, LeagueMember
from db.models.league.predictions import Prediction
from db.models.league.standings import UserGameweekScore, UserLeagueStanding
from schemas.leaderboard import (
    GameweekLeaderboard,
    GameweekLeaderboardEntry,
    LeaderboardEntry,
    LeagueLeaderboard,
    UserRank,
)
from services.membership import require_membership
from utils.constants import CORRECT_RESULT_POINTS, EXACT_SCORE_POINTS, GAMEWEEK_COMPLETED
from utils.time_helpers import utcnow


def _count_points(value: int):
    """SUM(CASE WHEN points = value THEN 1 ELSE 0 END)"""
    return fn.SUM(Case(None, [(Prediction.points == value, 1)], 0))


class LeaderboardService:
    """Leaderboard cache maintenance and reads."""

    def __init__(self, store: Store):
        self.store = store
        self.log = get_logger("leaderboard")

    # ------------------------------------------------------------------ #
    # Cache recomputation
    # ------------------------------------------------------------------ #

    def refresh_for_match(self, match_id: str) -> list[str]:
        """
        Recompute cache rows affected by a match.

        Args:
            match_id: A match whose predictions were just scored

        Returns:
            Ids of the leagues whose standings were refreshed
        """
        gameweek_id = Match.gameweek_id_for(match_id)
        if gameweek_id is None:
            raise NotFoundError("Match not found", details={"match_id": match_id})

        pairs = (
            Prediction.select(Prediction.user_id, Prediction.league)
            .where(Prediction.match == match_id)
            .distinct()
            .tuples()
        )
        users_by_league: dict[str, list[str]] = defaultdict(list)
        for user_id, league_id in pairs:
            users_by_league[league_id].append(user_id)

        for league_id, user_ids in users_by_league.items():
            with self.store.transaction():
                for user_id in user_ids:
                    self._refresh_gameweek_score(user_id, gameweek_id, league_id)
                    self._refresh_standing(user_id, league_id)
                self._rerank(league_id)

        self.log.info(
            "leaderboard_refreshed",
            match_id=match_id,
            gameweek_id=gameweek_id,
            leagues=len(users_by_league),
            users=sum(len(u) for u in users_by_league.values()),
        )
        return list(users_by_league)

    def _refresh_gameweek_score(self, user_id: str, gameweek_id: str, league_id: str) -> None:
        totals = (
            Prediction.select(
                fn.SUM(Prediction.points).alias("total_points"),
                _count_points(EXACT_SCORE_POINTS).alias("exact_scores"),
                _count_points(CORRECT_RESULT_POINTS).alias("correct_results"),
                fn.COUNT(Prediction.id).alias("predicted_matches"),
                fn.COUNT(Prediction.points).alias("scored_matches"),
            )
            .join(Match)
            .join(Matchday)
            .where(
                (Prediction.user_id == user_id)
                & (Prediction.league == league_id)
                & (Matchday.gameweek == gameweek_id)
            )
            .dicts()
            .get()
        )
        values = {key: value or 0 for key, value in totals.items()}
        now = utcnow()
        (
            UserGameweekScore.insert(
                user_id=user_id,
                gameweek=gameweek_id,
                league=league_id,
                created_at=now,
                updated_at=now,
                **values,
            )
            .on_conflict(
                conflict_target=[
                    UserGameweekScore.user_id,
                    UserGameweekScore.gameweek,
                    UserGameweekScore.league,
                ],
                preserve=[
                    UserGameweekScore.total_points,
                    UserGameweekScore.exact_scores,
                    UserGameweekScore.correct_results,
                    UserGameweekScore.predicted_matches,
                    UserGameweekScore.scored_matches,
                    UserGameweekScore.updated_at,
                ],
            )
            .execute()
        )

    def _refresh_standing(self, user_id: str, league_id: str) -> None:
        totals = (
            UserGameweekScore.select(
                fn.SUM(UserGameweekScore.total_points).alias("total_points"),
                fn.SUM(UserGameweekScore.exact_scores).alias("exact_scores"),
                fn.SUM(UserGameweekScore.correct_results).alias("correct_results"),
                fn.SUM(
                    Case(None, [(UserGameweekScore.scored_matches > 0, 1)], 0)
                ).alias("gameweeks_played"),
            )
            .where(
                (UserGameweekScore.user_id == user_id)
                & (UserGameweekScore.league == league_id)
            )
            .dicts()
            .get()
        )
        values = {key: value or 0 for key, value in totals.items()}
        now = utcnow()
        (
            UserLeagueStanding.insert(
                user_id=user_id,
                league=league_id,
                created_at=now,
                updated_at=now,
                **values,
            )
            .on_conflict(
                conflict_target=[UserLeagueStanding.user_id, UserLeagueStanding.league],
                preserve=[
                    UserLeagueStanding.total_points,
                    UserLeagueStanding.gameweeks_played,
                    UserLeagueStanding.exact_scores,
                    UserLeagueStanding.correct_results,
                    UserLeagueStanding.updated_at,
                ],
            )
            .execute()
        )

    def _rerank(self, league_id: str) -> None:
        """
        Assign a strict rank to every member with a standing row.

        Order: total points desc, exact scores desc, correct results desc,
        join time asc, user id asc. previous_rank receives the rank held
        before this recomputation.
        """
        rows = (
            UserLeagueStanding.select(UserLeagueStanding, LeagueMember.joined_at)
            .join(
                LeagueMember,
                on=(
                    (LeagueMember.league == UserLeagueStanding.league)
                    & (LeagueMember.user_id == UserLeagueStanding.user_id)
                ),
            )
            .where(UserLeagueStanding.league == league_id)
            .objects()
        )
        ordered = sorted(
            rows,
            key=lambda s: (
                -s.total_points,
                -s.exact_scores,
                -s.correct_results,
                s.joined_at,
                s.user_id,
            ),
        )

        now = utcnow()
        for rank, standing in enumerate(ordered, start=1):
            (
                UserLeagueStanding.update(
                    previous_rank=standing.current_rank,
                    current_rank=rank,
                    updated_at=now,
                )
                .where(UserLeagueStanding.id == standing.id)
                .execute()
            )

    # ------------------------------------------------------------------ #
    # Consistency
    # ------------------------------------------------------------------ #

    def verify_league(self, league_id: str) -> int:
        """
        Check every cached standing in a league against raw prediction points.

        Cached rows are never modified here.

        Returns:
            Number of standings checked

        Raises:
            ConsistencyError: If any standing's total disagrees with the
                sum of its predictions' points
        """
        raw = dict(
            Prediction.select(Prediction.user_id, fn.SUM(Prediction.points))
            .where((Prediction.league == league_id) & Prediction.points.is_null(False))
            .group_by(Prediction.user_id)
            .tuples()
        )
        standings = list(
            UserLeagueStanding.select().where(UserLeagueStanding.league == league_id)
        )

        mismatches = []
        for standing in standings:
            expected = raw.pop(standing.user_id, 0) or 0
            if standing.total_points != expected:
                mismatches.append(
                    {"user_id": standing.user_id, "cached": standing.total_points, "expected": expected}
                )
        # Scored users with no standing row at all
        for user_id, expected in raw.items():
            if expected:
                mismatches.append({"user_id": user_id, "cached": None, "expected": expected})

        if mismatches:
            self.log.error(
                "leaderboard_inconsistent",
                league_id=league_id,
                mismatches=mismatches,
            )
            raise ConsistencyError(
                "Cached standings disagree with prediction points",
                details={"league_id": league_id, "mismatches": mismatches},
            )

        self.log.info("leaderboard_verified", league_id=league_id, standings=len(standings))
        return len(standings)

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def _is_season_complete(self, league: League) -> bool:
        season = Season.get_current(league.competition)
        if season is None:
            return False
        gameweeks = Gameweek.for_season(season.id)
        now = utcnow()
        return bool(gameweeks) and all(
            gw.status_at(now) == GAMEWEEK_COMPLETED for gw in gameweeks
        )

    @staticmethod
    def _members(league_id: str) -> list[LeagueMember]:
        return list(
            LeagueMember.select()
            .where(LeagueMember.league == league_id)
            .order_by(LeagueMember.joined_at, LeagueMember.user_id)
        )

    @staticmethod
    def _entry(user_id: str, standing: Optional[UserLeagueStanding]) -> LeaderboardEntry:
        if standing is None:
            return LeaderboardEntry(user_id=user_id)
        return LeaderboardEntry(
            rank=standing.current_rank,
            previous_rank=standing.previous_rank,
            user_id=user_id,
            total_points=standing.total_points,
            exact_scores=standing.exact_scores,
            correct_results=standing.correct_results,
            gameweeks_played=standing.gameweeks_played,
        )

    def get_league_leaderboard(self, league_id: str, viewer_id: str) -> LeagueLeaderboard:
        """
        Ranked standings of a league.

        Members without a ranked standing yet are listed after the ranked
        ones in join order.
        """
        require_membership(league_id, viewer_id)
        league = League.get_by_id(league_id)

        standings = {
            s.user_id: s
            for s in UserLeagueStanding.select().where(UserLeagueStanding.league == league_id)
        }
        entries = [self._entry(m.user_id, standings.get(m.user_id)) for m in self._members(league_id)]
        ranked = sorted((e for e in entries if e.rank is not None), key=lambda e: e.rank)
        unranked = [e for e in entries if e.rank is None]
        entries = ranked + unranked

        complete = self._is_season_complete(league)
        return LeagueLeaderboard(
            league_id=league_id,
            entries=entries,
            is_season_complete=complete,
            champion=entries[0] if complete and ranked else None,
        )

    def get_gameweek_leaderboard(
        self, league_id: str, gameweek_id: str, viewer_id: str
    ) -> GameweekLeaderboard:
        """Points per member for one gameweek. Tied members share a rank."""
        require_membership(league_id, viewer_id)
        if Gameweek.get_or_none(Gameweek.id == gameweek_id) is None:
            raise NotFoundError("Gameweek not found", details={"gameweek_id": gameweek_id})

        scores = {
            s.user_id: s
            for s in UserGameweekScore.select().where(
                (UserGameweekScore.league == league_id)
                & (UserGameweekScore.gameweek == gameweek_id)
            )
        }
        members = self._members(league_id)

        def sort_key(member: LeagueMember):
            s = scores.get(member.user_id)
            if s is None:
                return (0, 0, 0, member.joined_at, member.user_id)
            return (-s.total_points, -s.exact_scores, -s.correct_results, member.joined_at, member.user_id)

        entries: list[GameweekLeaderboardEntry] = []
        previous_key = None
        rank = 0
        for position, member in enumerate(sorted(members, key=sort_key), start=1):
            score = scores.get(member.user_id)
            key = (
                (score.total_points, score.exact_scores, score.correct_results)
                if score
                else (0, 0, 0)
            )
            if key != previous_key:
                rank = position
                previous_key = key
            entries.append(
                GameweekLeaderboardEntry(
                    rank=rank,
                    user_id=member.user_id,
                    total_points=score.total_points if score else 0,
                    exact_scores=score.exact_scores if score else 0,
                    correct_results=score.correct_results if score else 0,
                    predicted_matches=score.predicted_matches if score else 0,
                    scored_matches=score.scored_matches if score else 0,
                )
            )

        return GameweekLeaderboard(league_id=league_id, gameweek_id=gameweek_id, entries=entries)

    def get_user_rank(self, league_id: str, user_id: str, viewer_id: str) -> UserRank:
        """A single member's standing in a league."""
        require_membership(league_id, viewer_id)
        members = self._members(league_id)
        if not any(m.user_id == user_id for m in members):
            raise NotFoundError(
                "User is not a member of this league",
                details={"league_id": league_id, "user_id": user_id},
            )

        standing = UserLeagueStanding.get_or_none(
            (UserLeagueStanding.league == league_id) & (UserLeagueStanding.user_id == user_id)
        )
        entry = self._entry(user_id, standing)
        return UserRank(
            league_id=league_id,
            total_members=len(members),
            **entry.model_dump(),
        )
