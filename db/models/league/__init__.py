"""
League Schema Models

Leagues and memberships (read-only here), predictions, and the leaderboard
cache tables.
"""

from db.models.league.leagues import League, LeagueMember
from db.models.league.predictions import Prediction
from db.models.league.standings import UserGameweekScore, UserLeagueStanding

__all__ = [
    "League",
    "LeagueMember",
    "Prediction",
    # Cache tables
    "UserGameweekScore",
    "UserLeagueStanding",
]
