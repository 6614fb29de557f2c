"""
Football Schema Models

Competition data reconciled from the fixture provider: teams, seasons,
gameweeks, matchdays and matches.
"""

from db.models.football.teams import Team
from db.models.football.seasons import Season
from db.models.football.gameweeks import Gameweek, Matchday
from db.models.football.matches import Match

__all__ = [
    # Dimension tables
    "Team",
    "Season",
    # Fixture tables
    "Gameweek",
    "Matchday",
    "Match",
]
