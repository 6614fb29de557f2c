"""
Membership Service

League membership checks. Memberships are written by the account service;
the engine only reads them. Every league-scoped read or write goes through
require_membership() before touching any other row, so a non-member learns
nothing about whether the league, gameweek or match exists.
"""

from core.exceptions import AuthorizationError
from db.models.league.leagues import LeagueMember


def require_membership(league_id: str, user_id: str) -> LeagueMember:
    """
    Return the caller's membership row.

    Raises:
        AuthorizationError: If the user is not a member of the league
    """
    member = (
        LeagueMember.select()
        .where((LeagueMember.league == league_id) & (LeagueMember.user_id == user_id))
        .first()
    )
    if member is None:
        raise AuthorizationError(
            "You are not a member of this league",
            details={"league_id": league_id},
        )
    return member
