from pydantic import BaseModel
from typing import Optional


# ------------------------------- League Standings ------------------------------- #

class LeaderboardEntry(BaseModel):
    """A member's cumulative standing. rank is None until the member has scored."""
    rank: Optional[int] = None
    previous_rank: Optional[int] = None
    user_id: str
    total_points: int = 0
    exact_scores: int = 0
    correct_results: int = 0
    gameweeks_played: int = 0


class LeagueLeaderboard(BaseModel):
    league_id: str
    entries: list[LeaderboardEntry]
    is_season_complete: bool = False
    champion: Optional[LeaderboardEntry] = None


class UserRank(BaseModel):
    league_id: str
    user_id: str
    rank: Optional[int] = None
    previous_rank: Optional[int] = None
    total_members: int
    total_points: int = 0
    exact_scores: int = 0
    correct_results: int = 0
    gameweeks_played: int = 0


# ------------------------------- Gameweek Standings ------------------------------- #

class GameweekLeaderboardEntry(BaseModel):
    """Points earned in one gameweek. Tied members share a rank."""
    rank: int
    user_id: str
    total_points: int = 0
    exact_scores: int = 0
    correct_results: int = 0
    predicted_matches: int = 0
    scored_matches: int = 0


class GameweekLeaderboard(BaseModel):
    league_id: str
    gameweek_id: str
    entries: list[GameweekLeaderboardEntry]
