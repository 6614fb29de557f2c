from pydantic import BaseModel
from typing import Optional


# ------------------------------- Teams ------------------------------- #

class TeamView(BaseModel):
    id: str
    name: str
    short_name: str
    code: str
    logo: Optional[str] = None
    competition: str


# ------------------------------- Matches ------------------------------- #

class MatchView(BaseModel):
    id: str
    kickoff_time: str
    status: str
    home_team: TeamView
    away_team: TeamView
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    venue: Optional[str] = None
    home_red_cards: int = 0
    away_red_cards: int = 0


class MatchdayView(BaseModel):
    id: str
    date: str
    day_number: int
    matches: list[MatchView] = []


# ------------------------------- Gameweeks ------------------------------- #

class GameweekView(BaseModel):
    """Gameweek with its status derived at read time."""
    id: str
    season_id: str
    number: int
    name: Optional[str] = None
    stage: Optional[str] = None
    deadline: str
    starts_at: str
    ends_at: str
    status: str
    is_open: bool


class GameweekSummary(GameweekView):
    match_count: int = 0


class GameweekDetail(GameweekView):
    matchdays: list[MatchdayView] = []


# ------------------------------- Seasons ------------------------------- #

class SeasonView(BaseModel):
    id: str
    name: str
    competition: str
    start_date: str
    end_date: str
    is_current: bool
    current_matchday: Optional[int] = None


class SeasonStatus(BaseModel):
    season: SeasonView
    total_gameweeks: int
    completed_gameweeks: int
    is_complete: bool
    current_gameweek: Optional[GameweekView] = None


class CompetitionSyncStatus(BaseModel):
    """Row counts for one competition's current season."""
    teams: int
    seasons: int
    gameweeks: int
    matches: int
