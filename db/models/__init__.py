# Import all models to ensure they are registered with the database
from .football.teams import Team
from .football.seasons import Season
from .football.gameweeks import Gameweek, Matchday
from .football.matches import Match
from .league.leagues import League, LeagueMember
from .league.predictions import Prediction
from .league.standings import UserGameweekScore, UserLeagueStanding
from .pipeline_run import PipelineRun

# Foreign key order, used by Store.create_tables()
ALL_MODELS = [
	Team,
	Season,
	Gameweek,
	Matchday,
	Match,
	League,
	LeagueMember,
	Prediction,
	UserGameweekScore,
	UserLeagueStanding,
	PipelineRun,
]

__all__ = [
	'Team', 'Season', 'Gameweek', 'Matchday', 'Match', 'League', 'LeagueMember',
	'Prediction', 'UserGameweekScore', 'UserLeagueStanding', 'PipelineRun', 'ALL_MODELS'
]
