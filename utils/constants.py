# ------------------------------- Competitions ------------------------------- #
PREMIER_LEAGUE = "premier_league"
CHAMPIONS_LEAGUE = "champions_league"

# Competition type -> football-data.org competition code
COMPETITIONS = {
	PREMIER_LEAGUE: "PL",
	CHAMPIONS_LEAGUE: "CL",
}

SUPPORTED_COMPETITIONS = tuple(COMPETITIONS.keys())


# ------------------------------- Match Status ------------------------------- #
MATCH_SCHEDULED = "scheduled"
MATCH_LIVE = "live"
MATCH_FINISHED = "finished"
MATCH_POSTPONED = "postponed"
MATCH_CANCELLED = "cancelled"

MATCH_STATUSES = (MATCH_SCHEDULED, MATCH_LIVE, MATCH_FINISHED, MATCH_POSTPONED, MATCH_CANCELLED)

# Provider status -> stored status; unknown provider statuses map to scheduled
PROVIDER_STATUS_MAP = {
	"SCHEDULED": MATCH_SCHEDULED,
	"TIMED": MATCH_SCHEDULED,
	"IN_PLAY": MATCH_LIVE,
	"PAUSED": MATCH_LIVE,
	"LIVE": MATCH_LIVE,
	"FINISHED": MATCH_FINISHED,
	"POSTPONED": MATCH_POSTPONED,
	"CANCELLED": MATCH_CANCELLED,
	"SUSPENDED": MATCH_CANCELLED,
}

# Provider statuses requested by the results refresh
RESULT_PROVIDER_STATUSES = ("IN_PLAY", "PAUSED", "FINISHED")


# ------------------------------- Gameweek Status ------------------------------- #
GAMEWEEK_UPCOMING = "upcoming"
GAMEWEEK_ACTIVE = "active"
GAMEWEEK_COMPLETED = "completed"


# ------------------------------- Predictions ------------------------------- #
MIN_PREDICTED_SCORE = 0
MAX_PREDICTED_SCORE = 20

EXACT_SCORE_POINTS = 3
CORRECT_RESULT_POINTS = 1
INCORRECT_POINTS = 0


# ------------------------------- Champions League Stages ------------------------------- #
UCL_LEAGUE_STAGE = "LEAGUE_STAGE"

UCL_STAGE_ORDER = {
	"LEAGUE_STAGE": 0,
	"PLAYOFFS": 1,
	"LAST_16": 2,
	"QUARTER_FINALS": 3,
	"SEMI_FINALS": 4,
	"FINAL": 5,
}

# Matchdays preceding each stage, for sequential gameweek numbering
UCL_STAGE_NUMBER_OFFSET = {
	"LEAGUE_STAGE": 0,
	"PLAYOFFS": 8,
	"LAST_16": 10,
	"QUARTER_FINALS": 12,
	"SEMI_FINALS": 14,
	"FINAL": 16,
}

UCL_STAGE_DISPLAY = {
	"LEAGUE_STAGE": "League Phase",
	"PLAYOFFS": "Playoffs",
	"LAST_16": "Round of 16",
	"QUARTER_FINALS": "Quarter-Finals",
	"SEMI_FINALS": "Semi-Finals",
	"FINAL": "Final",
}
