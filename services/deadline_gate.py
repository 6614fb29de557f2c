"""
Deadline Gate

Gameweek lifecycle and prediction write authorization.

gameweek_status() is a pure function of three timestamps and is used for
display. Write authorization is a separate, strict check against the wall
clock read at request time: an "active" gameweek has already passed its
deadline, so the display status is never used to authorize a write.
"""

from datetime import datetime
from typing import Optional

from core.exceptions import DeadlineExpiredError
from utils.constants import GAMEWEEK_ACTIVE, GAMEWEEK_COMPLETED, GAMEWEEK_UPCOMING
from utils.time_helpers import to_utc_naive, utcnow


def gameweek_status(deadline: datetime, window_end: datetime, now: datetime) -> str:
    """
    Derive a gameweek's lifecycle status.

    Args:
        deadline: Prediction deadline
        window_end: End of the completion window
        now: Instant to evaluate at

    Returns:
        "upcoming" before the deadline, "active" from the deadline up to and
        including the window end, "completed" after it.
    """
    deadline = to_utc_naive(deadline)
    window_end = to_utc_naive(window_end)
    now = to_utc_naive(now)

    if now < deadline:
        return GAMEWEEK_UPCOMING
    if now <= window_end:
        return GAMEWEEK_ACTIVE
    return GAMEWEEK_COMPLETED


def is_prediction_window_open(deadline: datetime, now: Optional[datetime] = None) -> bool:
    """Predictions are accepted strictly before the deadline."""
    return to_utc_naive(now or utcnow()) < to_utc_naive(deadline)


def ensure_prediction_window_open(gameweek_id: str, deadline: datetime) -> None:
    """
    Reject a prediction write once the deadline has passed.

    Always evaluates against the current wall clock.

    Raises:
        DeadlineExpiredError: If now >= deadline
    """
    now = utcnow()
    if not is_prediction_window_open(deadline, now):
        raise DeadlineExpiredError(
            "Prediction deadline has passed",
            details={
                "gameweek_id": gameweek_id,
                "deadline": to_utc_naive(deadline).isoformat(),
            },
        )
