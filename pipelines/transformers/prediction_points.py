"""
Prediction Points Transformer

Scores a predicted result against the final result.
"""

from typing import NamedTuple

from utils.constants import CORRECT_RESULT_POINTS, EXACT_SCORE_POINTS, INCORRECT_POINTS

EXACT = "exact"
RESULT = "result"
INCORRECT = "incorrect"


class PredictionScore(NamedTuple):
    """Points awarded and the kind of hit."""

    points: int
    type: str


def _outcome(home: int, away: int) -> int:
    """1 for a home win, -1 for an away win, 0 for a draw."""
    return (home > away) - (home < away)


def calculate_prediction_points(
    predicted_home: int,
    predicted_away: int,
    actual_home: int,
    actual_away: int,
) -> PredictionScore:
    """
    Score a prediction.

    Scoring breakdown:
        - Exact score: 3 pts
        - Correct result (home win / draw / away win): 1 pt
        - Otherwise: 0 pts

    Examples:
        >>> calculate_prediction_points(2, 1, 2, 1)
        PredictionScore(points=3, type='exact')
        >>> calculate_prediction_points(1, 1, 2, 2)
        PredictionScore(points=1, type='result')
        >>> calculate_prediction_points(2, 1, 0, 2)
        PredictionScore(points=0, type='incorrect')
    """
    if predicted_home == actual_home and predicted_away == actual_away:
        return PredictionScore(EXACT_SCORE_POINTS, EXACT)

    if _outcome(predicted_home, predicted_away) == _outcome(actual_home, actual_away):
        return PredictionScore(CORRECT_RESULT_POINTS, RESULT)

    return PredictionScore(INCORRECT_POINTS, INCORRECT)
