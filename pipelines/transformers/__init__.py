"""
Data Transformers

Pure functions for transforming extracted data.
"""

from pipelines.transformers.prediction_points import (
    PredictionScore,
    calculate_prediction_points,
)
from pipelines.transformers.fixtures import (
    FixtureGroup,
    GameweekWindowPolicy,
    group_fixtures,
    team_code,
)

__all__ = [
    "PredictionScore",
    "calculate_prediction_points",
    "FixtureGroup",
    "GameweekWindowPolicy",
    "group_fixtures",
    "team_code",
]
