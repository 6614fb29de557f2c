"""
Domain Exceptions

Error taxonomy shared by the services, pipelines and HTTP layer.

Request-path errors (validation, authorization, not found, deadline) are
raised before any mutation. ProviderError is the only error the sync layer
lets escape from an extractor. ConsistencyError means a cached aggregate
disagrees with the raw predictions and must never be repaired by guessing.
"""

from typing import Any, Optional


class PredictorError(Exception):
    """Base class for all domain errors."""

    error_code = "PREDICTOR_ERROR"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(PredictorError):
    """Malformed or out-of-range input."""

    error_code = "VALIDATION_ERROR"


class DeadlineExpiredError(ValidationError):
    """Prediction write attempted at or after the gameweek deadline."""

    error_code = "DEADLINE_EXPIRED"


class AuthorizationError(PredictorError):
    """Caller is not authenticated or not a member of the league."""

    error_code = "AUTHORIZATION_ERROR"

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
        authenticated: bool = True,
    ):
        super().__init__(message, details)
        self.authenticated = authenticated


class NotFoundError(PredictorError):
    """Unknown league, gameweek, season or match."""

    error_code = "NOT_FOUND"


class ProviderError(PredictorError):
    """External data provider failure (network, HTTP status, payload shape)."""

    error_code = "PROVIDER_ERROR"

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
        competition: Optional[str] = None,
    ):
        super().__init__(message, details)
        self.competition = competition


class ConsistencyError(PredictorError):
    """A scoring or aggregation invariant was violated."""

    error_code = "CONSISTENCY_ERROR"
