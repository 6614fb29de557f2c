"""
football-data.org Extractor

Fetches teams, competition info and fixtures from the football-data.org
v4 API.
"""

from datetime import date
from typing import Any, Optional, Sequence, Type, TypeVar

import pydantic

from core.exceptions import ProviderError
from core.resilience import (
    CircuitBreakerError,
    ClientError,
    ResilientHTTPClient,
    RetryableError,
    football_data_circuit,
)
from core.settings import settings
from pipelines.extractors.base import FixtureProvider
from schemas.provider import (
    ProviderCompetition,
    ProviderFixture,
    ProviderFixtures,
    ProviderRecord,
    ProviderTeam,
    ProviderTeams,
)
from utils.constants import COMPETITIONS

R = TypeVar("R", bound=ProviderRecord)


class FootballDataExtractor(FixtureProvider):
    """
    Extractor for the football-data.org v4 API.

    Every transport failure (timeouts, 4xx/5xx after retries, open circuit)
    and every malformed payload is raised as ProviderError.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[ResilientHTTPClient] = None,
    ):
        super().__init__("football_data")
        if api_key is None and settings.football_data_api_key:
            api_key = settings.football_data_api_key.get_secret_value()
        self.api_key = api_key
        self.client = client or ResilientHTTPClient(
            base_url=base_url or settings.football_data_base_url,
            headers={"X-Auth-Token": api_key or ""},
            max_retries=settings.retry_max_attempts,
            base_delay=settings.retry_base_delay,
            max_delay=settings.retry_max_delay,
            timeout=settings.http_timeout,
            circuit_breaker=football_data_circuit,
        )

    def _code(self, competition: str) -> str:
        try:
            return COMPETITIONS[competition]
        except KeyError:
            raise ProviderError(
                f"Unsupported competition: {competition}", competition=competition
            )

    def _fetch(
        self,
        competition: str,
        path: str,
        record: Type[R],
        params: Optional[dict[str, Any]] = None,
    ) -> R:
        """GET a provider endpoint and validate the payload into `record`."""
        if not self.api_key:
            raise ProviderError(
                "FOOTBALL_DATA_API_KEY is not set", competition=competition
            )

        try:
            response = self.client.get(path, params=params)
            return record.model_validate(response.json())
        except (RetryableError, ClientError, CircuitBreakerError) as e:
            self.log.warning(
                "provider_request_failed",
                competition=competition,
                path=path,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise ProviderError(
                f"football-data request failed: {e}",
                details={"path": path},
                competition=competition,
            ) from e
        except (ValueError, pydantic.ValidationError) as e:
            # ValueError covers undecodable JSON
            self.log.warning(
                "provider_payload_invalid",
                competition=competition,
                path=path,
                error=str(e),
            )
            raise ProviderError(
                f"football-data returned an invalid payload for {path}",
                details={"path": path},
                competition=competition,
            ) from e

    def get_teams(self, competition: str) -> list[ProviderTeam]:
        code = self._code(competition)
        payload = self._fetch(competition, f"/competitions/{code}/teams", ProviderTeams)
        self.log.debug("teams_fetched", competition=competition, count=len(payload.teams))
        return payload.teams

    def get_competition(self, competition: str) -> ProviderCompetition:
        code = self._code(competition)
        return self._fetch(competition, f"/competitions/{code}", ProviderCompetition)

    def get_fixtures(
        self,
        competition: str,
        statuses: Optional[Sequence[str]] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[ProviderFixture]:
        code = self._code(competition)
        params: dict[str, Any] = {}
        if statuses:
            params["status"] = ",".join(statuses)
        if date_from:
            params["dateFrom"] = date_from.isoformat()
        if date_to:
            params["dateTo"] = date_to.isoformat()

        payload = self._fetch(
            competition,
            f"/competitions/{code}/matches",
            ProviderFixtures,
            params=params or None,
        )
        self.log.debug(
            "fixtures_fetched",
            competition=competition,
            count=len(payload.matches),
            statuses=list(statuses) if statuses else None,
        )
        return payload.matches
