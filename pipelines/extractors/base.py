"""
Base Extractor

Abstract base classes for data extractors.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Optional, Sequence

from core.logging import get_logger
from schemas.provider import ProviderCompetition, ProviderFixture, ProviderTeam


class BaseExtractor(ABC):
    """
    Abstract base class for data extractors.

    Extractors are responsible for fetching data from external sources
    with proper error handling and resilience, and return typed records
    (transformation is done by transformers).
    """

    def __init__(self, name: str):
        """
        Initialize extractor.

        Args:
            name: Extractor name for logging
        """
        self.name = name
        self.log = get_logger(f"extractor.{name}")

    @abstractmethod
    def extract(self, **kwargs: Any) -> Any:
        """
        Extract data from the source.

        Args:
            **kwargs: Source-specific parameters

        Returns:
            Extracted records
        """
        pass


class FixtureProvider(BaseExtractor):
    """
    Source of teams, seasons and fixtures for a competition.

    The sync layer depends only on this contract. Implementations raise
    ProviderError for every failure (network, HTTP status, payload shape).
    """

    def extract(self, **kwargs: Any) -> Any:
        """Not used directly - use the specific methods below."""
        raise NotImplementedError("Use get_teams, get_competition or get_fixtures")

    @abstractmethod
    def get_teams(self, competition: str) -> list[ProviderTeam]:
        """Teams currently entered in the competition."""

    @abstractmethod
    def get_competition(self, competition: str) -> ProviderCompetition:
        """Competition info including the current season."""

    @abstractmethod
    def get_fixtures(
        self,
        competition: str,
        statuses: Optional[Sequence[str]] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[ProviderFixture]:
        """
        Fixtures of the current season.

        Args:
            competition: premier_league or champions_league
            statuses: Provider statuses to filter by (e.g. FINISHED)
            date_from: First kickoff date to include
            date_to: Last kickoff date to include
        """
