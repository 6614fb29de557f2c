"""
Data Extractors

Reusable components for fetching data from external sources.
"""

from pipelines.extractors.base import BaseExtractor, FixtureProvider
from pipelines.extractors.football_data import FootballDataExtractor

__all__ = [
    "BaseExtractor",
    "FixtureProvider",
    "FootballDataExtractor",
]
