"""
Fixture Sync Pipeline

Syncs teams, the current season and every fixture of each supported
competition from football-data.org.
"""

from typing import Optional

from core.settings import settings
from db.base import Store
from pipelines.base import BasePipeline
from pipelines.config import PipelineConfig
from pipelines.context import PipelineContext
from pipelines.extractors import FixtureProvider, FootballDataExtractor
from services.sync_service import SyncService


class FixtureSyncPipeline(BasePipeline):
    """
    Full reconciliation of provider data into the store.

    This pipeline:
    1. Upserts the competition's teams
    2. Marks the provider's current season as current
    3. Regroups fixtures into gameweeks and matchdays and upserts them

    Competitions are synced one after another. A provider failure for one
    competition is recorded and the rest still sync; the run is then marked
    failed so operators see it.
    """

    config = PipelineConfig(
        name="fixture_sync",
        display_name="Fixture Sync",
        description="Syncs teams, seasons, gameweeks and matches from football-data.org",
        target_table="match",
    )

    def __init__(
        self,
        store: Optional[Store] = None,
        trigger: str = "scheduler",
        provider: Optional[FixtureProvider] = None,
    ):
        super().__init__(store=store, trigger=trigger)
        self.provider = provider or FootballDataExtractor()

    def execute(self, ctx: PipelineContext) -> None:
        """Execute the fixture sync pipeline."""
        service = SyncService.from_settings(self.store, self.provider, settings)
        results = service.sync_all()

        for competition, result in results.items():
            ctx.increment_records(result.teams + result.matches)
            ctx.details[competition] = result.to_dict()
            if not result.ok:
                ctx.failures[competition] = result.error

        ctx.raise_for_failures("Sync")
