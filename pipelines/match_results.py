"""
Match Results Pipeline

Pulls live and recently finished results, rescores the finished matches it
wrote and then scores every finished match that still has unscored
predictions.
"""

from typing import Optional

from core.settings import settings
from db.base import Store
from pipelines.base import BasePipeline
from pipelines.config import PipelineConfig
from pipelines.context import PipelineContext
from pipelines.extractors import FixtureProvider, FootballDataExtractor
from services.scoring import ScoringService
from services.sync_service import SyncService
from utils.constants import SUPPORTED_COMPETITIONS


class MatchResultsPipeline(BasePipeline):
    """
    Refresh match results and score predictions.

    Scoring runs over the whole store, not just the matches changed in this
    run, so a match finished during an earlier failed run is still picked up.
    """

    config = PipelineConfig(
        name="match_results",
        display_name="Match Results",
        description="Updates live and finished match results and scores predictions",
        target_table="prediction",
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
        """Execute the match results pipeline."""
        sync = SyncService.from_settings(self.store, self.provider, settings)
        scoring = ScoringService(self.store)

        finished: list[str] = []
        for competition in SUPPORTED_COMPETITIONS:
            try:
                update = sync.apply_match_results(competition)
            except Exception as e:
                ctx.record_failure(competition, e)
                continue
            finished.extend(update.finished)
            ctx.increment_records(update.changed)
            ctx.details[f"{competition}_matches_changed"] = update.changed

        # Corrected scores on already-scored matches are not pending
        scored = scoring.rescore_matches(finished)
        scored += scoring.score_pending_matches()
        ctx.increment_records(scored)
        ctx.details["matches_scored"] = scored

        ctx.raise_for_failures("Results update")
