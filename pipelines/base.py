"""
Base Pipeline

Run lifecycle shared by the fixture sync and match results jobs.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import ClassVar, Optional

from core.logging import pipeline_log_context
from db.base import Store, get_store
from pipelines.config import PipelineConfig
from pipelines.context import PipelineContext
from schemas.pipeline import PipelineResult


class BasePipeline(ABC):
    """
    A named, tracked job over the store.

    run_sync() opens a connection for the calling thread, records a
    PipelineRun, runs execute() with every log line bound to the run, and
    closes the run as success or failed. An exception from execute() never
    escapes; it becomes a failed PipelineResult.

    Subclasses set `config` and implement execute():

        class MatchResultsPipeline(BasePipeline):
            config = PipelineConfig(
                name="match_results",
                display_name="Match Results",
                description="Updates results and scores predictions",
                target_table="prediction",
            )

            def execute(self, ctx: PipelineContext) -> None:
                ctx.details["matches_scored"] = ScoringService(self.store).score_pending_matches()
    """

    config: ClassVar[PipelineConfig]

    def __init__(self, store: Optional[Store] = None, trigger: str = "scheduler"):
        """
        Args:
            store: Storage context (defaults to the application store)
            trigger: Who started the run: scheduler, api or script
        """
        if getattr(self.__class__, "config", None) is None:
            raise ValueError(f"{self.__class__.__name__} must define a 'config' class attribute")
        self.store = store or get_store()
        self.trigger = trigger

    @abstractmethod
    def execute(self, ctx: PipelineContext) -> None:
        """
        The job itself. Runs in a worker thread, so blocking provider and
        database calls are fine here.
        """

    def run_sync(self) -> PipelineResult:
        """Run the whole lifecycle in the calling thread."""
        # peewee connections are per thread
        with self.store.connection():
            ctx = PipelineContext(self.config.name, trigger=self.trigger)
            ctx.start_tracking()

            with pipeline_log_context(self.config.name, str(ctx.run_id), self.trigger):
                try:
                    self.execute(ctx)
                except Exception as e:
                    return ctx.mark_failed(e)
                return ctx.mark_success()

    async def run(self) -> PipelineResult:
        """Run in a worker thread so the event loop (and the API) stays responsive."""
        return await asyncio.to_thread(self.run_sync)

    @classmethod
    def get_name(cls) -> str:
        return cls.config.name

    @classmethod
    def get_info(cls) -> dict:
        """Listing entry for the admin API."""
        return {
            "name": cls.config.name,
            "display_name": cls.config.display_name,
            "description": cls.config.description,
            "target_table": cls.config.target_table,
        }

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name={self.config.name}, trigger={self.trigger})>"
