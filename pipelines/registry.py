"""
Pipeline Registry

Registry of all available pipelines and helper functions for running them
by name.
"""

from typing import Optional, Type

from db.base import Store
from pipelines.base import BasePipeline
from pipelines.fixture_sync import FixtureSyncPipeline
from pipelines.match_results import MatchResultsPipeline
from schemas.pipeline import PipelineResult


# Order matters for the /all endpoint: fixtures must exist before results
PIPELINE_REGISTRY: dict[str, Type[BasePipeline]] = {
    "fixture_sync": FixtureSyncPipeline,
    "match_results": MatchResultsPipeline,
}


def get_pipeline(
    name: str,
    store: Optional[Store] = None,
    trigger: str = "scheduler",
    **kwargs,
) -> BasePipeline:
    """
    Get a pipeline instance by name.

    Args:
        name: Pipeline name (e.g., "fixture_sync")
        store: Storage context (defaults to the application store)
        trigger: Who started the run
        **kwargs: Passed to the pipeline constructor (e.g., provider)

    Raises:
        KeyError: If pipeline name not found
    """
    if name not in PIPELINE_REGISTRY:
        available = ", ".join(PIPELINE_REGISTRY.keys())
        raise KeyError(f"Unknown pipeline '{name}'. Available: {available}")

    return PIPELINE_REGISTRY[name](store=store, trigger=trigger, **kwargs)


async def run_pipeline(
    name: str,
    store: Optional[Store] = None,
    trigger: str = "api",
    **kwargs,
) -> PipelineResult:
    """Run a pipeline by name."""
    pipeline = get_pipeline(name, store=store, trigger=trigger, **kwargs)
    return await pipeline.run()


def list_pipelines() -> list[dict]:
    """List all available pipelines with their configurations."""
    return [cls.get_info() for cls in PIPELINE_REGISTRY.values()]
