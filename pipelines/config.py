"""
Pipeline Configuration

Static metadata each pipeline declares as its `config` class attribute.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class PipelineConfig:
    """
    Attributes:
        name: Registry key and PipelineRun.pipeline_name ("fixture_sync")
        display_name: Label for the admin listing ("Fixture Sync")
        description: One line for the admin listing
        target_table: Table the run mainly writes ("match", "prediction")
    """

    name: str
    display_name: str
    description: str
    target_table: str

    def __post_init__(self):
        for attr in ("name", "target_table"):
            if not getattr(self, attr):
                raise ValueError(f"PipelineConfig.{attr} is required")
