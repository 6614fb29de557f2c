"""
Pipeline framework exports.

The registry lives in pipelines.registry; services import the extractor
and transformer subpackages directly, so this module stays import-light.
"""

from pipelines.base import BasePipeline
from pipelines.config import PipelineConfig
from pipelines.context import PipelineContext

__all__ = [
    "BasePipeline",
    "PipelineConfig",
    "PipelineContext",
]
