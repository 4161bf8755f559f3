"""Standard transformer pipeline for preparing a context."""
from __future__ import annotations

from llm_context.budget import TokenEstimator
from llm_context.compaction.compactor import Compactor
from llm_context.compaction.summarizer import LLMCallable
from llm_context.config import CompactConfig
from llm_context.errors import ConfigError
from llm_context.transforms.base import Pipeline, Transformer
from llm_context.transforms.image_handling import ImageHandling


def build_pipeline(
    compact_config: CompactConfig | None = None,
    llm_callable: LLMCallable | None = None,
    estimator: TokenEstimator | None = None,
) -> Pipeline:
    """Build the ImageHandling -> Compactor pipeline.

    Compaction is left out when ``compact_config`` is None.

    Raises:
        ConfigError: A compact config was given without an LLM callable.
    """
    stages: list[Transformer] = [ImageHandling()]
    if compact_config is not None:
        if llm_callable is None:
            raise ConfigError("Compaction requires a summarization callable")
        stages.append(Compactor.from_config(compact_config, llm_callable, estimator))
    return Pipeline(stages)
