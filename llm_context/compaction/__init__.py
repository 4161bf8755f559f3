"""Context compaction: triggers, summarizers and the compaction transformer."""
from llm_context.compaction.base import CompactionTrigger, Summarizer
from llm_context.compaction.compactor import CompactionResult, CompactionStatus, Compactor
from llm_context.compaction.summarizer import LLMCallable, LLMSummarizer
from llm_context.compaction.triggers import (
    AnyTrigger,
    MessageCountTrigger,
    TokenCountTrigger,
    TurnCountTrigger,
    triggers_from_config,
)

__all__ = [
    "CompactionTrigger",
    "Summarizer",
    "Compactor",
    "CompactionResult",
    "CompactionStatus",
    "LLMCallable",
    "LLMSummarizer",
    "AnyTrigger",
    "MessageCountTrigger",
    "TokenCountTrigger",
    "TurnCountTrigger",
    "triggers_from_config",
]
