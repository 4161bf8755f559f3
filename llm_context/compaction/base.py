"""Abstract base classes for compaction."""
from abc import ABC, abstractmethod
from collections.abc import Sequence

from llm_context.models import Context, Message


class CompactionTrigger(ABC):
    """Determines when a context should be compacted."""

    @abstractmethod
    def should_compact(self, context: Context) -> bool:
        """Return True if the context should be compacted."""


class Summarizer(ABC):
    """Summarizes a run of messages into text."""

    @abstractmethod
    async def summarize(self, messages: Sequence[Message]) -> str:
        """Produce the summary text that replaces ``messages``."""
