"""Compaction transformer: summarize the old part of a context."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from llm_context.budget import TokenEstimator
from llm_context.compaction.base import CompactionTrigger, Summarizer
from llm_context.compaction.summarizer import LLMCallable, LLMSummarizer
from llm_context.compaction.triggers import AnyTrigger, triggers_from_config
from llm_context.config import CompactConfig
from llm_context.models import Context, TextMessage
from llm_context.transforms.base import Transformer

logger = logging.getLogger(__name__)


class CompactionStatus(str, Enum):
    SKIPPED = "skipped"
    COMPACTED = "compacted"
    FAILED = "failed"


@dataclass(frozen=True)
class CompactionResult:
    """Outcome of one compaction decision."""

    context: Context
    status: CompactionStatus
    reason: str
    messages_before: int
    messages_after: int
    tokens_before: int
    tokens_after: int
    error: str | None = None

    def to_log_extra(self) -> dict[str, Any]:
        return {
            "compaction_status": self.status.value,
            "compaction_reason": self.reason,
            "messages_before": self.messages_before,
            "messages_after": self.messages_after,
            "tokens_before": self.tokens_before,
            "tokens_after": self.tokens_after,
        }


class Compactor(Transformer):
    """Replaces everything but the retention window with one summary message.

    Compaction is due when any configured threshold is exceeded. If the
    summarizer fails the input context is returned unchanged.
    """

    def __init__(
        self,
        config: CompactConfig,
        summarizer: Summarizer,
        trigger: CompactionTrigger | None = None,
        estimator: TokenEstimator | None = None,
    ) -> None:
        self._config = config
        self._summarizer = summarizer
        self._estimator = estimator or TokenEstimator()
        self._trigger = trigger or triggers_from_config(config, self._estimator)

    @classmethod
    def from_config(
        cls,
        config: CompactConfig,
        llm_callable: LLMCallable,
        estimator: TokenEstimator | None = None,
    ) -> Compactor:
        summarizer = LLMSummarizer(
            llm_callable,
            model=config.model,
            prompt_template=config.prompt,
            summary_tag=config.summary_tag,
        )
        return cls(config, summarizer, estimator=estimator)

    @property
    def config(self) -> CompactConfig:
        return self._config

    def reason(self, context: Context) -> str | None:
        """Name of the threshold that makes compaction due, or None."""
        if isinstance(self._trigger, AnyTrigger):
            fired = self._trigger.first_fired(context)
            if fired is None:
                return None
            return getattr(fired, "name", type(fired).__name__)
        if self._trigger.should_compact(context):
            return getattr(self._trigger, "name", type(self._trigger).__name__)
        return None

    def _skip(
        self, context: Context, reason: str, tokens: int, error: str | None = None
    ) -> CompactionResult:
        return CompactionResult(
            context=context,
            status=CompactionStatus.FAILED if error else CompactionStatus.SKIPPED,
            reason=reason,
            messages_before=len(context),
            messages_after=len(context),
            tokens_before=tokens,
            tokens_after=tokens,
            error=error,
        )

    async def compact(self, context: Context) -> CompactionResult:
        tokens_before = self._estimator.estimate_context_tokens(context)

        reason = self.reason(context)
        if reason is None:
            logger.debug("[Compactor] no threshold exceeded, skipping")
            return self._skip(context, "below_threshold", tokens_before)

        retention = self._config.retention_window
        split = max(len(context) - retention, 0)
        head, tail = context[:split], context[split:]
        if not head:
            logger.debug(
                "[Compactor] %s exceeded but all %d messages are retained",
                reason,
                len(context),
            )
            return self._skip(context, "nothing_to_summarize", tokens_before)

        try:
            summary = await self._summarizer.summarize(head.messages)
        except asyncio.CancelledError:
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                raise
            logger.warning("[Compactor] summarization was cancelled, context left unchanged")
            return self._skip(context, reason, tokens_before, error="cancelled")
        except Exception as e:
            logger.warning(
                "[Compactor] summarization failed, context left unchanged: %s", e
            )
            return self._skip(context, reason, tokens_before, error=str(e) or type(e).__name__)

        if self._config.max_tokens is not None:
            # The budget covers the whole summary message, overhead included
            budget = max(self._config.max_tokens - self._estimator.MESSAGE_OVERHEAD, 0)
            summary = self._estimator.truncate_to_tokens(summary, budget)

        compacted = Context((TextMessage.assistant(summary),)).extend(tail)
        result = CompactionResult(
            context=compacted,
            status=CompactionStatus.COMPACTED,
            reason=reason,
            messages_before=len(context),
            messages_after=len(compacted),
            tokens_before=tokens_before,
            tokens_after=self._estimator.estimate_context_tokens(compacted),
        )
        logger.info(
            "[Compactor] %s exceeded, summarized %d messages (%d -> %d tokens)",
            reason,
            len(head),
            result.tokens_before,
            result.tokens_after,
            extra=result.to_log_extra(),
        )
        return result

    async def apply(self, context: Context) -> Context:
        result = await self.compact(context)
        return result.context
