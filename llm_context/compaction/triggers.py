"""Threshold-based compaction triggers."""
from __future__ import annotations

from collections.abc import Iterable

from llm_context.budget import TokenEstimator
from llm_context.compaction.base import CompactionTrigger
from llm_context.config import CompactConfig
from llm_context.models import Context


class MessageCountTrigger(CompactionTrigger):
    """Triggers compaction when message count exceeds a threshold."""

    name = "message_threshold"

    def __init__(self, threshold: int = 50) -> None:
        self._threshold = threshold

    def should_compact(self, context: Context) -> bool:
        return len(context) > self._threshold


class TokenCountTrigger(CompactionTrigger):
    """Triggers compaction when the estimated token count exceeds a threshold."""

    name = "token_threshold"

    def __init__(self, threshold: int, estimator: TokenEstimator | None = None) -> None:
        self._threshold = threshold
        self._estimator = estimator or TokenEstimator()

    def should_compact(self, context: Context) -> bool:
        return self._estimator.estimate_context_tokens(context) > self._threshold


class TurnCountTrigger(CompactionTrigger):
    """Triggers compaction when the number of user turns exceeds a threshold."""

    name = "turn_threshold"

    def __init__(self, threshold: int) -> None:
        self._threshold = threshold

    def should_compact(self, context: Context) -> bool:
        return context.turn_count() > self._threshold


class AnyTrigger(CompactionTrigger):
    """Fires when any of its triggers fires. Empty never fires."""

    name = "any"

    def __init__(self, triggers: Iterable[CompactionTrigger] = ()) -> None:
        self._triggers = tuple(triggers)

    @property
    def triggers(self) -> tuple[CompactionTrigger, ...]:
        return self._triggers

    def first_fired(self, context: Context) -> CompactionTrigger | None:
        for trigger in self._triggers:
            if trigger.should_compact(context):
                return trigger
        return None

    def should_compact(self, context: Context) -> bool:
        return self.first_fired(context) is not None


def triggers_from_config(
    config: CompactConfig, estimator: TokenEstimator | None = None
) -> AnyTrigger:
    """Build the OR of every threshold set in ``config``."""
    triggers: list[CompactionTrigger] = []
    if config.message_threshold is not None:
        triggers.append(MessageCountTrigger(config.message_threshold))
    if config.token_threshold is not None:
        triggers.append(TokenCountTrigger(config.token_threshold, estimator))
    if config.turn_threshold is not None:
        triggers.append(TurnCountTrigger(config.turn_threshold))
    return AnyTrigger(triggers)
