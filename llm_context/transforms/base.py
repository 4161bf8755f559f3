"""Transformer contract and sequential composition."""
from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable

from llm_context.models import Context


class Transformer(ABC):
    """Turns one context into another without mutating the input."""

    @abstractmethod
    async def apply(self, context: Context) -> Context:
        """Return the transformed context."""


class Pipeline(Transformer):
    """Applies transformers in order, each seeing the previous output."""

    def __init__(self, transformers: Iterable[Transformer] = ()) -> None:
        self._transformers = tuple(transformers)

    @property
    def transformers(self) -> tuple[Transformer, ...]:
        return self._transformers

    def then(self, transformer: Transformer) -> Pipeline:
        """Return a new pipeline with ``transformer`` appended."""
        return Pipeline(self._transformers + (transformer,))

    async def apply(self, context: Context) -> Context:
        for transformer in self._transformers:
            context = await transformer.apply(context)
        return context
