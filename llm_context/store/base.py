"""Abstract base class for conversation storage."""
from abc import ABC, abstractmethod

from llm_context.models import Conversation


class ContextStore(ABC):
    """Abstract interface for persisting conversations."""

    @abstractmethod
    async def get(self, conversation_id: int) -> Conversation | None:
        """Load a conversation by ID. Returns None if not found."""

    @abstractmethod
    async def save(self, conversation: Conversation) -> None:
        """Persist a conversation."""

    @abstractmethod
    async def delete(self, conversation_id: int) -> None:
        """Delete a conversation by ID. No-op if not found."""
