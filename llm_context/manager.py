"""ContextManager: loads conversations and prepares their context for a model call."""
from datetime import datetime, timezone

from llm_context.models import Context, Conversation, Message
from llm_context.store.base import ContextStore
from llm_context.transforms.base import Pipeline, Transformer


class ContextManager:
    """Orchestrates conversation loading, saving and context preparation."""

    def __init__(
        self,
        store: ContextStore,
        pipeline: Transformer | None = None,
    ) -> None:
        self._store = store
        self._pipeline = pipeline or Pipeline()

    async def load(self, conversation_id: int, agent_id: str | None = None) -> Conversation:
        """Load a conversation, creating a new one if it doesn't exist."""
        conversation = await self._store.get(conversation_id)
        if conversation is not None:
            return conversation
        now = datetime.now(timezone.utc)
        return Conversation(
            conversation_id=conversation_id,
            created_at=now,
            updated_at=now,
            agent_id=agent_id,
        )

    async def save(self, conversation: Conversation) -> None:
        await self._store.save(conversation)

    async def append_message(self, conversation_id: int, message: Message) -> Conversation:
        """Append a message to a conversation, saving afterward."""
        conversation = await self.load(conversation_id)
        conversation.context = conversation.context.append(message)
        conversation.updated_at = datetime.now(timezone.utc)
        await self.save(conversation)
        return conversation

    async def prepare(self, conversation_id: int) -> Context:
        """Run the pipeline over the stored context.

        The stored conversation is not modified.
        """
        conversation = await self.load(conversation_id)
        return await self._pipeline.apply(conversation.context)
