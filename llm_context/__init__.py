"""llm-context: prepares agent conversation context for model calls."""
from llm_context.budget import TokenEstimator
from llm_context.compaction.base import CompactionTrigger, Summarizer
from llm_context.compaction.compactor import CompactionResult, CompactionStatus, Compactor
from llm_context.compaction.summarizer import LLMSummarizer
from llm_context.compaction.triggers import (
    AnyTrigger,
    MessageCountTrigger,
    TokenCountTrigger,
    TurnCountTrigger,
)
from llm_context.config import AgentConfig, CompactConfig, WorkflowConfig
from llm_context.defaults import CONTEXT_REDIS_URL, create_context_store
from llm_context.errors import (
    AgentUndefinedError,
    ConfigError,
    ContextError,
    SummarizationError,
)
from llm_context.manager import ContextManager
from llm_context.models import (
    Context,
    Conversation,
    ImageContent,
    ImageMessage,
    Role,
    TextContent,
    TextMessage,
    ToolMessage,
    ToolOutput,
)
from llm_context.pipeline import build_pipeline
from llm_context.store.base import ContextStore
from llm_context.store.redis_store import RedisContextStore
from llm_context.transforms.base import Pipeline, Transformer
from llm_context.transforms.image_handling import ImageHandling

__all__ = [
    # Models
    "Role",
    "TextContent",
    "ImageContent",
    "ToolOutput",
    "ToolMessage",
    "TextMessage",
    "ImageMessage",
    "Context",
    "Conversation",
    # Token estimation
    "TokenEstimator",
    # Configuration
    "CompactConfig",
    "AgentConfig",
    "WorkflowConfig",
    # Errors
    "ContextError",
    "ConfigError",
    "AgentUndefinedError",
    "SummarizationError",
    # Transformers
    "Transformer",
    "Pipeline",
    "ImageHandling",
    "build_pipeline",
    # Compaction
    "CompactionTrigger",
    "Summarizer",
    "MessageCountTrigger",
    "TokenCountTrigger",
    "TurnCountTrigger",
    "AnyTrigger",
    "LLMSummarizer",
    "Compactor",
    "CompactionResult",
    "CompactionStatus",
    # Storage
    "ContextStore",
    "RedisContextStore",
    # Manager
    "ContextManager",
    # Defaults
    "CONTEXT_REDIS_URL",
    "create_context_store",
]
