"""Pre-configured defaults for llm-context."""
from __future__ import annotations

import os

from llm_context.store.redis_store import RedisContextStore

CONTEXT_REDIS_URL = "redis://localhost:6379/0"


def create_context_store(
    *,
    url: str | None = None,
    prefix: str = "llm:ctx",
    ttl_seconds: int = 7 * 24 * 3600,
) -> RedisContextStore:
    """Create a RedisContextStore.

    Resolution order for the Redis URL:
      1. Explicit ``url`` parameter
      2. ``LLM_CONTEXT_REDIS_URL`` environment variable
      3. ``redis://localhost:6379/0``
    """
    resolved_url = url or os.environ.get("LLM_CONTEXT_REDIS_URL") or CONTEXT_REDIS_URL
    return RedisContextStore.from_url(resolved_url, prefix=prefix, ttl_seconds=ttl_seconds)
