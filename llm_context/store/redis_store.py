"""Redis-backed implementation of ContextStore."""
from __future__ import annotations

import json
from typing import Any

from redis.asyncio import Redis

from llm_context.models import Conversation
from llm_context.store.base import ContextStore


class RedisContextStore(ContextStore):
    """Stores conversations as JSON strings in Redis."""

    def __init__(
        self,
        redis_client: Redis,
        prefix: str = "llm:ctx",
        ttl_seconds: int = 7 * 24 * 3600,
    ) -> None:
        self._redis = redis_client
        self._prefix = prefix
        self._ttl_seconds = ttl_seconds

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        prefix: str = "llm:ctx",
        ttl_seconds: int = 7 * 24 * 3600,
        ssl_cert_reqs: str | None = None,
        **redis_kwargs: Any,
    ) -> RedisContextStore:
        """Create a store from a Redis URL.

        Supports ``redis://`` and ``rediss://`` (TLS) schemes.

        Args:
            url: Redis connection URL.
            prefix: Key prefix for Redis keys.
            ttl_seconds: Time-to-live for stored conversations.
            ssl_cert_reqs: Pass ``"none"`` to skip certificate verification.
            **redis_kwargs: Extra keyword arguments forwarded to
                ``Redis.from_url()``.
        """
        kwargs: dict[str, Any] = {**redis_kwargs}

        if url.startswith("rediss://") and ssl_cert_reqs is not None:
            kwargs.setdefault("ssl_cert_reqs", ssl_cert_reqs)

        client = Redis.from_url(url, **kwargs)
        return cls(client, prefix=prefix, ttl_seconds=ttl_seconds)

    async def close(self) -> None:
        """Close the underlying Redis connection."""
        await self._redis.aclose()

    def _key(self, conversation_id: int) -> str:
        return f"{self._prefix}:{conversation_id}"

    async def get(self, conversation_id: int) -> Conversation | None:
        raw = await self._redis.get(self._key(conversation_id))
        if raw is None:
            return None
        return Conversation.from_dict(json.loads(raw))

    async def save(self, conversation: Conversation) -> None:
        key = self._key(conversation.conversation_id)
        data = json.dumps(conversation.to_dict())
        await self._redis.set(key, data, ex=self._ttl_seconds)

    async def delete(self, conversation_id: int) -> None:
        await self._redis.delete(self._key(conversation_id))
