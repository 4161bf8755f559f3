"""Token estimation for contexts and summaries."""
from __future__ import annotations

from typing import assert_never

from llm_context.models import (
    Context,
    ImageContent,
    ImageMessage,
    Message,
    TextContent,
    TextMessage,
    ToolMessage,
)


class TokenEstimator:
    """Heuristic token counter.

    Provides:
    - Token estimation for text, messages and whole contexts
    - Prefix truncation of text to a token budget
    """

    # Rough estimation: 1 token ≈ 4 chars (English), ≈ 1.5 chars (Chinese)
    CHARS_PER_TOKEN_EN = 4
    CHARS_PER_TOKEN_ZH = 1.5

    # Role and formatting overhead per message
    MESSAGE_OVERHEAD = 4

    def estimate_tokens(self, text: str | None) -> int:
        """Estimate token count for given text.

        Uses a simple heuristic based on character count and
        Chinese/English ratio.
        """
        if not text:
            return 0

        chinese_chars = sum(1 for c in text if "\u4e00" <= c <= "\u9fff")
        total_chars = len(text)
        chinese_ratio = chinese_chars / total_chars

        # Weighted average based on language mix
        avg_chars_per_token = (
            self.CHARS_PER_TOKEN_ZH * chinese_ratio
            + self.CHARS_PER_TOKEN_EN * (1 - chinese_ratio)
        )

        return int(total_chars / avg_chars_per_token)

    def estimate_message_tokens(self, message: Message) -> int:
        """Estimate tokens for one message.

        Image payloads are not counted; a data URI's length says nothing
        about what the provider charges for the image.
        """
        match message:
            case TextMessage():
                body = self.estimate_tokens(message.content)
            case ToolMessage():
                body = 0
                for item in message.output.values:
                    match item:
                        case TextContent():
                            body += self.estimate_tokens(item.text)
                        case ImageContent():
                            pass
                        case _:
                            assert_never(item)
            case ImageMessage():
                body = 0
            case _:
                assert_never(message)
        return body + self.MESSAGE_OVERHEAD

    def estimate_context_tokens(self, context: Context) -> int:
        """Estimate total tokens for a context."""
        return sum(self.estimate_message_tokens(m) for m in context)

    def truncate_to_tokens(self, text: str, max_tokens: int) -> str:
        """Keep the longest prefix of ``text`` estimated within ``max_tokens``."""
        if self.estimate_tokens(text) <= max_tokens:
            return text

        lo, hi = 0, len(text)
        while lo < hi:
            mid = (lo + hi + 1) // 2
            if self.estimate_tokens(text[:mid]) <= max_tokens:
                lo = mid
            else:
                hi = mid - 1
        return text[:lo]
