"""LLM-based context summarizer."""
from __future__ import annotations

import inspect
import re
from collections.abc import Awaitable, Callable, Sequence
from typing import assert_never

from llm_context.compaction.base import Summarizer
from llm_context.errors import SummarizationError
from llm_context.models import (
    ImageContent,
    ImageMessage,
    Message,
    TextContent,
    TextMessage,
    ToolMessage,
)

# (prompt_text, model_id) -> response_text, sync or async
LLMCallable = Callable[[str, str], "Awaitable[str] | str"]

DEFAULT_SUMMARY_TAG = "summary"

DEFAULT_PROMPT_TEMPLATE = """\
You are compacting the history of an ongoing agent conversation. The messages \
below will be replaced by your summary, so anything you leave out is lost to \
the agent.

<conversation>
{context}
</conversation>

Work through the conversation and write your analysis under these headings:

1. Primary request and intent: what the user asked for, in their terms.
2. Key technical details: files, commands, identifiers, values and decisions.
3. Tool activity: which tools were called, with what outcome, including errors.
4. Problems solved and open issues.
5. Pending tasks and the current state of work.
6. Next step: what the agent was about to do when this history ends.

Finish with the summary the agent will continue from, wrapped in \
<{summary_tag}></{summary_tag}> tags. Only the text inside the tags is kept."""


def extract_tagged(text: str, tag: str) -> str | None:
    """Return the content of the first ``<tag>...</tag>`` pair, or None.

    Matching is case-sensitive.
    """
    pattern = re.compile(
        rf"<{re.escape(tag)}>(.*?)</{re.escape(tag)}>",
        re.DOTALL,
    )
    match = pattern.search(text)
    if match is None:
        return None
    return match.group(1).strip()


class LLMSummarizer(Summarizer):
    """Summarizes messages using an LLM callable."""

    def __init__(
        self,
        llm_callable: LLMCallable,
        model: str,
        prompt_template: str | None = None,
        summary_tag: str | None = None,
    ) -> None:
        self._llm_callable = llm_callable
        self._model = model
        self._prompt_template = prompt_template
        self._summary_tag = summary_tag or DEFAULT_SUMMARY_TAG

    @property
    def summary_tag(self) -> str:
        return self._summary_tag

    def _format_message(self, msg: Message) -> str:
        match msg:
            case TextMessage():
                return f"{msg.role.value}: {msg.content}"
            case ToolMessage():
                parts = []
                for item in msg.output.values:
                    match item:
                        case TextContent():
                            parts.append(item.text)
                        case ImageContent():
                            parts.append(f"[image: {item.mime_type}]")
                        case _:
                            assert_never(item)
                status = "error" if msg.output.is_error else "result"
                body = "\n".join(parts)
                return f"tool {msg.name} ({msg.call_id}) {status}: {body}"
            case ImageMessage():
                return f"[image attachment: {msg.mime_type}]"
            case _:
                assert_never(msg)

    def _format_messages(self, messages: Sequence[Message]) -> str:
        return "\n".join(self._format_message(msg) for msg in messages)

    def build_prompt(self, messages: Sequence[Message]) -> str:
        template = self._prompt_template or DEFAULT_PROMPT_TEMPLATE
        return template.format(
            context=self._format_messages(messages),
            summary_tag=self._summary_tag,
        )

    def extract_summary(self, response: str) -> str:
        """Pull the tagged block out of a response, or keep it all if untagged."""
        extracted = extract_tagged(response, self._summary_tag)
        if extracted is None:
            return response
        return extracted

    async def summarize(self, messages: Sequence[Message]) -> str:
        prompt = self.build_prompt(messages)
        response = self._llm_callable(prompt, self._model)
        if inspect.isawaitable(response):
            response = await response
        if not isinstance(response, str):
            raise SummarizationError(
                f"Summarizer returned {type(response).__name__}, expected str"
            )
        return self.extract_summary(response)
