"""Tests for llm_context.compaction layer."""
import asyncio
import logging
from unittest.mock import AsyncMock, Mock

import pytest

from llm_context.config import CompactConfig
from llm_context.models import (
    Context,
    ImageContent,
    ImageMessage,
    Role,
    TextContent,
    TextMessage,
    ToolMessage,
    ToolOutput,
)


def make_context(n):
    messages = []
    for i in range(n):
        if i % 2 == 0:
            messages.append(TextMessage.user(f"msg{i}"))
        else:
            messages.append(TextMessage.assistant(f"msg{i}"))
    return Context(tuple(messages))


class TestCompactionTriggerABC:
    def test_cannot_instantiate(self):
        from llm_context.compaction.base import CompactionTrigger

        with pytest.raises(TypeError):
            CompactionTrigger()

    def test_has_should_compact_method(self):
        from llm_context.compaction.base import CompactionTrigger

        assert hasattr(CompactionTrigger, "should_compact")


class TestSummarizerABC:
    def test_cannot_instantiate(self):
        from llm_context.compaction.base import Summarizer

        with pytest.raises(TypeError):
            Summarizer()


class TestMessageCountTrigger:
    def test_is_subclass(self):
        from llm_context.compaction.base import CompactionTrigger
        from llm_context.compaction.triggers import MessageCountTrigger

        assert issubclass(MessageCountTrigger, CompactionTrigger)

    def test_no_compact_below_threshold(self):
        from llm_context.compaction.triggers import MessageCountTrigger

        assert MessageCountTrigger(threshold=5).should_compact(make_context(3)) is False

    def test_compact_above_threshold(self):
        from llm_context.compaction.triggers import MessageCountTrigger

        assert MessageCountTrigger(threshold=5).should_compact(make_context(8)) is True

    def test_not_at_exactly_threshold(self):
        from llm_context.compaction.triggers import MessageCountTrigger

        assert MessageCountTrigger(threshold=5).should_compact(make_context(5)) is False

    def test_default_threshold_is_50(self):
        from llm_context.compaction.triggers import MessageCountTrigger

        trigger = MessageCountTrigger()
        assert trigger._threshold == 50


class TestTokenCountTrigger:
    def test_fires_above_threshold(self):
        from llm_context.compaction.triggers import TokenCountTrigger

        ctx = Context((TextMessage.user("a" * 400),))  # 100 + 4 overhead
        assert TokenCountTrigger(threshold=100).should_compact(ctx) is True
        assert TokenCountTrigger(threshold=104).should_compact(ctx) is False


class TestTurnCountTrigger:
    def test_counts_user_turns(self):
        from llm_context.compaction.triggers import TurnCountTrigger

        ctx = make_context(6)  # 3 user messages
        assert TurnCountTrigger(threshold=2).should_compact(ctx) is True
        assert TurnCountTrigger(threshold=3).should_compact(ctx) is False


class TestAnyTrigger:
    def test_empty_never_fires(self):
        from llm_context.compaction.triggers import AnyTrigger

        assert AnyTrigger().should_compact(make_context(1000)) is False

    def test_or_semantics(self):
        from llm_context.compaction.triggers import (
            AnyTrigger,
            MessageCountTrigger,
            TurnCountTrigger,
        )

        trigger = AnyTrigger([MessageCountTrigger(100), TurnCountTrigger(2)])
        fired = trigger.first_fired(make_context(6))
        assert isinstance(fired, TurnCountTrigger)

    def test_from_config_only_includes_configured(self):
        from llm_context.compaction.triggers import (
            MessageCountTrigger,
            TokenCountTrigger,
            triggers_from_config,
        )

        config = CompactConfig(
            model="m", retention_window=2, message_threshold=10, token_threshold=500
        )
        trigger = triggers_from_config(config)
        assert [type(t) for t in trigger.triggers] == [MessageCountTrigger, TokenCountTrigger]


class TestExtractTagged:
    def test_extracts_first_pair(self):
        from llm_context.compaction.summarizer import extract_tagged

        text = "<analysis>x</analysis><summary> first </summary><summary>second</summary>"
        assert extract_tagged(text, "summary") == "first"

    def test_multiline(self):
        from llm_context.compaction.summarizer import extract_tagged

        assert extract_tagged("<summary>\nline1\nline2\n</summary>", "summary") == "line1\nline2"

    def test_case_sensitive(self):
        from llm_context.compaction.summarizer import extract_tagged

        assert extract_tagged("<Summary>x</Summary>", "summary") is None

    def test_missing_close_tag(self):
        from llm_context.compaction.summarizer import extract_tagged

        assert extract_tagged("<summary>unterminated", "summary") is None

    def test_tag_with_regex_characters(self):
        from llm_context.compaction.summarizer import extract_tagged

        assert extract_tagged("<a.b>ok</a.b>", "a.b") == "ok"


class TestLLMSummarizer:
    def test_is_subclass(self):
        from llm_context.compaction.base import Summarizer
        from llm_context.compaction.summarizer import LLMSummarizer

        assert issubclass(LLMSummarizer, Summarizer)

    async def test_default_prompt_includes_messages_and_tag(self):
        from llm_context.compaction.summarizer import LLMSummarizer

        llm = AsyncMock(return_value="<summary>Short.</summary>")
        summarizer = LLMSummarizer(llm_callable=llm, model="small-model")

        result = await summarizer.summarize(
            [TextMessage.user("Hello"), TextMessage.assistant("Hi there!")]
        )

        assert result == "Short."
        llm.assert_awaited_once()
        prompt, model = llm.call_args[0]
        assert model == "small-model"
        assert "user: Hello" in prompt
        assert "assistant: Hi there!" in prompt
        assert "<summary></summary>" in prompt

    async def test_tool_and_image_messages_are_rendered(self):
        from llm_context.compaction.summarizer import LLMSummarizer

        llm = AsyncMock(return_value="ok")
        summarizer = LLMSummarizer(llm_callable=llm, model="m")

        await summarizer.summarize(
            [
                ToolMessage(
                    name="read_file",
                    call_id="call_9",
                    output=ToolOutput(
                        values=(TextContent("contents"), ImageContent("data:...", "image/png")),
                        is_error=True,
                    ),
                ),
                ImageMessage("data:...", "image/jpeg"),
            ]
        )

        prompt = llm.call_args[0][0]
        assert "tool read_file (call_9) error: contents" in prompt
        assert "[image: image/png]" in prompt
        assert "[image attachment: image/jpeg]" in prompt
        assert "data:..." not in prompt

    async def test_custom_prompt_template(self):
        from llm_context.compaction.summarizer import LLMSummarizer

        llm = AsyncMock(return_value="<recap>Custom.</recap>")
        template = "Custom template. Wrap in {summary_tag}. Messages:\n{context}"
        summarizer = LLMSummarizer(
            llm_callable=llm, model="m", prompt_template=template, summary_tag="recap"
        )

        result = await summarizer.summarize([TextMessage.user("Test")])

        assert result == "Custom."
        prompt = llm.call_args[0][0]
        assert prompt == "Custom template. Wrap in recap. Messages:\nuser: Test"

    async def test_missing_tag_returns_full_response(self):
        from llm_context.compaction.summarizer import LLMSummarizer

        raw = "Here is what happened, without any tags.\n"
        summarizer = LLMSummarizer(llm_callable=AsyncMock(return_value=raw), model="m")

        assert await summarizer.summarize([TextMessage.user("x")]) == raw

    async def test_sync_callable_supported(self):
        from llm_context.compaction.summarizer import LLMSummarizer

        llm = Mock(return_value="<summary>sync</summary>")
        summarizer = LLMSummarizer(llm_callable=llm, model="m")

        assert await summarizer.summarize([TextMessage.user("x")]) == "sync"

    async def test_non_string_response_raises(self):
        from llm_context.compaction.summarizer import LLMSummarizer
        from llm_context.errors import SummarizationError

        summarizer = LLMSummarizer(llm_callable=AsyncMock(return_value=None), model="m")

        with pytest.raises(SummarizationError):
            await summarizer.summarize([TextMessage.user("x")])

    def test_braces_in_messages_do_not_break_prompt(self):
        from llm_context.compaction.summarizer import LLMSummarizer

        summarizer = LLMSummarizer(llm_callable=AsyncMock(), model="m")

        prompt = summarizer.build_prompt([TextMessage.user('{"key": "{value}"}')])

        assert '{"key": "{value}"}' in prompt


class TestCompactor:
    @pytest.fixture
    def config(self):
        return CompactConfig(
            model="summarizer", retention_window=5, message_threshold=10, summary_tag="summary"
        )

    async def test_below_threshold_unchanged(self, config):
        from llm_context.compaction.compactor import CompactionStatus, Compactor

        llm = AsyncMock(return_value="<summary>unused</summary>")
        compactor = Compactor.from_config(config, llm)
        ctx = make_context(3)

        result = await compactor.compact(ctx)

        assert result.status is CompactionStatus.SKIPPED
        assert result.reason == "below_threshold"
        assert result.context is ctx
        llm.assert_not_awaited()

    async def test_compacts_to_summary_plus_retained(self, config):
        from llm_context.compaction.compactor import CompactionStatus, Compactor

        llm = AsyncMock(return_value="<analysis>...</analysis>\n<summary>The gist.</summary>")
        compactor = Compactor.from_config(config, llm)
        ctx = make_context(20)

        result = await compactor.compact(ctx)

        assert result.status is CompactionStatus.COMPACTED
        assert result.reason == "message_threshold"
        assert len(result.context) == 6
        assert result.context[0] == TextMessage(role=Role.ASSISTANT, content="The gist.")
        assert result.context[1:].messages == ctx[-5:].messages
        assert result.messages_before == 20
        assert result.messages_after == 6
        prompt = llm.call_args[0][0]
        assert "msg14" in prompt
        assert "msg15" not in prompt

    async def test_missing_tag_uses_raw_response(self, config):
        from llm_context.compaction.compactor import Compactor

        raw = "No tags here, just a summary of msg0 through msg14."
        compactor = Compactor.from_config(config, AsyncMock(return_value=raw))

        compacted = await compactor.apply(make_context(20))

        assert compacted[0].content == raw

    async def test_summarizer_failure_returns_input(self, config, caplog):
        from llm_context.compaction.compactor import CompactionStatus, Compactor

        llm = AsyncMock(side_effect=ConnectionError("provider unreachable"))
        compactor = Compactor.from_config(config, llm)
        ctx = make_context(20)

        with caplog.at_level(logging.WARNING, logger="llm_context.compaction.compactor"):
            result = await compactor.compact(ctx)

        assert result.status is CompactionStatus.FAILED
        assert result.context is ctx
        assert result.error == "provider unreachable"
        assert "summarization failed" in caplog.text

    async def test_cancelled_summarization_returns_input(self, config):
        from llm_context.compaction.compactor import CompactionStatus, Compactor

        llm = AsyncMock(side_effect=asyncio.CancelledError())
        compactor = Compactor.from_config(config, llm)
        ctx = make_context(20)

        result = await compactor.compact(ctx)

        assert result.status is CompactionStatus.FAILED
        assert result.error == "cancelled"
        assert result.context is ctx

    async def test_cancelling_caller_propagates(self, config):
        from llm_context.compaction.compactor import Compactor

        started = asyncio.Event()

        async def slow_llm(prompt, model):
            started.set()
            await asyncio.sleep(10)
            return "never"

        compactor = Compactor.from_config(config, slow_llm)
        task = asyncio.create_task(compactor.apply(make_context(20)))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

    async def test_retention_window_covers_everything(self):
        from llm_context.compaction.compactor import CompactionStatus, Compactor

        config = CompactConfig(model="m", retention_window=50, message_threshold=10)
        llm = AsyncMock()
        compactor = Compactor.from_config(config, llm)
        ctx = make_context(20)

        result = await compactor.compact(ctx)

        assert result.status is CompactionStatus.SKIPPED
        assert result.reason == "nothing_to_summarize"
        assert result.context is ctx
        llm.assert_not_awaited()

    async def test_zero_retention_summarizes_everything(self):
        from llm_context.compaction.compactor import Compactor

        config = CompactConfig(model="m", retention_window=0, message_threshold=1)
        compactor = Compactor.from_config(config, AsyncMock(return_value="<summary>all</summary>"))

        compacted = await compactor.apply(make_context(4))

        assert compacted == Context((TextMessage.assistant("all"),))

    async def test_no_thresholds_never_compacts(self):
        from llm_context.compaction.compactor import Compactor

        config = CompactConfig(model="m", retention_window=1)
        llm = AsyncMock()
        ctx = make_context(500)

        assert await Compactor.from_config(config, llm).apply(ctx) is ctx
        llm.assert_not_awaited()

    async def test_token_threshold_triggers(self):
        from llm_context.compaction.compactor import Compactor

        config = CompactConfig(model="m", retention_window=1, token_threshold=50)
        compactor = Compactor.from_config(config, AsyncMock(return_value="short"))
        ctx = Context(
            (TextMessage.user("a" * 400), TextMessage.assistant("done"))
        )

        result = await compactor.compact(ctx)

        assert result.reason == "token_threshold"
        assert len(result.context) == 2
        assert result.tokens_after < result.tokens_before

    async def test_turn_threshold_triggers(self):
        from llm_context.compaction.compactor import Compactor

        config = CompactConfig(model="m", retention_window=2, turn_threshold=2)
        compactor = Compactor.from_config(config, AsyncMock(return_value="s"))

        result = await compactor.compact(make_context(6))

        assert result.reason == "turn_threshold"
        assert len(result.context) == 3

    async def test_max_tokens_truncates_summary(self):
        from llm_context.budget import TokenEstimator
        from llm_context.compaction.compactor import Compactor

        config = CompactConfig(
            model="m", retention_window=1, message_threshold=1, max_tokens=10
        )
        long_summary = "word " * 200
        compactor = Compactor.from_config(config, AsyncMock(return_value=long_summary))

        compacted = await compactor.apply(make_context(4))

        assert long_summary.startswith(compacted[0].content)
        assert TokenEstimator().estimate_message_tokens(compacted[0]) <= 10

    async def test_max_tokens_below_overhead_leaves_empty_summary(self):
        from llm_context.compaction.compactor import Compactor

        config = CompactConfig(
            model="m", retention_window=1, message_threshold=1, max_tokens=2
        )
        compactor = Compactor.from_config(config, AsyncMock(return_value="word " * 50))

        compacted = await compactor.apply(make_context(4))

        assert compacted[0].content == ""

    async def test_custom_trigger_and_summarizer(self):
        from llm_context.compaction.base import CompactionTrigger, Summarizer
        from llm_context.compaction.compactor import Compactor

        class Always(CompactionTrigger):
            def should_compact(self, context):
                return True

        class Fixed(Summarizer):
            async def summarize(self, messages):
                return f"{len(messages)} messages"

        config = CompactConfig(model="m", retention_window=1)
        compactor = Compactor(config, Fixed(), trigger=Always())

        result = await compactor.compact(make_context(3))

        assert result.reason == "Always"
        assert result.context[0].content == "2 messages"

    async def test_input_context_not_mutated(self, config):
        from llm_context.compaction.compactor import Compactor

        ctx = make_context(20)
        snapshot = ctx.to_dict()
        compactor = Compactor.from_config(config, AsyncMock(return_value="s"))

        await compactor.apply(ctx)

        assert ctx.to_dict() == snapshot

    def test_result_log_extra(self):
        from llm_context.compaction.compactor import CompactionResult, CompactionStatus

        result = CompactionResult(
            context=Context(),
            status=CompactionStatus.COMPACTED,
            reason="message_threshold",
            messages_before=20,
            messages_after=6,
            tokens_before=400,
            tokens_after=120,
        )
        assert result.to_log_extra() == {
            "compaction_status": "compacted",
            "compaction_reason": "message_threshold",
            "messages_before": 20,
            "messages_after": 6,
            "tokens_before": 400,
            "tokens_after": 120,
        }
