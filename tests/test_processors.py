"""
Tests for the processor pipeline and the built-in processors.
"""

from concurrent.futures import ThreadPoolExecutor

import pytest

from langchain_recall.memory.errors import ConfigurationError, TokenizerError
from langchain_recall.memory.messages import (
    AudioPart,
    ImagePart,
    Message,
    ReasoningPart,
    Role,
    TextPart,
    ToolCallPart,
    ToolResultPart,
    assistant,
    tool,
    user,
)
from langchain_recall.memory.pipeline import ProcessorPipeline, run_processors
from langchain_recall.memory.processors import (
    BASE64_BLOB_PATTERN,
    ContentTypeFilter,
    PatternRedactor,
    TokenLimiter,
    ToolCallFilter,
    ToolResultTruncator,
)
from langchain_recall.memory.tokenizer import (
    MEDIA_PART_TOKENS,
    TOKENS_PER_MESSAGE,
    Tokenizer,
)


def _sized(tokens: int, role: Role = Role.USER, tag: str = "x") -> Message:
    """A plain-text message costing exactly `tokens` with the char tokenizer."""
    return Message(role, tag * (tokens - TOKENS_PER_MESSAGE))


def _assert_paired(messages):
    call_ids = set()
    for msg in messages:
        for part in msg.parts:
            if isinstance(part, ToolCallPart):
                call_ids.add(part.call_id)
            elif isinstance(part, ToolResultPart):
                assert part.call_id in call_ids, f"orphaned result {part.call_id}"


def _tool_conversation():
    return [
        user("Find the weather and the time"),
        assistant([
            TextPart("Looking that up."),
            ToolCallPart("call_a", "weather", {"city": "Oslo"}),
            ToolCallPart("call_b", "clock", {"tz": "CET"}),
        ]),
        tool([ToolResultPart("call_a", "weather", "Rain, 7C")]),
        tool([ToolResultPart("call_b", "clock", "14:02")]),
        assistant("It is raining in Oslo and the time is 14:02."),
    ]


class _Recorder:
    def __init__(self, name, log):
        self.name = name
        self.log = log

    def process(self, messages):
        self.log.append(self.name)
        return messages[1:]


class _Broken:
    name = "Broken"

    def process(self, messages):
        raise RuntimeError("processor blew up")


# ── Pipeline Tests ──


class TestPipeline:
    def test_empty_pipeline_returns_input_unchanged(self):
        messages = [user("a"), assistant("b"), user("c")]
        result = run_processors(messages, [])
        assert result == messages
        assert result is not messages

    def test_processors_run_in_order(self):
        log = []
        pipeline = ProcessorPipeline([_Recorder("first", log), _Recorder("second", log)])
        messages = [user("a"), assistant("b"), user("c")]
        result = pipeline.run(messages)
        assert log == ["first", "second"]
        assert result == [user("c")]

    def test_order_preserved_across_processors(self, char_tokenizer):
        messages = _tool_conversation()
        pipeline = ProcessorPipeline([
            ToolCallFilter(),
            TokenLimiter(limit=10_000, tokenizer=char_tokenizer),
        ])
        result = pipeline.run(messages)
        # Filtered messages are new values; compare by their surviving text
        texts = [m.text() for m in messages]
        positions = [texts.index(m.text()) for m in result]
        assert positions == sorted(positions)

    def test_processor_error_propagates(self, char_tokenizer):
        pipeline = ProcessorPipeline([_Broken(), TokenLimiter(100, tokenizer=char_tokenizer)])
        with pytest.raises(RuntimeError, match="blew up"):
            pipeline.run([user("hello")])

    def test_rejects_non_processor(self):
        with pytest.raises(ConfigurationError):
            ProcessorPipeline([object()])

    def test_input_not_mutated(self, char_tokenizer):
        messages = _tool_conversation()
        snapshot = list(messages)
        pipeline = ProcessorPipeline([
            ContentTypeFilter(),
            ToolCallFilter(exclude={"weather"}),
            ToolResultTruncator(max_chars=3),
            TokenLimiter(limit=60, tokenizer=char_tokenizer),
        ])
        pipeline.run(messages)
        assert messages == snapshot
        assert all(a is b for a, b in zip(messages, snapshot))

    def test_repr_lists_processor_names(self, char_tokenizer):
        pipeline = ProcessorPipeline([ToolCallFilter(), TokenLimiter(10, tokenizer=char_tokenizer)])
        assert pipeline.names == ["ToolCallFilter", "TokenLimiter"]
        assert "ToolCallFilter -> TokenLimiter" in repr(pipeline)

    def test_concurrent_runs_share_pipeline(self, char_tokenizer):
        pipeline = ProcessorPipeline([TokenLimiter(limit=2000, tokenizer=char_tokenizer)])
        batches = [[_sized(1000, tag=str(i)) for _ in range(5)] for i in range(8)]
        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(pipeline.run, batches))
        for i, result in enumerate(results):
            assert len(result) == 2
            assert all(m.content.startswith(str(i)) for m in result)


# ── Token Limiter Tests ──


class TestTokenLimiter:
    def test_keeps_messages_within_limit(self, char_tokenizer):
        messages = [_sized(1000) for _ in range(5)]
        limiter = TokenLimiter(limit=2500, tokenizer=char_tokenizer)
        result = limiter.process(messages)
        assert len(result) == 2
        assert sum(limiter.count_tokens(m) for m in result) <= 2500

    def test_all_messages_fit(self, char_tokenizer):
        messages = [_sized(100) for _ in range(5)]
        result = TokenLimiter(limit=500, tokenizer=char_tokenizer).process(messages)
        assert result == messages

    def test_result_is_contiguous_suffix(self, char_tokenizer):
        small_old = _sized(100, tag="a")
        big = _sized(5000, tag="b")
        recent = [_sized(100, tag="c"), _sized(100, tag="d")]
        messages = [small_old, big, *recent]
        result = TokenLimiter(limit=1000, tokenizer=char_tokenizer).process(messages)
        # small_old would fit on its own but is behind the message that broke the budget
        assert result == recent

    def test_oversized_most_recent_message_kept_alone(self, char_tokenizer):
        messages = [_sized(100, tag="a"), _sized(5000, tag="b")]
        result = TokenLimiter(limit=1000, tokenizer=char_tokenizer).process(messages)
        assert result == [messages[1]]

    def test_oversized_older_message_dropped(self, char_tokenizer):
        messages = [_sized(5000, tag="a"), _sized(600, tag="b")]
        result = TokenLimiter(limit=1000, tokenizer=char_tokenizer).process(messages)
        assert result == [messages[1]]

    def test_zero_limit_returns_nothing(self, char_tokenizer):
        result = TokenLimiter(limit=0, tokenizer=char_tokenizer).process([user("hi")])
        assert result == []

    def test_empty_input(self, char_tokenizer):
        assert TokenLimiter(limit=100, tokenizer=char_tokenizer).process([]) == []

    @pytest.mark.parametrize("limit", [-1, 1.5, True, "100"])
    def test_invalid_limit(self, limit):
        with pytest.raises(ConfigurationError):
            TokenLimiter(limit=limit, encoding="estimate")

    def test_tokenizer_and_encoding_are_exclusive(self, char_tokenizer):
        with pytest.raises(ConfigurationError):
            TokenLimiter(limit=10, tokenizer=char_tokenizer, encoding="estimate")

    def test_unknown_encoding(self):
        with pytest.raises(ConfigurationError):
            TokenLimiter(limit=10, encoding="no-such-encoding")

    def test_estimate_encoding(self):
        limiter = TokenLimiter(limit=10, encoding="estimate")
        result = limiter.process([user("a" * 300), user("b" * 15)])
        assert result == [user("b" * 15)]

    def test_invalid_token_count_raises(self):
        limiter = TokenLimiter(limit=10, tokenizer=Tokenizer("bad", lambda text: -1))
        with pytest.raises(TokenizerError):
            limiter.process([user("hello")])

    def test_tokenizer_exception_propagates(self):
        def explode(text):
            raise LookupError("encoding table missing")

        limiter = TokenLimiter(limit=10, tokenizer=Tokenizer("broken", explode))
        with pytest.raises(LookupError):
            limiter.process([user("hello")])

    def test_counts_tool_parts(self, char_tokenizer):
        limiter = TokenLimiter(limit=10, tokenizer=char_tokenizer)
        msg = assistant([
            TextPart("hello"),
            ToolCallPart("c1", "search", {"q": "hi"}),
            ToolResultPart("c1", "search", "found"),
        ])
        expected = TOKENS_PER_MESSAGE + len("hello") + len('search{"q": "hi"}') + len("found")
        assert limiter.count_tokens(msg) == expected

    def test_media_parts_use_fixed_estimate(self, char_tokenizer):
        limiter = TokenLimiter(limit=10, tokenizer=char_tokenizer)
        msg = user([ImagePart("A" * 10_000, "image/png")])
        assert limiter.count_tokens(msg) == TOKENS_PER_MESSAGE + MEDIA_PART_TOKENS + len("image/png")


# ── Tool Call Filter Tests ──


class TestToolCallFilter:
    def test_removes_all_tool_content_by_default(self):
        result = ToolCallFilter().process(_tool_conversation())
        assert len(result) == 3
        for msg in result:
            assert not any(isinstance(p, (ToolCallPart, ToolResultPart)) for p in msg.parts)
        assert result[1].content == (TextPart("Looking that up."),)

    def test_tool_only_message_is_dropped(self):
        messages = [
            user("run it"),
            assistant([ToolCallPart("c1", "runner", {})]),
            tool([ToolResultPart("c1", "runner", "ok")]),
            assistant("Done."),
        ]
        result = ToolCallFilter().process(messages)
        assert result == [user("run it"), assistant("Done.")]

    def test_plain_text_never_emptied(self):
        messages = [user(""), assistant("plain")]
        assert ToolCallFilter().process(messages) == messages

    def test_scoped_filter_keeps_other_tools(self):
        result = ToolCallFilter(exclude={"weather"}).process(_tool_conversation())
        calls = [p for m in result for p in m.parts if isinstance(p, ToolCallPart)]
        results = [p for m in result for p in m.parts if isinstance(p, ToolResultPart)]
        assert [c.tool_name for c in calls] == ["clock"]
        assert [r.call_id for r in results] == ["call_b"]
        # The weather result message became empty and was dropped
        assert len(result) == 4
        _assert_paired(result)

    def test_pairing_holds_for_same_message_results(self):
        messages = [
            assistant([
                ToolCallPart("c1", "toolA", {}),
                ToolResultPart("c1", "toolA", "a"),
                ToolCallPart("c2", "toolB", {}),
                ToolResultPart("c2", "toolB", "b"),
            ]),
        ]
        result = ToolCallFilter(exclude=["toolA"]).process(messages)
        assert result[0].content == (
            ToolCallPart("c2", "toolB", {}),
            ToolResultPart("c2", "toolB", "b"),
        )
        _assert_paired(result)

    def test_reused_call_id_across_turns(self):
        messages = [
            assistant([ToolCallPart("c1", "toolA", {})]),
            tool([ToolResultPart("c1", "toolA", "a")]),
            assistant([ToolCallPart("c1", "toolB", {})]),
            tool([ToolResultPart("c1", "toolB", "b")]),
        ]
        result = ToolCallFilter(exclude={"toolA"}).process(messages)
        assert result == messages[2:]
        _assert_paired(result)

    def test_reused_call_id_within_one_message(self):
        messages = [
            assistant([
                ToolCallPart("c1", "toolA", {}),
                ToolResultPart("c1", "toolA", "a"),
                ToolCallPart("c1", "toolB", {}),
                ToolResultPart("c1", "toolB", "b"),
            ]),
        ]
        result = ToolCallFilter(exclude={"toolA"}).process(messages)
        assert result[0].content == (
            ToolCallPart("c1", "toolB", {}),
            ToolResultPart("c1", "toolB", "b"),
        )

    def test_kept_result_after_excluded_result(self):
        messages = [
            user("compare"),
            assistant([
                ToolCallPart("c1", "toolA", {}),
                ToolCallPart("c2", "toolB", {}),
            ]),
            tool([ToolResultPart("c1", "toolA", "a")]),
            tool([ToolResultPart("c2", "toolB", "b")]),
        ]
        result = ToolCallFilter(exclude={"toolA"}).process(messages)
        assert [m.content for m in result[1:]] == [
            (ToolCallPart("c2", "toolB", {}),),
            (ToolResultPart("c2", "toolB", "b"),),
        ]
        _assert_paired(result)

    def test_results_out_of_order(self):
        messages = [
            assistant([
                ToolCallPart("c1", "toolA", {}),
                ToolCallPart("c2", "toolB", {}),
            ]),
            tool([ToolResultPart("c2", "toolB", "b")]),
            tool([ToolResultPart("c1", "toolA", "a")]),
        ]
        result = ToolCallFilter(exclude={"toolA"}).process(messages)
        assert len(result) == 2
        assert result[1] is messages[1]
        _assert_paired(result)

    def test_result_without_tool_name_follows_call_id(self):
        messages = [
            assistant([ToolCallPart("c1", "toolA", {})]),
            tool([ToolResultPart("c1", result="a")]),
            user("next"),
        ]
        result = ToolCallFilter(exclude={"toolA"}).process(messages)
        assert result == [user("next")]

    def test_result_naming_other_tool_is_kept(self):
        other = tool([ToolResultPart("c1", "toolB", "b")])
        messages = [assistant([ToolCallPart("c1", "toolA", {})]), other]
        result = ToolCallFilter(exclude={"toolA"}).process(messages)
        assert result == [other]

    def test_orphan_result_passes_through(self):
        orphan = tool([ToolResultPart("ghost", "weather", "sunny")])
        messages = [user("hi"), orphan]
        result = ToolCallFilter(exclude={"weather"}).process(messages)
        assert result == messages

    def test_untouched_messages_are_shared(self):
        messages = _tool_conversation()
        result = ToolCallFilter(exclude={"weather"}).process(messages)
        assert result[0] is messages[0]
        assert result[-1] is messages[-1]

    def test_bare_string_exclude_rejected(self):
        with pytest.raises(ConfigurationError):
            ToolCallFilter(exclude="weather")

    def test_non_string_tool_name_rejected(self):
        with pytest.raises(ConfigurationError):
            ToolCallFilter(exclude={"weather", 3})

    def test_empty_exclude_filters_everything(self):
        assert ToolCallFilter(exclude=set()).excluded_tools == frozenset()
        result = ToolCallFilter(exclude=[]).process(_tool_conversation())
        assert len(result) == 3


# ── Composition Tests ──


class TestComposition:
    def _messages(self):
        body = "y" * (1000 - TOKENS_PER_MESSAGE)
        with_tools = assistant([
            TextPart(body),
            # "toolA" + 245 chars of args + 250 chars of result = 500 tokens
            ToolCallPart("c1", "toolA", "a" * 245),
            ToolResultPart("c1", "toolA", "r" * 250),
        ])
        return [
            _sized(1000, tag="0"),
            with_tools,
            _sized(1000, role=Role.ASSISTANT, tag="2"),
            _sized(1000, tag="3"),
            _sized(1000, role=Role.ASSISTANT, tag="4"),
        ]

    def test_order_changes_kept_count(self, char_tokenizer):
        messages = self._messages()
        limiter = TokenLimiter(limit=4000, tokenizer=char_tokenizer)
        assert limiter.count_tokens(messages[1]) == 1500

        tool_filter = ToolCallFilter(exclude={"toolA"})

        filter_first = run_processors(messages, [tool_filter, limiter])
        limit_first = run_processors(messages, [limiter, tool_filter])

        assert len(filter_first) == 4
        assert len(limit_first) == 3
        assert sum(limiter.count_tokens(m) for m in filter_first) == 4000
        assert sum(limiter.count_tokens(m) for m in limit_first) == 3000


# ── Content Type Filter Tests ──


class TestContentTypeFilter:
    def test_strips_reasoning_by_default(self):
        msg = assistant([ReasoningPart("Let me think..."), TextPart("Answer.")])
        result = ContentTypeFilter().process([msg])
        assert result[0].content == (TextPart("Answer."),)

    def test_drops_message_left_empty(self):
        messages = [user([AudioPart("UklGRg==", "audio/wav")]), user("transcript")]
        result = ContentTypeFilter(exclude_kinds=["audio"]).process(messages)
        assert result == [user("transcript")]

    def test_leaves_unrelated_messages_alone(self):
        messages = [user("hello"), assistant([TextPart("hi")])]
        result = ContentTypeFilter(exclude_kinds="image").process(messages)
        assert all(a is b for a, b in zip(result, messages))

    @pytest.mark.parametrize("kinds", [["tool-call"], ["tool-result"], ["text"], ["video"]])
    def test_rejected_kinds(self, kinds):
        with pytest.raises(ConfigurationError):
            ContentTypeFilter(exclude_kinds=kinds)


# ── Tool Result Truncator Tests ──


class TestToolResultTruncator:
    def test_truncates_long_result(self):
        msg = tool([ToolResultPart("c1", "fetch", "x" * 500)])
        result = ToolResultTruncator(max_chars=200).process([msg])
        part = result[0].content[0]
        assert part.call_id == "c1"
        assert part.result.startswith("x" * 200)
        assert "truncated" in part.result
        assert len(part.result) < 500

    def test_serializes_structured_result(self):
        msg = tool([ToolResultPart("c1", "fetch", {"rows": list(range(100))})])
        part = ToolResultTruncator(max_chars=20).process([msg])[0].content[0]
        assert part.result.startswith('{"rows": [0, 1, 2')

    def test_short_result_unchanged(self):
        msg = tool([ToolResultPart("c1", "fetch", "short")])
        result = ToolResultTruncator(max_chars=200).process([msg])
        assert result[0].content[0] is msg.content[0]

    def test_invalid_max_chars(self):
        with pytest.raises(ConfigurationError):
            ToolResultTruncator(max_chars=0)


# ── Pattern Redactor Tests ──


class TestPatternRedactor:
    def test_redacts_base64_blob_in_text(self):
        blob = "QUJD" * 100
        messages = [user(f"here is the file: {blob} thanks")]
        result = PatternRedactor().process(messages)
        assert result[0].content == "here is the file: [redacted] thanks"

    def test_redacts_text_parts(self):
        msg = assistant([TextPart("token=sk-123456"), ToolCallPart("c1", "t", {})])
        result = PatternRedactor(patterns=[r"sk-\d+"], replacement="***").process([msg])
        assert result[0].content[0] == TextPart("token=***")
        assert result[0].content[1] is msg.content[1]

    def test_no_match_shares_message(self):
        msg = user("nothing to see")
        assert PatternRedactor(patterns=BASE64_BLOB_PATTERN).process([msg])[0] is msg

    def test_invalid_pattern(self):
        with pytest.raises(ConfigurationError):
            PatternRedactor(patterns=["("])

    @pytest.mark.parametrize("pattern", ["", "x*", "a?"])
    def test_empty_match_pattern_rejected(self, pattern):
        with pytest.raises(ConfigurationError, match="empty string"):
            PatternRedactor(patterns=[r"sk-\d+", pattern])
