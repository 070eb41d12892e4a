from transcript_bridge.encoders import anthropic_messages
from transcript_bridge.encoders.common import EncodeOptions
from transcript_bridge.tool_protocol import ToolProtocol
from transcript_bridge.transcript import (
    Image,
    Reasoning,
    ReasoningDetail,
    Text,
    ToolInvocation,
    ToolOutcome,
    Turn,
    UnknownSegment,
)

EPHEMERAL = {"type": "ephemeral"}


def test_blocks_and_cache_breakpoints():
    transcript = [
        Turn.user("one"),
        Turn.assistant(Reasoning(text="hmm", signature="sig"), ToolInvocation(id="toolu_1", name="ls", input=None)),
        Turn.user(ToolOutcome("toolu_1", "out", is_error=True), Text("two")),
        Turn.assistant("done"),
        Turn.user("three"),
    ]
    messages = anthropic_messages.encode(transcript)
    assert messages[1]["content"] == [
        {"type": "thinking", "thinking": "hmm", "signature": "sig"},
        {"type": "tool_use", "id": "toolu_1", "name": "ls", "input": {}},
    ]
    assert messages[2]["content"][0] == {"type": "tool_result", "tool_use_id": "toolu_1", "content": "out", "is_error": True}
    # only the two most recent user messages are marked
    assert "cache_control" not in messages[0]["content"][0]
    assert messages[2]["content"][1]["cache_control"] == EPHEMERAL
    assert messages[4]["content"][0]["cache_control"] == EPHEMERAL


def test_unsigned_reasoning_dropped_and_empty_turn_removed():
    messages = anthropic_messages.encode([Turn.user("q"), Turn.assistant(Reasoning(text="unsigned"))])
    assert len(messages) == 1


def test_encrypted_detail_becomes_redacted_thinking():
    turn = Turn.assistant(ReasoningDetail(kind="encrypted", data="blob"), Text("a"))
    messages = anthropic_messages.encode([turn], EncodeOptions(cache_hints=False))
    assert messages[0]["content"][0] == {"type": "redacted_thinking", "data": "blob"}


def test_unknown_segments():
    doc = UnknownSegment("document", {"type": "document", "source": {"type": "text", "data": "x"}})
    other = UnknownSegment("video", {"type": "video"})
    messages = anthropic_messages.encode([Turn.user(doc, other)], EncodeOptions(cache_hints=False))
    assert messages[0]["content"] == [
        {"type": "document", "source": {"type": "text", "data": "x"}},
        {"type": "text", "text": "[Unknown Block Type]"},
    ]


def test_tool_result_with_image_keeps_blocks():
    outcome = ToolOutcome("t", (Text("see"), Image("image/png", "AA")))
    block = anthropic_messages.encode([Turn.user(outcome)], EncodeOptions(cache_hints=False))[0]["content"][0]
    assert block["content"] == [
        {"type": "text", "text": "see"},
        {"type": "image", "source": {"type": "base64", "media_type": "image/png", "data": "AA"}},
    ]


def test_merge_text_into_tool_result():
    turn = Turn.user(ToolOutcome("t", "result"), Text("env details"))
    merged = anthropic_messages.merge_text_into_tool_result(turn)
    assert merged.segments == (ToolOutcome("t", "result\n\nenv details"),)

    with_image = Turn.user(ToolOutcome("t", "result"), Text("env"), Image("image/png", "AA"))
    assert anthropic_messages.merge_text_into_tool_result(with_image) is with_image


def test_merge_keeps_images_inside_tool_results():
    outcome = ToolOutcome("t", (Text("shot"), Image("image/png", "AA")))
    turn = Turn.user(outcome, Text("env"))
    assert anthropic_messages.merge_text_into_tool_result(turn) is turn

    messages = anthropic_messages.encode(
        [Turn.assistant(ToolInvocation(id="t", name="screenshot")), turn],
        EncodeOptions(merge_tool_result_text=True, cache_hints=False),
    )
    result = messages[1]["content"][0]
    assert result["content"][1] == {"type": "image", "source": {"type": "base64", "media_type": "image/png", "data": "AA"}}
    assert messages[1]["content"][1] == {"type": "text", "text": "env"}


def test_merge_keeps_other_segments_in_place():
    document = UnknownSegment("document", {"type": "document", "source": {"type": "text", "data": "doc"}})
    turn = Turn.user(ToolOutcome("t", "result"), document, Text("env"))
    merged = anthropic_messages.merge_text_into_tool_result(turn)
    assert merged.segments == (ToolOutcome("t", "result\n\nenv"), document)


def test_text_emulated_and_system():
    opts = EncodeOptions(protocol=ToolProtocol.TEXT_EMULATED, system_prompt="sys", cache_hints=True)
    messages = anthropic_messages.encode([Turn.assistant(ToolInvocation(id=None, name="ls"))], opts)
    assert messages[0]["content"][0]["type"] == "text"
    assert anthropic_messages.encode_system(opts) == [{"type": "text", "text": "sys", "cache_control": EPHEMERAL}]


def test_tool_choice_conversion():
    convert = anthropic_messages.to_anthropic_tool_choice
    assert convert(None) == {"type": "auto", "disable_parallel_tool_use": True}
    assert convert("none") is None
    assert convert("required", parallel_tool_calls=True) == {"type": "any", "disable_parallel_tool_use": False}
    assert convert({"type": "function", "function": {"name": "ls"}}) == {
        "type": "tool",
        "name": "ls",
        "disable_parallel_tool_use": True,
    }


def test_to_anthropic_tools():
    tools = anthropic_messages.to_anthropic_tools(
        [{"type": "function", "function": {"name": "ls", "description": "list", "parameters": {"type": "object"}}}]
    )
    assert tools == [{"name": "ls", "description": "list", "input_schema": {"type": "object"}}]
