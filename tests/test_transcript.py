from transcript_bridge.transcript import (
    Image,
    Reasoning,
    ReasoningDetail,
    Text,
    ToolInvocation,
    ToolOutcome,
    Turn,
    UnknownSegment,
    count_segments,
    find_last,
    find_last_index,
    outcome_text,
    transcript_from_dicts,
    turn_to_dict,
)


def test_turn_helpers_coerce_strings_and_filter_segments():
    turn = Turn.assistant("thinking out loud", ToolInvocation(id="t1", name="read_file", input={"path": "a"}))
    assert turn.role == "assistant"
    assert turn.segments[0] == Text("thinking out loud")
    assert turn.has_tool_invocations()
    assert [i.id for i in turn.tool_invocations] == ["t1"]
    assert turn.single_text() is None
    assert Turn.user("hi").single_text() == "hi"


def test_with_segments_returns_new_turn():
    turn = Turn.user("a", ts=5.0, seq=3)
    changed = turn.with_segments([Text("b")])
    assert turn.text() == "a"
    assert changed.text() == "b"
    assert changed.ts == 5.0 and changed.seq == 3


def test_find_last_and_count():
    transcript = [Turn.user("a"), Turn.assistant("b"), Turn.user("c"), Turn.assistant("d")]
    assert find_last_index(transcript, lambda t: t.role == "user") == 2
    assert find_last(transcript, lambda t: t.role == "assistant").text() == "d"
    assert find_last([], lambda t: True) is None
    assert count_segments(transcript, Text) == 4


def test_outcome_text_uses_placeholder_for_images():
    outcome = ToolOutcome("t1", (Text("before"), Image("image/png", "AAAA"), Text("after")))
    assert outcome.has_images()
    assert outcome_text(outcome, "[img]") == "before\n[img]\nafter"
    assert outcome_text(ToolOutcome("t1", "plain"), "[img]") == "plain"


def test_transcript_from_dicts_parses_blocks():
    transcript = transcript_from_dicts(
        [
            {"role": "user", "content": "hello", "ts": 1.0},
            {
                "role": "assistant",
                "reasoning_details": [{"type": "reasoning.encrypted", "data": "xyz", "format": "anthropic-claude-v1"}],
                "content": [
                    {"type": "thinking", "thinking": "hmm", "signature": "sig"},
                    {"type": "tool_use", "id": "t1", "name": "ls", "input": {}},
                    {"type": "server_tool_use", "id": "s1"},
                ],
            },
            {
                "role": "user",
                "content": [
                    {"type": "tool_result", "tool_use_id": "t1", "content": [{"type": "text", "text": "ok"}], "is_error": True}
                ],
            },
        ]
    )
    assert transcript[0].ts == 1.0
    assistant = transcript[1]
    assert assistant.segments[0] == ReasoningDetail(kind="encrypted", format="anthropic-claude-v1", data="xyz")
    assert assistant.segments[1] == Reasoning(text="hmm", signature="sig")
    assert isinstance(assistant.segments[3], UnknownSegment)
    outcome = transcript[2].tool_outcomes[0]
    assert outcome.is_error and outcome.parts() == (Text("ok"),)


def test_turn_to_dict_moves_reasoning_details_out_of_content():
    turn = Turn.assistant(ReasoningDetail(kind="summary", summary="s", index=0), "done")
    out = turn_to_dict(turn)
    assert out["content"] == [{"type": "text", "text": "done"}]
    assert out["reasoning_details"] == [{"type": "reasoning.summary", "summary": "s", "index": 0}]
