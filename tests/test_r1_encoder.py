from transcript_bridge.encoders import r1
from transcript_bridge.encoders.common import EncodeOptions
from transcript_bridge.transcript import Reasoning, ReasoningDetail, Text, ToolInvocation, ToolOutcome, Turn


def test_consecutive_user_turns_merge_with_newline():
    messages = r1.encode([Turn.user("Hello"), Turn.user("How are you?")])
    assert messages == [{"role": "user", "content": "Hello\nHow are you?"}]


def test_tool_call_turn_never_merged():
    transcript = [
        Turn.assistant("first"),
        Turn.assistant(ToolInvocation(id="c1", name="ls", input={})),
        Turn.assistant("after"),
    ]
    messages = r1.encode(transcript)
    assert len(messages) == 3
    assert messages[1]["tool_calls"][0]["id"] == "c1"


def test_tool_messages_stay_separate():
    transcript = [
        Turn.assistant(ToolInvocation(id="a", name="ls"), ToolInvocation(id="b", name="pwd")),
        Turn.user(ToolOutcome("a", "x"), ToolOutcome("b", "y")),
    ]
    messages = r1.encode(transcript)
    assert [m["role"] for m in messages] == ["assistant", "tool", "tool"]


def test_mixed_content_merges_into_parts():
    merged = r1.merge_consecutive(
        [
            {"role": "user", "content": "text"},
            {"role": "user", "content": [{"type": "image_url", "image_url": {"url": "data:x"}}]},
        ]
    )
    assert merged == [
        {
            "role": "user",
            "content": [
                {"type": "text", "text": "text"},
                {"type": "image_url", "image_url": {"url": "data:x"}},
            ],
        }
    ]


def test_reasoning_content_and_system_prompt():
    transcript = [Turn.user("q"), Turn.assistant(Reasoning(text="let me think"), Text("answer"))]
    messages = r1.encode(transcript, EncodeOptions(system_prompt="be brief"))
    assert messages[0] == {"role": "user", "content": "be brief\nq"}
    assert messages[1] == {"role": "assistant", "content": "answer", "reasoning_content": "let me think"}


def test_merged_assistant_turns_keep_reasoning_details():
    transcript = [
        Turn.user("q"),
        Turn.assistant(ReasoningDetail(kind="summary", summary="s")),
        Turn.assistant(ReasoningDetail(kind="encrypted", data="enc"), Text("b")),
    ]
    messages = r1.encode(transcript)
    assert len(messages) == 2
    assert messages[1]["reasoning_details"] == [
        {"type": "reasoning.summary", "summary": "s", "index": 0},
        {"type": "reasoning.encrypted", "data": "enc", "index": 0},
    ]
