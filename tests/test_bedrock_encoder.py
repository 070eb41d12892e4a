import base64

import pytest

from transcript_bridge.encoders import bedrock_converse
from transcript_bridge.encoders.common import EncodeOptions
from transcript_bridge.error_handling import UnsupportedImageFormatError
from transcript_bridge.tool_protocol import ToolProtocol
from transcript_bridge.transcript import Image, Reasoning, ReasoningDetail, Text, ToolInvocation, ToolOutcome, Turn

PNG = base64.b64encode(b"\x89PNG").decode("ascii")


def test_native_tool_blocks():
    transcript = [
        Turn.assistant(Text("calling"), ToolInvocation(id="t1", name="ls", input=None)),
        Turn.user(ToolOutcome("t1", "boom", is_error=True)),
    ]
    messages = bedrock_converse.encode(transcript)
    assert messages[0]["content"][1] == {"toolUse": {"toolUseId": "t1", "name": "ls", "input": {}}}
    assert messages[1]["content"][0] == {
        "toolResult": {"toolUseId": "t1", "content": [{"text": "boom"}], "status": "error"}
    }


def test_text_emulated_tool_blocks():
    opts = EncodeOptions(protocol=ToolProtocol.TEXT_EMULATED)
    transcript = [
        Turn.assistant(ToolInvocation(id="t1", name="ls", input={"p": 1})),
        Turn.user(ToolOutcome("t1", "ok")),
    ]
    messages = bedrock_converse.encode(transcript, opts)
    assert "<tool_name>ls</tool_name>" in messages[0]["content"][0]["text"]
    assert "<output>ok</output>" in messages[1]["content"][0]["text"]
    assert all("toolUse" not in b and "toolResult" not in b for m in messages for b in m["content"])


def test_images_decoded_to_bytes():
    messages = bedrock_converse.encode([Turn.user(Image("image/png", PNG))])
    assert messages[0]["content"][0] == {"image": {"format": "png", "source": {"bytes": b"\x89PNG"}}}


def test_tool_result_images_follow_result_block():
    outcome = ToolOutcome("t1", (Text("shot"), Image("image/webp", PNG)))
    content = bedrock_converse.encode([Turn.user(outcome)])[0]["content"]
    assert content[0]["toolResult"]["content"] == [{"text": "shot"}, {"text": "(see following message for image)"}]
    assert content[1]["image"]["format"] == "webp"


def test_unsupported_image_format():
    with pytest.raises(UnsupportedImageFormatError) as exc:
        bedrock_converse.encode([Turn.user(Image("image/tiff", PNG))])
    assert str(exc.value) == "Unsupported image format: tiff"


def test_reasoning_blocks():
    turn = Turn.assistant(
        Reasoning(text="signed", signature="s"),
        Reasoning(text="unsigned"),
        ReasoningDetail(kind="text", text="d"),
        Text("answer"),
    )
    content = bedrock_converse.encode([turn])[0]["content"]
    assert content == [
        {"reasoningContent": {"reasoningText": {"text": "signed", "signature": "s"}}},
        {"text": "answer"},
    ]


def test_turn_with_only_unreplayable_reasoning_is_dropped():
    transcript = [
        Turn.user("q"),
        Turn.assistant(Reasoning(text="unsigned"), ReasoningDetail(kind="text", text="d")),
        Turn.user("next"),
    ]
    messages = bedrock_converse.encode(transcript)
    assert [m["role"] for m in messages] == ["user", "user"]
    assert all(m["content"] for m in messages)


def test_system_blocks():
    assert bedrock_converse.encode_system(EncodeOptions(system_prompt="sys")) == [{"text": "sys"}]
    assert bedrock_converse.encode_system(EncodeOptions()) == []
