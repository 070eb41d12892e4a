import pytest

from transcript_bridge.provider_capabilities import ModelInfo, ProviderSettings, apply_router_tool_preferences, parse_model_id
from transcript_bridge.tool_protocol import (
    TaskProtocolLock,
    ToolProtocol,
    detect_tool_protocol_from_history,
    is_native_protocol,
    resolve_tool_protocol,
)
from transcript_bridge.transcript import ToolInvocation, Turn

NATIVE_MODEL = ModelInfo(model_id="m", supports_native_tools=True)


def test_lock_wins():
    assert resolve_tool_protocol(ProviderSettings(tool_protocol="native"), NATIVE_MODEL, "xml") is ToolProtocol.TEXT_EMULATED


def test_capability_gates_native():
    for supports in (None, False):
        info = ModelInfo(supports_native_tools=supports)
        assert resolve_tool_protocol(ProviderSettings(tool_protocol="native"), info) is ToolProtocol.TEXT_EMULATED
    assert resolve_tool_protocol(None, None) is ToolProtocol.TEXT_EMULATED


def test_preference_then_model_default_then_native():
    info = ModelInfo(supports_native_tools=True, default_tool_protocol="xml")
    assert resolve_tool_protocol(ProviderSettings(tool_protocol="native"), info) is ToolProtocol.NATIVE
    assert resolve_tool_protocol(ProviderSettings(), info) is ToolProtocol.TEXT_EMULATED
    assert resolve_tool_protocol(ProviderSettings(), NATIVE_MODEL) is ToolProtocol.NATIVE


def test_detect_from_history():
    native = [Turn.user("x"), Turn.assistant(ToolInvocation(id="toolu_01abc", name="ls"))]
    assert detect_tool_protocol_from_history(native) is ToolProtocol.NATIVE
    for missing in ("", None):
        history = [Turn.assistant(ToolInvocation(id=missing, name="ls")), Turn.user("ok")]
        assert detect_tool_protocol_from_history(history) is ToolProtocol.TEXT_EMULATED
    assert detect_tool_protocol_from_history([]) is None
    assert detect_tool_protocol_from_history([Turn.assistant("hi")]) is None


def test_detect_uses_last_invocation_of_latest_tool_turn():
    history = [
        Turn.assistant(ToolInvocation(id=None, name="a")),
        Turn.assistant("thinking"),
        Turn.assistant(ToolInvocation(id=None, name="b"), ToolInvocation(id="c1", name="c")),
    ]
    assert detect_tool_protocol_from_history(history) is ToolProtocol.NATIVE


def test_task_lock_first_wins():
    lock = TaskProtocolLock("task-1")
    assert lock.protocol is None
    assert lock.lock("native") is ToolProtocol.NATIVE
    assert lock.lock("xml") is ToolProtocol.NATIVE
    with pytest.raises(ValueError):
        TaskProtocolLock("task-2").lock("smoke-signals")


def test_task_lock_restored_from_history():
    lock = TaskProtocolLock("task-3")
    history = [Turn.assistant(ToolInvocation(id=None, name="ls"))]
    assert lock.resolve(ProviderSettings(tool_protocol="native"), NATIVE_MODEL, history) is ToolProtocol.TEXT_EMULATED
    assert lock.protocol is ToolProtocol.TEXT_EMULATED


def test_protocol_parse_aliases():
    assert ToolProtocol.parse("JSON") is ToolProtocol.NATIVE
    assert ToolProtocol.parse("text") is ToolProtocol.TEXT_EMULATED
    assert ToolProtocol.parse("bogus") is None
    assert is_native_protocol("native") and not is_native_protocol(None)


def test_router_tool_preferences():
    info = apply_router_tool_preferences(ModelInfo(model_id="openrouter/openai/gpt-4.1", excluded_tools=("x",)))
    assert info.excluded_tools == ("x", "apply_diff", "write_to_file")
    assert info.included_tools == ("apply_patch",)
    assert apply_router_tool_preferences(ModelInfo(model_id="claude")).excluded_tools == ()
    assert parse_model_id("openrouter/google/gemini") == ("openrouter", "google/gemini")
    assert parse_model_id("gpt-4") == (None, "gpt-4")
